"""
CloudFlare DNS provider implementation.

This module implements the CloudFlare DNS API v4 for updating A records.
Both the Global API Key (email + key) and API Token authentication are
supported.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx
from starlette import status as st_status

from ddns_reconciler.errors import (
    ProviderError,
    ProviderLookupError,
    ProviderUpdateError,
    RecordNotFoundError,
)
from ddns_reconciler.models import ProviderRecord, Zone
from ddns_reconciler.providers.base import BaseDNSProvider

if TYPE_CHECKING:
    from typing import Any


logger = logging.getLogger(__name__)


class CloudFlareProvider(BaseDNSProvider):
    """
    CloudFlare DNS provider.

    Uses CloudFlare API v4. Records are updated in place with PUT, keeping
    their proxied flag and TTL.
    """

    DEFAULT_API_BASE = "https://api.cloudflare.com/client/v4"

    @property
    def name(self) -> str:
        """Get the provider name."""
        return "cloudflare"

    def _headers(self) -> dict[str, str]:
        """
        Build the authentication headers.

        Returns
        -------
        dict[str, str]
            Request headers.
        """
        settings = self.settings
        headers = {"Content-Type": "application/json"}
        if settings.email and settings.password:
            headers["X-Auth-Email"] = settings.email
            headers["X-Auth-Key"] = settings.password
        else:
            headers["Authorization"] = f"Bearer {settings.login_token}"
        return headers

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        error_cls: type[ProviderError],
        **kwargs: Any,
    ) -> Any:
        """
        Issue an API request and return the "result" member.

        Parameters
        ----------
        client : httpx.AsyncClient
            HTTP client.
        method : str
            HTTP method.
        path : str
            Path below the API base URL.
        error_cls : type[ProviderError]
            Error raised on failure.
        **kwargs : Any
            Passed to `httpx.AsyncClient.request`.

        Returns
        -------
        Any
            The decoded "result" member of the response.

        Raises
        ------
        ProviderError
            An instance of `error_cls` on network, HTTP or API errors.
        """
        url = f"{self.api_base}{path}"
        try:
            response = await client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.RequestError as e:
            msg = f"Network request failed: {e}"
            raise error_cls(self.name, msg) from e

        logger.debug("[cloudflare] %s %s -> %d", method, url, response.status_code)
        logger.debug("[cloudflare] Response: %s", response.text)

        try:
            data = response.json()
        except ValueError as e:
            msg = f"Invalid JSON response (HTTP {response.status_code})"
            raise error_cls(self.name, msg) from e

        if response.status_code != st_status.HTTP_200_OK or not data.get("success"):
            errors = data.get("errors") or []
            error_msg = (
                errors[0].get("message", "Unknown error") if errors else "Unknown error"
            )
            msg = f"HTTP {response.status_code}: {error_msg}"
            raise error_cls(self.name, msg)

        return data.get("result")

    async def lookup_zone(self, session: httpx.AsyncClient, domain: str) -> Zone:
        """
        Find the zone ID of a domain.

        Parameters
        ----------
        session : httpx.AsyncClient
            HTTP client.
        domain : str
            The zone name.

        Returns
        -------
        Zone
            The matching zone.

        Raises
        ------
        RecordNotFoundError
            If no zone with that name exists.
        ProviderLookupError
            If the request fails.
        """
        zones = await self._request(
            session,
            "GET",
            "/zones",
            ProviderLookupError,
            params={"name": domain},
        )
        for zone in zones or []:
            if zone["name"] == domain:
                logger.debug("[cloudflare] Zone ID for %s: %s", domain, zone["id"])
                return Zone(name=domain, zone_id=str(zone["id"]))

        msg = f"Zone not found for domain: {domain}"
        raise RecordNotFoundError(self.name, msg)

    async def find_record(
        self,
        session: httpx.AsyncClient,
        zone: Zone,
        sub_domain: str,
    ) -> ProviderRecord | None:
        """
        Find the A record of a subdomain.

        Parameters
        ----------
        session : httpx.AsyncClient
            HTTP client.
        zone : Zone
            The zone.
        sub_domain : str
            The subdomain label.

        Returns
        -------
        ProviderRecord | None
            The first matching record, or None.
        """
        fqdn = self.build_fqdn(zone.name, sub_domain)
        records = await self._request(
            session,
            "GET",
            f"/zones/{zone.zone_id}/dns_records",
            ProviderLookupError,
            params={"type": "A", "name": fqdn},
        )
        for record in records or []:
            if record["name"] == fqdn:
                return ProviderRecord(
                    record_id=str(record["id"]),
                    name=sub_domain,
                    current_value=record["content"],
                    metadata={
                        "fqdn": record["name"],
                        "proxied": record.get("proxied", False),
                        "ttl": record.get("ttl", 1),
                    },
                )
        return None

    async def update_record(
        self,
        session: httpx.AsyncClient,
        zone: Zone,
        record: ProviderRecord,
        ip: str,
    ) -> None:
        """
        Update an A record with a new IP.

        Parameters
        ----------
        session : httpx.AsyncClient
            HTTP client.
        zone : Zone
            The zone.
        record : ProviderRecord
            The record to update.
        ip : str
            The new IP address.
        """
        payload: dict[str, str | int | bool] = {
            "type": "A",
            "name": record.metadata.get("fqdn", self.build_fqdn(zone.name, record.name)),
            "content": ip,
            "proxied": record.metadata.get("proxied", False),
            "ttl": record.metadata.get("ttl", 1),
        }
        await self._request(
            session,
            "PUT",
            f"/zones/{zone.zone_id}/dns_records/{record.record_id}",
            ProviderUpdateError,
            json=payload,
        )
