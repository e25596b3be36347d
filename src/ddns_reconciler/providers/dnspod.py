"""
DNSPod token API provider implementation.

This module implements the DNSPod API (dnsapi.cn) authenticated with a login
token ("ID,Token"). Every call is a form-encoded POST; a status code of "1"
means success.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from ddns_reconciler.errors import (
    ProviderError,
    ProviderLookupError,
    ProviderUpdateError,
    RecordNotFoundError,
)
from ddns_reconciler.models import ProviderRecord, Zone
from ddns_reconciler.providers.base import BaseDNSProvider

if TYPE_CHECKING:
    from typing import Any, Final


# Default record line
DEFAULT_RECORD_LINE: Final[str] = "默认"

STATUS_OK: Final[str] = "1"


logger = logging.getLogger(__name__)


class DNSPodProvider(BaseDNSProvider):
    """
    DNSPod provider using the login token API.

    The domain ID is looked up once per reconcile pass with Domain.List,
    then each subdomain is read with Record.List and changed with
    Record.Modify.
    """

    DEFAULT_API_BASE = "https://dnsapi.cn"

    @property
    def name(self) -> str:
        """Get the provider name."""
        return "dnspod"

    def _common_params(self) -> dict[str, str]:
        """
        Build the parameters sent with every request.

        Returns
        -------
        dict[str, str]
            Common form parameters.
        """
        return {
            "login_token": self.settings.login_token,
            "format": "json",
            "lang": "en",
            "error_on_empty": "no",
        }

    async def _post(
        self,
        client: httpx.AsyncClient,
        action: str,
        params: dict[str, str],
        error_cls: type[ProviderError],
    ) -> dict[str, Any]:
        """
        Invoke an API action and check its status.

        Parameters
        ----------
        client : httpx.AsyncClient
            HTTP client.
        action : str
            API action, e.g. "Record.List".
        params : dict[str, str]
            Action parameters.
        error_cls : type[ProviderError]
            Error raised on failure.

        Returns
        -------
        dict[str, Any]
            The decoded response.

        Raises
        ------
        ProviderError
            An instance of `error_cls` on network, HTTP or API errors.
        """
        url = f"{self.api_base}/{action}"
        try:
            response = await client.post(url, data={**self._common_params(), **params})
        except httpx.RequestError as e:
            msg = f"Post failed: {e}"
            raise error_cls(self.name, msg) from e

        logger.debug("[dnspod] POST %s -> %d", url, response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            msg = f"Invalid JSON response (HTTP {response.status_code})"
            raise error_cls(self.name, msg) from e

        status = data.get("status") or {}
        code = str(status.get("code", ""))
        if code != STATUS_OK:
            msg = f"{action} status code {code}: {status.get('message', 'Unknown error')}"
            raise error_cls(self.name, msg)
        return data

    async def lookup_zone(self, session: httpx.AsyncClient, domain: str) -> Zone:
        """
        Find the DNSPod domain ID.

        Parameters
        ----------
        session : httpx.AsyncClient
            HTTP client.
        domain : str
            The domain name.

        Returns
        -------
        Zone
            The domain with its ID.

        Raises
        ------
        RecordNotFoundError
            If the domain is not in the account.
        """
        data = await self._post(
            session,
            "Domain.List",
            {"type": "all", "offset": "0", "length": "20", "keyword": domain},
            ProviderLookupError,
        )
        domains = data.get("domains") or []
        if not domains:
            logger.debug("[dnspod] Domain list is empty.")
        for item in domains:
            if item["name"] == domain:
                return Zone(name=domain, zone_id=str(item["id"]))

        msg = f"Domain not found: {domain}"
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
            The domain.
        sub_domain : str
            The subdomain label.

        Returns
        -------
        ProviderRecord | None
            The first matching record, or None.
        """
        data = await self._post(
            session,
            "Record.List",
            {
                "domain_id": zone.zone_id,
                "sub_domain": sub_domain,
                "record_type": "A",
                "offset": "0",
                "length": "1",
            },
            ProviderLookupError,
        )
        for record in data.get("records") or []:
            if record["name"] == sub_domain:
                return ProviderRecord(
                    record_id=str(record["id"]),
                    name=sub_domain,
                    current_value=record["value"],
                    metadata={"line": record.get("line") or DEFAULT_RECORD_LINE},
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
            The domain.
        record : ProviderRecord
            The record to update.
        ip : str
            The new IP address.
        """
        await self._post(
            session,
            "Record.Modify",
            {
                "domain_id": zone.zone_id,
                "record_id": record.record_id,
                "sub_domain": record.name,
                "record_type": "A",
                "record_line": record.metadata.get("line", DEFAULT_RECORD_LINE),
                "value": ip,
            },
            ProviderUpdateError,
        )
