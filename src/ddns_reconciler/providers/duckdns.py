"""
Duck DNS provider implementation.

Duck DNS hosts names under duckdns.org only; the configured subdomains are
the Duck DNS names ("myhome" for myhome.duckdns.org). The update endpoint
answers "OK" or "KO" as plain text.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from ddns_reconciler.errors import ProviderUpdateError
from ddns_reconciler.models import ProviderRecord
from ddns_reconciler.providers.base import BaseDNSProvider

if TYPE_CHECKING:
    from ddns_reconciler.models import Zone


logger = logging.getLogger(__name__)


class DuckDNSProvider(BaseDNSProvider):
    """Duck DNS provider authenticated with the account token."""

    DEFAULT_API_BASE = "https://www.duckdns.org"

    @property
    def name(self) -> str:
        """Get the provider name."""
        return "duckdns"

    async def find_record(
        self,
        session: httpx.AsyncClient,  # noqa: ARG002
        zone: Zone,
        sub_domain: str,
    ) -> ProviderRecord | None:
        """Describe the Duck DNS name; its current value cannot be queried."""
        return ProviderRecord(
            record_id=sub_domain,
            name=sub_domain,
            current_value=None,
            metadata={"fqdn": self.build_fqdn(zone.name, sub_domain)},
        )

    async def update_record(
        self,
        session: httpx.AsyncClient,
        zone: Zone,  # noqa: ARG002
        record: ProviderRecord,
        ip: str,
    ) -> None:
        """
        Point a Duck DNS name at a new IP.

        Raises
        ------
        ProviderUpdateError
            If the request fails or the service answers anything but "OK".
        """
        url = f"{self.api_base}/update"
        try:
            response = await session.get(
                url,
                params={
                    "domains": record.record_id,
                    "token": self.settings.login_token,
                    "ip": ip,
                },
            )
        except httpx.RequestError as e:
            msg = f"Request failed: {e}"
            raise ProviderUpdateError(self.name, msg) from e

        body = response.text.strip()
        logger.debug("[duckdns] GET %s -> %d %s", url, response.status_code, body)

        if body != "OK":
            msg = f"HTTP {response.status_code}: {body or 'empty response'}"
            raise ProviderUpdateError(self.name, msg)
