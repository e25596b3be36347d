"""
dyndns2 protocol providers (Hurricane Electric, Google Domains).

Both services take a single "nic/update" request per hostname and cannot
report the current record value, so every cycle that reaches the provider
issues an update. A response body beginning with "good" or "nochg" means
success; anything else ("badauth", "nohost", "abuse", ...) is an error.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import TYPE_CHECKING

import httpx

from ddns_reconciler.errors import ProviderUpdateError
from ddns_reconciler.models import ProviderRecord
from ddns_reconciler.providers.base import BaseDNSProvider

if TYPE_CHECKING:
    from typing import Final

    from ddns_reconciler.models import Zone


SUCCESS_PREFIXES: Final[tuple[str, ...]] = ("good", "nochg")


logger = logging.getLogger(__name__)


class DynDNS2Provider(BaseDNSProvider):
    """
    Base class for providers speaking the dyndns2 update protocol.

    Subclasses set `DEFAULT_API_BASE` and implement `_send`.
    """

    async def find_record(
        self,
        session: httpx.AsyncClient,  # noqa: ARG002
        zone: Zone,
        sub_domain: str,
    ) -> ProviderRecord | None:
        """
        Describe the hostname to update.

        dyndns2 has no lookup call; the record is identified by its FQDN and
        its current value is unknown.
        """
        fqdn = self.build_fqdn(zone.name, sub_domain)
        return ProviderRecord(record_id=fqdn, name=sub_domain, current_value=None)

    @abstractmethod
    async def _send(
        self,
        session: httpx.AsyncClient,
        hostname: str,
        ip: str,
    ) -> httpx.Response:
        """Issue the update request for one hostname."""
        ...

    async def update_record(
        self,
        session: httpx.AsyncClient,
        zone: Zone,  # noqa: ARG002
        record: ProviderRecord,
        ip: str,
    ) -> None:
        """
        Send a dyndns2 update for one hostname.

        Parameters
        ----------
        session : httpx.AsyncClient
            HTTP client.
        zone : Zone
            The domain.
        record : ProviderRecord
            The record returned by `find_record`.
        ip : str
            The new IP address.

        Raises
        ------
        ProviderUpdateError
            If the request fails or the service rejects the update.
        """
        try:
            response = await self._send(session, record.record_id, ip)
        except httpx.RequestError as e:
            msg = f"Request failed: {e}"
            raise ProviderUpdateError(self.name, msg) from e

        body = response.text.strip()
        logger.debug("[%s] Update %s -> %d %s", self.name, record.record_id, response.status_code, body)

        if not body.startswith(SUCCESS_PREFIXES):
            msg = f"HTTP {response.status_code}: {body or 'empty response'}"
            raise ProviderUpdateError(self.name, msg)


class HEProvider(DynDNS2Provider):
    """
    Hurricane Electric free DNS provider.

    The per-record DDNS key is the "password" setting.
    """

    DEFAULT_API_BASE = "https://dyn.dns.he.net"

    @property
    def name(self) -> str:
        """Get the provider name."""
        return "he"

    async def _send(
        self,
        session: httpx.AsyncClient,
        hostname: str,
        ip: str,
    ) -> httpx.Response:
        return await session.post(
            f"{self.api_base}/nic/update",
            data={
                "hostname": hostname,
                "password": self.settings.password,
                "myip": ip,
            },
        )


class GoogleProvider(DynDNS2Provider):
    """
    Google Domains dynamic DNS provider.

    The generated username and password are the "email" and "password"
    settings, sent as HTTP basic auth.
    """

    DEFAULT_API_BASE = "https://domains.google.com"

    @property
    def name(self) -> str:
        """Get the provider name."""
        return "google"

    async def _send(
        self,
        session: httpx.AsyncClient,
        hostname: str,
        ip: str,
    ) -> httpx.Response:
        return await session.post(
            f"{self.api_base}/nic/update",
            params={"hostname": hostname, "myip": ip},
            auth=(self.settings.email, self.settings.password),
        )
