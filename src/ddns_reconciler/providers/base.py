"""
Base class for DNS providers.

This module defines the abstract base class that all DNS provider
implementations must inherit from, together with the shared reconcile path:
look up the zone once, then for each subdomain look up the record and update
it when its value differs from the current IP.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Literal

from ddns_reconciler.detector import has_changed
from ddns_reconciler.errors import ProviderLookupError, ProviderUpdateError
from ddns_reconciler.http_client import create_http_client
from ddns_reconciler.models import Zone

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from typing import Any

    import httpx

    from ddns_reconciler.config import Config
    from ddns_reconciler.models import DomainConfig, ProviderRecord


logger = logging.getLogger(__name__)

ResultAction = Literal["updated", "unchanged", "skipped", "failed"]


class ProviderResult:
    """
    Result of reconciling one subdomain.

    Attributes
    ----------
    success : bool
        Whether the subdomain is known to point at the desired value.
    action : ResultAction
        The action taken ("updated", "unchanged", "skipped", "failed").
    message : str
        Human-readable message.
    fqdn : str
        The fully qualified domain name of the record.
    value : str | None
        The desired record value.
    record_id : str | None
        The record ID from the provider.
    previous_value : str | None
        The record value before an update.
    """

    def __init__(
        self,
        *,
        success: bool,
        action: ResultAction,
        message: str,
        fqdn: str,
        value: str | None = None,
        record_id: str | None = None,
        previous_value: str | None = None,
    ) -> None:
        self.success = success
        self.action = action
        self.message = message
        self.fqdn = fqdn
        self.value = value
        self.record_id = record_id
        self.previous_value = previous_value

    def __repr__(self) -> str:
        return (
            f"ProviderResult(action={self.action!r}, fqdn={self.fqdn!r}, "
            f"value={self.value!r}, message={self.message!r})"
        )


class BaseDNSProvider(ABC):
    """
    Abstract base class for DNS providers.

    Subclasses implement `find_record` and `update_record`, and may override
    `lookup_zone` and `session` when the provider needs a zone identifier or
    an SDK client instead of a plain HTTP client.

    Parameters
    ----------
    transport : httpx.AsyncBaseTransport | None, optional
        HTTP transport override for providers speaking plain HTTP.
    """

    #: Default API base URL (overridable with the "api_url" setting)
    DEFAULT_API_BASE: str = ""

    def __init__(self, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings: Config | None = None
        self._transport = transport

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Get the provider name.

        Returns
        -------
        str
            Provider name identifier, used as log prefix.
        """
        ...

    def configure(self, settings: Config) -> None:
        """
        Bind credentials and API settings to the provider.

        Parameters
        ----------
        settings : Config
            Application configuration.
        """
        self._settings = settings

    @property
    def settings(self) -> Config:
        """Get the bound configuration."""
        if self._settings is None:
            msg = f"Provider {self.name} is not configured"
            raise RuntimeError(msg)
        return self._settings

    @property
    def api_base(self) -> str:
        """Get the API base URL, honoring the "api_url" override."""
        return (self.settings.api_url or self.DEFAULT_API_BASE).rstrip("/")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Any]:
        """
        Open the client used for one reconcile pass.

        Yields
        ------
        Any
            An `httpx.AsyncClient` by default; SDK-based providers yield
            their own client.
        """
        async with create_http_client(self.settings, transport=self._transport) as client:
            yield client

    async def lookup_zone(self, session: Any, domain: str) -> Zone:  # noqa: ARG002
        """
        Resolve the provider-side zone for a domain.

        Parameters
        ----------
        session : Any
            The client opened by `session`.
        domain : str
            The domain name.

        Returns
        -------
        Zone
            The zone; by default the domain name doubles as identifier.

        Raises
        ------
        ProviderLookupError
            If the zone cannot be found.
        """
        return Zone(name=domain, zone_id=domain)

    @abstractmethod
    async def find_record(
        self,
        session: Any,
        zone: Zone,
        sub_domain: str,
    ) -> ProviderRecord | None:
        """
        Find the A record of a subdomain.

        When several records match, the first one in the provider's order wins.

        Parameters
        ----------
        session : Any
            The client opened by `session`.
        zone : Zone
            The zone returned by `lookup_zone`.
        sub_domain : str
            The subdomain label ("@" for the zone apex).

        Returns
        -------
        ProviderRecord | None
            The record, or None if it does not exist yet.

        Raises
        ------
        ProviderLookupError
            If the lookup request fails.
        """
        ...

    @abstractmethod
    async def update_record(
        self,
        session: Any,
        zone: Zone,
        record: ProviderRecord,
        ip: str,
    ) -> None:
        """
        Point an existing record at a new IP.

        Parameters
        ----------
        session : Any
            The client opened by `session`.
        zone : Zone
            The zone returned by `lookup_zone`.
        record : ProviderRecord
            The record returned by `find_record`.
        ip : str
            The new IP address.

        Raises
        ------
        ProviderUpdateError
            If the update request fails.
        """
        ...

    async def update_subdomain(
        self,
        session: Any,
        zone: Zone,
        sub_domain: str,
        ip: str,
    ) -> ProviderResult:
        """
        Look up one subdomain and update it if its value differs.

        Provider errors are logged and reported as a failed result; they
        never abort the caller.

        Parameters
        ----------
        session : Any
            The client opened by `session`.
        zone : Zone
            The zone returned by `lookup_zone`.
        sub_domain : str
            The subdomain label.
        ip : str
            The desired IP address.

        Returns
        -------
        ProviderResult
            The outcome for this subdomain.
        """
        fqdn = self.build_fqdn(zone.name, sub_domain)

        try:
            record = await self.find_record(session, zone, sub_domain)
        except ProviderLookupError as e:
            logger.error("[%s] Failed to look up record %s: %s", self.name, fqdn, e)  # noqa: TRY400
            return ProviderResult(
                success=False,
                action="failed",
                message=f"Lookup failed: {e}",
                fqdn=fqdn,
                value=ip,
            )

        if record is None:
            logger.warning(
                "[%s] Record %s not configured yet, skipping.",
                self.name,
                fqdn,
            )
            return ProviderResult(
                success=False,
                action="skipped",
                message=f"Record not found for {fqdn}",
                fqdn=fqdn,
                value=ip,
            )

        if record.current_value is not None and not has_changed(record.current_value, ip):
            logger.info(
                "[%s] %s current IP is same as record IP, no need to update.",
                self.name,
                fqdn,
            )
            return ProviderResult(
                success=True,
                action="unchanged",
                message=f"DNS record unchanged for {fqdn}",
                fqdn=fqdn,
                value=ip,
                record_id=record.record_id,
            )

        logger.info(
            "[%s] %s IP mismatch: current %s vs record %s, updating.",
            self.name,
            fqdn,
            ip,
            record.current_value,
        )
        try:
            await self.update_record(session, zone, record, ip)
        except ProviderUpdateError as e:
            logger.error("[%s] Failed to update record %s: %s", self.name, fqdn, e)  # noqa: TRY400
            return ProviderResult(
                success=False,
                action="failed",
                message=f"Update failed: {e}",
                fqdn=fqdn,
                value=ip,
                record_id=record.record_id,
            )

        logger.info("[%s] Record updated: %s -> %s", self.name, fqdn, ip)
        return ProviderResult(
            success=True,
            action="updated",
            message=f"DNS record updated for {fqdn}",
            fqdn=fqdn,
            value=ip,
            record_id=record.record_id,
            previous_value=record.current_value,
        )

    async def reconcile(self, domain: DomainConfig, ip: str) -> list[ProviderResult]:
        """
        Reconcile every configured subdomain of a domain against an IP.

        Parameters
        ----------
        domain : DomainConfig
            The domain and its subdomains.
        ip : str
            The desired IP address.

        Returns
        -------
        list[ProviderResult]
            One result per subdomain, in configuration order.
        """
        async with self.session() as session:
            try:
                zone = await self.lookup_zone(session, domain.domain_name)
            except ProviderLookupError as e:
                logger.error(  # noqa: TRY400
                    "[%s] Failed to find domain %s: %s",
                    self.name,
                    domain.domain_name,
                    e,
                )
                return [
                    ProviderResult(
                        success=False,
                        action="failed",
                        message=f"Domain lookup failed: {e}",
                        fqdn=self.build_fqdn(domain.domain_name, sub_domain),
                        value=ip,
                    )
                    for sub_domain in domain.sub_domains
                ]

            return [
                await self.update_subdomain(session, zone, sub_domain, ip)
                for sub_domain in domain.sub_domains
            ]

    def build_fqdn(self, zone: str, record: str) -> str:
        """
        Build the fully qualified domain name.

        Parameters
        ----------
        zone : str
            The DNS zone (root domain).
        record : str
            The host record name.

        Returns
        -------
        str
            The FQDN.
        """
        if record in {"@", ""}:
            return zone
        return f"{record}.{zone}"
