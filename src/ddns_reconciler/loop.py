"""
Per-domain reconciliation loop.

Each configured domain runs in its own Domain Loop:
resolve the current IP, compare it against the last applied IP, update every
subdomain when it changed, notify, then sleep. The loop body runs under a
crash boundary; anything escaping it is reported to the supervisor as a
FailureSignal and the loop terminates.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ddns_reconciler.detector import has_changed
from ddns_reconciler.errors import NotificationError, ResolutionError
from ddns_reconciler.models import DomainState, FailureSignal

if TYPE_CHECKING:
    from ddns_reconciler.models import DomainConfig
    from ddns_reconciler.notifier import Notifier
    from ddns_reconciler.providers.base import BaseDNSProvider, ProviderResult
    from ddns_reconciler.resolver import IPResolver


logger = logging.getLogger(__name__)

# Results that leave the record pointing at the current IP
_APPLIED_ACTIONS = frozenset({"updated", "unchanged"})


class DomainLoop:
    """
    Reconciliation loop for a single domain.

    Parameters
    ----------
    domain : DomainConfig
        The domain and its subdomains.
    provider : BaseDNSProvider
        Configured provider adapter.
    resolver : IPResolver
        Current IP resolver.
    interval : float
        Seconds to sleep after a completed cycle.
    retry_interval : float
        Seconds to wait before re-resolving after a resolution failure.
    notifier : Notifier | None, optional
        Notifier called for each updated subdomain.
    stop_event : asyncio.Event | None, optional
        Stop token; the loop exits at its next sleep once it is set.
    """

    def __init__(
        self,
        domain: DomainConfig,
        *,
        provider: BaseDNSProvider,
        resolver: IPResolver,
        interval: float,
        retry_interval: float,
        notifier: Notifier | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        self.domain = domain
        self.state = DomainState()
        self._provider = provider
        self._resolver = resolver
        self._interval = interval
        self._retry_interval = retry_interval
        self._notifier = notifier
        self._stop_event = stop_event or asyncio.Event()

    async def run(self, failures: asyncio.Queue[FailureSignal | None]) -> None:
        """
        Run cycles until stopped, reporting a crash to the supervisor.

        Parameters
        ----------
        failures : asyncio.Queue[FailureSignal | None]
            Supervisor channel receiving the FailureSignal on a crash.
        """
        name = self.domain.domain_name
        logger.info("[%s] Domain loop started.", name)
        try:
            while not self._stop_event.is_set():
                delay = await self.run_cycle()
                await self._sleep(delay)
        except Exception as e:
            logger.exception("[%s] Domain loop crashed.", name)
            failures.put_nowait(FailureSignal(self.domain, e))
            return
        logger.info("[%s] Domain loop stopped.", name)

    async def run_cycle(self) -> float:
        """
        Run one resolve, compare, update and notify pass.

        Returns
        -------
        float
            Seconds to sleep before the next cycle.
        """
        name = self.domain.domain_name

        try:
            current_ip = await self._resolver.resolve()
        except ResolutionError as e:
            logger.error("[%s] Failed to resolve current IP: %s", name, e)  # noqa: TRY400
            return self._retry_interval

        logger.debug("[%s] Current IP: %s", name, current_ip)

        if not has_changed(self.state.last_ip, current_ip):
            logger.info("[%s] IP is the same as cached one (%s). Skip update.", name, current_ip)
            self.state.cycles += 1
            return self._interval

        results = await self._provider.reconcile(self.domain, current_ip)
        for result in results:
            if result.action == "updated":
                await self._notify(result)

        if all(result.action in _APPLIED_ACTIONS for result in results):
            self.state.last_ip = current_ip
        else:
            logger.warning(
                "[%s] Not every subdomain points at %s yet; will retry next cycle.",
                name,
                current_ip,
            )

        self.state.cycles += 1
        return self._interval

    async def _notify(self, result: ProviderResult) -> None:
        """Send the update notification; delivery errors are logged only."""
        if self._notifier is None or result.value is None:
            return
        try:
            await self._notifier.notify(result.fqdn, result.value)
        except NotificationError as e:
            logger.error("[%s] Failed to send notification: %s", result.fqdn, e)  # noqa: TRY400

    async def _sleep(self, delay: float) -> None:
        """Wait for `delay` seconds or until the stop token is set."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except TimeoutError:
            pass
