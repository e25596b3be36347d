"""
Supervisor for the per-domain reconciliation loops.

The supervisor launches one Domain Loop per configured domain and listens on
a failure channel. A crashed domain is relaunched with fresh state until it
has been restarted panic_max times; its next crash abandons it for the rest
of the process lifetime while its siblings keep running.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from ddns_reconciler.loop import DomainLoop
from ddns_reconciler.models import DomainStatus, DomainStatusModel, FailureSignal
from ddns_reconciler.notifier import Notifier
from ddns_reconciler.providers.registry import create_provider
from ddns_reconciler.resolver import IPResolver

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ddns_reconciler.config import Config
    from ddns_reconciler.models import DomainConfig
    from ddns_reconciler.providers.base import BaseDNSProvider


logger = logging.getLogger(__name__)


class Supervisor:
    """
    Runs and restarts Domain Loops.

    Parameters
    ----------
    config : Config
        Application configuration.
    provider_factory : Callable[[Config], BaseDNSProvider], optional
        Builds a provider adapter for each launched loop.
    resolver : IPResolver | None, optional
        Shared IP resolver; built from the configuration by default.
    notifier : Notifier | None, optional
        Shared notifier; built from the configuration when notifications
        are enabled.
    panic_max : int | None, optional
        Restart budget override; defaults to ``config.panic_max``.
    """

    def __init__(
        self,
        config: Config,
        *,
        provider_factory: Callable[[Config], BaseDNSProvider] = create_provider,
        resolver: IPResolver | None = None,
        notifier: Notifier | None = None,
        panic_max: int | None = None,
    ) -> None:
        self.config = config
        self.panic_max = panic_max if panic_max is not None else config.panic_max
        self.failure_counts: dict[str, int] = {}
        self.statuses: dict[str, DomainStatus] = {}
        self.loops: dict[str, DomainLoop] = {}
        self.queue: asyncio.Queue[FailureSignal | None] = asyncio.Queue()
        self.stop_event = asyncio.Event()
        self._provider_factory = provider_factory
        self._resolver = resolver or IPResolver(config)
        if notifier is None and config.notify.enabled:
            notifier = Notifier(config.notify)
        self._notifier = notifier
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def _launch(self, domain: DomainConfig) -> None:
        """Start a fresh Domain Loop for a domain."""
        loop = DomainLoop(
            domain,
            provider=self._provider_factory(self.config),
            resolver=self._resolver,
            interval=self.config.interval,
            retry_interval=self.config.retry_interval,
            notifier=self._notifier,
            stop_event=self.stop_event,
        )
        name = domain.domain_name
        self.loops[name] = loop
        self.statuses[name] = DomainStatus.RUNNING
        self._tasks[name] = asyncio.create_task(
            loop.run(self.queue),
            name=f"domain-loop:{name}",
        )

    def _handle_failure(self, signal: FailureSignal) -> None:
        """Count a crash and relaunch the domain until panic_max restarts are spent."""
        name = signal.domain.domain_name
        count = self.failure_counts.get(name, 0) + 1
        self.failure_counts[name] = count

        if count <= self.panic_max:
            logger.warning(
                "[%s] Domain loop failed, restart %d/%d.",
                name,
                count,
                self.panic_max,
            )
            self._launch(signal.domain)
            return

        logger.critical(
            "[%s] Domain loop failed %d times, giving up on this domain.",
            name,
            count,
        )
        self.statuses[name] = DomainStatus.ABANDONED

    async def run(self, domains: Sequence[DomainConfig] | None = None) -> None:
        """
        Run one Domain Loop per domain until stopped or all are abandoned.

        Parameters
        ----------
        domains : Sequence[DomainConfig] | None, optional
            Domains to supervise; defaults to the configured domains.
        """
        domains = list(self.config.domains if domains is None else domains)
        if not domains:
            logger.warning("No domains configured, nothing to do.")
            return

        for domain in domains:
            self.failure_counts.setdefault(domain.domain_name, 0)
            self._launch(domain)

        logger.info(
            "Supervising %d domain(s) with provider %s.",
            len(domains),
            self.config.provider,
        )

        try:
            while not self.stop_event.is_set():
                if all(s == DomainStatus.ABANDONED for s in self.statuses.values()):
                    logger.critical("All domains abandoned, supervisor exiting.")
                    break
                signal = await self.queue.get()
                if signal is None:
                    continue
                self._handle_failure(signal)
        finally:
            await self._shutdown()

    async def _shutdown(self) -> None:
        """Stop every loop and wait for its task to finish."""
        self.stop_event.set()
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        for name, status in self.statuses.items():
            if status == DomainStatus.RUNNING:
                self.statuses[name] = DomainStatus.STOPPED
        logger.info("Supervisor stopped.")

    def stop(self) -> None:
        """Request shutdown; safe to call more than once."""
        if self.stop_event.is_set():
            return
        logger.info("Stop requested.")
        self.stop_event.set()
        self.queue.put_nowait(None)

    def snapshot(self) -> list[DomainStatusModel]:
        """
        Report the current status of every supervised domain.

        Returns
        -------
        list[DomainStatusModel]
            One entry per domain, in launch order.
        """
        return [
            DomainStatusModel(
                domain=name,
                status=status,
                failures=self.failure_counts.get(name, 0),
                last_ip=self.loops[name].state.last_ip if name in self.loops else None,
            )
            for name, status in self.statuses.items()
        ]


async def run(config: Config, domains: Sequence[DomainConfig] | None = None) -> None:
    """
    Supervise the configured domains until cancelled.

    Parameters
    ----------
    config : Config
        Application configuration.
    domains : Sequence[DomainConfig] | None, optional
        Domains to supervise; defaults to ``config.domains``.
    """
    await Supervisor(config).run(domains)
