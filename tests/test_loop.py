"""Tests for the per-domain reconciliation loop."""

from __future__ import annotations

import asyncio

import pytest

from ddns_reconciler.config import Config
from ddns_reconciler.errors import NoAddressAvailable, NotificationError, ProviderUpdateError
from ddns_reconciler.loop import DomainLoop
from ddns_reconciler.models import DomainConfig, FailureSignal, ProviderRecord, Zone
from ddns_reconciler.providers.base import BaseDNSProvider

DOMAIN = DomainConfig(domain_name="example.com", sub_domains=["home"])


class StubResolver:
    """Returns queued IPs (or raises queued errors) in order."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = 0

    async def resolve(self):
        self.calls += 1
        answer = self.answers[0] if len(self.answers) == 1 else self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


class RecordingNotifier:
    def __init__(self, error=None):
        self.sent = []
        self.error = error

    async def notify(self, domain, current_ip):
        self.sent.append((domain, current_ip))
        if self.error is not None:
            raise self.error


class MemoryProvider(BaseDNSProvider):
    """Provider keeping records in a dict and counting API calls."""

    def __init__(self, records, *, fail_update=False, crash=None):
        super().__init__()
        self.records = dict(records)
        self.fail_update = fail_update
        self.crash = crash
        self.lookups = 0
        self.updates = []
        self.configure(Config(provider="DuckDNS", login_token="tok"))

    @property
    def name(self):
        return "memory"

    async def reconcile(self, domain, ip):
        if self.crash is not None:
            raise self.crash
        return await super().reconcile(domain, ip)

    async def lookup_zone(self, session, domain):
        return Zone(name=domain, zone_id=domain)

    async def find_record(self, session, zone, sub_domain):
        self.lookups += 1
        if sub_domain not in self.records:
            return None
        return ProviderRecord(record_id=sub_domain, name=sub_domain, current_value=self.records[sub_domain])

    async def update_record(self, session, zone, record, ip):
        if self.fail_update:
            raise ProviderUpdateError(self.name, "rejected")
        self.updates.append((record.name, ip))
        self.records[record.name] = ip


def make_loop(provider, resolver, notifier=None, stop_event=None):
    return DomainLoop(
        DOMAIN,
        provider=provider,
        resolver=resolver,
        interval=300,
        retry_interval=10,
        notifier=notifier,
        stop_event=stop_event,
    )


class TestRunCycle:
    """Tests for DomainLoop.run_cycle."""

    @pytest.mark.asyncio
    async def test_changed_ip_updates_and_notifies(self):
        provider = MemoryProvider({"home": "1.2.3.4"})
        notifier = RecordingNotifier()
        loop = make_loop(provider, StubResolver("1.2.3.5"), notifier)

        delay = await loop.run_cycle()

        assert delay == 300
        assert provider.updates == [("home", "1.2.3.5")]
        assert notifier.sent == [("home.example.com", "1.2.3.5")]
        assert loop.state.last_ip == "1.2.3.5"
        assert loop.state.cycles == 1

    @pytest.mark.asyncio
    async def test_record_already_current(self):
        provider = MemoryProvider({"home": "1.2.3.5"})
        notifier = RecordingNotifier()
        loop = make_loop(provider, StubResolver("1.2.3.5"), notifier)

        await loop.run_cycle()

        assert provider.lookups == 1
        assert provider.updates == []
        assert notifier.sent == []
        assert loop.state.last_ip == "1.2.3.5"

    @pytest.mark.asyncio
    async def test_unchanged_ip_makes_no_provider_calls(self):
        provider = MemoryProvider({"home": "1.2.3.4"})
        loop = make_loop(provider, StubResolver("1.2.3.5"))

        await loop.run_cycle()
        await loop.run_cycle()
        await loop.run_cycle()

        assert provider.lookups == 1
        assert provider.updates == [("home", "1.2.3.5")]
        assert loop.state.cycles == 3

    @pytest.mark.asyncio
    async def test_trailing_newline_is_not_a_change(self):
        provider = MemoryProvider({"home": "1.2.3.5"})
        loop = make_loop(provider, StubResolver("1.2.3.5", "1.2.3.5\n"))

        await loop.run_cycle()
        await loop.run_cycle()

        assert provider.lookups == 1

    @pytest.mark.asyncio
    async def test_resolution_failure_waits_retry_interval(self):
        provider = MemoryProvider({"home": "1.2.3.4"})
        loop = make_loop(provider, StubResolver(NoAddressAvailable("nothing"), "1.2.3.5"))

        assert await loop.run_cycle() == 10
        assert provider.lookups == 0
        assert loop.state.last_ip is None

        assert await loop.run_cycle() == 300
        assert provider.updates == [("home", "1.2.3.5")]

    @pytest.mark.asyncio
    async def test_failed_update_is_retried_next_cycle(self):
        provider = MemoryProvider({"home": "1.2.3.4"}, fail_update=True)
        loop = make_loop(provider, StubResolver("1.2.3.5"))

        await loop.run_cycle()
        assert loop.state.last_ip is None

        provider.fail_update = False
        await loop.run_cycle()
        assert provider.updates == [("home", "1.2.3.5")]
        assert loop.state.last_ip == "1.2.3.5"

    @pytest.mark.asyncio
    async def test_missing_record_is_retried(self):
        provider = MemoryProvider({})
        loop = make_loop(provider, StubResolver("1.2.3.5"))

        await loop.run_cycle()
        await loop.run_cycle()

        assert provider.lookups == 2
        assert loop.state.last_ip is None

    @pytest.mark.asyncio
    async def test_notifier_failure_is_not_fatal(self):
        provider = MemoryProvider({"home": "1.2.3.4"})
        notifier = RecordingNotifier(error=NotificationError("smtp down"))
        loop = make_loop(provider, StubResolver("1.2.3.5"), notifier)

        await loop.run_cycle()

        assert notifier.sent == [("home.example.com", "1.2.3.5")]
        assert loop.state.last_ip == "1.2.3.5"


class TestRun:
    """Tests for DomainLoop.run and its crash boundary."""

    @pytest.mark.asyncio
    async def test_crash_emits_failure_signal(self):
        provider = MemoryProvider({"home": "1.2.3.4"}, crash=KeyError("records"))
        loop = make_loop(provider, StubResolver("1.2.3.5"))
        failures = asyncio.Queue()

        await asyncio.wait_for(loop.run(failures), timeout=5)

        signal = failures.get_nowait()
        assert signal == FailureSignal(DOMAIN)
        assert isinstance(signal.error, KeyError)
        assert failures.empty()

    @pytest.mark.asyncio
    async def test_stop_event_ends_loop(self):
        stop_event = asyncio.Event()
        provider = MemoryProvider({"home": "1.2.3.4"})
        loop = make_loop(provider, StubResolver("1.2.3.5"), stop_event=stop_event)
        failures = asyncio.Queue()

        task = asyncio.create_task(loop.run(failures))
        while loop.state.cycles == 0:
            await asyncio.sleep(0.01)
        stop_event.set()
        await asyncio.wait_for(task, timeout=5)

        assert failures.empty()
        assert provider.updates == [("home", "1.2.3.5")]

    @pytest.mark.asyncio
    async def test_stop_before_start(self):
        stop_event = asyncio.Event()
        stop_event.set()
        provider = MemoryProvider({"home": "1.2.3.4"})
        resolver = StubResolver("1.2.3.5")
        loop = make_loop(provider, resolver, stop_event=stop_event)

        await asyncio.wait_for(loop.run(asyncio.Queue()), timeout=5)

        assert resolver.calls == 0
