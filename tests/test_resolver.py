"""Tests for current IP resolution."""

from __future__ import annotations

from types import SimpleNamespace

import httpx
import psutil
import pytest

from ddns_reconciler.config import Config
from ddns_reconciler.errors import NoAddressAvailable, ResolutionError
from ddns_reconciler.resolver import (
    IPResolver,
    is_usable_address,
    select_interface_address,
)


def make_config(**kwargs):
    return Config(provider="DuckDNS", login_token="tok", **kwargs)


def fake_interfaces(mapping):
    """Build a psutil.net_if_addrs replacement."""

    def _net_if_addrs():
        return {
            name: [SimpleNamespace(address=address) for address in addresses]
            for name, addresses in mapping.items()
        }

    return _net_if_addrs


def echo_transport(body, status_code=200, calls=None):
    def handler(request):
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, text=body)

    return httpx.MockTransport(handler)


class TestIsUsableAddress:
    """Tests for is_usable_address function."""

    @pytest.mark.parametrize(
        "address",
        ["192.168.1.10", "10.0.0.1", "203.0.113.7"],
    )
    def test_usable(self, address):
        assert is_usable_address(address) is True

    @pytest.mark.parametrize(
        "address",
        [
            "0.0.0.0",  # unspecified
            "127.0.0.1",  # loopback
            "169.254.10.1",  # link-local
            "224.0.0.1",  # multicast
            "255.255.255.255",  # broadcast
            "2001:db8::1",  # IPv6
            "fe80::1%eth0",  # IPv6 link-local with scope
            "00:1a:2b:3c:4d:5e",  # MAC address
            "",
        ],
    )
    def test_rejected(self, address):
        assert is_usable_address(address) is False


class TestSelectInterfaceAddress:
    """Tests for select_interface_address function."""

    def test_first_usable_wins(self):
        addresses = ["00:1a:2b:3c:4d:5e", "127.0.0.1", "192.168.1.10", "10.0.0.1"]
        assert select_interface_address(addresses) == "192.168.1.10"

    def test_none_usable(self):
        assert select_interface_address(["fe80::1", "169.254.1.1"]) is None


class TestResolveOnline:
    """Tests for the online echo lookup."""

    @pytest.mark.asyncio
    async def test_strips_body(self):
        resolver = IPResolver(
            make_config(ip_url="https://ip.example.com"),
            transport=echo_transport("203.0.113.7\n"),
        )
        assert await resolver.resolve_online() == "203.0.113.7"

    @pytest.mark.asyncio
    async def test_sends_user_agent(self):
        calls = []
        resolver = IPResolver(
            make_config(ip_url="https://ip.example.com", user_agent="test-agent/1.0"),
            transport=echo_transport("203.0.113.7", calls=calls),
        )
        await resolver.resolve_online()
        assert calls[0].headers["user-agent"] == "test-agent/1.0"

    @pytest.mark.asyncio
    async def test_non_ip_body(self):
        resolver = IPResolver(
            make_config(ip_url="https://ip.example.com"),
            transport=echo_transport("<html>blocked</html>"),
        )
        with pytest.raises(ResolutionError, match="non-IPv4"):
            await resolver.resolve_online()

    @pytest.mark.asyncio
    async def test_ipv6_body_rejected(self):
        resolver = IPResolver(
            make_config(ip_url="https://ip.example.com"),
            transport=echo_transport("2001:db8::1"),
        )
        with pytest.raises(ResolutionError):
            await resolver.resolve_online()

    @pytest.mark.asyncio
    async def test_http_error(self):
        resolver = IPResolver(
            make_config(ip_url="https://ip.example.com"),
            transport=echo_transport("oops", status_code=503),
        )
        with pytest.raises(ResolutionError, match="HTTP 503"):
            await resolver.resolve_online()

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        resolver = IPResolver(
            make_config(ip_url="https://ip.example.com"),
            transport=httpx.MockTransport(handler),
        )
        with pytest.raises(ResolutionError, match="connection refused"):
            await resolver.resolve_online()


class TestResolveFromInterface:
    """Tests for the interface lookup."""

    def test_interface_address(self, monkeypatch):
        monkeypatch.setattr(
            psutil,
            "net_if_addrs",
            fake_interfaces({"eth0": ["00:1a:2b:3c:4d:5e", "fe80::1%eth0", "192.168.1.10"]}),
        )
        resolver = IPResolver(make_config(ip_interface="eth0"))
        assert resolver.resolve_from_interface() == "192.168.1.10"

    def test_missing_interface(self, monkeypatch):
        monkeypatch.setattr(psutil, "net_if_addrs", fake_interfaces({"lo": ["127.0.0.1"]}))
        resolver = IPResolver(make_config(ip_interface="eth0"))
        with pytest.raises(ResolutionError, match="eth0"):
            resolver.resolve_from_interface()

    def test_no_usable_address(self, monkeypatch):
        monkeypatch.setattr(psutil, "net_if_addrs", fake_interfaces({"lo": ["127.0.0.1"]}))
        resolver = IPResolver(make_config(ip_interface="lo"))
        with pytest.raises(ResolutionError):
            resolver.resolve_from_interface()


class TestResolve:
    """Tests for the online-then-interface fallback."""

    @pytest.mark.asyncio
    async def test_online_first(self, monkeypatch):
        monkeypatch.setattr(psutil, "net_if_addrs", fake_interfaces({"eth0": ["192.168.1.10"]}))
        resolver = IPResolver(
            make_config(ip_url="https://ip.example.com", ip_interface="eth0"),
            transport=echo_transport("203.0.113.7"),
        )
        assert await resolver.resolve() == "203.0.113.7"

    @pytest.mark.asyncio
    async def test_falls_back_to_interface(self, monkeypatch):
        monkeypatch.setattr(psutil, "net_if_addrs", fake_interfaces({"eth0": ["192.168.1.10"]}))
        resolver = IPResolver(
            make_config(ip_url="https://ip.example.com", ip_interface="eth0"),
            transport=echo_transport("oops", status_code=500),
        )
        assert await resolver.resolve() == "192.168.1.10"

    @pytest.mark.asyncio
    async def test_interface_only(self, monkeypatch):
        monkeypatch.setattr(psutil, "net_if_addrs", fake_interfaces({"eth0": ["10.0.0.2"]}))
        resolver = IPResolver(make_config(ip_interface="eth0"))
        assert await resolver.resolve() == "10.0.0.2"

    @pytest.mark.asyncio
    async def test_all_sources_fail(self, monkeypatch):
        monkeypatch.setattr(psutil, "net_if_addrs", fake_interfaces({}))
        resolver = IPResolver(
            make_config(ip_url="https://ip.example.com", ip_interface="eth0"),
            transport=echo_transport("oops", status_code=500),
        )
        with pytest.raises(NoAddressAvailable):
            await resolver.resolve()

    @pytest.mark.asyncio
    async def test_no_sources_configured(self):
        resolver = IPResolver(make_config())
        with pytest.raises(NoAddressAvailable):
            await resolver.resolve()
