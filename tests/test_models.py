"""Tests for data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from ddns_reconciler.models import (
    DNSProvider,
    DomainConfig,
    DomainState,
    DomainStatus,
    DomainStatusModel,
    FailureSignal,
    ProviderRecord,
    StatusResponse,
)


class TestDNSProvider:
    """Tests for DNSProvider enum."""

    def test_provider_values(self):
        assert DNSProvider.DNSPOD == "DNSPod"
        assert DNSProvider.HE == "HE"
        assert DNSProvider.CLOUDFLARE == "Cloudflare"
        assert DNSProvider.ALIDNS == "AliDNS"
        assert DNSProvider.GOOGLE == "Google"
        assert DNSProvider.DUCKDNS == "DuckDNS"

    def test_provider_from_string(self):
        assert DNSProvider("Cloudflare") == DNSProvider.CLOUDFLARE
        assert DNSProvider("DuckDNS") == DNSProvider.DUCKDNS

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Route53"):
            DNSProvider("Route53")


class TestDomainConfig:
    """Tests for DomainConfig model."""

    def test_valid_domain(self):
        domain = DomainConfig(domain_name="example.com", sub_domains=["home", "@"])
        assert domain.domain_name == "example.com"
        assert domain.sub_domains == ("home", "@")

    def test_strips_dots(self):
        domain = DomainConfig(domain_name=" .example.com. ")
        assert domain.domain_name == "example.com"

    def test_no_subdomains(self):
        domain = DomainConfig(domain_name="example.com")
        assert domain.sub_domains == ()

    def test_empty_name(self):
        with pytest.raises(ValidationError):
            DomainConfig(domain_name="")

    def test_frozen(self):
        domain = DomainConfig(domain_name="example.com")
        with pytest.raises(ValidationError):
            domain.domain_name = "example.org"

    def test_hashable(self):
        a = DomainConfig(domain_name="example.com", sub_domains=["www"])
        b = DomainConfig(domain_name="example.com", sub_domains=["www"])
        assert a == b
        assert len({a, b}) == 1


class TestProviderRecord:
    """Tests for ProviderRecord model."""

    def test_defaults(self):
        record = ProviderRecord(record_id="1", name="www")
        assert record.current_value is None
        assert record.metadata == {}

    def test_metadata_not_shared(self):
        a = ProviderRecord(record_id="1", name="www")
        b = ProviderRecord(record_id="2", name="home")
        a.metadata["ttl"] = 600
        assert b.metadata == {}


class TestDomainState:
    """Tests for DomainState."""

    def test_initial_state(self):
        state = DomainState()
        assert state.last_ip is None
        assert state.cycles == 0


class TestFailureSignal:
    """Tests for FailureSignal."""

    def test_equality_ignores_error(self):
        domain = DomainConfig(domain_name="example.com")
        assert FailureSignal(domain, KeyError("a")) == FailureSignal(domain, ValueError("b"))

    def test_immutable(self):
        signal = FailureSignal(DomainConfig(domain_name="example.com"))
        with pytest.raises(AttributeError):
            signal.domain = DomainConfig(domain_name="example.org")


class TestStatusResponse:
    """Tests for StatusResponse model."""

    def test_dump(self):
        response = StatusResponse(
            provider="Cloudflare",
            domains=[
                DomainStatusModel(
                    domain="example.com",
                    status=DomainStatus.RUNNING,
                    last_ip="1.2.3.4",
                ),
                DomainStatusModel(
                    domain="example.org",
                    status=DomainStatus.ABANDONED,
                    failures=5,
                ),
            ],
        )
        data = response.model_dump(mode="json")
        assert data["status"] == "ok"
        assert data["domains"][0] == {
            "domain": "example.com",
            "status": "running",
            "failures": 0,
            "last_ip": "1.2.3.4",
        }
        assert data["domains"][1]["status"] == "abandoned"
        assert data["domains"][1]["failures"] == 5

    def test_invalid_status(self):
        with pytest.raises(ValidationError):
            StatusResponse(status="unknown", provider="HE")
