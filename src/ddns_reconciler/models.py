"""
Data models for DDNS Reconciler.

This module defines the core data structures shared by the reconciliation
engine: provider identifiers, per-domain configuration, provider records,
the per-loop state cell, the failure signal sent to the supervisor, and the
response models of the status endpoint.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DNSProvider(StrEnum):
    """
    Supported DNS providers.

    Attributes
    ----------
    DNSPOD : str
        DNSPod (token API or Tencent Cloud API).
    HE : str
        Hurricane Electric free DNS (dyndns2 protocol).
    CLOUDFLARE : str
        CloudFlare DNS service.
    ALIDNS : str
        Alibaba Cloud DNS (alidns) service.
    GOOGLE : str
        Google Domains dynamic DNS (dyndns2 protocol).
    DUCKDNS : str
        Duck DNS service.
    """

    DNSPOD = "DNSPod"
    HE = "HE"
    CLOUDFLARE = "Cloudflare"
    ALIDNS = "AliDNS"
    GOOGLE = "Google"
    DUCKDNS = "DuckDNS"


class DomainStatus(StrEnum):
    """Operational status of a domain as seen by the supervisor."""

    RUNNING = "running"
    ABANDONED = "abandoned"
    STOPPED = "stopped"


class DomainConfig(BaseModel):
    """
    A configured domain and the subdomains to keep updated.

    Attributes
    ----------
    domain_name : str
        The root domain (zone), e.g. "example.com".
    sub_domains : tuple[str, ...]
        Host labels under the domain, e.g. ("home", "@").
    """

    model_config = ConfigDict(frozen=True)

    domain_name: str = Field(..., min_length=1)
    sub_domains: tuple[str, ...] = ()

    @field_validator("domain_name")
    @classmethod
    def strip_domain_name(cls, value: str) -> str:
        """Normalize the domain name (no surrounding dots or whitespace)."""
        return value.strip().strip(".")


class Zone(BaseModel):
    """
    A provider-side zone (or domain) resolved for one reconcile pass.

    Attributes
    ----------
    name : str
        The zone name.
    zone_id : str
        The provider identifier for the zone.
    """

    name: str
    zone_id: str


class ProviderRecord(BaseModel):
    """
    A DNS record as returned by a provider.

    Records are fetched fresh each cycle and never cached.

    Attributes
    ----------
    record_id : str
        The provider record identifier.
    name : str
        The subdomain label the record belongs to.
    current_value : str | None
        The record's current value, or None when the provider cannot report it.
    metadata : dict[str, Any]
        Provider-specific fields needed to issue an update.
    """

    record_id: str
    name: str
    current_value: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


@dataclass
class DomainState:
    """
    Mutable state cell owned by a single Domain Loop.

    Attributes
    ----------
    last_ip : str | None
        The last IP successfully applied for the domain.
    cycles : int
        Number of completed cycles.
    """

    last_ip: str | None = None
    cycles: int = 0


@dataclass(frozen=True)
class FailureSignal:
    """
    Sent by a crashed Domain Loop to the supervisor.

    Attributes
    ----------
    domain : DomainConfig
        The domain whose loop terminated abnormally.
    error : BaseException | None
        The exception that escaped the loop.
    """

    domain: DomainConfig
    error: BaseException | None = field(default=None, compare=False)


class DomainStatusModel(BaseModel):
    """
    Status of one domain, as exposed by the status endpoint.

    Attributes
    ----------
    domain : str
        The domain name.
    status : DomainStatus
        Operational status.
    failures : int
        Number of crashes recorded for the domain.
    last_ip : str | None
        Last IP successfully applied.
    """

    domain: str
    status: DomainStatus
    failures: int = 0
    last_ip: str | None = None


class StatusResponse(BaseModel):
    """
    Response body of the status endpoint.

    Attributes
    ----------
    status : Literal["ok", "error"]
        Overall response status.
    provider : str
        The configured DNS provider.
    domains : list[DomainStatusModel]
        Per-domain status.
    """

    status: Literal["ok", "error"] = "ok"
    provider: str
    domains: list[DomainStatusModel] = Field(default_factory=list)
