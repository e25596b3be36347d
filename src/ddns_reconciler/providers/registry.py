"""
Provider registry.

Maps the configured provider name to its adapter class.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ddns_reconciler.models import DNSProvider
from ddns_reconciler.providers.alidns import AliDNSProvider
from ddns_reconciler.providers.cloudflare import CloudFlareProvider
from ddns_reconciler.providers.dnspod import DNSPodProvider
from ddns_reconciler.providers.duckdns import DuckDNSProvider
from ddns_reconciler.providers.dyndns import GoogleProvider, HEProvider
from ddns_reconciler.providers.tencent import TencentProvider

if TYPE_CHECKING:
    from typing import Final

    import httpx

    from ddns_reconciler.config import Config
    from ddns_reconciler.providers.base import BaseDNSProvider


# DNSPod is resolved at runtime (token API or Tencent Cloud API)
_PROVIDERS: Final[dict[DNSProvider, type[BaseDNSProvider]]] = {
    DNSProvider.HE: HEProvider,
    DNSProvider.CLOUDFLARE: CloudFlareProvider,
    DNSProvider.ALIDNS: AliDNSProvider,
    DNSProvider.GOOGLE: GoogleProvider,
    DNSProvider.DUCKDNS: DuckDNSProvider,
}


def provider_class(settings: Config) -> type[BaseDNSProvider]:
    """
    Select the adapter class for the configured provider.

    Parameters
    ----------
    settings : Config
        Application configuration.

    Returns
    -------
    type[BaseDNSProvider]
        The adapter class.
    """
    if settings.provider == DNSProvider.DNSPOD:
        return DNSPodProvider if settings.login_token else TencentProvider
    return _PROVIDERS[settings.provider]


def create_provider(
    settings: Config,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> BaseDNSProvider:
    """
    Create a configured provider adapter.

    Each Domain Loop gets its own instance; adapters hold no state between
    cycles beyond the bound settings.

    Parameters
    ----------
    settings : Config
        Application configuration.
    transport : httpx.AsyncBaseTransport | None, optional
        HTTP transport override (used by tests).

    Returns
    -------
    BaseDNSProvider
        The configured adapter.
    """
    provider = provider_class(settings)(transport=transport)
    provider.configure(settings)
    return provider
