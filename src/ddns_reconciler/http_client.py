"""
HTTP client construction for outbound requests.

Clients are built per call (or per reconcile pass) and never shared between
domain loops.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from typing import Final

    from ddns_reconciler.config import Config


# HTTP timeout in seconds
HTTP_TIMEOUT: Final[float] = 30.0


def proxy_url(socks5_proxy: str) -> str | None:
    """
    Build the proxy URL for a configured SOCKS5 address.

    Parameters
    ----------
    socks5_proxy : str
        "host:port", or a full URL with scheme.

    Returns
    -------
    str | None
        The proxy URL, or None when no proxy is configured.
    """
    socks5_proxy = socks5_proxy.strip()
    if not socks5_proxy:
        return None
    if "://" in socks5_proxy:
        return socks5_proxy
    return f"socks5://{socks5_proxy}"


def create_http_client(
    settings: Config,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = HTTP_TIMEOUT,
) -> httpx.AsyncClient:
    """
    Create an HTTP client honoring the proxy and User-Agent settings.

    Parameters
    ----------
    settings : Config
        Application configuration.
    transport : httpx.AsyncBaseTransport | None, optional
        Transport override (used by tests).
    timeout : float, optional
        Request timeout in seconds.

    Returns
    -------
    httpx.AsyncClient
        A new client; the caller owns and closes it.
    """
    return httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": settings.user_agent},
        proxy=None if transport is not None else proxy_url(settings.socks5_proxy),
        transport=transport,
    )
