"""
Current IP resolution.

The online echo service is tried first; on failure the configured network
interface is used. Only IPv4 addresses are returned.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import TYPE_CHECKING

import httpx
import psutil

from ddns_reconciler.errors import NoAddressAvailable, ResolutionError
from ddns_reconciler.http_client import create_http_client

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ddns_reconciler.config import Config


logger = logging.getLogger(__name__)


def is_usable_address(address: str) -> bool:
    """
    Check whether an interface address may be published.

    Unspecified, multicast, loopback, link-local and broadcast addresses are
    rejected, as is anything that is not IPv4.

    Parameters
    ----------
    address : str
        The address as reported by the operating system.

    Returns
    -------
    bool
        True if the address qualifies.
    """
    try:
        # IPv6 scope ids ("fe80::1%eth0") are not understood by ipaddress
        ip = ipaddress.ip_address(address.split("%", 1)[0])
    except ValueError:
        # Link-layer (MAC) entries and other non-IP families
        return False

    if ip.version != 4:
        return False

    return not (
        ip.is_unspecified
        or ip.is_multicast
        or ip.is_loopback
        or ip.is_link_local
        or ip == ipaddress.IPv4Address("255.255.255.255")
    )


def select_interface_address(addresses: Iterable[str]) -> str | None:
    """
    Return the first qualifying address, in the order given.

    Parameters
    ----------
    addresses : Iterable[str]
        Interface addresses in operating system order.

    Returns
    -------
    str | None
        The first usable IPv4 address, or None.
    """
    for address in addresses:
        if is_usable_address(address):
            return address.split("%", 1)[0]
    return None


class IPResolver:
    """
    Resolves the machine's current IPv4 address.

    Parameters
    ----------
    settings : Config
        Application configuration (ip_url, ip_interface, proxy).
    transport : httpx.AsyncBaseTransport | None, optional
        HTTP transport override for the online lookup.
    """

    def __init__(
        self,
        settings: Config,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def resolve(self) -> str:
        """
        Resolve the current IP address.

        Returns
        -------
        str
            The current IPv4 address.

        Raises
        ------
        NoAddressAvailable
            If no source is configured or every configured source failed.
        """
        if self._settings.ip_url:
            try:
                return await self.resolve_online()
            except ResolutionError as e:
                logger.warning(
                    "Get IP online failed (%s). Falling back to interface if possible.",
                    e,
                )

        if self._settings.ip_interface:
            try:
                return self.resolve_from_interface()
            except ResolutionError as e:
                logger.warning(
                    "Get IP from interface failed (%s). No more ways to try.",
                    e,
                )

        msg = "No IP address available from any configured source"
        raise NoAddressAvailable(msg)

    async def resolve_online(self) -> str:
        """
        Fetch the public IP from the configured echo service.

        Returns
        -------
        str
            The IPv4 address reported by the service.

        Raises
        ------
        ResolutionError
            If the request fails or the body is not an IPv4 address.
        """
        url = self._settings.ip_url
        try:
            async with create_http_client(
                self._settings,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            msg = f"request to {url} failed: {e}"
            raise ResolutionError(msg) from e

        if response.is_error:
            msg = f"{url} returned HTTP {response.status_code}"
            raise ResolutionError(msg)

        body = response.text.strip()
        try:
            ip = ipaddress.IPv4Address(body)
        except ValueError as e:
            msg = f"{url} returned a non-IPv4 body: {body[:64]!r}"
            raise ResolutionError(msg) from e

        logger.debug("Online IP from %s: %s", url, ip)
        return str(ip)

    def resolve_from_interface(self) -> str:
        """
        Read the first usable IPv4 address of the configured interface.

        Returns
        -------
        str
            The interface address.

        Raises
        ------
        ResolutionError
            If the interface does not exist or has no usable address.
        """
        name = self._settings.ip_interface
        interfaces = psutil.net_if_addrs()
        if name not in interfaces:
            msg = f"can't get network device {name}"
            raise ResolutionError(msg)

        address = select_interface_address(a.address for a in interfaces[name])
        if address is None:
            msg = f"can't get a valid address from {name}"
            raise ResolutionError(msg)

        logger.debug("Interface IP from %s: %s", name, address)
        return address
