"""
Change detection for resolved IP addresses.

Network-sourced strings may carry trailing newlines, so both operands are
normalized before comparison.
"""

from __future__ import annotations


def normalize_ip(value: str | None) -> str | None:
    """
    Strip surrounding whitespace noise from an IP string.

    Parameters
    ----------
    value : str | None
        The raw IP string.

    Returns
    -------
    str | None
        The normalized IP, or None when nothing is left.
    """
    if value is None:
        return None
    return value.strip() or None


def has_changed(last_ip: str | None, current_ip: str | None) -> bool:
    """
    Check whether the current IP differs from the last observed one.

    Parameters
    ----------
    last_ip : str | None
        The last IP observed for the domain (None if never set).
    current_ip : str | None
        The freshly resolved IP.

    Returns
    -------
    bool
        True if the normalized values differ.
    """
    return normalize_ip(last_ip) != normalize_ip(current_ip)
