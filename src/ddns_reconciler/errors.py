"""
Exception hierarchy for DDNS Reconciler.

Exception Hierarchy:
    ReconcilerError (Base)
    ├─ ResolutionError          - No IP obtainable from a configured source
    │  └─ NoAddressAvailable    - Every configured source failed (or none set)
    ├─ ProviderError            - Provider API communication
    │  ├─ ProviderLookupError   - Zone or record lookup failed
    │  │  └─ RecordNotFoundError
    │  └─ ProviderUpdateError   - Record update rejected or unreachable
    └─ NotificationError        - SMTP notification delivery failed

Only errors outside this hierarchy escape a Domain Loop cycle; those are
treated as crashes and reported to the Supervisor.
"""

from __future__ import annotations


class ReconcilerError(Exception):
    """Base exception for all DDNS Reconciler errors."""


class ResolutionError(ReconcilerError):
    """A single IP source failed to produce a usable IPv4 address."""


class NoAddressAvailable(ResolutionError):
    """No configured IP source produced an address this cycle."""


class ProviderError(ReconcilerError):
    """
    Provider API communication error.

    Attributes
    ----------
    provider : str
        The provider name the error originated from.
    """

    def __init__(self, provider: str, message: str) -> None:
        """
        Initialize ProviderError.

        Parameters
        ----------
        provider : str
            The provider name.
        message : str
            Human-readable error message.
        """
        self.provider = provider
        super().__init__(message)


class ProviderLookupError(ProviderError):
    """Zone, domain or record lookup failed."""


class RecordNotFoundError(ProviderLookupError):
    """The zone or domain is not present at the provider."""


class ProviderUpdateError(ProviderError):
    """The provider refused or failed to apply a record update."""


class NotificationError(ReconcilerError):
    """Sending the change notification failed."""
