"""Exception hierarchy for cluster DNS zone resolution.

These exceptions give the resolver, the lookup clients, and the manifest
writer a single error surface so callers can catch ``ClusterDNSError`` when
any failure should abort manifest generation.

Exceptions
----------
ClusterDNSError
InvalidPlatformError
InstallConfigError
ClientInitError
LookupFailureError
ResolutionCancelledError
ZoneLookupError
ZoneNotFoundError
LookupAuthError
LookupTransportError

Examples
--------
>>> try:
...     raise InvalidPlatformError("invalid platform 'aws2'")
... except ClusterDNSError as exc:
...     print(exc)
invalid platform 'aws2'
"""

from __future__ import annotations


class ClusterDNSError(Exception):
    """Base error for cluster DNS zone resolution."""


class InvalidPlatformError(ClusterDNSError):
    """Raised when the install platform is not a supported platform kind.

    Parameters
    ----------
    message
        Human-readable error message naming the rejected platform.

    Examples
    --------
    >>> isinstance(InvalidPlatformError("invalid platform 'aws2'"), ClusterDNSError)
    True
    """


class InstallConfigError(ClusterDNSError):
    """Raised when install configuration inputs are missing or malformed."""


class ClientInitError(ClusterDNSError):
    """Raised when a platform lookup client cannot be constructed.

    Covers missing command-line tools, missing credentials configuration, and
    missing client settings such as an IBM Cloud CIS instance.
    """


class ResolutionCancelledError(ClusterDNSError):
    """Raised when the caller cancelled resolution or its deadline expired."""


class ZoneLookupError(ClusterDNSError):
    """Base error raised by platform lookup clients."""


class ZoneNotFoundError(ZoneLookupError):
    """Raised when no hosted zone matches the requested domain."""


class LookupAuthError(ZoneLookupError):
    """Raised when the provider rejected or lacked credentials."""


class LookupTransportError(ZoneLookupError):
    """Raised when the provider call failed or returned unusable output."""


class LookupFailureError(ClusterDNSError):
    """Raised when a zone lookup failed during resolution.

    Parameters
    ----------
    platform
        Wire name of the platform whose lookup failed.
    domain
        Domain that was being looked up.
    zone_kind
        ``"public"`` or ``"private"``.

    Examples
    --------
    >>> err = LookupFailureError("aws", "example.com", "public")
    >>> str(err)
    'aws: getting public zone for "example.com" failed'
    """

    def __init__(
        self,
        platform: str,
        domain: str,
        zone_kind: str,
        detail: str | None = None,
    ) -> None:
        message = f'{platform}: getting {zone_kind} zone for "{domain}" failed'
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.platform = platform
        self.domain = domain
        self.zone_kind = zone_kind


__all__ = [
    "ClientInitError",
    "ClusterDNSError",
    "InstallConfigError",
    "InvalidPlatformError",
    "LookupAuthError",
    "LookupFailureError",
    "LookupTransportError",
    "ResolutionCancelledError",
    "ZoneLookupError",
    "ZoneNotFoundError",
]
