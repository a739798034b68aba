"""Data models for cluster DNS zone resolution.

These models provide a small, typed contract shared by the resolver, the
lookup clients, and the manifest renderer. All of them are immutable; a new
install attempt builds new instances rather than updating old ones.

Examples
--------
>>> ZoneReference.by_id("Z123").to_mapping()
{'id': 'Z123'}
>>> DNSZoneConfig().is_empty
True
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from cluster_dns._dns_errors import InstallConfigError, InvalidPlatformError


class PlatformKind(str, enum.Enum):
    """Infrastructure platforms an install can target.

    Members compare equal to their wire names.
    """

    AWS = "aws"
    AZURE = "azure"
    GCP = "gcp"
    IBMCLOUD = "ibmcloud"
    POWERVS = "powervs"
    BAREMETAL = "baremetal"
    NONE = "none"
    LIBVIRT = "libvirt"
    OPENSTACK = "openstack"
    VSPHERE = "vsphere"
    OVIRT = "ovirt"
    NUTANIX = "nutanix"

    @classmethod
    def parse(cls, name: str) -> PlatformKind:
        """Return the platform kind for a wire name.

        Raises
        ------
        InvalidPlatformError
            If ``name`` does not name a supported platform.

        Examples
        --------
        >>> PlatformKind.parse("gcp")
        <PlatformKind.GCP: 'gcp'>
        """
        try:
            return cls(name)
        except ValueError as exc:
            msg = f"invalid platform {name!r}"
            raise InvalidPlatformError(msg) from exc


class PublishingStrategy(enum.Enum):
    """Whether cluster endpoints are published outside the private network."""

    EXTERNAL = "External"
    INTERNAL = "Internal"

    @classmethod
    def parse(cls, value: str) -> PublishingStrategy:
        """Return the strategy for a wire name, raising ``ValueError`` otherwise."""
        try:
            return cls(value)
        except ValueError as exc:
            msg = f"publish must be 'External' or 'Internal', got {value!r}"
            raise ValueError(msg) from exc


@dataclass(frozen=True, slots=True)
class ZoneOverride:
    """Operator-supplied zone that takes precedence over provider lookups.

    Attributes
    ----------
    id
        Provider zone identifier (a Cloud DNS managed zone name).
    project_id
        Project that owns the zone; empty when it lives in the install project.
    """

    id: str
    project_id: str = ""


@dataclass(frozen=True, slots=True)
class ZoneReference:
    """A DNS zone known either by provider ID or by discovery tags.

    Exactly one of ``id`` and ``tags`` is set. Build instances through
    :meth:`by_id` or :meth:`by_tags`.

    Examples
    --------
    >>> ZoneReference.by_tags({"Name": "abc-int"}).to_mapping()
    {'tags': {'Name': 'abc-int'}}
    """

    id: str | None = None
    tags: Mapping[str, str] | None = None

    def __post_init__(self) -> None:
        if (self.id is None) == (self.tags is None):
            msg = "ZoneReference requires exactly one of id or tags"
            raise ValueError(msg)
        if self.id is not None and not self.id:
            msg = "ZoneReference id must not be blank"
            raise ValueError(msg)
        if self.tags is not None:
            object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))

    @classmethod
    def by_id(cls, zone_id: str) -> ZoneReference:
        """Reference a zone by its provider handle."""
        return cls(id=zone_id)

    @classmethod
    def by_tags(cls, tags: Mapping[str, str]) -> ZoneReference:
        """Reference a zone by the tags it will be discovered with."""
        return cls(tags=tags)

    def to_mapping(self) -> dict[str, object]:
        """Return the wire shape: ``{"id": ...}`` or ``{"tags": {...}}``."""
        if self.tags is not None:
            return {"tags": dict(sorted(self.tags.items()))}
        return {"id": self.id}


@dataclass(frozen=True, slots=True)
class DNSZoneConfig:
    """Resolved public and private zones for a cluster.

    A ``None`` zone means no zone of that kind is managed for the cluster.
    """

    public_zone: ZoneReference | None = None
    private_zone: ZoneReference | None = None

    @property
    def is_empty(self) -> bool:
        return self.public_zone is None and self.private_zone is None

    def to_spec(self) -> dict[str, object]:
        """Return the zone fields of the DNS spec, omitting absent zones.

        Examples
        --------
        >>> DNSZoneConfig(private_zone=ZoneReference.by_id("z")).to_spec()
        {'privateZone': {'id': 'z'}}
        """
        spec: dict[str, object] = {}
        if self.public_zone is not None:
            spec["publicZone"] = self.public_zone.to_mapping()
        if self.private_zone is not None:
            spec["privateZone"] = self.private_zone.to_mapping()
        return spec


@dataclass(frozen=True, slots=True)
class ClusterIdentity:
    """Unique infrastructure identity generated earlier in the install.

    Raises
    ------
    InstallConfigError
        If ``infra_id`` is blank.
    """

    infra_id: str

    def __post_init__(self) -> None:
        if not self.infra_id.strip():
            msg = "infra_id must not be blank"
            raise InstallConfigError(msg)


__all__ = [
    "ClusterIdentity",
    "DNSZoneConfig",
    "PlatformKind",
    "PublishingStrategy",
    "ZoneOverride",
    "ZoneReference",
]
