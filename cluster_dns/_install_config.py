"""Install configuration consumed by DNS zone resolution.

This module models the subset of an install configuration that decides which
DNS zones a cluster uses: the base domain, the cluster name, the publishing
strategy, and the nested section for the target platform. It also parses the
install-config YAML document into those models.

Classes
-------
InstallConfig
    Immutable install configuration with per-platform sections.
AWSPlatform, AzurePlatform, GCPPlatform, IBMCloudPlatform, PowerVSPlatform
    Platform sections carrying zone overrides and naming parameters.

Examples
--------
>>> cfg = parse_install_config({
...     "baseDomain": "example.com",
...     "metadata": {"name": "demo"},
...     "platform": {"none": {}},
... })
>>> cfg.cluster_domain
'demo.example.com'
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import yaml

from cluster_dns._dns_errors import InstallConfigError
from cluster_dns._dns_models import PlatformKind, PublishingStrategy, ZoneOverride

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AzureCloud(enum.Enum):
    """Azure cloud environments."""

    PUBLIC = "AzurePublicCloud"
    US_GOVERNMENT = "AzureUSGovernmentCloud"
    CHINA = "AzureChinaCloud"
    GERMAN = "AzureGermanCloud"
    STACK = "AzureStackCloud"


@dataclass(frozen=True, slots=True)
class AWSPlatform:
    """AWS platform section.

    Attributes
    ----------
    region
        AWS region of the cluster.
    hosted_zone
        Existing private hosted zone ID to reuse; empty to create one.
    """

    region: str
    hosted_zone: str = ""


@dataclass(frozen=True, slots=True)
class AzurePlatform:
    """Azure platform section.

    Attributes
    ----------
    region
        Azure region of the cluster.
    base_domain_resource_group_name
        Resource group that holds the public zone of the base domain.
    subscription_id
        Subscription that owns the zones; falls back to
        ``AZURE_SUBSCRIPTION_ID`` when empty.
    resource_group_name
        Existing cluster resource group; empty to use ``<infraID>-rg``.
    cloud_name
        Azure cloud environment.
    """

    region: str
    base_domain_resource_group_name: str
    subscription_id: str = ""
    resource_group_name: str = ""
    cloud_name: AzureCloud = AzureCloud.PUBLIC

    def cluster_resource_group_name(self, infra_id: str) -> str:
        """Return the resource group that holds cluster resources.

        Examples
        --------
        >>> AzurePlatform("eastus", "dns-rg").cluster_resource_group_name("abc")
        'abc-rg'
        """
        if self.resource_group_name:
            return self.resource_group_name
        return f"{infra_id}-rg"


@dataclass(frozen=True, slots=True)
class GCPPlatform:
    """GCP platform section with optional operator zone overrides."""

    project_id: str
    region: str
    public_dns_zone: ZoneOverride | None = None
    private_dns_zone: ZoneOverride | None = None


@dataclass(frozen=True, slots=True)
class IBMCloudPlatform:
    """IBM Cloud platform section.

    ``cis_instance_crn`` serves externally published clusters and
    ``dns_instance_id`` internal ones.
    """

    region: str
    cis_instance_crn: str = ""
    dns_instance_id: str = ""


@dataclass(frozen=True, slots=True)
class PowerVSPlatform:
    """IBM Power Virtual Server platform section."""

    region: str
    zone: str
    cis_instance_crn: str = ""


@dataclass(frozen=True, slots=True)
class InstallConfig:
    """Install configuration fields used to resolve DNS zones.

    Attributes
    ----------
    cluster_name, base_domain : str
        Cluster name and the domain the cluster lives under.
    platform : str
        Wire name of the target platform (see :class:`PlatformKind`).
    publish : PublishingStrategy
        Whether endpoints are published externally.
    aws, azure, gcp, ibmcloud, powervs
        Platform sections; only the one matching ``platform`` is consulted.
    """

    cluster_name: str
    base_domain: str
    platform: str
    publish: PublishingStrategy = PublishingStrategy.EXTERNAL
    aws: AWSPlatform | None = None
    azure: AzurePlatform | None = None
    gcp: GCPPlatform | None = None
    ibmcloud: IBMCloudPlatform | None = None
    powervs: PowerVSPlatform | None = None

    @property
    def cluster_domain(self) -> str:
        return f"{self.cluster_name}.{self.base_domain}"

    @property
    def publishes_externally(self) -> bool:
        return self.publish is PublishingStrategy.EXTERNAL

    def require_section(self, section: T | None, name: str) -> T:
        """Return a platform section or fail when it is missing.

        Examples
        --------
        >>> cfg = InstallConfig("demo", "example.com", "aws", aws=AWSPlatform("us-east-1"))
        >>> cfg.require_section(cfg.aws, "aws").region
        'us-east-1'
        """
        if section is None:
            msg = f"platform.{name} section is required for platform {self.platform!r}"
            raise InstallConfigError(msg)
        return section


def _require_str(data: Mapping[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        msg = f"{where}{key} must be a non-empty string"
        raise InstallConfigError(msg)
    return value.strip()


def _optional_str(data: Mapping[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        msg = f"{where}{key} must be a string"
        raise InstallConfigError(msg)
    return value.strip()


def _parse_zone_override(raw: object, where: str) -> ZoneOverride | None:
    """Parse a ``{id, projectID}`` zone override; blank IDs mean no override."""
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        msg = f"{where} must be a mapping"
        raise InstallConfigError(msg)
    zone_id = _optional_str(raw, "id", f"{where}.")
    if not zone_id:
        return None
    return ZoneOverride(id=zone_id, project_id=_optional_str(raw, "projectID", f"{where}."))


def _parse_aws(data: Mapping[str, Any]) -> AWSPlatform:
    where = "platform.aws."
    return AWSPlatform(
        region=_require_str(data, "region", where),
        hosted_zone=_optional_str(data, "hostedZone", where),
    )


def _parse_azure(data: Mapping[str, Any]) -> AzurePlatform:
    where = "platform.azure."
    cloud_raw = _optional_str(data, "cloudName", where) or AzureCloud.PUBLIC.value
    try:
        cloud_name = AzureCloud(cloud_raw)
    except ValueError as exc:
        msg = f"{where}cloudName {cloud_raw!r} is not a known Azure cloud"
        raise InstallConfigError(msg) from exc
    return AzurePlatform(
        region=_require_str(data, "region", where),
        base_domain_resource_group_name=_require_str(
            data, "baseDomainResourceGroupName", where
        ),
        subscription_id=_optional_str(data, "subscriptionID", where),
        resource_group_name=_optional_str(data, "resourceGroupName", where),
        cloud_name=cloud_name,
    )


def _parse_gcp(data: Mapping[str, Any]) -> GCPPlatform:
    where = "platform.gcp."
    return GCPPlatform(
        project_id=_require_str(data, "projectID", where),
        region=_require_str(data, "region", where),
        public_dns_zone=_parse_zone_override(
            data.get("publicDNSZone"), f"{where}publicDNSZone"
        ),
        private_dns_zone=_parse_zone_override(
            data.get("privateDNSZone"), f"{where}privateDNSZone"
        ),
    )


def _parse_ibmcloud(data: Mapping[str, Any]) -> IBMCloudPlatform:
    where = "platform.ibmcloud."
    return IBMCloudPlatform(
        region=_require_str(data, "region", where),
        cis_instance_crn=_optional_str(data, "cisInstanceCRN", where),
        dns_instance_id=_optional_str(data, "dnsInstanceID", where),
    )


def _parse_powervs(data: Mapping[str, Any]) -> PowerVSPlatform:
    where = "platform.powervs."
    return PowerVSPlatform(
        region=_require_str(data, "region", where),
        zone=_require_str(data, "zone", where),
        cis_instance_crn=_optional_str(data, "cisInstanceCRN", where),
    )


_SECTION_PARSERS = {
    PlatformKind.AWS: ("aws", _parse_aws),
    PlatformKind.AZURE: ("azure", _parse_azure),
    PlatformKind.GCP: ("gcp", _parse_gcp),
    PlatformKind.IBMCLOUD: ("ibmcloud", _parse_ibmcloud),
    PlatformKind.POWERVS: ("powervs", _parse_powervs),
}


def _parse_platform(raw: object) -> tuple[PlatformKind, Mapping[str, Any]]:
    if not isinstance(raw, Mapping) or len(raw) != 1:
        msg = "platform must be a mapping with exactly one platform key"
        raise InstallConfigError(msg)
    ((name, section),) = raw.items()
    kind = PlatformKind.parse(str(name))
    if section is None:
        section = {}
    if not isinstance(section, Mapping):
        msg = f"platform.{name} must be a mapping"
        raise InstallConfigError(msg)
    return kind, section


def parse_install_config(data: Mapping[str, Any]) -> InstallConfig:
    """Build an :class:`InstallConfig` from a parsed install-config document.

    Parameters
    ----------
    data : Mapping[str, Any]
        Parsed install-config mapping.

    Returns
    -------
    InstallConfig
        Validated install configuration.

    Raises
    ------
    InstallConfigError
        If required fields are missing or malformed.
    InvalidPlatformError
        If the platform key does not name a supported platform.
    """
    if not isinstance(data, Mapping):
        msg = "install config must be a mapping"
        raise InstallConfigError(msg)
    metadata = data.get("metadata")
    if not isinstance(metadata, Mapping):
        msg = "metadata must be a mapping"
        raise InstallConfigError(msg)
    cluster_name = _require_str(metadata, "name", "metadata.")
    base_domain = _require_str(data, "baseDomain", "").rstrip(".")

    publish_raw = data.get("publish") or PublishingStrategy.EXTERNAL.value
    try:
        publish = PublishingStrategy.parse(str(publish_raw))
    except ValueError as exc:
        raise InstallConfigError(str(exc)) from exc

    kind, section = _parse_platform(data.get("platform"))
    sections: dict[str, object] = {}
    if kind in _SECTION_PARSERS:
        field_name, parser = _SECTION_PARSERS[kind]
        sections[field_name] = parser(section)

    return InstallConfig(
        cluster_name=cluster_name,
        base_domain=base_domain,
        platform=kind.value,
        publish=publish,
        **sections,
    )


def load_install_config(path: Path) -> InstallConfig:
    """Load and validate an install-config YAML file.

    Examples
    --------
    >>> load_install_config(Path("install-config.yaml")).platform
    'aws'
    """
    if not path.exists():
        msg = f"Install config not found: {path}"
        raise InstallConfigError(msg)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        msg = f"Failed to parse install config {path}: {exc}"
        raise InstallConfigError(msg) from exc
    logger.debug("Loaded install config from %s", path)
    return parse_install_config(data)


__all__ = [
    "AWSPlatform",
    "AzureCloud",
    "AzurePlatform",
    "GCPPlatform",
    "IBMCloudPlatform",
    "InstallConfig",
    "PowerVSPlatform",
    "load_install_config",
    "parse_install_config",
]
