"""Resolve the public and private DNS zones for a cluster.

Each platform family has one strategy implementing :class:`ZoneStrategy`;
:func:`resolve_dns_zones` picks the strategy for the install platform and
returns the composed :class:`DNSZoneConfig`. Strategies are evaluated
sequentially and either return a complete result or raise; a partially
resolved config never leaves this module.

Strategies
----------
NoDNSStrategy
    Platforms whose DNS is managed outside the installer.
TaggedPrivateZoneStrategy
    AWS: public zone looked up by domain, private zone discovered by tags.
ComputedZoneStrategy
    Azure: zone resource IDs computed from install parameters.
OverrideFirstZoneStrategy
    GCP: operator overrides first, project search as fallback.
SharedZoneStrategy
    IBM Cloud and Power VS: one looked-up zone serves both roles.

Examples
--------
>>> from cluster_dns._install_config import InstallConfig
>>> cfg = InstallConfig("demo", "example.com", "baremetal")
>>> resolve_dns_zones(cfg, ClusterIdentity("demo-x1y2z")).is_empty
True
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Protocol

from cluster_dns._azure_dns import AzureDNSConfig, azure_dns_config
from cluster_dns._dns_errors import (
    ClientInitError,
    InstallConfigError,
    LookupFailureError,
    ResolutionCancelledError,
)
from cluster_dns._dns_models import (
    ClusterIdentity,
    DNSZoneConfig,
    PlatformKind,
    ZoneOverride,
    ZoneReference,
)
from cluster_dns._install_config import AzureCloud, AzurePlatform, InstallConfig
from cluster_dns._zone_lookups import LookupContext, PlatformLookups

logger = logging.getLogger(__name__)

AWS_HOSTED_ZONE_PREFIX = "/hostedzone/"
GCP_CROSS_PROJECT_ZONE = "project/{project}/managedZones/{zone}"


def compose_zone_id(zone_id: str, zone_project: str, install_project: str) -> str:
    """Return the zone ID to publish for a Cloud DNS zone.

    Zones owned by another project are referenced by their full
    ``project/<project>/managedZones/<zone>`` path; zones in the install
    project, or with no project given, keep their bare name.

    Examples
    --------
    >>> compose_zone_id("z1", "p2", "p1")
    'project/p2/managedZones/z1'
    >>> compose_zone_id("z1", "p1", "p1")
    'z1'
    >>> compose_zone_id("z1", "", "p1")
    'z1'
    """
    if zone_project and zone_project != install_project:
        return GCP_CROSS_PROJECT_ZONE.format(project=zone_project, zone=zone_id)
    return zone_id


@dataclass(frozen=True, slots=True)
class ResolveRequest:
    """Inputs shared by every strategy for one resolution pass."""

    kind: PlatformKind
    config: InstallConfig
    identity: ClusterIdentity | None
    lookups: PlatformLookups
    ctx: LookupContext

    def infra_id(self) -> str:
        if self.identity is None:
            msg = f"cluster identity is required to name DNS zones on {self.kind.value}"
            raise InstallConfigError(msg)
        return self.identity.infra_id

    def lookup(self, zone_kind: str, domain: str, call: Callable[[], str]) -> str:
        """Run one provider lookup, wrapping its failure with context.

        Cancellation and client construction errors keep their own type.
        """
        self.ctx.raise_if_cancelled()
        logger.debug("Looking up %s zone for %s on %s", zone_kind, domain, self.kind.value)
        try:
            zone_id = call()
        except (ResolutionCancelledError, ClientInitError):
            raise
        except Exception as exc:
            raise LookupFailureError(self.kind.value, domain, zone_kind, str(exc)) from exc
        if not zone_id or not zone_id.strip():
            raise LookupFailureError(
                self.kind.value, domain, zone_kind, "provider returned an empty zone ID"
            )
        return zone_id


class ZoneStrategy(Protocol):
    """Resolve the zones for one platform family."""

    def resolve(self, request: ResolveRequest) -> DNSZoneConfig: ...


class NoDNSStrategy:
    """Platforms whose DNS records are managed outside the cluster."""

    def resolve(self, request: ResolveRequest) -> DNSZoneConfig:
        return DNSZoneConfig()


class TaggedPrivateZoneStrategy:
    """Look up the public zone and tag the private zone for later discovery.

    The private zone is created by a later provisioning step, so unless the
    operator named an existing hosted zone it is referenced by the tags it
    will carry.
    """

    def resolve(self, request: ResolveRequest) -> DNSZoneConfig:
        config = request.config
        aws = config.require_section(config.aws, "aws")
        public_zone = None
        if config.publishes_externally:
            zone_id = request.lookup(
                "public",
                config.base_domain,
                lambda: request.lookups.public_zone_lookup(request.kind)
                .lookup_public_zone(config.base_domain, request.ctx)
                .removeprefix(AWS_HOSTED_ZONE_PREFIX),
            )
            public_zone = ZoneReference.by_id(zone_id)

        if aws.hosted_zone:
            private_zone = ZoneReference.by_id(aws.hosted_zone)
        else:
            infra_id = request.infra_id()
            private_zone = ZoneReference.by_tags(
                {
                    f"kubernetes.io/cluster/{infra_id}": "owned",
                    "Name": f"{infra_id}-int",
                }
            )
        return DNSZoneConfig(public_zone=public_zone, private_zone=private_zone)


@dataclass(frozen=True, slots=True)
class ComputedZoneStrategy:
    """Compute Azure zone resource IDs from resource group parameters.

    The private zone is skipped on Azure Stack Hub, which has no private DNS
    zones, regardless of the publishing strategy.
    """

    dns_config: Callable[[AzurePlatform], AzureDNSConfig] = azure_dns_config

    def resolve(self, request: ResolveRequest) -> DNSZoneConfig:
        config = request.config
        azure = config.require_section(config.azure, "azure")
        dns = self.dns_config(azure)

        public_zone = None
        if config.publishes_externally:
            public_zone = ZoneReference.by_id(
                dns.get_dns_zone_id(azure.base_domain_resource_group_name, config.base_domain)
            )

        private_zone = None
        if azure.cloud_name is not AzureCloud.STACK:
            resource_group = azure.cluster_resource_group_name(request.infra_id())
            private_zone = ZoneReference.by_id(
                dns.get_private_dns_zone_id(resource_group, config.cluster_domain)
            )
        return DNSZoneConfig(public_zone=public_zone, private_zone=private_zone)


def _override_zone(override: ZoneOverride | None, install_project: str) -> ZoneReference | None:
    if override is None or not override.id:
        return None
    return ZoneReference.by_id(compose_zone_id(override.id, override.project_id, install_project))


class OverrideFirstZoneStrategy:
    """Prefer operator-supplied zones, otherwise search or synthesize them."""

    def resolve(self, request: ResolveRequest) -> DNSZoneConfig:
        config = request.config
        gcp = config.require_section(config.gcp, "gcp")

        public_zone = None
        if config.publishes_externally:
            public_zone = _override_zone(gcp.public_dns_zone, gcp.project_id)
            if public_zone is None:
                zone_name = request.lookup(
                    "public",
                    config.base_domain,
                    lambda: request.lookups.public_zone_lookup(
                        request.kind
                    ).lookup_public_zone(config.base_domain, request.ctx),
                )
                public_zone = ZoneReference.by_id(zone_name)

        private_zone = _override_zone(gcp.private_dns_zone, gcp.project_id)
        if private_zone is None:
            # created by the installer alongside the cluster network
            private_zone = ZoneReference.by_id(f"{request.infra_id()}-private-zone")
        return DNSZoneConfig(public_zone=public_zone, private_zone=private_zone)


class SharedZoneStrategy:
    """Use one looked-up zone ID for both the private and public zone."""

    def resolve(self, request: ResolveRequest) -> DNSZoneConfig:
        config = request.config
        zone_kind = "public" if config.publishes_externally else "private"
        zone_id = request.lookup(
            zone_kind,
            config.base_domain,
            lambda: request.lookups.zone_id_lookup(request.kind).lookup_zone_id(
                config.base_domain, config.publish, request.ctx
            ),
        )
        zone = ZoneReference.by_id(zone_id)
        return DNSZoneConfig(
            public_zone=zone if config.publishes_externally else None,
            private_zone=zone,
        )


_NO_DNS = NoDNSStrategy()

PLATFORM_STRATEGIES: Mapping[PlatformKind, ZoneStrategy] = MappingProxyType(
    {
        PlatformKind.AWS: TaggedPrivateZoneStrategy(),
        PlatformKind.AZURE: ComputedZoneStrategy(),
        PlatformKind.GCP: OverrideFirstZoneStrategy(),
        PlatformKind.IBMCLOUD: SharedZoneStrategy(),
        PlatformKind.POWERVS: SharedZoneStrategy(),
        PlatformKind.BAREMETAL: _NO_DNS,
        PlatformKind.NONE: _NO_DNS,
        PlatformKind.LIBVIRT: _NO_DNS,
        PlatformKind.OPENSTACK: _NO_DNS,
        PlatformKind.VSPHERE: _NO_DNS,
        PlatformKind.OVIRT: _NO_DNS,
        PlatformKind.NUTANIX: _NO_DNS,
    }
)


def resolve_dns_zones(
    config: InstallConfig,
    identity: ClusterIdentity | None,
    lookups: PlatformLookups | None = None,
    ctx: LookupContext | None = None,
) -> DNSZoneConfig:
    """Resolve the DNS zones that serve a cluster.

    Parameters
    ----------
    config : InstallConfig
        Install configuration naming the platform, domains, publishing
        strategy, and platform overrides.
    identity : ClusterIdentity | None
        Cluster identity used to name installer-created private zones.
    lookups : PlatformLookups | None, optional
        Provider lookup clients; defaults to the CLI-backed clients for
        ``config``.
    ctx : LookupContext | None, optional
        Cancellation signal and deadline for provider lookups.

    Returns
    -------
    DNSZoneConfig
        Resolved public and private zones.

    Raises
    ------
    InvalidPlatformError
        If ``config.platform`` is not a supported platform.
    LookupFailureError
        If a provider lookup failed.
    ClientInitError
        If a lookup client could not be constructed.
    ResolutionCancelledError
        If ``ctx`` was cancelled or its deadline passed.
    """
    kind = PlatformKind.parse(config.platform)
    strategy = PLATFORM_STRATEGIES[kind]

    request = ResolveRequest(
        kind=kind,
        config=config,
        identity=identity,
        lookups=lookups if lookups is not None else PlatformLookups.from_install_config(config),
        ctx=ctx or LookupContext(),
    )
    logger.info(
        "Resolving DNS zones for %s on %s with %s",
        config.cluster_domain,
        kind.value,
        type(strategy).__name__,
    )
    return strategy.resolve(request)


__all__ = [
    "AWS_HOSTED_ZONE_PREFIX",
    "PLATFORM_STRATEGIES",
    "ComputedZoneStrategy",
    "NoDNSStrategy",
    "OverrideFirstZoneStrategy",
    "ResolveRequest",
    "SharedZoneStrategy",
    "TaggedPrivateZoneStrategy",
    "ZoneStrategy",
    "compose_zone_id",
    "resolve_dns_zones",
]
