"""Resolve cluster DNS zones and write the DNS config manifest.

This module ties the resolver to the manifest writer. Use it once the
install config has been validated and the infrastructure ID generated.

Outputs
-------
A single manifest at ``<output_dir>/manifests/cluster-dns-02-config.yml``.
When resolution fails nothing is written, so a stale or partial manifest
never reaches the cluster.

Examples
--------
Generate from already parsed inputs:

>>> from cluster_dns._install_config import InstallConfig
>>> config = InstallConfig("lab", "example.com", "baremetal")
>>> result = generate_dns_manifest(config, ClusterIdentity("lab-7k2d"), None, Path("out"))
>>> result.path
PosixPath('out/manifests/cluster-dns-02-config.yml')

Generate from environment-resolved inputs:

>>> from cluster_dns._dns_inputs import RawDNSInputs, resolve_dns_inputs
>>> inputs = resolve_dns_inputs(RawDNSInputs(output_dir=Path("out")))
>>> generate_from_inputs(inputs).zone_config.is_empty
True
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from cluster_dns._dns_inputs import DNSInputs
from cluster_dns._dns_manifest import (
    DNS_MANIFEST_PATH,
    render_dns_manifest,
    write_manifests,
)
from cluster_dns._dns_models import ClusterIdentity, DNSZoneConfig
from cluster_dns._install_config import InstallConfig, load_install_config
from cluster_dns._zone_lookups import LookupContext, PlatformLookups
from cluster_dns._zone_resolver import resolve_dns_zones

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DNSManifestResult:
    """Outcome of a successful manifest generation.

    Attributes
    ----------
    path : Path
        Written manifest file.
    zone_config : DNSZoneConfig
        Zones published in the manifest.
    """

    path: Path
    zone_config: DNSZoneConfig


def generate_dns_manifest(
    config: InstallConfig,
    identity: ClusterIdentity | None,
    lookups: PlatformLookups | None,
    output_dir: Path,
    ctx: LookupContext | None = None,
) -> DNSManifestResult:
    """Resolve DNS zones for ``config`` and write the manifest.

    Parameters
    ----------
    config : InstallConfig
        Validated install configuration.
    identity : ClusterIdentity | None
        Cluster identity naming installer-created zones.
    lookups : PlatformLookups | None
        Provider lookup clients; ``None`` wires the CLI-backed defaults.
    output_dir : Path
        Base directory for manifest output.
    ctx : LookupContext | None, optional
        Cancellation signal and deadline for provider lookups.

    Returns
    -------
    DNSManifestResult
        Written path and the zones it publishes.

    Raises
    ------
    ClusterDNSError
        If resolution failed; no file is written in that case.
    """
    zone_config = resolve_dns_zones(config, identity, lookups, ctx)
    content = render_dns_manifest(zone_config, config.cluster_domain)
    (path,) = write_manifests(output_dir, {DNS_MANIFEST_PATH: content})
    if zone_config.is_empty:
        logger.info("No DNS zones managed on %s; wrote base domain only", config.platform)
    return DNSManifestResult(path=path, zone_config=zone_config)


def generate_from_inputs(
    inputs: DNSInputs,
    lookups: PlatformLookups | None = None,
    ctx: LookupContext | None = None,
) -> DNSManifestResult:
    """Load the install config named by ``inputs`` and generate the manifest."""
    config = load_install_config(inputs.install_config_path)
    return generate_dns_manifest(
        config,
        ClusterIdentity(inputs.infra_id),
        lookups,
        inputs.output_dir,
        ctx,
    )


__all__ = ["DNSManifestResult", "generate_dns_manifest", "generate_from_inputs"]
