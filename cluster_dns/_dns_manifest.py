"""Render and write the cluster DNS configuration manifest.

The manifest is a cluster-scoped ``config.openshift.io/v1`` ``DNS`` object
named ``cluster``. Zones that were not resolved are left out of ``spec``
entirely rather than written as empty values.

Examples
--------
>>> from cluster_dns._dns_models import DNSZoneConfig, ZoneReference
>>> manifest = build_dns_manifest(
...     DNSZoneConfig(private_zone=ZoneReference.by_id("demo-private-zone")),
...     "demo.example.com",
... )
>>> manifest["spec"]
{'baseDomain': 'demo.example.com', 'privateZone': {'id': 'demo-private-zone'}}
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from cluster_dns._dns_models import DNSZoneConfig

logger = logging.getLogger(__name__)

DNS_API_VERSION = "config.openshift.io/v1"
DNS_KIND = "DNS"
DNS_OBJECT_NAME = "cluster"
DNS_MANIFEST_PATH = "manifests/cluster-dns-02-config.yml"


def build_dns_manifest(zone_config: DNSZoneConfig, cluster_domain: str) -> dict[str, object]:
    """Return the DNS config object for ``zone_config``.

    Parameters
    ----------
    zone_config : DNSZoneConfig
        Resolved public and private zones.
    cluster_domain : str
        ``<cluster name>.<base domain>``, published as ``spec.baseDomain``.

    Returns
    -------
    dict[str, object]
        Manifest mapping ready for YAML serialization.
    """
    spec: dict[str, object] = {"baseDomain": cluster_domain}
    spec.update(zone_config.to_spec())
    return {
        "apiVersion": DNS_API_VERSION,
        "kind": DNS_KIND,
        # cluster-scoped, so no namespace
        "metadata": {"name": DNS_OBJECT_NAME},
        "spec": spec,
    }


def render_dns_manifest(zone_config: DNSZoneConfig, cluster_domain: str) -> str:
    """Serialize the DNS config object to YAML.

    Keys are sorted so identical inputs always render identical bytes.
    """
    return yaml.safe_dump(
        build_dns_manifest(zone_config, cluster_domain),
        default_flow_style=False,
        sort_keys=True,
    )


def _manifest_destination(output_dir: Path, rel_path: str) -> Path:
    """Return where ``rel_path`` lands below ``output_dir``.

    Raises
    ------
    ValueError
        If the path is absolute or resolves outside ``output_dir``.
    """
    rel = Path(rel_path)
    dest = output_dir / rel
    if rel.is_absolute() or not dest.resolve().is_relative_to(output_dir.resolve()):
        msg = f"Refusing to write {rel_path!r} outside {output_dir}"
        raise ValueError(msg)
    return dest


def write_manifests(output_dir: Path, manifests: dict[str, str]) -> list[Path]:
    """Write rendered manifests below ``output_dir``.

    Every destination is checked before the first file is written, so a bad
    path leaves the output directory untouched.

    Parameters
    ----------
    output_dir : Path
        Base directory for manifest output.
    manifests : dict[str, str]
        Map of relative paths to YAML content.

    Returns
    -------
    list[Path]
        Paths of the written files, in input order.

    Raises
    ------
    ValueError
        If a manifest path would escape ``output_dir``.

    Examples
    --------
    >>> write_manifests(Path("/tmp/out"), {DNS_MANIFEST_PATH: "kind: DNS"})
    [PosixPath('/tmp/out/manifests/cluster-dns-02-config.yml')]
    """
    planned = [
        (_manifest_destination(output_dir, rel_path), content)
        for rel_path, content in manifests.items()
    ]
    for dest, content in planned:
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(content, encoding="utf-8")
        logger.info("Wrote %s", dest)
    return [dest for dest, _ in planned]


__all__ = [
    "DNS_API_VERSION",
    "DNS_KIND",
    "DNS_MANIFEST_PATH",
    "DNS_OBJECT_NAME",
    "build_dns_manifest",
    "render_dns_manifest",
    "write_manifests",
]
