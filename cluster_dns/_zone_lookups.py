"""Platform lookup clients that resolve hosted zones by domain name.

Each client shells out to the provider CLI (``aws``, ``gcloud``, or
``ibmcloud``) through plumbum, parses the JSON it prints, and returns the
provider's zone handle. Failures are classified so callers can tell a missing
zone apart from a credentials problem or a broken provider call.

Examples
--------
>>> lookups = PlatformLookups(aws=lambda: Route53ZoneLookup(region="us-east-1"))
>>> lookups.public_zone_lookup(PlatformKind.AWS)
Route53ZoneLookup(region='us-east-1')
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from plumbum import CommandNotFound, local
from plumbum.commands.processes import ProcessExecutionError, ProcessTimedOut

from cluster_dns._dns_errors import (
    ClientInitError,
    LookupAuthError,
    LookupTransportError,
    ResolutionCancelledError,
    ZoneLookupError,
    ZoneNotFoundError,
)
from cluster_dns._dns_models import PlatformKind, PublishingStrategy
from cluster_dns._install_config import InstallConfig

logger = logging.getLogger(__name__)

_AUTH_FAILURE_RE = re.compile(
    r"credential|not logged in|log ?in|unauthori[sz]ed|access ?denied"
    r"|permission[_ ]denied|expiredtoken|invalidclienttokenid|active account",
    re.IGNORECASE,
)


@dataclass(frozen=True, slots=True)
class LookupContext:
    """Cancellation signal and deadline supplied by the caller.

    Attributes
    ----------
    deadline
        ``time.monotonic()`` instant after which lookups must not start.
    cancel_event
        Event the caller sets to cancel resolution.

    Examples
    --------
    >>> LookupContext().remaining() is None
    True
    """

    deadline: float | None = None
    cancel_event: threading.Event | None = None

    @classmethod
    def with_timeout(
        cls,
        seconds: float,
        cancel_event: threading.Event | None = None,
    ) -> LookupContext:
        """Return a context whose deadline is ``seconds`` from now."""
        return cls(deadline=time.monotonic() + seconds, cancel_event=cancel_event)

    def remaining(self) -> float | None:
        """Return the seconds left before the deadline, or ``None``."""
        if self.deadline is None:
            return None
        return max(self.deadline - time.monotonic(), 0.0)

    def raise_if_cancelled(self) -> None:
        """Raise :class:`ResolutionCancelledError` if work must stop."""
        if self.cancel_event is not None and self.cancel_event.is_set():
            msg = "DNS zone resolution was cancelled"
            raise ResolutionCancelledError(msg)
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            msg = "DNS zone resolution deadline exceeded"
            raise ResolutionCancelledError(msg)


@runtime_checkable
class PublicZoneLookup(Protocol):
    """Resolve the public zone handle for a domain."""

    def _list_page(self, dns_name: str, zone_id: str, ctx: LookupContext) -> dict[str, Any]:
        args = ["route53", "list-hosted-zones-by-name", "--dns-name", dns_name]
        if zone_id:
            args += ["--hosted-zone-id", zone_id]
        stdout = run_command(
            "aws",
            *args,
            "--output",
            "json",
            context=_command_context(ctx, self._env()),
        )
        payload = _load_json(stdout, "aws")
        if not isinstance(payload, dict) or not isinstance(payload.get("HostedZones"), list):
            msg = "aws JSON output is missing HostedZones"
            raise LookupTransportError(msg)
        return payload

    def lookup_public_zone(self, domain: str, ctx: LookupContext) -> str:
        fqdn = _fqdn(domain)
        logger.debug("Looking up public Route53 zone for %s", fqdn)
        dns_name, zone_id = fqdn, ""
        while True:
            page = self._list_page(dns_name, zone_id, ctx)
            for zone in page["HostedZones"]:
                if not isinstance(zone, dict) or zone.get("Name") != fqdn:
                    continue
                # zones without a Config block cannot be shown to be public
                config = zone.get("Config") or {}
                if config.get("PrivateZone") is not False:
                    continue
                if zone.get("Id"):
                    return str(zone["Id"])
            # results are sorted by name, so later pages only matter while
            # they still start at the wanted name
            if not page.get("IsTruncated") or page.get("NextDNSName") != fqdn:
                break
            dns_name, zone_id = fqdn, str(page.get("NextHostedZoneId", ""))
        msg = f"No public Route53 hosted zone found for {domain!r}"
        raise ZoneNotFoundError(msg)


@dataclass(frozen=True, slots=True)
class CloudDNSZoneLookup:
    """Find public Cloud DNS managed zones in a GCP project.

    Returns the managed zone ``name``.
    """

    project_id: str

    def lookup_public_zone(self, domain: str, ctx: LookupContext) -> str:
        fqdn = _fqdn(domain)
        logger.debug("Looking up public Cloud DNS zone for %s in %s", fqdn, self.project_id)
        stdout = run_command(
            "gcloud",
            "dns",
            "managed-zones",
            "list",
            "--project",
            self.project_id,
            "--filter",
            f"dnsName={fqdn}",
            "--format",
            "json",
            context=_command_context(ctx),
        )
        for zone in _load_json_list(stdout, "gcloud"):
            if zone.get("dnsName") != fqdn:
                continue
            if str(zone.get("visibility", "public")).lower() != "public":
                continue
            if name := zone.get("name"):
                return str(name)
        msg = f"No public Cloud DNS zone found for {domain!r} in project {self.project_id!r}"
        raise ZoneNotFoundError(msg)


def _match_zone_id(zones: list[dict[str, Any]], domain: str, source: str) -> str:
    """Return the ``id`` of the zone named ``domain``.

    Examples
    --------
    >>> _match_zone_id([{"id": "z1", "name": "example.com"}], "example.com", "CIS")
    'z1'
    """
    wanted = domain.rstrip(".")
    for zone in zones:
        if str(zone.get("name", "")).rstrip(".") == wanted and zone.get("id"):
            return str(zone["id"])
    msg = f"No {source} zone found for {domain!r}"
    raise ZoneNotFoundError(msg)


def _list_cis_zones(crn: str, ctx: LookupContext) -> list[dict[str, Any]]:
    stdout = run_command(
        "ibmcloud",
        "cis",
        "domains",
        "--instance",
        crn,
        "--output",
        "json",
        context=_command_context(ctx),
    )
    return _load_json_list(stdout, "ibmcloud")


@dataclass(frozen=True, slots=True)
class IBMCloudZoneLookup:
    """Find IBM Cloud zones in CIS (external) or DNS Services (internal)."""

    cis_instance_crn: str = ""
    dns_instance_id: str = ""

    def lookup_zone_id(
        self,
        domain: str,
        publish: PublishingStrategy,
        ctx: LookupContext,
    ) -> str:
        if publish is PublishingStrategy.EXTERNAL:
            if not self.cis_instance_crn:
                msg = "platform.ibmcloud.cisInstanceCRN is required for External publishing"
                raise ClientInitError(msg)
            logger.debug("Looking up CIS zone for %s", domain)
            return _match_zone_id(_list_cis_zones(self.cis_instance_crn, ctx), domain, "CIS")

        if not self.dns_instance_id:
            msg = "platform.ibmcloud.dnsInstanceID is required for Internal publishing"
            raise ClientInitError(msg)
        logger.debug("Looking up DNS Services zone for %s", domain)
        stdout = run_command(
            "ibmcloud",
            "dns",
            "zones",
            "--instance",
            self.dns_instance_id,
            "--output",
            "json",
            context=_command_context(ctx),
        )
        return _match_zone_id(
            _load_json_list(stdout, "ibmcloud"), domain, "DNS Services"
        )


@dataclass(frozen=True, slots=True)
class PowerVSZoneLookup:
    """Find the CIS zone serving a Power VS cluster.

    Power VS always uses CIS, so the publishing strategy is ignored.
    """

    cis_instance_crn: str

    def lookup_zone_id(
        self,
        domain: str,
        publish: PublishingStrategy,
        ctx: LookupContext,
    ) -> str:
        logger.debug("Looking up CIS zone for %s (publish=%s)", domain, publish.value)
        return _match_zone_id(_list_cis_zones(self.cis_instance_crn, ctx), domain, "CIS")


LookupFactory = Callable[[], object]


@dataclass(frozen=True, slots=True)
class PlatformLookups:
    """Lazily constructed lookup clients keyed by platform.

    Factories run only when a strategy actually needs a provider call, so an
    Internal AWS install never builds an AWS client.
    """

    aws: LookupFactory | None = None
    gcp: LookupFactory | None = None
    ibmcloud: LookupFactory | None = None
    powervs: LookupFactory | None = None

    def client_for(self, kind: PlatformKind) -> object:
        """Build the lookup client for ``kind``.

        Raises
        ------
        ClientInitError
            If no factory is configured or the factory failed.
        """
        factories: dict[PlatformKind, LookupFactory | None] = {
            PlatformKind.AWS: self.aws,
            PlatformKind.GCP: self.gcp,
            PlatformKind.IBMCLOUD: self.ibmcloud,
            PlatformKind.POWERVS: self.powervs,
        }
        factory = factories.get(kind)
        if factory is None:
            msg = f"No zone lookup is configured for platform {kind.value!r}"
            raise ClientInitError(msg)
        try:
            return factory()
        except ClientInitError:
            raise
        except Exception as exc:
            msg = f"Failed to initialize {kind.value} zone lookup: {exc}"
            raise ClientInitError(msg) from exc

    def public_zone_lookup(self, kind: PlatformKind) -> PublicZoneLookup:
        client = self.client_for(kind)
        if not isinstance(client, PublicZoneLookup):
            msg = f"{kind.value} lookup does not support public zone lookups"
            raise ClientInitError(msg)
        return client

    def zone_id_lookup(self, kind: PlatformKind) -> ZoneIDLookup:
        client = self.client_for(kind)
        if not isinstance(client, ZoneIDLookup):
            msg = f"{kind.value} lookup does not support zone ID lookups"
            raise ClientInitError(msg)
        return client

    @classmethod
    def from_install_config(cls, config: InstallConfig) -> PlatformLookups:
        """Wire CLI-backed lookup clients for the sections present in ``config``."""

        def cli_factory(command: str, build: Callable[[], object]) -> LookupFactory:
            def factory() -> object:
                require_cli(command)
                return build()

            return factory

        aws, gcp, ibmcloud, powervs = (
            config.aws,
            config.gcp,
            config.ibmcloud,
            config.powervs,
        )
        return cls(
            aws=cli_factory("aws", lambda: Route53ZoneLookup(region=aws.region))
            if aws
            else None,
            gcp=cli_factory("gcloud", lambda: CloudDNSZoneLookup(project_id=gcp.project_id))
            if gcp
            else None,
            ibmcloud=cli_factory(
                "ibmcloud",
                lambda: _ibmcloud_lookup(
                    ibmcloud.cis_instance_crn, ibmcloud.dns_instance_id, config.publish
                ),
            )
            if ibmcloud
            else None,
            powervs=cli_factory("ibmcloud", lambda: _powervs_lookup(powervs.cis_instance_crn))
            if powervs
            else None,
        )


def _ibmcloud_lookup(
    cis_instance_crn: str,
    dns_instance_id: str,
    publish: PublishingStrategy,
) -> IBMCloudZoneLookup:
    """Build the IBM Cloud client, requiring the instance ``publish`` will query."""
    if publish is PublishingStrategy.EXTERNAL and not cis_instance_crn:
        msg = "platform.ibmcloud.cisInstanceCRN is required for External publishing"
        raise ClientInitError(msg)
    if publish is PublishingStrategy.INTERNAL and not dns_instance_id:
        msg = "platform.ibmcloud.dnsInstanceID is required for Internal publishing"
        raise ClientInitError(msg)
    return IBMCloudZoneLookup(
        cis_instance_crn=cis_instance_crn, dns_instance_id=dns_instance_id
    )


def _powervs_lookup(cis_instance_crn: str) -> PowerVSZoneLookup:
    if not cis_instance_crn:
        msg = "platform.powervs.cisInstanceCRN is required to look up DNS zones"
        raise ClientInitError(msg)
    return PowerVSZoneLookup(cis_instance_crn=cis_instance_crn)


__all__ = [
    "CloudDNSZoneLookup",
    "CommandContext",
    "IBMCloudZoneLookup",
    "LookupContext",
    "PlatformLookups",
    "PowerVSZoneLookup",
    "PublicZoneLookup",
    "Route53ZoneLookup",
    "ZoneIDLookup",
    "require_cli",
    "run_command",
]
