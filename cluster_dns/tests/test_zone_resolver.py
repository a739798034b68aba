"""Unit tests for DNS zone resolution strategies."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

import pytest

from cluster_dns._dns_errors import (
    ClientInitError,
    InstallConfigError,
    InvalidPlatformError,
    LookupFailureError,
    ResolutionCancelledError,
    ZoneNotFoundError,
)
from cluster_dns._dns_models import (
    ClusterIdentity,
    DNSZoneConfig,
    PublishingStrategy,
    ZoneOverride,
    ZoneReference,
)
from cluster_dns._install_config import (
    AWSPlatform,
    AzureCloud,
    AzurePlatform,
    GCPPlatform,
    IBMCloudPlatform,
    InstallConfig,
    PowerVSPlatform,
)
from cluster_dns._zone_lookups import LookupContext, PlatformLookups
from cluster_dns._zone_resolver import compose_zone_id, resolve_dns_zones

INTERNAL = PublishingStrategy.INTERNAL


@dataclass
class FakeLookup:
    """Lookup double recording every call it receives."""

    zone_id: str = "zone-1"
    error: Exception | None = None
    calls: list[tuple[str, ...]] = field(default_factory=list)

    def _answer(self) -> str:
        if self.error is not None:
            raise self.error
        return self.zone_id

    def lookup_public_zone(self, domain: str, ctx: LookupContext) -> str:
        self.calls.append(("public", domain))
        return self._answer()

    def lookup_zone_id(
        self,
        domain: str,
        publish: PublishingStrategy,
        ctx: LookupContext,
    ) -> str:
        self.calls.append(("zone_id", domain, publish.value))
        return self._answer()


def _lookups(fake: FakeLookup) -> PlatformLookups:
    return PlatformLookups(
        aws=lambda: fake,
        gcp=lambda: fake,
        ibmcloud=lambda: fake,
        powervs=lambda: fake,
    )


def _make_config(platform: str, **overrides: object) -> InstallConfig:
    values: dict[str, object] = {
        "cluster_name": "demo",
        "base_domain": "example.com",
        "platform": platform,
    }
    values.update(overrides)
    return InstallConfig(**values)


IDENTITY = ClusterIdentity("abc123")


@pytest.mark.parametrize(
    "platform",
    ["baremetal", "none", "libvirt", "openstack", "vsphere", "ovirt", "nutanix"],
)
def test_no_dns_platforms_resolve_empty(platform: str) -> None:
    fake = FakeLookup()
    result = resolve_dns_zones(_make_config(platform), IDENTITY, _lookups(fake))
    assert result == DNSZoneConfig(), f"{platform} should manage no zones"
    assert fake.calls == [], "No lookups should run for platforms without DNS"


def test_unknown_platform_is_rejected() -> None:
    with pytest.raises(InvalidPlatformError, match="aws2"):
        resolve_dns_zones(_make_config("aws2"), IDENTITY, _lookups(FakeLookup()))


def test_aws_external_strips_hosted_zone_prefix() -> None:
    fake = FakeLookup(zone_id="/hostedzone/ABC123")
    config = _make_config("aws", aws=AWSPlatform(region="us-east-1"))

    result = resolve_dns_zones(config, IDENTITY, _lookups(fake))

    assert result.public_zone == ZoneReference.by_id("ABC123"), "Prefix should be stripped"
    assert fake.calls == [("public", "example.com")], "Public zone looked up by base domain"


def test_aws_private_zone_uses_discovery_tags() -> None:
    config = _make_config("aws", aws=AWSPlatform(region="us-east-1"), publish=INTERNAL)

    result = resolve_dns_zones(config, IDENTITY, _lookups(FakeLookup()))

    assert result.private_zone is not None
    assert result.private_zone.to_mapping() == {
        "tags": {"Name": "abc123-int", "kubernetes.io/cluster/abc123": "owned"}
    }, "Private zone should be referenced by cluster tags"


def test_aws_internal_skips_public_lookup() -> None:
    fake = FakeLookup()
    config = _make_config("aws", aws=AWSPlatform(region="us-east-1"), publish=INTERNAL)

    result = resolve_dns_zones(config, IDENTITY, _lookups(fake))

    assert result.public_zone is None, "Internal clusters have no public zone"
    assert fake.calls == [], "Public lookup must not run for Internal publishing"


def test_aws_internal_does_not_build_lookup_client() -> None:
    config = _make_config("aws", aws=AWSPlatform(region="us-east-1"), publish=INTERNAL)
    result = resolve_dns_zones(config, IDENTITY, PlatformLookups())
    assert result.private_zone is not None, "Private zone resolves without a client"


def test_aws_hosted_zone_override_is_used_for_private_zone() -> None:
    config = _make_config(
        "aws",
        aws=AWSPlatform(region="us-east-1", hosted_zone="Z0PRIVATE"),
        publish=INTERNAL,
    )
    result = resolve_dns_zones(config, None, _lookups(FakeLookup()))
    assert result.private_zone == ZoneReference.by_id("Z0PRIVATE"), "Override should win"


def test_aws_tags_require_identity() -> None:
    config = _make_config("aws", aws=AWSPlatform(region="us-east-1"), publish=INTERNAL)
    with pytest.raises(InstallConfigError, match="identity"):
        resolve_dns_zones(config, None, _lookups(FakeLookup()))


def test_lookup_failure_is_wrapped_with_context() -> None:
    fake = FakeLookup(error=ZoneNotFoundError("no zone"))
    config = _make_config("aws", aws=AWSPlatform(region="us-east-1"))

    with pytest.raises(LookupFailureError) as excinfo:
        resolve_dns_zones(config, IDENTITY, _lookups(fake))

    err = excinfo.value
    assert (err.platform, err.domain, err.zone_kind) == ("aws", "example.com", "public")
    assert 'getting public zone for "example.com" failed' in str(err)
    assert isinstance(err.__cause__, ZoneNotFoundError), "Cause should be preserved"


def test_empty_lookup_result_is_a_failure() -> None:
    config = _make_config("aws", aws=AWSPlatform(region="us-east-1"))
    with pytest.raises(LookupFailureError, match="empty zone ID"):
        resolve_dns_zones(config, IDENTITY, _lookups(FakeLookup(zone_id="")))


def test_missing_lookup_client_is_client_init_error() -> None:
    config = _make_config("aws", aws=AWSPlatform(region="us-east-1"))
    with pytest.raises(ClientInitError):
        resolve_dns_zones(config, IDENTITY, PlatformLookups())


def test_cancelled_context_stops_before_lookup() -> None:
    fake = FakeLookup()
    event = threading.Event()
    event.set()
    config = _make_config("aws", aws=AWSPlatform(region="us-east-1"))

    with pytest.raises(ResolutionCancelledError):
        resolve_dns_zones(
            config, IDENTITY, _lookups(fake), LookupContext(cancel_event=event)
        )
    assert fake.calls == [], "No lookup should start after cancellation"


def test_cancellation_during_lookup_is_not_wrapped() -> None:
    fake = FakeLookup(error=ResolutionCancelledError("timed out"))
    config = _make_config("gcp", gcp=GCPPlatform(project_id="p1", region="us-central1"))

    with pytest.raises(ResolutionCancelledError):
        resolve_dns_zones(config, IDENTITY, _lookups(fake))


def test_expired_deadline_cancels_resolution() -> None:
    config = _make_config("ibmcloud", ibmcloud=IBMCloudPlatform(region="us-south"))
    with pytest.raises(ResolutionCancelledError, match="deadline"):
        resolve_dns_zones(
            config, IDENTITY, _lookups(FakeLookup()), LookupContext(deadline=0.0)
        )


def test_resolution_is_idempotent() -> None:
    config = _make_config("aws", aws=AWSPlatform(region="us-east-1"))
    lookups = _lookups(FakeLookup(zone_id="/hostedzone/Z1"))
    first = resolve_dns_zones(config, IDENTITY, lookups)
    second = resolve_dns_zones(config, IDENTITY, lookups)
    assert first == second, "Identical inputs should give identical results"


def _azure_config(**overrides: object) -> InstallConfig:
    azure = AzurePlatform(
        region="eastus",
        base_domain_resource_group_name="dns-rg",
        subscription_id="sub",
        **overrides,
    )
    return _make_config("azure", azure=azure)


def test_azure_computes_zone_ids() -> None:
    result = resolve_dns_zones(_azure_config(), IDENTITY, PlatformLookups())

    assert result.public_zone == ZoneReference.by_id(
        "/subscriptions/sub/resourceGroups/dns-rg"
        "/providers/Microsoft.Network/dnszones/example.com"
    ), "Public zone lives in the base domain resource group"
    assert result.private_zone == ZoneReference.by_id(
        "/subscriptions/sub/resourceGroups/abc123-rg"
        "/providers/Microsoft.Network/privateDnsZones/demo.example.com"
    ), "Private zone lives in the cluster resource group"


def test_azure_uses_existing_resource_group() -> None:
    result = resolve_dns_zones(
        _azure_config(resource_group_name="existing-rg"), IDENTITY, PlatformLookups()
    )
    assert result.private_zone is not None
    assert "/resourceGroups/existing-rg/" in str(result.private_zone.id)


def test_azure_stack_has_no_private_zone() -> None:
    result = resolve_dns_zones(
        _azure_config(cloud_name=AzureCloud.STACK), IDENTITY, PlatformLookups()
    )
    assert result.public_zone is not None, "Public zone still resolves on Azure Stack"
    assert result.private_zone is None, "Azure Stack has no private DNS zones"


def test_azure_without_subscription_fails_client_init(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("AZURE_SUBSCRIPTION_ID", raising=False)
    config = _make_config(
        "azure",
        azure=AzurePlatform(region="eastus", base_domain_resource_group_name="dns-rg"),
    )
    with pytest.raises(ClientInitError, match="subscription"):
        resolve_dns_zones(config, IDENTITY, PlatformLookups())


def test_azure_missing_section_is_config_error() -> None:
    with pytest.raises(InstallConfigError, match="platform.azure"):
        resolve_dns_zones(_make_config("azure"), IDENTITY, PlatformLookups())


def test_gcp_public_override_from_other_project() -> None:
    fake = FakeLookup()
    gcp = GCPPlatform(
        project_id="p1",
        region="us-central1",
        public_dns_zone=ZoneOverride(id="z1", project_id="p2"),
    )

    result = resolve_dns_zones(_make_config("gcp", gcp=gcp), IDENTITY, _lookups(fake))

    assert result.public_zone == ZoneReference.by_id("project/p2/managedZones/z1")
    assert fake.calls == [], "Override should skip the project search"


@pytest.mark.parametrize("zone_project", ["p1", ""])
def test_gcp_override_in_install_project_keeps_bare_name(zone_project: str) -> None:
    gcp = GCPPlatform(
        project_id="p1",
        region="us-central1",
        public_dns_zone=ZoneOverride(id="z1", project_id=zone_project),
    )
    result = resolve_dns_zones(_make_config("gcp", gcp=gcp), IDENTITY, _lookups(FakeLookup()))
    assert result.public_zone == ZoneReference.by_id("z1")


def test_gcp_falls_back_to_project_search() -> None:
    fake = FakeLookup(zone_id="example-public")
    gcp = GCPPlatform(project_id="p1", region="us-central1")

    result = resolve_dns_zones(_make_config("gcp", gcp=gcp), IDENTITY, _lookups(fake))

    assert result.public_zone == ZoneReference.by_id("example-public")
    assert fake.calls == [("public", "example.com")]


def test_gcp_default_private_zone_name() -> None:
    gcp = GCPPlatform(project_id="p1", region="us-central1")
    config = _make_config("gcp", gcp=gcp, publish=INTERNAL)

    result = resolve_dns_zones(config, ClusterIdentity("xyz"), _lookups(FakeLookup()))

    assert result.public_zone is None
    assert result.private_zone == ZoneReference.by_id("xyz-private-zone")


def test_gcp_private_override_fills_private_slot() -> None:
    gcp = GCPPlatform(
        project_id="p1",
        region="us-central1",
        private_dns_zone=ZoneOverride(id="shared-private", project_id="net-host"),
    )
    config = _make_config("gcp", gcp=gcp, publish=INTERNAL)

    result = resolve_dns_zones(config, IDENTITY, _lookups(FakeLookup()))

    assert result.public_zone is None, "Private override must not become the public zone"
    assert result.private_zone == ZoneReference.by_id(
        "project/net-host/managedZones/shared-private"
    )


@pytest.mark.parametrize(
    ("platform", "section"),
    [
        ("ibmcloud", {"ibmcloud": IBMCloudPlatform(region="us-south")}),
        ("powervs", {"powervs": PowerVSPlatform(region="dal", zone="dal10")}),
    ],
)
def test_shared_zone_external_fills_both(platform: str, section: dict[str, object]) -> None:
    fake = FakeLookup(zone_id="cis-zone")

    result = resolve_dns_zones(_make_config(platform, **section), IDENTITY, _lookups(fake))

    assert result.public_zone == result.private_zone == ZoneReference.by_id("cis-zone")
    assert fake.calls == [("zone_id", "example.com", "External")]


def test_shared_zone_internal_fills_private_only() -> None:
    fake = FakeLookup(zone_id="dns-svc-zone")
    config = _make_config(
        "ibmcloud", ibmcloud=IBMCloudPlatform(region="us-south"), publish=INTERNAL
    )

    result = resolve_dns_zones(config, IDENTITY, _lookups(fake))

    assert result.public_zone is None
    assert result.private_zone == ZoneReference.by_id("dns-svc-zone")
    assert fake.calls == [("zone_id", "example.com", "Internal")]


def test_shared_zone_internal_failure_reports_private_kind() -> None:
    fake = FakeLookup(error=ZoneNotFoundError("missing"))
    config = _make_config(
        "powervs", powervs=PowerVSPlatform(region="dal", zone="dal10"), publish=INTERNAL
    )
    with pytest.raises(LookupFailureError) as excinfo:
        resolve_dns_zones(config, IDENTITY, _lookups(fake))
    assert excinfo.value.zone_kind == "private"


def test_compose_zone_id() -> None:
    assert compose_zone_id("z1", "p2", "p1") == "project/p2/managedZones/z1"
    assert compose_zone_id("z1", "p1", "p1") == "z1"
    assert compose_zone_id("z1", "", "p1") == "z1"


def test_azure_subscription_falls_back_to_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AZURE_SUBSCRIPTION_ID", "env-sub")
    config = _make_config(
        "azure",
        azure=AzurePlatform(region="eastus", base_domain_resource_group_name="dns-rg"),
        publish=INTERNAL,
    )
    result = resolve_dns_zones(config, IDENTITY, PlatformLookups())
    assert result.public_zone is None
    assert result.private_zone is not None
    assert str(result.private_zone.id).startswith("/subscriptions/env-sub/")


def test_gcp_search_failure_is_wrapped_with_context() -> None:
    fake = FakeLookup(error=ZoneNotFoundError("no public zone in p1"))
    config = _make_config("gcp", gcp=GCPPlatform(project_id="p1", region="us-central1"))

    with pytest.raises(LookupFailureError) as excinfo:
        resolve_dns_zones(config, IDENTITY, _lookups(fake))

    err = excinfo.value
    assert (err.platform, err.domain, err.zone_kind) == ("gcp", "example.com", "public")
    assert isinstance(err.__cause__, ZoneNotFoundError), "Cause should be preserved"


@pytest.mark.parametrize("publish", list(PublishingStrategy))
def test_aws_missing_section_is_config_error(publish: PublishingStrategy) -> None:
    fake = FakeLookup()
    with pytest.raises(InstallConfigError, match="platform.aws"):
        resolve_dns_zones(
            _make_config("aws", publish=publish), IDENTITY, _lookups(fake)
        )
    assert fake.calls == [], "No lookup should run without the aws section"
