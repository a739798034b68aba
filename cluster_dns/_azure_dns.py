"""Azure DNS zone resource IDs derived from install parameters.

Azure zone IDs are ARM resource IDs, so they can be computed from the
subscription, the resource group, and the zone name without calling Azure.
"""

from __future__ import annotations

import os
from collections import abc as cabc
from dataclasses import dataclass

from cluster_dns._dns_errors import ClientInitError
from cluster_dns._install_config import AzurePlatform

SUBSCRIPTION_ENV_KEY = "AZURE_SUBSCRIPTION_ID"


@dataclass(frozen=True, slots=True)
class AzureDNSConfig:
    """Subscription-scoped builder for Azure DNS zone resource IDs.

    Examples
    --------
    >>> AzureDNSConfig("sub").get_dns_zone_id("dns-rg", "example.com")
    '/subscriptions/sub/resourceGroups/dns-rg/providers/Microsoft.Network/dnszones/example.com'
    """

    subscription_id: str

    def _zone_id(self, resource_group: str, provider_type: str, zone: str) -> str:
        return (
            f"/subscriptions/{self.subscription_id}"
            f"/resourceGroups/{resource_group}"
            f"/providers/Microsoft.Network/{provider_type}/{zone}"
        )

    def get_dns_zone_id(self, resource_group: str, zone: str) -> str:
        """Return the resource ID of a public DNS zone."""
        return self._zone_id(resource_group, "dnszones", zone)

    def get_private_dns_zone_id(self, resource_group: str, zone: str) -> str:
        """Return the resource ID of a private DNS zone."""
        return self._zone_id(resource_group, "privateDnsZones", zone)


def azure_dns_config(
    platform: AzurePlatform,
    env: cabc.Mapping[str, str] | None = None,
) -> AzureDNSConfig:
    """Build the DNS ID builder for an Azure install.

    Parameters
    ----------
    platform : AzurePlatform
        Azure platform section of the install config.
    env : Mapping[str, str] | None, optional
        Environment used for the subscription fallback (defaults to
        ``os.environ``).

    Returns
    -------
    AzureDNSConfig
        Builder bound to the install's subscription.

    Raises
    ------
    ClientInitError
        If no subscription is configured.
    """
    source = os.environ if env is None else env
    subscription_id = platform.subscription_id or source.get(SUBSCRIPTION_ENV_KEY, "").strip()
    if not subscription_id:
        msg = (
            "Azure subscription is not configured: set platform.azure.subscriptionID "
            f"or {SUBSCRIPTION_ENV_KEY}"
        )
        raise ClientInitError(msg)
    return AzureDNSConfig(subscription_id=subscription_id)


__all__ = ["SUBSCRIPTION_ENV_KEY", "AzureDNSConfig", "azure_dns_config"]
