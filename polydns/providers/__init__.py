"""DNS provider implementations."""

from collections.abc import Mapping
from typing import Any

from polydns.providers.base import DNSProvider
from polydns.providers.cloudflare import CloudflareProvider
from polydns.providers.dnsimple import DNSimpleProvider
from polydns.providers.route53 import Route53Provider
from polydns.registry import ProviderRegistry

# Register DNS providers
registry = ProviderRegistry()
registry.register("dnsimple", DNSimpleProvider)
registry.register("cloudflare", CloudflareProvider)
registry.register("route53", Route53Provider)


def create_provider(name: str, config: Mapping[str, Any], **kwargs: Any) -> DNSProvider:
    """Build a validated adapter from the default registry."""
    return registry.create(name, config, **kwargs)


__all__ = [
    "CloudflareProvider",
    "DNSProvider",
    "DNSimpleProvider",
    "ProviderRegistry",
    "Route53Provider",
    "create_provider",
    "registry",
]
