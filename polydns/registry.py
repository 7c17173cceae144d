"""Registry mapping provider names to adapter classes."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from polydns.errors import DnsProviderException, UnknownProvider

if TYPE_CHECKING:
    from polydns.providers.base import DNSProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Registry of DNS provider adapters.

    New vendors are added by registering their adapter class under a name;
    nothing else in the package branches on provider names.
    """

    def __init__(self):
        # lower-cased name -> adapter class
        self._providers: dict[str, type[DNSProvider]] = {}

    def register(self, name: str, provider_cls: type[DNSProvider]) -> None:
        """
        Register an adapter class.

        Args:
            name: Provider name (matched case-insensitively)
            provider_cls: The adapter class
        """
        self._providers[name.strip().lower()] = provider_cls

    def names(self) -> list[str]:
        """Get all registered provider names, sorted."""
        return sorted(self._providers)

    def get(self, name: str) -> type[DNSProvider]:
        """
        Get the adapter class registered under a name.

        Raises:
            UnknownProvider: If nothing is registered under that name
        """
        provider_cls = self._providers.get(name.strip().lower())
        if provider_cls is None:
            raise UnknownProvider(name, self._providers)
        return provider_cls

    def create(self, name: str, config: Mapping[str, Any], **kwargs: Any) -> DNSProvider:
        """
        Build a validated adapter for a provider name.

        Args:
            name: Provider name
            config: Provider configuration
            **kwargs: Extra adapter arguments (timeout, transport, client)

        Returns:
            An adapter whose configuration has passed validation

        Raises:
            UnknownProvider: If nothing is registered under that name
            InvalidConfiguration: If the configuration is incomplete
        """
        provider_cls = self.get(name)
        provider = provider_cls(config, **kwargs)
        try:
            provider.validate_configuration(config)
        except DnsProviderException:
            provider.close()
            raise

        logger.debug("Created %s provider", provider.name)
        return provider

    def __contains__(self, name: str) -> bool:
        return name.strip().lower() in self._providers
