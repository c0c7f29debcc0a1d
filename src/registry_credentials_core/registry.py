"""Credential provider registry.

The registry is built once at startup, handed to the image-pull caller, and
consulted through ``lookup``. Providers are consulted in registration order and
their credential sets are merged so that a host pattern supplied by more than
one provider takes the value from the provider registered last.
"""

from dataclasses import dataclass
from datetime import timedelta

import structlog

from .caching import CachingCredentialProvider, normalize_ttl
from .exceptions import ProviderAlreadyRegisteredError
from .provider import CredentialProvider
from .types import CredentialSet

# Get logger for this module
logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProviderDescriptor:
    """A named provider and the cache TTL it was registered with."""

    name: str
    provider: CredentialProvider
    ttl: float = 0.0

    @property
    def cached(self) -> bool:
        return self.ttl > 0


class ProviderRegistry:
    """Ordered collection of named credential providers."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._providers: dict[str, ProviderDescriptor] = {}

    def register_provider(
        self,
        name: str,
        provider: CredentialProvider,
        ttl: float | timedelta = 0,
    ) -> ProviderDescriptor:
        """Register a provider under a unique name.

        Args:
            name: Unique provider name.
            provider: The provider to register.
            ttl: Cache lifetime for ``provide`` results; 0 disables caching.

        Returns:
            The stored descriptor.

        Raises:
            ProviderAlreadyRegisteredError: When ``name`` is already taken.
            ValueError: When ``ttl`` is negative.
        """
        if name in self._providers:
            raise ProviderAlreadyRegisteredError(name)

        seconds = normalize_ttl(ttl)
        if seconds > 0:
            provider = CachingCredentialProvider(provider, seconds)

        descriptor = ProviderDescriptor(name=name, provider=provider, ttl=seconds)
        self._providers[name] = descriptor
        logger.info("CREDENTIAL_PROVIDER_REGISTERED", provider=name, ttl=seconds)
        return descriptor

    def names(self) -> list[str]:
        """List provider names in registration order."""
        return list(self._providers)

    def get(self, name: str) -> ProviderDescriptor:
        """Get the descriptor registered under ``name``."""
        if name not in self._providers:
            raise KeyError(f"Unknown credential provider: {name}")  # noqa: TRY003
        return self._providers[name]

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def lookup(self, image: str) -> CredentialSet:
        """Collect credentials for ``image`` from every enabled provider.

        Args:
            image: The image reference about to be pulled.

        Returns:
            The merged credential set. Later registrations win on duplicate
            host patterns.
        """
        merged: CredentialSet = {}
        owners: dict[str, str] = {}

        for descriptor in self._providers.values():
            try:
                enabled = descriptor.provider.enabled()
            except Exception:
                logger.exception(
                    "CREDENTIAL_PROVIDER_ENABLED_FAILED", provider=descriptor.name
                )
                continue

            if not enabled:
                logger.debug("CREDENTIAL_PROVIDER_DISABLED", provider=descriptor.name)
                continue

            try:
                credentials = descriptor.provider.provide(image)
            except Exception:
                logger.exception(
                    "CREDENTIAL_PROVIDER_FAILED", provider=descriptor.name, image=image
                )
                continue

            for pattern, credential in credentials.items():
                if pattern in owners:
                    logger.debug(
                        "CREDENTIAL_PATTERN_OVERRIDDEN",
                        pattern=pattern,
                        previous_provider=owners[pattern],
                        provider=descriptor.name,
                    )
                merged[pattern] = credential
                owners[pattern] = descriptor.name

        logger.debug(
            "CREDENTIAL_LOOKUP_COMPLETED", image=image, patterns=sorted(merged)
        )
        return merged
