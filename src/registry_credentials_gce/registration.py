"""Registration of the metadata-backed providers.

The two document providers are cached for a short TTL. The token provider is
registered uncached because the metadata service already caches the token and
a fresh token matters more than call volume.
"""

import httpx

from registry_credentials_core.config import MetadataConfig, create_metadata_config
from registry_credentials_core.registry import ProviderRegistry
from registry_credentials_core.retry import create_retry_engine

from .enablement import EnablementDetector
from .metadata import MetadataClient
from .platform import default_platform_probe
from .providers import (
    ContainerRegistryProvider,
    DockerConfigKeyProvider,
    DockerConfigURLKeyProvider,
)

DOCKERCFG_PROVIDER = "google-dockercfg"
DOCKERCFG_URL_PROVIDER = "google-dockercfg-url"
CONTAINER_REGISTRY_PROVIDER = "google-container-registry"


def create_enablement_detector(
    client: MetadataClient, config: MetadataConfig
) -> EnablementDetector:
    """Build a detector using the probe for this host and the configured retry bound."""
    return EnablementDetector(
        client,
        probe=default_platform_probe(config.product_name_file),
        retry_engine=create_retry_engine(max_attempts=config.scope_retry_max_attempts),
    )


def register_gce_providers(
    registry: ProviderRegistry,
    config: MetadataConfig | None = None,
    client: MetadataClient | None = None,
    detector: EnablementDetector | None = None,
) -> ProviderRegistry:
    """Register the three metadata-backed providers on ``registry``.

    Args:
        registry: Registry to add the providers to.
        config: Metadata configuration; read from the environment if omitted.
        client: Metadata client to share between providers.
        detector: Enablement detector to share between providers.

    Returns:
        The same registry, for chaining.
    """
    if config is None:
        config = create_metadata_config()
    if client is None:
        client = MetadataClient.from_config(config)
    if detector is None:
        detector = create_enablement_detector(client, config)

    registry.register_provider(
        DOCKERCFG_PROVIDER,
        DockerConfigKeyProvider(client, detector),
        ttl=config.document_cache_ttl,
    )
    registry.register_provider(
        DOCKERCFG_URL_PROVIDER,
        DockerConfigURLKeyProvider(client, detector),
        ttl=config.document_cache_ttl,
    )
    registry.register_provider(
        CONTAINER_REGISTRY_PROVIDER, ContainerRegistryProvider(client, detector)
    )
    return registry


def create_default_registry(
    config: MetadataConfig | None = None, http_client: httpx.Client | None = None
) -> ProviderRegistry:
    """Create a registry holding every metadata-backed provider."""
    if config is None:
        config = create_metadata_config()
    client = MetadataClient.from_config(config, client=http_client)
    return register_gce_providers(ProviderRegistry(), config=config, client=client)
