"""Registry credentials for Compute Engine VMs.

This package resolves container registry credentials from the instance
metadata service.
"""

from .enablement import EnablementDetector, EnablementResult
from .metadata import METADATA_HEADERS, MetadataClient
from .platform import PlatformProbe, ProductNameFileProbe, WmicProbe
from .providers import (
    CONTAINER_REGISTRY_URLS,
    ContainerRegistryProvider,
    DockerConfigKeyProvider,
    DockerConfigURLKeyProvider,
)
from .registration import create_default_registry, register_gce_providers

__all__ = [
    "CONTAINER_REGISTRY_URLS",
    "METADATA_HEADERS",
    "ContainerRegistryProvider",
    "DockerConfigKeyProvider",
    "DockerConfigURLKeyProvider",
    "EnablementDetector",
    "EnablementResult",
    "MetadataClient",
    "PlatformProbe",
    "ProductNameFileProbe",
    "WmicProbe",
    "create_default_registry",
    "register_gce_providers",
]
