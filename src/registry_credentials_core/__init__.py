"""Registry credentials core package.

This package contains the credential data model, the provider protocol, the
caching wrapper, the provider registry and the retry engine shared by every
credential source.
"""

from .caching import CachingCredentialProvider
from .exceptions import (
    HTTPStatusError,
    MetadataError,
    NetworkError,
    ParseError,
    ProviderAlreadyRegisteredError,
    RegistryCredentialsError,
    TruncatedResponseError,
    UnsupportedSchemeError,
)
from .provider import CredentialProvider
from .registry import ProviderDescriptor, ProviderRegistry
from .retry import RetryConfig, RetryEngine, create_retry_engine, retry_with_backoff
from .types import (
    CredentialSet,
    ProviderOutcome,
    RegistryCredential,
    parse_docker_config,
)

__all__ = [
    "CachingCredentialProvider",
    "CredentialProvider",
    "CredentialSet",
    "HTTPStatusError",
    "MetadataError",
    "NetworkError",
    "ParseError",
    "ProviderAlreadyRegisteredError",
    "ProviderDescriptor",
    "ProviderOutcome",
    "ProviderRegistry",
    "RegistryCredential",
    "RegistryCredentialsError",
    "RetryConfig",
    "RetryEngine",
    "TruncatedResponseError",
    "UnsupportedSchemeError",
    "create_retry_engine",
    "parse_docker_config",
    "retry_with_backoff",
]
