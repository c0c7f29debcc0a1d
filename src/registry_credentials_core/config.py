"""Metadata access configuration.

Settings are read from ``REGISTRY_CREDENTIALS_*`` environment variables through
environ-config, with defaults matching the behaviour of a stock VM.
"""

import environ

DEFAULT_METADATA_URL = "http://metadata.google.internal./computeMetadata/v1/"
DEFAULT_PRODUCT_NAME_FILE = "/sys/class/dmi/id/product_name"
DEFAULT_MAX_READ_LENGTH = 10 * 1024 * 1024


def _optional_int(value: object) -> int | None:
    if value is None or value == "":
        return None
    return int(value)  # type: ignore[call-overload]


@environ.config(prefix="REGISTRY_CREDENTIALS")
class MetadataConfig:
    """Configuration for metadata-backed credential providers."""

    metadata_url: str = environ.var(
        default=DEFAULT_METADATA_URL, help="Base URL of the instance metadata service"
    )
    timeout: float = environ.var(
        default=10.0, converter=float, help="Per-request timeout in seconds"
    )
    max_read_length: int = environ.var(
        default=DEFAULT_MAX_READ_LENGTH,
        converter=int,
        help="Maximum response body size in bytes",
    )
    product_name_file: str = environ.var(
        default=DEFAULT_PRODUCT_NAME_FILE,
        help="File holding the machine product name on POSIX hosts",
    )
    document_cache_ttl: float = environ.var(
        default=60.0,
        converter=float,
        help="Cache lifetime in seconds for credential-document providers",
    )
    scope_retry_max_attempts: int | None = environ.var(
        default=None,
        converter=_optional_int,
        help="Give up scope checks after this many attempts (unset retries forever)",
    )


def create_metadata_config(env: dict[str, str] | None = None) -> MetadataConfig:
    """Create a MetadataConfig from environment variables.

    Args:
        env: Mapping to read instead of ``os.environ``.

    Returns:
        MetadataConfig instance.
    """
    if env is None:
        return environ.to_config(MetadataConfig)
    return environ.to_config(MetadataConfig, environ=env)
