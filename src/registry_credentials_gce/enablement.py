"""Platform and access-scope detection.

Decides whether this process runs on a Compute Engine VM and whether the VM's
default service account carries a scope that can read from the container
registry. Failures never propagate: they resolve to ``False`` and the reason
is logged and kept on the returned EnablementResult.

The scope check retries every metadata read until the service answers, so it
can block for as long as the service is down. Keep it off latency-sensitive
paths, or pass a bounded retry engine.
"""

import json
import subprocess
from dataclasses import dataclass

import structlog

from registry_credentials_core.exceptions import MetadataError, ParseError
from registry_credentials_core.retry import RetryEngine, create_retry_engine

from .metadata import MetadataClient
from .platform import ACCEPTED_PRODUCT_NAMES, PlatformProbe, default_platform_probe

# Get logger for this module
logger = structlog.get_logger(__name__)

SERVICE_ACCOUNTS_PATH = "instance/service-accounts/"
SCOPES_PATH = "instance/service-accounts/default/scopes?alt=json"
DEFAULT_SERVICE_ACCOUNT = "default/"

STORAGE_SCOPE_PREFIX = "https://www.googleapis.com/auth/devstorage"
CLOUD_PLATFORM_SCOPE_PREFIX = "https://www.googleapis.com/auth/cloud-platform"
ACCEPTED_SCOPE_PREFIXES = (STORAGE_SCOPE_PREFIX, CLOUD_PLATFORM_SCOPE_PREFIX)


@dataclass(frozen=True)
class EnablementResult:
    """A yes/no answer plus the reason behind a ``False``."""

    value: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.value


def has_accepted_scope(scopes: list[str]) -> bool:
    """Return True if any scope grants registry read access.

    The cloud-platform scope implies the storage scope.
    """
    return any(scope.startswith(ACCEPTED_SCOPE_PREFIXES) for scope in scopes)


class EnablementDetector:
    """Answers whether metadata-backed credentials are usable on this host."""

    def __init__(
        self,
        client: MetadataClient,
        probe: PlatformProbe | None = None,
        retry_engine: RetryEngine | None = None,
    ) -> None:
        """Initialize the detector.

        Args:
            client: Metadata client used for the scope check.
            probe: Platform probe; defaults to the one for this host.
            retry_engine: Backoff for metadata reads; defaults to unbounded
                retry starting at 100ms and capped at 60s.
        """
        self.client = client
        self.probe = probe or default_platform_probe()
        self.retry_engine = retry_engine or create_retry_engine()

    def check_platform(self) -> EnablementResult:
        try:
            name = self.probe.read_product_name()
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            logger.debug("PRODUCT_NAME_READ_FAILED", error=str(e))
            return EnablementResult(False, f"product name unavailable: {e}")

        if name not in ACCEPTED_PRODUCT_NAMES:
            return EnablementResult(False, f"unrecognized product name {name!r}")
        return EnablementResult(True)

    def is_running_on_platform(self) -> bool:
        """Return True when the local product name identifies a Compute Engine VM."""
        return self.check_platform().value

    def _read_with_backoff(self, path: str) -> bytes:
        def _read() -> bytes:
            try:
                return self.client.read_metadata(path)
            except MetadataError as e:
                logger.debug("METADATA_READ_RETRYING", path=path, error=str(e))
                raise

        return self.retry_engine.execute_with_retry_sync(_read)

    def check_scope(self) -> EnablementResult:
        try:
            listing = self._read_with_backoff(SERVICE_ACCOUNTS_PATH)
        except MetadataError as e:
            return EnablementResult(False, f"service accounts unavailable: {e}")

        # One account directory per line, e.g. "default/".
        accounts = [
            line.strip() for line in listing.decode("utf-8", "replace").split("\n")
        ]
        if DEFAULT_SERVICE_ACCOUNT not in accounts:
            logger.info(
                "DEFAULT_SERVICE_ACCOUNT_MISSING",
                service_accounts=[account for account in accounts if account],
            )
            return EnablementResult(False, "'default' service account does not exist")

        try:
            raw_scopes = self._read_with_backoff(SCOPES_PATH)
        except MetadataError as e:
            return EnablementResult(False, f"scopes unavailable: {e}")

        try:
            scopes = _parse_scopes(raw_scopes)
        except ParseError as e:
            logger.error("SCOPES_PARSE_FAILED", error=str(e))
            return EnablementResult(False, str(e))

        if not has_accepted_scope(scopes):
            logger.warning(
                "CONTAINER_REGISTRY_DISABLED_NO_STORAGE_SCOPE", scopes=scopes
            )
            return EnablementResult(False, "no storage scope is available")
        return EnablementResult(True)

    def has_required_scope(self) -> bool:
        """Return True when the default service account can read the registry."""
        return self.check_scope().value


def _parse_scopes(raw: bytes) -> list[str]:
    try:
        scopes = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(f"Failed to unmarshal scopes: {e}", SCOPES_PATH) from e

    if not isinstance(scopes, list) or not all(isinstance(s, str) for s in scopes):
        raise ParseError("scopes is not a JSON array of strings", SCOPES_PATH)
    return scopes
