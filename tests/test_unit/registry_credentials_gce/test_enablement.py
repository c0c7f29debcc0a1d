"""Tests for platform and scope enablement detection."""

import json
import subprocess

import httpx
import pytest

from registry_credentials_core.retry import create_retry_engine
from registry_credentials_gce.enablement import (
    SCOPES_PATH,
    SERVICE_ACCOUNTS_PATH,
    EnablementDetector,
    has_accepted_scope,
)

STORAGE_SCOPE = "https://www.googleapis.com/auth/devstorage.read_only"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
LOGGING_SCOPE = "https://www.googleapis.com/auth/logging.write"


@pytest.fixture
def sleeps() -> list[float]:
    """Collect backoff delays instead of sleeping."""
    return []


@pytest.fixture
def detector(metadata_client, gce_probe, sleeps: list[float]) -> EnablementDetector:
    """Create a detector on a Compute Engine VM with a recording backoff."""
    return EnablementDetector(
        metadata_client,
        probe=gce_probe,
        retry_engine=create_retry_engine(sleep=sleeps.append),
    )


class TestPlatformDetection:
    """Test IsRunningOnPlatform behaviour."""

    @pytest.mark.parametrize("name", ["Google", "Google Compute Engine"])
    def test_accepted_names(self, metadata_client, make_probe, name: str) -> None:
        """Test both accepted product names enable the platform."""
        detector = EnablementDetector(metadata_client, probe=make_probe(name))
        assert detector.is_running_on_platform() is True

    @pytest.mark.parametrize("name", ["", "VirtualBox", "google", "Google Cloud"])
    def test_other_names(self, metadata_client, make_probe, name: str) -> None:
        """Test any other product name disables the platform."""
        detector = EnablementDetector(metadata_client, probe=make_probe(name))
        result = detector.check_platform()
        assert result.value is False
        assert "unrecognized product name" in (result.reason or "")

    @pytest.mark.parametrize(
        "error",
        [
            FileNotFoundError("no such file"),
            ValueError("unexpected output"),
            subprocess.CalledProcessError(1, "wmic"),
        ],
    )
    def test_probe_failure_is_false(
        self, metadata_client, make_probe, error: Exception
    ) -> None:
        """Test probe failures resolve to False instead of raising."""
        detector = EnablementDetector(metadata_client, probe=make_probe(error=error))
        result = detector.check_platform()
        assert not result
        assert "product name unavailable" in (result.reason or "")

    def test_probe_read_every_call(self, metadata_client, gce_probe) -> None:
        """Test the platform answer is not cached."""
        detector = EnablementDetector(metadata_client, probe=gce_probe)
        detector.is_running_on_platform()
        detector.is_running_on_platform()
        assert gce_probe.calls == 2


class TestScopeDetection:
    """Test HasRequiredScope behaviour."""

    def _serve(self, server, scopes: object, accounts: bytes = b"default/\n") -> None:
        server.set(SERVICE_ACCOUNTS_PATH, accounts)
        server.set(SCOPES_PATH, json.dumps(scopes).encode())

    def test_storage_scope(self, metadata_server, detector) -> None:
        """Test a devstorage scope is sufficient."""
        self._serve(metadata_server, [LOGGING_SCOPE, STORAGE_SCOPE])
        assert detector.has_required_scope() is True

    def test_cloud_platform_scope(self, metadata_server, detector) -> None:
        """Test the cloud-platform scope implies storage access."""
        self._serve(metadata_server, [CLOUD_PLATFORM_SCOPE])
        assert detector.has_required_scope() is True

    @pytest.mark.parametrize("scopes", [[], [LOGGING_SCOPE]])
    def test_missing_scope(self, metadata_server, detector, scopes: list[str]) -> None:
        """Test empty or unrelated scopes disable the registry."""
        self._serve(metadata_server, scopes)
        result = detector.check_scope()
        assert result.value is False
        assert result.reason == "no storage scope is available"

    def test_default_account_missing(self, metadata_server, detector) -> None:
        """Test a listing without the default account returns False early."""
        self._serve(
            metadata_server,
            [STORAGE_SCOPE],
            accounts=b"1234-compute@developer.gserviceaccount.com/\nother/\n",
        )

        result = detector.check_scope()

        assert result.value is False
        assert "'default' service account does not exist" in (result.reason or "")
        assert metadata_server.requests_for(SCOPES_PATH) == []

    def test_default_account_among_others(self, metadata_server, detector) -> None:
        """Test the default account is found with surrounding whitespace."""
        self._serve(
            metadata_server,
            [STORAGE_SCOPE],
            accounts=b"sa@project.iam.gserviceaccount.com/\n  default/  \n",
        )
        assert detector.has_required_scope() is True

    @pytest.mark.parametrize("body", [b"not json", b'{"scopes": []}', b"[1, 2]"])
    def test_unparseable_scopes(self, metadata_server, detector, body: bytes) -> None:
        """Test malformed scope documents resolve to False."""
        metadata_server.set(SERVICE_ACCOUNTS_PATH, b"default/\n")
        metadata_server.set(SCOPES_PATH, body)
        assert detector.has_required_scope() is False

    def test_retries_until_metadata_answers(
        self, metadata_server, detector, sleeps: list[float]
    ) -> None:
        """Test transient failures are retried with doubling backoff."""
        metadata_server.set(
            SERVICE_ACCOUNTS_PATH,
            [httpx.ConnectError, httpx.ConnectError, b"default/\n"],
        )
        metadata_server.set(
            SCOPES_PATH,
            [
                httpx.Response(503),
                json.dumps([STORAGE_SCOPE]).encode(),
            ],
        )

        assert detector.has_required_scope() is True
        assert len(metadata_server.requests_for(SERVICE_ACCOUNTS_PATH)) == 3
        assert len(metadata_server.requests_for(SCOPES_PATH)) == 2
        # Each read starts its own backoff from 100ms.
        assert sleeps == pytest.approx([0.1, 0.2, 0.1])

    def test_requests_carry_metadata_header(self, metadata_server, detector) -> None:
        """Test scope reads identify themselves to the metadata service."""
        self._serve(metadata_server, [STORAGE_SCOPE])
        detector.has_required_scope()
        assert all(
            request.headers["Metadata-Flavor"] == "Google"
            for request in metadata_server.requests
        )

    def test_bounded_retry_gives_up(self, metadata_server, metadata_client, gce_probe):
        """Test a bounded retry engine turns a dead service into False."""
        metadata_server.set(SERVICE_ACCOUNTS_PATH, httpx.ConnectError)
        detector = EnablementDetector(
            metadata_client,
            probe=gce_probe,
            retry_engine=create_retry_engine(max_attempts=2, sleep=lambda _d: None),
        )

        result = detector.check_scope()

        assert result.value is False
        assert "service accounts unavailable" in (result.reason or "")
        assert len(metadata_server.requests_for(SERVICE_ACCOUNTS_PATH)) == 2


class TestHasAcceptedScope:
    """Test the scope prefix rule."""

    def test_prefixes(self) -> None:
        """Test either accepted prefix matches and nothing else does."""
        assert has_accepted_scope([STORAGE_SCOPE])
        assert has_accepted_scope(["https://www.googleapis.com/auth/devstorage.full_control"])
        assert has_accepted_scope([CLOUD_PLATFORM_SCOPE + ".read-only"])
        assert not has_accepted_scope([])
        assert not has_accepted_scope([LOGGING_SCOPE, "devstorage"])
