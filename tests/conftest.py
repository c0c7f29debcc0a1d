"""PyTest configuration and shared test fixtures.

This module provides an in-process fake of the instance metadata service and
fixtures wiring MetadataClient to it through httpx.MockTransport, so no test
touches the network.
"""

from collections.abc import Generator
from typing import Any

import httpx
import pytest
from structlog.testing import capture_logs

from registry_credentials_gce.metadata import MetadataClient

BASE_URL = "http://metadata.test/computeMetadata/v1/"


class FakeMetadataServer:
    """Serves canned responses keyed by URL and records every request."""

    def __init__(self) -> None:
        self.routes: dict[str, object] = {}
        self.requests: list[httpx.Request] = []

    def set(self, path: str, body: object, status_code: int = 200) -> None:
        """Serve ``body`` at ``path`` (relative to BASE_URL or absolute).

        ``body`` may be bytes, str, a list of responses to serve in turn, or an
        httpx.TransportError subclass to raise.
        """
        url = path if path.startswith("http") else BASE_URL + path
        self.routes[url] = (status_code, body)

    def requests_for(self, path: str) -> list[httpx.Request]:
        url = path if path.startswith("http") else BASE_URL + path
        return [request for request in self.requests if str(request.url) == url]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, content=b"not found")

        status_code, body = route
        if isinstance(body, list):
            body = body.pop(0) if len(body) > 1 else body[0]
        if isinstance(body, type) and issubclass(body, httpx.TransportError):
            raise body("simulated failure", request=request)
        if isinstance(body, httpx.Response):
            return body
        if isinstance(body, str):
            body = body.encode()
        return httpx.Response(status_code, content=body)


@pytest.fixture
def metadata_server() -> FakeMetadataServer:
    """Create an empty fake metadata service."""
    return FakeMetadataServer()


@pytest.fixture
def metadata_client(
    metadata_server: FakeMetadataServer,
) -> Generator[MetadataClient, None, None]:
    """Create a MetadataClient talking to the fake metadata service."""
    http_client = httpx.Client(transport=httpx.MockTransport(metadata_server.handle))
    client = MetadataClient(base_url=BASE_URL, client=http_client)
    yield client
    client.close()


class FakeProbe:
    """Platform probe returning a fixed product name or raising."""

    def __init__(self, name: str = "Google", error: Exception | None = None) -> None:
        self.name = name
        self.error = error
        self.calls = 0

    def read_product_name(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.name


@pytest.fixture
def gce_probe() -> FakeProbe:
    """Create a probe that reports a Compute Engine VM."""
    return FakeProbe("Google Compute Engine")


@pytest.fixture
def make_probe() -> type[FakeProbe]:
    """Expose FakeProbe so tests can build probes with custom names or errors."""
    return FakeProbe


@pytest.fixture(autouse=True)
def captured_logs() -> Generator[list[dict[str, Any]], None, None]:
    """Capture structlog events instead of printing them."""
    with capture_logs() as logs:
        yield logs
