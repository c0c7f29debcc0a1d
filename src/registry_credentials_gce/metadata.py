"""Instance metadata HTTP client.

This module provides the MetadataClient class for GET requests against the
local metadata service. Requests to the service carry the ``Metadata-Flavor``
header it requires; reads of externally supplied URLs do not. Responses are
bounded in size and must come back with status 200. There is no retry at
this layer.
"""

from types import TracebackType
from urllib.parse import urljoin

import httpx
import structlog

from registry_credentials_core.config import (
    DEFAULT_MAX_READ_LENGTH,
    DEFAULT_METADATA_URL,
    MetadataConfig,
)
from registry_credentials_core.exceptions import (
    HTTPStatusError,
    NetworkError,
    TruncatedResponseError,
)

# Get logger for this module
logger = structlog.get_logger(__name__)

METADATA_HEADERS = {"Metadata-Flavor": "Google"}

HTTP_OK = 200


class MetadataClient:
    """Blocking client for the instance metadata service."""

    def __init__(
        self,
        base_url: str = DEFAULT_METADATA_URL,
        timeout: float = 10.0,
        max_read_length: int = DEFAULT_MAX_READ_LENGTH,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the metadata client.

        Args:
            base_url: Base URL every metadata path is resolved against.
            timeout: Per-request timeout in seconds.
            max_read_length: Responses reaching this many bytes are rejected.
            client: Optional preconfigured httpx client (tests pass one with a
                mock transport).
        """
        if not base_url.endswith("/"):
            base_url += "/"
        self.base_url = base_url
        self.max_read_length = max_read_length
        self._client = client or httpx.Client(timeout=timeout)

    @classmethod
    def from_config(
        cls, config: MetadataConfig, client: httpx.Client | None = None
    ) -> "MetadataClient":
        return cls(
            base_url=config.metadata_url,
            timeout=config.timeout,
            max_read_length=config.max_read_length,
            client=client,
        )

    def url_for(self, path: str) -> str:
        """Resolve a metadata path against the base URL.

        Raises:
            ValueError: When the path escapes the metadata base URL.
        """
        url = urljoin(self.base_url, path.lstrip("/"))
        if not url.startswith(self.base_url):
            raise ValueError(  # noqa: TRY003
                f"metadata path {path!r} does not resolve under {self.base_url}"
            )
        return url

    def read_metadata(self, path: str) -> bytes:
        """Read a metadata entry.

        Args:
            path: Path relative to the metadata base URL, e.g.
                ``instance/service-accounts/default/email``.

        Returns:
            The raw response body.

        Raises:
            NetworkError: On connection or timeout failure, or an invalid URL.
            HTTPStatusError: When the status code is not 200.
            TruncatedResponseError: When the body reaches the size cap.
        """
        return self.read_url(self.url_for(path), headers=METADATA_HEADERS)

    def read_url(self, url: str, headers: dict[str, str] | None = None) -> bytes:
        """GET ``url`` and return its body, enforcing status and size limits."""
        try:
            with self._client.stream("GET", url, headers=headers) as response:
                if response.status_code != HTTP_OK:
                    logger.debug(
                        "METADATA_REQUEST_FAILED",
                        url=url,
                        status_code=response.status_code,
                    )
                    raise HTTPStatusError(response.status_code, url)

                contents = bytearray()
                for chunk in response.iter_bytes():
                    contents.extend(chunk)
                    if len(contents) >= self.max_read_length:
                        raise TruncatedResponseError(url, self.max_read_length)
        except httpx.InvalidURL as e:
            raise NetworkError(f"invalid url {url!r}: {e}", url) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"request to {url} failed: {e}", url) from e

        return bytes(contents)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "MetadataClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
