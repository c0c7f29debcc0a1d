"""Standardized exceptions for registry credential resolution.

This module provides consistent exception types for the metadata client,
credential document parsing and the provider registry.
"""


class RegistryCredentialsError(Exception):
    """Base exception for all registry credential errors."""

    def __init__(self, message: str, error_code: str | None = None) -> None:
        """Initialize the error with a message and optional error code.

        Args:
            message: Human-readable error message.
            error_code: Optional error code for programmatic handling.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class MetadataError(RegistryCredentialsError):
    """Raised when a read against the metadata service (or a URL it names) fails."""


class NetworkError(MetadataError):
    """Raised when a connection or timeout failure prevents a response."""

    def __init__(self, message: str, url: str | None = None) -> None:
        """Initialize network error.

        Args:
            message: Error message describing the network issue.
            url: Optional URL that caused the network error.
        """
        super().__init__(message, "NETWORK_ERROR")
        self.url = url


class HTTPStatusError(MetadataError):
    """Raised when a response carries a status other than 200."""

    def __init__(self, status_code: int, url: str) -> None:
        """Initialize HTTP status error.

        Args:
            status_code: The HTTP status code received.
            url: The URL that was requested.
        """
        super().__init__(
            f"unexpected status code {status_code} from {url}", "HTTP_STATUS"
        )
        self.status_code = status_code
        self.url = url


class TruncatedResponseError(MetadataError):
    """Raised when a response body reaches the configured byte cap."""

    def __init__(self, url: str, limit: int) -> None:
        """Initialize truncated response error.

        Args:
            url: The URL whose body was too large.
            limit: The byte cap that was reached.
        """
        super().__init__(
            f"the read limit of {limit} bytes is reached for {url}",
            "TRUNCATED_RESPONSE",
        )
        self.url = url
        self.limit = limit


class ParseError(RegistryCredentialsError):
    """Raised when a metadata document cannot be decoded."""

    def __init__(self, message: str, source: str | None = None) -> None:
        """Initialize parse error.

        Args:
            message: Error message describing the parse failure.
            source: Optional URL or name of the document being parsed.
        """
        super().__init__(message, "PARSE_ERROR")
        self.source = source


class UnsupportedSchemeError(RegistryCredentialsError):
    """Raised when an externally supplied URL is not http(s)."""

    def __init__(self, url: str) -> None:
        """Initialize unsupported scheme error.

        Args:
            url: The URL with the unsupported scheme.
        """
        super().__init__(f"Unsupported URL scheme: {url}", "UNSUPPORTED_SCHEME")
        self.url = url


class ProviderAlreadyRegisteredError(RegistryCredentialsError, ValueError):
    """Raised when a provider name is registered twice."""

    def __init__(self, name: str) -> None:
        """Initialize duplicate registration error.

        Args:
            name: The provider name that is already taken.
        """
        super().__init__(
            f"Credential provider {name!r} was registered twice", "DUPLICATE_PROVIDER"
        )
        self.name = name
