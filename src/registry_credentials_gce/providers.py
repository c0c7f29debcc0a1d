"""Metadata-backed credential providers.

Three sources of registry credentials on a Compute Engine VM:

- ``google-dockercfg``: a credential document stored in an instance attribute.
- ``google-dockercfg-url``: an instance attribute holding the URL of such a
  document.
- ``google-container-registry``: the default service account's access token,
  offered as ``_token`` to every Google registry host.

Each provider logs failures and returns an empty credential set rather than
raising. ``fetch`` returns the same credentials together with the reason for
a failure.
"""

import json

import structlog

from registry_credentials_core.exceptions import (
    ParseError,
    RegistryCredentialsError,
    UnsupportedSchemeError,
)
from registry_credentials_core.types import (
    CredentialSet,
    ProviderOutcome,
    RegistryCredential,
    parse_docker_config,
)

from .enablement import EnablementDetector
from .metadata import MetadataClient

# Get logger for this module
logger = structlog.get_logger(__name__)

METADATA_ATTRIBUTES = "instance/attributes/"
DOCKER_CONFIG_KEY = METADATA_ATTRIBUTES + "google-dockercfg"
DOCKER_CONFIG_URL_KEY = METADATA_ATTRIBUTES + "google-dockercfg-url"
METADATA_TOKEN = "instance/service-accounts/default/token"
METADATA_EMAIL = "instance/service-accounts/default/email"

TOKEN_USERNAME = "_token"

# Left-most labels may be globs: "*.gcr.io" matches "us.gcr.io".
CONTAINER_REGISTRY_URLS = (
    "container.cloud.google.com",
    "gcr.io",
    "*.gcr.io",
    "*.pkg.dev",
)


class MetadataCredentialProvider:
    """Shared plumbing for providers that read from instance metadata."""

    def __init__(self, client: MetadataClient, detector: EnablementDetector) -> None:
        self.client = client
        self.detector = detector

    def enabled(self) -> bool:
        return self.detector.is_running_on_platform()

    def fetch(self, image: str) -> ProviderOutcome:
        raise NotImplementedError

    def provide(self, image: str) -> CredentialSet:
        return self.fetch(image).credentials


class DockerConfigKeyProvider(MetadataCredentialProvider):
    """Reads a credential document from the ``google-dockercfg`` attribute."""

    def fetch(self, image: str) -> ProviderOutcome:
        try:
            contents = self.client.read_metadata(DOCKER_CONFIG_KEY)
            credentials = parse_docker_config(contents, source=DOCKER_CONFIG_KEY)
        except RegistryCredentialsError as e:
            logger.error(
                "DOCKERCFG_KEY_READ_FAILED", key="google-dockercfg", error=str(e)
            )
            return ProviderOutcome.failed(e)

        return ProviderOutcome(credentials)


class DockerConfigURLKeyProvider(MetadataCredentialProvider):
    """Reads a credential document from the URL in ``google-dockercfg-url``.

    Only http(s) URLs are followed; the metadata header is not sent to them.
    """

    def fetch(self, image: str) -> ProviderOutcome:
        try:
            url = self.client.read_metadata(DOCKER_CONFIG_URL_KEY).decode("utf-8")
        except UnicodeDecodeError as e:
            error = ParseError(f"attribute is not valid UTF-8: {e}", DOCKER_CONFIG_URL_KEY)
            logger.error(
                "DOCKERCFG_URL_KEY_READ_FAILED",
                key="google-dockercfg-url",
                error=str(error),
            )
            return ProviderOutcome.failed(error)
        except RegistryCredentialsError as e:
            logger.error(
                "DOCKERCFG_URL_KEY_READ_FAILED", key="google-dockercfg-url", error=str(e)
            )
            return ProviderOutcome.failed(e)

        url = url.strip()
        if not url.startswith("http"):
            error = UnsupportedSchemeError(url)
            logger.error("DOCKERCFG_URL_UNSUPPORTED_SCHEME", url=url)
            return ProviderOutcome.failed(error)

        try:
            contents = self.client.read_url(url)
            credentials = parse_docker_config(contents, source=url)
        except RegistryCredentialsError as e:
            logger.error("DOCKERCFG_URL_READ_FAILED", url=url, error=str(e))
            return ProviderOutcome.failed(e)

        return ProviderOutcome(credentials)


class ContainerRegistryProvider(MetadataCredentialProvider):
    """Offers the default service account's access token to Google registries.

    Username is ``_token`` and password is the access token from metadata.
    The token is already cached by the metadata service, so this provider is
    normally registered without a cache of its own.
    """

    def enabled(self) -> bool:
        if not self.detector.is_running_on_platform():
            return False
        return self.detector.has_required_scope()

    def fetch(self, image: str) -> ProviderOutcome:
        try:
            token_blob = self.client.read_metadata(METADATA_TOKEN)
        except RegistryCredentialsError as e:
            logger.error("ACCESS_TOKEN_READ_FAILED", error=str(e))
            return ProviderOutcome.failed(e)

        try:
            email = self.client.read_metadata(METADATA_EMAIL)
        except RegistryCredentialsError as e:
            logger.error("SERVICE_ACCOUNT_EMAIL_READ_FAILED", error=str(e))
            return ProviderOutcome.failed(e)

        try:
            access_token = parse_access_token(token_blob)
        except ParseError as e:
            logger.error("ACCESS_TOKEN_PARSE_FAILED", error=str(e))
            return ProviderOutcome.failed(e)

        entry = RegistryCredential(
            username=TOKEN_USERNAME,
            password=access_token,
            email=email.decode("utf-8", "replace"),
        )
        return ProviderOutcome({url: entry for url in CONTAINER_REGISTRY_URLS})


def parse_access_token(blob: bytes) -> str:
    """Extract ``access_token`` from the metadata token response.

    Raises:
        ParseError: When the blob is not a JSON object with a string token.
    """
    try:
        parsed = json.loads(blob)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(f"while parsing json blob: {e}", METADATA_TOKEN) from e

    if not isinstance(parsed, dict):
        raise ParseError("token response is not a JSON object", METADATA_TOKEN)

    token = parsed.get("access_token", "")
    if not isinstance(token, str):
        raise ParseError("access_token is not a string", METADATA_TOKEN)
    return token
