"""Credential data model and credential document parsing.

A credential set maps a registry host pattern (an exact hostname, or a glob
whose wildcard labels are restricted to the left-most positions, such as
``*.gcr.io``) to the credential that authenticates against it.
"""

import base64
import binascii
import json
from dataclasses import dataclass, field

from .exceptions import ParseError


@dataclass(frozen=True)
class RegistryCredential:
    """Credential for a single container registry."""

    username: str = ""
    password: str = ""
    email: str = ""

    def to_dict(self, *, mask_secrets: bool = False) -> dict[str, str]:
        """Return the credential as a plain dictionary."""
        return {
            "username": self.username,
            "password": "********" if mask_secrets and self.password else self.password,
            "email": self.email,
        }


CredentialSet = dict[str, RegistryCredential]


@dataclass
class ProviderOutcome:
    """Result of one provider fetch.

    ``reason`` is ``None`` when the fetch succeeded. On failure ``credentials``
    is always empty and ``reason`` holds the error that was logged.
    """

    credentials: CredentialSet = field(default_factory=dict)
    reason: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def failed(cls, reason: Exception) -> "ProviderOutcome":
        return cls(credentials={}, reason=reason)


def _decode_auth_field(auth: str, source: str | None) -> tuple[str, str]:
    try:
        decoded = base64.b64decode(auth, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ParseError(f"unable to decode auth field: {e}", source) from e

    parts = decoded.split(":", 1)
    if len(parts) != 2:  # noqa: PLR2004
        raise ParseError(
            "unable to parse auth field, must be formatted as base64(username:password)",
            source,
        )
    return parts[0], parts[1]


def _entry_field(raw: dict, key: str) -> object:
    # Exact key first, then any casing ("Username", "PASSWORD", ...).
    if key in raw:
        return raw[key]
    for name, value in raw.items():
        if isinstance(name, str) and name.lower() == key:
            return value
    return ""


def _parse_entry(host: str, raw: object, source: str | None) -> RegistryCredential:
    if not isinstance(raw, dict):
        raise ParseError(f"credential entry for {host!r} is not an object", source)

    values: dict[str, str] = {}
    for key in ("username", "password", "email", "auth"):
        value = _entry_field(raw, key)
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise ParseError(f"field {key!r} for {host!r} is not a string", source)
        values[key] = value

    username, password = values["username"], values["password"]
    if values["auth"]:
        username, password = _decode_auth_field(values["auth"], source)

    return RegistryCredential(
        username=username, password=password, email=values["email"]
    )


def parse_docker_config(contents: bytes | str, source: str | None = None) -> CredentialSet:
    """Parse a credential document into a credential set.

    Both the legacy ``.dockercfg`` layout (``{host: entry}``) and the
    ``config.json`` layout (``{"auths": {host: entry}}``) are accepted.

    Args:
        contents: Raw JSON document.
        source: Optional URL or name used in error messages.

    Returns:
        The parsed credential set.

    Raises:
        ParseError: When the document is not a JSON object of credential entries.
    """
    try:
        document = json.loads(contents)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(
            f"error occurred while trying to unmarshal json: {e}", source
        ) from e

    if not isinstance(document, dict):
        raise ParseError("credential document is not a JSON object", source)

    auths = document.get("auths")
    if isinstance(auths, dict):
        document = auths

    return {host: _parse_entry(host, raw, source) for host, raw in document.items()}
