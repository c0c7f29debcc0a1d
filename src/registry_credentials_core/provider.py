"""Base credential provider interface.

This module defines the CredentialProvider protocol that every source of
registry credentials implements, so the registry and the caching wrapper can
treat all sources alike.
"""

from typing import Protocol, runtime_checkable

from .types import CredentialSet


@runtime_checkable
class CredentialProvider(Protocol):
    """Interface for registry credential providers."""

    def enabled(self) -> bool:
        """Return whether this source can supply credentials on this host.

        Evaluated on every lookup, never cached by callers.
        """
        ...

    def provide(self, image: str) -> CredentialSet:
        """Return the credentials this source has for ``image``.

        Args:
            image: The image reference about to be pulled.

        Returns:
            A credential set; empty when the source failed.
        """
        ...
