"""Local platform identity probes.

A probe reads the machine's product name without touching the network. The
POSIX probe reads a DMI file; the Windows probe asks ``wmic``. The probe for
the current host is chosen once, when providers are composed.
"""

import subprocess
import sys
from pathlib import Path
from typing import Protocol

from registry_credentials_core.config import DEFAULT_PRODUCT_NAME_FILE

ACCEPTED_PRODUCT_NAMES = frozenset({"Google", "Google Compute Engine"})

WMIC_MODEL_COMMAND = ("wmic", "computersystem", "get", "model")


class PlatformProbe(Protocol):
    """Interface for reading the local machine's product name."""

    def read_product_name(self) -> str:
        """Return the trimmed product name.

        Raises:
            OSError, ValueError or subprocess.SubprocessError on failure.
        """
        ...


class ProductNameFileProbe:
    """Read the product name from a DMI file (POSIX hosts)."""

    def __init__(self, path: str | Path = DEFAULT_PRODUCT_NAME_FILE) -> None:
        self.path = Path(path)

    def read_product_name(self) -> str:
        return self.path.read_text(encoding="utf-8").strip()


class WmicProbe:
    """Read the product name from ``wmic computersystem get model`` (Windows)."""

    def __init__(self, timeout: float = 10.0) -> None:
        self.timeout = timeout

    def read_product_name(self) -> str:
        result = subprocess.run(  # noqa: S603
            list(WMIC_MODEL_COMMAND),
            capture_output=True,
            text=True,
            check=True,
            timeout=self.timeout,
        )
        # Expected output is a "Model" header line followed by the value.
        fields = result.stdout.strip().split("\r\n")
        if len(fields) != 2:  # noqa: PLR2004
            raise ValueError(  # noqa: TRY003
                f"Received unexpected value retrieving system model: {result.stdout!r}"
            )
        return fields[1].strip()


def default_platform_probe(
    product_name_file: str | Path = DEFAULT_PRODUCT_NAME_FILE,
) -> PlatformProbe:
    """Build the probe for the host this process runs on."""
    if sys.platform == "win32":
        return WmicProbe()
    return ProductNameFileProbe(product_name_file)
