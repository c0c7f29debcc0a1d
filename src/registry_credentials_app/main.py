"""Command-line interface and main entry point.

This module provides the CLI for resolving registry credentials from instance
metadata, listing the registered providers and checking enablement.
"""
# ruff: noqa: T201

import json
import sys

import structlog
from structlog.contextvars import bound_contextvars

from registry_credentials_app.cli_config import (
    create_check_config,
    create_list_config,
    create_lookup_config,
)
from registry_credentials_core.config import MetadataConfig, create_metadata_config
from registry_credentials_core.observability import configure_logging
from registry_credentials_core.registry import ProviderRegistry
from registry_credentials_gce.metadata import MetadataClient
from registry_credentials_gce.registration import (
    create_enablement_detector,
    register_gce_providers,
)

VERSION = "0.1.0"

# Get logger for this module
logger = structlog.get_logger(__name__)


def build_registry(config: MetadataConfig, client: MetadataClient) -> ProviderRegistry:
    """Compose the registry used by the CLI commands on ``client``."""
    return register_gce_providers(ProviderRegistry(), config=config, client=client)


def lookup_command(args: list[str] | None = None) -> None:
    """Print the merged credentials for an image as JSON.

    Args:
        args: The image reference followed by options.
    """
    try:
        if not args:
            raise ValueError("image is required")  # noqa: TRY003, TRY301

        config = create_lookup_config(args[0], args[1:])
        configure_logging(log_level=config.log_level, dev_mode=config.dev_mode)

        metadata_config = create_metadata_config()
        with (
            bound_contextvars(image=config.image),
            MetadataClient.from_config(metadata_config) as client,
        ):
            registry = build_registry(metadata_config, client)
            credentials = registry.lookup(config.image)
            logger.info("CREDENTIALS_RESOLVED", patterns=len(credentials))

        output = {
            pattern: credential.to_dict(mask_secrets=not config.show_secrets)
            for pattern, credential in sorted(credentials.items())
        }
        print(json.dumps(output, indent=2))

    except Exception as e:
        print(f"Error: {e!s}", file=sys.stderr)
        logger.exception("LOOKUP_COMMAND_ERROR", error=str(e))
        sys.exit(1)


def list_command(args: list[str] | None = None) -> None:
    """List the registered credential providers."""
    try:
        config = create_list_config(args)
        configure_logging(log_level=config.log_level, dev_mode=config.dev_mode)

        metadata_config = create_metadata_config()
        with MetadataClient.from_config(metadata_config) as client:
            registry = build_registry(metadata_config, client)
            print("Registered credential providers:")
            for name in registry.names():
                descriptor = registry.get(name)
                cache = (
                    f"cached {descriptor.ttl:g}s" if descriptor.cached else "uncached"
                )
                print(f"  {name} ({cache})")
            print(f"Total: {len(registry)} provider(s)")

    except (ValueError, OSError) as e:
        print(f"Error: {e!s}", file=sys.stderr)
        sys.exit(1)


def check_command(args: list[str] | None = None) -> None:
    """Report whether this host can use metadata-backed credentials."""
    try:
        config = create_check_config(args)
        configure_logging(log_level=config.log_level, dev_mode=config.dev_mode)

        metadata_config = create_metadata_config()
        with MetadataClient.from_config(metadata_config) as client:
            detector = create_enablement_detector(client, metadata_config)
            report: dict[str, dict[str, object]] = {}

            platform = detector.check_platform()
            report["platform"] = {"enabled": platform.value, "reason": platform.reason}

            if platform and not config.skip_scope:
                scope = detector.check_scope()
                report["scope"] = {"enabled": scope.value, "reason": scope.reason}

        print(json.dumps(report, indent=2))

    except Exception as e:
        print(f"Error: {e!s}", file=sys.stderr)
        logger.exception("CHECK_COMMAND_ERROR", error=str(e))
        sys.exit(1)


def show_help() -> None:
    """Show help information for the CLI."""
    help_text = """
Registry Credentials

Usage:
    registry-credentials <command> [options]

Commands:
    lookup <image>     Print the credentials resolved for an image
    list               List the registered credential providers
    check              Report platform and scope enablement
    --help, -h         Show this help message
    --version, -v      Show version information

Options:
    --show-secrets     Print passwords instead of masking them (lookup)
    --skip-scope       Only check the platform (check)
    --log-level <lvl>  Log level (DEBUG, INFO, WARNING, ERROR)
    --dev-mode         Enable development mode logging

Environment:
    REGISTRY_CREDENTIALS_METADATA_URL              Metadata base URL
    REGISTRY_CREDENTIALS_TIMEOUT                   Request timeout in seconds
    REGISTRY_CREDENTIALS_SCOPE_RETRY_MAX_ATTEMPTS  Bound the scope check retries

Examples:
    registry-credentials lookup gcr.io/my-project/app:1.0
    registry-credentials check --skip-scope
"""
    print(help_text)


def main() -> None:
    """Main entry point for the CLI."""
    min_args = 2
    if len(sys.argv) < min_args:
        show_help()
        sys.exit(1)

    command = sys.argv[1]
    args = sys.argv[2:]

    if command == "lookup":
        if not args:
            show_help()
            sys.exit(1)
        lookup_command(args)
    elif command == "list":
        list_command(args)
    elif command == "check":
        check_command(args)
    elif command in ["--help", "-h", "help"]:
        show_help()
        sys.exit(0)
    elif command in ["--version", "-v", "version"]:
        print(f"registry-credentials, version {VERSION}")
        sys.exit(0)
    else:
        show_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
