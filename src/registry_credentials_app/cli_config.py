"""CLI configuration using environ-config.

Each command has a configuration class read from ``REGISTRY_CREDENTIALS_APP_*``
environment variables. Command-line options in ``--kebab-case`` form override
the matching variable.
"""

import os
from typing import TypeVar

import environ

ENV_PREFIX = "REGISTRY_CREDENTIALS_APP"

T = TypeVar("T")


@environ.config(prefix=ENV_PREFIX)
class LookupConfig:
    """Configuration for the lookup command."""

    image: str = environ.var(help="Image reference to resolve credentials for")
    show_secrets: bool = environ.bool_var(
        default=False, help="Print passwords instead of masking them"
    )
    log_level: str = environ.var(default="WARNING", help="Log level")
    dev_mode: bool = environ.bool_var(
        default=False, help="Enable development mode logging"
    )


@environ.config(prefix=ENV_PREFIX)
class ListConfig:
    """Configuration for the list command."""

    log_level: str = environ.var(default="WARNING", help="Log level")
    dev_mode: bool = environ.bool_var(
        default=False, help="Enable development mode logging"
    )


@environ.config(prefix=ENV_PREFIX)
class CheckConfig:
    """Configuration for the check command."""

    skip_scope: bool = environ.bool_var(
        default=False, help="Only check the platform, not the service account scopes"
    )
    log_level: str = environ.var(default="WARNING", help="Log level")
    dev_mode: bool = environ.bool_var(
        default=False, help="Enable development mode logging"
    )


class InvalidArgumentError(ValueError):
    """Raised when command-line options cannot be parsed."""

    def __init__(self, argument: str) -> None:
        """Initialize the invalid argument error.

        Args:
            argument: The offending command-line argument.
        """
        super().__init__(f"Unexpected argument: {argument}")
        self.argument = argument


def _args_to_env(args: list[str]) -> dict[str, str]:
    env: dict[str, str] = {}
    index = 0
    while index < len(args):
        arg = args[index]
        if not arg.startswith("--") or arg == "--":
            raise InvalidArgumentError(arg)

        name, sep, value = arg[2:].partition("=")
        key = f"{ENV_PREFIX}_{name.replace('-', '_').upper()}"
        if sep:
            env[key] = value
        elif index + 1 < len(args) and not args[index + 1].startswith("--"):
            index += 1
            env[key] = args[index]
        else:
            # Bare flag
            env[key] = "1"
        index += 1
    return env


def args_to_config_class(
    config_cls: type[T],
    args: list[str] | None = None,
    extra: dict[str, str] | None = None,
) -> T:
    """Build a config instance from environment variables and CLI options.

    Args:
        config_cls: An ``environ.config`` class.
        args: Command-line options such as ``["--log-level", "DEBUG"]``.
        extra: Additional variables applied after the environment.

    Returns:
        Populated config instance.
    """
    env = {**os.environ, **(extra or {}), **_args_to_env(args or [])}
    return environ.to_config(config_cls, environ=env)


def create_lookup_config(image: str, args: list[str] | None = None) -> LookupConfig:
    """Create a LookupConfig for ``image`` from CLI options and the environment."""
    return args_to_config_class(LookupConfig, args, extra={f"{ENV_PREFIX}_IMAGE": image})


def create_list_config(args: list[str] | None = None) -> ListConfig:
    """Create a ListConfig from CLI options and the environment."""
    return args_to_config_class(ListConfig, args)


def create_check_config(args: list[str] | None = None) -> CheckConfig:
    """Create a CheckConfig from CLI options and the environment."""
    return args_to_config_class(CheckConfig, args)
