"""Common CLI utilities, decorators, and helpers."""

from __future__ import annotations

import sys
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

import click

from vidctl.core.client import VideoAPIClient
from vidctl.core.config import ENV_PROFILE, ENV_TOKEN, Config, get_token
from vidctl.core.exceptions import (
    ConfigurationError,
    ProfileNotFoundError,
    VidCtlError,
)
from vidctl.core.logging import setup_logging
from vidctl.core.output import OutputFormat, print_error

F = TypeVar("F", bound=Callable[..., Any])


# =============================================================================
# Context Object
# =============================================================================


class Context:
    """CLI context object passed to commands."""

    def __init__(self) -> None:
        self.config: Optional[Config] = None
        self.client: Optional[VideoAPIClient] = None
        self.profile_name: Optional[str] = None
        self.output_format: OutputFormat = OutputFormat.TABLE
        self.quiet: bool = False
        self.verbose: bool = False

    def get_client(self) -> VideoAPIClient:
        """Get or create the API client.

        Returns:
            VideoAPIClient for the selected profile.

        Raises:
            ConfigurationError: If no profile configured.
        """
        if self.client is not None:
            return self.client

        if self.config is None:
            self.config = Config.load()

        try:
            profile = self.config.get_profile(self.profile_name)
        except ProfileNotFoundError as e:
            raise ConfigurationError(
                f"Profile '{self.profile_name or self.config.default_profile}' not found. "
                "Run 'vidctl config init' to create one."
            ) from e

        self.client = VideoAPIClient(
            base_url=profile.url,
            token=get_token(),
            timeout=profile.timeout,
            verify_ssl=profile.verify_ssl,
        )

        return self.client


pass_context = click.make_pass_decorator(Context, ensure=True)


# =============================================================================
# Global Options
# =============================================================================


def global_options(f: F) -> F:
    """Add global options to a command."""

    @click.option(
        "--profile",
        "-p",
        envvar=ENV_PROFILE,
        help="Config profile to use",
    )
    @click.option(
        "--output",
        "-o",
        "output_format",
        type=click.Choice(["json", "table"]),
        default="table",
        help="Output format",
    )
    @click.option(
        "--quiet",
        "-q",
        is_flag=True,
        help="Minimal output (IDs only)",
    )
    @click.option(
        "--verbose",
        "-v",
        is_flag=True,
        help="Enable verbose output",
    )
    @pass_context
    @wraps(f)
    def wrapper(
        ctx: Context,
        profile: Optional[str],
        output_format: str,
        quiet: bool,
        verbose: bool,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Populate context from global options and invoke the command."""
        ctx.profile_name = profile
        ctx.output_format = OutputFormat.from_string(output_format)
        ctx.quiet = quiet
        ctx.verbose = verbose

        setup_logging(quiet=quiet, verbose=verbose)

        ctx.config = Config.load()

        return f(ctx, *args, **kwargs)

    return wrapper  # type: ignore


# =============================================================================
# Authentication Decorators
# =============================================================================


def require_auth(f: F) -> F:
    """Ensure an API token is available before running command."""

    @wraps(f)
    def wrapper(ctx: Context, *args: Any, **kwargs: Any) -> Any:
        """Ensure the context client carries a token before running."""
        client = ctx.get_client()
        if not client.is_authenticated:
            raise click.ClickException(f"Not authenticated. Set {ENV_TOKEN} to an API token.")
        return f(ctx, *args, **kwargs)

    return wrapper  # type: ignore


# =============================================================================
# Error Handling
# =============================================================================


def handle_errors(f: F) -> F:
    """Handle common errors and convert to CLI exceptions."""

    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        """Capture errors and exit with consistent messaging."""
        try:
            return f(*args, **kwargs)
        except VidCtlError as e:
            print_error(str(e))
            sys.exit(ExitCode.GENERAL_ERROR)
        except click.ClickException:
            raise
        except KeyboardInterrupt:
            print_error("Interrupted")
            sys.exit(ExitCode.USER_CANCELLED)
        except Exception as e:
            print_error(f"Unexpected error: {e}")
            sys.exit(ExitCode.GENERAL_ERROR)

    return wrapper  # type: ignore


# =============================================================================
# Exit Codes
# =============================================================================


class ExitCode:
    """Standard exit codes."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    AUTH_ERROR = 2
    NETWORK_ERROR = 3
    PERMISSION_ERROR = 4
    USER_CANCELLED = 5
