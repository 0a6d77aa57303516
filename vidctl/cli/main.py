"""Main CLI entry point for vidctl."""

from __future__ import annotations

import click

from vidctl import __version__

# Import command groups
from vidctl.cli.config_cmd import config
from vidctl.cli.upload import upload


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="vidctl")
def cli() -> None:
    """vidctl - Resumable batch uploads to a video platform.

    Uploads local videos to a channel, in 5 MiB parts for large files, with
    retry, verification and cancellation.

    Get started:

      vidctl config init                   # Create config file

      export VIDCTL_TOKEN=...              # Provide an API token

      vidctl upload files a.mp4 -c 42      # Upload a batch

    Use --help on any command for more information.
    """
    pass


# =============================================================================
# Register Command Groups
# =============================================================================

cli.add_command(config)
cli.add_command(upload)


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
