"""Config commands for vidctl."""

from __future__ import annotations

from typing import Optional

import click

from vidctl.core.config import CONFIG_FILE, Config
from vidctl.core.exceptions import VidCtlError
from vidctl.core.output import OutputFormat, print_error, print_key_value, print_output, print_success
from vidctl.core.validation import validate_channel_id, validate_server_url


@click.group()
def config() -> None:
    """Manage vidctl configuration."""
    pass


@config.command("init")
@click.option("--url", prompt="API server URL", help="Video platform API server URL")
@click.option("--profile", default="default", help="Profile name")
@click.option("--channel", default=None, help="Default channel ID")
@click.option("--timeout", type=int, default=60, show_default=True, help="Request timeout in seconds")
@click.option("--no-verify-ssl", is_flag=True, help="Disable SSL verification")
@click.option("--force", is_flag=True, help="Overwrite existing profile")
def config_init(
    url: str,
    profile: str,
    channel: Optional[str],
    timeout: int,
    no_verify_ssl: bool,
    force: bool,
) -> None:
    """Create configuration file with a new profile.

    The API token is never stored; export VIDCTL_TOKEN instead.

    Example:
        vidctl config init --url https://videos.example.com --channel 42
    """
    try:
        url = validate_server_url(url)
        if channel is not None:
            channel = validate_channel_id(channel)
    except VidCtlError as e:
        print_error(str(e))
        raise SystemExit(1) from e

    if CONFIG_FILE.exists():
        cfg = Config.load()
        if cfg.has_profile(profile) and not force:
            print_error(f"Profile '{profile}' already exists. Use --force to overwrite.")
            raise SystemExit(1)
    else:
        cfg = Config()

    cfg.add_profile(
        name=profile,
        url=url,
        verify_ssl=not no_verify_ssl,
        timeout=timeout,
        default_channel=channel,
    )

    # First profile becomes the default
    if len(cfg.profiles) == 1:
        cfg.default_profile = profile

    cfg.save()

    print_success(f"Configuration saved to {CONFIG_FILE}")
    print_key_value(
        {
            "profile": profile,
            "url": url,
            "default_channel": channel or "-",
        }
    )


@config.command("show")
@click.option("--output", "-o", type=click.Choice(["json", "table"]), default="table")
def config_show(output: str) -> None:
    """Show current configuration."""
    try:
        cfg = Config.load()
    except VidCtlError as e:
        print_error(f"Failed to load config: {e}")
        raise SystemExit(1) from e

    if not cfg.profiles:
        print_error("No configuration found. Run 'vidctl config init' first.")
        raise SystemExit(1)

    data = {
        "config_file": str(CONFIG_FILE),
        "default_profile": cfg.default_profile,
        "output_format": cfg.output_format,
        "profiles": list(cfg.profiles.keys()),
    }

    if output == "json":
        data["profile_details"] = {name: p.to_dict() for name, p in cfg.profiles.items()}
        data["upload"] = cfg.upload.to_dict()
        print_output(data, format=OutputFormat.JSON)
        return

    print_key_value(data, title="Configuration")

    click.echo()
    for name, profile in cfg.profiles.items():
        marker = " (default)" if name == cfg.default_profile else ""
        click.echo(f"Profile: {name}{marker}")
        print_key_value(
            {
                "url": profile.url,
                "verify_ssl": profile.verify_ssl,
                "timeout": f"{profile.timeout}s",
                "default_channel": profile.default_channel or "-",
            },
        )
        click.echo()

    print_key_value(cfg.upload.to_dict(), title="Upload")


@config.command("use-profile")
@click.argument("profile")
def config_use_profile(profile: str) -> None:
    """Switch the active profile.

    Example:
        vidctl config use-profile production
    """
    try:
        cfg = Config.load()
    except VidCtlError as e:
        print_error(f"Failed to load config: {e}")
        raise SystemExit(1) from e

    if not cfg.has_profile(profile):
        print_error(f"Profile '{profile}' not found.")
        click.echo(f"Available profiles: {', '.join(cfg.profiles.keys())}")
        raise SystemExit(1)

    cfg.set_default_profile(profile)
    cfg.save()

    print_success(f"Switched to profile '{profile}'")
