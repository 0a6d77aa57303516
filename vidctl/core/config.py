"""Configuration management for vidctl.

Supports YAML profiles, upload tuning, and environment variable overrides.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from vidctl.core.exceptions import ConfigurationError, ProfileNotFoundError

# =============================================================================
# Constants
# =============================================================================

CONFIG_DIR = Path.home() / ".config" / "vidctl"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

DEFAULT_TIMEOUT = 60

# Environment variable names
ENV_URL = "VIDCTL_URL"
ENV_TOKEN = "VIDCTL_TOKEN"
ENV_PROFILE = "VIDCTL_PROFILE"
ENV_VERIFY_SSL = "VIDCTL_VERIFY_SSL"
ENV_TIMEOUT = "VIDCTL_TIMEOUT"
ENV_MAX_CONCURRENT_PARTS = "VIDCTL_MAX_CONCURRENT_PARTS"
ENV_MAX_CONCURRENT_FILES = "VIDCTL_MAX_CONCURRENT_FILES"


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer", field=name, value=raw) from e


# =============================================================================
# Profile
# =============================================================================


@dataclass
class Profile:
    """Configuration profile for a video platform API server."""

    url: str
    verify_ssl: bool = True
    timeout: int = DEFAULT_TIMEOUT
    default_channel: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "url": self.url,
            "verify_ssl": self.verify_ssl,
            "timeout": self.timeout,
            "default_channel": self.default_channel,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Profile":
        """Create from dictionary."""
        channel = data.get("default_channel")
        return cls(
            url=data.get("url", ""),
            verify_ssl=data.get("verify_ssl", True),
            timeout=data.get("timeout", DEFAULT_TIMEOUT),
            default_channel=str(channel) if channel is not None else None,
        )


# =============================================================================
# Upload Settings
# =============================================================================


@dataclass
class UploadSettings:
    """Tunables of the upload engine.

    Defaults are the values the backend was built against. Part size and the
    chunking threshold are not configurable because the server decides them.
    """

    max_concurrent_parts: int = 3
    max_part_retries: int = 3
    retry_delay: float = 1.0
    verify_rounds: int = 3
    verify_base_delay: float = 2.0
    convergence_delay: float = 1.0
    max_concurrent_files: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "max_concurrent_parts": self.max_concurrent_parts,
            "max_part_retries": self.max_part_retries,
            "retry_delay": self.retry_delay,
            "verify_rounds": self.verify_rounds,
            "verify_base_delay": self.verify_base_delay,
            "convergence_delay": self.convergence_delay,
            "max_concurrent_files": self.max_concurrent_files,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UploadSettings":
        """Create from dictionary, keeping defaults for missing keys."""
        defaults = cls()
        settings = cls(
            max_concurrent_parts=int(data.get("max_concurrent_parts", defaults.max_concurrent_parts)),
            max_part_retries=int(data.get("max_part_retries", defaults.max_part_retries)),
            retry_delay=float(data.get("retry_delay", defaults.retry_delay)),
            verify_rounds=int(data.get("verify_rounds", defaults.verify_rounds)),
            verify_base_delay=float(data.get("verify_base_delay", defaults.verify_base_delay)),
            convergence_delay=float(data.get("convergence_delay", defaults.convergence_delay)),
            max_concurrent_files=data.get("max_concurrent_files"),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ConfigurationError: If a setting is out of range.
        """
        if self.max_concurrent_parts < 1:
            raise ConfigurationError(
                "max_concurrent_parts must be >= 1",
                field="max_concurrent_parts",
                value=self.max_concurrent_parts,
            )
        if self.max_part_retries < 0:
            raise ConfigurationError(
                "max_part_retries must be >= 0",
                field="max_part_retries",
                value=self.max_part_retries,
            )
        if self.verify_rounds < 1:
            raise ConfigurationError(
                "verify_rounds must be >= 1", field="verify_rounds", value=self.verify_rounds
            )
        for name in ("retry_delay", "verify_base_delay", "convergence_delay"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must be >= 0", field=name, value=getattr(self, name))
        if self.max_concurrent_files is not None and self.max_concurrent_files < 1:
            raise ConfigurationError(
                "max_concurrent_files must be >= 1",
                field="max_concurrent_files",
                value=self.max_concurrent_files,
            )


# =============================================================================
# Config
# =============================================================================


@dataclass
class Config:
    """Application configuration."""

    default_profile: str = "default"
    output_format: str = "table"
    profiles: dict[str, Profile] = field(default_factory=dict)
    upload: UploadSettings = field(default_factory=UploadSettings)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load config from file with environment variable overrides.

        Priority (highest to lowest):
        1. Environment variables
        2. Config file
        3. Defaults

        Args:
            config_path: Optional path to config file.

        Returns:
            Loaded configuration.
        """
        path = config_path or CONFIG_FILE
        config = cls()

        if path.exists():
            try:
                with open(path) as f:
                    data = yaml.safe_load(f) or {}

                config.default_profile = data.get("default_profile", "default")
                config.output_format = data.get("output_format", "table")

                for name, pdata in (data.get("profiles") or {}).items():
                    config.profiles[name] = Profile.from_dict(pdata)

                config.upload = UploadSettings.from_dict(data.get("upload") or {})
            except ConfigurationError:
                raise
            except Exception as e:
                raise ConfigurationError(f"Failed to load config: {e}") from e

        # Environment variable overrides
        if url := os.getenv(ENV_URL):
            verify_ssl = os.getenv(ENV_VERIFY_SSL, "true").lower() in ("true", "1", "yes")
            timeout = _env_int(ENV_TIMEOUT) or DEFAULT_TIMEOUT

            config.profiles["default"] = Profile(
                url=url,
                verify_ssl=verify_ssl,
                timeout=timeout,
            )

        if profile := os.getenv(ENV_PROFILE):
            config.default_profile = profile

        if (parts := _env_int(ENV_MAX_CONCURRENT_PARTS)) is not None:
            config.upload.max_concurrent_parts = parts
        if (files := _env_int(ENV_MAX_CONCURRENT_FILES)) is not None:
            config.upload.max_concurrent_files = files
        config.upload.validate()

        return config

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save config to file (excludes secrets).

        Args:
            config_path: Optional path to config file.
        """
        path = config_path or CONFIG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "default_profile": self.default_profile,
            "output_format": self.output_format,
            "profiles": {name: p.to_dict() for name, p in self.profiles.items()},
            "upload": self.upload.to_dict(),
        }

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def get_profile(self, name: Optional[str] = None) -> Profile:
        """Get profile by name or default.

        Raises:
            ProfileNotFoundError: If profile doesn't exist.
        """
        name = name or self.default_profile
        if name not in self.profiles:
            raise ProfileNotFoundError(name)
        return self.profiles[name]

    def has_profile(self, name: str) -> bool:
        """Check whether a profile exists."""
        return name in self.profiles

    def add_profile(
        self,
        name: str,
        url: str,
        verify_ssl: bool = True,
        timeout: int = DEFAULT_TIMEOUT,
        default_channel: Optional[str] = None,
    ) -> Profile:
        """Add or update a profile."""
        profile = Profile(
            url=url,
            verify_ssl=verify_ssl,
            timeout=timeout,
            default_channel=default_channel,
        )
        self.profiles[name] = profile
        return profile

    def set_default_profile(self, name: str) -> None:
        """Set the default profile.

        Raises:
            ProfileNotFoundError: If profile doesn't exist.
        """
        if name not in self.profiles:
            raise ProfileNotFoundError(name)
        self.default_profile = name


def get_token() -> Optional[str]:
    """Get the API bearer token from the environment.

    Returns:
        Token if set, None otherwise.
    """
    return os.getenv(ENV_TOKEN)
