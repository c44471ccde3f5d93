"""Configuration helpers for the waybar calendar check."""
from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = "${HOME}/.config/waybar-google-calendar-check"
DEFAULT_CALENDAR_ID = "primary"

CREDENTIALS_FILE = "credentials.json"
TOKEN_FILE = "token.json"


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or unreadable."""


@dataclass(slots=True)
class Settings:
    """Runtime configuration for the CLI."""

    config_dir: Path
    calendar_id: str = DEFAULT_CALENDAR_ID

    @property
    def credentials_path(self) -> Path:
        return self.config_dir / CREDENTIALS_FILE

    @property
    def token_path(self) -> Path:
        return self.config_dir / TOKEN_FILE


def expand_config_dir(raw: str) -> Path:
    """Replace a literal ``${HOME}`` with the current user's home directory."""

    try:
        home = str(Path.home())
    except RuntimeError:
        # No resolvable home directory; leave the placeholder untouched.
        return Path(raw)
    return Path(raw.replace("${HOME}", home))


def load_settings(
    *,
    config_dir: Optional[str] = None,
    calendar_id: Optional[str] = None,
    config_dir_var: str = "WAYBAR_GCAL_CONFIG_DIR",
    calendar_var: str = "WAYBAR_GCAL_CALENDAR",
) -> Settings:
    """Resolve settings from explicit values, then env vars, then defaults.

    Args:
        config_dir: Directory holding credentials.json and token.json.
        calendar_id: Calendar to query for ``run``.
        config_dir_var: Env var consulted when ``config_dir`` is not given.
        calendar_var: Env var consulted when ``calendar_id`` is not given.

    Returns:
        Settings with the expanded config directory.

    Raises:
        ConfigError: if the config directory resolves to an empty path.
    """

    raw_dir = config_dir or os.getenv(config_dir_var) or DEFAULT_CONFIG_DIR
    if not raw_dir.strip():
        raise ConfigError("Config directory must not be empty.")

    calendar = calendar_id or os.getenv(calendar_var) or DEFAULT_CALENDAR_ID

    settings = Settings(
        config_dir=expand_config_dir(raw_dir.strip()),
        calendar_id=calendar.strip(),
    )
    logger.debug(
        f"Using config dir {settings.config_dir} and calendar {settings.calendar_id}"
    )
    return settings
