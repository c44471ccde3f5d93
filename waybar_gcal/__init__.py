"""Waybar module showing the next Google Calendar event of the day.

This package provides:
- Event selection and waybar JSON formatting
- Google Calendar list and event queries
- OAuth client/token storage and the interactive setup flow
"""
from __future__ import annotations

from .bar import (
    GRACE_WINDOW,
    BarItem,
    build_bar_item,
    day_window,
    select_next,
    sort_events,
)

from .config import (
    ConfigError,
    Settings,
    load_settings,
)

from .credentials import (
    ClientConfig,
    Token,
    read_client_config,
    read_token,
    write_token,
)

from .oauth import (
    AuthError,
    AuthState,
    AuthorizationFlow,
    setup_token,
)

from .google_calendar import (
    CalendarError,
    CalendarAccount,
    load_account,
    list_calendars,
    list_events,
)

from .types import (
    CalendarInfo,
    CalendarEvent,
)


__all__ = [
    # Bar
    "GRACE_WINDOW",
    "BarItem",
    "build_bar_item",
    "day_window",
    "select_next",
    "sort_events",
    # Config
    "ConfigError",
    "Settings",
    "load_settings",
    # Credential store
    "ClientConfig",
    "Token",
    "read_client_config",
    "read_token",
    "write_token",
    # OAuth
    "AuthError",
    "AuthState",
    "AuthorizationFlow",
    "setup_token",
    # API Client
    "CalendarError",
    "CalendarAccount",
    "load_account",
    "list_calendars",
    "list_events",
    # Types
    "CalendarInfo",
    "CalendarEvent",
]
