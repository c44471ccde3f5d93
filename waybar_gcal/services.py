"""Command workflows shared by the CLI."""
from __future__ import annotations

from datetime import datetime
import logging
from typing import List, Optional

from .bar import BarItem, build_bar_item, day_window
from .config import Settings
from .google_calendar import list_all_calendars, list_events_between, load_account


logger = logging.getLogger(__name__)


def fetch_bar_item(settings: Settings, *, now: Optional[datetime] = None) -> BarItem:
    """Fetch today's events for the configured calendar and render the bar."""

    now = now or datetime.now().astimezone()
    account = load_account(settings)

    time_min, time_max = day_window(now)
    logger.debug(f"Querying {settings.calendar_id} from {time_min} to {time_max}")
    events = list_events_between(account, settings.calendar_id, time_min, time_max)

    return build_bar_item(events, now)


def calendar_lines(settings: Settings) -> List[str]:
    """``<id> <description>`` for every calendar the account can see."""

    account = load_account(settings)
    return [
        f"{calendar.id} {calendar.description or ''}"
        for calendar in list_all_calendars(account)
    ]
