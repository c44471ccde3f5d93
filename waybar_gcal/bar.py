"""Next-event selection and waybar formatting.

Given the day's events, the bar shows the next one as ``text`` and the
whole schedule as ``tooltip``. An event stays "next" for a short grace
window after it starts so a coarsely polled bar does not drop it the
moment the meeting begins.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
import json
from typing import Dict, Optional, Protocol, Sequence, Tuple


GRACE_WINDOW = timedelta(minutes=5)
TIME_FORMAT = "%H:%M"


class TimedEvent(Protocol):
    """Anything with a timezone-aware start and a summary."""

    start: datetime
    summary: str


@dataclass(frozen=True, slots=True)
class BarItem:
    """Waybar custom module payload."""

    text: str = ""
    tooltip: str = ""

    def to_dict(self) -> Dict[str, str]:
        """Encode for waybar; the tooltip key is dropped when empty."""
        data = {"text": self.text}
        if self.tooltip:
            data["tooltip"] = self.tooltip
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


def day_window(now: datetime) -> Tuple[datetime, datetime]:
    """Return ``[today 00:00, tomorrow 00:00)`` in local time."""
    today = now.astimezone().date()
    # Each edge takes the offset in force at its own midnight (DST days).
    start = datetime.combine(today, time.min).astimezone()
    end = datetime.combine(today + timedelta(days=1), time.min).astimezone()
    return start, end


def sort_events(events: Sequence[TimedEvent]) -> list[TimedEvent]:
    """Order by start time; events starting together keep their input order."""
    return sorted(events, key=lambda event: event.start)


def select_next(
    events: Sequence[TimedEvent], now: datetime
) -> Optional[TimedEvent]:
    """First event of an already sorted list that has not left its grace window."""
    for event in events:
        if now < event.start + GRACE_WINDOW:
            return event
    return None


def format_event(event: TimedEvent) -> str:
    """``HH:MM summary`` in the event's own UTC offset."""
    return f"{event.start.strftime(TIME_FORMAT)} {event.summary}"


def build_bar_item(events: Sequence[TimedEvent], now: datetime) -> BarItem:
    """Render the bar payload for a day's events at instant ``now``."""
    if not events:
        return BarItem()

    ordered = sort_events(events)
    tooltip = "".join(f"{format_event(event)}\n" for event in ordered)

    upcoming = select_next(ordered, now)
    if upcoming is None:
        return BarItem(text="", tooltip=tooltip)

    return BarItem(text=format_event(upcoming), tooltip=tooltip)
