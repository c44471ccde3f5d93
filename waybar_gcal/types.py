"""Calendar data types."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional


@dataclass(slots=True)
class CalendarInfo:
    """Google Calendar metadata."""

    id: str
    summary: str  # Display name
    description: Optional[str] = None
    is_primary: bool = False
    access_role: str = "reader"  # "owner", "writer", "reader", "freeBusyReader"


@dataclass(slots=True)
class CalendarEvent:
    """Google Calendar event."""

    id: str
    calendar_id: str
    summary: str  # Event title
    start: datetime  # Timezone-aware, in the offset the API returned
    end: datetime

    is_all_day: bool = False
    status: str = "confirmed"  # "confirmed", "tentative", "cancelled"
    recurring_event_id: Optional[str] = None


@dataclass(slots=True)
class CalendarListResponse:
    """Response from listing calendars."""

    calendars: List[CalendarInfo]
    next_page_token: Optional[str] = None


@dataclass(slots=True)
class EventListResponse:
    """Response from listing events."""

    events: List[CalendarEvent]
    next_page_token: Optional[str] = None
