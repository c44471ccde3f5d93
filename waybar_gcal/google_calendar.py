"""Google Calendar API client."""
from __future__ import annotations

import http.client
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import List, Literal, Optional
from urllib import error as urlerror
from urllib import parse as urlparse
from urllib import request as urlrequest

from .config import Settings
from .credentials import ClientConfig, Token, read_client_config, read_token
from .oauth import access_token_for
from .types import (
    CalendarInfo,
    CalendarEvent,
    CalendarListResponse,
    EventListResponse,
)


logger = logging.getLogger(__name__)

CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"


class CalendarError(RuntimeError):
    """Raised when Calendar API operations fail."""


@dataclass(slots=True)
class CalendarAccount:
    """OAuth client plus stored token for one Google account."""

    client: ClientConfig
    token: Token

    # Resolved on first request, reused for the rest of the process.
    access_token: Optional[str] = None


def load_account(settings: Settings) -> CalendarAccount:
    """Read credentials.json and token.json from the config directory.

    Raises:
        ConfigError: if either file is missing or malformed.
    """
    return CalendarAccount(
        client=read_client_config(settings.credentials_path),
        token=read_token(settings.token_path),
    )


def _bearer_token(account: CalendarAccount) -> str:
    if account.access_token is None:
        account.access_token = access_token_for(account.client, account.token)
    return account.access_token


def _make_request(
    account: CalendarAccount,
    endpoint: str,
    params: Optional[dict] = None,
) -> dict:
    """Make an authenticated GET request to the Calendar API."""
    access_token = _bearer_token(account)

    url = f"{CALENDAR_API_BASE}{endpoint}"
    if params:
        url = f"{url}?{urlparse.urlencode(params)}"

    headers = {
        "Authorization": f"Bearer {access_token}",
        "Accept": "application/json",
    }
    req = urlrequest.Request(url, headers=headers, method="GET")

    try:
        with urlrequest.urlopen(req, timeout=30) as resp:
            return json.loads(resp.read().decode("utf-8"))
    except urlerror.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="ignore")
        raise CalendarError(
            f"Calendar API request failed ({exc.code}): {detail}"
        ) from exc
    except urlerror.URLError as exc:
        raise CalendarError(f"Calendar API network error: {exc}") from exc
    except (OSError, http.client.HTTPException) as exc:
        raise CalendarError(f"Calendar API connection failed: {exc!r}") from exc
    except json.JSONDecodeError as exc:
        raise CalendarError(f"Calendar API returned invalid JSON: {exc}") from exc


# ============================================================================
# Calendar List Operations
# ============================================================================


def list_calendars(
    account: CalendarAccount,
    *,
    page_token: Optional[str] = None,
) -> CalendarListResponse:
    """List one page of calendars accessible by this account."""
    params = {}
    if page_token:
        params["pageToken"] = page_token

    response = _make_request(account, "/users/me/calendarList", params=params)

    calendars = []
    for item in response.get("items", []):
        calendars.append(
            CalendarInfo(
                id=item["id"],
                summary=item.get("summary", item["id"]),
                description=item.get("description"),
                is_primary=item.get("primary", False),
                access_role=item.get("accessRole", "reader"),
            )
        )

    return CalendarListResponse(
        calendars=calendars,
        next_page_token=response.get("nextPageToken"),
    )


def list_all_calendars(account: CalendarAccount) -> List[CalendarInfo]:
    """Follow calendar list pagination to the end."""
    calendars: List[CalendarInfo] = []
    page_token = None
    while True:
        page = list_calendars(account, page_token=page_token)
        calendars.extend(page.calendars)
        page_token = page.next_page_token
        if not page_token:
            return calendars


# ============================================================================
# Event Operations
# ============================================================================


def _parse_start(data: dict) -> tuple[datetime, bool]:
    """Return the start instant and whether it is an all-day date."""
    if "dateTime" in data:
        return datetime.fromisoformat(data["dateTime"].replace("Z", "+00:00")), False
    # All-day events have date only; anchor them at local midnight.
    day = date.fromisoformat(data["date"])
    return datetime.combine(day, time.min).astimezone(), True


def _parse_event(item: dict, calendar_id: str) -> CalendarEvent:
    """Parse a Google Calendar API event response into CalendarEvent."""
    try:
        start, is_all_day = _parse_start(item.get("start", {}))
        end, _ = _parse_start(item.get("end", {}))
    except (KeyError, ValueError) as exc:
        raise CalendarError(
            f"Event {item.get('id', '?')} has an unreadable start/end: {exc}"
        ) from exc

    return CalendarEvent(
        id=item.get("id", ""),
        calendar_id=calendar_id,
        summary=item.get("summary", "(No title)"),
        start=start,
        end=end,
        is_all_day=is_all_day,
        status=item.get("status", "confirmed"),
        recurring_event_id=item.get("recurringEventId"),
    )


def list_events(
    account: CalendarAccount,
    calendar_id: str = "primary",
    *,
    time_min: datetime,
    time_max: datetime,
    single_events: bool = True,
    order_by: Literal["startTime", "updated"] = "startTime",
    page_token: Optional[str] = None,
) -> EventListResponse:
    """List one page of events from a calendar.

    Args:
        account: OAuth client and token for the account
        calendar_id: Calendar ID (or "primary")
        time_min: Lower bound (exclusive) for event end time
        time_max: Upper bound (exclusive) for event start time
        single_events: If True, expand recurring events into instances
        order_by: Sort order ("startTime" requires single_events=True)
        page_token: Token for pagination

    Returns:
        EventListResponse with events and pagination token
    """
    params = {
        "singleEvents": str(single_events).lower(),
        "timeMin": time_min.isoformat(),
        "timeMax": time_max.isoformat(),
    }

    if single_events:
        params["orderBy"] = order_by

    if page_token:
        params["pageToken"] = page_token

    encoded_id = urlparse.quote(calendar_id, safe="")
    response = _make_request(account, f"/calendars/{encoded_id}/events", params=params)

    events = []
    for item in response.get("items", []):
        # Skip cancelled events
        if item.get("status") == "cancelled":
            continue
        events.append(_parse_event(item, calendar_id))

    return EventListResponse(
        events=events,
        next_page_token=response.get("nextPageToken"),
    )


def list_events_between(
    account: CalendarAccount,
    calendar_id: str,
    time_min: datetime,
    time_max: datetime,
) -> List[CalendarEvent]:
    """Collect every single-instance event in ``[time_min, time_max)``."""
    events: List[CalendarEvent] = []
    page_token = None
    while True:
        page = list_events(
            account,
            calendar_id,
            time_min=time_min,
            time_max=time_max,
            page_token=page_token,
        )
        events.extend(page.events)
        page_token = page.next_page_token
        if not page_token:
            break

    logger.debug(f"Fetched {len(events)} events from {calendar_id}")
    return events
