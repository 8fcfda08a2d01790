"""Google Calendar API client implementation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from gcal_auth.google.exceptions import ApiCallError
from gcal_auth.google.oauth import AuthorizedClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful listing. ``items`` may be empty."""

    items: list[T] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed listing."""

    error: ApiCallError

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True)
class CalendarSummary:
    """A calendar the user can see."""

    id: str
    display_name: str


@dataclass(frozen=True)
class EventSummary:
    """An event occurrence.

    ``start`` is the RFC 3339 start time, or ``YYYY-MM-DD`` for all-day events.
    """

    start: str
    summary: str


def _as_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes; aware ones are returned unchanged."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def format_datetime(dt: datetime) -> str:
    """Format datetime for API. Naive datetimes are taken to be UTC."""
    return _as_utc(dt).isoformat().replace("+00:00", "Z")


def _start_key(start: str) -> datetime:
    """Sort key for an event start, which may be a date or a date-time."""
    if not start:
        return datetime.min.replace(tzinfo=timezone.utc)
    return _as_utc(datetime.fromisoformat(start.replace("Z", "+00:00")))


class CalendarClient:
    """Read-only Google Calendar client.

    Both listing calls return ``Ok(items)`` or ``Err(ApiCallError)``
    instead of raising, so an empty calendar and a failed request can be
    told apart.

    Usage:
        client = CalendarClient(AuthorizationFlow(store).authorize())

        result = client.list_calendars()
        if result.ok:
            for calendar in result.items:
                print(calendar.display_name)
    """

    def __init__(self, auth: AuthorizedClient | None = None, service: Any = None) -> None:
        """Initialize Calendar client.

        Args:
            auth: Authorized client used to build the Calendar API service.
            service: Prebuilt Calendar API service (takes precedence over ``auth``).
        """
        if auth is None and service is None:
            raise ValueError("CalendarClient needs an AuthorizedClient or a service")
        self._auth = auth
        self._service = service

    def _get_service(self) -> Any:
        """Get or create Calendar API service."""
        if self._service is None:
            self._service = self._auth.build_service("calendar", "v3")
        return self._service

    def _list_all(self, resource: Any, **kwargs: Any) -> list[dict]:
        """Collect items across all result pages."""
        items: list[dict] = []
        page_token = None
        while True:
            if page_token:
                kwargs["pageToken"] = page_token
            results = resource.list(**kwargs).execute()
            items.extend(results.get("items", []))
            page_token = results.get("nextPageToken")
            if not page_token:
                return items

    # =========================================================================
    # Calendars
    # =========================================================================

    def list_calendars(self) -> Ok[CalendarSummary] | Err:
        """List all calendars on the user's calendar list."""
        try:
            items = self._list_all(self._get_service().calendarList())
        except Exception as e:
            logger.error(f"Error fetching calendars: {e}")
            return Err(ApiCallError("list calendars", e))

        return Ok([self._parse_calendar(item) for item in items])

    def _parse_calendar(self, data: dict) -> CalendarSummary:
        return CalendarSummary(
            id=data["id"],
            display_name=data.get("summaryOverride") or data.get("summary", ""),
        )

    # =========================================================================
    # Events
    # =========================================================================

    def list_events(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
    ) -> Ok[EventSummary] | Err:
        """List events in a calendar between ``start`` and ``end``.

        Recurring events are expanded into single occurrences.

        Args:
            calendar_id: Calendar ID or "primary" for the main calendar.
            start: Start of the window (inclusive).
            end: End of the window (exclusive).

        Returns:
            Ok with events ordered by start time, or Err.
        """
        start = _as_utc(start)
        end = _as_utc(end)
        if start >= end:
            raise ValueError(f"start ({start}) must be before end ({end})")

        try:
            items = self._list_all(
                self._get_service().events(),
                calendarId=calendar_id,
                timeMin=format_datetime(start),
                timeMax=format_datetime(end),
                singleEvents=True,
                orderBy="startTime",
            )
            events = [self._parse_event(item) for item in items]
            events.sort(key=lambda event: _start_key(event.start))
        except Exception as e:
            logger.error(f"Error fetching events: {e}")
            return Err(ApiCallError("list events", e))

        return Ok(events)

    def _parse_event(self, data: dict) -> EventSummary:
        start_data = data.get("start", {})
        return EventSummary(
            start=start_data.get("dateTime") or start_data.get("date", ""),
            summary=data.get("summary", "(no title)"),
        )
