"""Google Calendar client for fetching and tagging lesson events."""
import logging
from datetime import datetime, tzinfo
from typing import List, Optional
from urllib.parse import quote

from bs4 import BeautifulSoup
import requests

from processor.exceptions import (
    BestEffortFailure,
    ConfigurationError,
    TransientExternalError,
)
from processor.models import RawEvent

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """Client for the Google Calendar v3 REST API."""

    BASE_URL = "https://www.googleapis.com/calendar/v3"
    PAGE_SIZE = 250

    def __init__(self, access_token: str, tz: tzinfo, timeout: int = 30,
                 session: Optional[requests.Session] = None):
        """
        Initialize the calendar client.

        Args:
            access_token: OAuth bearer token with calendar scope
            tz: Deployment time zone, used for all-day events
            timeout: HTTP request timeout in seconds (default: 30)
            session: Optional requests session to reuse
        """
        self.tz = tz
        self.timeout = timeout
        self.session = session or requests.Session()
        if access_token:
            self.session.headers['Authorization'] = f"Bearer {access_token}"

    def _calendar_url(self, calendar_id: str) -> str:
        return f"{self.BASE_URL}/calendars/{quote(calendar_id, safe='')}"

    def get_calendar(self, calendar_id: str) -> dict:
        """
        Fetch calendar metadata, confirming the calendar is reachable.

        Args:
            calendar_id: Calendar identifier

        Returns:
            Calendar resource dictionary

        Raises:
            ConfigurationError: If the calendar does not exist or is not shared
            TransientExternalError: On any other request failure
        """
        try:
            response = self.session.get(
                self._calendar_url(calendar_id),
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise TransientExternalError(
                f"Failed to look up calendar {calendar_id}: {e}"
            ) from e

        if response.status_code in (403, 404):
            raise ConfigurationError(f"Calendar not found: {calendar_id}")
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise TransientExternalError(
                f"Failed to look up calendar {calendar_id}: {e}"
            ) from e
        return response.json()

    def list_events(self, calendar_id: str, day_start: datetime,
                    day_end: datetime) -> List[RawEvent]:
        """
        Fetch the events of one calendar within a time range.

        Recurring events are expanded into single instances and cancelled
        instances are dropped.

        Args:
            calendar_id: Calendar identifier
            day_start: Inclusive range start (timezone-aware)
            day_end: Exclusive range end (timezone-aware)

        Returns:
            List of RawEvent objects ordered by start time

        Raises:
            TransientExternalError: If any page request fails
        """
        logger.info(
            f"Fetching events for calendar {calendar_id} "
            f"from {day_start.isoformat()} to {day_end.isoformat()}"
        )
        params = {
            'timeMin': day_start.isoformat(),
            'timeMax': day_end.isoformat(),
            'singleEvents': 'true',
            'orderBy': 'startTime',
            'maxResults': self.PAGE_SIZE,
        }

        items = []
        while True:
            try:
                response = self.session.get(
                    f"{self._calendar_url(calendar_id)}/events",
                    params=params,
                    timeout=self.timeout
                )
                response.raise_for_status()
            except requests.RequestException as e:
                logger.error(f"Failed to fetch events for calendar {calendar_id}: {e}")
                raise TransientExternalError(
                    f"Failed to fetch events for calendar {calendar_id}: {e}"
                ) from e

            payload = response.json()
            items.extend(payload.get('items', []))
            page_token = payload.get('nextPageToken')
            if not page_token:
                break
            params['pageToken'] = page_token

        events = []
        for item in items:
            if item.get('status') == 'cancelled':
                continue
            try:
                events.append(self._item_to_raw_event(item, calendar_id))
            except (KeyError, ValueError) as e:
                logger.warning(f"Failed to parse calendar item {item.get('id')}: {e}")
                continue

        logger.info(f"Fetched {len(events)} events from calendar {calendar_id}")
        return events

    def set_event_tag(self, calendar_id: str, event_id: str, color_tag: str) -> None:
        """
        Change the color tag of an event.

        Args:
            calendar_id: Calendar holding the event
            event_id: Event identifier
            color_tag: Google Calendar colorId

        Raises:
            BestEffortFailure: If the update request fails
        """
        url = f"{self._calendar_url(calendar_id)}/events/{quote(event_id, safe='')}"
        try:
            response = self.session.patch(
                url,
                json={'colorId': color_tag},
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise BestEffortFailure(
                f"Failed to set color {color_tag} on event {event_id}: {e}"
            ) from e
        logger.info(f"Changed event color to {color_tag} for event: {event_id}")

    def _item_to_raw_event(self, item: dict, calendar_id: str) -> RawEvent:
        """
        Convert a Calendar API event resource to a RawEvent.

        Raises:
            KeyError: If the item lacks an id, start or end
            ValueError: If a date cannot be parsed
        """
        return RawEvent(
            event_id=item['id'],
            title=item.get('summary', ''),
            description=self._description_text(item.get('description', '')),
            start=self._parse_time(item['start']),
            end=self._parse_time(item['end']),
            color_tag=item.get('colorId'),
            calendar_id=calendar_id
        )

    def _parse_time(self, value: dict) -> datetime:
        """
        Parse a Calendar API start/end object.

        Timed events carry 'dateTime'; all-day events carry only 'date' and
        are placed at midnight in the deployment time zone.
        """
        if 'dateTime' in value:
            text = value['dateTime']
            if text.endswith('Z'):
                text = text[:-1] + '+00:00'
            parsed = datetime.fromisoformat(text)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=self.tz)
            return parsed
        return datetime.strptime(value['date'], '%Y-%m-%d').replace(tzinfo=self.tz)

    def _description_text(self, description: str) -> str:
        """Flatten an HTML event description to plain text."""
        if not description:
            return ''
        soup = BeautifulSoup(description, 'html.parser')
        return soup.get_text('\n')
