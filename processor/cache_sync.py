"""Orchestration of the lessons cache sync."""
import logging
from datetime import date, datetime, time, timedelta, tzinfo
from typing import List, Union

from processor.event_classifier import EventClassifier
from processor.exceptions import BestEffortFailure
from processor.lesson_grouper import LessonGrouper
from processor.models import CACHE_COLUMNS, LessonRecord, RawEvent, SyncResult, TagEffect
from processor.name_resolver import NameResolver
from processor.occurrence_expander import OccurrenceExpander
from processor.status_merger import StatusMerger

logger = logging.getLogger(__name__)


DateOverride = Union[date, datetime, str, None]

OVERRIDE_DATE_FORMATS = [
    '%d/%m/%Y',  # 15/07/2025
    '%Y-%m-%d',  # ISO 8601
]


def resolve_target_date(date_override: DateOverride, tz: tzinfo) -> date:
    """
    Determine the day to sync.

    Args:
        date_override: A date, a datetime, a "DD/MM/YYYY" or "YYYY-MM-DD"
            string, or None for today
        tz: Deployment time zone defining "today"

    Returns:
        Target calendar date
    """
    if isinstance(date_override, datetime):
        if date_override.tzinfo is not None:
            return date_override.astimezone(tz).date()
        return date_override.date()
    if isinstance(date_override, date):
        return date_override

    if isinstance(date_override, str) and date_override.strip():
        for fmt in OVERRIDE_DATE_FORMATS:
            try:
                return datetime.strptime(date_override.strip(), fmt).date()
            except ValueError:
                continue
        logger.warning(f"Unrecognized date override '{date_override}', using today")

    return datetime.now(tz).date()


def day_bounds(target_date: date, tz: tzinfo):
    """Return the (start, end) datetimes of a whole day in the given zone."""
    day_start = datetime.combine(target_date, time.min, tzinfo=tz)
    return day_start, day_start + timedelta(days=1)


class CacheSync:
    """Pipeline syncing one day of lesson events into the lessons cache."""

    def __init__(self, calendar_client, roster_client, cache_store,
                 calendar_ids: List[str], tz: tzinfo):
        """
        Initialize the sync.

        Args:
            calendar_client: Calendar source (get_calendar, list_events,
                set_event_tag)
            roster_client: Roster table (list_entries)
            cache_store: Lessons cache (read_snapshot, replace_snapshot)
            calendar_ids: Calendars to fetch, in order
            tz: Deployment time zone
        """
        self.calendar_client = calendar_client
        self.roster_client = roster_client
        self.cache_store = cache_store
        self.calendar_ids = list(calendar_ids)
        self.tz = tz
        self.classifier = EventClassifier()
        self.grouper = LessonGrouper()
        self.merger = StatusMerger()

    def read_previous_snapshot(self) -> List[LessonRecord]:
        """Read the previous snapshot, treating any failure as no prior records."""
        try:
            previous = self.cache_store.read_snapshot()
        except Exception as e:
            logger.warning(f"No existing statuses or error reading cache: {e}")
            return []
        logger.info(f"Loaded {len(previous)} existing statuses")
        return previous

    def fetch_events(self, target_date: date) -> List[RawEvent]:
        """
        Fetch the target day's events from every configured calendar.

        Every calendar is verified before any is fetched.

        Raises:
            ConfigurationError: If a configured calendar cannot be resolved
            TransientExternalError: If a fetch fails
        """
        for calendar_id in self.calendar_ids:
            self.calendar_client.get_calendar(calendar_id)

        day_start, day_end = day_bounds(target_date, self.tz)
        events = []
        for calendar_id in self.calendar_ids:
            fetched = self.calendar_client.list_events(calendar_id, day_start, day_end)
            logger.info(f"Fetched {len(fetched)} events from {calendar_id}")
            events.extend(fetched)
        return events

    def apply_effects(self, effects: List[TagEffect]):
        """
        Apply requested recolors. Failures are logged and counted only.

        Returns:
            Tuple of (applied, failed) counts
        """
        applied = 0
        failed = 0
        for effect in effects:
            try:
                self.calendar_client.set_event_tag(
                    effect.calendar_id, effect.event_id, effect.color_tag
                )
                applied += 1
            except BestEffortFailure as e:
                failed += 1
                logger.warning(f"Error changing event color: {e}")
        return applied, failed

    def run(self, date_override: DateOverride = None) -> SyncResult:
        """
        Run the sync for one day and replace the cached snapshot.

        Nothing is written unless every calendar and the roster were read
        successfully.

        Args:
            date_override: Day to sync (default: today)

        Returns:
            SyncResult carrying the written lessons
        """
        logger.info("Lessons cache sync started")

        previous = self.read_previous_snapshot()

        target_date = resolve_target_date(date_override, self.tz)
        logger.info(f"Target date: {target_date.isoformat()}")

        events = self.fetch_events(target_date)
        roster = self.roster_client.list_entries()

        expander = OccurrenceExpander(
            NameResolver.from_entries(roster), self.tz, classifier=self.classifier
        )
        occurrences, effects, included = expander.expand_events(events)
        lessons = self.grouper.group(occurrences)
        lessons = self.merger.merge(lessons, previous)

        applied, failed = self.apply_effects(effects)

        written = self.cache_store.replace_snapshot(
            CACHE_COLUMNS, [lesson.to_row() for lesson in lessons]
        )

        logger.info(
            f"Lessons cache sync complete: {len(events)} events fetched, "
            f"{included} included, {written} lessons written"
        )
        return SyncResult(
            target_date=target_date,
            events_fetched=len(events),
            events_included=included,
            lessons_written=written,
            effects_applied=applied,
            effects_failed=failed,
            lessons=lessons
        )
