"""Expand lesson events into per-student occurrences."""
import logging
import re
from datetime import datetime, tzinfo
from typing import List

from processor.event_classifier import EventClassifier
from processor.models import Classification, Occurrence, RawEvent, TagEffect
from processor.name_resolver import NameResolver

logger = logging.getLogger(__name__)


ONLINE_TAG_PATTERN = re.compile(r'\(\s*(Cafe|Online)\s*\)', re.IGNORECASE)
TIME_FORMAT = '%H:%M'


def is_online_title(title: str) -> bool:
    """Check whether the title carries a (Cafe) or (Online) medium tag."""
    return bool(ONLINE_TAG_PATTERN.search(title))


def format_time(value: datetime, tz: tzinfo) -> str:
    """
    Render a datetime as HH:MM in the given time zone.

    Naive datetimes are taken to already be in that zone.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    return value.astimezone(tz).strftime(TIME_FORMAT)


class OccurrenceExpander:
    """Expander emitting one Occurrence per student of an event."""

    def __init__(self, resolver: NameResolver, tz: tzinfo,
                 classifier: EventClassifier = None):
        """
        Initialize the expander.

        Args:
            resolver: Name resolver bound to the current roster
            tz: Time zone used to render start and end times
            classifier: Event classifier (default: EventClassifier())
        """
        self.resolver = resolver
        self.tz = tz
        self.classifier = classifier or EventClassifier()

    def expand(self, event: RawEvent,
               classification: Classification) -> List[Occurrence]:
        """
        Expand a classified event into student occurrences.

        Args:
            event: Raw calendar event
            classification: Classifier output for the event

        Returns:
            Occurrences in title order; empty for excluded events
        """
        if not classification.include:
            return []

        title = event.title or ''
        start = format_time(event.start, self.tz)
        end = format_time(event.end, self.tz)
        is_online = is_online_title(title)

        occurrences = [
            Occurrence(
                event_id=event.event_id,
                event_name=title,
                start=start,
                end=end,
                student_name=resolved.student_name,
                folder_key=resolved.folder_key,
                evaluation_ready=classification.evaluation_ready,
                evaluation_due=classification.evaluation_due,
                teacher=classification.teacher,
                is_online=is_online
            )
            for resolved in self.resolver.resolve(title)
        ]

        if not occurrences:
            logger.warning(f"No student names found in event '{title}'")
        return occurrences

    def expand_events(self, events: List[RawEvent]):
        """
        Classify and expand a batch of events.

        An event that fails to expand is logged and skipped so that the rest
        of the batch still syncs.

        Args:
            events: Raw events in fetch order

        Returns:
            Tuple of (occurrences, effects, included event count)
        """
        occurrences = []
        effects: List[TagEffect] = []
        included = 0

        for event in events:
            try:
                classification = self.classifier.classify(event)
                expanded = self.expand(event, classification)
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Failed to expand event '{event.title}': {e}")
                continue

            if not classification.include:
                continue
            included += 1
            effects.extend(classification.effects)
            occurrences.extend(expanded)

        logger.info(
            f"Expanded {included} lesson events out of {len(events)} into "
            f"{len(occurrences)} student occurrences"
        )
        return occurrences, effects, included
