"""Classifier deciding which calendar events are billable lessons."""
import logging
import re

from processor.models import Classification, RawEvent, TagEffect

logger = logging.getLogger(__name__)


# Titles containing these words are staff or break slots, not lessons
EXCLUDED_TITLE_PATTERNS = (
    re.compile(r'break', re.IGNORECASE),
    re.compile(r'teacher', re.IGNORECASE),
)

# Color tags marking cancelled or rescheduled lessons:
# banana (5), graphite (8), and the reserved tag 9
CANCELLED_COLOR_TAGS = frozenset({'5', '8', '9'})

EVALUATION_READY_MARKER = '#evaluationReady'
EVALUATION_DUE_MARKER = '#evaluationDue'
TEACHER_TAG_PATTERN = re.compile(r'#teacher(\w+)', re.IGNORECASE)

# Recolor targets applied after classification
EVALUATION_READY_COLOR = '10'  # basil (green)
EVALUATION_DUE_COLOR = '11'    # tomato (red)


class EventClassifier:
    """Classifier for raw calendar events."""

    def is_excluded_title(self, title: str) -> bool:
        """Check whether the title marks a break or teacher slot."""
        return any(pattern.search(title) for pattern in EXCLUDED_TITLE_PATTERNS)

    def is_cancelled(self, color_tag) -> bool:
        """Check whether the color tag marks a cancelled or rescheduled lesson."""
        return color_tag is not None and str(color_tag) in CANCELLED_COLOR_TAGS

    def extract_teacher(self, description: str) -> str:
        """Return the token following '#teacher', or an empty string."""
        match = TEACHER_TAG_PATTERN.search(description)
        return match.group(1) if match else ''

    def classify(self, event: RawEvent) -> Classification:
        """
        Classify a single raw event.

        The classifier performs no I/O; recoloring requested by evaluation
        markers is returned as TagEffect entries for the caller to apply.

        Args:
            event: Raw calendar event

        Returns:
            Classification with include flag, tags, and requested effects
        """
        title = event.title or ''

        if self.is_excluded_title(title):
            logger.debug(f"Excluding non-lesson event '{title}'")
            return Classification(include=False)

        if self.is_cancelled(event.color_tag):
            logger.debug(
                f"Excluding cancelled event '{title}' (color {event.color_tag})"
            )
            return Classification(include=False)

        description = event.description or ''
        evaluation_ready = EVALUATION_READY_MARKER in description
        evaluation_due = EVALUATION_DUE_MARKER in description

        effects = []
        if evaluation_ready:
            effects.append(TagEffect(
                event_id=event.event_id,
                calendar_id=event.calendar_id,
                color_tag=EVALUATION_READY_COLOR
            ))
        elif evaluation_due:
            effects.append(TagEffect(
                event_id=event.event_id,
                calendar_id=event.calendar_id,
                color_tag=EVALUATION_DUE_COLOR
            ))

        return Classification(
            include=True,
            evaluation_ready=evaluation_ready,
            evaluation_due=evaluation_due,
            teacher=self.extract_teacher(description),
            effects=effects
        )
