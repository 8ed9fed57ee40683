"""Fold per-student occurrences back into per-event lesson records."""
import logging
from typing import Dict, List

from processor.models import LessonRecord, Occurrence

logger = logging.getLogger(__name__)


class LessonGrouper:
    """Grouper for student occurrences."""

    def group(self, occurrences: List[Occurrence]) -> List[LessonRecord]:
        """
        Group occurrences into one LessonRecord per event.

        Event order and student order follow first appearance. Evaluation
        flags are OR-ed across the group; the first non-empty teacher wins;
        every other field comes from the event's first occurrence.

        Args:
            occurrences: Occurrences in expansion order

        Returns:
            Lesson records in first-seen event order
        """
        grouped: Dict[str, LessonRecord] = {}

        for item in occurrences:
            lesson = grouped.get(item.event_id)
            if lesson is None:
                grouped[item.event_id] = LessonRecord(
                    event_id=item.event_id,
                    event_name=item.event_name,
                    start=item.start,
                    end=item.end,
                    folder_key=item.folder_key,
                    student_names=[item.student_name],
                    evaluation_ready=item.evaluation_ready,
                    evaluation_due=item.evaluation_due,
                    is_online=item.is_online,
                    teacher=item.teacher
                )
                continue

            lesson.student_names.append(item.student_name)
            if item.evaluation_ready:
                lesson.evaluation_ready = True
            if item.evaluation_due:
                lesson.evaluation_due = True
            if not lesson.teacher and item.teacher:
                lesson.teacher = item.teacher

        lessons = list(grouped.values())
        logger.info(f"Grouped {len(occurrences)} occurrences into {len(lessons)} lessons")
        return lessons
