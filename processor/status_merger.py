"""Carry operator-set lesson flags over from the previous cache snapshot."""
import logging
from dataclasses import replace
from typing import Iterable, List

from processor.models import LessonRecord

logger = logging.getLogger(__name__)


class StatusMerger:
    """Merger reconciling fresh lessons with the previous snapshot."""

    def merge(self, lessons: List[LessonRecord],
              previous: Iterable[LessonRecord]) -> List[LessonRecord]:
        """
        Restore pdf_uploaded and history_recorded by event_id.

        Lessons absent from the previous snapshot keep their defaults. Inputs
        are not modified.

        Args:
            lessons: Freshly grouped lessons
            previous: Records of the previous snapshot (may be empty)

        Returns:
            New list of merged lessons in the same order
        """
        previous_by_id = {record.event_id: record for record in previous}

        merged = []
        carried = 0
        for lesson in lessons:
            old = previous_by_id.get(lesson.event_id)
            if old is None:
                merged.append(replace(lesson, student_names=list(lesson.student_names)))
                continue
            carried += 1
            merged.append(replace(
                lesson,
                student_names=list(lesson.student_names),
                pdf_uploaded=old.pdf_uploaded,
                history_recorded=old.history_recorded
            ))

        logger.info(
            f"Carried statuses for {carried} of {len(lessons)} lessons "
            f"from {len(previous_by_id)} previous records"
        )
        return merged
