"""Unit tests for LessonGrouper."""
from processor.lesson_grouper import LessonGrouper
from processor.models import Occurrence


def make_occurrence(event_id, student_name, **overrides):
    fields = dict(
        event_id=event_id,
        event_name=f'{event_id} lesson',
        start='10:00',
        end='10:50',
        student_name=student_name,
        folder_key=f'{event_id}-folder',
        evaluation_ready=False,
        evaluation_due=False,
        teacher='',
        is_online=False
    )
    fields.update(overrides)
    return Occurrence(**fields)


class TestLessonGrouper:
    """Test cases for LessonGrouper class."""

    def test_groups_by_event_preserving_order(self):
        """Test first-seen order of events and of students."""
        occurrences = [
            make_occurrence('b', 'Taro'),
            make_occurrence('a', 'Ken'),
            make_occurrence('b', 'Hanako'),
            make_occurrence('b', 'Jiro'),
        ]

        lessons = LessonGrouper().group(occurrences)

        assert [lesson.event_id for lesson in lessons] == ['b', 'a']
        assert lessons[0].student_names == ['Taro', 'Hanako', 'Jiro']
        assert lessons[1].student_names == ['Ken']

    def test_evaluation_flags_are_or_ed(self):
        """Test that any occurrence setting a flag marks the lesson."""
        occurrences = [
            make_occurrence('a', 'Taro'),
            make_occurrence('a', 'Hanako', evaluation_ready=True),
            make_occurrence('a', 'Jiro', evaluation_due=True),
            make_occurrence('a', 'Ken'),
        ]

        lesson = LessonGrouper().group(occurrences)[0]

        assert lesson.evaluation_ready is True
        assert lesson.evaluation_due is True

    def test_first_non_empty_teacher_wins(self):
        """Test teacher aggregation."""
        occurrences = [
            make_occurrence('a', 'Taro'),
            make_occurrence('a', 'Hanako', teacher='Emma'),
            make_occurrence('a', 'Jiro', teacher='Liam'),
            make_occurrence('a', 'Ken', teacher=''),
        ]

        lesson = LessonGrouper().group(occurrences)[0]

        assert lesson.teacher == 'Emma'

    def test_other_fields_come_from_first_occurrence(self):
        """Test that per-event fields are taken from the first occurrence."""
        occurrences = [
            make_occurrence('a', 'Taro', folder_key='M01', is_online=True),
            make_occurrence('a', 'Hanako', folder_key='', is_online=True),
        ]

        lesson = LessonGrouper().group(occurrences)[0]

        assert lesson.folder_key == 'M01'
        assert lesson.event_name == 'a lesson'
        assert lesson.start == '10:00'
        assert lesson.end == '10:50'
        assert lesson.is_online is True
        assert lesson.pdf_uploaded is False
        assert lesson.history_recorded is False

    def test_duplicate_student_names_are_kept(self):
        """Test that repeated names within one event are not deduplicated."""
        occurrences = [
            make_occurrence('a', 'Ken Sato'),
            make_occurrence('a', 'Ken Sato'),
        ]

        lesson = LessonGrouper().group(occurrences)[0]

        assert lesson.student_names == ['Ken Sato', 'Ken Sato']

    def test_empty_input(self):
        """Test grouping nothing."""
        assert LessonGrouper().group([]) == []
