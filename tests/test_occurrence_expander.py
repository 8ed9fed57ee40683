"""Unit tests for OccurrenceExpander."""
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from processor.event_classifier import EventClassifier
from processor.models import Classification, RawEvent, RosterEntry
from processor.name_resolver import NameResolver
from processor.occurrence_expander import OccurrenceExpander, format_time, is_online_title

TOKYO = ZoneInfo('Asia/Tokyo')


def make_event(event_id, title, description='', color_tag=None):
    start = datetime(2025, 7, 15, 10, 0, tzinfo=TOKYO)
    return RawEvent(
        event_id=event_id,
        title=title,
        description=description,
        start=start,
        end=start + timedelta(minutes=50),
        color_tag=color_tag,
        calendar_id='main@example.com'
    )


def make_expander(entries=()):
    return OccurrenceExpander(NameResolver.from_entries(entries), TOKYO)


class TestHelpers:
    """Test cases for module helpers."""

    def test_is_online_title(self):
        """Test recognition of the two medium tags."""
        assert is_online_title('Ken Sato (Online)') is True
        assert is_online_title('Ken Sato ( cafe )') is True
        assert is_online_title('Ken Sato (Shibuya)') is False
        assert is_online_title('Online Ken Sato') is False

    def test_format_time_converts_zone(self):
        """Test that times are rendered in the deployment zone."""
        value = datetime(2025, 7, 15, 1, 5, tzinfo=timezone.utc)

        assert format_time(value, TOKYO) == '10:05'

    def test_format_time_naive(self):
        """Test that naive datetimes are taken as local."""
        assert format_time(datetime(2025, 7, 15, 9, 30), TOKYO) == '09:30'


class TestOccurrenceExpander:
    """Test cases for OccurrenceExpander class."""

    def test_expands_one_occurrence_per_student(self):
        """Test the multi-student scenario with a cafe tag."""
        expander = make_expander()
        event = make_event('abc', 'Yamada Taro and Yamada Hanako (Cafe)',
                           description='#teacherEmma')
        classification = EventClassifier().classify(event)

        occurrences = expander.expand(event, classification)

        assert [o.student_name for o in occurrences] == ['Yamada Taro', 'Yamada Hanako']
        for occurrence in occurrences:
            assert occurrence.event_id == 'abc'
            assert occurrence.event_name == 'Yamada Taro and Yamada Hanako (Cafe)'
            assert occurrence.start == '10:00'
            assert occurrence.end == '10:50'
            assert occurrence.is_online is True
            assert occurrence.teacher == 'Emma'

    def test_excluded_event_yields_nothing(self):
        """Test that an excluded classification produces no occurrences."""
        expander = make_expander()
        event = make_event('abc', 'Ken Sato')

        assert expander.expand(event, Classification(include=False)) == []

    def test_expand_events_collects_effects_and_counts(self):
        """Test batch expansion over included and excluded events."""
        expander = make_expander([
            RosterEntry(student_name='Ken Sato', folder_key='K03 Ken Sato')
        ])
        events = [
            make_event('e1', 'Ken Sato', description='#evaluationDue'),
            make_event('e2', 'Teacher Meeting'),
            make_event('e3', 'Taro and Hanako Yamada (Online)'),
            make_event('e4', 'Mary Jones', color_tag='8'),
        ]

        occurrences, effects, included = expander.expand_events(events)

        assert included == 2
        assert [(o.event_id, o.student_name) for o in occurrences] == [
            ('e1', 'Ken Sato'),
            ('e3', 'Taro Yamada'),
            ('e3', 'Hanako Yamada'),
        ]
        assert occurrences[0].folder_key == 'K03 Ken Sato'
        assert [e.event_id for e in effects] == ['e1']

    def test_malformed_event_is_skipped(self):
        """Test that one broken event does not block the batch."""
        expander = make_expander()
        broken = RawEvent(
            event_id='bad',
            title='Ken Sato',
            description='',
            start=None,
            end=None,
            color_tag=None
        )
        events = [broken, make_event('good', 'Mary Jones')]

        occurrences, effects, included = expander.expand_events(events)

        assert [o.event_id for o in occurrences] == ['good']
        assert included == 1
