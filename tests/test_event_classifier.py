"""Unit tests for EventClassifier."""
from datetime import datetime, timezone

import pytest

from processor.event_classifier import (
    EVALUATION_DUE_COLOR,
    EVALUATION_READY_COLOR,
    EventClassifier,
)
from processor.models import RawEvent, TagEffect


def make_event(title='Ken Sato', description='', color_tag=None):
    return RawEvent(
        event_id='evt-1',
        title=title,
        description=description,
        start=datetime(2025, 7, 15, 1, 0, tzinfo=timezone.utc),
        end=datetime(2025, 7, 15, 2, 0, tzinfo=timezone.utc),
        color_tag=color_tag,
        calendar_id='main@example.com'
    )


class TestEventClassifier:
    """Test cases for EventClassifier class."""

    def test_regular_lesson_is_included(self):
        """Test that a plain lesson is included with default tags."""
        classification = EventClassifier().classify(make_event())

        assert classification.include is True
        assert classification.evaluation_ready is False
        assert classification.evaluation_due is False
        assert classification.teacher == ''
        assert classification.effects == []

    @pytest.mark.parametrize('title', [
        'Teacher Meeting',
        'Lunch Break',
        'BREAK',
        'teachers only',
    ])
    def test_break_and_teacher_titles_are_excluded(self, title):
        """Test exclusion of staff and break slots."""
        classification = EventClassifier().classify(make_event(title=title))

        assert classification.include is False

    @pytest.mark.parametrize('color_tag', ['5', '8', '9'])
    def test_cancelled_colors_are_excluded(self, color_tag):
        """Test that cancelled/rescheduled colors exclude lesson-like titles."""
        classification = EventClassifier().classify(
            make_event(title='Yamada Taro (Online)', color_tag=color_tag)
        )

        assert classification.include is False

    @pytest.mark.parametrize('color_tag', [None, '1', '10', '11'])
    def test_other_colors_are_included(self, color_tag):
        """Test that other colors do not exclude the event."""
        classification = EventClassifier().classify(make_event(color_tag=color_tag))

        assert classification.include is True

    def test_evaluation_ready_requests_green(self):
        """Test evaluation ready marker and its recolor effect."""
        classification = EventClassifier().classify(
            make_event(description='Unit 4\n#evaluationReady')
        )

        assert classification.evaluation_ready is True
        assert classification.evaluation_due is False
        assert classification.effects == [
            TagEffect('evt-1', 'main@example.com', EVALUATION_READY_COLOR)
        ]

    def test_evaluation_due_requests_red(self):
        """Test evaluation due marker and its recolor effect."""
        classification = EventClassifier().classify(
            make_event(description='#evaluationDue')
        )

        assert classification.evaluation_due is True
        assert classification.effects == [
            TagEffect('evt-1', 'main@example.com', EVALUATION_DUE_COLOR)
        ]

    def test_ready_wins_when_both_markers_present(self):
        """Test that only one recolor is requested."""
        classification = EventClassifier().classify(
            make_event(description='#evaluationDue #evaluationReady')
        )

        assert classification.evaluation_ready is True
        assert classification.evaluation_due is True
        assert [e.color_tag for e in classification.effects] == [EVALUATION_READY_COLOR]

    def test_markers_are_case_sensitive(self):
        """Test that marker matching is exact."""
        classification = EventClassifier().classify(
            make_event(description='#evaluationready')
        )

        assert classification.evaluation_ready is False
        assert classification.effects == []

    def test_teacher_tag_is_extracted(self):
        """Test extraction of the teacher token."""
        classification = EventClassifier().classify(
            make_event(description='notes #TeacherEmma, room 2')
        )

        assert classification.teacher == 'Emma'

    def test_missing_description_degrades(self):
        """Test that a None description is treated as empty."""
        event = RawEvent(
            event_id='evt-2',
            title='Ken Sato',
            description=None,
            start=datetime(2025, 7, 15, 1, 0, tzinfo=timezone.utc),
            end=datetime(2025, 7, 15, 2, 0, tzinfo=timezone.utc),
            color_tag=None
        )

        classification = EventClassifier().classify(event)

        assert classification.include is True
        assert classification.teacher == ''
