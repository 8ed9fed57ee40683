"""Data models for lesson aggregation and cache sync."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional


# Column order of the persisted lessons cache
CACHE_COLUMNS = [
    'eventID',
    'eventName',
    'start',
    'end',
    'folderKey',
    'studentNames',
    'pdfUploaded',
    'historyRecorded',
    'evaluationReady',
    'evaluationDue',
    'isOnline',
    'teacher',
]

STUDENT_NAME_SEPARATOR = ', '


@dataclass(frozen=True)
class RawEvent:
    """Calendar event as fetched from a calendar source."""
    event_id: str
    title: str
    description: str
    start: datetime
    end: datetime
    color_tag: Optional[str]
    calendar_id: str = ''


@dataclass(frozen=True)
class RosterEntry:
    """One student row of the roster table."""
    student_name: str
    folder_key: str
    note_url: str = ''
    history_url: str = ''


@dataclass(frozen=True)
class ResolvedName:
    """Student name resolved from an event title."""
    student_name: str
    folder_key: str


@dataclass(frozen=True)
class TagEffect:
    """Requested change of an event's color tag."""
    event_id: str
    calendar_id: str
    color_tag: str


@dataclass
class Classification:
    """Result of classifying a single raw event."""
    include: bool
    evaluation_ready: bool = False
    evaluation_due: bool = False
    teacher: str = ''
    effects: List[TagEffect] = field(default_factory=list)


@dataclass
class Occurrence:
    """One student's participation in one lesson event."""
    event_id: str
    event_name: str
    start: str
    end: str
    student_name: str
    folder_key: str
    evaluation_ready: bool
    evaluation_due: bool
    teacher: str
    is_online: bool


def _as_bool(value) -> bool:
    """Normalize a stored flag, accepting booleans and 'TRUE'/'false' strings."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == 'true'


@dataclass
class LessonRecord:
    """Per-event aggregate persisted in the lessons cache."""
    event_id: str
    event_name: str
    start: str
    end: str
    folder_key: str
    student_names: List[str]
    pdf_uploaded: bool = False
    history_recorded: bool = False
    evaluation_ready: bool = False
    evaluation_due: bool = False
    is_online: bool = False
    teacher: str = ''

    def to_row(self) -> list:
        """Render the record in CACHE_COLUMNS order."""
        return [
            self.event_id,
            self.event_name,
            self.start,
            self.end,
            self.folder_key,
            STUDENT_NAME_SEPARATOR.join(self.student_names),
            self.pdf_uploaded,
            self.history_recorded,
            self.evaluation_ready,
            self.evaluation_due,
            self.is_online,
            self.teacher,
        ]

    @classmethod
    def from_row(cls, row: dict) -> 'LessonRecord':
        """
        Build a record from a column-keyed cache row.

        Raises:
            KeyError: If the row carries no eventID
        """
        names = str(row.get('studentNames') or '')
        return cls(
            event_id=str(row['eventID']),
            event_name=str(row.get('eventName') or ''),
            start=str(row.get('start') or ''),
            end=str(row.get('end') or ''),
            folder_key=str(row.get('folderKey') or ''),
            student_names=[n for n in names.split(STUDENT_NAME_SEPARATOR) if n],
            pdf_uploaded=_as_bool(row.get('pdfUploaded', False)),
            history_recorded=_as_bool(row.get('historyRecorded', False)),
            evaluation_ready=_as_bool(row.get('evaluationReady', False)),
            evaluation_due=_as_bool(row.get('evaluationDue', False)),
            is_online=_as_bool(row.get('isOnline', False)),
            teacher=str(row.get('teacher') or ''),
        )


@dataclass(frozen=True)
class LessonStatus:
    """Operator-set completion flags of one cached lesson."""
    event_id: str
    pdf_uploaded: bool
    history_recorded: bool


@dataclass
class SyncResult:
    """Result of a cache sync run."""
    target_date: date
    events_fetched: int
    events_included: int
    lessons_written: int
    effects_applied: int
    effects_failed: int
    lessons: List[LessonRecord] = field(default_factory=list)
