"""AWS Lambda handler for the lessons cache sync."""
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from processor.cache_sync import CacheSync, DateOverride
from processor.exceptions import ConfigurationError, NotFoundError, TransientExternalError
from processor.models import SyncResult
from sources.google_calendar import GoogleCalendarClient
from sources.roster_sheet import RosterSheetClient
from storage.lesson_cache import LessonCacheStore


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


@dataclass
class SyncConfig:
    """Deployment settings read from the environment."""
    table_name: str
    calendar_ids: List[str]
    roster_csv_url: str
    access_token: str
    timezone: str
    log_level: str
    timeout_seconds: int
    region_name: Optional[str]

    @classmethod
    def from_env(cls) -> 'SyncConfig':
        """
        Read settings from environment variables.

        Calendar and roster settings are checked only by the actions that
        use them.
        """
        calendar_ids = [
            calendar_id.strip()
            for calendar_id in os.environ.get('CALENDAR_IDS', '').split(',')
            if calendar_id.strip()
        ]

        return cls(
            table_name=os.environ.get('TABLE_NAME', 'lessons-today'),
            calendar_ids=calendar_ids,
            roster_csv_url=os.environ.get('ROSTER_CSV_URL', ''),
            access_token=os.environ.get('CALENDAR_ACCESS_TOKEN', ''),
            timezone=os.environ.get('TIMEZONE', 'Asia/Tokyo'),
            log_level=os.environ.get('LOG_LEVEL', 'INFO'),
            timeout_seconds=int(os.environ.get('TIMEOUT_SECONDS', '30')),
            region_name=os.environ.get('AWS_REGION')
        )

    def require_roster(self) -> None:
        """Raise ConfigurationError if ROSTER_CSV_URL is missing."""
        if not self.roster_csv_url:
            raise ConfigurationError('ROSTER_CSV_URL is not configured')

    def require_sync_settings(self) -> None:
        """
        Check the settings a sync run needs.

        Raises:
            ConfigurationError: If CALENDAR_IDS or ROSTER_CSV_URL is missing
        """
        if not self.calendar_ids:
            raise ConfigurationError('CALENDAR_IDS is not configured')
        self.require_roster()


def build_cache_store(config: SyncConfig) -> LessonCacheStore:
    """Create the lessons cache store for a configuration."""
    return LessonCacheStore(table_name=config.table_name, region_name=config.region_name)


def build_roster_client(config: SyncConfig) -> RosterSheetClient:
    """Create the roster client for a configuration."""
    config.require_roster()
    return RosterSheetClient(
        csv_url=config.roster_csv_url,
        timeout=config.timeout_seconds
    )


def run_sync(date_override: DateOverride = None,
             config: Optional[SyncConfig] = None) -> SyncResult:
    """
    Sync one day of lessons into the cache.

    Args:
        date_override: Day to sync (date, "DD/MM/YYYY", "YYYY-MM-DD"); today if None
        config: Settings (default: read from environment)

    Returns:
        SyncResult with the written lessons
    """
    config = config or SyncConfig.from_env()
    config.require_sync_settings()
    tz = ZoneInfo(config.timezone)

    sync = CacheSync(
        calendar_client=GoogleCalendarClient(
            access_token=config.access_token,
            tz=tz,
            timeout=config.timeout_seconds
        ),
        roster_client=build_roster_client(config),
        cache_store=build_cache_store(config),
        calendar_ids=config.calendar_ids,
        tz=tz
    )
    return sync.run(date_override)


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'body': json.dumps(body, ensure_ascii=False)
    }


def _error_response(status_code: int, message: str, error: Exception,
                    start_time: float) -> Dict[str, Any]:
    return _response(status_code, {
        'message': message,
        'error': str(error),
        'error_type': type(error).__name__,
        'duration_seconds': round(time.time() - start_time, 2)
    })


def _handle_sync(event: Dict[str, Any], config: SyncConfig,
                 start_time: float) -> Dict[str, Any]:
    result = run_sync(event.get('date'), config)
    duration = time.time() - start_time

    logger = logging.getLogger(__name__)
    logger.info(
        "Lambda execution completed successfully",
        extra={
            'duration_seconds': round(duration, 2),
            'lessons_written': result.lessons_written,
            'effects_failed': result.effects_failed
        }
    )
    return _response(200, {
        'message': 'Sync completed successfully',
        'target_date': result.target_date.isoformat(),
        'statistics': {
            'events_fetched': result.events_fetched,
            'events_included': result.events_included,
            'lessons_written': result.lessons_written,
            'effects_applied': result.effects_applied,
            'effects_failed': result.effects_failed,
            'duration_seconds': round(duration, 2)
        },
        'lessons': [lesson.to_row() for lesson in result.lessons]
    })


def _handle_set_status(event: Dict[str, Any], config: SyncConfig) -> Dict[str, Any]:
    store = build_cache_store(config)
    field = event.get('field', '')
    value = event.get('value', True)
    if isinstance(value, str):
        value = value.strip().lower() == 'true'
    value = bool(value)

    if event.get('folder_key'):
        event_id = store.set_status_by_folder(event['folder_key'], field, value)
    elif event.get('event_id'):
        event_id = event['event_id']
        store.set_status(event_id, field, value)
    else:
        raise ValueError('set_status requires event_id or folder_key')
    return _response(200, {'success': True, 'event_id': event_id, field: value})


def _handle_roster(event: Dict[str, Any], config: SyncConfig,
                   action: str) -> Dict[str, Any]:
    roster = build_roster_client(config)

    if action == 'student_folders':
        return _response(200, {'folders': roster.get_student_folders()})

    if action == 'students_by_folder':
        folder_key = event.get('folder_key', '')
        return _response(200, {
            'folder_key': folder_key,
            'student_names': roster.get_student_names_by_folder(folder_key)
        })

    student_name = event.get('student_name', '')
    if not student_name.strip():
        raise ValueError('student_links requires student_name')
    links = roster.get_student_links(student_name)
    return _response(200, {'student_name': student_name, **links})


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for the lessons cache sync.

    Supported actions (event['action']):
        sync (default): fetch the day's lessons and replace the cache;
            optional event['date'] as "DD/MM/YYYY" or "YYYY-MM-DD"
        lessons: return the cached rows
        statuses: return eventID, pdfUploaded, historyRecorded per row
        set_status: set event['field'] to event['value'] on the row matching
            event['event_id'] (or event['folder_key'])
        student_folders: return every roster folder key
        students_by_folder: return the student names under event['folder_key']
        student_links: return the note and history links of
            event['student_name']

    Args:
        event: EventBridge or direct invocation payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    event = event or {}
    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    logger = logging.getLogger(__name__)

    start_time = time.time()
    action = event.get('action', 'sync')
    logger.info("Lambda execution started", extra={'action': action})

    try:
        config = SyncConfig.from_env()

        if action == 'sync':
            return _handle_sync(event, config, start_time)

        if action == 'lessons':
            lessons = build_cache_store(config).read_lessons()
            return _response(200, {'lessons': lessons})

        if action == 'statuses':
            statuses = build_cache_store(config).list_statuses()
            return _response(200, {
                'statuses': [
                    {
                        'eventID': status.event_id,
                        'pdfUploaded': status.pdf_uploaded,
                        'historyRecorded': status.history_recorded
                    }
                    for status in statuses
                ]
            })

        if action == 'set_status':
            return _handle_set_status(event, config)

        if action in ('student_folders', 'students_by_folder', 'student_links'):
            return _handle_roster(event, config, action)

        return _response(400, {'message': f"Unknown action: {action}"})

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}", exc_info=True)
        return _error_response(500, 'Sync configuration error', e, start_time)

    except NotFoundError as e:
        logger.warning(f"Not found: {e}")
        return _error_response(404, 'Not found', e, start_time)

    except ValueError as e:
        logger.warning(f"Invalid request: {e}")
        return _error_response(400, 'Invalid request', e, start_time)

    except TransientExternalError as e:
        logger.error(
            f"External service call failed: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response(
            502, 'External service call failed; previous lessons remain cached',
            e, start_time
        )

    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response(500, 'Sync failed', e, start_time)
