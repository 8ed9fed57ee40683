"""Error taxonomy for the lesson cache sync."""


class LessonSyncError(Exception):
    """Base class for lesson sync errors."""


class ConfigurationError(LessonSyncError):
    """A required calendar source or setting cannot be resolved."""


class NotFoundError(LessonSyncError):
    """A lookup (status row, roster entry) found no match."""


class TransientExternalError(LessonSyncError):
    """An external service call failed; the caller decides whether to re-run."""


class BestEffortFailure(LessonSyncError):
    """A best-effort side effect failed. Logged, never propagated."""
