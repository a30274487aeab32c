"""Custom exceptions for cycle scheduling."""


class SchedulerError(Exception):
    """Base scheduler exception."""


class AlreadyRunningError(SchedulerError):
    """Raised when starting a scheduler that is already running."""


class NotRunningError(SchedulerError):
    """Raised when stopping a scheduler that is not running."""
