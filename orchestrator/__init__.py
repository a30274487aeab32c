"""Inference cycle orchestration package."""

from .exceptions import (
    AlreadyRunningError,
    NotRunningError,
    SchedulerError,
)
from .runtime import SessionRuntime
from .scheduler import CycleScheduler
from .types import SchedulerState, SchedulerStats

__all__ = [
    "AlreadyRunningError",
    "CycleScheduler",
    "NotRunningError",
    "SchedulerError",
    "SchedulerState",
    "SchedulerStats",
    "SessionRuntime",
]
