"""Types for cycle scheduling."""
from __future__ import annotations

import enum
from dataclasses import asdict, dataclass


class SchedulerState(str, enum.Enum):
    STOPPED = "stopped"
    IDLE = "idle"
    CYCLE_IN_FLIGHT = "cycle_in_flight"


@dataclass
class SchedulerStats:
    """Counters for one scheduler instance (kept across stop/start)."""

    ticks: int = 0
    ticks_skipped: int = 0
    cycles_completed: int = 0
    cycles_failed: int = 0
    cycles_without_frame: int = 0
    cycles_discarded: int = 0
    last_error: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)
