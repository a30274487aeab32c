"""Session state and the pure merge applied after every cycle."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import FrozenSet, Optional

from common.config import UNKNOWN_IDENTITY_LABEL
from common.types import CycleResult


@dataclass(frozen=True)
class SessionState:
    attendance: FrozenSet[str] = frozenset()
    hand_raise_count: int = 0
    last_detected_object: Optional[str] = None
    cycles_merged: int = 0


def merge(state: SessionState, result: CycleResult) -> SessionState:
    """Fold one cycle into the session.

    Attendance only grows. The raised-hand count is the latest cycle's count,
    not a running total. The detected object carries over when the cycle
    produced no label.
    """
    seen = {m.label for m in result.identities if m.label != UNKNOWN_IDENTITY_LABEL}
    return replace(
        state,
        attendance=state.attendance | seen,
        hand_raise_count=result.hand_raise_count,
        last_detected_object=(
            result.object_label if result.object_label is not None else state.last_detected_object
        ),
        cycles_merged=state.cycles_merged + 1,
    )
