"""Owner of the live session state."""
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from common.types import CycleResult, SessionSnapshot
from session.state import SessionState, merge

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[SessionSnapshot], None]


class SessionStore:
    """Holds `SessionState` and the latest `CycleResult`.

    `apply` is the only mutation path. Readers get immutable snapshots.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._state = SessionState()
        self._latest: Optional[CycleResult] = None
        self._listeners: List[SnapshotListener] = []

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def latest_cycle(self) -> Optional[CycleResult]:
        with self._lock:
            return self._latest

    def apply(self, result: CycleResult) -> SessionState:
        with self._lock:
            previous = self._state
            self._state = merge(previous, result)
            self._latest = result
            state = self._state

        for label in sorted(state.attendance - previous.attendance):
            logger.info("Marked present: %s", label)
        if state.last_detected_object != previous.last_detected_object:
            logger.info("Detected object: %s", state.last_detected_object)

        self._notify()
        return state

    def reset(self) -> None:
        """End the session: drop attendance, counts and the latest cycle."""
        with self._lock:
            self._state = SessionState()
            self._latest = None
        logger.info("Session state reset")
        self._notify()

    def snapshot(self, scheduler: Optional[dict] = None) -> SessionSnapshot:
        with self._lock:
            state = self._state
            latest = self._latest
        return SessionSnapshot(
            attendance=tuple(sorted(state.attendance)),
            hand_raise_count=state.hand_raise_count,
            last_detected_object=state.last_detected_object,
            cycles_merged=state.cycles_merged,
            latest_cycle=latest,
            scheduler=dict(scheduler or {}),
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                self._listeners = [l for l in self._listeners if l is not listener]

        return _unsubscribe

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        if not listeners:
            return
        snapshot = self.snapshot()
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener %r failed", listener)
