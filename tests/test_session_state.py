"""Session merge rules and the store that owns them."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from common.types import CycleResult, IdentityMatch
from session import SessionState, SessionStore, merge


def _result(labels=(), hands: int = 0, obj: str | None = None) -> CycleResult:
    return CycleResult(
        identities=tuple(IdentityMatch(label=label, distance=0.3) for label in labels),
        hand_raise_count=hands,
        object_label=obj,
    )


# ---------- merge ----------

class TestMerge:
    def test_adds_named_labels(self):
        state = merge(SessionState(), _result(["Ana", "Ben"]))
        assert state.attendance == {"Ana", "Ben"}

    def test_unknown_never_attends(self):
        state = merge(SessionState(), _result(["unknown", "Ana", "unknown"]))
        assert state.attendance == {"Ana"}

    def test_attendance_is_monotone(self):
        results = [_result(["Ana"]), _result([]), _result(["unknown"]), _result(["Ben"]), _result([])]
        state = SessionState()
        for result in results:
            nxt = merge(state, result)
            assert state.attendance <= nxt.attendance
            state = nxt
        assert state.attendance == {"Ana", "Ben"}

    def test_same_result_twice_is_stable(self):
        result = _result(["Ana"], hands=3, obj="Novel")
        once = merge(SessionState(), result)
        twice = merge(once, result)
        assert twice.attendance == once.attendance
        assert twice.hand_raise_count == once.hand_raise_count == 3
        assert twice.last_detected_object == once.last_detected_object == "Novel"

    def test_hand_count_is_replaced_not_summed(self):
        state = merge(SessionState(), _result(hands=2))
        assert state.hand_raise_count == 2
        state = merge(state, _result(hands=0))
        assert state.hand_raise_count == 0

    def test_object_carries_forward_without_new_label(self):
        state = merge(SessionState(), _result(obj="Textbook"))
        state = merge(state, _result())
        assert state.last_detected_object == "Textbook"
        state = merge(state, _result(obj="Novel"))
        assert state.last_detected_object == "Novel"

    def test_does_not_mutate_input(self):
        before = SessionState()
        merge(before, _result(["Ana"], hands=1, obj="Novel"))
        assert before == SessionState()

    def test_counts_merges(self):
        state = merge(merge(SessionState(), _result()), _result())
        assert state.cycles_merged == 2


class TestAttendanceScenario:
    def test_ana_then_nothing_then_stranger(self):
        store = SessionStore()
        store.apply(_result(["Ana"]))
        assert store.state.attendance == {"Ana"}
        store.apply(_result([]))
        assert store.state.attendance == {"Ana"}
        store.apply(CycleResult(identities=(IdentityMatch(label="unknown", distance=0.9),)))
        assert store.state.attendance == {"Ana"}


# ---------- SessionStore ----------

class TestSessionStore:
    def test_snapshot_reflects_state(self):
        store = SessionStore()
        result = _result(["Ben", "Ana"], hands=1, obj="Notebook")
        store.apply(result)
        snap = store.snapshot(scheduler={"state": "idle"})
        assert snap.attendance == ("Ana", "Ben")
        assert snap.hand_raise_count == 1
        assert snap.last_detected_object == "Notebook"
        assert snap.latest_cycle == result
        assert snap.scheduler == {"state": "idle"}

    def test_snapshot_is_frozen(self):
        store = SessionStore()
        snap = store.snapshot()
        with pytest.raises(Exception):
            snap.hand_raise_count = 5

    def test_snapshot_not_affected_by_later_merges(self):
        store = SessionStore()
        store.apply(_result(["Ana"]))
        snap = store.snapshot()
        store.apply(_result(["Ben"]))
        assert snap.attendance == ("Ana",)

    def test_reset_ends_session(self):
        store = SessionStore()
        store.apply(_result(["Ana"], hands=2, obj="Novel"))
        store.reset()
        assert store.state == SessionState()
        assert store.latest_cycle is None

    def test_listeners_receive_snapshots(self):
        store = SessionStore()
        listener = MagicMock()
        store.subscribe(listener)
        store.apply(_result(["Ana"]))
        listener.assert_called_once()
        assert listener.call_args.args[0].attendance == ("Ana",)

    def test_unsubscribe_stops_notifications(self):
        store = SessionStore()
        listener = MagicMock()
        unsubscribe = store.subscribe(listener)
        unsubscribe()
        store.apply(_result(["Ana"]))
        listener.assert_not_called()

    def test_failing_listener_does_not_block_merge(self):
        store = SessionStore()
        store.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        good = MagicMock()
        store.subscribe(good)
        store.apply(_result(["Ana"]))
        assert store.state.attendance == {"Ana"}
        good.assert_called_once()
