"""
Decision pipeline: one frame in, one CycleResult out.

The three classifier ports are called concurrently and joined. Each signal
is resolved independently, so a missing or failing classifier only empties
its own part of the result.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Mapping, Optional

from common.config import DEFAULT_OBJECT_LABELS, UNRECOGNIZED_OBJECT_LABEL
from common.types import CycleResult, Frame
from cv.exceptions import ClassifierFailureError, ClassifierUnavailableError
from cv.gesture import raised_hands
from cv.identity import Gallery, resolve_identities
from cv.objects import resolve_object
from cv.ports import GESTURE, IDENTITY, OBJECT, ClassifierPorts

logger = logging.getLogger(__name__)


async def _call_port(name: str, ports: ClassifierPorts, frame: Frame, timeout: Optional[float]):
    port = ports.get(name)
    if port is None:
        raise ClassifierUnavailableError(name)
    try:
        if timeout is None:
            observations = await port(frame)
        else:
            observations = await asyncio.wait_for(port(frame), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise ClassifierFailureError(name) from exc
    except Exception as exc:
        raise ClassifierFailureError(name, exc) from exc
    return list(observations or [])


async def _resolve_identities(frame, gallery, ports, threshold, timeout):
    faces = await _call_port(IDENTITY, ports, frame, timeout)
    try:
        return resolve_identities(faces, gallery, threshold)
    except Exception as exc:
        raise ClassifierFailureError(IDENTITY, exc) from exc


async def _resolve_gesture(frame, ports, timeout):
    hands = await _call_port(GESTURE, ports, frame, timeout)
    try:
        return raised_hands(hands)
    except Exception as exc:
        raise ClassifierFailureError(GESTURE, exc) from exc


async def _resolve_object(frame, ports, label_table, fallback, timeout):
    candidates = await _call_port(OBJECT, ports, frame, timeout)
    try:
        return resolve_object(candidates, label_table, fallback)
    except Exception as exc:
        raise ClassifierFailureError(OBJECT, exc) from exc


async def run_cycle(
    frame: Frame,
    gallery: Gallery,
    ports: ClassifierPorts,
    *,
    distance_threshold: float = 0.6,
    label_table: Mapping[str, str] = DEFAULT_OBJECT_LABELS,
    unrecognized_label: str = UNRECOGNIZED_OBJECT_LABEL,
    classifier_timeout: Optional[float] = None,
) -> CycleResult:
    started = time.perf_counter()
    outcomes = await asyncio.gather(
        _resolve_identities(frame, gallery, ports, distance_threshold, classifier_timeout),
        _resolve_gesture(frame, ports, classifier_timeout),
        _resolve_object(frame, ports, label_table, unrecognized_label, classifier_timeout),
        return_exceptions=True,
    )

    failed: list[str] = []
    unavailable: list[str] = []
    for name, outcome in zip((IDENTITY, GESTURE, OBJECT), outcomes):
        if isinstance(outcome, ClassifierUnavailableError):
            unavailable.append(name)
        elif isinstance(outcome, ClassifierFailureError):
            failed.append(name)
            logger.warning("[frame %s] %s", frame.index, outcome)
        elif isinstance(outcome, BaseException):
            # Cancellation of a sub-task without cancelling the cycle itself.
            failed.append(name)
            logger.warning("[frame %s] Classifier '%s' aborted: %r", frame.index, name, outcome)

    identities, hands, obj = (None if isinstance(o, BaseException) else o for o in outcomes)
    object_label, object_probability = obj if obj is not None else (None, None)
    hands = hands or []

    return CycleResult(
        frame_index=frame.index,
        frame_width=frame.width,
        frame_height=frame.height,
        identities=tuple(identities or ()),
        raised_hands=tuple(hand.box for hand in hands),
        hand_raise_count=len(hands),
        object_label=object_label,
        object_probability=object_probability,
        failed_ports=tuple(failed),
        unavailable_ports=tuple(unavailable),
        duration_ms=round((time.perf_counter() - started) * 1000.0, 2),
    )
