"""
Classifier capabilities consumed by the decision pipeline.

Each slot holds an async callable `frame -> list[observation]`, or None until
its model has finished loading. Slots are read once per cycle and never
assumed loaded.
"""
from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence

from common.types import FaceObservation, Frame, HandObservation, ObjectObservation
from cv.exceptions import ClassifierBusyError

IDENTITY = "identity"
GESTURE = "gesture"
OBJECT = "object"
PORT_NAMES = (IDENTITY, GESTURE, OBJECT)

IdentityPort = Callable[[Frame], Awaitable[Sequence[FaceObservation]]]
GesturePort = Callable[[Frame], Awaitable[Sequence[HandObservation]]]
ObjectPort = Callable[[Frame], Awaitable[Sequence[ObjectObservation]]]


class OffloadedPort:
    """Runs a blocking model call on the port's own single worker thread.

    At most one call per port is in flight. While a call is still running,
    even one whose caller already timed out, new frames are refused with
    `ClassifierBusyError` instead of queueing behind it. A hung model only
    occupies its own thread, so the other ports keep working.
    """

    def __init__(self, fn: Callable[[Frame], Sequence], name: Optional[str] = None):
        self._fn = fn
        self.name = name or getattr(fn, "__name__", "port")
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"port-{self.name}")
        self._pending: Optional[Future] = None

    @property
    def busy(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def __call__(self, frame: Frame):
        if self.busy:
            raise ClassifierBusyError(self.name)
        self._pending = self._executor.submit(self._fn, frame)
        # Cancelling the wrapper does not stop a running thread; `busy` tracks it.
        return await asyncio.wrap_future(self._pending)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


def offload(fn: Callable[[Frame], Sequence], name: Optional[str] = None) -> OffloadedPort:
    """Wrap a blocking model call so it runs off the event loop."""
    return OffloadedPort(fn, name)


@dataclass
class ClassifierPorts:
    identity: Optional[IdentityPort] = None
    gesture: Optional[GesturePort] = None
    object: Optional[ObjectPort] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def get(self, name: str):
        if name not in PORT_NAMES:
            raise KeyError(f"Unknown classifier port '{name}'")
        with self._lock:
            return getattr(self, name)

    def set(self, name: str, port) -> None:
        # Model loaders finish on worker threads.
        if name not in PORT_NAMES:
            raise KeyError(f"Unknown classifier port '{name}'")
        with self._lock:
            setattr(self, name, port)

    def available(self) -> list[str]:
        with self._lock:
            return [name for name in PORT_NAMES if getattr(self, name) is not None]

    def close(self) -> None:
        """Release worker threads of offloaded ports."""
        with self._lock:
            ports = [getattr(self, name) for name in PORT_NAMES]
        for port in ports:
            close = getattr(port, "close", None)
            if callable(close):
                close()
