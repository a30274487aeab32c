"""Wires frame source, decision pipeline, scheduler and session store together."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

import numpy as np

from common.config import RuntimeConfig, load_runtime_config
from common.types import CycleResult, SessionSnapshot
from cv.exceptions import FrameUnavailableError
from cv.identity import Gallery
from cv.overlay import draw_overlay
from cv.pipeline import run_cycle
from cv.ports import ClassifierPorts
from orchestrator.scheduler import CycleScheduler
from session.publisher import SessionPublisher
from session.store import SessionStore
from streaming.frame_source import FrameSource

logger = logging.getLogger(__name__)


class SessionRuntime:
    """One classroom session over one video stream."""

    def __init__(
        self,
        frame_source: FrameSource,
        config: Optional[RuntimeConfig] = None,
        ports: Optional[ClassifierPorts] = None,
        gallery: Optional[Gallery] = None,
        store: Optional[SessionStore] = None,
        publisher: Optional[SessionPublisher] = None,
    ):
        self.config = config or load_runtime_config()
        self.frame_source = frame_source
        self.ports = ports or ClassifierPorts()
        self.gallery = gallery or Gallery()
        self.store = store or SessionStore()
        self.scheduler: CycleScheduler[CycleResult] = CycleScheduler(self._cycle, self.store.apply)
        self._publisher = publisher
        self._unsubscribe_publisher = None
        if publisher is not None:
            self._unsubscribe_publisher = self.store.subscribe(publisher.submit)
        self._loading: asyncio.Task | None = None

    async def prepare(self) -> Gallery:
        """Load the face model and gallery, then the other models in the background.

        The gallery must exist before the first cycle; gesture and object
        ports join whenever their models finish loading.
        """
        from cv.backends import load_identity, load_remaining_ports

        self.gallery = await load_identity(self.ports, self.config)
        self._loading = asyncio.create_task(load_remaining_ports(self.ports, self.config))
        return self.gallery

    async def _cycle(self) -> CycleResult:
        frame = self.frame_source.get_current_frame()
        if frame is None:
            raise FrameUnavailableError("No frame available yet")
        return await run_cycle(
            frame,
            self.gallery,
            self.ports,
            distance_threshold=self.config.distance_threshold,
            label_table=self.config.object_labels,
            unrecognized_label=self.config.unrecognized_object_label,
            classifier_timeout=self.config.classifier_timeout_seconds,
        )

    def start(self, period_ms: Optional[int] = None) -> None:
        self.scheduler.start(period_ms or self.config.period_ms)

    def stop(self) -> None:
        self.scheduler.stop()

    def end_session(self) -> None:
        """Stop cycling and drop the session state."""
        if self.scheduler.is_running:
            self.scheduler.stop()
        self.store.reset()

    def snapshot(self) -> SessionSnapshot:
        return self.store.snapshot(scheduler={
            **self.scheduler.stats(),
            "ports": self.ports.available(),
            "gallery": self.gallery.labels,
        })

    def render_overlay(self) -> Optional[np.ndarray]:
        frame = self.frame_source.get_current_frame()
        if frame is None:
            return None
        return draw_overlay(frame.image, self.store.latest_cycle, self.store.state.last_detected_object)

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
        if self._loading is not None and not self._loading.done():
            self._loading.cancel()
            await asyncio.gather(self._loading, return_exceptions=True)
        self.ports.close()
        stop_source = getattr(self.frame_source, "stop", None)
        if callable(stop_source):
            stop_source()
        if self._unsubscribe_publisher is not None:
            self._unsubscribe_publisher()
            self._unsubscribe_publisher = None
        if self._publisher is not None:
            await self._publisher.close()
            self._publisher = None
        logger.info("Session runtime shut down")
