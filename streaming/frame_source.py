"""
Latest-frame video source for the inference cycle.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Protocol, Union

import cv2

from common.types import Frame

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    def get_current_frame(self) -> Optional[Frame]:
        """Latest frame, or None if nothing has been captured yet."""
        ...


class CameraFrameSource:
    """Reads a webcam/stream on a background thread and keeps only the newest frame.

    `get_current_frame` never blocks on capture and never queues: callers
    always see the most recent image.
    """

    def __init__(self, source: Union[int, str] = 0, max_backoff_seconds: float = 8.0) -> None:
        self.source = source
        self._max_backoff = max_backoff_seconds
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._latest: Frame | None = None
        self._frame_index = 0

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stopped.clear()
            self._thread = threading.Thread(target=self._run, name="frame-source", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        self._stopped.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=2)
        with self._lock:
            self._thread = None
            self._latest = None

    def get_current_frame(self) -> Optional[Frame]:
        with self._lock:
            return self._latest

    def _open(self) -> cv2.VideoCapture:
        cap = cv2.VideoCapture(self.source)
        if cap.isOpened():
            logger.info("Video source opened: %s", self.source)
        return cap

    def _run(self) -> None:
        cap = self._open()
        backoff = 0.5

        while not self._stopped.is_set():
            if not cap.isOpened():
                logger.warning("Video source %s unavailable; retrying in %.1fs", self.source, backoff)
                self._stopped.wait(backoff)
                backoff = min(backoff * 2.0, self._max_backoff)
                cap.release()
                cap = self._open()
                continue

            ret, image = cap.read()
            if not ret or image is None:
                logger.warning("Video source read failed; reconnecting")
                cap.release()
                self._stopped.wait(backoff)
                backoff = min(backoff * 2.0, self._max_backoff)
                cap = self._open()
                continue

            backoff = 0.5
            self._frame_index += 1
            frame = Frame.from_image(image, index=self._frame_index, timestamp=time.monotonic())
            with self._lock:
                self._latest = frame

        cap.release()
