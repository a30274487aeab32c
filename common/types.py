"""
Shared data structures for the inference cycle.

Observations hold raw classifier output for one frame; `IdentityMatch` and
`CycleResult` are the per-cycle decisions the session store merges and the
API/overlay consume.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class Frame:
    """One sampled video image. Lives for a single cycle."""
    image: np.ndarray  # BGR, (height, width, 3)
    width: int
    height: int
    index: int = 0
    timestamp: float = 0.0  # time.monotonic() at capture

    @classmethod
    def from_image(cls, image: np.ndarray, index: int = 0, timestamp: float = 0.0) -> "Frame":
        height, width = image.shape[:2]
        return cls(image=image, width=int(width), height=int(height), index=index, timestamp=timestamp)


class BoundingBox(BaseModel):
    """Pixel box, top-left origin."""
    model_config = ConfigDict(frozen=True)

    x: float       # Left edge (pixels)
    y: float       # Top edge (pixels)
    width: float
    height: float

    @classmethod
    def from_corners(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        return cls(x=float(x1), y=float(y1), width=float(x2 - x1), height=float(y2 - y1))

    def corners(self) -> tuple[int, int, int, int]:
        return (
            int(round(self.x)),
            int(round(self.y)),
            int(round(self.x + self.width)),
            int(round(self.y + self.height)),
        )


@dataclass(frozen=True)
class FaceObservation:
    """Detected face region plus its identity descriptor."""
    box: BoundingBox
    descriptor: np.ndarray  # fixed-length float vector


@dataclass(frozen=True)
class HandObservation:
    """21 hand landmarks in image pixels (0 = wrist, 12 = middle fingertip)."""
    landmarks: Tuple[Tuple[float, float], ...]
    box: Optional[BoundingBox] = None

    @classmethod
    def from_points(cls, points, box: Optional[BoundingBox] = None) -> "HandObservation":
        landmarks = tuple((float(p[0]), float(p[1])) for p in points)
        if box is None and landmarks:
            xs = [p[0] for p in landmarks]
            ys = [p[1] for p in landmarks]
            box = BoundingBox.from_corners(min(xs), min(ys), max(xs), max(ys))
        return cls(landmarks=landmarks, box=box)


@dataclass(frozen=True)
class ObjectObservation:
    """One class candidate from the book classifier."""
    class_name: str
    probability: float


class IdentityMatch(BaseModel):
    """Best gallery match for one face."""
    model_config = ConfigDict(frozen=True)

    label: str             # Gallery label or "unknown"
    distance: float        # Euclidean descriptor distance, lower is closer
    box: BoundingBox | None = None

    def __str__(self) -> str:
        return f"{self.label} ({self.distance:.2f})"


class CycleResult(BaseModel):
    """Decisions derived from one frame. Consumed by the store and the overlay."""
    model_config = ConfigDict(frozen=True)

    frame_index: int = 0
    frame_width: int = 0
    frame_height: int = 0
    identities: Tuple[IdentityMatch, ...] = ()
    raised_hands: Tuple[Optional[BoundingBox], ...] = ()
    hand_raise_count: int = Field(default=0, ge=0)
    object_label: str | None = None
    object_probability: float | None = None
    failed_ports: Tuple[str, ...] = ()
    unavailable_ports: Tuple[str, ...] = ()
    duration_ms: float = 0.0


class SessionSnapshot(BaseModel):
    """Read-only view of session state for the UI, publisher and overlay."""
    model_config = ConfigDict(frozen=True)

    attendance: Tuple[str, ...] = ()
    hand_raise_count: int = 0
    last_detected_object: str | None = None
    cycles_merged: int = 0
    latest_cycle: CycleResult | None = None
    scheduler: dict = Field(default_factory=dict)
