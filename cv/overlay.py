"""Draw the latest cycle decisions over a video frame."""
from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from common.config import UNKNOWN_IDENTITY_LABEL
from common.types import CycleResult

KNOWN_COLOR = (0, 255, 0)      # BGR
UNKNOWN_COLOR = (0, 0, 255)
HAND_COLOR = (255, 200, 0)
TEXT_COLOR = (255, 255, 255)


def _scale(result: CycleResult, image: np.ndarray) -> tuple[float, float]:
    # Frames may be resized between the cycle and the render.
    height, width = image.shape[:2]
    if not result.frame_width or not result.frame_height:
        return 1.0, 1.0
    return width / result.frame_width, height / result.frame_height


def draw_overlay(image: np.ndarray, result: Optional[CycleResult], object_label: Optional[str] = None) -> np.ndarray:
    """Return a copy of `image` with face boxes, raised hands and the book label."""
    canvas = image.copy()
    if result is None:
        return canvas

    sx, sy = _scale(result, canvas)

    def corners(box):
        x1, y1, x2, y2 = box.corners()
        return (int(x1 * sx), int(y1 * sy)), (int(x2 * sx), int(y2 * sy))

    for match in result.identities:
        if match.box is None:
            continue
        color = UNKNOWN_COLOR if match.label == UNKNOWN_IDENTITY_LABEL else KNOWN_COLOR
        top_left, bottom_right = corners(match.box)
        cv2.rectangle(canvas, top_left, bottom_right, color, 2, cv2.LINE_AA)
        cv2.putText(
            canvas,
            str(match),
            (top_left[0], max(0, top_left[1] - 10)),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6,
            color,
            2,
        )

    for box in result.raised_hands:
        if box is None:
            continue
        top_left, bottom_right = corners(box)
        cv2.rectangle(canvas, top_left, bottom_right, HAND_COLOR, 2, cv2.LINE_AA)
        cv2.putText(canvas, "Hand raised", (top_left[0], max(0, top_left[1] - 10)),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, HAND_COLOR, 1)

    label = object_label or result.object_label
    if label:
        cv2.putText(canvas, f"Book: {label}", (10, 25), cv2.FONT_HERSHEY_SIMPLEX, 0.7, TEXT_COLOR, 2)

    return canvas


def encode_jpeg(image: np.ndarray, quality: int = 80) -> bytes | None:
    ok, jpeg = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        return None
    return jpeg.tobytes()
