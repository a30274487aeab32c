"""
Pretrained model adapters behind the classifier ports.

face_recognition (dlib) for face descriptors, MediaPipe HandLandmarker for
hand landmarks and an Ultralytics classification model for books. Model
libraries are imported lazily so the orchestration core runs without them.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, List

import cv2
import numpy as np

from common.config import MODELS_DIR, RuntimeConfig
from common.types import BoundingBox, FaceObservation, Frame, HandObservation, ObjectObservation
from cv.exceptions import GalleryLoadError
from cv.gallery import load_gallery
from cv.identity import Gallery
from cv.ports import GESTURE, IDENTITY, OBJECT, ClassifierPorts, offload

logger = logging.getLogger(__name__)

HAND_LANDMARKER_PATH = MODELS_DIR / "hand_landmarker.task"
HAND_LANDMARKER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)


class FaceRecognitionBackend:
    """HOG face detector + 128-d dlib descriptors."""

    def __init__(self, gallery_dir: Path, model: str = "hog"):
        import face_recognition

        self._fr = face_recognition
        self.gallery_dir = Path(gallery_dir)
        self.model = model

    def reference_path(self, label: str) -> Path:
        return self.gallery_dir / f"{label.lower()}.jpg"

    def describe_reference(self, label: str) -> np.ndarray:
        path = self.reference_path(label)
        if not path.exists():
            raise GalleryLoadError(label, f"reference image not found: {path}")
        image = cv2.imread(str(path))
        if image is None:
            raise GalleryLoadError(label, f"could not read image: {path}")
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        encodings = self._fr.face_encodings(rgb)
        if not encodings:
            raise GalleryLoadError(label, f"no face found in {path.name}")
        return np.asarray(encodings[0], dtype=np.float64)

    def detect(self, frame: Frame) -> List[FaceObservation]:
        rgb = cv2.cvtColor(frame.image, cv2.COLOR_BGR2RGB)
        locations = self._fr.face_locations(rgb, model=self.model)
        if not locations:
            return []
        encodings = self._fr.face_encodings(rgb, locations)
        observations = []
        for (top, right, bottom, left), encoding in zip(locations, encodings):
            observations.append(
                FaceObservation(
                    box=BoundingBox.from_corners(left, top, right, bottom),
                    descriptor=np.asarray(encoding, dtype=np.float64),
                )
            )
        return observations


class MediaPipeHandsBackend:
    """MediaPipe Tasks HandLandmarker, 21 landmarks per hand."""

    def __init__(self, model_path: Path = HAND_LANDMARKER_PATH, max_num_hands: int = 4):
        import mediapipe as mp
        from mediapipe.tasks import python
        from mediapipe.tasks.python import vision

        if not Path(model_path).exists():
            raise FileNotFoundError(
                f"Hand landmarker model not found at {model_path}. "
                f"Download it from {HAND_LANDMARKER_MODEL_URL}"
            )
        self._mp = mp
        options = vision.HandLandmarkerOptions(
            base_options=python.BaseOptions(model_asset_path=str(model_path)),
            running_mode=vision.RunningMode.IMAGE,
            num_hands=max_num_hands,
        )
        self._landmarker = vision.HandLandmarker.create_from_options(options)

    def detect(self, frame: Frame) -> List[HandObservation]:
        rgb = cv2.cvtColor(frame.image, cv2.COLOR_BGR2RGB)
        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb)
        result = self._landmarker.detect(mp_image)
        hands = []
        for hand_landmarks in result.hand_landmarks or []:
            # Landmarks are normalised to [0, 1]; convert to pixels.
            points = [(lm.x * frame.width, lm.y * frame.height) for lm in hand_landmarks]
            hands.append(HandObservation.from_points(points))
        return hands


class UltralyticsObjectBackend:
    """Image classifier (books) trained with Ultralytics."""

    def __init__(self, model_path: Path):
        import torch
        from ultralytics import YOLO

        self.device = "cuda" if torch.cuda.is_available() else "cpu"
        logger.info("Object classifier device: %s", self.device)
        self.model = YOLO(str(model_path))

    def detect(self, frame: Frame) -> List[ObjectObservation]:
        result = self.model(frame.image, device=self.device, verbose=False)[0]
        if result.probs is None:
            return []
        probabilities = result.probs.data.cpu().numpy()
        return [
            ObjectObservation(class_name=str(result.names[i]), probability=float(p))
            for i, p in enumerate(probabilities)
        ]


async def _load_backend(ports: ClassifierPorts, name: str, factory: Callable[[], object]):
    logger.info("Loading %s model...", name)
    try:
        backend = await asyncio.to_thread(factory)
    except Exception:
        logger.exception("Error loading %s model", name)
        return None
    ports.set(name, offload(backend.detect, name))
    logger.info("%s model loaded", name.capitalize())
    return backend


async def load_identity(ports: ClassifierPorts, config: RuntimeConfig) -> Gallery:
    """Load the face model, then describe every gallery label with it."""
    backend = await _load_backend(
        ports, IDENTITY, lambda: FaceRecognitionBackend(config.gallery_dir)
    )
    if backend is None:
        return Gallery()
    return await asyncio.to_thread(load_gallery, config.gallery_labels, backend.describe_reference)


async def load_remaining_ports(ports: ClassifierPorts, config: RuntimeConfig) -> None:
    """Gesture and object models load independently; either may fail alone."""
    await asyncio.gather(
        _load_backend(ports, GESTURE, MediaPipeHandsBackend),
        _load_backend(ports, OBJECT, lambda: UltralyticsObjectBackend(config.object_model_path)),
    )
