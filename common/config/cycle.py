"""Inference cycle and session runtime configuration."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List

from pydantic import BaseModel, Field, field_validator

from .paths import DEFAULT_GALLERY_DIR, DEFAULT_OBJECT_MODEL_PATH


def _truthy(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_labels(raw: str) -> list[str]:
    return [label.strip() for label in raw.split(",") if label.strip()]


DEFAULT_GALLERY_LABELS = ["Ayush", "Priyanshu", "Shivam", "Dinesh"]

# Book classifier class name -> display label
DEFAULT_OBJECT_LABELS: Dict[str, str] = {
    "notebook": "Notebook",
    "dictionary": "Dictionary",
    "novel": "Novel",
    "textbook": "Textbook",
}
UNRECOGNIZED_OBJECT_LABEL = "Unknown Book"
UNKNOWN_IDENTITY_LABEL = "unknown"

CYCLE_PERIOD_MS = int(os.getenv("CYCLE_PERIOD_MS", "250"))
# 0 -> one scheduler period per classifier call
CLASSIFIER_TIMEOUT_MS = int(os.getenv("CLASSIFIER_TIMEOUT_MS", "0"))
FACE_DISTANCE_THRESHOLD = float(os.getenv("FACE_DISTANCE_THRESHOLD", "0.6"))
GALLERY_DIR = Path(os.getenv("GALLERY_DIR", str(DEFAULT_GALLERY_DIR)))
GALLERY_LABELS = _parse_labels(os.getenv("GALLERY_LABELS", ",".join(DEFAULT_GALLERY_LABELS)))
CAMERA_SOURCE = os.getenv("CAMERA_SOURCE", "0").strip()
OBJECT_MODEL_PATH = Path(os.getenv("OBJECT_MODEL_PATH", str(DEFAULT_OBJECT_MODEL_PATH)))
SESSION_AUTOSTART = _truthy(os.getenv("SESSION_AUTOSTART"), default=True)
SESSION_PUBLISH_ENABLED = _truthy(os.getenv("SESSION_PUBLISH_ENABLED"), default=False)


class RuntimeConfig(BaseModel):
    """Validated knobs for one classroom session."""

    period_ms: int = Field(default=CYCLE_PERIOD_MS, gt=0)
    classifier_timeout_ms: int = Field(default=CLASSIFIER_TIMEOUT_MS, ge=0)
    distance_threshold: float = Field(default=FACE_DISTANCE_THRESHOLD, gt=0)
    gallery_labels: List[str] = Field(default_factory=lambda: list(GALLERY_LABELS))
    gallery_dir: Path = GALLERY_DIR
    camera_source: str = CAMERA_SOURCE
    object_model_path: Path = OBJECT_MODEL_PATH
    object_labels: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_OBJECT_LABELS))
    unrecognized_object_label: str = UNRECOGNIZED_OBJECT_LABEL
    autostart: bool = SESSION_AUTOSTART
    publish_enabled: bool = SESSION_PUBLISH_ENABLED

    @field_validator("gallery_labels")
    @classmethod
    def _unique_labels(cls, labels: List[str]) -> List[str]:
        if UNKNOWN_IDENTITY_LABEL in labels:
            raise ValueError(f"'{UNKNOWN_IDENTITY_LABEL}' is reserved and cannot be a gallery label")
        # Keep first occurrence; gallery order decides distance ties.
        return list(dict.fromkeys(labels))

    @property
    def classifier_timeout_seconds(self) -> float:
        timeout_ms = self.classifier_timeout_ms or self.period_ms
        return timeout_ms / 1000.0

    @property
    def camera_index_or_url(self) -> int | str:
        """OpenCV accepts a device index or a URL/path."""
        return int(self.camera_source) if self.camera_source.isdigit() else self.camera_source


def load_runtime_config(**overrides) -> RuntimeConfig:
    return RuntimeConfig(**overrides)
