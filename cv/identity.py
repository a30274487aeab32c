"""Identity matching against a fixed gallery of reference descriptors."""
from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

import numpy as np

from common.config import UNKNOWN_IDENTITY_LABEL
from common.types import FaceObservation, IdentityMatch
from cv.exceptions import GalleryLoadError


class Gallery:
    """Immutable label -> reference descriptors mapping.

    Label order is insertion order and decides ties: when two labels are
    equally distant the earlier one wins.
    """

    def __init__(
        self,
        entries: Mapping[str, Sequence[np.ndarray]] | Iterable[tuple[str, Sequence[np.ndarray]]] = (),
        load_errors: Sequence[GalleryLoadError] = (),
    ):
        items = entries.items() if isinstance(entries, Mapping) else entries
        frozen: dict[str, tuple[np.ndarray, ...]] = {}
        dimension: int | None = None
        for label, descriptors in items:
            if label == UNKNOWN_IDENTITY_LABEL:
                raise ValueError(f"'{UNKNOWN_IDENTITY_LABEL}' is reserved and cannot be a gallery label")
            refs = []
            for descriptor in descriptors:
                vec = np.asarray(descriptor, dtype=np.float64).reshape(-1)
                vec.setflags(write=False)
                if dimension is None:
                    dimension = vec.shape[0]
                elif vec.shape[0] != dimension:
                    raise ValueError(
                        f"Descriptor for '{label}' has length {vec.shape[0]}, expected {dimension}"
                    )
                refs.append(vec)
            if not refs:
                continue
            frozen[label] = frozen.get(label, ()) + tuple(refs)

        self._entries = MappingProxyType(frozen)
        self._dimension = dimension
        self.load_errors: tuple[GalleryLoadError, ...] = tuple(load_errors)

    @property
    def labels(self) -> list[str]:
        return list(self._entries)

    @property
    def dimension(self) -> int | None:
        return self._dimension

    def references(self, label: str) -> tuple[np.ndarray, ...]:
        return self._entries[label]

    def __contains__(self, label: object) -> bool:
        return label in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Gallery(labels={self.labels!r}, missing={[e.label for e in self.load_errors]!r})"


def euclidean_distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(np.asarray(a, dtype=np.float64) - b))


def match_descriptor(
    descriptor: np.ndarray,
    gallery: Gallery,
    threshold: float,
) -> tuple[str, float]:
    """Return (label, distance) of the closest gallery label.

    A label's distance is the mean over its reference descriptors. The label
    is only kept when the distance is strictly below `threshold`.
    """
    vec = np.asarray(descriptor, dtype=np.float64).reshape(-1)
    if gallery.dimension is not None and vec.shape[0] != gallery.dimension:
        raise ValueError(f"Descriptor has length {vec.shape[0]}, gallery expects {gallery.dimension}")

    best_label = UNKNOWN_IDENTITY_LABEL
    best_distance = float("inf")
    for label in gallery.labels:
        refs = gallery.references(label)
        distance = sum(euclidean_distance(vec, ref) for ref in refs) / len(refs)
        if distance < best_distance:
            best_label = label
            best_distance = distance

    if best_distance < threshold:
        return best_label, best_distance
    return UNKNOWN_IDENTITY_LABEL, best_distance


def resolve_identities(
    faces: Sequence[FaceObservation],
    gallery: Gallery,
    threshold: float,
) -> list[IdentityMatch]:
    matches = []
    for face in faces:
        label, distance = match_descriptor(face.descriptor, gallery, threshold)
        matches.append(IdentityMatch(label=label, distance=distance, box=face.box))
    return matches
