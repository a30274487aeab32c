"""Startup loading of the reference face gallery."""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Sequence, Union

import numpy as np

from cv.exceptions import GalleryLoadError
from cv.identity import Gallery

logger = logging.getLogger(__name__)

DescribeReference = Callable[[str], Union[np.ndarray, Sequence[np.ndarray]]]


def _as_descriptor_list(value) -> list[np.ndarray]:
    if isinstance(value, (list, tuple)) and value and np.ndim(value[0]) > 0:
        return [np.asarray(v, dtype=np.float64).reshape(-1) for v in value]
    arr = np.asarray(value, dtype=np.float64)
    if arr.ndim == 1:
        return [arr]
    return [row for row in arr]


def load_gallery(labels: Iterable[str], describe: DescribeReference) -> Gallery:
    """Build a gallery by describing each label's reference image.

    A label whose reference cannot be loaded is logged and skipped; the
    other labels still load. The same applies to a label whose descriptor
    length differs from the labels loaded before it. The failures are kept
    on `Gallery.load_errors`.
    """
    entries: list[tuple[str, list[np.ndarray]]] = []
    errors: list[GalleryLoadError] = []
    dimension: int | None = None

    for label in labels:
        try:
            descriptors = _as_descriptor_list(describe(label))
            if not descriptors:
                raise GalleryLoadError(label, "no descriptor produced")
            lengths = {d.shape[0] for d in descriptors}
            expected = dimension if dimension is not None else descriptors[0].shape[0]
            if lengths != {expected}:
                raise GalleryLoadError(
                    label, f"descriptor length {sorted(lengths)} does not match {expected}"
                )
        except GalleryLoadError as exc:
            logger.warning("Skipping gallery label: %s", exc)
            errors.append(exc)
            continue
        dimension = expected
        entries.append((label, descriptors))
        logger.info("Loaded gallery label '%s' (%d reference(s))", label, len(descriptors))

    gallery = Gallery(entries, load_errors=errors)
    logger.info(
        "Gallery ready: %d label(s) loaded, %d missing",
        len(gallery),
        len(errors),
    )
    return gallery
