"""Top-1 selection and display labels for the book classifier."""
from __future__ import annotations

from typing import Mapping, Optional, Sequence

from common.config import DEFAULT_OBJECT_LABELS, UNRECOGNIZED_OBJECT_LABEL
from common.types import ObjectObservation


def top_prediction(candidates: Sequence[ObjectObservation]) -> Optional[ObjectObservation]:
    """Highest probability candidate; the first one wins on equal probability."""
    best: Optional[ObjectObservation] = None
    for candidate in candidates:
        if best is None or candidate.probability > best.probability:
            best = candidate
    return best


def translate_label(
    class_name: str,
    label_table: Mapping[str, str] = DEFAULT_OBJECT_LABELS,
    fallback: str = UNRECOGNIZED_OBJECT_LABEL,
) -> str:
    return label_table.get(class_name, fallback)


def resolve_object(
    candidates: Sequence[ObjectObservation],
    label_table: Mapping[str, str] = DEFAULT_OBJECT_LABELS,
    fallback: str = UNRECOGNIZED_OBJECT_LABEL,
) -> tuple[Optional[str], Optional[float]]:
    best = top_prediction(candidates)
    if best is None:
        return None, None
    return translate_label(best.class_name, label_table, fallback), float(best.probability)
