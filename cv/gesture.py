"""Raised-hand rule over hand landmarks."""
from __future__ import annotations

from typing import Sequence

from common.types import HandObservation

WRIST = 0
MIDDLE_FINGER_TIP = 12


def is_hand_raised(hand: HandObservation) -> bool:
    """Middle fingertip above the wrist. Image y grows downwards."""
    if len(hand.landmarks) <= MIDDLE_FINGER_TIP:
        return False
    wrist_y = hand.landmarks[WRIST][1]
    tip_y = hand.landmarks[MIDDLE_FINGER_TIP][1]
    return tip_y < wrist_y


def raised_hands(hands: Sequence[HandObservation]) -> list[HandObservation]:
    return [hand for hand in hands if is_hand_raised(hand)]
