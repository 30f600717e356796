"""Complexity scorer: runs every signal detector and clamps the total."""

from __future__ import annotations

from .signals import SIGNAL_DETECTORS
from .types import Thresholds

MIN_SCORE = 0
MAX_SCORE = 100


def calculate_complexity_score(
    text: str,
    thresholds: Thresholds,
) -> tuple[int, list[str]]:
    """Score ``text`` in [0, 100].

    Returns the clamped score and the labels of the detectors that fired,
    in detector order.
    """
    score = 0
    signals: list[str] = []
    for detector in SIGNAL_DETECTORS.values():
        points, label = detector(text, thresholds)
        score += points
        if label is not None:
            signals.append(label)
    return max(MIN_SCORE, min(MAX_SCORE, score)), signals
