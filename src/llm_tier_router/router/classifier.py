"""Request classifier. Decides between the default and power tier.

The full conversation and the most recent user turn are scored
independently and the higher score wins. A complex ongoing conversation is
not masked by a trivial last turn, and a long history does not hide a
complex new request. On a tie the full-conversation signals are reported.
"""

from __future__ import annotations

from typing import Sequence

from .scorer import calculate_complexity_score
from .text import extract_text_content
from .types import ChatMessage, ClassificationResult, Thresholds


def _last_user_message(messages: Sequence[ChatMessage]) -> ChatMessage | None:
    for message in reversed(messages):
        if message.role == "user":
            return message
    return None


def classify_request(
    messages: Sequence[ChatMessage],
    thresholds: Thresholds,
) -> ClassificationResult:
    full_text = extract_text_content(messages)
    last_user = _last_user_message(messages)
    last_text = extract_text_content([last_user]) if last_user else ""

    full_score, full_signals = calculate_complexity_score(full_text, thresholds)
    last_score, last_signals = calculate_complexity_score(last_text, thresholds)

    score = max(full_score, last_score)
    signals = full_signals if score == full_score else last_signals
    use_power = score >= thresholds.min_score_for_power

    if use_power:
        reason = (
            f"Complexity score {score} >= {thresholds.min_score_for_power} "
            f"(signals: {', '.join(signals)})"
        )
    else:
        reason = (
            f"Complexity score {score} < {thresholds.min_score_for_power} "
            "- using default model"
        )

    return ClassificationResult(
        use_power_tier=use_power,
        score=score,
        signals=tuple(signals),
        reason=reason,
    )
