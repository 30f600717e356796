"""Flatten chat messages into a single text blob for scoring."""

from __future__ import annotations

from typing import Iterable

from .types import ChatMessage


def _part_text(part: dict) -> str:
    text = part.get("text")
    return text if isinstance(text, str) else ""


def message_text(message: ChatMessage) -> str:
    """Text of one message. Only ``text`` content parts are kept."""
    content = message.content
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            _part_text(part)
            for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        )
    return ""


def extract_text_content(messages: Iterable[ChatMessage]) -> str:
    return "\n".join(message_text(m) for m in messages)
