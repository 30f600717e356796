"""Core type definitions for the routing system."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

PROVIDERS = ("ollama", "anthropic", "openai")


class Tier(str, Enum):
    """Backend tier a request is routed to."""

    DEFAULT = "default"
    POWER = "power"


@dataclass(frozen=True)
class Thresholds:
    """Gates for the length, code-volume and final score contributions."""

    min_length_for_power: int = 500
    min_code_lines_for_power: int = 30
    min_score_for_power: int = 50


@dataclass(frozen=True)
class ClassificationResult:
    """Output of the complexity classifier."""

    use_power_tier: bool
    score: int
    signals: tuple[str, ...] = ()
    reason: str = ""

    @property
    def tier(self) -> Tier:
        return Tier.POWER if self.use_power_tier else Tier.DEFAULT


@dataclass(frozen=True)
class ChatMessage:
    """A single message in a chat completion request.

    ``content`` is either a plain string or a list of OpenAI content parts
    (``{"type": "text", ...}``, ``{"type": "image_url", ...}``).
    """

    role: str
    content: str | list[dict[str, Any]] | None = None
    name: str | None = None
    tool_calls: list[dict[str, Any]] | None = None
    tool_call_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChatMessage:
        return cls(
            role=data.get("role", "user"),
            content=data.get("content"),
            name=data.get("name"),
            tool_calls=data.get("tool_calls"),
            tool_call_id=data.get("tool_call_id"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.name is not None:
            out["name"] = self.name
        if self.tool_calls is not None:
            out["tool_calls"] = self.tool_calls
        if self.tool_call_id is not None:
            out["tool_call_id"] = self.tool_call_id
        return out


@dataclass
class ChatCompletionRequest:
    """Parsed OpenAI-compatible chat completion request."""

    messages: list[ChatMessage]
    model: str = ""
    stream: bool = False
    temperature: float | None = None
    max_tokens: int | None = None

    @classmethod
    def from_dict(cls, body: dict[str, Any]) -> ChatCompletionRequest:
        return cls(
            messages=[ChatMessage.from_dict(m) for m in body.get("messages") or []],
            model=body.get("model") or "",
            stream=bool(body.get("stream", False)),
            temperature=body.get("temperature"),
            max_tokens=body.get("max_tokens"),
        )


@dataclass(frozen=True)
class ModelBackend:
    """Completion endpoint for one tier."""

    provider: str  # "ollama", "anthropic" or "openai"
    model: str
    base_url: str
    api_key: str | None = None


@dataclass
class RouterMetadata:
    """The ``_router`` extension attached to every routed response."""

    tier: Tier
    model: str
    score: int
    signals: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "tier": self.tier.value,
            "model": self.model,
            "score": self.score,
            "signals": list(self.signals),
        }


@dataclass
class Choice:
    index: int
    message: dict[str, Any]
    finish_reason: str | None = None


@dataclass
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class RoutedResponse:
    """Canonical non-streaming completion, wrapped with routing metadata."""

    id: str
    created: int
    model: str
    choices: list[Choice]
    router: RouterMetadata
    usage: Usage | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "object": "chat.completion",
            "created": self.created,
            "model": self.model,
            "choices": [
                {
                    "index": c.index,
                    "message": c.message,
                    "finish_reason": c.finish_reason,
                }
                for c in self.choices
            ],
        }
        if self.usage is not None:
            out["usage"] = {
                "prompt_tokens": self.usage.prompt_tokens,
                "completion_tokens": self.usage.completion_tokens,
                "total_tokens": self.usage.total_tokens,
            }
        out["_router"] = self.router.to_dict()
        return out


@dataclass
class StreamChoice:
    index: int
    delta: dict[str, Any]
    finish_reason: str | None = None


@dataclass
class StreamChunk:
    """One normalized chunk of a streamed completion."""

    id: str
    created: int
    model: str
    choices: list[StreamChoice]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": self.model,
            "choices": [
                {
                    "index": c.index,
                    "delta": c.delta,
                    "finish_reason": c.finish_reason,
                }
                for c in self.choices
            ],
        }
