"""Tiered dispatcher. Classifies a request and forwards it to one backend.

Routing steps:
1. Classify the conversation (no model call)
2. Pick the default or power backend
3. Call it (blocking or streaming)
4. Normalize the reply and attach ``_router`` metadata
5. If a non-streaming default-tier call fails, retry once on the power tier
"""

from __future__ import annotations

import logging
import time
from contextlib import aclosing
from typing import TYPE_CHECKING, Any, AsyncIterator

from ..providers.base import BackendError, CompletionBackend
from ..providers.openai_compat import OpenAICompatibleBackend
from .classifier import classify_request
from .types import (
    ChatCompletionRequest,
    Choice,
    ClassificationResult,
    RoutedResponse,
    RouterMetadata,
    StreamChoice,
    StreamChunk,
    Tier,
    Usage,
)

if TYPE_CHECKING:
    from ..config import RouterConfig

logger = logging.getLogger(__name__)

FALLBACK_SIGNAL = "fallback_after_error"


def normalize_completion(
    completion: dict[str, Any],
    metadata: RouterMetadata,
) -> RoutedResponse:
    """Convert a decoded OpenAI-format completion into a RoutedResponse."""
    choices = []
    for i, choice in enumerate(completion.get("choices") or []):
        message = choice.get("message") or {}
        normalized = {
            "role": message.get("role") or "assistant",
            "content": message.get("content") or "",
        }
        if message.get("tool_calls"):
            normalized["tool_calls"] = message["tool_calls"]
        choices.append(Choice(
            index=choice.get("index", i),
            message=normalized,
            finish_reason=choice.get("finish_reason"),
        ))

    usage = None
    raw_usage = completion.get("usage")
    if raw_usage:
        usage = Usage(
            prompt_tokens=raw_usage.get("prompt_tokens", 0),
            completion_tokens=raw_usage.get("completion_tokens", 0),
            total_tokens=raw_usage.get("total_tokens", 0),
        )

    return RoutedResponse(
        id=completion.get("id", ""),
        created=completion.get("created") or int(time.time()),
        model=completion.get("model") or metadata.model,
        choices=choices,
        usage=usage,
        router=metadata,
    )


def normalize_chunk(chunk: dict[str, Any]) -> StreamChunk:
    """Convert one decoded upstream stream event into a StreamChunk."""
    choices = []
    for i, choice in enumerate(chunk.get("choices") or []):
        delta = choice.get("delta") or {}
        normalized: dict[str, Any] = {}
        if delta.get("role") is not None:
            normalized["role"] = delta["role"]
        if delta.get("content") is not None:
            normalized["content"] = delta["content"]
        choices.append(StreamChoice(
            index=choice.get("index", i),
            delta=normalized,
            finish_reason=choice.get("finish_reason"),
        ))
    return StreamChunk(
        id=chunk.get("id", ""),
        created=chunk.get("created", 0),
        model=chunk.get("model", ""),
        choices=choices,
    )


class TierRouter:
    """Routes chat completions between a default and a power backend."""

    def __init__(
        self,
        config: RouterConfig,
        default_backend: CompletionBackend | None = None,
        power_backend: CompletionBackend | None = None,
    ):
        self.config = config
        self._backends: dict[Tier, CompletionBackend] = {
            Tier.DEFAULT: default_backend or OpenAICompatibleBackend(
                config.default_model, timeout=config.request_timeout,
            ),
            Tier.POWER: power_backend or OpenAICompatibleBackend(
                config.power_model, timeout=config.request_timeout,
            ),
        }

    def backend(self, tier: Tier) -> CompletionBackend:
        return self._backends[tier]

    def classify(self, request: ChatCompletionRequest) -> ClassificationResult:
        classification = classify_request(request.messages, self.config.thresholds)
        logger.debug(
            "Classification: tier=%s score=%d reason=%s",
            classification.tier.value, classification.score, classification.reason,
        )
        return classification

    async def _attempt(
        self,
        tier: Tier,
        request: ChatCompletionRequest,
    ) -> tuple[dict[str, Any] | None, BackendError | None]:
        """Make one non-streaming call; return (completion, None) or (None, error)."""
        backend = self._backends[tier]
        try:
            completion = await backend.chat_completion(
                request.messages,
                temperature=request.temperature,
                max_tokens=request.max_tokens,
            )
            if not isinstance(completion, dict) or not isinstance(completion.get("choices"), list):
                raise BackendError(f"{backend.model} returned a reply without choices")
        except BackendError as e:
            return None, e
        return completion, None

    async def route_request(
        self,
        request: ChatCompletionRequest,
    ) -> tuple[RoutedResponse, Tier, ClassificationResult]:
        """Classify and dispatch a non-streaming request.

        Returns the routed response, the tier that actually served it, and
        the classification. Raises BackendError when the serving tier fails.
        """
        classification = self.classify(request)
        tier = classification.tier
        signals = list(classification.signals)

        completion, error = await self._attempt(tier, request)

        if error is not None and tier is Tier.DEFAULT:
            logger.warning(
                "Default model failed: %s. Falling back to power model.", error,
                extra={"tier": tier.value, "fallback": True},
            )
            tier = Tier.POWER
            signals.append(FALLBACK_SIGNAL)
            completion, error = await self._attempt(tier, request)

        if error is not None:
            raise error

        metadata = RouterMetadata(
            tier=tier,
            model=self._backends[tier].model,
            score=classification.score,
            signals=signals,
        )
        return normalize_completion(completion, metadata), tier, classification

    async def route_streaming_request(
        self,
        request: ChatCompletionRequest,
        classification: ClassificationResult | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Classify and stream a request, yielding chunks in upstream order.

        A precomputed ``classification`` may be passed by callers that need
        the tier before the first chunk. There is no fallback once streaming
        starts; upstream errors propagate to the consumer. Closing this
        generator closes the upstream stream.
        """
        if classification is None:
            classification = self.classify(request)
        backend = self._backends[classification.tier]

        stream = backend.chat_completion_stream(
            request.messages,
            temperature=request.temperature,
            max_tokens=request.max_tokens,
        )
        async with aclosing(stream):
            async for chunk in stream:
                yield normalize_chunk(chunk)

    async def close(self) -> None:
        """Clean up backend connections."""
        for backend in self._backends.values():
            await backend.close()
