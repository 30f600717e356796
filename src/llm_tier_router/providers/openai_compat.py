"""OpenAI-compatible completion backend.

Talks to any endpoint that speaks the OpenAI chat completion API: Ollama,
OpenAI, LiteLLM-style proxies and Anthropic's OpenAI-compatible endpoint.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator

import httpx

from ..router.types import ChatMessage
from .base import BackendError, CompletionBackend

logger = logging.getLogger(__name__)

ANTHROPIC_API_HOST = "api.anthropic.com"
ANTHROPIC_OPENAI_BASE = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"


class OpenAICompatibleBackend(CompletionBackend):
    """Backend for OpenAI-compatible ``/chat/completions`` endpoints."""

    @property
    def is_direct_anthropic(self) -> bool:
        return (
            self.config.provider == "anthropic"
            and ANTHROPIC_API_HOST in self.config.base_url
        )

    @property
    def base_url(self) -> str:
        # Proxies are used as configured; direct Anthropic needs its /v1 root.
        if self.is_direct_anthropic:
            return ANTHROPIC_OPENAI_BASE
        return self.config.base_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        if self.is_direct_anthropic:
            headers["anthropic-version"] = ANTHROPIC_VERSION
        return headers

    def _body(
        self,
        messages: list[ChatMessage],
        temperature: float | None,
        max_tokens: int | None,
        stream: bool,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.config.model,
            "messages": [m.to_dict() for m in messages],
            "stream": stream,
        }
        if temperature is not None:
            body["temperature"] = temperature
        if max_tokens is not None:
            body["max_tokens"] = max_tokens
        return body

    def _http_error(self, status_code: int, text: str) -> BackendError:
        detail = text
        try:
            payload = json.loads(text)
            if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
                detail = payload["error"].get("message", text)
        except ValueError:
            pass
        return BackendError(
            f"{self.config.model} returned HTTP {status_code}: {detail}",
            status_code=status_code,
        )

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        """Send a non-streaming chat completion request."""
        client = await self.get_client()
        url = f"{self.base_url}/chat/completions"
        body = self._body(messages, temperature, max_tokens, stream=False)

        try:
            resp = await client.post(url, json=body, headers=self._headers())
        except httpx.TimeoutException as e:
            logger.error("Timeout calling %s: %s", url, e)
            raise BackendError(f"Backend timeout: {self.config.model}") from e
        except httpx.HTTPError as e:
            logger.error("Error calling %s: %s", url, e)
            raise BackendError(f"Backend error: {e}") from e

        if resp.status_code != 200:
            raise self._http_error(resp.status_code, resp.text)
        try:
            return resp.json()
        except ValueError as e:
            raise BackendError(f"Invalid JSON from {self.config.model}: {e}") from e

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Stream a chat completion, yielding each decoded SSE ``data:`` event.

        The upstream response is closed when the stream ends, fails, or the
        consumer closes this generator early.
        """
        client = await self.get_client()
        url = f"{self.base_url}/chat/completions"
        body = self._body(messages, temperature, max_tokens, stream=True)

        try:
            async with client.stream("POST", url, json=body, headers=self._headers()) as resp:
                if resp.status_code != 200:
                    await resp.aread()
                    raise self._http_error(resp.status_code, resp.text)
                async for line in resp.aiter_lines():
                    line = line.strip()
                    if not line.startswith("data:"):
                        continue
                    data = line[len("data:"):].strip()
                    if data == "[DONE]":
                        break
                    try:
                        yield json.loads(data)
                    except ValueError as e:
                        raise BackendError(
                            f"Invalid stream event from {self.config.model}: {e}"
                        ) from e
        except httpx.TimeoutException as e:
            logger.error("Timeout streaming from %s: %s", url, e)
            raise BackendError(f"Backend timeout: {self.config.model}") from e
        except httpx.HTTPError as e:
            logger.error("Error streaming from %s: %s", url, e)
            raise BackendError(f"Backend error: {e}") from e
