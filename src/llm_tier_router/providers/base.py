"""Base interface for completion backends."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

import httpx

from ..router.types import ChatMessage, ModelBackend

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """A completion call failed (transport error, timeout or non-200 reply)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class CompletionBackend(ABC):
    """One configured completion endpoint.

    The router holds one instance per tier for the life of the process and
    shares it across concurrent requests.
    """

    def __init__(
        self,
        config: ModelBackend,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def model(self) -> str:
        return self.config.model

    async def get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    @abstractmethod
    async def chat_completion(
        self,
        messages: list[ChatMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        """Run a non-streaming completion and return the decoded reply."""
        ...

    @abstractmethod
    def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Stream decoded completion chunks in upstream order."""
        ...

    async def health_check(self) -> bool:
        """Check if the backend is reachable."""
        try:
            client = await self.get_client()
            resp = await client.get(f"{self.config.base_url.rstrip('/')}/models", timeout=5.0)
            return resp.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
