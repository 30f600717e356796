"""HTTP server for the llm-tier-router.

An OpenAI-compatible endpoint in front of the tier router. Request handlers
run on server threads and hand the async routing work to a single event loop
running in a background thread.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import logging
import threading
import time
import uuid
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, AsyncIterator

from . import __version__
from .config import RouterConfig
from .observability.logging import setup_logging
from .observability.metrics import MetricsCollector, RequestMetrics
from .router.dispatch import FALLBACK_SIGNAL, TierRouter
from .router.types import ChatCompletionRequest, StreamChunk

logger = logging.getLogger(__name__)

STREAM_CLOSE_TIMEOUT = 5.0


async def _next_chunk(stream: AsyncIterator[StreamChunk]) -> StreamChunk | None:
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        return None


async def _close_stream(stream: AsyncIterator[StreamChunk]) -> None:
    await stream.aclose()


class RouterHTTPHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the llm-tier-router.

    Provides an OpenAI-compatible API:
    - POST /v1/chat/completions - Route a chat completion request
    - GET  /v1/models - List the router and both tier models
    - GET  /v1/router/info - Tier models and thresholds
    - GET  /health - Health check
    - GET  /metrics - Routing metrics
    """

    router: TierRouter  # Set by the server factory
    loop: asyncio.AbstractEventLoop
    metrics: MetricsCollector

    def log_message(self, format, *args):
        """Suppress default request logging (we use structured logging)."""
        pass

    def do_GET(self):
        if self.path == "/v1/models":
            self._handle_models()
        elif self.path == "/v1/router/info":
            self._handle_info()
        elif self.path == "/health":
            self._handle_health()
        elif self.path == "/metrics":
            self._send_json(200, self.metrics.get_summary())
        else:
            self._send_json(404, {"error": {"message": "Not found"}})

    def do_POST(self):
        if self.path == "/v1/chat/completions":
            self._handle_chat_completion()
        else:
            self._send_json(404, {"error": {"message": "Not found"}})

    # ── Chat completions ──

    def _handle_chat_completion(self):
        content_length = int(self.headers.get("Content-Length", 0))
        body_bytes = self.rfile.read(content_length)

        try:
            body = json.loads(body_bytes)
        except ValueError:
            # Also covers bodies that are not valid UTF-8
            self._send_json(400, {"error": {
                "message": "Invalid JSON", "type": "invalid_request_error",
            }})
            return

        if not isinstance(body, dict) or not isinstance(body.get("messages"), list):
            self._send_json(400, {"error": {
                "message": "messages array is required",
                "type": "invalid_request_error",
            }})
            return

        if not all(isinstance(m, dict) for m in body["messages"]):
            self._send_json(400, {"error": {
                "message": "each message must be an object",
                "type": "invalid_request_error",
            }})
            return

        request = ChatCompletionRequest.from_dict(body)
        request_id = str(uuid.uuid4())[:8]
        if request.stream:
            self._handle_streaming(request, request_id)
        else:
            self._handle_blocking(request, request_id)

    def _handle_blocking(self, request: ChatCompletionRequest, request_id: str):
        start = time.monotonic()
        future = asyncio.run_coroutine_threadsafe(
            self.router.route_request(request), self.loop,
        )
        try:
            response, tier, classification = future.result(
                timeout=self.router.config.request_timeout + 5
            )
        except concurrent.futures.TimeoutError:
            future.cancel()
            self._record(request_id, "error", "", 0, start, 504)
            self._send_json(504, {"error": {
                "message": "Request timeout", "type": "api_error",
            }})
            return
        except Exception as e:
            logger.exception("Error routing request %s", request_id)
            self._record(request_id, "error", "", 0, start, 500)
            self._send_json(500, {"error": {"message": str(e), "type": "api_error"}})
            return

        usage = response.usage
        self._record(
            request_id, tier.value, response.router.model, classification.score,
            start, 200,
            tokens_in=usage.prompt_tokens if usage else 0,
            tokens_out=usage.completion_tokens if usage else 0,
            was_fallback=FALLBACK_SIGNAL in response.router.signals,
        )
        self._send_json(200, response.to_dict())

    def _handle_streaming(self, request: ChatCompletionRequest, request_id: str):
        start = time.monotonic()
        try:
            classification = self.router.classify(request)
            stream = self.router.route_streaming_request(request, classification)
        except Exception as e:
            # Nothing sent yet, so the failure can still be a JSON reply
            logger.exception("Error classifying request %s", request_id)
            self._record(request_id, "error", "", 0, start, 500, streamed=True)
            self._send_json(500, {"error": {"message": str(e), "type": "api_error"}})
            return
        tier = classification.tier

        self.send_response(200)
        self.send_header("Content-Type", "text/event-stream")
        self.send_header("Cache-Control", "no-cache")
        self.send_header("Connection", "close")
        self.end_headers()

        status = 200
        try:
            while True:
                chunk = asyncio.run_coroutine_threadsafe(
                    _next_chunk(stream), self.loop,
                ).result()
                if chunk is None:
                    break
                self._write_event(json.dumps(chunk.to_dict()))
            self._write_event("[DONE]")
        except (BrokenPipeError, ConnectionResetError):
            status = 499
            logger.info("Client disconnected from stream %s", request_id)
        except Exception as e:
            status = 500
            logger.exception("Error streaming request %s", request_id)
            try:
                self._write_event(json.dumps({"error": {"message": str(e)}}))
            except OSError:
                pass
        finally:
            asyncio.run_coroutine_threadsafe(_close_stream(stream), self.loop).result(
                timeout=STREAM_CLOSE_TIMEOUT
            )

        self._record(
            request_id, tier.value, self.router.backend(tier).model,
            classification.score, start, status, streamed=True,
        )

    def _write_event(self, data: str):
        self.wfile.write(f"data: {data}\n\n".encode())
        self.wfile.flush()

    def _record(
        self,
        request_id: str,
        tier: str,
        model: str,
        score: int,
        start: float,
        status_code: int,
        **kwargs: Any,
    ):
        latency = (time.monotonic() - start) * 1000
        self.metrics.record_request(RequestMetrics(
            timestamp=time.time(),
            tier=tier,
            model=model,
            score=score,
            latency_ms=latency,
            status_code=status_code,
            **kwargs,
        ))
        logger.info(
            "Routed request %s: tier=%s model=%s score=%d status=%d latency=%.0fms",
            request_id, tier, model, score, status_code, latency,
            extra={
                "request_id": request_id, "tier": tier, "model": model,
                "score": score, "status_code": status_code,
                "latency_ms": round(latency, 1),
            },
        )

    # ── Info endpoints ──

    def _handle_models(self):
        config = self.router.config
        created = int(time.time())
        models = [{
            "id": "router",
            "object": "model",
            "created": created,
            "owned_by": "llm-tier-router",
        }]
        for m in (config.default_model, config.power_model):
            models.append({
                "id": f"{m.provider}/{m.model}",
                "object": "model",
                "created": created,
                "owned_by": m.provider,
            })
        self._send_json(200, {"object": "list", "data": models})

    def _handle_info(self):
        config = self.router.config
        th = config.thresholds
        self._send_json(200, {
            "default_model": {
                "provider": config.default_model.provider,
                "model": config.default_model.model,
            },
            "power_model": {
                "provider": config.power_model.provider,
                "model": config.power_model.model,
            },
            "thresholds": {
                "min_length_for_power": th.min_length_for_power,
                "min_code_lines_for_power": th.min_code_lines_for_power,
                "min_score_for_power": th.min_score_for_power,
            },
        })

    def _handle_health(self):
        self._send_json(200, {"status": "ok", "version": __version__})

    def _send_json(self, status: int, body: dict):
        response_bytes = json.dumps(body).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(response_bytes)))
        self.end_headers()
        self.wfile.write(response_bytes)


def create_server(
    config: RouterConfig,
    router: TierRouter | None = None,
    configure_logging: bool = True,
) -> tuple[ThreadingHTTPServer, TierRouter]:
    """Create an HTTP server with the tier router.

    Returns (server, router) tuple. The event loop running the routing work
    is exposed as ``server.loop``.
    """
    if configure_logging:
        setup_logging(
            level=config.observability.log_level,
            fmt=config.observability.log_format,
        )

    router = router or TierRouter(config)

    loop = asyncio.new_event_loop()
    loop_thread = threading.Thread(target=loop.run_forever, daemon=True)
    loop_thread.start()

    handler = type("Handler", (RouterHTTPHandler,), {
        "router": router,
        "loop": loop,
        "metrics": MetricsCollector(),
    })

    server = ThreadingHTTPServer((config.host, config.port), handler)
    server.daemon_threads = True
    server.loop = loop
    logger.info(
        "LLM Tier Router starting on %s:%d", config.host, server.server_address[1],
    )
    logger.info(
        "  Default: %s/%s", config.default_model.provider, config.default_model.model,
    )
    logger.info(
        "  Power:   %s/%s", config.power_model.provider, config.power_model.model,
    )
    logger.info("  Threshold: score >= %d", config.thresholds.min_score_for_power)

    return server, router


def shutdown_router(server: ThreadingHTTPServer, router: TierRouter) -> None:
    """Close backend connections and stop the routing event loop."""
    loop: asyncio.AbstractEventLoop = server.loop
    asyncio.run_coroutine_threadsafe(router.close(), loop).result(timeout=10)
    loop.call_soon_threadsafe(loop.stop)
