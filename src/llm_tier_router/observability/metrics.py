"""Routing metrics for the ``/metrics`` endpoint."""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from dataclasses import dataclass


@dataclass
class RequestMetrics:
    """Metrics for a single routed request."""

    timestamp: float
    tier: str  # tier that served the request, or "error"
    model: str
    score: int
    latency_ms: float
    status_code: int
    tokens_in: int = 0
    tokens_out: int = 0
    was_fallback: bool = False
    streamed: bool = False


class MetricsCollector:
    """Thread-safe per-request metrics with aggregate statistics.

    Owned by the HTTP server; the routing core never records metrics.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._requests: list[RequestMetrics] = []
        self._counters: dict[str, int] = defaultdict(int)
        self._start_time = time.time()

    def record_request(self, metrics: RequestMetrics) -> None:
        with self._lock:
            self._requests.append(metrics)
            self._counters["total_requests"] += 1
            self._counters[f"tier_{metrics.tier}"] += 1
            self._counters[f"model_{metrics.model}"] += 1
            self._counters[f"status_{metrics.status_code}"] += 1
            if metrics.was_fallback:
                self._counters["fallbacks"] += 1
            if metrics.streamed:
                self._counters["streamed"] += 1

    def _distribution(self, prefix: str) -> dict[str, int]:
        return {
            k[len(prefix):]: v
            for k, v in self._counters.items()
            if k.startswith(prefix)
        }

    def get_summary(self) -> dict:
        """Get aggregate metrics summary."""
        with self._lock:
            if not self._requests:
                return {
                    "total_requests": 0,
                    "uptime_seconds": round(time.time() - self._start_time, 1),
                }

            latencies = sorted(r.latency_ms for r in self._requests)
            scores = [r.score for r in self._requests]

            return {
                "total_requests": len(self._requests),
                "uptime_seconds": round(time.time() - self._start_time, 1),
                "counters": dict(self._counters),
                "latency": {
                    "mean_ms": round(sum(latencies) / len(latencies), 1),
                    "min_ms": round(latencies[0], 1),
                    "max_ms": round(latencies[-1], 1),
                    "p50_ms": round(latencies[len(latencies) // 2], 1),
                    "p99_ms": round(latencies[int(len(latencies) * 0.99)], 1),
                },
                "score": {
                    "mean": round(sum(scores) / len(scores), 1),
                    "max": max(scores),
                },
                "tokens": {
                    "total_input": sum(r.tokens_in for r in self._requests),
                    "total_output": sum(r.tokens_out for r in self._requests),
                },
                "fallbacks": self._counters.get("fallbacks", 0),
                "tier_distribution": self._distribution("tier_"),
                "model_distribution": self._distribution("model_"),
            }

    def clear(self) -> None:
        with self._lock:
            self._requests.clear()
            self._counters.clear()
            self._start_time = time.time()
