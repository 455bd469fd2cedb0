"""
In-process counters for the transaction tools.

Tool outcomes are counted per tool and per cluster, and accepted submissions
per cluster, so an operator can see which network the server is writing to.
Counters live in one process and are not aggregated across workers.
"""

from __future__ import annotations

from collections import Counter, deque
from threading import Lock
from typing import Deque, Dict, Optional

MAX_RECENT_LATENCIES = 100


class MetricsRecorder:
    def __init__(self) -> None:
        self._lock = Lock()
        self._requests = 0
        self._latencies_ms: Deque[float] = deque(maxlen=MAX_RECENT_LATENCIES)
        self._rate_limited: Counter[str] = Counter()
        self._tool_outcomes: Dict[str, Counter[str]] = {}
        self._calls_by_cluster: Counter[str] = Counter()
        self._submissions_by_cluster: Counter[str] = Counter()

    def observe_request(self, duration_ms: float) -> None:
        with self._lock:
            self._requests += 1
            self._latencies_ms.append(duration_ms)

    def record_rate_limited(self, tool: str) -> None:
        with self._lock:
            self._rate_limited[tool] += 1

    def record_tool(self, tool: str, *, success: bool, cluster: Optional[str] = None) -> None:
        with self._lock:
            outcomes = self._tool_outcomes.setdefault(tool, Counter())
            outcomes["success" if success else "error"] += 1
            if cluster is not None:
                self._calls_by_cluster[cluster] += 1

    def record_submission(self, cluster: str) -> None:
        """Count a transaction the cluster accepted."""
        with self._lock:
            self._submissions_by_cluster[cluster] += 1

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            latencies = list(self._latencies_ms)
            return {
                "requests": self._requests,
                "rate_limited": dict(self._rate_limited),
                "tools": {
                    tool: {"success": outcomes["success"], "error": outcomes["error"]}
                    for tool, outcomes in self._tool_outcomes.items()
                },
                "calls_by_cluster": dict(self._calls_by_cluster),
                "submissions_by_cluster": dict(self._submissions_by_cluster),
                "transactions_submitted": sum(self._submissions_by_cluster.values()),
                "recent_latency_ms": {
                    "count": len(latencies),
                    "max": max(latencies, default=0.0),
                    "mean": sum(latencies) / len(latencies) if latencies else 0.0,
                },
            }

    def reset(self) -> None:
        with self._lock:
            self._requests = 0
            self._latencies_ms.clear()
            self._rate_limited.clear()
            self._tool_outcomes.clear()
            self._calls_by_cluster.clear()
            self._submissions_by_cluster.clear()


default_metrics = MetricsRecorder()


def tool_succeeded(result: Optional[object]) -> bool:
    return not (isinstance(result, dict) and "error" in result)
