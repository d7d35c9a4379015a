"""
Utility functions and decorators for the FullContext MCP Server.

Includes:
- Logging setup for the server process
- Tool-call timing decorator
- Metrics aggregation reported by server_status
"""

import functools
import inspect
import logging
import sys
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, ParamSpec, TypeVar

P = ParamSpec("P")
T = TypeVar("T")

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = logging.WARNING) -> None:
    """
    Configure package logging once, to stderr.

    stdout carries the MCP stdio transport, so nothing may log there.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger("fullcontext_mcp").setLevel(level)


@dataclass
class PerformanceMetrics:
    """Collected performance metrics for a function call."""
    function_name: str
    elapsed_ms: float
    success: bool = True
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "function": self.function_name,
            "elapsed_ms": self.elapsed_ms,
            "success": self.success,
            "error": self.error,
        }


class MetricsCollector:
    """Collects and aggregates performance metrics."""

    def __init__(self, max_entries_per_function: int = 1000):
        self._metrics: dict[str, list[PerformanceMetrics]] = defaultdict(list)
        self._max_entries_per_function = max_entries_per_function

    def record(self, metrics: PerformanceMetrics) -> None:
        """Record a performance metric."""
        entries = self._metrics[metrics.function_name]
        entries.append(metrics)

        # Trim old entries if needed
        if len(entries) > self._max_entries_per_function:
            self._metrics[metrics.function_name] = entries[-self._max_entries_per_function:]

    def get_stats(self, function_name: str | None = None) -> dict[str, Any]:
        """Get aggregated statistics."""
        if function_name:
            return self._aggregate(function_name, self._metrics.get(function_name, []))
        return {name: self._aggregate(name, entries) for name, entries in self._metrics.items()}

    @staticmethod
    def _aggregate(name: str, entries: list[PerformanceMetrics]) -> dict[str, Any]:
        if not entries:
            return {"function": name, "call_count": 0}

        times = sorted(e.elapsed_ms for e in entries)
        failures = sum(1 for e in entries if not e.success)

        return {
            "function": name,
            "call_count": len(entries),
            "error_count": failures,
            "avg_ms": round(sum(times) / len(times), 3),
            "max_ms": round(times[-1], 3),
            "p50_ms": round(times[len(times) // 2], 3),
        }

    def clear(self) -> None:
        """Clear all metrics."""
        self._metrics.clear()


# Global metrics collector
_global_collector = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector."""
    return _global_collector


def performance_metrics(
    collector: MetricsCollector | None = None,
    name: str | None = None,
    log_slow_calls_ms: float | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Decorator to time calls and record them in a MetricsCollector.

    Args:
        collector: MetricsCollector to use (default: global collector)
        name: Metric name (default: the function's qualified name)
        log_slow_calls_ms: Log calls slower than this threshold

    Example:
        @performance_metrics(name="read_file_chunk", log_slow_calls_ms=1000)
        async def handle_read_file_chunk(arguments: dict) -> list[TextContent]:
            ...
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        func_name = name or f"{func.__module__}.{func.__qualname__}"

        def finish(start_time: float, error: str | None) -> None:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            (collector or _global_collector).record(PerformanceMetrics(
                function_name=func_name,
                elapsed_ms=elapsed_ms,
                success=error is None,
                error=error,
            ))
            if log_slow_calls_ms and elapsed_ms > log_slow_calls_ms:
                logger.warning(
                    "SLOW: %s took %.1fms (threshold: %sms)",
                    func_name, elapsed_ms, log_slow_calls_ms,
                )

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
                start_time = time.perf_counter()
                error = None
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    error = str(e)
                    raise
                finally:
                    finish(start_time, error)

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            start_time = time.perf_counter()
            error = None
            try:
                return func(*args, **kwargs)
            except Exception as e:
                error = str(e)
                raise
            finally:
                finish(start_time, error)

        return sync_wrapper

    return decorator
