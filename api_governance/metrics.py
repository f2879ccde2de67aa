"""Prometheus metrics for the governance ruleset store.

Tracks repository operations by outcome, their duration and the number of
rules derived from ruleset content.
"""

import time
from functools import wraps
from typing import Any, Callable, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram

from api_governance.config import get_settings
from api_governance.exceptions import GovernanceException
from api_governance.logging_config import get_logger

logger = get_logger(__name__)

# Global metrics registry
_metrics: Optional["MetricsRegistry"] = None


class MetricsRegistry:
    """Holds the store's Prometheus collectors in a private registry."""

    def __init__(self, prefix: str = "governance", enabled: bool = True):
        self.prefix = prefix
        self.enabled = enabled
        self.registry = CollectorRegistry()

        self.ruleset_operations = Counter(
            f"{prefix}_ruleset_operations_total",
            "Total number of ruleset repository operations",
            ["operation", "outcome"],
            registry=self.registry,
        )
        self.rules_extracted = Counter(
            f"{prefix}_rules_extracted_total",
            "Total number of rules extracted from ruleset content",
            registry=self.registry,
        )
        self.operation_duration = Histogram(
            f"{prefix}_ruleset_operation_duration_seconds",
            "Ruleset repository operation duration in seconds",
            ["operation"],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1, 5],
            registry=self.registry,
        )

    def record_operation(self, operation: str, outcome: str, duration: float) -> None:
        """Count an operation outcome and record how long it took."""
        if not self.enabled:
            return
        self.ruleset_operations.labels(operation=operation, outcome=outcome).inc()
        self.operation_duration.labels(operation=operation).observe(duration)

    def record_rules_extracted(self, count: int) -> None:
        if self.enabled and count:
            self.rules_extracted.inc(count)

    def get_sample(self, name: str, **labels: str) -> float:
        """Read a single sample value, 0 if it was never recorded."""
        value = self.registry.get_sample_value(f"{self.prefix}_{name}", labels or None)
        return value or 0.0


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        settings = get_settings()
        _metrics = MetricsRegistry(
            prefix=settings.metrics_prefix,
            enabled=settings.metrics_enabled,
        )
    return _metrics


def track_ruleset_operation(operation: str):
    """Decorator to time an async repository operation and count its outcome.

    The outcome label is ``success`` or the ``error_code`` of the domain
    error that was raised.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            metrics = get_metrics()
            start = time.perf_counter()
            outcome = "success"
            try:
                return await func(*args, **kwargs)
            except GovernanceException as e:
                outcome = e.error_code
                raise
            except Exception:
                outcome = "error"
                raise
            finally:
                metrics.record_operation(operation, outcome, time.perf_counter() - start)

        return wrapper

    return decorator
