"""Metrics collection for orchestration runs.

Turns each OrchestrationResult into counter, gauge and histogram values
that can be exported in Prometheus text format or forwarded to callbacks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

from .models import OrchestrationResult

logger = logging.getLogger(__name__)


class MetricType(Enum):
    """Types of metrics collected."""

    COUNTER = "counter"  # Monotonically increasing count
    GAUGE = "gauge"  # Point-in-time value
    HISTOGRAM = "histogram"  # Distribution of values


@dataclass
class MetricValue:
    """A single metric value with metadata."""

    name: str
    value: float
    metric_type: MetricType
    labels: dict[str, str] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    description: str = ""

    def to_prometheus(self) -> str:
        """Format as Prometheus exposition format."""
        label_str = ""
        if self.labels:
            pairs = [f'{k}="{v}"' for k, v in self.labels.items()]
            label_str = "{" + ",".join(pairs) + "}"
        return f"{self.name}{label_str} {self.value}"


class MetricsCollector:
    """Collects metrics from orchestration runs.

    Counters accumulate across runs; gauges and histograms keep the value
    of the most recent run.
    """

    def __init__(self) -> None:
        self._metrics: dict[str, MetricValue] = {}
        self._callbacks: list[Callable[[MetricValue], None]] = []

    def register_callback(self, callback: Callable[[MetricValue], None]) -> None:
        """Register a callback for metric updates."""
        self._callbacks.append(callback)

    def record_run(self, result: OrchestrationResult) -> None:
        """Record one completed orchestration run."""
        metrics = result.metrics
        outcome = "success" if result.success else "failure"

        self._increment(
            name="orchestration_runs_total",
            amount=1,
            labels={"outcome": outcome},
            description="Total orchestration runs",
        )
        self._increment(
            name="orchestration_search_failures_total",
            amount=metrics.failed_search_count,
            labels={},
            description="Total failed specialist searches",
        )

        for phase, seconds in (
            ("decomposition", metrics.decomposition_time),
            ("search", metrics.search_time),
            ("assembly", metrics.assembly_time),
            ("total", metrics.total_time),
        ):
            self._emit_metric(
                name="orchestration_phase_duration_seconds",
                value=seconds,
                metric_type=MetricType.HISTOGRAM,
                labels={"phase": phase},
                description="Duration of each orchestration phase",
            )

        self._emit_metric(
            name="orchestration_subtasks",
            value=metrics.sub_task_count,
            metric_type=MetricType.GAUGE,
            labels={},
            description="Subtasks in the most recent run",
        )
        self._emit_metric(
            name="orchestration_estimated_cost_usd",
            value=metrics.estimated_cost,
            metric_type=MetricType.GAUGE,
            labels={},
            description="Estimated LLM and search cost of the most recent run",
        )

    def get_metric(self, name: str, labels: dict[str, str] | None = None) -> MetricValue | None:
        """Look up a single metric by name and labels."""
        return self._metrics.get(self._key(name, labels or {}))

    def get_all_metrics(self) -> list[MetricValue]:
        """Get all current metrics."""
        return list(self._metrics.values())

    def export_prometheus(self) -> str:
        """Export all metrics in Prometheus format."""
        lines = []
        for metric in self._metrics.values():
            if metric.description:
                lines.append(f"# HELP {metric.name} {metric.description}")
            lines.append(f"# TYPE {metric.name} {metric.metric_type.value}")
            lines.append(metric.to_prometheus())
        return "\n".join(lines)

    def _increment(
        self, name: str, amount: float, labels: dict[str, str], description: str
    ) -> None:
        existing = self._metrics.get(self._key(name, labels))
        current = existing.value if existing is not None else 0.0
        self._emit_metric(
            name=name,
            value=current + amount,
            metric_type=MetricType.COUNTER,
            labels=labels,
            description=description,
        )

    def _emit_metric(
        self,
        name: str,
        value: float,
        metric_type: MetricType,
        labels: dict[str, str],
        description: str = "",
    ) -> None:
        """Emit a metric and notify callbacks."""
        metric = MetricValue(
            name=name,
            value=value,
            metric_type=metric_type,
            labels=labels,
            description=description,
        )
        self._metrics[self._key(name, labels)] = metric

        for callback in self._callbacks:
            try:
                callback(metric)
            except Exception as e:
                logger.error("Metrics callback error: %s", e)

    @staticmethod
    def _key(name: str, labels: dict[str, str]) -> str:
        return f"{name}:{':'.join(f'{k}={v}' for k, v in sorted(labels.items()))}"


# Global metrics collector instance
_collector: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector instance."""
    global _collector
    if _collector is None:
        _collector = MetricsCollector()
    return _collector


def reset_metrics_collector() -> None:
    """Reset the global metrics collector (for testing)."""
    global _collector
    _collector = None
