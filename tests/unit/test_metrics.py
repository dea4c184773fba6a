"""Tests for the orchestration metrics collector."""

from __future__ import annotations

from script_orchestrator.metrics import (
    MetricType,
    MetricsCollector,
    MetricValue,
    get_metrics_collector,
    reset_metrics_collector,
)
from script_orchestrator.models import OrchestrationMetrics, OrchestrationResult


def _result(success: bool = True, **metrics: float) -> OrchestrationResult:
    return OrchestrationResult(success=success, metrics=OrchestrationMetrics(**metrics))  # type: ignore[arg-type]


class TestRecordRun:
    """Tests for record_run()."""

    def test_counts_runs_by_outcome(self) -> None:
        collector = MetricsCollector()

        collector.record_run(_result(success=True))
        collector.record_run(_result(success=True))
        collector.record_run(_result(success=False))

        success = collector.get_metric("orchestration_runs_total", {"outcome": "success"})
        failure = collector.get_metric("orchestration_runs_total", {"outcome": "failure"})
        assert success is not None and success.value == 2
        assert failure is not None and failure.value == 1
        assert success.metric_type is MetricType.COUNTER

    def test_search_failures_accumulate(self) -> None:
        collector = MetricsCollector()

        collector.record_run(_result(failed_search_count=1))
        collector.record_run(_result(failed_search_count=2))

        metric = collector.get_metric("orchestration_search_failures_total")
        assert metric is not None
        assert metric.value == 3

    def test_phase_durations_keep_latest(self) -> None:
        collector = MetricsCollector()

        collector.record_run(_result(decomposition_time=0.5, total_time=2.0))
        collector.record_run(_result(decomposition_time=0.25, total_time=1.0))

        decomposition = collector.get_metric(
            "orchestration_phase_duration_seconds", {"phase": "decomposition"}
        )
        total = collector.get_metric("orchestration_phase_duration_seconds", {"phase": "total"})
        assert decomposition is not None and decomposition.value == 0.25
        assert total is not None and total.value == 1.0
        assert decomposition.metric_type is MetricType.HISTOGRAM

    def test_callbacks_receive_every_metric(self) -> None:
        collector = MetricsCollector()
        seen: list[MetricValue] = []
        collector.register_callback(seen.append)

        collector.record_run(_result(sub_task_count=3))

        names = {m.name for m in seen}
        assert "orchestration_runs_total" in names
        assert "orchestration_subtasks" in names
        assert len(seen) == len(collector.get_all_metrics())

    def test_failing_callback_does_not_break_recording(self) -> None:
        collector = MetricsCollector()

        def broken(metric: MetricValue) -> None:
            raise RuntimeError("sink down")

        collector.register_callback(broken)
        collector.record_run(_result())

        assert collector.get_metric("orchestration_runs_total", {"outcome": "success"}) is not None


def test_export_prometheus() -> None:
    collector = MetricsCollector()
    collector.record_run(_result(sub_task_count=3, estimated_cost=0.02))

    output = collector.export_prometheus()

    assert "# TYPE orchestration_runs_total counter" in output
    assert 'orchestration_runs_total{outcome="success"} 1.0' in output
    assert 'orchestration_phase_duration_seconds{phase="search"} 0.0' in output
    assert "orchestration_subtasks 3" in output
    assert "# HELP orchestration_estimated_cost_usd" in output


def test_global_collector_singleton() -> None:
    first = get_metrics_collector()

    assert get_metrics_collector() is first

    reset_metrics_collector()
    assert get_metrics_collector() is not first
