"""
Prometheus metrics integration for Seedline.

Quick Start:
    >>> from seedline.monitoring.prometheus import PrometheusMetrics, start_metrics_server
    >>>
    >>> start_metrics_server(port=8000)
    >>> metrics = PrometheusMetrics()
    >>>
    >>> from seedline.core.listeners import MetricsListener
    >>> orchestrator = ScenarioOrchestrator(..., listeners=[MetricsListener(metrics)])

Requirements:
    pip install prometheus-client
"""

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from seedline.core.types import ExecutionStatus, StepStatus

# Check if prometheus_client is installed
try:
    from prometheus_client import Counter, Gauge, Histogram, start_http_server

    PROMETHEUS_AVAILABLE = True
except ImportError:  # pragma: no cover
    PROMETHEUS_AVAILABLE = False
    Counter: Any = None  # type: ignore[no-redef]
    Gauge: Any = None  # type: ignore[no-redef]
    Histogram: Any = None  # type: ignore[no-redef]
    start_http_server: Any = None  # type: ignore[no-redef]


logger = logging.getLogger(__name__)


class PrometheusMetrics:
    """
    Prometheus-compatible metrics collector.

    Exposes the following metrics:
        - seedline_execution_total: Counter of executions by scenario and status
        - seedline_step_total: Counter of step attempts by scenario, step and status
        - seedline_step_skipped_total: Counter of steps skipped on failed dependencies
        - seedline_execution_duration_seconds: Histogram of execution durations
        - seedline_step_duration_seconds: Histogram of step durations
        - seedline_active_count: Gauge of currently running executions

    Metrics are registered in the default prometheus registry unless one is given.
    """

    def __init__(self, prefix: str = "seedline", registry: Any = None):
        if not PROMETHEUS_AVAILABLE:
            logger.warning(
                "prometheus-client not installed. Metrics will not be collected. "
                "Install with: pip install prometheus-client"
            )
            self._enabled = False
            return

        self._enabled = True
        self._prefix = prefix
        kwargs = {"registry": registry} if registry is not None else {}

        self._execution_total = Counter(
            f"{prefix}_execution_total",
            "Total scenario executions",
            ["scenario_name", "status"],
            **kwargs,
        )

        self._step_total = Counter(
            f"{prefix}_step_total",
            "Total step attempts",
            ["scenario_name", "step_id", "status"],
            **kwargs,
        )

        self._skipped_total = Counter(
            f"{prefix}_step_skipped_total",
            "Steps skipped because a dependency failed",
            ["scenario_name", "step_id"],
            **kwargs,
        )

        self._execution_duration = Histogram(
            f"{prefix}_execution_duration_seconds",
            "Scenario execution duration in seconds",
            ["scenario_name"],
            buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
            **kwargs,
        )

        self._step_duration = Histogram(
            f"{prefix}_step_duration_seconds",
            "Step execution duration in seconds",
            ["scenario_name", "step_id"],
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            **kwargs,
        )

        self._active_count = Gauge(
            f"{prefix}_active_count",
            "Number of currently running executions",
            ["scenario_name"],
            **kwargs,
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    def record_execution(
        self, scenario_name: str, status: "ExecutionStatus", duration: float
    ) -> None:
        if not self._enabled:
            return

        status_str = status.value if hasattr(status, "value") else str(status)
        self._execution_total.labels(scenario_name=scenario_name, status=status_str).inc()
        self._execution_duration.labels(scenario_name=scenario_name).observe(duration)

    def record_step(
        self, scenario_name: str, step_id: str, status: "StepStatus", duration: float
    ) -> None:
        if not self._enabled:
            return

        status_str = status.value if hasattr(status, "value") else str(status)
        self._step_total.labels(scenario_name=scenario_name, step_id=step_id, status=status_str).inc()
        self._step_duration.labels(scenario_name=scenario_name, step_id=step_id).observe(duration)

    def record_skip(self, scenario_name: str, step_id: str) -> None:
        if not self._enabled:
            return

        self._skipped_total.labels(scenario_name=scenario_name, step_id=step_id).inc()

    def execution_started(self, scenario_name: str) -> None:
        if not self._enabled:
            return

        self._active_count.labels(scenario_name=scenario_name).inc()

    def execution_finished(self, scenario_name: str) -> None:
        if not self._enabled:
            return

        self._active_count.labels(scenario_name=scenario_name).dec()


def start_metrics_server(port: int = 8000, addr: str = "0.0.0.0") -> None:
    """
    Start a Prometheus HTTP metrics server.

    Example:
        >>> start_metrics_server(port=8000)
        >>> # Metrics available at http://localhost:8000/metrics
    """
    if not PROMETHEUS_AVAILABLE:
        logger.error(
            "Cannot start metrics server: prometheus-client not installed. "
            "Install with: pip install prometheus-client"
        )
        return

    start_http_server(port, addr)
    logger.info(f"Prometheus metrics server started on port {port}")


def is_prometheus_available() -> bool:
    """Check if prometheus-client is installed."""
    return PROMETHEUS_AVAILABLE
