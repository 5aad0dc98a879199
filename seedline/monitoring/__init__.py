"""
Execution monitoring and observability utilities

Quick Start:
    >>> from seedline.monitoring import setup_logging
    >>> setup_logging(json_format=True)

    # Enable Prometheus metrics (requires prometheus-client)
    >>> from seedline.monitoring.prometheus import PrometheusMetrics, start_metrics_server
    >>> start_metrics_server(port=8000)
    >>> metrics = PrometheusMetrics()
"""

from .logging import (
    ExecutionContextFilter,
    SeedlineJsonFormatter,
    bound_execution_context,
    clear_execution_context,
    execution_context,
    set_execution_context,
    setup_logging,
)
from .metrics import ExecutionMetrics
from .prometheus import PrometheusMetrics, is_prometheus_available, start_metrics_server

__all__ = [
    # Logging
    "ExecutionContextFilter",
    "SeedlineJsonFormatter",
    "bound_execution_context",
    "clear_execution_context",
    "execution_context",
    "set_execution_context",
    "setup_logging",
    # Metrics
    "ExecutionMetrics",
    "PrometheusMetrics",
    "is_prometheus_available",
    "start_metrics_server",
]
