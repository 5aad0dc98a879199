"""
In-process metrics for scenario executions
"""

from typing import Any

from seedline.core.types import ExecutionStatus, StepStatus


class ExecutionMetrics:
    """Collect and expose execution metrics"""

    def __init__(self):
        self.metrics = {
            "total_executed": 0,
            "total_completed": 0,
            "total_partial": 0,
            "total_failed": 0,
            "total_steps": 0,
            "total_step_errors": 0,
            "total_skipped_steps": 0,
            "average_execution_time": 0.0,
            "active": 0,
            "by_scenario": {},
        }

    def execution_started(self, scenario_name: str) -> None:
        self.metrics["active"] += 1

    def execution_finished(self, scenario_name: str) -> None:
        self.metrics["active"] = max(0, self.metrics["active"] - 1)

    def record_execution(self, scenario_name: str, status: ExecutionStatus, duration: float):
        """Record a finished execution"""
        self.metrics["total_executed"] += 1
        self._increment_status_counter(status)
        self._update_average_time(duration)
        self._update_scenario_stats(scenario_name, status)

    def record_step(
        self, scenario_name: str, step_id: str, status: StepStatus, duration: float
    ) -> None:
        self.metrics["total_steps"] += 1
        if status == StepStatus.ERROR:
            self.metrics["total_step_errors"] += 1

    def record_skip(self, scenario_name: str, step_id: str) -> None:
        self.metrics["total_skipped_steps"] += 1

    def _increment_status_counter(self, status: ExecutionStatus) -> None:
        status_map = {
            ExecutionStatus.COMPLETED: "total_completed",
            ExecutionStatus.PARTIAL: "total_partial",
            ExecutionStatus.FAILED: "total_failed",
        }
        counter = status_map.get(status)
        if counter:
            self.metrics[counter] += 1

    def _update_average_time(self, duration: float) -> None:
        total_time = self.metrics["average_execution_time"] * (
            self.metrics["total_executed"] - 1
        )
        self.metrics["average_execution_time"] = (
            total_time + duration
        ) / self.metrics["total_executed"]

    def _update_scenario_stats(self, scenario_name: str, status: ExecutionStatus) -> None:
        if scenario_name not in self.metrics["by_scenario"]:
            self.metrics["by_scenario"][scenario_name] = {
                "count": 0,
                "completed": 0,
                "partial": 0,
                "failed": 0,
            }

        stats = self.metrics["by_scenario"][scenario_name]
        stats["count"] += 1
        if status.value in stats:
            stats[status.value] += 1

    def get_metrics(self) -> dict[str, Any]:
        """Get all metrics"""
        success_rate = (
            self.metrics["total_completed"] / self.metrics["total_executed"] * 100
            if self.metrics["total_executed"] > 0
            else 0
        )

        return {
            **self.metrics,
            "success_rate": f"{success_rate:.2f}%",
        }
