"""Cost tracking and logging for extraction calls.

Every call to the extraction model produces one ``ExtractionLog`` line with
token usage, latency, cost and outcome. Logs accumulate so a batch summary
can be emitted (e.g. after re-analysing all contracts of a creator).

Usage:
    from core.cost_tracker import CostTracker, ExecutionStatus

    tracker = CostTracker()
    log = tracker.create_log(
        operation="CONTRACT_EXTRACTION",
        contract_id="c0ffee",
        model="gpt-4o",
        input_tokens=3120,
        output_tokens=1480,
        execution_time_ms=9200,
        status=ExecutionStatus.SUCCESS,
        extra_data={"red_flags": 3},
    )
    tracker.log_execution(log)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ExecutionStatus(str, Enum):
    """Outcome of an extraction call."""
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"
    VALIDATION_ERROR = "VALIDATION_ERROR"


# Cost per 1M tokens
MODEL_PRICING: dict[str, dict[str, float]] = {
    "gpt-4o": {"input": 2.5, "output": 10.0},
    "gpt-4o-mini": {"input": 0.15, "output": 0.6},
    "gpt-4-turbo": {"input": 10.0, "output": 30.0},
    "gpt-4": {"input": 30.0, "output": 60.0},
}
DEFAULT_MODEL = "gpt-4o"


def get_pricing(model_name: str) -> dict[str, float]:
    """Get pricing for a model by name (unknown models use gpt-4o rates)."""
    return MODEL_PRICING.get(model_name.lower(), MODEL_PRICING[DEFAULT_MODEL])


@dataclass
class ExtractionLog:
    """Log entry for a single extraction call."""
    timestamp: datetime
    operation: str
    contract_id: str
    model: str
    input_tokens: int
    output_tokens: int
    execution_time_ms: int
    cost_usd: float
    status: ExecutionStatus
    extra_data: dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None
    retry_count: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_log_string(self) -> str:
        """Format as a standardized log string."""
        extra_parts = " | ".join(f"{k}={v}" for k, v in self.extra_data.items())
        line = (
            f"{self.operation} | {self.contract_id} | model={self.model} | "
            f"tokens={self.input_tokens}/{self.output_tokens} | "
            f"execution_time_ms={self.execution_time_ms} | "
            f"cost_usd={self.cost_usd:.5f} | status={self.status.value} | "
            f"retries={self.retry_count}"
        )
        if extra_parts:
            line += f" | {extra_parts}"
        if self.error_message:
            line += f" | error={self.error_message}"
        return line

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "operation": self.operation,
            "contract_id": self.contract_id,
            "model": self.model,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
            "execution_time_ms": self.execution_time_ms,
            "cost_usd": self.cost_usd,
            "status": self.status.value,
            "extra_data": self.extra_data,
            "error_message": self.error_message,
            "retry_count": self.retry_count,
        }


@dataclass
class CostSummary:
    """Aggregate over all logged extraction calls."""
    batch_id: str
    total_calls: int
    successful_calls: int
    failed_calls: int
    total_cost_usd: float
    total_input_tokens: int
    total_output_tokens: int
    avg_execution_time_ms: float

    @property
    def success_rate_percent(self) -> float:
        return (self.successful_calls / self.total_calls * 100) if self.total_calls else 0.0

    def to_log_string(self) -> str:
        return (
            f"COST_SUMMARY | {self.batch_id} | calls={self.total_calls} | "
            f"total_cost_usd={self.total_cost_usd:.5f} | "
            f"success_rate={self.success_rate_percent:.1f}% | errors={self.failed_calls}"
        )


class CostTracker:
    """Cost tracking and logging for extraction calls."""

    def __init__(self, logger_name: str = "creatorlens.cost_tracker") -> None:
        """Initialize the cost tracker with a named logger."""
        self.logger = logging.getLogger(logger_name)
        self._logs: list[ExtractionLog] = []

    def calculate_cost(self, model: str, input_tokens: int, output_tokens: int) -> float:
        """Calculate cost in USD for a given model and token usage."""
        pricing = get_pricing(model)
        return (input_tokens * pricing["input"] + output_tokens * pricing["output"]) / 1_000_000

    def create_log(
        self,
        operation: str,
        contract_id: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
        execution_time_ms: int,
        status: str | ExecutionStatus,
        extra_data: dict[str, Any] | None = None,
        error_message: str | None = None,
        retry_count: int = 0,
    ) -> ExtractionLog:
        """Create an execution log entry with its cost filled in."""
        if isinstance(status, str):
            status = ExecutionStatus(status)

        return ExtractionLog(
            timestamp=datetime.now(timezone.utc),
            operation=operation,
            contract_id=contract_id,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            execution_time_ms=execution_time_ms,
            cost_usd=self.calculate_cost(model, input_tokens, output_tokens),
            status=status,
            extra_data=extra_data or {},
            error_message=error_message,
            retry_count=retry_count,
        )

    def log_execution(self, log: ExtractionLog) -> None:
        """Record a log entry and emit it (INFO on success, WARNING otherwise)."""
        self._logs.append(log)
        level = logging.INFO if log.status == ExecutionStatus.SUCCESS else logging.WARNING
        self.logger.log(level, log.to_log_string())

    def get_summary(self, batch_id: str) -> CostSummary:
        """Summarize all recorded calls."""
        logs = self._logs
        total = len(logs)
        successful = sum(1 for log in logs if log.status == ExecutionStatus.SUCCESS)
        return CostSummary(
            batch_id=batch_id,
            total_calls=total,
            successful_calls=successful,
            failed_calls=total - successful,
            total_cost_usd=sum(log.cost_usd for log in logs),
            total_input_tokens=sum(log.input_tokens for log in logs),
            total_output_tokens=sum(log.output_tokens for log in logs),
            avg_execution_time_ms=(sum(log.execution_time_ms for log in logs) / total) if total else 0.0,
        )

    def log_summary(self, batch_id: str) -> CostSummary:
        """Generate and log the summary."""
        summary = self.get_summary(batch_id)
        self.logger.info(summary.to_log_string())
        return summary

    def get_all_logs(self) -> list[ExtractionLog]:
        return list(self._logs)

    def reset(self) -> None:
        """Clear all recorded logs."""
        self._logs = []
