"""Unit tests for extraction cost tracking."""

import logging

import pytest

from core.cost_tracker import CostTracker, ExecutionStatus, get_pricing


@pytest.fixture
def tracker() -> CostTracker:
    return CostTracker()


def add_log(tracker: CostTracker, status=ExecutionStatus.SUCCESS, execution_time_ms: int = 1000):
    log = tracker.create_log(
        operation="CONTRACT_EXTRACTION",
        contract_id="contract_001",
        model="gpt-4o-mini",
        input_tokens=1_000_000,
        output_tokens=0,
        execution_time_ms=execution_time_ms,
        status=status,
        extra_data={"red_flags": 2},
    )
    tracker.log_execution(log)
    return log


class TestCostCalculation:
    """Tests for cost calculation."""

    def test_known_model_pricing(self, tracker):
        assert tracker.calculate_cost("gpt-4o", 1_000_000, 1_000_000) == pytest.approx(12.5)

    def test_unknown_model_uses_default_pricing(self):
        assert get_pricing("some-new-model") == get_pricing("gpt-4o")

    def test_model_lookup_case_insensitive(self):
        assert get_pricing("GPT-4o-Mini") == {"input": 0.15, "output": 0.6}


class TestCostTracker:
    """Tests for log creation, emission and summaries."""

    def test_create_log_accepts_string_status(self, tracker):
        log = tracker.create_log(
            operation="CONTRACT_EXTRACTION",
            contract_id="c1",
            model="gpt-4o",
            input_tokens=10,
            output_tokens=5,
            execution_time_ms=50,
            status="TIMEOUT",
        )

        assert log.status == ExecutionStatus.TIMEOUT
        assert log.total_tokens == 15

    def test_log_string_format(self, tracker):
        log = add_log(tracker)

        line = log.to_log_string()

        assert line.startswith("CONTRACT_EXTRACTION | contract_001 | model=gpt-4o-mini")
        assert "cost_usd=0.15000" in line
        assert "red_flags=2" in line

    def test_failures_logged_as_warning(self, tracker, caplog):
        with caplog.at_level(logging.INFO, logger="creatorlens.cost_tracker"):
            add_log(tracker)
            add_log(tracker, status=ExecutionStatus.FAILURE)

        levels = [record.levelno for record in caplog.records]
        assert levels == [logging.INFO, logging.WARNING]

    def test_summary(self, tracker):
        add_log(tracker, execution_time_ms=1000)
        add_log(tracker, status=ExecutionStatus.RATE_LIMITED, execution_time_ms=3000)

        summary = tracker.get_summary("batch_001")

        assert summary.total_calls == 2
        assert summary.successful_calls == 1
        assert summary.failed_calls == 1
        assert summary.total_cost_usd == pytest.approx(0.3)
        assert summary.avg_execution_time_ms == 2000
        assert summary.success_rate_percent == 50.0
        assert "COST_SUMMARY | batch_001 | calls=2" in summary.to_log_string()

    def test_empty_summary(self, tracker):
        summary = tracker.get_summary("empty")

        assert summary.total_calls == 0
        assert summary.success_rate_percent == 0.0

    def test_log_summary_emits_line(self, tracker, caplog):
        add_log(tracker)

        with caplog.at_level(logging.INFO, logger="creatorlens.cost_tracker"):
            summary = tracker.log_summary("batch_002")

        assert summary.total_calls == 1
        assert "COST_SUMMARY | batch_002" in caplog.text

    def test_log_to_dict(self, tracker):
        data = add_log(tracker).to_dict()

        assert data["status"] == "SUCCESS"
        assert data["total_tokens"] == 1_000_000
        assert data["extra_data"] == {"red_flags": 2}

    def test_reset(self, tracker):
        add_log(tracker)
        tracker.reset()

        assert tracker.get_all_logs() == []
