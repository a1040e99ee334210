"""
Unit tests for structured logging, metrics and job listeners.
"""

import json
import logging

import pytest

from batchflow.batch import LoggingJobListener, TableVerificationListener
from batchflow.core.models import JobExecution, JobStatus, Person
from batchflow.observability.logger import bind, get_logger, log_operation, setup_logger
from batchflow.observability.metrics import (
    REGISTRY,
    MetricsCollector,
    generate_metrics,
    get_content_type,
)


@pytest.fixture
def json_logger(capsys, restore_logging):
    """Root logger writing JSON to the captured stdout"""
    return setup_logger(level="DEBUG", format_type="json")


def last_json_line(capsys) -> dict:
    lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
    return json.loads(lines[-1])


class TestLogger:
    """Tests for the JSON logger"""

    def test_json_fields(self, json_logger, capsys):
        """Test records carry level, logger and extra fields"""
        get_logger("batchflow.batch.chunk").info("Committed chunk", extra={"job_name": "importUserJob"})

        record = last_json_line(capsys)
        assert record["message"] == "Committed chunk"
        assert record["level"] == "INFO"
        assert record["logger"] == "batchflow.batch.chunk"
        assert record["component"] == "batch.chunk"
        assert record["job_name"] == "importUserJob"
        assert "timestamp" in record

    def test_bound_context(self, json_logger, capsys):
        """Test bind() adds job context and call-site extras override it"""
        log = bind(get_logger("batchflow.batch.chunk"), job_name="importUserJob", step_name="step1")

        log.warning("Skipped record", extra={"step_name": "step2"})

        record = last_json_line(capsys)
        assert record["job_name"] == "importUserJob"
        assert record["step_name"] == "step2"
        assert record["level"] == "WARNING"

    def test_foreign_names_nested(self):
        """Test loggers outside the hierarchy are nested under batchflow"""
        assert get_logger("__main__").name == "batchflow.__main__"
        assert get_logger("batchflow.cli").name == "batchflow.cli"

    def test_setup_replaces_handlers(self, restore_logging):
        """Test reconfiguring does not stack handlers"""
        setup_logger(format_type="text")
        logger = setup_logger(format_type="text")

        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_level_from_argument(self, restore_logging):
        """Test an explicit level wins over the environment"""
        logger = setup_logger(level="warning")
        assert logger.level == logging.WARNING

    def test_log_operation_success(self, json_logger, capsys):
        """Test a completed operation logs its duration"""
        with log_operation("import people", logger=json_logger, run_id=1):
            pass

        record = last_json_line(capsys)
        assert record["message"] == "Completed: import people"
        assert record["status"] == "success"
        assert record["run_id"] == 1

    def test_log_operation_failure(self, json_logger, capsys):
        """Test a failed operation logs the error and re-raises"""
        with pytest.raises(ValueError):
            with log_operation("import people", logger=json_logger):
                raise ValueError("boom")

        record = last_json_line(capsys)
        assert record["status"] == "error"
        assert record["error_type"] == "ValueError"


class TestMetrics:
    """Tests for the Prometheus registry"""

    def test_job_run_counter(self):
        """Test job runs are counted by status"""
        collector = MetricsCollector()
        before = REGISTRY.get_sample_value(
            "batch_job_runs_total", {"job_name": "counted-job", "status": "FAILED"}
        ) or 0

        collector.record_job_run("counted-job", "FAILED", 0.5)

        after = REGISTRY.get_sample_value(
            "batch_job_runs_total", {"job_name": "counted-job", "status": "FAILED"}
        )
        assert after == before + 1

    def test_retry_and_rollback(self):
        """Test chunk retries and rollbacks are counted per step"""
        collector = MetricsCollector().for_step("retry-job", "step1")
        collector.record_rollback(0.01)
        collector.record_retry()

        labels = {"job_name": "retry-job", "step_name": "step1"}
        assert REGISTRY.get_sample_value("batch_chunk_retries_total", labels) == 1
        assert REGISTRY.get_sample_value("batch_chunks_total", {**labels, "outcome": "rollback"}) == 1

    def test_exposition(self):
        """Test the registry renders in text format"""
        MetricsCollector().for_step("exposed-job", "step1").record_read()

        output = generate_metrics().decode("utf-8")

        assert "batch_records_read_total" in output
        assert 'job_name="exposed-job"' in output
        assert get_content_type().startswith("text/plain")


class FakeQueryPool:
    def __init__(self, rows):
        self.rows = rows
        self.queries = []

    def execute_query(self, query, params=None):
        self.queries.append(query)
        return self.rows


class TestListeners:
    """Tests for the shipped job listeners"""

    def test_verification_reads_table_after_success(self):
        """Test completed runs read every row back as records"""
        pool = FakeQueryPool([
            {"first_name": "JILL", "last_name": "DOE"},
            {"first_name": "JOE", "last_name": "DOE"},
        ])
        listener = TableVerificationListener(pool)

        listener.after_job(JobExecution(job_name="importUserJob", run_id=1, status=JobStatus.COMPLETED))

        assert listener.found == [
            Person(first_name="JILL", last_name="DOE"),
            Person(first_name="JOE", last_name="DOE"),
        ]
        assert "ORDER BY person_id" in pool.queries[0]

    def test_verification_skipped_after_failure(self):
        """Test failed runs are not verified"""
        pool = FakeQueryPool([])
        listener = TableVerificationListener(pool)

        listener.after_job(JobExecution(job_name="importUserJob", run_id=1, status=JobStatus.FAILED))

        assert pool.queries == []

    @pytest.mark.parametrize("status", [JobStatus.COMPLETED, JobStatus.FAILED])
    def test_logging_listener(self, json_logger, capsys, status):
        """Test the outcome is logged with the run's counts"""
        execution = JobExecution(job_name="importUserJob", run_id=7, status=status)
        execution.finish()

        LoggingJobListener().after_job(execution)

        record = last_json_line(capsys)
        assert record["run_id"] == 7
        assert record["status"] == status.value
        assert record["written"] == 0
