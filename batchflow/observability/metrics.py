"""
Prometheus metrics for batch job runs

All metrics live on a private registry so that embedding applications
and tests never collide with the default prometheus_client registry.
"""
import os
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()


# =======================
# RECORD METRICS
# =======================

records_read_total = Counter(
    name="batch_records_read_total",
    documentation="Records successfully read from a step's source",
    labelnames=["job_name", "step_name"],
    registry=REGISTRY,
)

records_written_total = Counter(
    name="batch_records_written_total",
    documentation="Records committed to a step's sink",
    labelnames=["job_name", "step_name"],
    registry=REGISTRY,
)

records_skipped_total = Counter(
    name="batch_records_skipped_total",
    documentation="Records dropped by the skip policy",
    labelnames=["job_name", "step_name", "phase"],  # phase: read, transform
    registry=REGISTRY,
)

records_filtered_total = Counter(
    name="batch_records_filtered_total",
    documentation="Records filtered out by the transformer",
    labelnames=["job_name", "step_name"],
    registry=REGISTRY,
)

# =======================
# CHUNK METRICS
# =======================

chunks_total = Counter(
    name="batch_chunks_total",
    documentation="Chunk transactions by outcome",
    labelnames=["job_name", "step_name", "outcome"],  # outcome: commit, rollback
    registry=REGISTRY,
)

chunk_retries_total = Counter(
    name="batch_chunk_retries_total",
    documentation="Chunk write re-attempts after a rollback",
    labelnames=["job_name", "step_name"],
    registry=REGISTRY,
)

chunk_size_records = Histogram(
    name="batch_chunk_size_records",
    documentation="Number of records per committed chunk",
    labelnames=["job_name", "step_name"],
    buckets=[1, 5, 10, 50, 100, 500, 1000, 5000],
    registry=REGISTRY,
)

chunk_write_duration_seconds = Histogram(
    name="batch_chunk_write_duration_seconds",
    documentation="Time spent inside a chunk transaction",
    labelnames=["job_name", "step_name"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
    registry=REGISTRY,
)

# =======================
# JOB METRICS
# =======================

job_runs_total = Counter(
    name="batch_job_runs_total",
    documentation="Job runs by terminal status",
    labelnames=["job_name", "status"],  # status: COMPLETED, FAILED
    registry=REGISTRY,
)

job_duration_seconds = Histogram(
    name="batch_job_duration_seconds",
    documentation="Wall-clock duration of job runs",
    labelnames=["job_name"],
    buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0],
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """Render the registry in Prometheus text format"""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST


def start_metrics_server(port: Optional[int] = None) -> None:
    """
    Start an HTTP server exposing the registry

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    # Imported lazily so importing this module never binds a port
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


class MetricsCollector:
    """
    Facade used by the chunk engine and job launcher.

    Binds the job and step labels once so call sites only report counts.
    """

    def __init__(self, job_name: str = "unknown", step_name: str = "unknown"):
        self.job_name = job_name
        self.step_name = step_name

    def for_step(self, job_name: str, step_name: str) -> "MetricsCollector":
        return MetricsCollector(job_name=job_name, step_name=step_name)

    def _labels(self) -> dict[str, str]:
        return {"job_name": self.job_name, "step_name": self.step_name}

    def record_read(self) -> None:
        records_read_total.labels(**self._labels()).inc()

    def record_skip(self, phase: str) -> None:
        records_skipped_total.labels(phase=phase, **self._labels()).inc()

    def record_filter(self) -> None:
        records_filtered_total.labels(**self._labels()).inc()

    def record_commit(self, record_count: int, duration_seconds: float) -> None:
        chunks_total.labels(outcome="commit", **self._labels()).inc()
        records_written_total.labels(**self._labels()).inc(record_count)
        chunk_size_records.labels(**self._labels()).observe(record_count)
        chunk_write_duration_seconds.labels(**self._labels()).observe(duration_seconds)

    def record_rollback(self, duration_seconds: float) -> None:
        chunks_total.labels(outcome="rollback", **self._labels()).inc()
        chunk_write_duration_seconds.labels(**self._labels()).observe(duration_seconds)

    def record_retry(self) -> None:
        chunk_retries_total.labels(**self._labels()).inc()

    def record_job_run(self, job_name: str, status: str, duration_seconds: float) -> None:
        job_runs_total.labels(job_name=job_name, status=status).inc()
        job_duration_seconds.labels(job_name=job_name).observe(duration_seconds)
