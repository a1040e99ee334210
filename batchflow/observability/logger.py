"""
Structured logging for batchflow

Every module logs through get_logger(__name__). Records are emitted as JSON
(python-json-logger) by default so job runs can be shipped to a log
collector; LOG_FORMAT=text switches to a human-readable layout for local use.

Job and step identifiers are attached with bind(), which returns an adapter
adding them to every record:

    log = bind(logger, job_name="importUserJob", step_name="step1")
    log.info("Committed chunk 3")
"""
import logging
import os
import sys
import time
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import jsonlogger

ROOT_LOGGER_NAME = "batchflow"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

JSON_FIELDS = "%(timestamp)s %(level)s %(logger)s %(component)s %(message)s"
TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


class BatchJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter for job logs.

    Each line carries an ISO-8601 UTC timestamp, the level, the full logger
    name and the component (logger name below "batchflow."), followed by
    any extra fields such as job_name, step_name or run_id.
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat(
            timespec="milliseconds"
        )
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["component"] = record.name.removeprefix(ROOT_LOGGER_NAME + ".")


class JobContextAdapter(logging.LoggerAdapter):
    """Merges bound context into each record's extra; call-site extras win."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: str | None = None,
    format_type: str | None = None,
) -> logging.Logger:
    """
    Configure the batchflow logger hierarchy

    Handlers are attached to the "batchflow" root only; module loggers
    (batchflow.batch.chunk, ...) propagate to it.

    Args:
        name: Logger name to configure
        level: Log level (default: LOG_LEVEL, then INFO)
        format_type: "json" or "text" (default: LOG_FORMAT, then json)

    Returns:
        Configured logger instance
    """
    log_level = LOG_LEVELS.get((level or os.getenv("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    format_type = format_type or os.getenv("LOG_FORMAT", "json")

    if format_type == "json":
        formatter: logging.Formatter = BatchJsonFormatter(fmt=JSON_FIELDS)
    else:
        formatter = logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers[:] = [handler]
    logger.propagate = False

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger inside the batchflow hierarchy

    The root "batchflow" logger is configured on first use; names outside
    the hierarchy (e.g. "__main__") are nested under it.
    """
    if not logging.getLogger(ROOT_LOGGER_NAME).handlers:
        setup_logger(ROOT_LOGGER_NAME)

    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def bind(logger: logging.Logger, **context: Any) -> JobContextAdapter:
    """Return an adapter adding ``context`` to every record logged through it."""
    return JobContextAdapter(logger, context)


class log_operation:
    """
    Context manager logging the start, end and duration of an operation

    Usage:
        with log_operation("create people table", logger=logger):
            ...
    """

    def __init__(self, operation_name: str, logger: logging.Logger | logging.LoggerAdapter | None = None, **extra_fields):
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.start_time = 0.0

    def __enter__(self):
        self.start_time = time.monotonic()
        self.logger.info(
            f"Starting: {self.operation_name}",
            extra={"operation": self.operation_name, **self.extra_fields},
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        extra = {
            "operation": self.operation_name,
            "duration_seconds": round(time.monotonic() - self.start_time, 3),
            **self.extra_fields,
        }
        if exc_type is None:
            self.logger.info(f"Completed: {self.operation_name}", extra={**extra, "status": "success"})
        else:
            self.logger.error(
                f"Failed: {self.operation_name}",
                extra={**extra, "status": "error", "error_type": exc_type.__name__, "error_message": str(exc_val)},
                exc_info=True,
            )
        return False
