"""
Structured JSON logging for stepguard

Every module logs through a child of the "stepguard" logger, which writes
one JSON object per line via python-json-logger. Step-level records carry
step_index, step_type and (for breaches) severity as top-level fields so
runs can be filtered per step downstream.
"""
import logging
import os
import sys
import time
from typing import Any

from pythonjsonlogger import jsonlogger

from stepguard.core.models import StepOutcome

DEFAULT_LOGGER_NAME = "stepguard"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

JSON_FORMAT = "%(timestamp)s %(level)s %(logger)s %(module)s %(function)s %(message)s"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter adding timestamp, level, logger, module and function
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = log_record.get("timestamp") or self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: str | None = None,
    format_type: str = "json",
) -> logging.Logger:
    """
    Configure a logger with a single stdout handler

    Args:
        name: Logger name
        level: Log level name; LOG_LEVEL env var (default INFO) when None
        format_type: "json" or "text"

    Returns:
        The configured logger
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = LOG_LEVELS.get(level_name, logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if format_type == "json":
        handler.setFormatter(CustomJsonFormatter(fmt=JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
    else:
        handler.setFormatter(logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger in the stepguard namespace

    The package logger is configured the first time any module asks for a
    logger; child loggers reach its handler through propagation.
    """
    package_logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    if not package_logger.handlers:
        setup_logger(DEFAULT_LOGGER_NAME)
    return logging.getLogger(name)


def step_fields(step_index: int, step_type: str, **extra: Any) -> dict[str, Any]:
    """Extra fields shared by every step-level log record."""
    return {"step_index": step_index, "step_type": step_type, **extra}


def log_step_outcome(logger: logging.Logger, outcome: StepOutcome) -> None:
    """
    Log the classification of one step.

    Evaluation failures log at WARNING, breaches at INFO and clean steps
    at DEBUG.
    """
    tally = outcome.tally
    fields = step_fields(
        outcome.step_index,
        outcome.step_type,
        n=tally.n,
        n_fail=tally.n_fail,
        f_failed=tally.f_failed,
        breached_levels=sorted(level.value for level in outcome.breached_levels),
    )
    if outcome.highest_breached is not None:
        fields["severity"] = outcome.highest_breached.value

    if outcome.evaluation_failed:
        logger.warning(f"Step {outcome.step_index} could not be evaluated: {outcome.error}", extra=fields)
    elif outcome.highest_breached is not None:
        logger.info(f"Step {outcome.step_index} breached {outcome.highest_breached.value}", extra=fields)
    else:
        logger.debug(f"Step {outcome.step_index} within thresholds", extra=fields)


class log_operation:
    """
    Context manager that logs the start, end and duration of an operation

    Usage:
        with log_operation("Validation run", logger=logger, label="orders") as op:
            ...
        op.duration  # seconds
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.start_time: float | None = None
        self.duration: float | None = None

    def _fields(self, **fields: Any) -> dict[str, Any]:
        return {"operation": self.operation_name, **fields, **self.extra_fields}

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.info(f"Starting: {self.operation_name}", extra=self._fields())
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self.start_time
        elapsed = round(self.duration, 3)

        if exc_type is None:
            self.logger.info(
                f"Completed: {self.operation_name}",
                extra=self._fields(duration_seconds=elapsed, status="success"),
            )
        else:
            self.logger.error(
                f"Failed: {self.operation_name}",
                extra=self._fields(
                    duration_seconds=elapsed,
                    status="error",
                    error_type=exc_type.__name__,
                    error_message=str(exc_val),
                ),
                exc_info=True,
            )
        return False
