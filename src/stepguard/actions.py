"""
Built-in actions.

Each factory returns a callable taking an ActionContext. Attach them to a
ThresholdConfig under warn_actions, stop_actions or notify_actions.
"""

import logging
import warnings
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from stepguard.core.errors import StepStopError
from stepguard.core.models import ActionContext
from stepguard.observability.logger import get_logger

ActionFn = Callable[[ActionContext], None]

LEVEL_LOG_LEVELS = {
    "warn": logging.WARNING,
    "stop": logging.ERROR,
    "notify": logging.CRITICAL,
}


class StepWarning(UserWarning):
    """Warning category emitted by warn_on_fail()."""


def log_action(logger: logging.Logger | None = None, level: int | None = None) -> ActionFn:
    """
    Log the breach through a logger.

    Args:
        logger: Logger to use (the package logger if None)
        level: Logging level; by default derived from the breached level
    """
    target = logger or get_logger("stepguard.actions")

    def log_step(context: ActionContext) -> None:
        log_level = level if level is not None else LEVEL_LOG_LEVELS[context.breached_level.value]
        target.log(
            log_level,
            context.message(),
            extra={
                "step_index": context.step_index,
                "step_type": context.step_type,
                "severity": context.breached_level.value,
                "n_fail": context.n_fail,
                "f_failed": context.f_failed,
            },
        )

    return log_step


def warn_on_fail() -> ActionFn:
    """Emit a StepWarning through the warnings module."""

    def warn_step(context: ActionContext) -> None:
        warnings.warn(context.message(), StepWarning, stacklevel=2)

    return warn_step


def stop_on_fail() -> ActionFn:
    """Raise StepStopError; the dispatcher records it as a stop failure."""

    def stop_step(context: ActionContext) -> None:
        raise StepStopError(context.message(), context=context)

    return stop_step


def append_to_log(path: str | Path) -> ActionFn:
    """
    Append one line per firing to a log file.

    The line format is "<utc timestamp> <LEVEL> <message>".
    """
    log_path = Path(path)

    def append_step(context: ActionContext) -> None:
        timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(f"{timestamp} {context.breached_level.value.upper()} {context.message()}\n")

    return append_step


BUILTIN_ACTIONS: dict[str, Callable[[], ActionFn]] = {
    "log": log_action,
    "warn": warn_on_fail,
    "stop": stop_on_fail,
}
