"""
Loguru logging configuration for orderflow.

Engine and order code log through the loguru ``logger`` with keyword
context (``run_id``, ``step_name``, ``callback_id``, ``order_id``). This
module decides how those records are rendered:

- Human-readable console output with the context appended
- JSON lines for log aggregators (ELK, Loki, Datadog)
- Optional rotating log file
"""

import json
import os
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Generator

from loguru import logger

CONTEXT_KEYS = ("run_id", "workflow_name", "step_name", "callback_id", "order_id")


def configure_logging(
    level: str = "INFO",
    log_file: str | None = None,
    json_logs: bool = False,
    show_context: bool = True,
) -> None:
    """
    Configure orderflow logging with loguru.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
        json_logs: If True, output one JSON object per line
        show_context: If True, include execution context in log lines

    Examples:
        # Console output only
        configure_logging()

        # Production mode with JSON logs
        configure_logging(level="INFO", log_file="orderflow.log", json_logs=True)
    """
    logger.remove()

    if json_logs:
        logger.add(
            sys.stderr,
            format="{extra[_json]}",
            level=level,
            colorize=False,
            filter=_create_json_filter(show_context),
        )
    else:
        console_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

        def add_context(record: dict[str, Any]) -> bool:
            extra_str = ""
            if show_context:
                parts = [
                    f"{key}={record['extra'][key]}"
                    for key in CONTEXT_KEYS
                    if key in record["extra"]
                ]
                if parts:
                    extra_str = " | " + " ".join(parts)
            record["extra"]["_context"] = extra_str
            return True

        logger.add(
            sys.stderr,
            format=console_format + "{extra[_context]}",
            level=level,
            colorize=True,
            filter=add_context,  # type: ignore[arg-type]
        )

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format="{extra[_json]}" if json_logs else (
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
                "{name}:{function}:{line} | {message} | {extra}"
            ),
            level=level,
            rotation="100 MB",
            retention="30 days",
            compression="gz",
            filter=_create_json_filter(show_context) if json_logs else None,
        )

    logger.debug(f"orderflow logging configured at level {level}")


def _create_json_filter(show_context: bool) -> Any:
    def json_filter(record: dict[str, Any]) -> bool:
        record["extra"]["_json"] = _format_for_json(record, show_context)
        return True

    return json_filter


def _format_for_json(record: dict[str, Any], show_context: bool = True) -> str:
    """Format a log record as a JSON object for log aggregators."""
    context = {}
    extra = {}

    for key, value in record["extra"].items():
        if key.startswith("_"):
            continue
        if key in CONTEXT_KEYS:
            context[key] = value
        else:
            extra[key] = _safe_serialize(value)

    log_obj: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }

    if show_context and context:
        log_obj["context"] = context

    if extra:
        log_obj["extra"] = extra

    if record["exception"] is not None:
        exc = record["exception"]
        log_obj["exception"] = {
            "type": exc.type.__name__ if exc.type else None,
            "value": str(exc.value) if exc.value else None,
        }

    return json.dumps(log_obj, default=str)


def _safe_serialize(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool, type(None))):
        return value
    if isinstance(value, (list, tuple)):
        return [_safe_serialize(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _safe_serialize(v) for k, v in value.items()}
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def configure_logging_from_env() -> None:
    """Configure logging from environment variables.

    Environment variables:
        ORDERFLOW_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        ORDERFLOW_LOG_FORMAT: "json" or "console"
        ORDERFLOW_LOG_FILE: Optional file path for log output
        ORDERFLOW_LOG_CONTEXT: Whether to show context ("true" or "false")
    """
    level = os.getenv("ORDERFLOW_LOG_LEVEL", "INFO").upper()
    format_type = os.getenv("ORDERFLOW_LOG_FORMAT", "console").lower()
    log_file = os.getenv("ORDERFLOW_LOG_FILE")
    show_context = os.getenv("ORDERFLOW_LOG_CONTEXT", "true").lower() in ("true", "1", "yes")

    configure_logging(
        level=level,
        log_file=log_file,
        json_logs=(format_type == "json"),
        show_context=show_context,
    )


def bind_order_context(order_id: str, run_id: str | None = None) -> Any:
    """Logger with order_id (and run_id) bound to every message."""
    if run_id:
        return logger.bind(order_id=order_id, run_id=run_id)
    return logger.bind(order_id=order_id)


@contextmanager
def workflow_logging_context(run_id: str, workflow_name: str) -> Generator[None, None, None]:
    """Bind execution context to all logs within scope."""
    with logger.contextualize(run_id=run_id, workflow_name=workflow_name):
        yield


@contextmanager
def step_logging_context(run_id: str, step_name: str) -> Generator[None, None, None]:
    with logger.contextualize(run_id=run_id, step_name=step_name):
        yield
