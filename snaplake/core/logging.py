"""Loguru logging for the API and snapshot workers, with optional Slack alerts.

Records bound with ``table`` / ``snapshot_id`` (see :func:`snapshot_logger`)
carry that context into every sink, so a failed write can be traced back to
its ledger row from the log line or the Slack message alone.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

import httpx
from loguru import logger

from snaplake.core.config import settings

BASE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[name]}:{function}:{line}"
LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")
LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}

# stdlib loggers re-routed through loguru instead of their own handlers
ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "alembic")
# Chatty at DEBUG: request signing, retries, connection pools
QUIET_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3")

_configured = False


class InterceptHandler(logging.Handler):
    """Redirect stdlib logs to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_name == "emit":
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _resolve_level(raw: str | None) -> str:
    level = (raw or "INFO").strip().upper()
    level = LEVEL_ALIASES.get(level, level)
    return level if level in LEVELS else "INFO"


def _snapshot_context(extra: Dict[str, Any]) -> str:
    parts = [f"{key}={extra[key]}" for key in ("table", "snapshot_id") if extra.get(key) is not None]
    return " [" + " ".join(parts) + "]" if parts else ""


def _format(record: Dict[str, Any]) -> str:
    # Context is rendered eagerly; braces in table names must not reach loguru's formatter
    context = _snapshot_context(record["extra"]).replace("{", "{{").replace("}", "}}")
    return BASE_FORMAT + context + " | {message}\n{exception}"


def _slack_text(record: Dict[str, Any]) -> str:
    name = record["extra"].get("name", "snaplake")
    header = f"[{record['level'].name}] {name}:{record['function']}:{record['line']}"
    return f"{header}{_snapshot_context(record['extra'])}\n{record['message']}"


def _slack_sink(message: Any) -> None:
    if not settings.SLACK_WEBHOOK_URL:
        return
    try:
        httpx.post(settings.SLACK_WEBHOOK_URL, json={"text": _slack_text(message.record)}, timeout=5.0)
    except httpx.HTTPError:
        # Logging from here would feed straight back into this sink
        pass


def _handlers(level: str) -> List[Dict[str, Any]]:
    common = {"level": level, "format": _format, "backtrace": False, "diagnose": False}
    handlers: List[Dict[str, Any]] = [{"sink": sys.stdout, **common}]

    if settings.LOG_TO_FILE:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            {
                "sink": log_dir / "snaplake.log",
                "rotation": "10 MB",
                "retention": "14 days",
                "enqueue": True,
                **common,
            }
        )

    if settings.SLACK_WEBHOOK_URL:
        handlers.append({"sink": _slack_sink, "level": "ERROR", "enqueue": True})
    return handlers


def configure_logging() -> None:
    global _configured
    if _configured:
        return
    _configured = True

    logger.configure(
        handlers=_handlers(_resolve_level(settings.effective_log_level)),
        extra={"name": "snaplake"},
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers = [InterceptHandler()]
        routed.propagate = False
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logger.__class__:
    return logger.bind(name=name)


def snapshot_logger(name: str, table_name: str, snapshot_id: int) -> logger.__class__:
    """Logger whose records carry the table and snapshot they belong to."""
    return logger.bind(name=name, table=table_name, snapshot_id=snapshot_id)


configure_logging()
