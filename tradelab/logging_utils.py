"""
Logging setup for tradelab.

Rules, the backtest engine and the CLI log through loguru; the feature modules
use stdlib ``logging``. ``setup_logging`` attaches a console sink to loguru and
forwards every loguru record into stdlib ``logging`` so one handler tree sees
both. Each record carries ``run_id``, ``environment`` and ``service_version``
extras; ``logging_context`` scopes extra values to a block.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

from loguru import logger

from tradelab import APP_VERSION
from tradelab.settings import get_logging_settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level:<8}</level> | "
    "{extra[run_id]} | <cyan>{name}</cyan>:{line} - {message}"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | "
    "run={extra[run_id]} env={extra[environment]} ver={extra[service_version]} | "
    "{name}:{line} | {message}"
)

TEST_LOG_NAME = "tradelab-tests.log"

_base_context: Dict[str, str] = {
    "run_id": "-",
    "environment": "local",
    "service_version": APP_VERSION,
}
_scoped_context: ContextVar[Dict[str, str]] = ContextVar("tradelab_log_context", default={})


def _inject_context(record: Dict[str, Any]) -> None:
    extra = record["extra"]
    for key, value in {**_base_context, **_scoped_context.get()}.items():
        extra.setdefault(key, value)


def _forward_to_stdlib(message) -> None:
    record = message.record
    exc = record["exception"]
    target = logging.getLogger(record["name"] or "tradelab")
    std_record = target.makeRecord(
        target.name,
        record["level"].no,
        record["file"].path,
        record["line"],
        record["message"],
        (),
        (exc.type, exc.value, exc.traceback) if exc else None,
        func=record["function"],
        extra=dict(record["extra"]),
    )
    target.handle(std_record)


def setup_logging(*, force: bool = False, level: Optional[str] = None) -> None:
    """
    Replace loguru's default sink with a stderr console sink plus the stdlib
    bridge, and enable the ``tradelab`` namespace.

    Calling it again is a no-op unless ``force`` is set. ``level`` defaults to
    ``TRADELAB_LOG_LEVEL``.
    """
    if getattr(setup_logging, "_configured", False) and not force:
        return

    cfg = get_logging_settings()
    log_level = (level or cfg.level).upper()
    _base_context["environment"] = cfg.environment

    logger.remove()
    logger.configure(patcher=_inject_context)
    logger.add(sys.stderr, level=log_level, format=CONSOLE_FORMAT, backtrace=False, diagnose=False)
    logger.add(_forward_to_stdlib, level=log_level, format="{message}", backtrace=False, diagnose=False)
    logger.enable("tradelab")

    logging.getLogger().setLevel(getattr(logging, log_level, logging.INFO))
    setup_logging._configured = True  # type: ignore[attr-defined]


def setup_test_logging(
    target: Optional[Union[str, Path]] = None,
    *,
    level: Optional[str] = None,
) -> Optional[Path]:
    """
    Logging for test runs: the regular sinks, plus a plain-text file when
    ``target`` names a file or a directory (which gets ``tradelab-tests.log``).

    Returns the log file path, or None when no file sink was added.
    """
    effective = (level or os.getenv("PYTEST_LOGLEVEL") or "INFO").upper()
    setup_logging(force=True, level=effective)
    if target is None:
        return None

    path = Path(target)
    if path.is_dir() or str(target).endswith(("/", os.sep)):
        path = path / TEST_LOG_NAME
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(path, level=effective, format=FILE_FORMAT, backtrace=False, diagnose=False)
    return path


@contextmanager
def logging_context(**values: Any) -> Iterator[None]:
    """Attach ``values`` (e.g. ``run_id``) to every record logged inside the block."""
    scoped = {k: str(v) for k, v in values.items() if v is not None}
    token = _scoped_context.set({**_scoped_context.get(), **scoped})
    try:
        yield
    finally:
        _scoped_context.reset(token)


__all__ = ["setup_logging", "setup_test_logging", "logging_context"]
