"""Diagnostic logging for claude-guard: console warnings plus a rotating file.

The logger is built in stages. Anything may log before the configuration is
known (config loading itself does), so ``setup_logging`` can be called again
to attach the rotating file and to apply the configured level.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from claude_guard.core.policy import Verdict


LOGGER_NAME = "claude_guard"
LOG_FILE = "claude-guard.log"

_FORMATTER = logging.Formatter(
    "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

_logger: logging.Logger | None = None


def parse_level(name: str | None) -> int:
    """Numeric level for a name such as ``"debug"``; unknown names give INFO."""
    level = logging.getLevelName(str(name or "").upper())
    return level if isinstance(level, int) else logging.INFO


def _rotating_handler(logger: logging.Logger) -> RotatingFileHandler | None:
    for handler in logger.handlers:
        if isinstance(handler, RotatingFileHandler):
            return handler
    return None


def _attach_file(
    logger: logging.Logger,
    logs_dir: Path,
    log_file: str,
    max_bytes: int,
    backup_count: int,
) -> None:
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            logs_dir / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        logger.warning("File logging disabled: %s", e)
        return
    handler.setFormatter(_FORMATTER)
    logger.addHandler(handler)


def setup_logging(
    log_level: str | None = None,
    logs_dir: Path | None = None,
    log_file: str = LOG_FILE,
    max_bytes: int = 1024 * 1024,  # 1MB
    backup_count: int = 3,
) -> logging.Logger:
    """Configure the claude-guard logger.

    The first call installs a WARNING console handler at level INFO. Any
    call with ``logs_dir`` attaches the rotating file if none is attached
    yet, and any call with ``log_level`` sets the level. Repeated calls
    never duplicate handlers.
    """
    global _logger
    if _logger is None:
        logger = logging.getLogger(LOGGER_NAME)
        logger.handlers.clear()
        logger.propagate = False
        logger.setLevel(logging.INFO)

        console = logging.StreamHandler()
        console.setLevel(logging.WARNING)
        console.setFormatter(_FORMATTER)
        logger.addHandler(console)
        _logger = logger

    if logs_dir is not None and _rotating_handler(_logger) is None:
        _attach_file(_logger, Path(logs_dir), log_file, max_bytes, backup_count)
    if log_level is not None:
        _logger.setLevel(parse_level(log_level))
    return _logger


def get_logger() -> logging.Logger:
    """The claude-guard logger, console-only until ``setup_logging`` adds a file."""
    return _logger if _logger is not None else setup_logging()


def reset_logger() -> None:
    """Close and drop every handler (tests start from a clean logger)."""
    global _logger
    if _logger is not None:
        for handler in _logger.handlers:
            handler.close()
        _logger.handlers.clear()
        _logger = None


def log_decision(command: str, verdict: "Verdict") -> None:
    """Log the verdict reached for a command."""
    logger = get_logger()
    source = verdict.source.value if verdict.source else "-"
    if verdict.is_allowed:
        logger.info(
            "Decision kind=%s source=%s warnings=%d command=%r",
            verdict.kind.value, source, len(verdict.warnings), command,
        )
    else:
        logger.info(
            "Decision kind=%s source=%s pattern=%r reason=%r command=%r",
            verdict.kind.value, source, verdict.pattern, verdict.reason, command,
        )
