"""Logging configuration for the ledger API server and CLI tools.

Both entry points log to stdout and to a file. The level comes from LOG_LEVEL
(default INFO; WARNING in production keeps only clamps, drops and failures).
Variance clamps and dropped carry-forwards are logged at WARNING by the
reconciler so they stay visible for reconciliation review.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, TextIO

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Library loggers that drown ledger messages at INFO
NOISY_LOGGERS = ("sqlalchemy.engine", "uvicorn.access")


def get_log_level() -> int:
    """Get logging level from LOG_LEVEL environment variable.

    Returns:
        Logging level constant (default: INFO for unknown names)
    """
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    return handler


def setup_server_logging(log_file: Optional[str] = None, stream: Optional[TextIO] = None) -> None:
    """
    Configure the root logger for the ledger server and CLI.

    Args:
        log_file: Path to log file (default: LOG_FILE from LedgerConfig)
        stream: Console stream (default: stdout); tools that print data
            to stdout pass sys.stderr

    Calling it again replaces the handlers instead of adding duplicates.
    """
    if log_file is None:
        from src.services.config import get_ledger_config

        log_file = get_ledger_config().log_file

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    log_level = get_log_level()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(_handler(logging.StreamHandler(stream or sys.stdout), log_level))
    root_logger.addHandler(_handler(logging.FileHandler(log_path), log_level))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
