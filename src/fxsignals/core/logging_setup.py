"""Console + rotating-file logging for the fxsignals services.

Call :func:`setup_logger` once per service to get a logger that writes to
both the console (``stderr``) and a rotating log file under ``logs/``.
Library modules never configure handlers themselves; they only call
``logging.getLogger(__name__)`` and inherit from the ``"fxsignals"`` logger.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 10 MB max per file, keep 5 backups
_MAX_BYTES = 10 * 1024 * 1024
_BACKUP_COUNT = 5

_configured: set[str] = set()


def setup_logger(
    name: str,
    log_dir: Path | None = None,
    level: int = logging.INFO,
    console: bool = True,
) -> logging.Logger:
    """Create (or retrieve) a logger with console + rotating-file handlers.

    Parameters
    ----------
    name:
        Logger name, also used as the log filename (``<name>.log``).
        Typical values: ``"fxsignals"``, ``"fetcher"``, ``"trend"``,
        ``"consolidation"``.
    log_dir:
        Directory for log files.  Defaults to ``./logs``.
    level:
        Minimum log level.
    console:
        Attach a ``stderr`` handler as well as the file handler.
    """
    if log_dir is None:
        log_dir = Path("logs")

    logger = logging.getLogger(name)

    if name in _configured:
        return logger

    logger.setLevel(level)
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)

    if console:
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(formatter)
        stream.setLevel(level)
        logger.addHandler(stream)

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / f"{name}.log",
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        logger.addHandler(file_handler)
    except OSError:
        # console-only is fine
        logger.warning("Could not create log file in %s", log_dir)

    _configured.add(name)
    return logger
