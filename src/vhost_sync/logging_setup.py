"""
Logging configuration for the vhost-sync commands.

Provides a file handler (always DEBUG) and a console handler (WARNING
by default, DEBUG when verbose).  The HTTP stack logs every connection and
retry at DEBUG, so those loggers are held at WARNING unless verbose.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime

from .config import PROJECT_ROOT

LOG_DIR = os.path.join(PROJECT_ROOT, "logs")

# Third-party loggers that are too chatty for a normal run.
_QUIET_LOGGERS = ("urllib3", "requests")


def setup_logging(
    verbose: bool = False,
    log_prefix: str = "vhost_sync",
    log_dir: str = LOG_DIR,
) -> str:
    """Attach a file handler and a console handler to the root logger.

    - File handler: always DEBUG level, writes to <log_dir>/<prefix>_<timestamp>.log
    - Console handler: WARNING+ by default.  When *verbose* is True the
      console shows DEBUG as well.

    Returns the path to the log file.
    """
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d-%H%M%S")
    log_path = os.path.join(log_dir, f"{log_prefix}_{timestamp}.log")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(logging.Formatter(
        "%(levelname)-8s  %(message)s" if not verbose
        else "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    ))
    root_logger.addHandler(console_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)

    return log_path
