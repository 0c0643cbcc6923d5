"""
Diagnostic logging: daily rotating netcheck.log (midnight) plus stderr.
Separate from the JSON record log; stdout is left to the record stream.
Level: NETCHECK_LOG_LEVEL (default INFO) or DEBUG with verbose=True.
"""
import logging
import os
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FILE_NAME = "netcheck.log"


def _console_level(verbose: bool) -> int:
    if verbose:
        return logging.DEBUG
    name = os.environ.get("NETCHECK_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(log_dir: Optional[Path] = None, verbose: bool = False) -> logging.Logger:
    """
    Configure root logger with stderr output and, when log_dir is given, a daily rotating file.
    Returns the app logger ('netcheck').
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = TimedRotatingFileHandler(log_dir / LOG_FILE_NAME, when="midnight", backupCount=30, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(_console_level(verbose))
    ch.setFormatter(fmt)
    root.addHandler(ch)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger = logging.getLogger("netcheck")
    logger.setLevel(logging.DEBUG)
    return logger
