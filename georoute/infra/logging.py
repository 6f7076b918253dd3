# georoute/infra/logging.py
# -*- coding: utf-8 -*-

"""
Logging setup shared by the georoute CLIs and tests.

Library code never touches handlers; it asks for a named logger through
`get_logger(__name__)`. The entry point calls `init_logging()` exactly once.

    from georoute.infra.logging import init_logging, get_logger

    init_logging(level="DEBUG", write_output=True)
    get_logger(__name__).info("aggregator ready")

GEOROUTE_LOG_LEVEL, when set, wins over the `level` argument so a batch run
can be made verbose without editing its command line.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

# ────────────────────────────────────────────────────────────────────────────────
# Defaults
# ────────────────────────────────────────────────────────────────────────────────

LOG_LEVEL_ENV = "GEOROUTE_LOG_LEVEL"
RUN_LOGS_DIR = Path("logs")

# connection-pool chatter, one line per provider request
QUIET_LOGGERS = ("urllib3", "urllib3.connectionpool")

_LINE_FORMAT = "[{asctime}][{levelname}][{name}] {message}"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# ────────────────────────────────────────────────────────────────────────────────
# Internals
# ────────────────────────────────────────────────────────────────────────────────

def _resolve_level(level: str) -> int:
    name = os.getenv(LOG_LEVEL_ENV) or level
    return getattr(logging, str(name).upper(), logging.INFO)


def _run_log_path(logs_dir: Optional[Path]) -> Path:
    """`<logs_dir>/<script stem>__<YYYYmmdd-HHMMSS>.log`, directory created."""
    folder = Path(logs_dir) if logs_dir is not None else RUN_LOGS_DIR
    folder.mkdir(parents=True, exist_ok=True)

    stem = Path(sys.argv[0]).stem if sys.argv and sys.argv[0] else ""
    if stem in ("", "-m", "-c"):
        stem = "georoute"
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    return folder / f"{stem}__{stamp}.log"


def _build_handlers(log_file: Optional[Path]) -> List[logging.Handler]:
    fmt = logging.Formatter(fmt=_LINE_FORMAT, datefmt=_DATE_FORMAT, style="{")

    handlers: List[logging.Handler] = [logging.StreamHandler(stream=sys.stdout)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for h in handlers:
        h.setFormatter(fmt)
    return handlers


# ────────────────────────────────────────────────────────────────────────────────
# Public API
# ────────────────────────────────────────────────────────────────────────────────

def init_logging(
      level: str = "INFO"
    , *
    , force: bool = True
    , write_output: bool = False
    , log_file: Optional[Path] = None
    , logs_dir: Optional[Path] = None
    , quiet: Iterable[str] = QUIET_LOGGERS
) -> Optional[Path]:
    """
    Attach stdout (and optionally file) handlers to the root logger.

    Parameters
    ----------
    level : str
        Level name; overridden by GEOROUTE_LOG_LEVEL.
    force : bool
        Drop handlers already on the root logger before adding ours.
    write_output : bool
        Also write a per-run file under `logs_dir` (default `logs/`).
    log_file : Path | None
        Explicit file to write to; implies file output.
    logs_dir : Path | None
        Folder for per-run files.
    quiet : Iterable[str]
        Loggers pinned to WARNING unless running at DEBUG.

    Returns
    -------
    Path | None
        Absolute path of the file being written, if any.
    """
    numeric_level = _resolve_level(level)

    if log_file is not None:
        log_file = Path(log_file)
    elif write_output:
        log_file = _run_log_path(logs_dir)

    root = logging.getLogger()
    if force:
        for h in list(root.handlers):
            root.removeHandler(h)
    root.setLevel(numeric_level)
    for h in _build_handlers(log_file):
        root.addHandler(h)

    if numeric_level > logging.DEBUG:
        for name in quiet:
            logging.getLogger(name).setLevel(logging.WARNING)

    written = log_file.resolve() if log_file is not None else None
    get_logger(__name__).info(
        "logging ready level=%s file=%s", logging.getLevelName(numeric_level), written
    )
    return written


def log_banner(
      log: logging.Logger
    , msg: str
    , *
    , char: str = "="
    , width: int = 60
) -> None:
    """Frame `msg` between two bars; the CLIs use it to mark run boundaries."""
    bar = char * width
    log.info(bar)
    log.info(msg)
    log.info(bar)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Named logger; the package root logger when `name` is None."""
    return logging.getLogger(name if name is not None else "georoute")
