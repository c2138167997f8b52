"""Logging setup shared by the browser workflows, sources and CLI."""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"

# Chatty libraries that drown out the automation trace at DEBUG.
_NOISY_LOGGERS = ("urllib3", "asyncio", "playwright", "httpx", "openai")

_configured = False


def get_logger(name: str) -> logging.Logger:
    """Return a named logger; configures root handlers on first call."""
    if not _configured:
        setup_logging()
    return logging.getLogger(name)


def setup_logging(
    level: str | None = None,
    *,
    log_dir: Path | None = None,
    to_file: bool | None = None,
) -> None:
    """Attach console and daily-file handlers to the root logger.

    ``level`` falls back to ``LOG_LEVEL``; the file handler is skipped when
    ``AUTOPILOT_LOG_FILE=0`` or when the directory cannot be created.
    """
    global _configured
    _configured = True

    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    lvl = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(lvl)
    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(max(lvl, logging.WARNING))

    if root.handlers:
        for h in root.handlers:
            if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
                h.setLevel(lvl)
        return

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FMT)
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(lvl)
    console.setFormatter(formatter)
    root.addHandler(console)

    if to_file is None:
        to_file = os.environ.get("AUTOPILOT_LOG_FILE", "1").lower() not in ("0", "false", "no")
    if not to_file:
        return

    target = log_dir or _LOG_DIR
    try:
        target.mkdir(parents=True, exist_ok=True)
        log_file = target / f"autopilot_{datetime.now().strftime('%Y-%m-%d')}.log"
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        root.addHandler(fh)
    except OSError:
        console.handle(
            logging.makeLogRecord(
                {"name": __name__, "levelno": logging.WARNING, "levelname": "WARNING",
                 "msg": "Log directory %s not writable; console logging only", "args": (target,)}
            )
        )
