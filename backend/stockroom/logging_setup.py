from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from .settings import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_FILENAME = "stockroom.log"


def _has_handler(logger: logging.Logger, marker: str) -> bool:
    return any(getattr(h, "_stockroom", None) == marker for h in logger.handlers)


def setup_logging(settings: Settings) -> Path | None:
    """Configure console logging, plus a rotating file under LOG_DIR when set.

    Safe to call more than once; handlers are only attached the first time.
    Returns the log file path, or None when logging to the console only.
    """
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO
    fmt = logging.Formatter(LOG_FORMAT)

    handlers: list[logging.Handler] = []
    console = logging.StreamHandler()
    console.setFormatter(fmt)
    console._stockroom = "console"
    handlers.append(console)

    log_path: Path | None = None
    if settings.LOG_DIR:
        log_dir = Path(settings.LOG_DIR).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / LOG_FILENAME
        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(fmt)
        file_handler._stockroom = "file"
        handlers.append(file_handler)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in handlers:
        if not _has_handler(root, handler._stockroom):
            root.addHandler(handler)

    # uvicorn installs its own handlers; keep its level in step and let its
    # records reach the file handler too
    for name in ("uvicorn", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        for handler in handlers:
            if handler._stockroom == "file" and not _has_handler(lg, "file"):
                lg.addHandler(handler)

    return log_path
