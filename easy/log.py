"""
Logging setup for EASY.

Operator-facing warnings go through rich's RichHandler on the shared console;
a rotating file under ~/.local/state/easy/ keeps an INFO-level trail of each
run (sync decisions, module exit codes, cleanup problems).
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

_LOG_DIR = Path.home() / ".local" / "state" / "easy"
_LOG_FILE = _LOG_DIR / "easy.log"


def setup_logging(console: Console, log_file: Path | None = None) -> logging.Logger:
    """
    Configure the `easy` logger and return it.

    Safe to call more than once — handlers are replaced, not stacked.
    EASY_DEBUG=1 raises console verbosity to INFO.
    """
    logger = logging.getLogger("easy")
    logger.setLevel(logging.INFO)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    console_handler.setLevel(logging.INFO if os.environ.get("EASY_DEBUG") else logging.WARNING)
    logger.addHandler(console_handler)

    path = log_file or _LOG_FILE
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=256 * 1024, backupCount=3, encoding="utf-8"
        )
    except OSError:
        return logger

    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(process)d [%(name)s] %(message)s")
    )
    file_handler.setLevel(logging.INFO)
    logger.addHandler(file_handler)
    return logger
