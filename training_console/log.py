"""Package logger for the training console.

The console owns the terminal while it runs, so records go to a rotating
file rather than stderr.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_PATH = Path.home() / ".training-console" / "console.log"

MAX_BYTES = 2 * 1024 * 1024
BACKUP_COUNT = 3

logger = logging.getLogger("training_console")


def setup_logging(debug: bool = False, log_file: Path | None = None) -> Path:
    """Attach a rotating file handler to the package logger.

    Returns the path being written to.  Calling this twice replaces the
    previous handler instead of stacking another one.
    """
    path = log_file or LOG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    for handler in list(logger.handlers):
        if isinstance(handler, RotatingFileHandler):
            logger.removeHandler(handler)
            handler.close()

    handler = RotatingFileHandler(
        path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
    )
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    return path
