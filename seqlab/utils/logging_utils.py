from __future__ import annotations

import logging
from pathlib import Path

from tqdm import tqdm

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class TqdmLoggingHandler(logging.Handler):
    """Console handler that writes through ``tqdm.write`` so epoch bars are not broken up."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record))
            self.flush()
        except Exception:
            self.handleError(record)


def configure_logging(level: str | int = "info", log_file: str | Path | None = None) -> None:
    """
    Route every ``seqlab`` and script logger to the console (and optionally a
    file). Calling it again replaces the previous handlers.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level!r}")
        level = resolved

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    console = TqdmLoggingHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    LOGGER.debug("Logging configured at %s (file: %s)", logging.getLevelName(level), log_file)
