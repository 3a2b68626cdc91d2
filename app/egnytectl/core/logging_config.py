"""Logging configuration for egnytectl runs.

Every run writes to two places: a Rich console handler on stderr and a
daily-rotated transcript file in the state directory. Modules only ever
call ``logging.getLogger(__name__)``; this is the single place handlers are
attached.
"""

import logging
import logging.handlers
from pathlib import Path

from rich.logging import RichHandler

from egnytectl.core.paths import ensure_log_dir
from egnytectl.utils.formatting import err_console

LOG_FILENAME = "egnytectl.log"

_FILE_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

# Marker attribute so repeated setup calls replace our handlers only
_HANDLER_TAG = "_egnytectl_handler"


def setup_logging(
    level: str = "INFO",
    retention: int = 14,
    log_dir: Path | None = None,
    console_level: str | None = None,
) -> Path | None:
    """Configure console and transcript logging on the root logger.

    Args:
        level: Level for the transcript file (and console unless overridden).
        retention: Number of rotated daily transcripts to keep.
        log_dir: Directory for the transcript. If None, uses the state log dir.
        console_level: Separate level for the console handler.

    Returns:
        Path of the transcript file, or None if it could not be created
        (console logging still works in that case).
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = RichHandler(
        console=err_console,
        show_path=False,
        rich_tracebacks=False,
        markup=False,
    )
    console_handler.setLevel(console_level or level)
    setattr(console_handler, _HANDLER_TAG, True)
    root_logger.addHandler(console_handler)

    transcript: Path | None = None
    try:
        directory = log_dir if log_dir is not None else ensure_log_dir()
        directory.mkdir(parents=True, exist_ok=True)
        transcript = directory / LOG_FILENAME
        file_handler = logging.handlers.TimedRotatingFileHandler(
            filename=transcript,
            when="midnight",
            interval=1,
            backupCount=retention,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        setattr(file_handler, _HANDLER_TAG, True)
        root_logger.addHandler(file_handler)
    except (OSError, RuntimeError) as e:
        transcript = None
        logging.getLogger(__name__).warning("Transcript logging disabled: %s", e)

    # Root must pass everything the most verbose handler wants
    root_logger.setLevel(
        min(logging.getLevelName(level), logging.getLevelName(console_level or level))
    )

    # Silence noisy third-party loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return transcript
