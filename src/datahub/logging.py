"""Terminal and log file configuration.

``-v`` / ``--verbose`` on the CLI controls terminal verbosity (stderr,
WARNING by default). ``DATAHUB_LOG_FILE`` enables a rotating log file whose
level comes from ``DATAHUB_LOG_LEVEL`` (INFO by default).
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from datahub.config import settings

# Max log file size before rotation (5 MB)
_MAX_BYTES = 5 * 1024 * 1024

# Number of rotated backups to keep
_BACKUP_COUNT = 2


def _parse_log_level(level_str: str) -> int:
    """Parse a log level name, falling back to INFO for unknown values."""
    numeric = getattr(logging, level_str.upper(), None)
    if isinstance(numeric, int):
        return numeric
    return logging.INFO


def setup_logging(*, verbose: bool = False, log_file: Path | None = None) -> None:
    """Configure the terminal handler and, optionally, a rotating log file.

    Args:
        verbose: Show DEBUG messages on the terminal (skipped groups,
            insufficient-data decisions). Otherwise WARNING and above.
        log_file: Log file path. Defaults to ``settings.log_file``; when
            both are unset only the terminal handler is installed.
    """
    root = logging.getLogger()

    # Safe to call more than once in the same process
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    root.setLevel(logging.DEBUG)

    terminal = logging.StreamHandler()
    terminal.setLevel(logging.DEBUG if verbose else logging.WARNING)
    terminal.setFormatter(logging.Formatter("%(levelname)s | %(name)s | %(message)s"))
    root.addHandler(terminal)

    path = log_file or settings.log_file
    if path is not None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(_parse_log_level(settings.log_level))
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(file_handler)
