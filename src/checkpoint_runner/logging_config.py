"""Logging setup - Rich console output plus an optional rotating log file."""

import logging
import logging.handlers

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig

LOG_FILE_NAME = "ckr.log"

# Maximum log file size (5 MB) and backup count
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3


def setup_logging(config: LoggingConfig, verbose: bool = False) -> logging.Logger:
    """
    Configure the checkpoint_runner logger.

    - Console handler: Rich, to stderr, at config.level (DEBUG when verbose)
    - File handler: rotating file in config.logs_dir when file_logging is on
    """
    root = logging.getLogger("checkpoint_runner")
    root.setLevel(logging.DEBUG)

    # Idempotent: the CLI may call this once per command
    root.handlers.clear()
    root.propagate = False

    level = logging.DEBUG if verbose else getattr(logging, config.level.upper(), logging.INFO)

    if config.console_logging:
        console_handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(console_handler)

    if config.file_logging and config.logs_dir is not None:
        config.logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            str(config.logs_dir / LOG_FILE_NAME),
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        root.addHandler(file_handler)

    return root
