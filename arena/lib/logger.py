"""
Centralized logging for Sales Arena.

Every component logs through a child of the ``sales_arena`` logger, so the
console and daily-file handlers are installed once on the parent and shared.
The console handler writes to stderr: the report CLI keeps stdout for its
table or JSON output.

Usage:
    from arena.lib.logger import setup_logger
    logger = setup_logger("fetcher")      # -> "sales_arena.fetcher"
    logger.info("Snapshot refreshed")

Environment:
    LOG_LEVEL    level of the shared handlers (INFO)
    LOG_TO_FILE  "false" disables the daily file handler
    LOG_DIR      directory for the daily file (project_root/logs)
"""
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

ROOT_LOGGER = "sales_arena"

# Project root — sales-arena/
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in ("false", "0", "no", "off")


def log_file_path(log_dir: Path = None, day: datetime = None) -> Path:
    """Daily log file, e.g. ``logs/20250315_sales_arena.log``."""
    target_dir = Path(log_dir or os.getenv("LOG_DIR") or LOG_DIR)
    return target_dir / f"{(day or datetime.now()).strftime('%Y%m%d')}_sales_arena.log"


def configure_logging(
    level: str = None,
    log_to_file: bool = None,
    log_dir: Path = None,
) -> logging.Logger:
    """
    (Re)install the shared handlers on the ``sales_arena`` logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to LOG_LEVEL.
        log_to_file: Also write the daily file. Defaults to LOG_TO_FILE.
        log_dir: Directory for the daily file. Defaults to LOG_DIR.

    Returns:
        The parent logger.
    """
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    level = level or os.getenv("LOG_LEVEL", "INFO")
    if log_to_file is None:
        log_to_file = _env_flag("LOG_TO_FILE", True)

    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # main.py also configures the stdlib root; don't print every line twice
    root.propagate = False

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_to_file:
        log_file = log_file_path(log_dir)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root


def setup_logger(name: str) -> logging.Logger:
    """Return the component logger ``sales_arena.<name>``.

    The shared handlers are installed on first use.
    """
    if not logging.getLogger(ROOT_LOGGER).handlers:
        configure_logging()
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
