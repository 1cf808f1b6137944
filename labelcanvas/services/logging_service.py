"""
Logging service for LabelCanvas.

All editor modules log through loggers below the "labelcanvas" package
logger. setup_logging() attaches a console handler and a daily log file
under ~/.local/share/labelcanvas/logs/ to that logger, so an embedding
application keeps control of its own root logger.

User feedback (toasts) is mirrored into the log with log_feedback().
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Optional

PACKAGE_LOGGER = "labelcanvas"

# Default log directory following XDG Base Directory Specification
DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "labelcanvas" / "logs"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per-gesture chatter stays out of normal runs; --debug lifts these limits
QUIET_MODULES: Dict[str, int] = {
    "labelcanvas.editor.canvas_base": logging.INFO,
    "labelcanvas.editor.canvas_mask": logging.INFO,
}

# Toast level -> log level
FEEDBACK_LOG_LEVELS: Dict[str, int] = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_handlers: List[logging.Handler] = []


def setup_logging(
    debug: bool = False,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
    module_levels: Optional[Mapping[str, int]] = None,
) -> logging.Logger:
    """
    Configure the "labelcanvas" logger.

    Args:
        debug: Log everything at DEBUG, ignoring QUIET_MODULES.
        log_to_file: Whether to also write a daily log file.
        log_dir: Directory for log files. Defaults to DEFAULT_LOG_DIR.
        module_levels: Extra per-module levels, applied after QUIET_MODULES.

    Calling it again replaces the handlers installed by the previous call.

    Returns:
        The package logger.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in _handlers:
        package_logger.removeHandler(handler)
        handler.close()
    _handlers.clear()

    level = logging.DEBUG if debug else logging.INFO
    package_logger.setLevel(level)

    levels: Dict[str, int] = {} if debug else dict(QUIET_MODULES)
    levels.update(module_levels or {})
    for name in QUIET_MODULES:
        logging.getLogger(name).setLevel(logging.NOTSET)
    for name, module_level in levels.items():
        logging.getLogger(name).setLevel(module_level)

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    _handlers.append(console_handler)

    file_error: Optional[Exception] = None
    if log_to_file:
        log_dir = log_dir or DEFAULT_LOG_DIR
        try:
            log_dir.mkdir(parents=True, exist_ok=True)

            # One file per day
            log_path = log_dir / f"labelcanvas_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setFormatter(formatter)
            _handlers.append(file_handler)

        except (OSError, PermissionError) as e:
            file_error = e

    for handler in _handlers:
        package_logger.addHandler(handler)

    if file_error is not None:
        package_logger.warning(f"Could not create log file: {file_error}. Logging to console only.")

    package_logger.debug(f"Logging configured (debug={debug}, levels={levels})")
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: The name for the logger, typically __name__ of the calling module.

    Usage:
        from labelcanvas.services.logging_service import get_logger
        logger = get_logger(__name__)
        logger.info("Canvas created")
    """
    return logging.getLogger(name)


def log_feedback(logger: logging.Logger, message: str, level: str = "info") -> None:
    """Record a user-facing message at the log level matching its toast level."""
    logger.log(FEEDBACK_LOG_LEVELS.get(level, logging.INFO), message)
