"""
Minimal structured logging configuration for inventory-risk.

Provides:
- Console logging at a caller-chosen level (CLI runs)
- Optional file logging for warnings and errors
- Automatic log rotation
"""
import logging
import logging.handlers
from pathlib import Path
from datetime import datetime
from typing import Optional, Union


APP_LOGGER_NAME = "inventory_risk"


def setup_logging(
    log_dir: Optional[Union[str, Path]] = None,
    app_name: str = APP_LOGGER_NAME,
    console_level: int = logging.WARNING,
) -> logging.Logger:
    """
    Setup structured logging for the engine's package logger.

    Args:
        log_dir: Directory for log files (created if missing). When *None*
                 no file handler is attached.
        app_name: Logger name; module loggers under the package propagate to it
        console_level: Minimum level printed to stderr

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers
    if logger.handlers:
        for handler in logger.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(
                handler, logging.FileHandler
            ):
                handler.setLevel(console_level)
        return logger

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        # File handler: rotating log (max 5MB, keep 3 backups)
        log_file = log_path / f"{app_name}_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding='utf-8',
        )
        file_handler.setLevel(logging.WARNING)
        file_formatter = logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_formatter = logging.Formatter('%(levelname)s: %(message)s')
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    return logger


def get_logger(name: str = APP_LOGGER_NAME) -> logging.Logger:
    """
    Get configured logger instance.

    Args:
        name: Logger name (defaults to app logger)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
