"""
Minimal structured logging configuration for the inventory risk engine.

Provides:
- Console logging for warnings (KPI anomalies, invalid values)
- Optional file logging with automatic rotation
"""
import logging
import logging.handlers
from pathlib import Path
from datetime import datetime
from typing import Optional, Union


def setup_logging(
    log_dir: Optional[Union[str, Path]] = None,
    app_name: str = "inventory_risk",
    console_level: int = logging.WARNING,
) -> logging.Logger:
    """
    Setup structured logging for the engine.

    Engine modules log through ``logging.getLogger(__name__)`` so they all
    live below the ``inventory_risk`` logger configured here.

    Args:
        log_dir: Directory for log files (created if missing). When None,
                 only the console handler is installed.
        app_name: Application (root package) logger name
        console_level: Minimum level for the console handler

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers
    if logger.handlers:
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
    console_handler.setFormatter(logging.Formatter('%(levelname)s: %(name)s: %(message)s'))
    logger.addHandler(console_handler)

    return logger


def get_logger(name: str = "inventory_risk") -> logging.Logger:
    """
    Get configured logger instance.

    Args:
        name: Logger name (defaults to engine logger)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
