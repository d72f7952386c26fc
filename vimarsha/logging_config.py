"""
Logging configuration for the Vimarsha web front-end.

Sets up application-wide logging with console output and, outside of tests,
rotating log files. Modules get their own loggers with
``logging.getLogger(__name__)`` while sharing this configuration.
"""

import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler


# Log format - includes timestamp, logger name, level, and message
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

APP_LOG_NAME = "app.log"
AUTH_LOG_NAME = "auth.log"
ERROR_LOG_NAME = "errors.log"


def _rotating_handler(path, level, backup_count=5):
    handler = RotatingFileHandler(
        path,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(log_level=logging.INFO, log_dir="logs", to_file=True):
    """
    Set up application-wide logging configuration.

    This creates handlers for:
    - Console output
    - General application log file (INFO and above)
    - Error log file (ERROR and above)

    Args:
        log_level: Minimum level to log (name or number)
        log_dir: Directory for the rotating log files
        to_file: Disable to log to the console only
    """
    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper(), logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates when the app is recreated
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    if to_file:
        os.makedirs(log_dir, exist_ok=True)
        root_logger.addHandler(
            _rotating_handler(os.path.join(log_dir, APP_LOG_NAME), logging.INFO)
        )
        root_logger.addHandler(
            _rotating_handler(os.path.join(log_dir, ERROR_LOG_NAME), logging.ERROR)
        )

    root_logger.info("=" * 80)
    root_logger.info(f"Vimarsha started - {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    root_logger.info(f"Log Level: {logging.getLevelName(log_level)}")
    if to_file:
        root_logger.info(f"Logs Directory: {os.path.abspath(log_dir)}")
    root_logger.info("=" * 80)


def setup_auth_logger(log_dir="logs", to_file=True):
    """
    Set up a separate logger for authentication events.

    Login attempts, registrations, logouts and gate rejections go to a
    dedicated log file for security auditing.

    Returns:
        Logger instance for authentication
    """
    logger = logging.getLogger("auth")
    logger.setLevel(logging.INFO)

    # Auth logs stay separate from the root logger
    logger.propagate = False
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console_handler)

    if to_file:
        os.makedirs(log_dir, exist_ok=True)
        # Keep more backups for security logs
        logger.addHandler(
            _rotating_handler(os.path.join(log_dir, AUTH_LOG_NAME), logging.INFO, backup_count=10)
        )

    return logger


def get_auth_logger():
    """Authentication logger (configured by setup_auth_logger at startup)"""
    return logging.getLogger("auth")
