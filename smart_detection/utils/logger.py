"""
Logging utilities for the Smart Detection engine
Named loggers sharing one rotating log file and a console stream
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path

# Relative to the working directory unless SMART_DETECTION_LOG_DIR says otherwise
DEFAULT_LOGS_DIR = "logs"

# Default log format
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"

# name -> logger, each gets its handlers once
_loggers = {}


class SafeStreamHandler(logging.StreamHandler):
    """StreamHandler that writes to the current stdout and survives encoding errors"""

    def __init__(self):
        super().__init__(sys.stdout)

    def emit(self, record):
        # Resolve stdout on every record so redirected streams are honoured
        self.stream = sys.stdout
        try:
            msg = self.format(record)
            try:
                self.stream.write(msg + self.terminator)
            except UnicodeEncodeError:
                # Replace characters the console cannot encode
                safe_msg = msg.encode('ascii', errors='replace').decode('ascii')
                self.stream.write(safe_msg + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


def _file_logging_enabled() -> bool:
    return os.getenv('SMART_DETECTION_LOG_TO_FILE', 'true').strip().lower() not in ('0', 'false', 'no', 'off')


def _logs_dir() -> Path:
    return Path(os.getenv('SMART_DETECTION_LOG_DIR') or DEFAULT_LOGS_DIR)


def get_logger(name: str, level: str = "INFO",
               log_file: str = "smart_detection.log",
               console_output: bool = True,
               detailed: bool = False) -> logging.Logger:
    """
    Logger for an engine module, configured on first request

    Args:
        name: Module name (__name__)
        level: Initial level name, set_level() changes it later
        log_file: File name in the logs directory (skipped when SMART_DETECTION_LOG_TO_FILE is off)
        console_output: Also write to stdout
        detailed: Include file and line in each record
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    logger.handlers.clear()

    formatter = logging.Formatter(DETAILED_FORMAT if detailed else DEFAULT_FORMAT)

    # 10MB per file, 5 backups
    if log_file and _file_logging_enabled():
        logs_dir = _logs_dir()
        logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            logs_dir / log_file,
            maxBytes=10*1024*1024,
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_output:
        console_handler = SafeStreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # Host application handlers stay out of it
    logger.propagate = False

    _loggers[name] = logger
    return logger

def set_level(level: str) -> None:
    """Apply a log level to every logger created through get_logger"""
    numeric = getattr(logging, level.upper())
    for logger in _loggers.values():
        logger.setLevel(numeric)
