"""
Logging System for SiteChat

Configures the `sitechat` logger with a size-rotated log file and a
console stream, and offers helpers that log crawl and model events with
a JSON context suffix.
"""

import json
import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER = 'sitechat'

FILE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s (%(module)s:%(lineno)d) %(message)s'
CONSOLE_FORMAT = '%(asctime)s %(levelname)-7s %(message)s'

_SIZE_UNITS = {
    '': 1, 'B': 1,
    'K': 1024, 'KB': 1024,
    'M': 1024 ** 2, 'MB': 1024 ** 2,
    'G': 1024 ** 3, 'GB': 1024 ** 3,
}


def parse_size(size: str) -> int:
    """Convert '10MB', '512KB' or a plain byte count into bytes"""
    match = re.fullmatch(r'\s*(\d+)\s*([KMG]?B?)\s*', str(size).upper())
    if not match or match.group(2) not in _SIZE_UNITS:
        raise ValueError(f"Invalid log size: {size!r}")
    return int(match.group(1)) * _SIZE_UNITS[match.group(2)]


def _with_context(message: str, context: Optional[Dict[str, Any]]) -> str:
    if not context:
        return message
    return f"{message} | Context: {json.dumps(context, default=str, sort_keys=True)}"


class LoggingManager:
    """
    Owns the handlers attached to the package logger.

    Components fetch child loggers (`sitechat.<component>`) at construction
    time; records propagate to the package logger, so setup may happen
    after the components exist.
    """

    def __init__(self):
        self.file_handler: Optional[logging.handlers.RotatingFileHandler] = None
        self.console_handler: Optional[logging.StreamHandler] = None

    def setup_logging(self, level: str = "INFO", log_file: str = "./logs/sitechat.log",
                      max_size: str = "10MB", backup_count: int = 5) -> None:
        """
        Attach a rotating file handler and a stdout handler

        Args:
            level: Console and logger level name
            log_file: Path of the rotated log file
            max_size: Size at which the file rotates (e.g. "10MB")
            backup_count: Rotated files kept next to the log file
        """
        numeric_level = logging.getLevelName(level.upper())
        if not isinstance(numeric_level, int):
            raise ValueError(f"Unknown log level: {level}")

        logger = self.get_logger()
        self.close()
        logger.setLevel(numeric_level)
        logger.propagate = False

        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        self.file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=parse_size(max_size), backupCount=backup_count, encoding='utf-8'
        )
        self.file_handler.setLevel(logging.DEBUG)
        self.file_handler.setFormatter(logging.Formatter(FILE_FORMAT))

        self.console_handler = logging.StreamHandler(sys.stdout)
        self.console_handler.setLevel(numeric_level)
        self.console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))

        logger.addHandler(self.file_handler)
        logger.addHandler(self.console_handler)
        logger.debug(f"Logging to {log_file} at level {level.upper()}")

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        """Package logger, or its child `sitechat.<name>`"""
        return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)

    def log_crawl_outcome(self, outcome, elapsed: float) -> None:
        """One summary line per finished crawl"""
        context = {
            'website_id': outcome.website_id,
            'status': outcome.status.value,
            'pages': outcome.pages_crawled,
            'warnings': len(outcome.warnings),
            'elapsed': round(elapsed, 2),
        }
        logger = self.get_logger('crawl')
        if outcome.success:
            logger.info(_with_context("Crawl completed", context))
        else:
            context['error'] = outcome.error_message
            logger.error(_with_context("Crawl failed", context))

    def log_model_failure(self, website_id: str, model_id: str, error: Exception) -> None:
        """Model failure that was turned into a degraded answer"""
        self.get_logger('model').error(
            _with_context(f"Model invocation failed: {error}",
                          {'website_id': website_id, 'model_id': model_id}),
            exc_info=error
        )

    def close(self) -> None:
        """Detach and close the handlers installed by setup_logging()"""
        logger = self.get_logger()
        for handler in (self.file_handler, self.console_handler):
            if handler is not None:
                logger.removeHandler(handler)
                handler.close()
        self.file_handler = None
        self.console_handler = None


logging_manager = LoggingManager()


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging_manager.get_logger(name)


def setup_logging(level: str = "INFO", log_file: str = "./logs/sitechat.log",
                  max_size: str = "10MB", backup_count: int = 5) -> None:
    logging_manager.setup_logging(level, log_file, max_size, backup_count)
