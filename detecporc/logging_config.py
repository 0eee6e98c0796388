"""
Logging configuration utility - configures logging from Settings
"""
import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from detecporc.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    def format(self, record):
        log_entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def setup_logging(settings: Settings, max_bytes: int = 10 * 1024 * 1024, backup_count: int = 5) -> None:
    """Install console (and optional rotating file) handlers on the root logger."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    formatter = JSONFormatter() if settings.log_json else logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if settings.log_file:
        logs_dir = os.path.dirname(settings.log_file)
        if logs_dir:
            os.makedirs(logs_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
