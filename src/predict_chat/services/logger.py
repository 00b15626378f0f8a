"""
Logger Service Module
Centralized logging configuration with rotation, colored console and JSON output
"""

import json
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import colorlog

# LogRecord attributes that are not user-supplied `extra` fields
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys() | {"message", "asctime"}
)


class LoggerService:
    """
    Centralized logging service with support for:
    - Colored console output
    - Rotating file logs (all levels + errors only)
    - JSON structured logging
    """

    def __init__(self, config: dict[str, Any] | None = None):
        self.config = {**self._default_config(), **(config or {})}
        self.log_dir = Path(self.config["log_dir"])
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            # Fall back to a local directory rather than failing startup
            self.log_dir = Path("./logs")
            self.log_dir.mkdir(parents=True, exist_ok=True)
        self._setup_root_logger()

    def _default_config(self) -> dict[str, Any]:
        return {
            "log_dir": "./logs",
            "log_level": "INFO",
            "console_level": "INFO",
            "file_level": "DEBUG",
            "max_bytes": 5 * 1024 * 1024,
            "backup_count": 3,
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "date_format": "%Y-%m-%d %H:%M:%S",
            "colored_output": True,
            "json_logs": False,
            "file_logs": True,
        }

    def _setup_root_logger(self):
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)  # Capture all, filter at handler level
        root_logger.handlers = []

        root_logger.addHandler(self._create_console_handler())
        if self.config.get("file_logs"):
            root_logger.addHandler(self._create_file_handler("predict_chat.log"))
            root_logger.addHandler(self._create_file_handler("errors.log", level=logging.ERROR))

    def _create_console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(getattr(logging, str(self.config["console_level"]).upper()))

        if self.config.get("colored_output"):
            formatter: logging.Formatter = colorlog.ColoredFormatter(
                "%(log_color)s" + self.config["format"],
                datefmt=self.config["date_format"],
                log_colors={
                    "DEBUG": "cyan",
                    "INFO": "green",
                    "WARNING": "yellow",
                    "ERROR": "red",
                    "CRITICAL": "red,bg_white",
                },
            )
        else:
            formatter = logging.Formatter(self.config["format"], datefmt=self.config["date_format"])
        handler.setFormatter(formatter)
        return handler

    def _create_file_handler(self, filename: str, level: int | None = None) -> logging.Handler:
        try:
            handler: logging.Handler = RotatingFileHandler(
                self.log_dir / filename,
                maxBytes=self.config["max_bytes"],
                backupCount=self.config["backup_count"],
            )
        except OSError:
            # Don't fail hard if filesystem isn't writable (common in CI/sandboxes).
            handler = logging.StreamHandler(sys.stderr)

        handler.setLevel(level or getattr(logging, str(self.config["file_level"]).upper()))
        if self.config.get("json_logs"):
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(
                logging.Formatter(self.config["format"], datefmt=self.config["date_format"])
            )
        return handler

    def set_level(self, level: str, logger_name: str | None = None):
        """Set logging level for a specific logger or the root logger"""
        logging.getLogger(logger_name).setLevel(getattr(logging, level.upper()))

    def cleanup(self):
        """Close and detach root handlers"""
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            handler.close()
            root_logger.removeHandler(handler)


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


# Global logger service instance
_logger_service: LoggerService | None = None


def setup_logging(config: dict | None = None) -> logging.Logger:
    """
    Setup logging configuration and return root logger

    Args:
        config: Optional overrides of the LoggerService configuration
    """
    global _logger_service

    if _logger_service is not None:
        return logging.getLogger()

    from predict_chat.config import config as app_config

    log_config = {
        "log_dir": str(app_config.FILES["log_dir"]),
        "log_level": app_config.LOGGING["level"],
        "console_level": app_config.LOGGING["level"],
        "max_bytes": app_config.LOGGING["max_bytes"],
        "backup_count": app_config.LOGGING["backup_count"],
        "format": app_config.LOGGING["format"],
        "date_format": app_config.LOGGING["date_format"],
    }
    if config:
        log_config.update(config)

    _logger_service = LoggerService(log_config)
    return logging.getLogger()


def get_logger(name: str) -> logging.Logger:
    """Get a named logger, configuring logging on first use"""
    if _logger_service is None:
        setup_logging()
    return logging.getLogger(name)


def cleanup_logging():
    """Clean up logging resources"""
    global _logger_service

    if _logger_service:
        _logger_service.cleanup()
        _logger_service = None
