import logging
import logging.config
import os
import sys
import time
import uuid
from typing import Optional

import structlog


def configure_logging(log_level: str = "INFO", log_file: Optional[str] = None, stream=None):
    """
    Configure structured logging for the scheduling service and tools.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional rotating JSON log file path
        stream: Console stream (stdout by default; the CLI keeps stdout for its output)
    """
    log_level = (log_level or "INFO").upper()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "detailed",
            "stream": stream or sys.stdout
        }
    }
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "json",
            "filename": log_file,
            "maxBytes": 5242880,  # 5MB
            "backupCount": 3
        }

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "json": {
                "()": "structlog.stdlib.ProcessorFormatter",
                "processor": structlog.processors.JSONRenderer()
            }
        },
        "handlers": handlers,
        "root": {
            "level": log_level,
            "handlers": list(handlers),
        },
        "loggers": {
            # Request lines from the dev server only at DEBUG
            "werkzeug": {
                "level": "DEBUG" if log_level == "DEBUG" else "WARNING",
            },
        },
    })

    logger = structlog.get_logger("app")
    logger.debug("Logging configured", level=log_level, file=log_file)

    return logger


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class ScheduleContext:
    """Context manager for scheduling passes with a correlation ID."""

    def __init__(self, operation_type: str, operation_id: Optional[str] = None):
        self.operation_type = operation_type
        self.operation_id = operation_id or str(uuid.uuid4())[:8]
        self.logger = get_logger("app.production")
        self.start_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.debug(
            "Scheduling operation started",
            operation_type=self.operation_type,
            operation_id=self.operation_id,
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.perf_counter() - self.start_time

        if exc_type is None:
            self.logger.info(
                "Scheduling operation completed",
                operation_type=self.operation_type,
                operation_id=self.operation_id,
                duration_seconds=round(duration, 6),
                status="success"
            )
        else:
            self.logger.error(
                "Scheduling operation failed",
                operation_type=self.operation_type,
                operation_id=self.operation_id,
                duration_seconds=round(duration, 6),
                status="error",
                error_type=exc_type.__name__,
                error_message=str(exc_val)
            )

        return False  # Don't suppress exceptions
