"""
Centralized logging configuration for the ATS backend.

Provides structured logging with proper levels, file rotation,
and JSON formatting for production use. Records emitted while a request
is being handled carry its request id, user id, method and path.
"""

import logging
import logging.handlers
import os
import json
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from flask import g, has_request_context, request

# Log directory
LOGS_DIR = Path(__file__).parent.parent / "logs"

# Log levels by environment
LOG_LEVELS = {
    "development": logging.DEBUG,
    "production": logging.INFO,
    "testing": logging.WARNING,
}

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_FIELDS = ("request_id", "user_id", "method", "path")

# Client-supplied ids are echoed back, so keep them short and printable
_CLIENT_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestContextFilter(logging.Filter):
    """Stamp records with the current request's id, user, method and path."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            record.request_id = g.get("request_id")
            record.user_id = g.get("user_id")
            record.method = request.method
            record.path = request.path
        else:
            for name in REQUEST_FIELDS:
                if not hasattr(record, name):
                    setattr(record, name, None)
        return True


def request_context(record: logging.LogRecord) -> dict:
    """Request fields set on ``record``, without the empty ones."""
    return {
        name: getattr(record, name)
        for name in REQUEST_FIELDS
        if getattr(record, name, None) is not None
    }


def init_request_ids(app):
    """
    Give every request an id, exposed as ``g.request_id`` and echoed in the
    ``X-Request-ID`` response header. A well-formed incoming header is reused.
    """

    @app.before_request
    def assign_request_id():
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        if _CLIENT_REQUEST_ID.match(incoming):
            g.request_id = incoming
        else:
            g.request_id = uuid.uuid4().hex[:12]

    @app.after_request
    def echo_request_id(response):
        request_id = g.get("request_id")
        if request_id:
            response.headers[REQUEST_ID_HEADER] = request_id
        return response


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        context = request_context(record)
        if context:
            log_obj["request"] = context

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        # Structured context attached by LogContext
        if hasattr(record, "extra_data"):
            log_obj["data"] = record.extra_data

        return json.dumps(log_obj, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored console formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now().strftime("%H:%M:%S")

        message = record.getMessage()
        if len(message) > 500:
            message = message[:500] + "..."

        if hasattr(record, "extra_data") and record.extra_data:
            context = " ".join(f"{k}={v}" for k, v in record.extra_data.items())
            message = f"{message} [{context}]"

        prefix = ""
        if getattr(record, "request_id", None):
            user = getattr(record, "user_id", None)
            prefix = f"({record.request_id}{f' u{user}' if user is not None else ''}) "

        line = f"{color}[{timestamp}] {record.levelname:8}{self.RESET} {record.name}: {prefix}{message}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: Optional[str] = None,
    json_logs: bool = False,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Use JSON formatting (for production)
        log_file: Optional log file path (enables file logging)

    Returns:
        Root logger configured for the application
    """
    env = os.environ.get("FLASK_ENV", "development")
    if level:
        log_level = getattr(logging, level.upper(), logging.INFO)
    else:
        log_level = LOG_LEVELS.get(env, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    request_filter = RequestContextFilter()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.addFilter(request_filter)

    if json_logs:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(ConsoleFormatter())

    root_logger.addHandler(console_handler)

    # File handler with rotation
    if log_file or env == "production":
        if log_file:
            file_path = Path(log_file)
        else:
            LOGS_DIR.mkdir(exist_ok=True)
            file_path = LOGS_DIR / "ats.log"
        file_handler = logging.handlers.RotatingFileHandler(
            file_path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.addFilter(request_filter)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("flask_cors").setLevel(logging.WARNING)
    logging.getLogger("psycopg2").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a module (typically ``__name__``)."""
    return logging.getLogger(name)


class LogContext:
    """Context manager for adding extra data to log messages."""

    def __init__(self, logger: logging.Logger, **kwargs):
        self.logger = logger
        self.extra_data = kwargs
        self.old_factory = None

    def __enter__(self):
        self.old_factory = logging.getLogRecordFactory()
        extra = self.extra_data

        def record_factory(*args, **kwargs):
            record = self.old_factory(*args, **kwargs)
            record.extra_data = extra
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        logging.setLogRecordFactory(self.old_factory)
