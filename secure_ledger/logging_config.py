"""
Structured Logging Configuration Module

Provides JSON-formatted structured logging for all ledger operations, with a
masking filter so labeled sensitive values never reach a log sink.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional

from .masking import mask_fields, mask_sensitive_data


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.module if hasattr(record, 'module') else record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, 'correlation_id', None),
            "action": getattr(record, 'action', None),
            "error_code": getattr(record, 'error_code', None),
            "extra": mask_fields(getattr(record, 'extra', None))
        }

        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        # Add exception info if present
        if record.exc_info:
            log_entry['exception'] = mask_sensitive_data(self.formatException(record.exc_info))

        return json.dumps(log_entry, default=str)


class SensitiveDataFilter(logging.Filter):
    """Masks labeled values (account=..., amount=...) in every record"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = mask_sensitive_data(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def setup_logging(level: str = "INFO", fmt: str = "json", log_file: Optional[str] = None,
                  logger_name: str = "secure_ledger") -> logging.Logger:
    """
    Setup structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        fmt: "json" for structured output, "text" for plain lines
        log_file: Optional file path; logs go to stderr when omitted
        logger_name: Name of the logger

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    if log_file:
        handler = logging.FileHandler(log_file)
    else:
        handler = logging.StreamHandler()

    if fmt.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler.addFilter(SensitiveDataFilter())

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))

    # Prevent propagation to avoid duplicate logs
    logger.propagate = False

    return logger


def log_action(logger: logging.Logger, level: str, message: str,
               action: Optional[str] = None, correlation_id: Optional[str] = None,
               error_code: Optional[str] = None, extra: Optional[dict] = None):
    """
    Log an action with structured data.

    Args:
        logger: Logger instance
        level: Log level (info, warning, error, etc.)
        message: Log message (must already be masked)
        action: Action being performed
        correlation_id: Correlation ID for request tracing
        error_code: Error kind code when logging a failure
        extra: Additional structured data (must already be masked)
    """
    record = logger.makeRecord(
        logger.name, getattr(logging, level.upper()),
        __name__, 0, message, (), None
    )

    # Add custom fields
    if action:
        record.action = action
    if correlation_id:
        record.correlation_id = correlation_id
    if error_code:
        record.error_code = error_code
    if extra:
        record.extra = extra

    logger.handle(record)
