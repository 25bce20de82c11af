"""
Structured Logging for the Order Service

Every component of the service (ingestion loop, order store, HTTP endpoint,
sample publisher) logs through the standard library logger obtained with
logging.getLogger(__name__). This module only decides how those records are
rendered.

OUTPUT FORMATS:
- json: one JSON object per line, for log aggregation (default)
- text: human-readable lines for local development

EXAMPLE OUTPUT (json):
{
  "timestamp": "2025-01-10T14:30:00.123Z",
  "level": "INFO",
  "service": "order-service",
  "logger": "src.consumer.consumer",
  "correlation_id": "b563feb7b2b84b6test",
  "message": "Message handled",
  "extra": {"partition": 0, "offset": 42, "outcome": "processed"}
}

CORRELATION:
- correlation_id carries the order_uid of the message being handled
- CorrelationAdapter stamps it on every record logged for one order
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

# Attributes every LogRecord has; anything else came in through extra={...}
_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName", "correlation_id",
}


# ==============================================================================
# JSON FORMATTER
# ==============================================================================

class JSONFormatter(logging.Formatter):
    """
    Render log records as single-line JSON documents.

    Fields:
    - timestamp: ISO 8601, UTC, millisecond precision
    - level, service, logger, message
    - correlation_id: order_uid, when the caller supplied one
    - exception: formatted traceback, when exc_info was set
    - extra: every non-standard attribute passed through extra={...}
    """

    def __init__(self, service_name: str = "order-service", include_extra: bool = True):
        super().__init__()
        self.service_name = service_name
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self._format_timestamp(record.created),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "correlation_id"):
            log_data["correlation_id"] = record.correlation_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            extra_fields = {
                k: v for k, v in record.__dict__.items()
                if k not in _STANDARD_ATTRS and not k.startswith("_")
            }
            if extra_fields:
                log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)

    @staticmethod
    def _format_timestamp(created: float) -> str:
        """Format a record's epoch timestamp as e.g. 2025-01-10T14:30:00.123Z."""
        dt = datetime.fromtimestamp(created, tz=timezone.utc)
        return dt.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


# ==============================================================================
# PLAIN TEXT FORMATTER (for development)
# ==============================================================================

class PlainTextFormatter(logging.Formatter):
    """
    Human-readable formatter.

    Format: [2025-01-10 14:30:00] INFO [order-service] Message handled
    """

    def __init__(self, service_name: str = "order-service"):
        super().__init__(
            fmt=f"[%(asctime)s] %(levelname)s [{service_name}] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


# ==============================================================================
# LOGGER SETUP
# ==============================================================================

def setup_logger(
    name: str,
    service_name: str,
    log_level: str = "INFO",
    log_format: str = "json",
) -> logging.Logger:
    """
    Configure a logger with a stdout handler and the chosen formatter.

    Entry points call this once with name="src" so that every module logger
    in the package (src.consumer.store, src.api.app, ...) propagates to the
    same handler.

    Args:
        name: Logger name to configure
        service_name: Value of the "service" field in every record
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: "json" or "text"

    Returns:
        The configured logger. Calling again for an already configured
        logger only updates its level.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logger.level)

    if log_format.lower() == "json":
        formatter: logging.Formatter = JSONFormatter(service_name=service_name)
    else:
        formatter = PlainTextFormatter(service_name=service_name)

    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


# ==============================================================================
# CORRELATION ID ADAPTER
# ==============================================================================

class CorrelationAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds correlation_id to every record.

    Example:
        >>> order_logger = CorrelationAdapter(logger, {"correlation_id": order.order_uid})
        >>> order_logger.info("Order stored")
    """

    def process(self, msg: str, kwargs: dict) -> tuple:
        extra = kwargs.get("extra", {})

        if "correlation_id" in self.extra:
            extra["correlation_id"] = self.extra["correlation_id"]

        kwargs["extra"] = extra
        return msg, kwargs
