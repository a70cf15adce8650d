"""
Structured JSON logging for policygate.

Provides JSON-formatted logs and an audit logger for authorization decisions.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, Dict, Any


# Attributes every LogRecord carries; anything else was passed via ``extra``.
_RESERVED_ATTRS = frozenset(
    [
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    ]
)


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in JSON format with standard fields:
    - timestamp: ISO 8601 timestamp
    - level: Log level
    - logger: Logger name
    - message: Log message
    - service: Name of the service
    - exception: Formatted traceback (if any)
    - extra: Additional fields from log record
    """

    def __init__(self, service_name: str, *args, **kwargs):
        """
        Initialize JSON formatter.

        Args:
            service_name: Name of the service (included in all logs)
        """
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


class DecisionAuditLogger:
    """
    Audit logger for authorization decisions.

    Records one event per decision with structured fields:
    - authorizer: Identifier of the authorizer that decided
    - method, path: The request being authorized
    - subject: Authenticated subject (never credentials)
    - decision: allow, deny or error
    - duration: Decision latency in seconds
    - reason: Explanation for deny and error outcomes
    """

    def __init__(
        self,
        service_name: str,
        logger: Optional[logging.Logger] = None,
        enabled: bool = True,
    ):
        """
        Initialize audit logger.

        Args:
            service_name: Name of the service
            logger: Python logger instance (defaults to "policygate.audit")
            enabled: Whether audit events are emitted
        """
        self.service_name = service_name
        self.enabled = enabled
        self.logger = logger or logging.getLogger("policygate.audit")

    def audit_decision(
        self,
        authorizer: str,
        method: str,
        path: str,
        subject: str,
        decision: str,
        duration: float,
        reason: str = "",
    ) -> None:
        """
        Log an authorization decision.

        Args:
            authorizer: Authorizer identifier
            method: HTTP method of the request
            path: URL path of the request
            subject: Authenticated subject
            decision: allow, deny or error
            duration: Duration of the decision in seconds
            reason: Reason for deny and error outcomes
        """
        if not self.enabled:
            return

        level = logging.WARNING if decision == "error" else logging.INFO
        self.logger.log(
            level,
            "Authorization decision",
            extra={
                "event_type": "AUTHZ_DECISION",
                "service_name": self.service_name,
                "authorizer": authorizer,
                "method": method,
                "path": path,
                "subject": subject,
                "decision": decision,
                "duration": duration,
                "reason": reason,
            },
        )


def setup_logging(
    service_name: str,
    level: str = "INFO",
    json_format: bool = True,
) -> logging.Logger:
    """
    Setup standard logging configuration for the service.

    Args:
        service_name: Name of the service
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON formatter (recommended for production)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("policygate")
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)

    if json_format:
        formatter = JSONFormatter(service_name=service_name)
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger
