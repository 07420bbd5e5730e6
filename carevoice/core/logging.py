"""
Structured logging setup for the CareVoice relay
"""

import logging
import structlog
from datetime import datetime, timezone
from carevoice.config import settings, Environment


def setup_logging():
    """Configures structured logging"""

    timestamper = structlog.processors.TimeStamper(fmt="ISO")

    processors = [
        structlog.processors.add_log_level,
        timestamper,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.environment == Environment.DEVELOPMENT:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.extend([
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer()
        ])

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None):
    """Returns a configured logger"""
    return structlog.get_logger(name or __name__)


class AuditLogger:
    """Logger for calls to external collaborators and their failures"""

    def __init__(self):
        self.logger = get_logger("audit")

    def log_external_api_call(
        self,
        service: str,
        operation: str,
        status: str,
        response_time_ms: int,
        request_id: str = None,
        **kwargs
    ):
        """Logs one call to an external backend"""
        self.logger.info(
            "external_api_call",
            request_id=request_id,
            service=service,
            operation=operation,
            status=status,
            response_time_ms=response_time_ms,
            timestamp=datetime.now(timezone.utc).isoformat(),
            **kwargs
        )

    def log_error(
        self,
        error_type: str,
        error_message: str,
        request_id: str = None,
        **kwargs
    ):
        """Logs an error event"""
        self.logger.error(
            "error_event",
            request_id=request_id,
            error_type=error_type,
            error_message=error_message,
            timestamp=datetime.now(timezone.utc).isoformat(),
            **kwargs
        )


# Global audit logger instance
audit_logger = AuditLogger()
