"""Structured JSON logging with OpenTelemetry trace correlation"""
import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional
from contextvars import ContextVar

from opentelemetry import trace

trace_id_var: ContextVar[Optional[str]] = ContextVar('trace_id', default=None)


class StructuredLogger:
    """
    Structured logger emitting one JSON object per line.

    - Trace ID taken from the current OpenTelemetry span, or from the
      context var set by request middleware
    - Arbitrary keyword fields merged into the log entry
    - Convenience method for authentication events
    """

    def __init__(self, name: str, level: str = "INFO"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter("%(message)s"))
            self.logger.addHandler(handler)

    def _log_structured(self, level: str, message: str, **kwargs):
        log_entry = {
            "severity": level,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "logger": self.logger.name,
            "message": message,
        }

        trace_id = self._get_trace_id_from_otel() or trace_id_var.get()
        if trace_id:
            log_entry["trace_id"] = trace_id

        if kwargs:
            log_entry.update(kwargs)

        getattr(self.logger, level.lower())(json.dumps(log_entry, default=str))

    def _get_trace_id_from_otel(self) -> Optional[str]:
        """Get trace ID from OpenTelemetry current span context"""
        span = trace.get_current_span()
        span_context = span.get_span_context()
        if span_context.is_valid:
            return format(span_context.trace_id, '032x')
        return None

    def info(self, message: str, **kwargs):
        self._log_structured("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log_structured("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log_structured("ERROR", message, **kwargs)

    def debug(self, message: str, **kwargs):
        self._log_structured("DEBUG", message, **kwargs)

    def critical(self, message: str, **kwargs):
        self._log_structured("CRITICAL", message, **kwargs)

    def log_auth_event(
        self,
        event: str,
        account_id: Optional[str] = None,
        success: bool = True,
        **kwargs
    ):
        """
        Convenience method for logging authentication events.

        Args:
            event: Event name (e.g., "login", "confirm_setup", "disable")
            account_id: Account the event applies to, if known
            success: Whether the operation succeeded
            **kwargs: Additional context (never secrets or codes)
        """
        log_data = {
            "auth_event": event,
            "success": success,
            **kwargs
        }

        if account_id is not None:
            log_data["account_id"] = account_id

        if success:
            self.info(f"Auth {event} succeeded", **log_data)
        else:
            self.warning(f"Auth {event} rejected", **log_data)


def get_logger(name: str, level: str = "INFO") -> StructuredLogger:
    """Get or create logger instance"""
    return StructuredLogger(name, level)


def set_trace_id(trace_id: Optional[str]):
    """Set trace ID in context for current request"""
    trace_id_var.set(trace_id)


def get_trace_id() -> Optional[str]:
    """Get current trace ID from context"""
    return trace_id_var.get()
