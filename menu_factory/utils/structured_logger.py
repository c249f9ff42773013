"""Structured logging for menu operations with correlation IDs.

Each ``Menu.handle`` call runs under its own correlation ID so that the
transition, any redirects and the final outcome of one request can be tied
together in the logs.
"""

import json
import uuid
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from menu_factory.utils.logger import log

# Context variable for correlation ID (task-local under asyncio)
correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)


class StructuredLogger:
    """Structured logger with JSON formatting and correlation ID support."""

    def __init__(self, component: str):
        """Initialize structured logger for a component.

        Args:
            component: Name of the component (e.g., "fsm.core", "fsm.routing")
        """
        self.component = component

    def _format_structured_log(
        self, level: str, message: str, **kwargs: Any
    ) -> Dict[str, Any]:
        """Format log entry as a structured dictionary.

        Args:
            level: Log level (INFO, WARNING, ERROR, etc.)
            message: Log message
            **kwargs: Additional structured data

        Returns:
            Structured log entry as dictionary
        """
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "component": self.component,
            "message": message,
            "correlation_id": correlation_id_var.get(),
        }

        if kwargs:
            log_entry["data"] = kwargs

        return log_entry

    def _log(self, level: str, message: str, **kwargs: Any) -> None:
        structured_data = self._format_structured_log(level, message, **kwargs)
        log_message = f"[MENU] {message} | {json.dumps(structured_data, default=str)}"
        # Depth 2 reports the caller of debug()/info()/... instead of this helper
        log.opt(depth=2).log(level, log_message)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message with structured data."""
        self._log("DEBUG", message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message with structured data."""
        self._log("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message with structured data."""
        self._log("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message with structured data."""
        self._log("ERROR", message, **kwargs)

    def log_transition(
        self,
        session_id: str,
        from_state: str,
        to_state: str,
        trigger: str,
        **kwargs: Any,
    ) -> None:
        """Log a resolved state transition.

        Args:
            session_id: Session identifier
            from_state: Previously visited state
            to_state: Resolved next state
            trigger: User input that drove the transition
            **kwargs: Additional context
        """
        self.info(
            f"State transition: {from_state} -> {to_state}",
            session_id=session_id,
            from_state=from_state,
            to_state=to_state,
            trigger=trigger,
            **kwargs,
        )


def set_correlation_id(correlation_id: Optional[str] = None) -> Token:
    """Set correlation ID for current context.

    Args:
        correlation_id: Optional correlation ID. If None, generates new UUID.

    Returns:
        Token restoring the previous correlation ID when passed to
        ``reset_correlation_id``
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID from context."""
    return correlation_id_var.get()


def reset_correlation_id(token: Token) -> None:
    """Restore the correlation ID that was current before ``set_correlation_id``."""
    correlation_id_var.reset(token)


def get_structured_logger(component: str) -> StructuredLogger:
    """Factory function to create a structured logger for a component."""
    return StructuredLogger(component)
