"""Custom exceptions for structured error handling and propagation.

Every failure the engine can raise has its own class and error code, so the
embedding transport layer can map it to a carrier-level response without
inspecting messages. The engine never retries and never recovers silently.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Standard error codes for categorizing failures."""

    # Gateway errors (1xxx)
    MALFORMED_GATEWAY_REQUEST = "GATEWAY_1001"

    # Session / navigation errors (2xxx)
    STATE_NOT_FOUND = "SESSION_2001"
    CANNOT_RESOLVE_NEXT_STATE = "SESSION_2002"
    RESERVED_SESSION_KEY = "SESSION_2003"

    # Menu definition errors (3xxx)
    UNCONFIGURED_STATE = "DEFINITION_3001"
    MISSING_TERMINATOR = "DEFINITION_3002"
    RESERVED_STATE_NAME = "DEFINITION_3003"
    NO_START_STATE = "DEFINITION_3004"
    DUPLICATE_STATE_NAME = "DEFINITION_3005"
    RUNNER_ALREADY_BOUND = "DEFINITION_3006"

    # Execution errors (4xxx)
    REDIRECT_CYCLE_DETECTED = "EXECUTION_4001"
    HANDLE_TIMEOUT = "EXECUTION_4002"


class MenuFactoryException(Exception):
    """Base exception for all menu engine errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
    ):
        """Initialize exception with structured error information.

        Args:
            message: Technical error message (for logging)
            error_code: Standard error code for categorization
            details: Additional error context
            original_exception: Original exception if wrapping
        """
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}
        self.original_exception = original_exception

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/transport responses."""
        return {
            "success": False,
            "error_code": self.error_code.value,
            "error_type": type(self).__name__,
            "message": str(self),
            "details": self.details,
        }


class MalformedGatewayRequest(MenuFactoryException):
    """Raised when a raw carrier payload cannot be parsed by its gateway."""

    def __init__(self, gateway: str, reason: str, **kwargs):
        super().__init__(
            message=f"Request doesn't match {gateway} format because {reason}",
            error_code=ErrorCode.MALFORMED_GATEWAY_REQUEST,
            details={"gateway": gateway, "reason": reason},
            **kwargs,
        )


class StateNotFound(MenuFactoryException):
    """Raised when a state name has no registered State."""

    def __init__(self, state_name: str, **kwargs):
        super().__init__(
            message=f"Cannot find state with name: {state_name}",
            error_code=ErrorCode.STATE_NOT_FOUND,
            details={"state_name": state_name},
            **kwargs,
        )


class CannotResolveNextState(MenuFactoryException):
    """Raised when a transition resolves to an unregistered state name."""

    def __init__(self, from_state: str, next_state: str, message: str, **kwargs):
        super().__init__(
            message=(
                f"{from_state} state cannot resolve next state for input "
                f"{message!r} (resolved to {next_state!r})"
            ),
            error_code=ErrorCode.CANNOT_RESOLVE_NEXT_STATE,
            details={
                "from_state": from_state,
                "next_state": next_state,
                "input": message,
            },
            **kwargs,
        )


class ReservedSessionKey(MenuFactoryException):
    """Raised when user code touches the engine's reserved session key space."""

    def __init__(self, key: str, **kwargs):
        super().__init__(
            message=f"Session key {key!r} is reserved for internal use only",
            error_code=ErrorCode.RESERVED_SESSION_KEY,
            details={"key": key},
            **kwargs,
        )


class UnconfiguredState(MenuFactoryException):
    """Raised when a state is executed (or validated) without a runner."""

    def __init__(self, state_name: str, **kwargs):
        super().__init__(
            message=f"No runner has been configured for {state_name} state",
            error_code=ErrorCode.UNCONFIGURED_STATE,
            details={"state_name": state_name},
            **kwargs,
        )


class MissingTerminator(MenuFactoryException):
    """Raised when a runner ends without continue, terminate or a redirect."""

    def __init__(self, state_name: str, returned: Any = None, **kwargs):
        super().__init__(
            message=(
                f"Runner for {state_name} state must end with a call to "
                "`con`, `end`, `go_to` or `go_to_start`"
            ),
            error_code=ErrorCode.MISSING_TERMINATOR,
            details={"state_name": state_name, "returned_type": type(returned).__name__},
            **kwargs,
        )


class ReservedStateName(MenuFactoryException):
    """Raised when a user state is registered under the start-state name."""

    def __init__(self, state_name: str, **kwargs):
        super().__init__(
            message=f"State name {state_name} is reserved for internal use only",
            error_code=ErrorCode.RESERVED_STATE_NAME,
            details={"state_name": state_name},
            **kwargs,
        )


class NoStartState(MenuFactoryException):
    """Raised when a menu has no start state registered."""

    def __init__(self, menu_name: str, **kwargs):
        super().__init__(
            message=f"No start state has been configured for {menu_name} menu",
            error_code=ErrorCode.NO_START_STATE,
            details={"menu_name": menu_name},
            **kwargs,
        )


class DuplicateStateName(MenuFactoryException):
    """Raised when the same state name is registered twice in one menu."""

    def __init__(self, state_name: str, **kwargs):
        super().__init__(
            message=f"State {state_name} is already registered",
            error_code=ErrorCode.DUPLICATE_STATE_NAME,
            details={"state_name": state_name},
            **kwargs,
        )


class RunnerAlreadyBound(MenuFactoryException):
    """Raised when a second runner is bound to a state."""

    def __init__(self, state_name: str, **kwargs):
        super().__init__(
            message=f"A runner is already bound to {state_name} state",
            error_code=ErrorCode.RUNNER_ALREADY_BOUND,
            details={"state_name": state_name},
            **kwargs,
        )


class RedirectCycleDetected(MenuFactoryException):
    """Raised when a redirect chain exceeds the configured depth."""

    def __init__(self, chain: list, max_depth: int, **kwargs):
        super().__init__(
            message=(
                f"Redirect chain exceeded {max_depth} hops: "
                + " -> ".join(chain)
            ),
            error_code=ErrorCode.REDIRECT_CYCLE_DETECTED,
            details={"chain": chain, "max_depth": max_depth},
            **kwargs,
        )


class HandleTimeout(MenuFactoryException):
    """Raised when a request is not handled within the configured deadline."""

    def __init__(self, session_id: str, timeout: float, **kwargs):
        super().__init__(
            message=f"Handling session {session_id} exceeded {timeout}s",
            error_code=ErrorCode.HANDLE_TIMEOUT,
            details={"session_id": session_id, "timeout": timeout},
            **kwargs,
        )
