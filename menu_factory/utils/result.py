"""Result wrappers produced by state runners.

A runner concludes a visit in one of three ways: ``con`` (``Continuing``),
``end`` (``Terminating``) or a redirect (returning a ``State``). The first two
carry the gateway-specific payload; the engine never inspects it.
"""
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Continuing(Generic[T]):
    """Marker returned by ``con``: reply and keep the session open."""

    payload: T


@dataclass(frozen=True)
class Terminating(Generic[T]):
    """Marker returned by ``end``: reply and close the session."""

    payload: T


@dataclass(frozen=True)
class StateResult(Generic[T]):
    """Terminal outcome of one ``handle`` call.

    Attributes:
        payload: Gateway response to hand to the responder
        is_final: True when the session was ended by this call
        state_name: Name of the state whose runner produced the payload
    """

    payload: T
    is_final: bool
    state_name: str

    @staticmethod
    def from_marker(marker: Any, state_name: str) -> "StateResult":
        """Build a result from a ``Continuing`` or ``Terminating`` marker.

        Raises:
            TypeError: If marker is neither
        """
        if isinstance(marker, Continuing):
            return StateResult(payload=marker.payload, is_final=False, state_name=state_name)
        if isinstance(marker, Terminating):
            return StateResult(payload=marker.payload, is_final=True, state_name=state_name)
        raise TypeError(f"Not a runner result marker: {type(marker).__name__}")
