"""Core data models for the menu state machine.

This module defines the immutable State node, the shapes a transition
destination may take, and the helper that normalizes state names.
"""
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, Union

from menu_factory.integrations.gateway import Request

if TYPE_CHECKING:
    from menu_factory.fsm.handlers import StateHandler


StateName = Union[str, Enum]

# A transition destination: a state name, or a resolver computing one from the request
TransitionTarget = Union[
    StateName,
    Callable[[Request], Union[StateName, Awaitable[StateName]]],
]


def state_name_of(name: StateName) -> str:
    """Normalize a state name given as a string or a string-valued Enum member."""
    if isinstance(name, Enum):
        return str(name.value)
    return name


class State:
    """A named node of the dialog graph.

    Created once when the menu is defined and never mutated afterwards. Each
    State exclusively owns its handler.
    """

    __slots__ = ("_name", "_handler")

    def __init__(self, name: str, handler: "StateHandler"):
        self._name = name
        self._handler = handler

    @property
    def name(self) -> str:
        return self._name

    @property
    def handler(self) -> "StateHandler":
        return self._handler

    def __repr__(self) -> str:
        return f"State(name={self._name!r})"
