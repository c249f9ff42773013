"""Transition resolution for menu states.

Resolves one user input to exactly one next-state name, in strict order:

1. Exact match: the input is a literal transition key
2. Pattern match: the first key, in registration order, that full-matches the
   input as a regular expression
3. Default: the owning state's default next state (the state itself unless
   overridden)
"""

import inspect
import re
from enum import Enum
from typing import Dict, List, Mapping, Optional, Pattern, Tuple

from menu_factory.fsm.models import (
    Request,
    StateName,
    TransitionTarget,
    state_name_of,
)
from menu_factory.utils.structured_logger import get_structured_logger

logger = get_structured_logger("fsm.routing")


def _compile(key: str) -> Optional[Pattern]:
    try:
        return re.compile(key)
    except re.error as e:
        logger.warning(
            "Transition key is not a valid pattern, exact match only",
            key=key,
            error=str(e),
        )
        return None


class TransitionResolver:
    """Maps user inputs to next-state names for one state."""

    def __init__(self, state_name: str, default_next_state_name: Optional[StateName] = None):
        """Initialize resolver.

        Args:
            state_name: Name of the owning state
            default_next_state_name: Fallback destination (defaults to the owning state)
        """
        self.state_name = state_name
        self.default_next_state_name = (
            state_name_of(default_next_state_name)
            if default_next_state_name is not None
            else state_name
        )
        self._targets: Dict[str, TransitionTarget] = {}
        # Kept separately from the dict so pattern order is explicit
        self._patterns: List[Tuple[str, Pattern]] = []

    def add(self, key: str, target: TransitionTarget) -> None:
        """Register a transition.

        Re-registering an existing key replaces its destination but keeps its
        original position for pattern tie-breaking.

        Args:
            key: Literal input or regular expression
            target: State name, Enum member, or a callable receiving the Request
        """
        if not isinstance(key, str):
            raise TypeError(f"Transition keys must be strings, got {type(key).__name__}")

        if key not in self._targets:
            pattern = _compile(key)
            if pattern is not None:
                self._patterns.append((key, pattern))

        if isinstance(target, Enum):
            target = state_name_of(target)
        self._targets[key] = target

    def update(self, mapping: Mapping[str, TransitionTarget]) -> None:
        """Register several transitions, in the mapping's iteration order."""
        for key, target in mapping.items():
            self.add(key, target)

    def set_default(self, name: StateName) -> None:
        """Override the default next state."""
        self.default_next_state_name = state_name_of(name)

    @property
    def keys(self) -> List[str]:
        """Transition keys in registration order."""
        return list(self._targets)

    @property
    def targets(self) -> Dict[str, TransitionTarget]:
        """Copy of the registered key to destination mapping."""
        return dict(self._targets)

    def match(self, message: str) -> Optional[str]:
        """Return the transition key that applies to an input, if any."""
        if message in self._targets:
            return message
        for key, pattern in self._patterns:
            if pattern.fullmatch(message):
                return key
        return None

    async def resolve(self, request: Request) -> str:
        """Resolve the next state name for a request.

        Args:
            request: Normalized gateway request

        Returns:
            Name of the next state
        """
        message = request.message

        # One key at most is evaluated, so an exact hit yielding None goes to the default
        key = self.match(message)
        if key is None:
            return self.default_next_state_name

        name = await self._evaluate(self._targets[key], request)
        return name if name is not None else self.default_next_state_name

    @staticmethod
    async def _evaluate(target: TransitionTarget, request: Request) -> Optional[str]:
        if isinstance(target, str):
            return target

        result = target(request)
        if inspect.isawaitable(result):
            result = await result

        if result is None:
            return None
        return state_name_of(result)
