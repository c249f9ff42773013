"""State execution: runner binding, runner primitives, and outcome handling.

A runner is the logic bound to a state. It receives a ``StateRunner`` (the
primitives bound to the menu's gateway and the current session) and the
normalized request, and must conclude with exactly one of:

- ``runner.con(text)``: reply and keep the session open
- ``runner.end(text)``: reply and close the session
- ``runner.go_to(name)`` / ``runner.go_to_start()``: hand the same request to
  another state

Runners may be plain functions or coroutines.
"""

import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Mapping, Optional, Union

from menu_factory.config import settings
from menu_factory.exceptions import (
    MissingTerminator,
    RedirectCycleDetected,
    RunnerAlreadyBound,
    UnconfiguredState,
)
from menu_factory.fsm.models import Request, State, StateName, TransitionTarget
from menu_factory.fsm.routing import TransitionResolver
from menu_factory.integrations.gateway import Gateway
from menu_factory.services.session import Session
from menu_factory.utils.result import Continuing, StateResult, Terminating
from menu_factory.utils.structured_logger import get_structured_logger

if TYPE_CHECKING:
    from menu_factory.fsm.core import StateRegistry

logger = get_structured_logger("fsm.handlers")

RunnerOutcome = Union[Continuing, Terminating, State]
Runner = Callable[["StateRunner", Request], Union[RunnerOutcome, Awaitable[RunnerOutcome]]]


class StateRunner:
    """Commands available to a runner while a state is being visited."""

    def __init__(
        self,
        gateway: Gateway,
        registry: "StateRegistry",
        session: Session,
        request: Request,
    ):
        self.gateway = gateway
        self.session = session
        self.request = request
        self._registry = registry

    @property
    def session_id(self) -> str:
        return self.request.session_id

    def con(self, message: str) -> Continuing:
        """Reply without ending the session.

        Args:
            message: Text to display to the user
        """
        return Continuing(self.gateway.continue_with(message))

    def end(self, message: str) -> Terminating:
        """Reply and end the session. The session record is cleared.

        Args:
            message: Text to display to the user
        """
        return Terminating(self.gateway.terminate_with(message))

    def go_to(self, name: StateName) -> State:
        """Redirect to another state within the same request.

        Raises:
            StateNotFound: If no state is registered under name
        """
        return self._registry.get(name)

    def go_to_start(self) -> State:
        """Redirect to the start state.

        Raises:
            NoStartState: If the menu has no start state
        """
        return self._registry.start_state

    async def get(self, key: str, default: Any = None) -> Any:
        """Read a value stored in the current session."""
        return await self.session.get(self.session_id, key, default)

    async def set(self, key: str, value: Any) -> None:
        """Store a value in the current session."""
        await self.session.set(self.session_id, key, value)


class StateHandler:
    """Binds one state's runner and its transition resolver."""

    def __init__(
        self,
        state_name: str,
        gateway: Gateway,
        registry: "StateRegistry",
        transitions: Optional[TransitionResolver] = None,
    ):
        """Initialize handler.

        Args:
            state_name: Name of the owning state
            gateway: Gateway used to format replies
            registry: States of the owning menu, for redirects
            transitions: Resolver for this state (a fresh one by default)
        """
        self.state_name = state_name
        self.gateway = gateway
        self.transition_resolver = (
            transitions if transitions is not None else TransitionResolver(state_name)
        )
        self._registry = registry
        self._runner: Optional[Runner] = None

    @property
    def is_bound(self) -> bool:
        """Check if a runner has been bound."""
        return self._runner is not None

    def run(self, runner: Runner) -> Runner:
        """Bind the state's runner. Usable as a decorator.

        Raises:
            RunnerAlreadyBound: If a runner was bound before
        """
        if self._runner is not None:
            raise RunnerAlreadyBound(self.state_name)
        self._runner = runner
        return runner

    def transitions(self, mapping: Mapping[str, TransitionTarget]) -> None:
        """Register transitions (literal inputs or regular expressions → destinations)."""
        self.transition_resolver.update(mapping)

    def default_next_state(self, name: StateName) -> None:
        """Override the state to fall back to when no transition matches."""
        self.transition_resolver.set_default(name)

    async def execute(
        self,
        request: Request,
        session: Session,
        max_redirect_depth: Optional[int] = None,
        _chain: Optional[List[str]] = None,
    ) -> StateResult:
        """Run the state and settle its outcome.

        Continuing records this state as the session's previous state.
        Terminating ends the session. A returned State re-runs the same
        request on that state.

        Args:
            request: Normalized request
            session: Session store
            max_redirect_depth: Redirect hops allowed (defaults to settings.max_redirect_depth)

        Returns:
            StateResult with the gateway payload and is-final flag

        Raises:
            UnconfiguredState: If no runner was bound
            MissingTerminator: If the runner returned anything else
            RedirectCycleDetected: If the redirect chain grows past the limit
        """
        if self._runner is None:
            raise UnconfiguredState(self.state_name)

        limit = settings.max_redirect_depth if max_redirect_depth is None else max_redirect_depth
        chain = (_chain or []) + [self.state_name]

        outcome = self._runner(
            StateRunner(self.gateway, self._registry, session, request), request
        )
        if inspect.isawaitable(outcome):
            outcome = await outcome

        if isinstance(outcome, Continuing):
            await session.set_previous_state_name(request.session_id, self.state_name)
            return StateResult.from_marker(outcome, self.state_name)

        if isinstance(outcome, Terminating):
            await session.end(request.session_id)
            logger.info(
                "Session terminated",
                session_id=request.session_id,
                state=self.state_name,
            )
            return StateResult.from_marker(outcome, self.state_name)

        if isinstance(outcome, State):
            if len(chain) > limit:
                raise RedirectCycleDetected(chain + [outcome.name], limit)
            logger.debug(
                f"Redirect: {self.state_name} -> {outcome.name}",
                session_id=request.session_id,
                depth=len(chain),
            )
            return await outcome.handler.execute(
                request, session, max_redirect_depth=limit, _chain=chain
            )

        raise MissingTerminator(self.state_name, outcome)
