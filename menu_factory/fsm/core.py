"""Menu orchestrator and state registry.

``Menu.handle`` is the single runtime entry point. For each raw gateway
request it:

1. Transforms the payload with the gateway
2. Loads the session's previous state (the start state when there is none)
3. Resolves the next state from the previous state's transitions
4. Executes the next state, which persists the new position or ends the session
5. Hands the payload to the responder

Nothing before step 4 writes to the session store, so a malformed request or
an unresolvable transition never leaves a session half-updated. Requests for
the same session id are serialized; other sessions proceed independently.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Mapping, Optional, Union

from menu_factory.config import settings
from menu_factory.exceptions import (
    CannotResolveNextState,
    DuplicateStateName,
    HandleTimeout,
    MenuFactoryException,
    NoStartState,
    ReservedStateName,
    StateNotFound,
    UnconfiguredState,
)
from menu_factory.fsm.handlers import Runner, StateHandler
from menu_factory.fsm.models import Request, State, StateName, TransitionTarget, state_name_of
from menu_factory.fsm.routing import TransitionResolver
from menu_factory.integrations.africas_talking import AfricasTalking
from menu_factory.integrations.gateway import Gateway
from menu_factory.services.session import InMemorySession, Session
from menu_factory.utils.result import StateResult
from menu_factory.utils.structured_logger import (
    get_structured_logger,
    reset_correlation_id,
    set_correlation_id,
)

logger = get_structured_logger("fsm.core")

Responder = Callable[[Any], Any]


# ============================================================================
# StateRegistry - Named states of one menu
# ============================================================================


class StateRegistry:
    """Owns every State of a menu, keyed by name."""

    def __init__(self, menu_name: str, start_state_name: str):
        self.menu_name = menu_name
        self.start_state_name = start_state_name
        self._states: Dict[str, State] = {}

    def register(self, state: State) -> State:
        """Add a state.

        Raises:
            DuplicateStateName: If the name is already taken
        """
        if state.name in self._states:
            raise DuplicateStateName(state.name)
        self._states[state.name] = state
        return state

    def find(self, name: StateName) -> Optional[State]:
        """Look up a state, returning None when absent."""
        return self._states.get(state_name_of(name))

    def get(self, name: StateName) -> State:
        """Look up a state.

        Raises:
            StateNotFound: If no state is registered under name
        """
        state = self.find(name)
        if state is None:
            raise StateNotFound(state_name_of(name))
        return state

    @property
    def start_state(self) -> State:
        """The start state.

        Raises:
            NoStartState: If none has been registered
        """
        state = self._states.get(self.start_state_name)
        if state is None:
            raise NoStartState(self.menu_name)
        return state

    @property
    def names(self) -> List[str]:
        return list(self._states)

    def __contains__(self, name: StateName) -> bool:
        return state_name_of(name) in self._states

    def __iter__(self) -> Iterator[State]:
        return iter(self._states.values())

    def __len__(self) -> int:
        return len(self._states)


# ============================================================================
# Menu - Definition surface and request lifecycle
# ============================================================================


class Menu:
    """A USSD menu: a gateway, a session store and a registry of named states.

    Usage:
        menu = Menu("bank", gateway=AfricasTalking())

        @menu.start_state(transitions={"1": "balance"})
        async def welcome(runner, request):
            return runner.con("Welcome\\n1. Balance")

        @menu.state("balance")
        async def balance(runner, request):
            return runner.end("Your balance is 0")

        reply = await menu.handle(raw_request)
    """

    def __init__(
        self,
        name: str,
        gateway: Optional[Gateway] = None,
        session: Optional[Session] = None,
        max_redirect_depth: Optional[int] = None,
        handle_timeout: Optional[float] = None,
    ):
        """Initialize menu.

        Args:
            name: Name of the USSD application
            gateway: Carrier adapter (Africa's Talking by default)
            session: Session store (a fresh in-memory store by default)
            max_redirect_depth: Redirect hops allowed per request
            handle_timeout: Deadline in seconds for one handle call (None = no deadline)

        Raises:
            ValueError: If handle_timeout is not positive
        """
        self.name = name
        self.gateway = gateway if gateway is not None else AfricasTalking()
        self.session = session if session is not None else InMemorySession()
        self.registry = StateRegistry(name, self.session.start_state_name)
        self.max_redirect_depth = (
            settings.max_redirect_depth if max_redirect_depth is None else max_redirect_depth
        )
        self.handle_timeout = (
            settings.handle_timeout_seconds if handle_timeout is None else handle_timeout
        )
        if self.handle_timeout is not None and self.handle_timeout <= 0:
            raise ValueError(f"handle_timeout must be positive, got {self.handle_timeout}")

    @classmethod
    async def build(
        cls,
        name: str,
        init: Callable[["Menu"], Union[None, Awaitable[None]]],
        **kwargs: Any,
    ) -> "Menu":
        """Create a menu and apply a definition callable to it.

        Args:
            name: Name of the USSD application
            init: Function (sync or async) registering the menu's states
            **kwargs: Forwarded to the constructor
        """
        menu = cls(name, **kwargs)
        result = init(menu)
        if inspect.isawaitable(result):
            await result
        return menu

    @property
    def start_state_name(self) -> str:
        return self.registry.start_state_name

    # ------------------------------------------------------------------
    # Definition surface
    # ------------------------------------------------------------------

    def _init_state(
        self,
        name: str,
        runner: Optional[Runner],
        transitions: Optional[Mapping[str, TransitionTarget]],
        default_next_state: Optional[StateName],
    ) -> State:
        handler = StateHandler(
            name,
            self.gateway,
            self.registry,
            TransitionResolver(name, default_next_state),
        )
        if transitions:
            handler.transitions(transitions)
        if runner is not None:
            handler.run(runner)
        return self.registry.register(State(name, handler))

    def add_state(
        self,
        name: StateName,
        runner: Optional[Runner] = None,
        transitions: Optional[Mapping[str, TransitionTarget]] = None,
        default_next_state: Optional[StateName] = None,
    ) -> State:
        """Register a state. The runner may be bound later with ``state.handler.run``.

        Args:
            name: State name (string or string-valued Enum member)
            runner: Logic run when the state is visited
            transitions: Literal inputs or regular expressions → destinations
            default_next_state: Destination when no transition matches (the state itself by default)

        Raises:
            ReservedStateName: If name is the start state's reserved name
            DuplicateStateName: If name is already registered
        """
        name = state_name_of(name)
        if name == self.start_state_name:
            raise ReservedStateName(name)
        return self._init_state(name, runner, transitions, default_next_state)

    def add_start_state(
        self,
        runner: Optional[Runner] = None,
        transitions: Optional[Mapping[str, TransitionTarget]] = None,
        default_next_state: Optional[StateName] = None,
    ) -> State:
        """Register the start state, visited first by every new session."""
        return self._init_state(self.start_state_name, runner, transitions, default_next_state)

    def state(
        self,
        name: StateName,
        transitions: Optional[Mapping[str, TransitionTarget]] = None,
        default_next_state: Optional[StateName] = None,
    ) -> Callable[[Runner], Runner]:
        """Decorator registering a state with the decorated function as its runner."""

        def decorator(runner: Runner) -> Runner:
            self.add_state(name, runner, transitions, default_next_state)
            return runner

        return decorator

    def start_state(
        self,
        transitions: Optional[Mapping[str, TransitionTarget]] = None,
        default_next_state: Optional[StateName] = None,
    ) -> Callable[[Runner], Runner]:
        """Decorator registering the start state with the decorated function as its runner."""

        def decorator(runner: Runner) -> Runner:
            self.add_start_state(runner, transitions, default_next_state)
            return runner

        return decorator

    def go_to(self, name: StateName) -> State:
        """Look up a state to redirect to.

        Raises:
            StateNotFound: If no state is registered under name
        """
        return self.registry.get(name)

    def go_to_start(self) -> State:
        """Look up the start state to redirect to."""
        return self.registry.start_state

    def validate(self) -> None:
        """Check the definition before serving traffic.

        Raises:
            NoStartState: If no start state is registered
            UnconfiguredState: If a state has no runner
            CannotResolveNextState: If a literal destination names an unknown state
        """
        self.registry.start_state

        for state in self.registry:
            handler = state.handler
            if not handler.is_bound:
                raise UnconfiguredState(state.name)

            resolver = handler.transition_resolver
            if resolver.default_next_state_name not in self.registry:
                raise CannotResolveNextState(
                    state.name, resolver.default_next_state_name, "<default>"
                )
            for key, target in resolver.targets.items():
                if isinstance(target, str) and target not in self.registry:
                    raise CannotResolveNextState(state.name, target, key)

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------

    async def handle(self, raw_request: Any, responder: Optional[Responder] = None) -> Any:
        """Handle one gateway request.

        Args:
            raw_request: Carrier-specific payload
            responder: Callable (sync or async) receiving the gateway response.
                Invoked after all session writes are done.

        Returns:
            The responder's return value, or the gateway response when no
            responder is given

        Raises:
            MenuFactoryException: Any engine error, unchanged
        """
        token = set_correlation_id()
        try:
            request = self.gateway.transform(raw_request)

            async with self.session.locks.acquire(request.session_id):
                result = await self._process_with_deadline(request)

                if responder is None:
                    return result.payload
                reply = responder(result.payload)
                if inspect.isawaitable(reply):
                    reply = await reply
                return reply
        except MenuFactoryException as e:
            logger.error(
                f"Menu {self.name} failed to handle request: {e}",
                menu=self.name,
                error=e.to_dict(),
            )
            raise
        finally:
            reset_correlation_id(token)

    async def _process_with_deadline(self, request: Request) -> StateResult:
        if self.handle_timeout is None:
            return await self._process(request)
        try:
            return await asyncio.wait_for(self._process(request), self.handle_timeout)
        except asyncio.TimeoutError as e:
            raise HandleTimeout(request.session_id, self.handle_timeout) from e

    async def _process(self, request: Request) -> StateResult:
        previous_name = await self.session.get_previous_state_name(request.session_id)
        previous_state = self.registry.find(previous_name)
        if previous_state is None:
            if previous_name == self.start_state_name:
                raise NoStartState(self.name)
            raise StateNotFound(previous_name)

        next_name = await previous_state.handler.transition_resolver.resolve(request)
        next_state = self.registry.find(next_name)
        if next_state is None:
            raise CannotResolveNextState(previous_name, next_name, request.message)

        logger.log_transition(
            session_id=request.session_id,
            from_state=previous_name,
            to_state=next_name,
            trigger=request.message,
            menu=self.name,
        )

        await self.session.start(request.session_id)
        result = await next_state.handler.execute(
            request, self.session, max_redirect_depth=self.max_redirect_depth
        )

        logger.debug(
            "Request handled",
            session_id=request.session_id,
            state=result.state_name,
            is_final=result.is_final,
        )
        return result

    def __repr__(self) -> str:
        return f"Menu(name={self.name!r}, gateway={self.gateway!r}, states={self.registry.names})"
