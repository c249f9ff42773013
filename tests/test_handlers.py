"""Unit tests for state execution.

Tests:
- Runner binding
- Continue / terminate outcomes and their persistence
- Redirect chaining and the depth guard
- Termination contract violations
"""

from unittest.mock import AsyncMock, Mock

import pytest

from menu_factory.exceptions import (
    MissingTerminator,
    NoStartState,
    RedirectCycleDetected,
    RunnerAlreadyBound,
    StateNotFound,
    UnconfiguredState,
)
from menu_factory.fsm.core import StateRegistry
from menu_factory.fsm.handlers import StateHandler, StateRunner
from menu_factory.fsm.models import State
from menu_factory.integrations.africas_talking import AfricasTalking
from menu_factory.services.session import Session


@pytest.fixture
def gateway():
    return AfricasTalking()


@pytest.fixture
def registry():
    return StateRegistry("test", "__START__")


@pytest.fixture
def add_state(gateway, registry):
    """Register a state and return its handler."""

    def _add(name, runner=None):
        handler = StateHandler(name, gateway, registry)
        if runner is not None:
            handler.run(runner)
        registry.register(State(name, handler))
        return handler

    return _add


class TestRunnerBinding:
    """Test binding runners to handlers."""

    def test_unbound_handler(self, add_state):
        """Test a fresh handler reports no runner."""
        handler = add_state("s1")
        assert handler.is_bound is False

    def test_run_as_decorator(self, add_state):
        """Test run returns the runner so it can decorate."""
        handler = add_state("s1")

        @handler.run
        def runner(runner, request):
            return runner.con("hi")

        assert handler.is_bound is True
        assert callable(runner)

    def test_second_binding_rejected(self, add_state):
        """Test a runner can only be bound once."""
        handler = add_state("s1", lambda runner, request: runner.con("hi"))

        with pytest.raises(RunnerAlreadyBound):
            handler.run(lambda runner, request: runner.end("bye"))

    @pytest.mark.asyncio
    async def test_execute_without_runner(self, add_state, session, make_request):
        """Test executing an unbound state fails."""
        handler = add_state("s1")

        with pytest.raises(UnconfiguredState) as exc_info:
            await handler.execute(make_request(), session)

        assert exc_info.value.details["state_name"] == "s1"


class TestOutcomes:
    """Test continue and terminate outcomes."""

    @pytest.mark.asyncio
    async def test_continue_persists_state(self, add_state, session, make_request):
        """Test con records the state as previous and keeps the session."""
        handler = add_state("s1", lambda runner, request: runner.con("Pick one"))

        result = await handler.execute(make_request("x", session_id="A"), session)

        assert result.payload == "CON Pick one"
        assert result.is_final is False
        assert result.state_name == "s1"
        assert await session.get_previous_state_name("A") == "s1"

    @pytest.mark.asyncio
    async def test_async_runner(self, add_state, session, make_request):
        """Test coroutine runners are awaited."""

        async def runner(runner, request):
            return runner.con(f"You said {request.message}")

        handler = add_state("s1", runner)
        result = await handler.execute(make_request("hello"), session)

        assert result.payload == "CON You said hello"

    @pytest.mark.asyncio
    async def test_terminate_ends_session(self, add_state, make_request):
        """Test end invokes session.end exactly once and records nothing."""
        session = Mock(spec=Session)
        session.end = AsyncMock()
        session.set_previous_state_name = AsyncMock()
        handler = add_state("s1", lambda runner, request: runner.end("Goodbye"))

        result = await handler.execute(make_request(session_id="A"), session)

        assert result.payload == "END Goodbye"
        assert result.is_final is True
        session.end.assert_awaited_once_with("A")
        session.set_previous_state_name.assert_not_called()

    @pytest.mark.asyncio
    async def test_terminate_clears_in_memory_record(self, add_state, session, make_request):
        """Test the in-memory record is gone after end."""
        await session.start("A")
        await session.set("A", "amount", 50)
        handler = add_state("s1", lambda runner, request: runner.end("Done"))

        await handler.execute(make_request(session_id="A"), session)

        assert "A" not in session
        assert await session.get("A", "amount") is None


class TestRedirects:
    """Test go_to / go_to_start chaining."""

    @pytest.mark.asyncio
    async def test_redirect_persists_final_state(self, add_state, registry, session, make_request):
        """Test the last non-redirecting state is the one persisted."""
        add_state("s1", lambda runner, request: runner.go_to("s2"))
        add_state("s2", lambda runner, request: runner.go_to("s3"))
        add_state("s3", lambda runner, request: runner.con("Landed"))

        result = await registry.get("s1").handler.execute(make_request("9"), session)

        assert result.payload == "CON Landed"
        assert result.state_name == "s3"
        assert await session.get_previous_state_name("A") == "s3"

    @pytest.mark.asyncio
    async def test_redirect_passes_same_request(self, add_state, registry, session, make_request):
        """Test the target state sees the original request."""
        seen = []

        def target(runner, request):
            seen.append(request)
            return runner.con("ok")

        add_state("s1", lambda runner, request: runner.go_to("s2"))
        add_state("s2", target)
        request = make_request("42")

        await registry.get("s1").handler.execute(request, session)

        assert seen == [request]

    @pytest.mark.asyncio
    async def test_go_to_start(self, add_state, registry, session, make_request):
        """Test go_to_start targets the start state."""
        add_state("__START__", lambda runner, request: runner.con("Main menu"))
        add_state("s1", lambda runner, request: runner.go_to_start())

        result = await registry.get("s1").handler.execute(make_request(), session)

        assert result.payload == "CON Main menu"
        assert await session.get_previous_state_name("A") == "__START__"

    @pytest.mark.asyncio
    async def test_go_to_start_without_start_state(self, add_state, session, make_request):
        """Test go_to_start fails when no start state exists."""
        handler = add_state("s1", lambda runner, request: runner.go_to_start())

        with pytest.raises(NoStartState):
            await handler.execute(make_request(), session)

    @pytest.mark.asyncio
    async def test_go_to_unknown_state(self, add_state, session, make_request):
        """Test redirecting to an unregistered name fails."""
        handler = add_state("s1", lambda runner, request: runner.go_to("ghost"))

        with pytest.raises(StateNotFound):
            await handler.execute(make_request(), session)

    @pytest.mark.asyncio
    async def test_self_redirect_bounded(self, add_state, session, make_request):
        """Test a state redirecting to itself is stopped by the depth guard."""
        runner = Mock(side_effect=lambda runner, request: runner.go_to("loop"))
        handler = add_state("loop", runner)

        with pytest.raises(RedirectCycleDetected) as exc_info:
            await handler.execute(make_request(), session, max_redirect_depth=3)

        assert exc_info.value.details["max_depth"] == 3
        assert exc_info.value.details["chain"] == ["loop"] * 5
        assert runner.call_count == 4
        assert "A" not in session

    @pytest.mark.asyncio
    async def test_chain_at_limit_allowed(self, add_state, registry, session, make_request):
        """Test exactly max_redirect_depth hops still succeed."""
        add_state("a", lambda runner, request: runner.go_to("b"))
        add_state("b", lambda runner, request: runner.go_to("c"))
        add_state("c", lambda runner, request: runner.con("end of chain"))

        handler = registry.get("a").handler
        result = await handler.execute(make_request(), session, max_redirect_depth=2)

        assert result.state_name == "c"
        assert result.payload == "CON end of chain"


class TestTerminationContract:
    """Test runners that do not conclude properly."""

    @pytest.mark.asyncio
    async def test_runner_returning_none(self, add_state, session, make_request):
        """Test falling off the end of a runner is an error."""

        def runner(runner, request):
            runner.con("forgot to return")

        handler = add_state("s1", runner)

        with pytest.raises(MissingTerminator) as exc_info:
            await handler.execute(make_request(), session)

        assert exc_info.value.details["returned_type"] == "NoneType"
        assert "A" not in session

    @pytest.mark.asyncio
    async def test_runner_returning_plain_string(self, add_state, session, make_request):
        """Test a raw string is not a valid outcome."""
        handler = add_state("s1", lambda runner, request: "CON hi")

        with pytest.raises(MissingTerminator):
            await handler.execute(make_request(), session)


class TestStateRunner:
    """Test primitives handed to runners."""

    @pytest.mark.asyncio
    async def test_session_helpers_scoped_to_request(self, gateway, registry, session, make_request):
        """Test get/set use the current session id."""
        runner = StateRunner(gateway, registry, session, make_request(session_id="B"))

        await runner.set("pin", "1234")

        assert await runner.get("pin") == "1234"
        assert await session.get("B", "pin") == "1234"
        assert await session.get("A", "pin") is None
        assert await runner.get("missing", "default") == "default"

    def test_formatting_uses_gateway(self, gateway, registry, session, make_request):
        """Test con/end wrap the gateway's formatted response."""
        runner = StateRunner(gateway, registry, session, make_request())

        assert runner.con("a").payload == "CON a"
        assert runner.end("b").payload == "END b"
        assert runner.session_id == "A"

