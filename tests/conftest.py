"""Shared pytest fixtures and configuration for all test suites.

This module provides common fixtures that can be used across all test files:
- Gateway payload builders (Africa's Talking, Hubtel, Nsano)
- Normalized requests
- A fresh in-memory session store
- A ready-made two-state menu
"""

import pytest

from menu_factory.fsm.core import Menu
from menu_factory.integrations.africas_talking import AfricasTalking
from menu_factory.integrations.gateway import Request
from menu_factory.services.session import InMemorySession

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test (fast)")
    config.addinivalue_line("markers", "fsm: mark test as FSM-related test")
    config.addinivalue_line(
        "markers", "concurrency: mark test as exercising concurrent handle calls"
    )


# ============================================================================
# Gateway Payload Fixtures
# ============================================================================


@pytest.fixture
def at_payload():
    """Build an Africa's Talking callback payload."""

    def _build(text="", session_id="ATUid_123", phone_number="+254711000000"):
        return {
            "phoneNumber": phone_number,
            "sessionId": session_id,
            "serviceCode": "*384*123#",
            "text": text,
            "networkCode": "63902",
        }

    return _build


@pytest.fixture
def hubtel_payload():
    """Build a Hubtel USSD payload."""

    def _build(message="*714#", session_id="hub_456", type_="Initiation"):
        return {
            "Mobile": "233244000000",
            "SessionId": session_id,
            "ServiceCode": "714",
            "Type": type_,
            "Message": message,
            "Operator": "mtn",
            "Sequence": 1,
            "ClientState": "",
        }

    return _build


@pytest.fixture
def nsano_payload():
    """Build an Nsano USSD payload."""

    def _build(msg="", msisdn="233200000000"):
        return {"msisdn": msisdn, "msg": msg, "network": "MTN"}

    return _build


@pytest.fixture
def make_request():
    """Build a normalized Request."""

    def _build(message="", session_id="A"):
        return Request(
            phone_number="+254711000000",
            session_id=session_id,
            service_code="*384*123#",
            message=message,
            operator_id="63902",
        )

    return _build


# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def session():
    """Fresh in-memory session store."""
    return InMemorySession()


@pytest.fixture
def two_state_menu(session):
    """Menu with a start state routing every input to S1.

    S1 terminates with "bye" on input "1" and otherwise shows its menu again.
    """
    menu = Menu("test", gateway=AfricasTalking(), session=session)

    @menu.start_state(transitions={".*": "S1"})
    def start(runner, request):
        return runner.con("Welcome")

    @menu.state("S1")
    def s1(runner, request):
        if request.message == "1":
            return runner.end("bye")
        return runner.con("1. Exit")

    return menu
