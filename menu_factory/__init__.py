"""Session-based USSD menu engine."""

from menu_factory.fsm import Menu, State, StateRunner
from menu_factory.integrations import AfricasTalking, Gateway, Hubtel, Nsano, Request
from menu_factory.services import InMemorySession, Session
from menu_factory.utils.result import Continuing, StateResult, Terminating

__version__ = "1.0.0"

__all__ = [
    "Menu",
    "State",
    "StateRunner",
    "Gateway",
    "Request",
    "AfricasTalking",
    "Hubtel",
    "Nsano",
    "Session",
    "InMemorySession",
    "Continuing",
    "Terminating",
    "StateResult",
]
