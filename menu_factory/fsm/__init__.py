"""Finite State Machine (FSM) module for USSD menus.

This module provides the menu definition surface, transition resolution
and state execution.
"""

from menu_factory.fsm.core import Menu, StateRegistry
from menu_factory.fsm.handlers import StateHandler, StateRunner
from menu_factory.fsm.models import State, StateName, TransitionTarget, state_name_of
from menu_factory.fsm.routing import TransitionResolver

__all__ = [
    "Menu",
    "StateRegistry",
    "State",
    "StateName",
    "TransitionTarget",
    "StateHandler",
    "StateRunner",
    "TransitionResolver",
    "state_name_of",
]
