"""
Authentication state tracking and the settle barrier.
"""

from auth.gate import AuthStateGate, GateOutcome, await_resolved_state
from auth.state import AuthState, AuthStateStore, get_auth_state_store

__all__ = [
    "AuthState",
    "AuthStateStore",
    "AuthStateGate",
    "GateOutcome",
    "await_resolved_state",
    "get_auth_state_store",
]
