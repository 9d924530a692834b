"""
app/bridge/states.py

Purpose: Signing ceremony states

- IDLE -> AWAITING_BIOMETRIC -> SIGNED | FAILED | CANCELLED
- Terminal states are reported to the caller exactly once
- Transition validation
"""

from enum import Enum
from typing import Dict, FrozenSet


class SigningState(str, Enum):
    """
    Lifecycle of a single signChallenge call.
    """

    IDLE = "IDLE"
    AWAITING_BIOMETRIC = "AWAITING_BIOMETRIC"

    # Terminal
    SIGNED = "SIGNED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


TERMINAL_STATES: FrozenSet[SigningState] = frozenset({
    SigningState.SIGNED,
    SigningState.FAILED,
    SigningState.CANCELLED,
})


ALLOWED_TRANSITIONS: Dict[SigningState, FrozenSet[SigningState]] = {
    SigningState.IDLE: frozenset({SigningState.AWAITING_BIOMETRIC, SigningState.FAILED}),
    SigningState.AWAITING_BIOMETRIC: TERMINAL_STATES,
    SigningState.SIGNED: frozenset(),
    SigningState.FAILED: frozenset(),
    SigningState.CANCELLED: frozenset(),
}


class InvalidTransitionError(Exception):
    pass


def is_terminal(state: SigningState) -> bool:
    return state in TERMINAL_STATES


def validate_transition(current: SigningState, target: SigningState) -> bool:
    """
    Checks whether moving from current to target is allowed.

    Returns:
        True if allowed
    """
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class SigningSession:
    """
    Tracks one ceremony and guards against double reporting.
    """

    def __init__(self, alias: str):
        self.alias = alias
        self.state = SigningState.IDLE
        self.history = [SigningState.IDLE]

    def transition(self, target: SigningState):
        if not validate_transition(self.state, target):
            raise InvalidTransitionError(f"{self.state.value} -> {target.value} not allowed for {self.alias}")
        self.state = target
        self.history.append(target)

    @property
    def finished(self) -> bool:
        return is_terminal(self.state)
