"""Operator lifecycle state machine.

STARTING -> ACTIVE once registered and listening, ACTIVE -> PAUSED on
shutdown, and any state -> ERROR when startup or registration fails.
"""

from __future__ import annotations

from enum import Enum

import bittensor as bt


class OperatorState(str, Enum):
    STARTING = "STARTING"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    ERROR = "ERROR"


_ALLOWED: dict[OperatorState, frozenset[OperatorState]] = {
    OperatorState.STARTING: frozenset({OperatorState.ACTIVE, OperatorState.ERROR}),
    OperatorState.ACTIVE: frozenset({OperatorState.PAUSED, OperatorState.ERROR}),
    OperatorState.PAUSED: frozenset({OperatorState.ERROR}),
    OperatorState.ERROR: frozenset({OperatorState.ERROR}),
}


class InvalidTransitionError(Exception):
    def __init__(self, current: OperatorState, target: OperatorState):
        super().__init__(f"invalid operator transition {current.value} -> {target.value}")
        self.current = current
        self.target = target


class OperatorLifecycle:
    """Tracks the current state and rejects transitions not in _ALLOWED."""

    def __init__(self) -> None:
        self._state = OperatorState.STARTING

    @property
    def state(self) -> OperatorState:
        return self._state

    def can_transition(self, target: OperatorState) -> bool:
        return target in _ALLOWED[self._state]

    def transition(self, target: OperatorState) -> None:
        if not self.can_transition(target):
            raise InvalidTransitionError(self._state, target)
        previous = self._state
        self._state = target
        bt.logging.info({"operator_state": {"from": previous.value, "to": target.value}})

    def activate(self) -> None:
        self.transition(OperatorState.ACTIVE)

    def pause(self) -> None:
        self.transition(OperatorState.PAUSED)

    def fail(self) -> None:
        self.transition(OperatorState.ERROR)


__all__ = ["InvalidTransitionError", "OperatorLifecycle", "OperatorState"]
