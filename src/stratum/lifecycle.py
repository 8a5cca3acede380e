"""Lifecycle state machine shared by a context and the objects it hands out.

A context moves ``UNREFRESHED -> ACTIVE -> CLOSED`` and never back. The gate
serialises the two transitions with a re-entrant lock; readers only inspect
the current state. Whatever a transition publishes (the built bundle, the
startup timestamp) is assigned inside the locked section before the state
changes, so a reader that observes ``ACTIVE`` also observes those values.
"""

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Iterator

from stratum.errors import InvalidStateError

__all__ = ["LifecycleState", "LifecycleGate"]

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    UNREFRESHED = "unrefreshed"
    ACTIVE = "active"
    CLOSED = "closed"


_ALLOWED_TRANSITIONS = {
    LifecycleState.UNREFRESHED: {LifecycleState.ACTIVE, LifecycleState.CLOSED},
    LifecycleState.ACTIVE: {LifecycleState.CLOSED},
    LifecycleState.CLOSED: set(),
}


class LifecycleGate:
    """Tracks the lifecycle state of one context and guards operations by it."""

    def __init__(self, owner: str):
        self._owner = owner
        self._state = LifecycleState.UNREFRESHED
        self._lock = threading.RLock()

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is LifecycleState.ACTIVE

    @property
    def is_closed(self) -> bool:
        return self._state is LifecycleState.CLOSED

    def require_active(self, operation: str) -> None:
        """Raise InvalidStateError unless the owner is active."""
        state = self._state
        if state is LifecycleState.UNREFRESHED:
            raise InvalidStateError(
                f"{self._owner} has not been refreshed yet - call refresh() before {operation}"
            )
        if state is LifecycleState.CLOSED:
            raise InvalidStateError(f"{self._owner} has been closed - cannot {operation}")

    @contextmanager
    def transition(self, expected: LifecycleState, target: LifecycleState) -> Iterator[None]:
        """Hold the transition lock while the caller prepares ``target``.

        The state only changes if the body completes without raising.

        Raises:
            InvalidStateError: If the current state is not ``expected``.
        """
        if target not in _ALLOWED_TRANSITIONS[expected]:
            raise ValueError(f"Illegal lifecycle transition {expected.name} -> {target.name}")
        with self._lock:
            if self._state is not expected:
                raise InvalidStateError(
                    f"{self._owner} is {self._state.value}, expected {expected.value} "
                    f"to move to {target.value}"
                )
            yield
            self._state = target
            logger.info(f"{self._owner} is now {target.value}")

    @contextmanager
    def exclusive(self) -> Iterator[LifecycleState]:
        """Hold the transition lock and expose the current state."""
        with self._lock:
            yield self._state
