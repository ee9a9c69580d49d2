"""UART session state management."""

from enum import Enum
from threading import RLock
from typing import Optional

from bleuart.interfaces.ble.constants import logger


class UARTState(Enum):
    """States of a UART session, in pipeline order."""

    IDLE = "idle"
    CONNECTING = "connecting"
    RESOLVING_ENDPOINTS = "resolving endpoints"
    SUBSCRIBING = "subscribing"
    READY = "ready"
    DISCONNECTED = "disconnected"


class UARTStateManager:
    """Thread-safe state holder for a single UART session.

    Forward transitions follow the pipeline order and are only valid one step
    at a time. ``DISCONNECTED`` is terminal and reachable from any state.
    """

    _PIPELINE_ORDER = (
        UARTState.IDLE,
        UARTState.CONNECTING,
        UARTState.RESOLVING_ENDPOINTS,
        UARTState.SUBSCRIBING,
        UARTState.READY,
    )

    def __init__(self, lock: Optional[RLock] = None):
        """Initialize state manager with idle state, optionally sharing ``lock`` with its owner."""
        self._state_lock = lock if lock is not None else RLock()
        self._state = UARTState.IDLE

    @property
    def lock(self) -> RLock:
        """Expose the reentrant lock controlling state transitions."""
        return self._state_lock

    @property
    def state(self) -> UARTState:
        """Get current session state."""
        with self._state_lock:
            return self._state

    @property
    def is_ready(self) -> bool:
        """Check if notifications are enabled and the session is usable."""
        return self.state == UARTState.READY

    @property
    def is_disconnected(self) -> bool:
        """Check if the transport reported a disconnect."""
        return self.state == UARTState.DISCONNECTED

    @property
    def can_connect(self) -> bool:
        """Check if the connect pipeline may still be started."""
        return self.state == UARTState.IDLE

    def transition_to(self, new_state: UARTState) -> bool:
        """Thread-safe state transition with validation.

        Args:
        ----
            new_state: Target state to transition to

        Returns:
        -------
            True if transition was valid and applied, False otherwise

        """
        with self._state_lock:
            if not self._is_valid_transition(self._state, new_state):
                logger.warning(
                    "Invalid state transition: %s → %s",
                    self._state.value,
                    new_state.value,
                )
                return False
            old_state = self._state
            self._state = new_state
            logger.debug("State transition: %s → %s", old_state.value, new_state.value)
            return True

    def _is_valid_transition(self, from_state: UARTState, to_state: UARTState) -> bool:
        if from_state == UARTState.DISCONNECTED:
            return False
        if to_state == UARTState.DISCONNECTED:
            return True
        order = self._PIPELINE_ORDER
        return order.index(to_state) == order.index(from_state) + 1
