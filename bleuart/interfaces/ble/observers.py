"""Observer registry and event fan-out for UART lifecycle events."""

from enum import Enum
from threading import RLock
from typing import List, Optional, Protocol, runtime_checkable

from bleuart.interfaces.ble.constants import logger
from bleuart.interfaces.ble.errors import BLEErrorHandler

__all__ = ["ObserverRegistry", "UARTCallback", "UARTEvent"]


class UARTEvent(Enum):
    """Events delivered to registered observers."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    AVAILABLE = "available"


@runtime_checkable
class UARTCallback(Protocol):
    """Handler for UART connected, disconnected and data-available events."""

    def connected(self) -> None: ...

    def disconnected(self) -> None: ...

    def available(self) -> None: ...


class ObserverRegistry:
    """
    Ordered set of observers with synchronous event delivery.

    ``notify`` delivers to a snapshot of the registry taken at notify time, so
    an observer registered or unregistered during a delivery only affects
    later deliveries. Callbacks run outside the lock so observers may call
    back into the session (e.g. ``read_all`` from ``available``).
    """

    def __init__(self, lock: Optional[RLock] = None):
        self._lock = lock if lock is not None else RLock()
        self._observers: List[Optional[UARTCallback]] = []
        self.error_handler = BLEErrorHandler()

    def register(self, observer: UARTCallback) -> None:
        """Add ``observer`` unless it is already registered."""
        with self._lock:
            if observer not in self._observers:
                self._observers.append(observer)

    def unregister(self, observer: UARTCallback) -> None:
        """Remove ``observer``; no-op when it was never registered."""
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def notify(self, event: UARTEvent) -> int:
        """
        Deliver ``event`` to every registered observer in registration order.

        An observer that raises is logged and does not stop delivery to the others.

        Returns:
            int: Number of observers the event was delivered to.
        """
        with self._lock:
            snapshot = list(self._observers)

        delivered = 0
        for observer in snapshot:
            if observer is None:
                continue
            handler = getattr(observer, event.value)
            self.error_handler.safe_execute(
                handler,
                error_msg=f"Error in UART {event.value} observer {observer!r}",
            )
            delivered += 1
        logger.debug("Delivered %s event to %d observer(s)", event.value, delivered)
        return delivered

    def __contains__(self, observer: object) -> bool:
        with self._lock:
            return observer in self._observers

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)
