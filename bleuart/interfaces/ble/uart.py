"""UART session: byte-stream facade over a Nordic UART BLE device."""

from concurrent.futures import Future
from threading import RLock
from typing import Any, Optional, Union

from bleak import BLEDevice
from pubsub import pub

from bleuart.interfaces.ble.buffer import ReceiveBuffer
from bleuart.interfaces.ble.client import BLEClient, UARTTransport
from bleuart.interfaces.ble.connection import ConnectionOrchestrator
from bleuart.interfaces.ble.constants import (
    TOPIC_AVAILABLE,
    TOPIC_CONNECTED,
    TOPIC_DISCONNECTED,
    UART_SERVICE_UUID,
    BLEConfig,
    logger,
)
from bleuart.interfaces.ble.errors import BLEErrorHandler, UARTError
from bleuart.interfaces.ble.observers import ObserverRegistry, UARTCallback, UARTEvent
from bleuart.interfaces.ble.state import UARTState, UARTStateManager

__all__ = ["UART"]

_EVENT_TOPICS = {
    UARTEvent.CONNECTED: TOPIC_CONNECTED,
    UARTEvent.DISCONNECTED: TOPIC_DISCONNECTED,
    UARTEvent.AVAILABLE: TOPIC_AVAILABLE,
}


class UART:
    """
    Byte-stream session with a device exposing the Nordic UART service.

    Received notifications accumulate in an internal buffer that the ``read*``
    methods drain; ``write`` sends straight to the device's TX characteristic.
    Lifecycle and data events are delivered to registered ``UARTCallback``
    observers and published on the pypubsub topics
    ``bleuart.connection.established``, ``bleuart.connection.lost`` and
    ``bleuart.data.available`` with ``uart=<this session>``.

    Usage:
        uart = UART.find_first().result()
        uart.register(my_callback)
        uart.connect().result()
        uart.write("hello")

    A session connects once; build a new one to connect again.
    """

    def __init__(
        self,
        device: Union[BLEDevice, str],
        *,
        transport: Optional[UARTTransport] = None,
        **client_kwargs,
    ) -> None:
        """
        Parameters:
            device (BLEDevice | str): Remote device handle or address.
            transport (Optional[UARTTransport]): Transport to use; a BLEClient bound to `device` is created when omitted.
            **client_kwargs: Forwarded to the Bleak client when the transport is created here.
        """
        self._device = device
        self._lock = RLock()
        self._state_manager = UARTStateManager(self._lock)
        self._receive_buffer = ReceiveBuffer(self._lock)
        self._observers = ObserverRegistry(self._lock)
        self._write_endpoint: Any = None
        self._notify_endpoint: Any = None
        self._closed = False
        self.error_handler = BLEErrorHandler()
        self.transport: UARTTransport = (
            transport if transport is not None else BLEClient(device, **client_kwargs)
        )
        self._orchestrator = ConnectionOrchestrator(
            self,
            self.transport,
            self._state_manager,
            self._receive_buffer,
            self._lock,
        )

    def __repr__(self) -> str:
        return f"UART(address={self.address!r}, state={self.state.value!r})"

    @staticmethod
    def find_first(service_uuid: str = UART_SERVICE_UUID, **kwargs) -> Future:
        """Scan for the first device advertising `service_uuid`; see `discovery.find_first`."""
        from bleuart.interfaces.ble.discovery import find_first

        return find_first(service_uuid, **kwargs)

    # Properties

    @property
    def device(self) -> Union[BLEDevice, str]:
        return self._device

    @property
    def address(self) -> str:
        return getattr(self._device, "address", self._device)

    @property
    def state(self) -> UARTState:
        return self._state_manager.state

    @property
    def is_ready(self) -> bool:
        return self._state_manager.is_ready

    @property
    def is_connected(self) -> bool:
        """True between endpoint resolution and disconnect."""
        return self.state in (UARTState.SUBSCRIBING, UARTState.READY)

    @property
    def write_endpoint(self) -> Any:
        return self._write_endpoint

    @property
    def notify_endpoint(self) -> Any:
        return self._notify_endpoint

    # Lifecycle

    def connect(self) -> Future:
        """
        Start the connect pipeline and return without waiting for it.

        Returns:
            Future: Resolves with this UART once notifications are enabled; fails
            with PipelineStageError (or EndpointResolutionError) if a stage fails,
            or UARTError if this session was already connected once.
        """
        return self._orchestrator.start()

    def disconnect(self) -> Future:
        """
        Request transport-level disconnection.

        The buffer and observers are left untouched; the ``disconnected`` event
        is the confirmation that teardown happened.
        """
        logger.debug("Disconnect requested for %s", self.address)
        return self.transport.disconnect()

    def close(self) -> None:
        """
        Disconnect if still connected, then release the transport's event loop thread.

        Called from an observer, which runs on the transport's thread, the
        disconnect is issued without waiting and the transport is released
        once it completes.
        """
        if self._closed:
            return
        self._closed = True
        connected = self.state not in (UARTState.IDLE, UARTState.DISCONNECTED)
        if self.transport.is_event_thread():
            self._close_from_event_thread(connected)
            return
        if connected:
            self.error_handler.safe_cleanup(
                lambda: self.disconnect().result(BLEConfig.DISCONNECT_TIMEOUT_SECONDS),
                "UART disconnect",
            )
        self.error_handler.safe_cleanup(self.transport.close, "transport close")

    def _close_from_event_thread(self, connected: bool) -> None:
        if connected:
            try:
                pending = self.disconnect()
            except Exception as exc:
                logger.debug("Error during UART disconnect: %s", exc)
            else:
                pending.add_done_callback(
                    lambda _done: self.error_handler.safe_cleanup(
                        self.transport.close, "transport close"
                    )
                )
                return
        self.error_handler.safe_cleanup(self.transport.close, "transport close")

    def __enter__(self):
        return self

    def __exit__(self, _type, _value, _traceback):
        self.close()

    # Observers

    def register(self, callback: UARTCallback) -> None:
        """Register `callback` for connected, disconnected and available events."""
        self._observers.register(callback)

    def unregister(self, callback: UARTCallback) -> None:
        self._observers.unregister(callback)

    # Byte stream

    def available(self) -> int:
        """Return the number of received bytes waiting to be read."""
        return len(self._receive_buffer)

    def write(self, data: Union[bytes, bytearray, memoryview, str]) -> None:
        """
        Send `data` to the device's TX characteristic without waiting for completion.

        Strings are UTF-8 encoded first. Writes issued before the endpoints are
        resolved are dropped silently. Failures are logged, never raised.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        endpoint = self._write_endpoint
        if endpoint is None:
            logger.debug("Dropping %d byte write: UART endpoints not resolved", len(data))
            return
        payload = bytes(data)
        try:
            future = self.transport.write_characteristic(endpoint, payload)
        except Exception:
            logger.warning("Failed to issue UART write", exc_info=True)
            return
        future.add_done_callback(self._log_write_failure)

    @staticmethod
    def _log_write_failure(future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning("UART write failed: %s", exc)

    def read(self, count: int) -> bytes:
        """Remove and return up to `count` of the oldest received bytes; never blocks."""
        return self._receive_buffer.read(count)

    def read_all(self) -> bytes:
        """Drain and return everything received so far."""
        return self._receive_buffer.read_all()

    def read_string(self, length: int) -> str:
        """
        Read up to `length` bytes and decode them as UTF-8.

        A multi-byte character cut by `length` decodes to U+FFFD.
        """
        return self.read(length).decode("utf-8", errors="replace")

    def read_all_string(self) -> str:
        return self.read_all().decode("utf-8", errors="replace")

    # Internal hooks used by the orchestrator

    def _assign_endpoints(self, write_endpoint: Any, notify_endpoint: Any) -> None:
        with self._lock:
            if self._write_endpoint is not None or self._notify_endpoint is not None:
                raise UARTError("UART endpoints are already assigned")
            self._write_endpoint = write_endpoint
            self._notify_endpoint = notify_endpoint

    def _emit(self, event: UARTEvent) -> None:
        self._observers.notify(event)
        topic = _EVENT_TOPICS[event]
        self.error_handler.safe_execute(
            lambda: pub.sendMessage(topic, uart=self),
            error_msg=f"Error publishing {topic}",
        )
