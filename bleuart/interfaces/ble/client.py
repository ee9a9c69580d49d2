"""BLE client management and async operations."""

import asyncio
from concurrent.futures import Future
from threading import RLock, Thread, current_thread
from typing import Any, Callable, List, Optional, Protocol, Type

from bleak import BleakClient as BleakRootClient
from bleak import BleakScanner, BLEDevice

from bleuart.interfaces.ble.constants import (
    BLECLIENT_ERROR_NOT_INITIALIZED,
    CLIENT_CONFIG_DESCRIPTOR_UUID,
    BLEConfig,
    logger,
)
from bleuart.interfaces.ble.errors import BLEErrorHandler

__all__ = ["BLEClient", "UARTScanner", "UARTTransport"]


class UARTTransport(Protocol):
    """Transport operations consumed by the connect pipeline and the UART facade.

    Request methods return a ``concurrent.futures.Future`` completed from the
    transport's own thread.
    """

    def connect(self) -> Future: ...

    def discover_services(self) -> Future: ...

    def get_service(self, service_uuid: str) -> Any: ...

    def write_descriptor(self, descriptor: Any, value: bytes) -> Future: ...

    def set_notification(
        self,
        characteristic: Any,
        enabled: bool,
        callback: Optional[Callable[[Any, bytearray], None]] = None,
    ) -> Future: ...

    def write_characteristic(self, characteristic: Any, data: bytes) -> Future: ...

    def disconnect(self) -> Future: ...

    def add_disconnected_callback(self, callback: Callable[[], None]) -> None: ...

    def is_event_thread(self) -> bool: ...

    def close(self) -> None: ...


class UARTScanner(Protocol):
    """Advertisement scan operations consumed by the discovery finder."""

    def start_scan(
        self, service_uuid: str, on_match: Callable[[BLEDevice], None]
    ) -> Future: ...

    def stop_scan(self) -> Future: ...

    def close(self) -> None: ...


class BLEClient:
    """
    Client wrapper for a BLE device connection backed by Bleak.

    An internal asyncio event loop runs in a dedicated thread; every request is
    scheduled onto that loop and handed back to the caller as a
    ``concurrent.futures.Future``, so nothing here blocks the calling thread.
    Bleak notification, detection and disconnect callbacks also run on that
    thread.

    Created without an address, the client operates in discovery-only mode and
    only the scan methods are usable.
    """

    class BLEError(Exception):
        """An exception class for BLE errors in the client."""

    def __init__(self, address=None, *, log_if_no_address: bool = True, **kwargs) -> None:
        """
        Start the client's event loop thread and, when ``address`` is given, bind a Bleak client to it.

        Parameters:
            address (Optional[str | BLEDevice]): Device to attach a Bleak client to. If None, the instance operates in discovery-only mode.
            log_if_no_address (bool): If True and `address` is None, emit a debug message indicating discovery-only mode.
            **kwargs: Keyword arguments forwarded to the underlying Bleak client constructor.
        """
        self.error_handler = BLEErrorHandler()
        self.BLEError: Type[BLEClient.BLEError] = BLEClient.BLEError  # type: ignore[misc]

        self.bleak_client: Optional[BleakRootClient] = None
        self._disconnected_callbacks: List[Callable[[], None]] = []
        self._callback_lock = RLock()
        self._scanner: Optional[BleakScanner] = None
        self._scan_stop_future: Optional[Future] = None
        self._closed = False

        self._eventLoop = asyncio.new_event_loop()
        self._eventThread = Thread(
            target=self._run_event_loop, name="BLEClient", daemon=True
        )
        try:
            self._eventThread.start()
        except RuntimeError:
            self._eventLoop.close()
            raise

        if not address:
            if log_if_no_address:
                logger.debug("No address provided - only scan methods will work.")
            return

        self.bleak_client = BleakRootClient(
            address, disconnected_callback=self._on_bleak_disconnect, **kwargs
        )

    @property
    def address(self) -> Optional[str]:
        return getattr(self.bleak_client, "address", None)

    def _require_client(self, action: str) -> BleakRootClient:
        if self.bleak_client is None:
            raise self.BLEError(BLECLIENT_ERROR_NOT_INITIALIZED.format(action))
        return self.bleak_client

    # Transport operations

    def connect(self, **kwargs) -> Future:
        """Schedule a connection to the remote device; kwargs are forwarded to Bleak's `connect`."""
        return self.async_run(self._require_client("connect").connect(**kwargs))

    def discover_services(self) -> Future:
        """
        Schedule retrieval of the GATT service collection.

        Bleak performs service discovery as part of connecting, so the future
        resolves with the already-populated collection, or fails with a
        BleakError when discovery has not happened.
        """
        bleak_client = self._require_client("discover services")

        async def _services():
            return bleak_client.services

        return self.async_run(_services())

    def get_service(self, service_uuid: str):
        """Return the discovered GATT service with `service_uuid`, or None when absent."""
        return self._require_client("get service").services.get_service(service_uuid)

    def write_descriptor(self, descriptor, value: bytes) -> Future:
        """
        Schedule a write of `value` to a GATT descriptor.

        The client configuration descriptor is never written directly: BlueZ
        rejects such writes and CoreBluetooth only sets it through its notify
        call. Bleak's `start_notify` writes it, so a write to it completes
        immediately and `set_notification` performs the subscription.
        """
        bleak_client = self._require_client("write descriptor")
        if str(getattr(descriptor, "uuid", "")).lower() == CLIENT_CONFIG_DESCRIPTOR_UUID:
            logger.debug("Deferring client configuration write to start_notify")
            done: Future = Future()
            done.set_result(None)
            return done
        return self.async_run(
            bleak_client.write_gatt_descriptor(descriptor.handle, bytes(value))
        )

    def set_notification(self, characteristic, enabled: bool, callback=None) -> Future:
        """
        Schedule enabling or disabling notifications on `characteristic`.

        Parameters:
            characteristic: Bleak characteristic (or UUID) to subscribe to.
            enabled (bool): Start notifications when True, stop them when False.
            callback (Callable[[Any, bytearray], None]): Handler invoked as ``callback(sender, data)`` for each notification; required when enabling.
        """
        bleak_client = self._require_client("set notification")
        if enabled:
            if callback is None:
                raise self.BLEError("Cannot enable notifications without a callback")
            return self.async_run(bleak_client.start_notify(characteristic, callback))
        return self.async_run(bleak_client.stop_notify(characteristic))

    def write_characteristic(
        self, characteristic, data: bytes, *, response: Optional[bool] = None
    ) -> Future:
        """Schedule a write of `data` to `characteristic` and return without waiting for it."""
        if response is None:
            response = BLEConfig.WRITE_WITH_RESPONSE
        bleak_client = self._require_client("write")
        return self.async_run(
            bleak_client.write_gatt_char(characteristic, data, response=response)
        )

    def disconnect(self, **kwargs) -> Future:
        """Schedule a disconnect from the remote device."""
        return self.async_run(self._require_client("disconnect").disconnect(**kwargs))

    def is_connected(self) -> bool:
        """Return True when the underlying Bleak client reports an active connection."""
        bleak_client = self.bleak_client
        if bleak_client is None:
            return False
        return bool(
            self.error_handler.safe_execute(
                lambda: bleak_client.is_connected,
                default_return=False,
                error_msg="Unable to read bleak connection state",
            )
        )

    def add_disconnected_callback(self, callback: Callable[[], None]) -> None:
        """Register a zero-argument callable invoked whenever Bleak reports a disconnect."""
        with self._callback_lock:
            if callback not in self._disconnected_callbacks:
                self._disconnected_callbacks.append(callback)

    def _on_bleak_disconnect(self, bleak_client: BleakRootClient) -> None:
        logger.debug(
            "Bleak reported disconnect from %s",
            getattr(bleak_client, "address", "unknown"),
        )
        with self._callback_lock:
            callbacks = list(self._disconnected_callbacks)
        for callback in callbacks:
            self.error_handler.safe_execute(
                callback, error_msg="Error in disconnect callback"
            )

    # Scan operations

    def start_scan(self, service_uuid: str, on_match: Callable[[BLEDevice], None]) -> Future:
        """
        Schedule an advertisement scan filtered on `service_uuid`.

        `on_match(device)` runs on the event loop thread for every matching
        advertisement until `stop_scan` is called. The returned future completes
        once the scanner has started.
        """
        return self.async_run(self._start_scan(service_uuid, on_match))

    def stop_scan(self) -> Future:
        """Schedule the scan to stop. Repeated calls return the same future."""
        with self._callback_lock:
            if self._scan_stop_future is None:
                self._scan_stop_future = self.async_run(self._stop_scan())
            return self._scan_stop_future

    async def _start_scan(self, service_uuid: str, on_match) -> None:
        wanted = service_uuid.lower()

        def _detection_callback(device: BLEDevice, advertisement_data) -> None:
            uuids = [u.lower() for u in (getattr(advertisement_data, "service_uuids", None) or [])]
            if wanted not in uuids:
                return
            self.error_handler.safe_execute(
                lambda: on_match(device), error_msg="Error in scan match handler"
            )

        scanner = BleakScanner(
            detection_callback=_detection_callback, service_uuids=[service_uuid]
        )
        await scanner.start()
        self._scanner = scanner
        logger.debug("Scanning for devices advertising %s", service_uuid)
        with self._callback_lock:
            stop_requested = self._scan_stop_future is not None
        if stop_requested:
            await self._stop_scan()

    async def _stop_scan(self) -> None:
        scanner, self._scanner = self._scanner, None
        if scanner is not None:
            await scanner.stop()
            logger.debug("Scan stopped")

    # Event loop management

    def close(self):
        """
        Shut down the client's asyncio event loop and its background thread.

        Safe to call more than once; waits up to BLECLIENT_EVENT_THREAD_JOIN_TIMEOUT for the thread to exit.
        """
        if self._closed:
            return
        self._closed = True
        self.async_run(self._stop_event_loop())
        if self.is_event_thread():
            # The loop stops once this callback returns; a thread cannot join itself.
            return
        self._eventThread.join(timeout=BLEConfig.BLECLIENT_EVENT_THREAD_JOIN_TIMEOUT)
        if self._eventThread.is_alive():
            logger.warning(
                "BLE event thread did not exit within %.1fs",
                BLEConfig.BLECLIENT_EVENT_THREAD_JOIN_TIMEOUT,
            )

    def __enter__(self):
        return self

    def __exit__(self, _type, _value, _traceback):
        self.close()

    def is_event_thread(self) -> bool:
        """Return True when called from the client's event loop thread, where Bleak callbacks run."""
        return current_thread() is self._eventThread

    def async_run(self, coro) -> Future:
        """
        Schedule a coroutine on the client's internal asyncio event loop.

        Returns:
            concurrent.futures.Future: Future representing the scheduled coroutine's eventual result.
        """
        return asyncio.run_coroutine_threadsafe(coro, self._eventLoop)

    def _run_event_loop(self):
        self.error_handler.safe_execute(
            self._eventLoop.run_forever, error_msg="Error in event loop", reraise=False
        )
        self._eventLoop.close()

    async def _stop_event_loop(self):
        self._eventLoop.stop()
