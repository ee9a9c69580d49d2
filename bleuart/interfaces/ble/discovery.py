"""Discovery of the first nearby device advertising the UART service."""

from concurrent.futures import Future
from threading import RLock, Thread
from typing import Any, Callable, Optional

from bleak import BLEDevice

from bleuart.interfaces.ble.client import BLEClient, UARTScanner
from bleuart.interfaces.ble.constants import ERROR_SCAN_FAILED, UART_SERVICE_UUID, logger
from bleuart.interfaces.ble.errors import BLEErrorHandler, ScanError

__all__ = ["DiscoveryRequest", "find_first"]


class DiscoveryRequest:
    """
    A single scan-for-first-match.

    The request owns its scanner from ``start`` until the scan is stopped. The
    first matching advertisement stops the scan and resolves ``future``;
    anything reported afterwards is ignored. Cancelling ``future`` stops the
    scan as well.
    """

    def __init__(
        self,
        service_uuid: str,
        scanner: UARTScanner,
        uart_factory: Callable[[BLEDevice], Any],
    ):
        self.service_uuid = service_uuid
        self.future: Future = Future()
        self._scanner = scanner
        self._uart_factory = uart_factory
        self._lock = RLock()
        self._stopped = False
        self.error_handler = BLEErrorHandler()

    def start(self) -> Future:
        """Start scanning and return the future that resolves with the first matching UART."""
        self.future.add_done_callback(self._on_future_done)
        try:
            started = self._scanner.start_scan(self.service_uuid, self._on_match)
        except Exception as exc:
            self._on_scan_failed(exc)
            return self.future
        started.add_done_callback(self._on_scan_started)
        return self.future

    def _on_scan_started(self, started: Future) -> None:
        if started.cancelled():
            self._on_scan_failed(None)
            return
        exc = started.exception()
        if exc is not None:
            self._on_scan_failed(exc)

    def _on_scan_failed(self, exc: Optional[BaseException]) -> None:
        error = ScanError(
            ERROR_SCAN_FAILED.format(self.service_uuid, self.error_handler.describe(exc))
        )
        error.__cause__ = exc
        logger.warning("%s", error)
        with self._lock:
            if self.future.done():
                return
            self.future.set_exception(error)

    def _on_match(self, device: BLEDevice) -> None:
        with self._lock:
            if self.future.done():
                return
            logger.info(
                "Found UART device %s (%s)",
                getattr(device, "address", device),
                getattr(device, "name", None) or "unnamed",
            )
            self._stop()
            try:
                uart = self._uart_factory(device)
            except Exception as exc:
                logger.warning("Failed to create UART for %s: %s", device, exc)
                self.future.set_exception(exc)
                return
            self.future.set_result(uart)

    def _on_future_done(self, future: Future) -> None:
        # Resolution stops the scan in _on_match; cancellation and failure stop it here.
        if future.cancelled():
            logger.debug("Discovery for %s cancelled", self.service_uuid)
        self._stop()

    def _stop(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        try:
            stopped = self._scanner.stop_scan()
        except Exception as exc:
            logger.debug("Failed to stop scan: %s", exc)
            self._release_scanner()
            return
        stopped.add_done_callback(lambda _done: self._release_scanner())

    def _release_scanner(self) -> None:
        # The stop completion runs on the scanner's own loop thread, which cannot join itself.
        Thread(
            target=self.error_handler.safe_cleanup,
            args=(self._scanner.close, "scanner close"),
            name="BLEScannerClose",
            daemon=True,
        ).start()


def find_first(
    service_uuid: str = UART_SERVICE_UUID,
    *,
    scanner_factory: Optional[Callable[[], UARTScanner]] = None,
    uart_factory: Optional[Callable[[BLEDevice], Any]] = None,
    **client_kwargs,
) -> Future:
    """
    Scan for the first device advertising `service_uuid`.

    There is no timeout: bound the wait with ``future.result(timeout)`` and call
    ``future.cancel()`` to stop scanning.

    Parameters:
        service_uuid (str): Service the advertisement must carry.
        scanner_factory (Optional[Callable[[], UARTScanner]]): Builds the scanner; defaults to a discovery-only BLEClient.
        uart_factory (Optional[Callable[[BLEDevice], UART]]): Builds the session for the matched device; defaults to `UART`.
        **client_kwargs: Forwarded to the Bleak client of the default UART factory.

    Returns:
        Future: Resolves with a new, not yet connected UART; fails with ScanError if the scan cannot start.
    """
    if scanner_factory is None:
        scanner_factory = lambda: BLEClient(log_if_no_address=False)  # noqa: E731
    if uart_factory is None:
        from bleuart.interfaces.ble.uart import UART

        uart_factory = lambda device: UART(device, **client_kwargs)  # noqa: E731

    request = DiscoveryRequest(service_uuid, scanner_factory(), uart_factory)
    return request.start()
