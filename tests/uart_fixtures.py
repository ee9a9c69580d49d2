"""Test doubles for the UART transport and scanner boundaries."""

from concurrent.futures import Future
from types import SimpleNamespace
from typing import Any, Callable, List, Optional, Tuple

from bleuart.interfaces.ble.constants import (
    CLIENT_CONFIG_DESCRIPTOR_UUID,
    RX_CHAR_UUID,
    TX_CHAR_UUID,
    UART_SERVICE_UUID,
)


class FakeDescriptor:
    """Minimal stand-in for a Bleak GATT descriptor."""

    def __init__(self, uuid: str, handle: int = 0x0F) -> None:
        self.uuid = uuid
        self.handle = handle

    def __repr__(self) -> str:
        return f"FakeDescriptor({self.uuid})"


class FakeCharacteristic:
    """Minimal stand-in for a Bleak GATT characteristic."""

    def __init__(self, uuid: str, descriptors: Optional[List[FakeDescriptor]] = None) -> None:
        self.uuid = uuid
        self.descriptors = {d.uuid: d for d in descriptors or []}

    def get_descriptor(self, uuid: str) -> Optional[FakeDescriptor]:
        return self.descriptors.get(uuid)

    def __repr__(self) -> str:
        return f"FakeCharacteristic({self.uuid})"


class FakeService:
    """Minimal stand-in for a Bleak GATT service."""

    def __init__(self, uuid: str, characteristics: List[FakeCharacteristic]) -> None:
        self.uuid = uuid
        self.characteristics = {c.uuid: c for c in characteristics}

    def get_characteristic(self, uuid: str) -> Optional[FakeCharacteristic]:
        return self.characteristics.get(uuid)


def build_uart_service(*, with_tx: bool = True, with_rx: bool = True, with_cccd: bool = True) -> FakeService:
    """Build a UART service with any of its parts optionally left out."""
    characteristics = []
    if with_tx:
        characteristics.append(FakeCharacteristic(TX_CHAR_UUID))
    if with_rx:
        descriptors = [FakeDescriptor(CLIENT_CONFIG_DESCRIPTOR_UUID)] if with_cccd else []
        characteristics.append(FakeCharacteristic(RX_CHAR_UUID, descriptors))
    return FakeService(UART_SERVICE_UUID, characteristics)


class FakeTransport:
    """
    UART transport whose requests stay pending until the test completes them.

    Every request returns a fresh ``Future`` recorded in ``requests``; tests
    drive the pipeline with ``complete``/``fail``. Completion callbacks run on
    the test thread, so each step is observed deterministically.
    """

    def __init__(self, service: Optional[FakeService] = None) -> None:
        self.service = service if service is not None else build_uart_service()
        self.requests: List[Tuple[str, Tuple[Any, ...], Future]] = []
        self.writes: List[Tuple[Any, bytes]] = []
        self.disconnected_callbacks: List[Callable[[], None]] = []
        self.notification_callback: Optional[Callable[[Any, bytearray], None]] = None
        self.close_calls = 0
        self.on_event_thread = False

    def _request(self, name: str, *args: Any) -> Future:
        future: Future = Future()
        self.requests.append((name, args, future))
        return future

    def connect(self) -> Future:
        return self._request("connect")

    def discover_services(self) -> Future:
        return self._request("discover_services")

    def get_service(self, service_uuid: str) -> Optional[FakeService]:
        if self.service is not None and self.service.uuid == service_uuid:
            return self.service
        return None

    def write_descriptor(self, descriptor: Any, value: bytes) -> Future:
        return self._request("write_descriptor", descriptor, value)

    def set_notification(self, characteristic: Any, enabled: bool, callback=None) -> Future:
        self.notification_callback = callback
        return self._request("set_notification", characteristic, enabled)

    def write_characteristic(self, characteristic: Any, data: bytes) -> Future:
        self.writes.append((characteristic, data))
        future: Future = Future()
        future.set_result(None)
        return future

    def disconnect(self) -> Future:
        return self._request("disconnect")

    def add_disconnected_callback(self, callback: Callable[[], None]) -> None:
        self.disconnected_callbacks.append(callback)

    def is_event_thread(self) -> bool:
        return self.on_event_thread

    def close(self) -> None:
        self.close_calls += 1

    # Helpers for tests

    @property
    def request_names(self) -> List[str]:
        return [name for name, _args, _future in self.requests]

    def pending(self, name: str) -> Future:
        for request_name, _args, future in reversed(self.requests):
            if request_name == name:
                return future
        raise AssertionError(f"No {name} request issued; saw {self.request_names}")

    def complete(self, name: str, result: Any = None) -> None:
        self.pending(name).set_result(result)

    def fail(self, name: str, exc: BaseException) -> None:
        self.pending(name).set_exception(exc)

    def drive_to_ready(self) -> None:
        """Complete every pipeline stage in order."""
        self.complete("connect", True)
        self.complete("discover_services", self.service)
        self.complete("write_descriptor")
        self.complete("set_notification")

    def notify(self, data: bytes) -> None:
        """Deliver an inbound notification as Bleak would."""
        assert self.notification_callback is not None, "notifications not enabled"
        self.notification_callback(self.service.get_characteristic(RX_CHAR_UUID), bytearray(data))

    def drop_link(self) -> None:
        """Simulate the transport reporting a disconnect."""
        for callback in list(self.disconnected_callbacks):
            callback()


class FakeScanner:
    """UART scanner that reports advertisements when the test says so."""

    def __init__(self, start_exception: Optional[BaseException] = None) -> None:
        self.start_exception = start_exception
        self.started_with: Optional[str] = None
        self.on_match: Optional[Callable[[Any], None]] = None
        self.start_future: Future = Future()
        self.stop_calls = 0
        self.close_calls = 0

    def start_scan(self, service_uuid: str, on_match: Callable[[Any], None]) -> Future:
        self.started_with = service_uuid
        self.on_match = on_match
        if self.start_exception is not None:
            self.start_future.set_exception(self.start_exception)
        else:
            self.start_future.set_result(None)
        return self.start_future

    def stop_scan(self) -> Future:
        self.stop_calls += 1
        future: Future = Future()
        future.set_result(None)
        return future

    def close(self) -> None:
        self.close_calls += 1

    def advertise(self, address: str, name: str = "UART") -> None:
        assert self.on_match is not None, "scan not started"
        self.on_match(SimpleNamespace(address=address, name=name))


class RecordingObserver:
    """UART observer recording every event it receives."""

    def __init__(self, on_event: Optional[Callable[[str], None]] = None) -> None:
        self.events: List[str] = []
        self._on_event = on_event

    def _record(self, event: str) -> None:
        self.events.append(event)
        if self._on_event is not None:
            self._on_event(event)

    def connected(self) -> None:
        self._record("connected")

    def disconnected(self) -> None:
        self._record("disconnected")

    def available(self) -> None:
        self._record("available")

    def count(self, event: str) -> int:
        return self.events.count(event)


class RaisingObserver(RecordingObserver):
    """Observer that records then raises on every event."""

    def _record(self, event: str) -> None:
        super()._record(event)
        raise RuntimeError(f"observer failure on {event}")

