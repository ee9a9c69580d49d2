"""Tests for UART device discovery."""

import time
from concurrent.futures import Future

import pytest

from uart_fixtures import FakeScanner, FakeTransport

from bleuart.interfaces.ble.constants import UART_SERVICE_UUID
from bleuart.interfaces.ble.discovery import DiscoveryRequest, find_first
from bleuart.interfaces.ble.errors import ScanError
from bleuart.interfaces.ble.state import UARTState
from bleuart.interfaces.ble.uart import UART


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def _fake_uart_factory(created):
    def factory(device):
        session = UART(device, transport=FakeTransport())
        created.append(session)
        return session

    return factory


def test_scan_filters_on_uart_service(scanner):
    find_first(scanner_factory=lambda: scanner, uart_factory=_fake_uart_factory([]))

    assert scanner.started_with == UART_SERVICE_UUID


def test_first_match_resolves_with_new_uart(scanner):
    created = []
    future = find_first(scanner_factory=lambda: scanner, uart_factory=_fake_uart_factory(created))
    assert not future.done()

    scanner.advertise("11:22:33:44:55:66")

    session = future.result(timeout=0)
    assert created == [session]
    assert session.address == "11:22:33:44:55:66"
    assert session.state == UARTState.IDLE


def test_first_match_stops_scan_once_and_ignores_later_matches(scanner):
    created = []
    future = find_first(scanner_factory=lambda: scanner, uart_factory=_fake_uart_factory(created))

    scanner.advertise("11:22:33:44:55:66")
    scanner.advertise("77:88:99:AA:BB:CC")

    assert future.result(timeout=0).address == "11:22:33:44:55:66"
    assert len(created) == 1
    assert scanner.stop_calls == 1
    assert _wait_for(lambda: scanner.close_calls == 1)


def test_custom_service_uuid_is_forwarded(scanner):
    custom = "0000fe59-0000-1000-8000-00805f9b34fb"
    find_first(custom, scanner_factory=lambda: scanner, uart_factory=_fake_uart_factory([]))

    assert scanner.started_with == custom


def test_scan_start_failure_rejects_with_scan_error():
    cause = RuntimeError("bluetooth adapter off")
    scanner = FakeScanner(start_exception=cause)

    future = find_first(scanner_factory=lambda: scanner, uart_factory=_fake_uart_factory([]))

    with pytest.raises(ScanError) as excinfo:
        future.result(timeout=0)
    assert excinfo.value.__cause__ is cause
    assert "bluetooth adapter off" in str(excinfo.value)


def test_scan_start_raising_synchronously_rejects_with_scan_error(scanner, monkeypatch):
    def _raise(_service_uuid, _on_match):
        raise RuntimeError("no adapter")

    monkeypatch.setattr(scanner, "start_scan", _raise)

    future = find_first(scanner_factory=lambda: scanner, uart_factory=_fake_uart_factory([]))

    with pytest.raises(ScanError):
        future.result(timeout=0)


def test_cancel_stops_scan(scanner):
    created = []
    future = find_first(scanner_factory=lambda: scanner, uart_factory=_fake_uart_factory(created))

    assert future.cancel()
    scanner.advertise("11:22:33:44:55:66")

    assert scanner.stop_calls == 1
    assert created == []
    assert _wait_for(lambda: scanner.close_calls == 1)


def test_uart_factory_failure_rejects_future(scanner):
    def factory(_device):
        raise ValueError("bad device")

    future = find_first(scanner_factory=lambda: scanner, uart_factory=factory)
    scanner.advertise("11:22:33:44:55:66")

    with pytest.raises(ValueError):
        future.result(timeout=0)
    assert scanner.stop_calls == 1


def test_default_uart_factory_builds_session(scanner, monkeypatch):
    built = []

    class _RecordingClient(FakeTransport):
        def __init__(self, address, **kwargs):
            super().__init__()
            built.append((address, kwargs))

    monkeypatch.setattr("bleuart.interfaces.ble.uart.BLEClient", _RecordingClient)

    future = find_first(scanner_factory=lambda: scanner, timeout=7.5)
    scanner.advertise("11:22:33:44:55:66")

    session = future.result(timeout=0)
    assert isinstance(session, UART)
    assert len(built) == 1
    device, kwargs = built[0]
    assert device.address == "11:22:33:44:55:66"
    assert kwargs == {"timeout": 7.5}
    assert session.address == "11:22:33:44:55:66"


def test_uart_find_first_delegates(scanner):
    future = UART.find_first(scanner_factory=lambda: scanner, uart_factory=_fake_uart_factory([]))

    assert isinstance(future, Future)
    assert scanner.started_with == UART_SERVICE_UUID


def test_discovery_request_exposes_future(scanner):
    request = DiscoveryRequest(UART_SERVICE_UUID, scanner, _fake_uart_factory([]))

    assert request.start() is request.future
