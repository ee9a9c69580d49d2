"""
Shared pytest fixtures for UART tests.
"""

import pytest  # type: ignore[import-untyped]  # pylint: disable=E0401

from uart_fixtures import FakeScanner, FakeTransport, RecordingObserver

from bleuart.interfaces.ble.uart import UART


@pytest.fixture
def transport():
    """A FakeTransport exposing a complete UART service."""
    return FakeTransport()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def uart(transport, observer):  # pylint: disable=redefined-outer-name
    """
    A UART session bound to the fake transport with a recording observer registered.

    Returns:
        UART: Session in the IDLE state.
    """
    session = UART("AA:BB:CC:DD:EE:FF", transport=transport)
    session.register(observer)
    return session


@pytest.fixture
def ready_uart(uart, transport):  # pylint: disable=redefined-outer-name
    """A UART session driven all the way to READY."""
    pipeline = uart.connect()
    transport.drive_to_ready()
    assert pipeline.result(timeout=0) is uart
    return uart


@pytest.fixture
def scanner():
    return FakeScanner()
