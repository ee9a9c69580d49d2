"""Tests for the UART observer registry."""

import logging

from uart_fixtures import RaisingObserver, RecordingObserver

from bleuart.interfaces.ble.observers import ObserverRegistry, UARTCallback, UARTEvent


def test_register_is_idempotent():
    registry = ObserverRegistry()
    observer = RecordingObserver()

    registry.register(observer)
    registry.register(observer)

    assert len(registry) == 1
    assert registry.notify(UARTEvent.CONNECTED) == 1
    assert observer.events == ["connected"]


def test_unregister_unknown_observer_is_noop():
    registry = ObserverRegistry()
    registry.unregister(RecordingObserver())
    assert len(registry) == 0


def test_unregister_stops_delivery():
    registry = ObserverRegistry()
    observer = RecordingObserver()
    registry.register(observer)
    registry.unregister(observer)

    registry.notify(UARTEvent.AVAILABLE)

    assert observer.events == []
    assert observer not in registry


def test_notify_delivers_in_registration_order():
    registry = ObserverRegistry()
    order = []
    first = RecordingObserver(on_event=lambda event: order.append(("first", event)))
    second = RecordingObserver(on_event=lambda event: order.append(("second", event)))
    registry.register(first)
    registry.register(second)

    registry.notify(UARTEvent.DISCONNECTED)

    assert order == [("first", "disconnected"), ("second", "disconnected")]


def test_notify_skips_empty_slots():
    registry = ObserverRegistry()
    observer = RecordingObserver()
    registry.register(None)
    registry.register(observer)

    assert registry.notify(UARTEvent.AVAILABLE) == 1
    assert observer.events == ["available"]


def test_notify_uses_snapshot_taken_at_notify_time():
    """An observer registered during a delivery only sees later deliveries."""
    registry = ObserverRegistry()
    late = RecordingObserver()
    early = RecordingObserver(on_event=lambda _event: registry.register(late))
    registry.register(early)

    registry.notify(UARTEvent.AVAILABLE)
    assert late.events == []

    registry.notify(UARTEvent.AVAILABLE)
    assert late.events == ["available"]


def test_raising_observer_does_not_block_others(caplog):
    registry = ObserverRegistry()
    bad = RaisingObserver()
    good = RecordingObserver()
    registry.register(bad)
    registry.register(good)

    with caplog.at_level(logging.ERROR, logger="bleuart.ble"):
        delivered = registry.notify(UARTEvent.CONNECTED)

    assert delivered == 2
    assert bad.events == ["connected"]
    assert good.events == ["connected"]
    assert "Error in UART connected observer" in caplog.text


def test_recording_observer_satisfies_callback_protocol():
    assert isinstance(RecordingObserver(), UARTCallback)
    assert not isinstance(object(), UARTCallback)
