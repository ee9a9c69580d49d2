# ruff: noqa: F401
"""The public API for the bleuart BLE UART interface."""

from bleak import BLEDevice

from .interfaces.ble.client import BLEClient, UARTScanner, UARTTransport
from .interfaces.ble.constants import (
    CLIENT_CONFIG_DESCRIPTOR_UUID,
    ENABLE_NOTIFICATION_VALUE,
    RX_CHAR_UUID,
    TOPIC_AVAILABLE,
    TOPIC_CONNECTED,
    TOPIC_DISCONNECTED,
    TX_CHAR_UUID,
    UART_SERVICE_UUID,
    BLEConfig,
)
from .interfaces.ble.discovery import find_first
from .interfaces.ble.errors import (
    EndpointResolutionError,
    PipelineStageError,
    ScanError,
    UARTError,
)
from .interfaces.ble.observers import UARTCallback, UARTEvent
from .interfaces.ble.state import UARTState
from .interfaces.ble.uart import UART

__all__ = [
    "UART",
    "UARTCallback",
    "UARTEvent",
    "UARTState",
    "UARTError",
    "PipelineStageError",
    "EndpointResolutionError",
    "ScanError",
    "BLEClient",
    "BLEConfig",
    "BLEDevice",
    "UARTScanner",
    "UARTTransport",
    "find_first",
    "UART_SERVICE_UUID",
    "TX_CHAR_UUID",
    "RX_CHAR_UUID",
    "CLIENT_CONFIG_DESCRIPTOR_UUID",
    "ENABLE_NOTIFICATION_VALUE",
    "TOPIC_CONNECTED",
    "TOPIC_DISCONNECTED",
    "TOPIC_AVAILABLE",
]
