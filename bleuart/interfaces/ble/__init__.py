"""BLE UART interface package."""

from bleuart.interfaces.ble.constants import (
    BLEConfig,
    CLIENT_CONFIG_DESCRIPTOR_UUID,
    ENABLE_NOTIFICATION_VALUE,
    RX_CHAR_UUID,
    TOPIC_AVAILABLE,
    TOPIC_CONNECTED,
    TOPIC_DISCONNECTED,
    TX_CHAR_UUID,
    UART_SERVICE_UUID,
    logger,
)
from bleuart.interfaces.ble.errors import *
from bleuart.interfaces.ble.state import UARTState, UARTStateManager
from bleuart.interfaces.ble.buffer import *
from bleuart.interfaces.ble.observers import *
from bleuart.interfaces.ble.client import *
from bleuart.interfaces.ble.connection import *
from bleuart.interfaces.ble.uart import *
from bleuart.interfaces.ble.discovery import *

__all__ = [
    # Core classes
    "BLEConfig",
    "BLEClient",
    "BLEErrorHandler",
    "ConnectionOrchestrator",
    "DiscoveryRequest",
    "ObserverRegistry",
    "PipelineEvent",
    "ReceiveBuffer",
    "UART",
    "UARTCallback",
    "UARTEvent",
    "UARTScanner",
    "UARTState",
    "UARTStateManager",
    "UARTTransport",
    "find_first",
    # Errors
    "EndpointResolutionError",
    "PipelineStageError",
    "ScanError",
    "UARTError",
    # Constants
    "CLIENT_CONFIG_DESCRIPTOR_UUID",
    "ENABLE_NOTIFICATION_VALUE",
    "RX_CHAR_UUID",
    "TOPIC_AVAILABLE",
    "TOPIC_CONNECTED",
    "TOPIC_DISCONNECTED",
    "TX_CHAR_UUID",
    "UART_SERVICE_UUID",
    "logger",
]
