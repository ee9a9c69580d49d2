"""BLE constants and configuration."""

import logging

logger = logging.getLogger("bleuart.ble")

# Nordic UART service and characteristic UUIDs
UART_SERVICE_UUID = "6e400001-b5a3-f393-e0a9-e50e24dcca9e"
TX_CHAR_UUID = "6e400002-b5a3-f393-e0a9-e50e24dcca9e"
RX_CHAR_UUID = "6e400003-b5a3-f393-e0a9-e50e24dcca9e"

# Client Characteristic Configuration Descriptor and the value enabling notifications
CLIENT_CONFIG_DESCRIPTOR_UUID = "00002902-0000-1000-8000-00805f9b34fb"
ENABLE_NOTIFICATION_VALUE = b"\x01\x00"


class BLEConfig:
    """Configuration constants for BLE operations."""

    WRITE_WITH_RESPONSE = False
    DISCONNECT_TIMEOUT_SECONDS = 5.0
    BLECLIENT_EVENT_THREAD_JOIN_TIMEOUT = 2.0


# pypubsub topics mirroring the observer events
TOPIC_CONNECTED = "bleuart.connection.established"
TOPIC_DISCONNECTED = "bleuart.connection.lost"
TOPIC_AVAILABLE = "bleuart.data.available"

# Error message constants
ERROR_ALREADY_STARTED = "connect() may only be called once per UART session (state: {0})"
ERROR_SERVICE_MISSING = "UART service {0} not found on device"
ERROR_CHARACTERISTIC_MISSING = "Characteristic {0} not found in UART service"
ERROR_DESCRIPTOR_MISSING = "Client configuration descriptor missing on {0}"
ERROR_STAGE_FAILED = "UART pipeline failed while {0}: {1}"
ERROR_DISCONNECTED_DURING_CONNECT = "Device disconnected before the UART pipeline completed"
ERROR_SCAN_FAILED = "Failed to start scan for service {0}: {1}"
BLECLIENT_ERROR_NOT_INITIALIZED = "Cannot {0}: BLE client not initialized"

__all__ = [
    "BLEConfig",
    "BLECLIENT_ERROR_NOT_INITIALIZED",
    "CLIENT_CONFIG_DESCRIPTOR_UUID",
    "ENABLE_NOTIFICATION_VALUE",
    "ERROR_ALREADY_STARTED",
    "ERROR_CHARACTERISTIC_MISSING",
    "ERROR_DESCRIPTOR_MISSING",
    "ERROR_DISCONNECTED_DURING_CONNECT",
    "ERROR_SCAN_FAILED",
    "ERROR_SERVICE_MISSING",
    "ERROR_STAGE_FAILED",
    "RX_CHAR_UUID",
    "TOPIC_AVAILABLE",
    "TOPIC_CONNECTED",
    "TOPIC_DISCONNECTED",
    "TX_CHAR_UUID",
    "UART_SERVICE_UUID",
    "logger",
]
