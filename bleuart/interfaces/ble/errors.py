"""Error types and error handling helpers for UART operations."""

from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TYPE_CHECKING, Optional

from bleak.exc import BleakDBusError, BleakError

from bleuart.interfaces.ble.constants import ERROR_STAGE_FAILED, logger

if TYPE_CHECKING:
    from bleuart.interfaces.ble.state import UARTState

__all__ = [
    "BLEErrorHandler",
    "EndpointResolutionError",
    "PipelineStageError",
    "ScanError",
    "UARTError",
]


class UARTError(Exception):
    """Base class for errors raised by bleuart."""


class PipelineStageError(UARTError):
    """A stage of the connect pipeline failed.

    ``stage`` is the state the pipeline was in when the failure was observed;
    the transport error, if any, is chained as ``__cause__``.
    """

    def __init__(self, stage: "UARTState", message: str):
        super().__init__(ERROR_STAGE_FAILED.format(stage.value, message))
        self.stage = stage


class EndpointResolutionError(PipelineStageError):
    """The UART service, a characteristic or the notify descriptor was not found."""


class ScanError(UARTError):
    """The scan primitive failed to start."""


class BLEErrorHandler:
    """Helper class for consistent error handling in BLE operations.

    Features:
        - Safe execution with fallback return values
        - Cleanup operations that never raise exceptions
    """

    @staticmethod
    def safe_execute(
        func,
        default_return=None,
        log_error: bool = True,
        error_msg: str = "Error in operation",
        reraise: bool = False,
    ):
        """
        Execute a zero-argument callable and return its result, falling back to a provided default on failure.

        BLE errors (BleakError, BleakDBusError, FutureTimeoutError) are logged at debug level;
        anything else is logged with its traceback.

        Parameters:
            func (callable): A zero-argument callable to execute.
            default_return: Value to return if execution fails.
            log_error (bool): If True, log caught exceptions.
            error_msg (str): Message prefix used when logging errors.
            reraise (bool): If True, re-raise any caught exception instead of returning default_return.

        Returns:
            The value returned by `func()` on success, or `default_return` if execution failed.
        """
        try:
            return func()
        except (BleakError, BleakDBusError, FutureTimeoutError) as e:
            if log_error:
                logger.debug("%s: %s", error_msg, e)
            if reraise:
                raise
            return default_return
        except Exception:
            if log_error:
                logger.exception("%s", error_msg)
            if reraise:
                raise
            return default_return

    @staticmethod
    def safe_cleanup(func, cleanup_name: str = "cleanup operation"):
        """Execute a cleanup callable, logging and suppressing any exception it raises."""
        try:
            func()
        except Exception as e:  # noqa: BLE001 - cleanup paths must not raise
            logger.debug("Error during %s: %s", cleanup_name, e)

    @staticmethod
    def describe(exc: Optional[BaseException]) -> str:
        """Return a short human readable description of ``exc`` for error messages."""
        if exc is None:
            return "unknown error"
        text = str(exc)
        return f"{type(exc).__name__}: {text}" if text else type(exc).__name__
