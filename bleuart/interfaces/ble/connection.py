"""UART connect pipeline: an explicit state machine driven by transport completions."""

from concurrent.futures import Future
from enum import Enum
from threading import RLock
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple

from bleuart.interfaces.ble.buffer import ReceiveBuffer
from bleuart.interfaces.ble.client import UARTTransport
from bleuart.interfaces.ble.constants import (
    CLIENT_CONFIG_DESCRIPTOR_UUID,
    ENABLE_NOTIFICATION_VALUE,
    ERROR_ALREADY_STARTED,
    ERROR_CHARACTERISTIC_MISSING,
    ERROR_DESCRIPTOR_MISSING,
    ERROR_DISCONNECTED_DURING_CONNECT,
    ERROR_SERVICE_MISSING,
    RX_CHAR_UUID,
    TX_CHAR_UUID,
    UART_SERVICE_UUID,
    logger,
)
from bleuart.interfaces.ble.errors import (
    BLEErrorHandler,
    EndpointResolutionError,
    PipelineStageError,
    UARTError,
)
from bleuart.interfaces.ble.observers import UARTEvent
from bleuart.interfaces.ble.state import UARTState, UARTStateManager

if TYPE_CHECKING:
    from bleuart.interfaces.ble.uart import UART

__all__ = ["ConnectionOrchestrator", "PipelineEvent"]


class PipelineEvent(Enum):
    """Inputs that drive the connect pipeline forward."""

    CONNECT_REQUESTED = "connect requested"
    LINK_ESTABLISHED = "link established"
    SERVICES_DISCOVERED = "services discovered"
    DESCRIPTOR_WRITTEN = "descriptor written"
    NOTIFICATIONS_ENABLED = "notifications enabled"


class ConnectionOrchestrator:
    """
    Drive a UART session from IDLE to READY.

    Each entry of ``TRANSITIONS`` maps ``(current state, event)`` to
    ``(next state, step)``. A step performs the side effects of the transition
    and issues at most one transport request, whose completion is fed back
    into ``_advance`` as the next event. Stage N+1 is therefore never issued
    before stage N has completed.

    Failures reject the pipeline future and stop the machine; the session
    state stays at the stage that failed. Only a transport disconnect moves
    the session to DISCONNECTED.
    """

    TRANSITIONS: Dict[Tuple[UARTState, PipelineEvent], Tuple[UARTState, str]] = {
        (UARTState.IDLE, PipelineEvent.CONNECT_REQUESTED): (
            UARTState.CONNECTING,
            "_request_link",
        ),
        (UARTState.CONNECTING, PipelineEvent.LINK_ESTABLISHED): (
            UARTState.RESOLVING_ENDPOINTS,
            "_request_services",
        ),
        (UARTState.RESOLVING_ENDPOINTS, PipelineEvent.SERVICES_DISCOVERED): (
            UARTState.SUBSCRIBING,
            "_resolve_endpoints",
        ),
        (UARTState.SUBSCRIBING, PipelineEvent.DESCRIPTOR_WRITTEN): (
            UARTState.READY,
            "_request_notifications",
        ),
        (UARTState.READY, PipelineEvent.NOTIFICATIONS_ENABLED): (
            UARTState.READY,
            "_complete",
        ),
    }

    def __init__(
        self,
        uart: "UART",
        transport: UARTTransport,
        state_manager: UARTStateManager,
        receive_buffer: ReceiveBuffer,
        state_lock: RLock,
    ):
        """
        Parameters:
            uart (UART): Session whose endpoints and events this orchestrator drives.
            transport (UARTTransport): Transport the pipeline issues requests to.
            state_manager (UARTStateManager): State holder shared with the session.
            receive_buffer (ReceiveBuffer): Buffer fed by inbound notifications.
            state_lock (RLock): The session lock.
        """
        self.uart = uart
        self.transport = transport
        self.state_manager = state_manager
        self.receive_buffer = receive_buffer
        self.state_lock = state_lock
        self.error_handler = BLEErrorHandler()
        self._pipeline: Optional[Future] = None
        self._aborted = False
        self._disconnect_notified = False
        self.transport.add_disconnected_callback(self._handle_disconnect)

    @property
    def pipeline(self) -> Optional[Future]:
        """Future of the current connect attempt, or None before `start`."""
        return self._pipeline

    def start(self) -> Future:
        """
        Begin the connect pipeline and return immediately.

        Returns:
            Future: Resolves with the UART once notifications are enabled, or
            fails with a UARTError subclass describing the stage that failed.
        """
        with self.state_lock:
            if self._pipeline is not None or not self.state_manager.can_connect:
                rejected: Future = Future()
                rejected.set_exception(
                    UARTError(ERROR_ALREADY_STARTED.format(self.state_manager.state.value))
                )
                return rejected
            self._pipeline = Future()
            pipeline = self._pipeline
        logger.info("Connecting to UART device %s", self.uart.address)
        self._advance(PipelineEvent.CONNECT_REQUESTED)
        return pipeline

    def _advance(self, event: PipelineEvent, result: Any = None) -> None:
        with self.state_lock:
            if self._aborted:
                logger.debug("Ignoring %s after pipeline abort", event.value)
                return
            current = self.state_manager.state
            step = self.TRANSITIONS.get((current, event))
        if step is None:
            if current == UARTState.DISCONNECTED:
                self._fail(
                    PipelineStageError(current, ERROR_DISCONNECTED_DURING_CONNECT)
                )
            else:
                logger.warning(
                    "No pipeline transition for %s in state %s", event.value, current.value
                )
            return

        next_state, step_name = step
        try:
            getattr(self, step_name)(next_state, result)
        except PipelineStageError as exc:
            self._fail(exc)
        except Exception as exc:
            self._fail(self._stage_error(current, exc), cause=exc)

    def _issue(
        self,
        next_state: UARTState,
        request: Callable[[], Future],
        completion: PipelineEvent,
    ) -> None:
        """Enter `next_state`, issue `request` and feed its completion back as `completion`."""
        with self.state_lock:
            if not self.state_manager.transition_to(next_state):
                return
        try:
            future = request()
        except Exception as exc:
            self._fail(self._stage_error(next_state, exc), cause=exc)
            return
        future.add_done_callback(
            lambda done: self._on_request_done(done, next_state, completion)
        )

    def _on_request_done(
        self, future: Future, stage: UARTState, completion: PipelineEvent
    ) -> None:
        if future.cancelled():
            self._fail(PipelineStageError(stage, "request cancelled"))
            return
        exc = future.exception()
        if exc is not None:
            self._fail(self._stage_error(stage, exc), cause=exc)
            return
        self._advance(completion, future.result())

    # Pipeline steps

    def _request_link(self, next_state: UARTState, _result: Any) -> None:
        self._issue(next_state, self.transport.connect, PipelineEvent.LINK_ESTABLISHED)

    def _request_services(self, next_state: UARTState, _result: Any) -> None:
        self._issue(
            next_state,
            self.transport.discover_services,
            PipelineEvent.SERVICES_DISCOVERED,
        )

    def _resolve_endpoints(self, next_state: UARTState, _services: Any) -> None:
        stage = UARTState.RESOLVING_ENDPOINTS
        service = self.transport.get_service(UART_SERVICE_UUID)
        if service is None:
            raise EndpointResolutionError(
                stage, ERROR_SERVICE_MISSING.format(UART_SERVICE_UUID)
            )
        tx = service.get_characteristic(TX_CHAR_UUID)
        if tx is None:
            raise EndpointResolutionError(
                stage, ERROR_CHARACTERISTIC_MISSING.format(TX_CHAR_UUID)
            )
        rx = service.get_characteristic(RX_CHAR_UUID)
        if rx is None:
            raise EndpointResolutionError(
                stage, ERROR_CHARACTERISTIC_MISSING.format(RX_CHAR_UUID)
            )
        client_config = rx.get_descriptor(CLIENT_CONFIG_DESCRIPTOR_UUID)
        if client_config is None:
            raise EndpointResolutionError(
                stage, ERROR_DESCRIPTOR_MISSING.format(RX_CHAR_UUID)
            )

        self.uart._assign_endpoints(tx, rx)
        # Observers hear "connected" once endpoints are known, before notifications are live.
        self.uart._emit(UARTEvent.CONNECTED)
        self._issue(
            next_state,
            lambda: self.transport.write_descriptor(
                client_config, ENABLE_NOTIFICATION_VALUE
            ),
            PipelineEvent.DESCRIPTOR_WRITTEN,
        )

    def _request_notifications(self, next_state: UARTState, _result: Any) -> None:
        rx = self.uart.notify_endpoint
        self._issue(
            next_state,
            lambda: self.transport.set_notification(rx, True, self._handle_notification),
            PipelineEvent.NOTIFICATIONS_ENABLED,
        )

    def _complete(self, _next_state: UARTState, _result: Any) -> None:
        logger.info("UART ready on %s", self.uart.address)
        pipeline = self._pipeline
        if pipeline is not None and not pipeline.done():
            pipeline.set_result(self.uart)

    # Transport callbacks

    def _handle_notification(self, _sender: Any, data: bytearray) -> None:
        """Append a notification payload to the receive buffer and announce it."""
        size = self.receive_buffer.append(bytes(data))
        logger.debug("Received %d byte(s), %d buffered", len(data), size)
        self.uart._emit(UARTEvent.AVAILABLE)

    def _handle_disconnect(self) -> None:
        with self.state_lock:
            if self._disconnect_notified:
                logger.debug("Ignoring duplicate disconnect from %s", self.uart.address)
                return
            self._disconnect_notified = True
            previous = self.state_manager.state
            self.state_manager.transition_to(UARTState.DISCONNECTED)
            pending = self._pipeline is not None and not self._pipeline.done()
        logger.info("UART device %s disconnected", self.uart.address)
        if pending:
            self._fail(PipelineStageError(previous, ERROR_DISCONNECTED_DURING_CONNECT))
        self.uart._emit(UARTEvent.DISCONNECTED)

    # Failure handling

    def _stage_error(self, stage: UARTState, exc: BaseException) -> PipelineStageError:
        return PipelineStageError(stage, self.error_handler.describe(exc))

    def _fail(
        self, error: PipelineStageError, cause: Optional[BaseException] = None
    ) -> None:
        if cause is not None:
            error.__cause__ = cause
        with self.state_lock:
            if self._aborted:
                return
            self._aborted = True
            pipeline = self._pipeline
        logger.warning("%s", error)
        if pipeline is not None and not pipeline.done():
            pipeline.set_exception(error)
