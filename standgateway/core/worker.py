"""Background worker that opens the serial connection to a resolved peer."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from uuid import UUID

from standgateway.core.errors import ConnectionIOError, StandGatewayError, TransportUnavailableError
from standgateway.core.events import EventBus
from standgateway.core.model import SERIAL_PORT_SERVICE_ID, ConnectionHandle, WorkerState
from standgateway.transports.base import Platform

LOGGER = logging.getLogger(__name__)

HandOff = Callable[[ConnectionHandle], None]


class ConnectionWorker:
    """Single-shot connection attempt reporting only through the event bus.

    The worker stops at the first success or failure and never retries. On
    success the handle goes to ``on_connected`` when one is given; otherwise
    the worker closes it itself.
    """

    def __init__(
        self,
        bus: EventBus,
        platform: Platform,
        *,
        service_id: UUID = SERIAL_PORT_SERVICE_ID,
        channel: int | None = None,
        timeout_s: float | None = None,
        on_connected: HandOff | None = None,
    ) -> None:
        self.bus = bus
        self.platform = platform
        self.service_id = service_id
        self.channel = channel
        self.timeout_s = timeout_s
        self.on_connected = on_connected
        self.state = WorkerState.IDLE

    def start(self, address: str) -> threading.Thread:
        thread = threading.Thread(
            target=self.run,
            args=(address,),
            name="standgateway-connection-worker",
            daemon=True,
        )
        thread.start()
        return thread

    def run(self, address: str) -> WorkerState:
        if self.state is not WorkerState.IDLE:
            raise RuntimeError(f"ConnectionWorker already ran (state={self.state.value})")

        self._enter(WorkerState.RESOLVING)
        self.bus.publish(f"connecting to device at {address}")
        try:
            adapter = self.platform.get_adapter()
            if adapter is None:
                raise TransportUnavailableError("bluetooth adapter missing")
            if not adapter.enabled:
                raise TransportUnavailableError("bluetooth was turned off before connecting")
            peer = adapter.remote_peer(address)
        except StandGatewayError as exc:
            return self._fail(exc)
        except Exception as exc:
            LOGGER.debug("Resolving %s failed", address, exc_info=True)
            return self._fail(TransportUnavailableError(str(exc)))

        self._enter(WorkerState.OPENING)
        try:
            sock = adapter.open_connection(
                peer,
                self.service_id,
                channel=self.channel,
                timeout_s=self.timeout_s,
            )
        except ConnectionIOError as exc:
            return self._fail(exc)
        except Exception as exc:
            LOGGER.debug("Opening socket to %s failed", address, exc_info=True)
            return self._fail(ConnectionIOError(f"failed to open socket: {exc}"))

        handle = ConnectionHandle(peer=peer, service_id=self.service_id, sock=sock)
        self._enter(WorkerState.CONNECTED)
        self.bus.publish("successfully connected", final=True)
        self._hand_off(handle)
        return self.state

    def _enter(self, state: WorkerState) -> None:
        LOGGER.debug("Connection worker %s -> %s", self.state.value, state.value)
        self.state = state

    def _fail(self, exc: Exception) -> WorkerState:
        self._enter(WorkerState.FAILED)
        self.bus.publish(str(exc), level="error", final=True)
        return self.state

    def _hand_off(self, handle: ConnectionHandle) -> None:
        if self.on_connected is None:
            LOGGER.debug("No connection consumer configured; closing socket to %s", handle.peer.address)
            handle.close()
            return
        try:
            self.on_connected(handle)
        except Exception:
            LOGGER.exception("Connection consumer failed for %s; closing socket", handle.peer.address)
            handle.close()
