"""Gateway controller orchestrating adapter checks, lookup, and worker dispatch."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future
from functools import partial

from standgateway.core.errors import (
    EnableDeclinedError,
    PeerNotFoundError,
    StandGatewayError,
    TransportAbsentError,
)
from standgateway.core.events import EventBus
from standgateway.core.model import ENABLE_RESULT_CANCELED, ENABLE_RESULT_OK, GatewayConfig
from standgateway.core.peer_lookup import find_peer_by_name
from standgateway.core.worker import ConnectionWorker, HandOff
from standgateway.transports.base import Adapter, Platform

LOGGER = logging.getLogger(__name__)

Spawn = Callable[[Callable[[], object]], object]


class GatewayController:
    """Runs one connection attempt per ``connect()`` call.

    Every outcome, success or failure, is published on the bus; nothing is
    raised to the caller. The only suspension point is the enablement request,
    resumed from the platform's future.
    """

    def __init__(
        self,
        bus: EventBus,
        platform: Platform,
        config: GatewayConfig | None = None,
        *,
        spawn: Spawn | None = None,
        on_connected: HandOff | None = None,
    ) -> None:
        self.bus = bus
        self.platform = platform
        self.config = config or GatewayConfig()
        self.spawn = spawn
        self.on_connected = on_connected

    def connect(self) -> None:
        LOGGER.info("Starting bluetooth, target %s", self.config.target_name)
        try:
            adapter = self.platform.get_adapter()
            if adapter is None:
                raise TransportAbsentError()

            if not adapter.enabled:
                self.bus.publish("bluetooth not enabled, requesting enablement")
                pending = adapter.request_enable()
                pending.add_done_callback(self._on_enable_result)
                return

            self._run(adapter)
        except (StandGatewayError, OSError) as exc:
            self._fail(exc)

    def _on_enable_result(self, pending: Future[int]) -> None:
        # Runs inside the future's callback runner, which would swallow
        # anything raised here, so every failure ends as a final event.
        if pending.cancelled():
            self._fail(EnableDeclinedError(ENABLE_RESULT_CANCELED))
            return
        failure = pending.exception()
        if failure is not None:
            self._fail(failure)
            return

        try:
            code = pending.result()
            if code != ENABLE_RESULT_OK:
                raise EnableDeclinedError(code)

            adapter = self.platform.get_adapter()
            if adapter is None:
                raise TransportAbsentError()
            self._run(adapter)
        except Exception as exc:
            LOGGER.debug("Resuming after enablement failed", exc_info=True)
            self._fail(exc)

    def _run(self, adapter: Adapter) -> None:
        target = self.config.target_name
        self.bus.publish("bluetooth ready, searching paired devices")
        peer = find_peer_by_name(adapter.bonded_peers(), target)
        if peer is None:
            raise PeerNotFoundError(target)

        self.bus.publish(f"found device {target}")
        worker = ConnectionWorker(
            self.bus,
            self.platform,
            service_id=self.config.service_uuid,
            channel=self.config.channel,
            timeout_s=self.config.connect_timeout_s,
            on_connected=self.on_connected,
        )
        LOGGER.debug("Dispatching connection worker for %s (%s)", peer.name, peer.address)
        if self.spawn is None:
            worker.start(peer.address)
        else:
            self.spawn(partial(worker.run, peer.address))

    def _fail(self, exc: BaseException) -> None:
        LOGGER.info("Connection attempt stopped: %s", exc)
        self.bus.publish(str(exc), level="error", final=True)
