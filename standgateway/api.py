"""Stable public API for building tooling on top of standgateway.

This module is the supported integration surface for third-party callers
(GUI/TUI/services/scripts). Avoid importing from private/internal modules
unless intentionally depending on non-stable internals.
"""

from __future__ import annotations

from standgateway.core.config_loader import LoadedConfig, load_config
from standgateway.core.controller import GatewayController, Spawn
from standgateway.core.errors import (
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
    ConnectionIOError,
    EnableDeclinedError,
    PeerNotFoundError,
    StandGatewayError,
    TransportAbsentError,
    TransportCommandError,
    TransportError,
    TransportUnavailableError,
)
from standgateway.core.events import EventBus, EventHandler, Subscription
from standgateway.core.model import (
    DEFAULT_TARGET_NAME,
    SERIAL_PORT_SERVICE_ID,
    ConnectionHandle,
    Event,
    GatewayConfig,
    Peer,
    WorkerState,
)
from standgateway.core.peer_lookup import find_peer_by_name
from standgateway.core.worker import ConnectionWorker, HandOff
from standgateway.transports.base import Adapter, Platform
from standgateway.transports.bluez import BlueZPlatform, runtime_warnings

__all__ = [
    "StandGatewayError",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "TransportError",
    "TransportAbsentError",
    "TransportUnavailableError",
    "TransportCommandError",
    "EnableDeclinedError",
    "PeerNotFoundError",
    "ConnectionIOError",
    "DEFAULT_TARGET_NAME",
    "SERIAL_PORT_SERVICE_ID",
    "ConnectionHandle",
    "Event",
    "GatewayConfig",
    "LoadedConfig",
    "Peer",
    "WorkerState",
    "EventBus",
    "Subscription",
    "Adapter",
    "Platform",
    "BlueZPlatform",
    "ConnectionWorker",
    "GatewayController",
    "find_peer_by_name",
    "load_config",
    "Gateway",
]


class Gateway:
    """Public entry point wiring config, event bus, platform, and controller.

    `connect()` returns immediately; progress and outcome arrive on the event
    bus, so subscribe before triggering.
    """

    def __init__(
        self,
        *,
        config: GatewayConfig | None = None,
        platform: Platform | None = None,
        bus: EventBus | None = None,
        spawn: Spawn | None = None,
        on_connected: HandOff | None = None,
    ) -> None:
        if config is None:
            loaded = load_config()
            config = loaded.config
            self.load_warnings = loaded.warnings
        else:
            self.load_warnings = ()
        self.runtime_warnings = runtime_warnings() if platform is None else ()
        self.config = config
        self.platform = platform or BlueZPlatform()
        self.events = bus or EventBus()
        self._controller = GatewayController(
            self.events,
            self.platform,
            config,
            spawn=spawn,
            on_connected=on_connected,
        )

    def subscribe(self, handler: EventHandler, *, name: str | None = None) -> Subscription:
        return self.events.subscribe(handler, name=name)

    def unsubscribe(self, subscription: Subscription) -> None:
        self.events.unsubscribe(subscription)

    def connect(self) -> None:
        self._controller.connect()

    def list_peers(self) -> list[Peer]:
        adapter = self.platform.get_adapter()
        if adapter is None:
            raise TransportAbsentError()
        return adapter.bonded_peers()

    def close(self, timeout: float | None = None) -> None:
        self.events.close(timeout)
