"""Platform transport interfaces."""

from __future__ import annotations

import socket
from concurrent.futures import Future
from typing import Protocol
from uuid import UUID

from standgateway.core.model import Peer


class Adapter(Protocol):
    @property
    def enabled(self) -> bool:
        """Whether the local radio is powered."""

    def request_enable(self) -> Future[int]:
        """Ask the platform to power the radio; resolves with a result code."""

    def bonded_peers(self) -> list[Peer]:
        """Peers already paired with this adapter, in platform order."""

    def remote_peer(self, address: str) -> Peer:
        """Turn an address back into a peer reference."""

    def open_connection(
        self,
        peer: Peer,
        service_id: UUID,
        *,
        channel: int | None = None,
        timeout_s: float | None = None,
    ) -> socket.socket:
        """Open a serial socket to ``peer``; blocks until connected or failed."""


class Platform(Protocol):
    def get_adapter(self) -> Adapter | None:
        """Return the local adapter, or None if the device has none."""
