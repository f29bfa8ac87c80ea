"""Core data models used across controller, worker, and CLI."""

from __future__ import annotations

import enum
import socket
from dataclasses import dataclass, field
from typing import Literal
from uuid import UUID

DEFAULT_TARGET_NAME = "StandController"
# Serial Port Profile, what HC-06 style modules advertise.
SERIAL_PORT_SERVICE_ID = UUID("00001101-0000-1000-8000-00805f9b34fb")

ENABLE_RESULT_OK = 0
ENABLE_RESULT_CANCELED = 1

EventLevel = Literal["info", "error"]


@dataclass(frozen=True)
class Peer:
    name: str
    address: str


@dataclass(frozen=True)
class Event:
    text: str
    level: EventLevel = "info"
    final: bool = False

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class GatewayConfig:
    target_name: str = DEFAULT_TARGET_NAME
    service_uuid: UUID = SERIAL_PORT_SERVICE_ID
    channel: int | None = None
    connect_timeout_s: float | None = None
    wait_timeout_s: float = 30.0


class WorkerState(enum.Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    OPENING = "opening"
    CONNECTED = "connected"
    FAILED = "failed"


@dataclass(eq=False)
class ConnectionHandle:
    """An open RFCOMM socket to a peer, owned by whoever holds the handle.

    Only raw byte I/O is offered; framing belongs to the caller.
    """

    peer: Peer
    service_id: UUID
    sock: socket.socket
    _open: bool = field(default=True, init=False, repr=False)

    @property
    def is_open(self) -> bool:
        return self._open

    def send(self, data: bytes) -> None:
        self.sock.sendall(data)

    def recv(self, size: int = 1024) -> bytes:
        return self.sock.recv(size)

    def fileno(self) -> int:
        return self.sock.fileno()

    def close(self) -> None:
        if not self._open:
            return
        self._open = False
        self.sock.close()

    def __enter__(self) -> ConnectionHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
