from __future__ import annotations

import threading
from concurrent.futures import Future
from uuid import UUID

import pytest

from standgateway.core.events import EventBus
from standgateway.core.model import ENABLE_RESULT_OK, Event, Peer


class FakeSocket:
    def __init__(self) -> None:
        self.closed = False
        self.sent: list[bytes] = []

    def sendall(self, data: bytes) -> None:
        self.sent.append(data)

    def recv(self, size: int) -> bytes:
        return b"ok"

    def fileno(self) -> int:
        return 7

    def close(self) -> None:
        self.closed = True


class FakeAdapter:
    def __init__(
        self,
        peers: list[Peer] | None = None,
        *,
        enabled: bool = True,
        enable_result: int | None = ENABLE_RESULT_OK,
        open_error: Exception | None = None,
    ) -> None:
        self._enabled = enabled
        self.peers = list(peers or [])
        self.enable_result = enable_result
        self.open_error = open_error
        self.enable_requests: list[Future[int]] = []
        self.opened: list[tuple[Peer, UUID, int | None, float | None]] = []
        self.sockets: list[FakeSocket] = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    def request_enable(self) -> Future[int]:
        pending: Future[int] = Future()
        self.enable_requests.append(pending)
        if self.enable_result is not None:
            if self.enable_result == ENABLE_RESULT_OK:
                self._enabled = True
            pending.set_result(self.enable_result)
        return pending

    def bonded_peers(self) -> list[Peer]:
        return list(self.peers)

    def remote_peer(self, address: str) -> Peer:
        for peer in self.peers:
            if peer.address == address:
                return peer
        return Peer(name="<unknown-device>", address=address)

    def open_connection(self, peer, service_id, *, channel=None, timeout_s=None):
        self.opened.append((peer, service_id, channel, timeout_s))
        if self.open_error is not None:
            raise self.open_error
        sock = FakeSocket()
        self.sockets.append(sock)
        return sock


class FakePlatform:
    def __init__(self, adapter: FakeAdapter | None) -> None:
        self.adapter = adapter
        self.calls = 0

    def get_adapter(self) -> FakeAdapter | None:
        self.calls += 1
        return self.adapter


class EventRecorder:
    def __init__(self) -> None:
        self.events: list[Event] = []
        self.final = threading.Event()

    def __call__(self, event: Event) -> None:
        self.events.append(event)
        if event.final:
            self.final.set()

    @property
    def texts(self) -> list[str]:
        return [event.text for event in self.events]


STAND_CONTROLLER = Peer(name="StandController", address="98:D3:31:F5:12:34")
OTHER_DEVICE = Peer(name="OtherDevice", address="00:11:22:33:44:55")


@pytest.fixture
def bus():
    event_bus = EventBus()
    yield event_bus
    event_bus.close(timeout=2.0)


@pytest.fixture
def recorder(bus: EventBus) -> EventRecorder:
    events = EventRecorder()
    bus.subscribe(events, name="recorder")
    return events


@pytest.fixture
def make_adapter():
    return FakeAdapter


@pytest.fixture
def make_platform():
    return FakePlatform


@pytest.fixture
def run_inline():
    """Spawn replacement that runs the worker on the calling thread."""
    spawned: list[object] = []

    def _spawn(task):
        spawned.append(task)
        return task()

    _spawn.spawned = spawned  # type: ignore[attr-defined]
    return _spawn


@pytest.fixture
def stand_controller() -> Peer:
    return STAND_CONTROLLER


@pytest.fixture
def other_device() -> Peer:
    return OTHER_DEVICE
