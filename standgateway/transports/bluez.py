"""Linux BlueZ platform: bluetoothctl for adapter state, RFCOMM sockets for data."""

from __future__ import annotations

import logging
import re
import socket
import subprocess
import threading
from collections.abc import Sequence
from concurrent.futures import Future
from uuid import UUID

from standgateway.core.errors import ConnectionIOError, TransportCommandError, TransportError
from standgateway.core.model import Peer

_DEVICE_LINE_RE = re.compile(r"^Device\s+([0-9A-F:]{17})\s+(.+)$", re.IGNORECASE)
_MAC_RE = re.compile(r"^[0-9A-F]{2}(?::[0-9A-F]{2}){5}$", re.IGNORECASE)
_CONTROLLER_RE = re.compile(r"^Controller\s+([0-9A-F:]{17})", re.IGNORECASE | re.MULTILINE)
_POWERED_RE = re.compile(r"^\s*Powered:\s*(yes|no)\s*$", re.IGNORECASE | re.MULTILINE)
_CHANNEL_RE = re.compile(r"^\s*Channel:\s*(\d+)\s*$", re.MULTILINE)
_BASE_UUID_SUFFIX = "-0000-1000-8000-00805f9b34fb"
# SPP modules such as the HC-06 listen on channel 1.
DEFAULT_RFCOMM_CHANNEL = 1
UNKNOWN_DEVICE_NAME = "<unknown-device>"
LOGGER = logging.getLogger(__name__)


class BlueZAdapter:
    def __init__(self, address: str) -> None:
        self.address = address

    @property
    def enabled(self) -> bool:
        result = _run_command(["bluetoothctl", "show", self.address])
        if result is None or result.returncode != 0:
            return False
        match = _POWERED_RE.search(result.stdout)
        return bool(match) and match.group(1).lower() == "yes"

    def request_enable(self) -> Future[int]:
        pending: Future[int] = Future()

        def _power_on() -> None:
            if not pending.set_running_or_notify_cancel():
                return
            try:
                result = _run_command(["bluetoothctl", "power", "on"])
            except TransportCommandError as exc:
                pending.set_exception(exc)
                return
            if result is None:
                pending.set_exception(
                    TransportCommandError("bluetoothctl not found; cannot turn bluetooth on")
                )
                return
            if result.returncode != 0:
                LOGGER.warning("bluetoothctl power on failed: %s", (result.stderr or "").strip())
            pending.set_result(result.returncode)

        threading.Thread(target=_power_on, name="standgateway-enable", daemon=True).start()
        return pending

    def bonded_peers(self) -> list[Peer]:
        return _paired_devices()

    def remote_peer(self, address: str) -> Peer:
        if not _MAC_RE.match(address):
            raise TransportError(f"Invalid bluetooth address '{address}'")
        mac = address.upper()
        try:
            paired = _paired_devices()
        except TransportCommandError as exc:
            LOGGER.debug("Could not list paired devices to name %s: %s", mac, exc)
            paired = []
        for peer in paired:
            if peer.address == mac:
                return peer
        return Peer(name=UNKNOWN_DEVICE_NAME, address=mac)

    def open_connection(
        self,
        peer: Peer,
        service_id: UUID,
        *,
        channel: int | None = None,
        timeout_s: float | None = None,
    ) -> socket.socket:
        try:
            af_bluetooth = socket.AF_BLUETOOTH
            btproto_rfcomm = socket.BTPROTO_RFCOMM
        except AttributeError as exc:
            raise ConnectionIOError(
                "failed to open socket: this Python build does not expose Bluetooth socket APIs "
                "(AF_BLUETOOTH/BTPROTO_RFCOMM)"
            ) from exc

        if channel is None:
            channel = resolve_channel(peer.address, service_id)

        try:
            bt_socket = socket.socket(af_bluetooth, socket.SOCK_STREAM, btproto_rfcomm)
        except OSError as exc:
            raise ConnectionIOError(f"failed to open socket: could not create RFCOMM socket: {exc}") from exc
        bt_socket.settimeout(timeout_s)
        try:
            bt_socket.connect((peer.address, channel))
        except TimeoutError as exc:
            bt_socket.close()
            raise ConnectionIOError(
                f"failed to open socket: RFCOMM connect timed out for {peer.address} on channel {channel}"
            ) from exc
        except OSError as exc:
            bt_socket.close()
            raise ConnectionIOError(
                f"failed to open socket: RFCOMM connect failed for {peer.address} on channel {channel}: {exc}"
            ) from exc
        return bt_socket


class BlueZPlatform:
    def get_adapter(self) -> BlueZAdapter | None:
        result = _run_command(["bluetoothctl", "show"])
        if result is None:
            LOGGER.debug("bluetoothctl not installed; treating bluetooth as unsupported")
            return None
        if result.returncode != 0:
            LOGGER.debug("bluetoothctl show failed: %s", (result.stderr or result.stdout).strip())
            return None
        match = _CONTROLLER_RE.search(result.stdout)
        if match is None:
            return None
        return BlueZAdapter(match.group(1).upper())


def resolve_channel(address: str, service_id: UUID) -> int:
    """Find the RFCOMM channel serving ``service_id`` via SDP, else channel 1."""
    text = str(service_id)
    if text.endswith(_BASE_UUID_SUFFIX) and text.startswith("0000"):
        query = f"0x{text[4:8]}"
    else:
        query = text
    result = _run_command(["sdptool", "search", "--bdaddr", address, query])
    if result is not None and result.returncode == 0:
        match = _CHANNEL_RE.search(result.stdout)
        if match:
            return int(match.group(1))
    LOGGER.warning(
        "SDP lookup for %s on %s failed; using RFCOMM channel %d",
        service_id,
        address,
        DEFAULT_RFCOMM_CHANNEL,
    )
    return DEFAULT_RFCOMM_CHANNEL


def _paired_devices() -> list[Peer]:
    commands = [
        ["bluetoothctl", "devices", "Paired"],
        ["bluetoothctl", "paired-devices"],
    ]

    command_errors: list[str] = []
    for cmd in commands:
        result = _run_command(cmd)
        if result is None:
            continue
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            if stderr:
                command_errors.append(f"{' '.join(cmd)} -> {stderr}")
            continue

        seen: set[str] = set()
        peers: list[Peer] = []
        for line in result.stdout.splitlines():
            match = _DEVICE_LINE_RE.match(line.strip())
            if not match:
                continue
            mac, name = match.group(1).upper(), match.group(2).strip()
            if mac in seen:
                continue
            seen.add(mac)
            peers.append(Peer(name=name, address=mac))
        return peers

    if command_errors:
        joined = " | ".join(command_errors)
        raise TransportCommandError(
            f"Listing paired devices failed. Ensure a working D-Bus/BlueZ session. Details: {joined}"
        )
    return []


def _run_command(cmd: Sequence[str]) -> subprocess.CompletedProcess[str] | None:
    LOGGER.debug("Running %s", " ".join(cmd))
    try:
        return subprocess.run(
            cmd,
            check=False,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise TransportCommandError(f"{' '.join(cmd)} failed: {exc}") from exc


def runtime_warnings() -> tuple[str, ...]:
    warnings: list[str] = []
    if not hasattr(socket, "AF_BLUETOOTH") or not hasattr(socket, "BTPROTO_RFCOMM"):
        warnings.append(
            "Python runtime missing AF_BLUETOOTH/BTPROTO_RFCOMM; connecting to the peer will fail."
        )
    return tuple(warnings)
