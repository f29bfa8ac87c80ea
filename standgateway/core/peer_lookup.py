"""Target peer lookup among paired devices."""

from __future__ import annotations

from collections.abc import Iterable

from standgateway.core.model import Peer


def find_peer_by_name(peers: Iterable[Peer], name: str) -> Peer | None:
    """Return the first peer named exactly ``name``, or None when absent.

    Enumeration order is whatever the platform reports, so with duplicate
    names the pick is only as stable as that order.
    """
    for peer in peers:
        if peer.name == name:
            return peer
    return None
