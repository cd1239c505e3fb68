"""
Messages, contact intervals and the outgoing intent queue.

A message is buffered at a node until the forwarding controller decides
to hand it to a neighbour. Each decision is recorded as an intent
(message id, connection) in the outgoing queue. The queue is the only
state the periodic tick works from, so it has to stay consistent:

- no intent may reference a connection that went down
- no intent may reference a message that is no longer stored

Transfer attempts report their outcome as a TransferResult code, never
as an exception. Only BUSY and the DENIED_* codes carry policy meaning.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Any, Hashable, Iterator, NamedTuple


class TransferResult(IntEnum):
    """Outcome of asking a peer to accept a message."""

    RCV_OK = 0
    TRY_LATER_BUSY = 1     # Link or receiver busy: retry next tick
    DENIED_OLD = -1        # Receiver already has the message
    DENIED_NO_SPACE = -2   # Message larger than the receiver's buffer
    DENIED_TTL = -3        # Message expired
    DENIED_POLICY = -4     # Receiver's policy refused it
    DENIED_DELIVERED = -5  # Receiver already saw it delivered (or tombstoned)
    DENIED_UNSPECIFIED = -99

    @property
    def is_denied(self) -> bool:
        return self < 0


@dataclass
class Message:
    """
    A store-and-forward message.

    destinations is a set because the routing scheme is multicast-aware:
    a node counts as a final destination when it is any member of the set.
    """

    id: str
    source: Hashable
    destinations: frozenset
    size: int
    creation_time: float = 0.0
    receive_time: float | None = None
    app_id: str | None = None
    hops: list = field(default_factory=list)
    properties: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.destinations = frozenset(self.destinations)
        if not self.hops:
            self.hops = [self.source]

    def replicate(self) -> "Message":
        """Independent copy handed to the receiving side of a transfer."""
        return replace(
            self,
            hops=list(self.hops),
            properties=dict(self.properties),
        )

    def add_hop(self, node: Hashable):
        self.hops.append(node)

    @property
    def hop_count(self) -> int:
        return len(self.hops) - 1


@dataclass(frozen=True)
class ContactInterval:
    """One continuous connection, [start, end)."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


class Intent(NamedTuple):
    """A pending forwarding decision: send message_id over connection."""

    message_id: str
    connection: Any


class OutgoingQueue:
    """
    Ordered list of forwarding intents.

    Ordering matters: the periodic tick tries intents front to back and
    stops at the first transfer that starts. Duplicates are refused so a
    message is never queued twice for the same connection.
    """

    def __init__(self):
        self._intents: list[Intent] = []

    def __len__(self) -> int:
        return len(self._intents)

    def __iter__(self) -> Iterator[Intent]:
        return iter(list(self._intents))

    def __contains__(self, intent: object) -> bool:
        return intent in self._intents

    def add(self, message_id: str, connection) -> bool:
        """Append an intent unless an identical one is already queued."""
        intent = Intent(message_id, connection)
        if intent in self._intents:
            return False
        self._intents.append(intent)
        return True

    def remove_first(self, message_id: str, connection) -> bool:
        """Remove the first intent matching both message and connection."""
        try:
            self._intents.remove(Intent(message_id, connection))
        except ValueError:
            return False
        return True

    def purge_connection(self, connection) -> int:
        """Drop every intent on a connection. Returns how many were removed."""
        before = len(self._intents)
        self._intents = [i for i in self._intents if i.connection is not connection]
        return before - len(self._intents)

    def purge_message(self, message_id: str) -> int:
        """Drop every intent for a message, across all connections."""
        before = len(self._intents)
        self._intents = [i for i in self._intents if i.message_id != message_id]
        return before - len(self._intents)

    def retain(self, predicate) -> int:
        """Keep only intents for which predicate(intent) is true."""
        before = len(self._intents)
        self._intents = [i for i in self._intents if predicate(i)]
        return before - len(self._intents)

    def for_connection(self, connection) -> list[Intent]:
        return [i for i in self._intents if i.connection is connection]

    def clear(self):
        self._intents.clear()
