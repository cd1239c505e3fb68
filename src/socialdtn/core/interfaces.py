"""
Protocols for the collaborators the routing core consumes.

The simulation engine, message store, application chain and listeners
live outside the core. The core only relies on the members listed here;
socialdtn.sim provides in-memory implementations.
"""

from __future__ import annotations
from typing import Hashable, Iterator, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from socialdtn.core.messages import Message, TransferResult


class Clock(Protocol):
    """Monotonic simulation clock."""

    @property
    def time(self) -> float:
        ...


class Connection(Protocol):
    """A link between two hosts."""

    @property
    def is_up(self) -> bool:
        ...

    @property
    def message(self) -> "Message | None":
        """Message currently in flight, if any."""
        ...

    def other_node(self, host) -> object:
        ...

    def is_ready_for_transfer(self) -> bool:
        ...

    def start_transfer(self, from_host, message: "Message") -> "TransferResult":
        ...


class Host(Protocol):
    """A node as seen by its router and its neighbours' routers."""

    address: Hashable
    router: object

    @property
    def connections(self) -> list:
        """Currently open connections of this node."""
        ...


class MessageStore(Protocol):
    """A node's message buffer."""

    @property
    def capacity(self) -> int:
        ...

    @property
    def free_space(self) -> int:
        ...

    def add(self, message: "Message") -> None:
        ...

    def remove(self, message_id: str) -> "Message | None":
        ...

    def get(self, message_id: str) -> "Message | None":
        ...

    def __contains__(self, message_id: object) -> bool:
        ...

    def __iter__(self) -> Iterator["Message"]:
        ...

    def __len__(self) -> int:
        ...


class Application(Protocol):
    """One stage of the application filter chain."""

    def handle(self, message: "Message", host: Hashable) -> "Message | None":
        """Return the (possibly transformed) message, or None to drop it."""
        ...


class MessageListener(Protocol):
    """Receives message lifecycle notifications from routers."""

    def new_message(self, message: "Message") -> None:
        ...

    def message_transferred(
        self,
        message: "Message",
        from_host: Hashable,
        to_host: Hashable,
        first_delivery: bool,
    ) -> None:
        ...

    def message_deleted(self, message: "Message", host: Hashable, dropped: bool) -> None:
        ...
