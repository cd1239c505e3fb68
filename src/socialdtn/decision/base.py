"""
Decision engine protocol and the unknown path-weight sentinel.

The forwarding controller asks its decision engine every policy
question: admit a new message, save a received one, forward to a peer,
delete after sending. The engine in turn owns the node's community
state and its path-weight cache.
"""

from __future__ import annotations
from enum import Enum
from typing import Hashable, Mapping, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from socialdtn.community.base import CommunityDetection
    from socialdtn.core.messages import Message


class _Unknown(Enum):
    UNKNOWN = "unknown"

    def __repr__(self) -> str:
        return "UNKNOWN"


# Path weight for a node the engine knows nothing about. Distinct from 0.0.
UNKNOWN = _Unknown.UNKNOWN

PathWeight = float | _Unknown


class DecisionEngine(Protocol):
    """Protocol for routing decision engines."""

    owner: Hashable
    community: "CommunityDetection"

    def new_message(self, message: "Message") -> bool:
        ...

    def connection_up(self, peer: Hashable, now: float) -> None:
        ...

    def connection_down(self, peer: "DecisionEngine", now: float) -> None:
        ...

    def do_exchange_for_new_connection(self, peer: "DecisionEngine", now: float) -> None:
        ...

    def is_final_dest(self, message: "Message", host: Hashable) -> bool:
        ...

    def should_save_received_message(self, message: "Message", host: Hashable) -> bool:
        ...

    def should_send_message_to_host(self, message: "Message", other: Hashable) -> bool:
        ...

    def should_delete_sent_message(self, message: "Message", other: Hashable) -> bool:
        ...

    def should_delete_old_message(self, message: "Message", reporter: Hashable) -> bool:
        ...

    def get_path_weight(self, node: Hashable) -> PathWeight:
        ...

    def path_weights(self) -> Mapping[Hashable, float]:
        ...
