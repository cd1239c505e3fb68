"""
MDM decision engine: multicast routing on social path weights.

The engine keeps, per known peer, the path weight of the best social
route to that peer. Values enter the cache when the community detector
admits a new member and are then only ever raised, by max-consensus
gossip with every peer met.

Contact bookkeeping:
- connection up: remember when the contact started
- connection down: append [start, now) to the peer's history and let the
  community detector decide whether the peer is now familiar
- exchange (once per contact, for both sides): community merge, cache
  refresh, gossip

Forwarding itself is driven by the router's relay-selection heuristic,
so the send/delete hooks below always decline.
"""

from __future__ import annotations
import logging
from types import MappingProxyType
from typing import Hashable, Mapping, TYPE_CHECKING

from socialdtn.community.kclique import create_community_detector
from socialdtn.core.messages import ContactInterval
from socialdtn.decision.base import UNKNOWN, PathWeight

if TYPE_CHECKING:
    from socialdtn.core.config import DecisionEngineConfig
    from socialdtn.core.messages import Message


logger = logging.getLogger(__name__)


class MDMDecisionEngine:
    """Path-weight decision engine for one node."""

    def __init__(self, config: "DecisionEngineConfig", owner: Hashable):
        self.config = config
        self.owner = owner
        self.community = create_community_detector(config, owner)

        self._start_timestamps: dict[Hashable, float] = {}
        self._history: dict[Hashable, list[ContactInterval]] = {}
        self._path_weights: dict[Hashable, float] = {}

    def connection_up(self, peer: Hashable, now: float) -> None:
        self._start_timestamps.setdefault(peer, now)

    def record_contact_start(self, peer: Hashable, now: float) -> None:
        self._start_timestamps[peer] = now

    def connection_down(self, peer: "MDMDecisionEngine", now: float) -> None:
        """Close the contact with peer and update familiarity."""
        node = peer.owner
        start = self._start_timestamps.pop(node, None)
        if start is None:
            logger.warning("%s: connection to %s went down with no recorded start", self.owner, node)
            return

        history = self._history.setdefault(node, [])
        if now - start > 0:
            history.append(ContactInterval(start, now))

        self.community.connection_lost(peer.community.view(), history)
        self.refresh_path_weights()

    def do_exchange_for_new_connection(self, peer: "MDMDecisionEngine", now: float) -> None:
        """
        The one-time information exchange for a new contact.

        Updates both engines. The community merge reads both sides'
        pre-exchange state; gossip then reconciles the refreshed caches.
        """
        self.record_contact_start(peer.owner, now)
        peer.record_contact_start(self.owner, now)

        self.community.new_connection(peer.community)
        self.refresh_path_weights()
        peer.refresh_path_weights()

        self.reconcile_path_weights(peer)

    def reconcile_path_weights(self, peer: "MDMDecisionEngine") -> None:
        """Max-consensus gossip: each side keeps the higher value per shared key."""
        mine = self.path_weights()
        theirs = peer.path_weights()
        self.adopt_path_weights(theirs)
        peer.adopt_path_weights(mine)

    def adopt_path_weights(self, offered: Mapping[Hashable, float]) -> int:
        """Raise cached values to offered ones for keys already cached."""
        raised = 0
        for node, weight in offered.items():
            current = self._path_weights.get(node)
            if current is not None and weight > current:
                self._path_weights[node] = weight
                raised += 1
        return raised

    def refresh_path_weights(self) -> list:
        """Compute path weights for community members not cached yet."""
        added = []
        for node in self.community.get_local_community():
            if node == self.owner or node in self._path_weights:
                continue
            self._path_weights[node] = self.community.path_weight(node)
            added.append(node)
        return added

    def new_message(self, message: "Message") -> bool:
        return True

    def is_final_dest(self, message: "Message", host: Hashable) -> bool:
        return host in message.destinations

    def should_save_received_message(self, message: "Message", host: Hashable) -> bool:
        # Any satisfied destination stops storage, even if others remain.
        return host not in message.destinations

    def should_send_message_to_host(self, message: "Message", other: Hashable) -> bool:
        return False

    def should_delete_sent_message(self, message: "Message", other: Hashable) -> bool:
        return False

    def should_delete_old_message(self, message: "Message", reporter: Hashable) -> bool:
        return False

    def get_path_weight(self, node: Hashable) -> PathWeight:
        return self._path_weights.get(node, UNKNOWN)

    def path_weights(self) -> Mapping[Hashable, float]:
        """Immutable snapshot of the path-weight cache."""
        return MappingProxyType(dict(self._path_weights))

    def get_local_community(self) -> frozenset:
        return self.community.get_local_community()

    def contact_history(self, peer: Hashable) -> tuple[ContactInterval, ...]:
        return tuple(self._history.get(peer, ()))


def create_decision_engine(config: "DecisionEngineConfig", owner: Hashable) -> MDMDecisionEngine:
    """
    Build a fresh decision engine for one node.

    Raises:
        ValueError: unknown engine variant
    """
    if config.engine == "mdm":
        return MDMDecisionEngine(config, owner)
    raise ValueError(f"Unknown decision engine: {config.engine}")
