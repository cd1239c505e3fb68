"""
K-Clique distributed community detection.

After Hui, Yoneki, Chan and Crowcroft, "Distributed Community Detection
in Delay Tolerant Networks" (MobiArch '07).

Each node keeps:
- F: familiar set, peers whose cumulative contact time exceeds a threshold
- C: local community, always containing the node itself
- FoC: for each community member, a live view of that member's familiar set
- a forwarding table: for each member, the hop weights of the best path
  discovered so far to that member
- edge weights: cumulative contact duration with each familiar peer

A peer joins C when its familiar set shares at least K-1 members with C.
When that happens, members of the peer's own community are tested the
same way (one extra effective hop per contact). Nothing ever leaves F or C.
"""

from __future__ import annotations
import logging
import math
from types import MappingProxyType
from typing import Callable, Hashable, Iterable, TYPE_CHECKING

from socialdtn.community.base import CommunitySnapshot, CommunityView
from socialdtn.community.pathweight import path_weight

if TYPE_CHECKING:
    from socialdtn.core.config import DecisionEngineConfig, KCliqueConfig
    from socialdtn.core.messages import ContactInterval


logger = logging.getLogger(__name__)


class KCliqueCommunityDetection:
    """
    K-Clique community detection state for one node.

    Every member of C has a non-empty forwarding entry except the owner,
    whose route to itself is the empty path (). Routes through the owner
    therefore start with the first real hop.
    """

    def __init__(self, config: "KCliqueConfig", owner: Hashable):
        self.config = config
        self.owner = owner

        self._familiar: set = set()
        self._local: set = {owner}
        self._familiars_of_community: dict[Hashable, CommunityView] = {}
        self._forwarding: dict[Hashable, tuple[float, ...]] = {}
        self._edge_weights: dict[Hashable, float] = {}

        self._view = CommunityView(self)

    @property
    def k(self) -> int:
        return self.config.k

    @property
    def familiar_threshold(self) -> float:
        return self.config.familiar_threshold

    @property
    def ttl(self) -> float:
        return self.config.msg_ttl

    def connection_lost(
        self,
        peer: CommunityView,
        history: Iterable["ContactInterval"],
    ) -> bool:
        """
        Update familiarity once a contact with peer ends.

        Returns True if peer just became familiar.
        """
        node = peer.owner
        if node in self._familiar:
            return False

        total = sum(interval.duration for interval in history)
        if total <= self.familiar_threshold:
            return False

        self._familiar.add(node)
        self._local.add(node)
        self._familiars_of_community[node] = peer
        self._edge_weights[node] = total
        self._forwarding[node] = (total,)
        logger.debug("%s: %s is familiar (%.1fs of contact)", self.owner, node, total)
        return True

    def new_connection(self, peer: "KCliqueCommunityDetection") -> list:
        """
        Merge community state with peer, from both sides at once.

        Both sides merge against the other's state as it was before this
        exchange started. Returns the nodes admitted into this node's
        community.
        """
        mine = self.snapshot()
        theirs = peer.snapshot()

        admitted = self._merge_from(theirs)
        peer_admitted = peer._merge_from(mine)

        if admitted or peer_admitted:
            logger.debug(
                "exchange %s<->%s admitted %s here, %s there",
                self.owner, peer.owner, admitted, peer_admitted,
            )
        return admitted

    def _merge_from(self, other: CommunitySnapshot) -> list:
        """Admit other (and transitively its community) if they overlap enough."""
        node = other.owner
        if node in self._local:
            return []

        common = other.familiar_set & self._local
        if len(common) < self.k - 1:
            return []

        route = self._best_route(common, other.edge_weights.get)
        if route is None:
            return []
        self._admit(node, route, other.view)
        admitted = [node]

        for member in other.local_community:
            if member == self.owner or member == node or member in self._local:
                continue
            member_view = other.familiars_of_community.get(member)
            if member_view is None:
                continue

            common = member_view.familiar_set() & self._local
            if len(common) < self.k - 1:
                continue
            route = self._best_route(common, member_view.edge_weight)
            if route is None:
                continue
            self._admit(member, route, member_view)
            admitted.append(member)

        return admitted

    def _best_route(
        self,
        common: Iterable[Hashable],
        hop_weight: Callable[[Hashable], float | None],
    ) -> tuple[float, ...] | None:
        """
        Best path through any common member.

        The candidate through member i is our route to i extended by the
        edge weight from i onwards. Our own route is the empty path.
        """
        best_route = None
        best_weight = -math.inf
        for member in common:
            hop = hop_weight(member)
            if hop is None:
                continue
            route = self._forwarding.get(member, ()) + (hop,)
            weight = path_weight(route, self.ttl)
            if weight > best_weight:
                best_route, best_weight = route, weight
        return best_route

    def _admit(self, node: Hashable, route: tuple[float, ...], view: CommunityView):
        self._local.add(node)
        self._forwarding[node] = route
        self._familiars_of_community[node] = view

    def is_host_in_community(self, node: Hashable) -> bool:
        return node in self._local

    def get_local_community(self) -> frozenset:
        return frozenset(self._local)

    def get_familiar_set(self) -> frozenset:
        return frozenset(self._familiar)

    def get_edge_weight(self, node: Hashable) -> float | None:
        return self._edge_weights.get(node)

    def get_forwarding_entry(self, node: Hashable) -> tuple[float, ...] | None:
        if node == self.owner:
            return ()
        return self._forwarding.get(node)

    def path_weight(self, node: Hashable) -> float:
        """Path weight of the stored route to node. KeyError if unknown."""
        if node == self.owner:
            return 0.0
        return path_weight(self._forwarding[node], self.ttl)

    def view(self) -> CommunityView:
        return self._view

    def snapshot(self) -> CommunitySnapshot:
        return CommunitySnapshot(
            owner=self.owner,
            familiar_set=frozenset(self._familiar),
            local_community=frozenset(self._local),
            edge_weights=MappingProxyType(dict(self._edge_weights)),
            forwarding_table=MappingProxyType(dict(self._forwarding)),
            familiars_of_community=MappingProxyType(dict(self._familiars_of_community)),
            view=self._view,
        )


def create_community_detector(
    config: "DecisionEngineConfig",
    owner: Hashable,
) -> KCliqueCommunityDetection:
    """
    Build a fresh community detector for one node.

    Args:
        config: Engine configuration naming the detection variant
        owner: The node this detector belongs to

    Raises:
        ValueError: unknown community detection variant
    """
    if config.community_algorithm == "kclique":
        return KCliqueCommunityDetection(config.kclique, owner)
    raise ValueError(f"Unknown community detection: {config.community_algorithm}")
