"""
Base types for community detection.

Nodes never hold references into each other's mutable state. They see
each other through two read-only forms:

- CommunityView: a live query handle. Every call reads the owner's
  current state, so a familiar set learned through a view stays up to
  date as its owner keeps meeting people.
- CommunitySnapshot: an immutable copy taken at one instant. The
  pairwise exchange on contact works from snapshots so that both sides
  merge against the other's pre-exchange state.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Hashable, Iterable, Mapping, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from socialdtn.core.messages import ContactInterval


class CommunityView:
    """Read-only live handle on another node's community detector."""

    __slots__ = ("_detector",)

    def __init__(self, detector: "CommunityDetection"):
        self._detector = detector

    @property
    def owner(self) -> Hashable:
        return self._detector.owner

    def familiar_set(self) -> frozenset:
        return self._detector.get_familiar_set()

    def local_community(self) -> frozenset:
        return self._detector.get_local_community()

    def edge_weight(self, node: Hashable) -> float | None:
        return self._detector.get_edge_weight(node)

    def is_host_in_community(self, node: Hashable) -> bool:
        return self._detector.is_host_in_community(node)

    def __repr__(self) -> str:
        return f"CommunityView(owner={self.owner!r})"


@dataclass(frozen=True)
class CommunitySnapshot:
    """Immutable copy of a detector's state at one instant."""

    owner: Hashable
    familiar_set: frozenset
    local_community: frozenset
    edge_weights: Mapping[Hashable, float]
    forwarding_table: Mapping[Hashable, tuple[float, ...]]
    familiars_of_community: Mapping[Hashable, CommunityView]
    view: CommunityView


class CommunityDetection(Protocol):
    """Protocol for per-node community detection."""

    owner: Hashable

    def new_connection(self, peer: "CommunityDetection") -> list:
        """Pairwise merge with a peer, run once per contact for both sides."""
        ...

    def connection_lost(
        self,
        peer: CommunityView,
        history: Iterable["ContactInterval"],
    ) -> bool:
        """Contact with peer ended; history holds all past contact intervals."""
        ...

    def is_host_in_community(self, node: Hashable) -> bool:
        ...

    def get_local_community(self) -> frozenset:
        ...

    def get_familiar_set(self) -> frozenset:
        ...

    def get_edge_weight(self, node: Hashable) -> float | None:
        ...

    def path_weight(self, node: Hashable) -> float:
        ...

    def view(self) -> CommunityView:
        ...

    def snapshot(self) -> CommunitySnapshot:
        ...
