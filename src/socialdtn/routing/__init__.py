"""
Routing: the forwarding controller and its relay-selection heuristic.
"""

from socialdtn.routing.relay_selection import (
    UNREACHABLE,
    NeighborPlan,
    PeerSummary,
    admit_neighbors,
    message_cost,
    plan_neighbor,
    transfer_footprint,
)
from socialdtn.routing.router import DecisionEngineRouter

__all__ = [
    "UNREACHABLE",
    "NeighborPlan",
    "PeerSummary",
    "admit_neighbors",
    "message_cost",
    "plan_neighbor",
    "transfer_footprint",
    "DecisionEngineRouter",
]
