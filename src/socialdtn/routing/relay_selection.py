"""
Two-stage relay selection.

Stage 1 (per neighbour): score every buffered message by the
neighbour's average known path weight to the message's destinations.
The neighbour's load is the mean cost over all buffered messages and its
weight is 1 - load. Messages are then packed greedily, highest cost
first, into the neighbour's advertised free buffer.

Stage 2 (gate): neighbours are taken in ascending weight order while the
running product q of processed weights stays above 1 - p. Only the
neighbours processed before the gate closes get their stage-1
candidates queued.

Note: ascending order means the least attractive neighbour goes first.
That ordering is kept as is.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Any, Hashable, Iterable, Mapping, Sequence, TYPE_CHECKING

from socialdtn.decision.base import UNKNOWN, PathWeight

if TYPE_CHECKING:
    from socialdtn.core.messages import Message


# Cost of a message none of whose destinations has a known path weight
UNREACHABLE = UNKNOWN


@dataclass(frozen=True)
class PeerSummary:
    """What a neighbour tells us about itself when asked."""

    address: Hashable
    free_buffer: int
    message_ids: frozenset
    path_weights: Mapping[Hashable, float]


@dataclass
class NeighborPlan:
    """Stage-1 result for one neighbour."""

    connection: Any
    peer: Hashable
    load: float
    weight: float
    candidates: list = field(default_factory=list)


def message_cost(message: "Message", path_weights: Mapping[Hashable, float]) -> PathWeight:
    """Mean known path weight over the message's destinations, or UNREACHABLE."""
    known = [path_weights[dest] for dest in message.destinations if dest in path_weights]
    if not known:
        return UNREACHABLE
    return sum(known) / len(known)


def _rank_key(cost: PathWeight) -> float:
    return -math.inf if cost is UNREACHABLE else cost


def transfer_footprint(message: "Message") -> int:
    """Buffer space a message is assumed to take at the receiver."""
    return int(message.size) + 1


def plan_neighbor(
    connection,
    messages: Sequence["Message"],
    summary: PeerSummary,
) -> NeighborPlan:
    """
    Stage 1 for one neighbour.

    Args:
        connection: The connection leading to the neighbour
        messages: Messages buffered locally
        summary: The neighbour's self-reported state

    Returns:
        NeighborPlan with the neighbour's weight and admitted candidates
    """
    costs = [(message, message_cost(message, summary.path_weights)) for message in messages]

    total = sum(cost for _, cost in costs if cost is not UNREACHABLE)
    load = total / len(costs) if costs else 0.0

    ranked = sorted(costs, key=lambda item: _rank_key(item[1]), reverse=True)

    budget = summary.free_buffer
    candidates = []
    for message, _ in ranked:
        footprint = transfer_footprint(message)
        if footprint < budget and message.id not in summary.message_ids:
            budget -= footprint
            candidates.append(message)

    return NeighborPlan(
        connection=connection,
        peer=summary.address,
        load=load,
        weight=1.0 - load,
        candidates=candidates,
    )


def admit_neighbors(plans: Iterable[NeighborPlan], probability: float) -> list[NeighborPlan]:
    """
    Stage 2: the multiplicative admission gate.

    Args:
        plans: Stage-1 plans, one per neighbour
        probability: p; processing continues while q > 1 - p

    Returns:
        Plans of the neighbours that passed the gate, in processing order
    """
    ordered = sorted(plans, key=lambda plan: plan.weight)
    threshold = 1.0 - probability

    q = 1.0
    admitted = []
    for plan in ordered:
        if not q > threshold:
            break
        q *= plan.weight
        admitted.append(plan)
    return admitted
