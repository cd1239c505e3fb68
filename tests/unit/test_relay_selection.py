"""Unit tests for two-stage relay selection."""

import pytest

from socialdtn.core import Message
from socialdtn.routing import (
    UNREACHABLE,
    NeighborPlan,
    PeerSummary,
    admit_neighbors,
    message_cost,
    plan_neighbor,
    transfer_footprint,
)


def msg(mid, size=100, destinations=("x",)):
    return Message(id=mid, source="s", destinations=frozenset(destinations), size=size)


def summary(free_buffer=10_000, message_ids=(), path_weights=None):
    return PeerSummary(
        address="peer",
        free_buffer=free_buffer,
        message_ids=frozenset(message_ids),
        path_weights=path_weights or {},
    )


def plan(weight):
    return NeighborPlan(connection=None, peer=f"n{weight}", load=1.0 - weight, weight=weight)


class TestMessageCost:
    """Tests for message_cost."""

    def test_mean_over_known_destinations(self):
        m = msg("M1", destinations=("x", "y"))
        assert message_cost(m, {"x": 0.2, "y": 0.6}) == pytest.approx(0.4)

    def test_unknown_destinations_ignored(self):
        m = msg("M1", destinations=("x", "y"))
        assert message_cost(m, {"x": 0.2}) == pytest.approx(0.2)

    def test_unreachable(self):
        assert message_cost(msg("M1"), {"z": 0.9}) is UNREACHABLE


class TestPlanNeighbor:
    """Tests for stage 1."""

    def test_footprint(self):
        assert transfer_footprint(msg("M1", size=100)) == 101

    def test_budget_packing(self):
        """Budget 500 with sizes 100, 200, 300 fits the first two."""
        messages = [msg("M1", 100), msg("M2", 200), msg("M3", 300)]
        result = plan_neighbor("con", messages, summary(free_buffer=500))
        assert [m.id for m in result.candidates] == ["M1", "M2"]

    def test_budget_is_strict(self):
        result = plan_neighbor("con", [msg("M1", 99)], summary(free_buffer=100))
        assert result.candidates == []

    def test_skips_messages_peer_has(self):
        """A message the peer holds does not use budget."""
        messages = [msg("M1", 100), msg("M2", 200), msg("M3", 300)]
        result = plan_neighbor("con", messages, summary(free_buffer=600, message_ids={"M1"}))
        assert [m.id for m in result.candidates] == ["M2", "M3"]

    def test_highest_cost_first(self):
        messages = [
            msg("low", destinations=("x",)),
            msg("none", destinations=("q",)),
            msg("high", destinations=("y",)),
        ]
        result = plan_neighbor("con", messages, summary(path_weights={"x": 0.1, "y": 0.9}))
        assert [m.id for m in result.candidates] == ["high", "low", "none"]

    def test_load_and_weight(self):
        messages = [msg("M1", destinations=("x",)), msg("M2", destinations=("q",))]
        result = plan_neighbor("con", messages, summary(path_weights={"x": 0.4}))
        # Unreachable adds nothing to the sum but counts in n
        assert result.load == pytest.approx(0.2)
        assert result.weight == pytest.approx(0.8)
        assert result.connection == "con"
        assert result.peer == "peer"

    def test_no_messages(self):
        result = plan_neighbor("con", [], summary())
        assert result.load == 0.0
        assert result.weight == 1.0
        assert result.candidates == []


class TestAdmitNeighbors:
    """Tests for the stage-2 gate."""

    def test_gate_stops_after_first(self):
        """Weights 0.4, 0.8, 0.9 at p=0.5: q drops to 0.4 after the first."""
        plans = [plan(0.9), plan(0.4), plan(0.8)]
        admitted = admit_neighbors(plans, 0.5)
        assert [p.weight for p in admitted] == [0.4]

    def test_ascending_order(self):
        plans = [plan(0.9), plan(0.4), plan(0.8)]
        admitted = admit_neighbors(plans, 1.0)
        assert [p.weight for p in admitted] == [0.4, 0.8, 0.9]

    def test_zero_probability_admits_nothing(self):
        assert admit_neighbors([plan(0.5)], 0.0) == []

    def test_idle_neighbours_all_pass(self):
        """Weight 1 never lowers q."""
        plans = [plan(1.0), plan(1.0), plan(1.0)]
        assert len(admit_neighbors(plans, 0.5)) == 3

    def test_empty(self):
        assert admit_neighbors([], 0.5) == []
