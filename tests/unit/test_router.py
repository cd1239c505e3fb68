"""Unit tests for DecisionEngineRouter."""

import pytest

import socialdtn.routing.router as router_module
from socialdtn.core import Intent, Message, SimError, TransferResult
from socialdtn.decision import MDMDecisionEngine
from socialdtn.reports import DeliveryReport


class Recorder:
    """Listener that records every notification."""

    def __init__(self):
        self.created = []
        self.transferred = []
        self.deleted = []

    def new_message(self, message):
        self.created.append(message.id)

    def message_transferred(self, message, from_host, to_host, first_delivery):
        self.transferred.append((message.id, from_host, to_host, first_delivery))

    def message_deleted(self, message, host, dropped):
        self.deleted.append((message.id, host, dropped))


class DropAll:
    """Application that swallows every message."""

    def handle(self, message, host):
        return None


class DeleteAfterSend(MDMDecisionEngine):
    """Engine that drops every message once it has been sent."""

    def should_delete_sent_message(self, message, other):
        return True


class DeleteOldCopies(MDMDecisionEngine):
    """Engine that drops a message whenever a peer reports it already has it."""

    def __init__(self, config, owner):
        super().__init__(config, owner)
        self.asked = []

    def should_delete_old_message(self, message, reporter):
        self.asked.append((message.id, reporter))
        return True


@pytest.fixture
def use_engine(monkeypatch):
    """Make every router built afterwards run the given engine class."""

    def _use(engine_cls):
        monkeypatch.setattr(router_module, "create_decision_engine", engine_cls)

    return _use


@pytest.fixture
def count_exchanges(monkeypatch):
    calls = []
    original = MDMDecisionEngine.do_exchange_for_new_connection

    def counting(self, peer, now):
        calls.append((self.owner, peer.owner))
        return original(self, peer, now)

    monkeypatch.setattr(MDMDecisionEngine, "do_exchange_for_new_connection", counting)
    return calls


class TestExchangeOnce:
    """The pairwise exchange runs exactly once per connection."""

    def test_first_observer_runs_it(self, make_world, count_exchanges):
        world = make_world(["a", "b"])
        world.connect("a", "b")
        assert count_exchanges == [("a", "b")]

    def test_reverse_order(self, make_world, count_exchanges):
        world = make_world(["a", "b"])
        world.connect("b", "a")
        assert count_exchanges == [("b", "a")]

    def test_once_per_connection(self, make_world, count_exchanges):
        world = make_world(["a", "b"])
        world.connect("a", "b")
        world.disconnect("a", "b")
        world.connect("b", "a")
        assert len(count_exchanges) == 2


class TestIntents:
    """Outgoing queue consistency."""

    def test_relay_selection_queues_intent(self, make_world):
        world = make_world(["a", "b"])
        world.create_message("a", ["b"], 500, message_id="M1")
        con = world.connect("a", "b")

        assert world.host("a").router.select_relays() == 1
        assert [i.message_id for i in world.host("a").router.outgoing.for_connection(con)] == ["M1"]

    def test_connection_down_drops_intents(self, make_world):
        world = make_world(["a", "b", "c"])
        world.create_message("a", ["b"], 500, message_id="M1")
        con_ab = world.connect("a", "b")
        con_ac = world.connect("a", "c")
        router = world.host("a").router
        router.select_relays()
        assert router.outgoing.for_connection(con_ab)

        world.disconnect("a", "b")

        assert router.outgoing.for_connection(con_ab) == []
        assert all(i.connection is con_ac for i in router.outgoing)

    def test_delete_drops_intents(self, make_world):
        world = make_world(["a", "b", "c"])
        world.create_message("a", ["b"], 500, message_id="M1")
        world.create_message("a", ["c"], 500, message_id="M2")
        world.connect("a", "b")
        world.connect("a", "c")
        router = world.host("a").router
        router.select_relays()

        router.delete_message("M1", drop=False)

        assert all(i.message_id != "M1" for i in router.outgoing)
        assert any(i.message_id == "M2" for i in router.outgoing)


class TestTransfers:
    """Transfer lifecycle through the harness."""

    def test_delivery(self, make_world):
        report = DeliveryReport()
        world = make_world(["a", "b"], listeners=[report])
        world.create_message("a", ["b"], 500, message_id="M1")
        world.connect("a", "b")

        world.step()  # transfer starts
        world.step()  # transfer completes

        b = world.host("b").router
        assert b.is_delivered_message("M1")
        assert not b.has_message("M1")
        assert b.delivered_messages["M1"].hops == ["a", "b"]
        assert world.host("a").router.store.get("M1").hops == ["a"]
        assert report.delivered == 1
        assert report.latencies["M1"] == pytest.approx(2.0)

    def test_relay_stores_copy(self, make_world):
        world = make_world(["a", "b", "c"])
        world.create_message("a", ["c"], 500, message_id="M1")
        world.connect("a", "b")
        world.step()
        world.step()
        assert world.host("b").router.has_message("M1")
        assert not world.host("b").router.is_delivered_message("M1")

    def test_app_drop_still_notifies(self, make_world):
        recorder = Recorder()
        world = make_world(["a", "b", "c"], applications=[DropAll()], listeners=[recorder])
        world.create_message("a", ["c"], 500, message_id="M1")
        world.connect("a", "b")
        world.step()
        world.step()

        assert not world.host("b").router.has_message("M1")
        assert ("M1", "a", "b", False) in recorder.transferred

    def test_busy_connection(self, make_world):
        world = make_world(["a", "b"])
        m = world.create_message("a", ["b"], 500, message_id="M1")
        con = world.connect("a", "b")
        router = world.host("a").router

        assert router.start_transfer(m, con) == TransferResult.RCV_OK
        assert router.is_transferring()
        assert router.start_transfer(m, con) == TransferResult.TRY_LATER_BUSY

    def test_denied_old(self, make_world):
        world = make_world(["a", "b"])
        m = world.create_message("a", ["c"], 500, message_id="M1")
        world.create_message("b", ["c"], 500, message_id="M1")
        con = world.connect("a", "b")
        assert world.host("a").router.start_transfer(m, con) == TransferResult.DENIED_OLD

    def test_denied_no_space(self, make_world):
        world = make_world(["a", "b"], buffer_size=1_000)
        big = Message(id="BIG", source="a", destinations={"b"}, size=5_000)
        result = world.host("b").router.receive_message(big, world.host("a"))
        assert result == TransferResult.DENIED_NO_SPACE

    def test_tombstones(self, make_world):
        recorder = Recorder()
        world = make_world(["a", "b"], listeners=[recorder], tombstones=True)
        world.create_message("a", ["b"], 500, message_id="M1")
        world.connect("a", "b")
        world.step()
        world.step()  # delivered, then the retry is refused

        a = world.host("a").router
        assert not a.has_message("M1")
        assert "M1" in a.tombstones
        assert ("M1", "a", False) in recorder.deleted

    def test_no_tombstones_keeps_message(self, make_world):
        world = make_world(["a", "b"])
        world.create_message("a", ["b"], 500, message_id="M1")
        world.connect("a", "b")
        world.step()
        world.step()
        assert world.host("a").router.has_message("M1")


class TestTransferDone:
    """Bookkeeping once a sent transfer completes."""

    def test_intent_removed(self, make_world):
        world = make_world(["a", "b"])
        world.create_message("a", ["c"], 500, message_id="M1")
        con = world.connect("a", "b")
        router = world.host("a").router

        world.step()  # transfer starts
        assert Intent("M1", con) in router.outgoing

        world.clock.advance(1.0)
        assert world.complete_transfers() == 1

        assert Intent("M1", con) not in router.outgoing
        assert router.has_message("M1")

    def test_delete_sent_purges_every_connection(self, make_world, use_engine):
        use_engine(DeleteAfterSend)
        recorder = Recorder()
        world = make_world(["a", "b", "c"], listeners=[recorder])
        world.create_message("a", ["z"], 500, message_id="M1")
        con_ab = world.connect("a", "b")
        con_ac = world.connect("a", "c")
        router = world.host("a").router

        world.step()  # one transfer starts, the other intent waits
        assert Intent("M1", con_ab) in router.outgoing
        assert Intent("M1", con_ac) in router.outgoing

        world.clock.advance(1.0)
        world.complete_transfers()

        assert not router.has_message("M1")
        assert all(i.message_id != "M1" for i in router.outgoing)
        assert ("M1", "a", False) in recorder.deleted


class TestDeleteDelivered:
    """Peers reporting an old or delivered copy, with delete_delivered on."""

    def test_denied_old_asks_engine(self, make_world, use_engine):
        use_engine(DeleteOldCopies)
        world = make_world(["a", "b"], delete_delivered=True)
        m = world.create_message("a", ["c"], 500, message_id="M1")
        world.create_message("b", ["c"], 500, message_id="M1")
        con = world.connect("a", "b")
        router = world.host("a").router

        assert router.start_transfer(m, con) == TransferResult.DENIED_OLD
        assert router.decision_engine.asked == [("M1", "b")]
        assert not router.has_message("M1")

    def test_denied_delivered_asks_engine(self, make_world, use_engine):
        use_engine(DeleteOldCopies)
        world = make_world(["a", "b"], delete_delivered=True)
        world.create_message("a", ["b"], 500, message_id="M1")
        world.connect("a", "b")
        world.step()
        world.step()  # delivered, then the retry is refused

        router = world.host("a").router
        assert ("M1", "b") in router.decision_engine.asked
        assert not router.has_message("M1")
        assert "M1" not in router.tombstones

    def test_engine_can_keep(self, make_world):
        world = make_world(["a", "b"], delete_delivered=True)
        m = world.create_message("a", ["c"], 500, message_id="M1")
        world.create_message("b", ["c"], 500, message_id="M1")
        con = world.connect("a", "b")
        router = world.host("a").router

        assert router.start_transfer(m, con) == TransferResult.DENIED_OLD
        assert router.has_message("M1")

    def test_off_by_default(self, make_world, use_engine):
        use_engine(DeleteOldCopies)
        world = make_world(["a", "b"])
        m = world.create_message("a", ["c"], 500, message_id="M1")
        world.create_message("b", ["c"], 500, message_id="M1")
        con = world.connect("a", "b")
        router = world.host("a").router

        router.start_transfer(m, con)
        assert router.decision_engine.asked == []
        assert router.has_message("M1")


class TestUpdate:
    """The periodic tick."""

    def test_prunes_intents_for_missing_messages(self, make_world):
        world = make_world(["a", "b"])
        world.create_message("a", ["c"], 500, message_id="M1")
        world.create_message("a", ["c"], 500, message_id="M2")
        con = world.connect("a", "b")
        router = world.host("a").router
        router.select_relays()
        assert len(router.outgoing) == 2

        # Store changed behind the router's back
        router.store.remove("M1")
        router.update()

        assert [i.message_id for i in router.outgoing] == ["M2"]
        assert con.message.id == "M2"


class TestFinalDestination:
    """Delivery bookkeeping at a destination."""

    def test_app_drop_still_delivers(self, make_world):
        recorder = Recorder()
        world = make_world(["a", "b"], applications=[DropAll()], listeners=[recorder])
        world.create_message("a", ["b"], 500, message_id="M1")
        world.connect("a", "b")
        world.step()
        world.step()

        b = world.host("b").router
        assert b.is_delivered_message("M1")
        assert not b.has_message("M1")
        assert ("M1", "a", "b", True) in recorder.transferred

    def test_repeat_copy_not_first_delivery(self, make_world):
        recorder = Recorder()
        world = make_world(["a", "b"], listeners=[recorder])
        world.create_message("a", ["b"], 500, message_id="M1")
        con = world.connect("a", "b")
        world.step()
        world.step()
        a, b = world.host("a").router, world.host("b").router
        assert b.is_delivered_message("M1")

        # Stage a second copy directly; the delivered check would refuse it
        b._incoming[("M1", "a")] = a.store.get("M1").replicate()
        b.message_transferred("M1", world.host("a"))

        flags = [flag for mid, _, _, flag in recorder.transferred if mid == "M1"]
        assert flags == [True, False]
        assert con.is_up


class TestBuffer:
    """Buffer management."""

    def test_oldest_evicted(self, make_world):
        recorder = Recorder()
        world = make_world(["a"], buffer_size=1_000, listeners=[recorder])
        for i in range(3):
            world.create_message("a", ["b"], 400, message_id=f"M{i}")
            world.clock.advance(1.0)

        router = world.host("a").router
        assert not router.has_message("M0")
        assert router.has_message("M1") and router.has_message("M2")
        assert recorder.deleted == [("M0", "a", True)]

    def test_oversized_discarded(self, make_world):
        world = make_world(["a"], buffer_size=1_000)
        assert world.create_message("a", ["b"], 2_000) is None


class TestErrors:
    """Internal consistency violations raise SimError."""

    def test_transferred_without_staging(self, make_world):
        world = make_world(["a", "b"])
        with pytest.raises(SimError):
            world.host("b").router.message_transferred("M1", world.host("a"))

    def test_delete_missing(self, make_world):
        world = make_world(["a"])
        with pytest.raises(SimError):
            world.host("a").router.delete_message("M1", drop=False)

    def test_transfer_done_on_idle_connection(self, make_world):
        world = make_world(["a", "b"])
        con = world.connect("a", "b")
        with pytest.raises(SimError):
            world.host("a").router.transfer_done(con)


def test_peer_summary(make_world):
    world = make_world(["a"], buffer_size=1_000)
    world.create_message("a", ["b"], 300, message_id="M1")
    summary = world.host("a").router.peer_summary()
    assert summary.address == "a"
    assert summary.free_buffer == 700
    assert summary.message_ids == {"M1"}
