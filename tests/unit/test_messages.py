"""Unit tests for messages and the outgoing intent queue."""

from socialdtn.core import ContactInterval, Intent, Message, OutgoingQueue, TransferResult


class TestTransferResult:
    """Tests for TransferResult codes."""

    def test_denied(self):
        assert TransferResult.DENIED_OLD.is_denied
        assert TransferResult.DENIED_DELIVERED.is_denied
        assert not TransferResult.RCV_OK.is_denied
        assert not TransferResult.TRY_LATER_BUSY.is_denied

    def test_codes(self):
        assert TransferResult.RCV_OK == 0
        assert TransferResult.DENIED_DELIVERED == -5


class TestMessage:
    """Tests for Message."""

    def test_defaults(self):
        m = Message(id="M1", source="a", destinations=["b", "c"], size=10)
        assert m.destinations == frozenset({"b", "c"})
        assert m.hops == ["a"]
        assert m.hop_count == 0

    def test_replicate_is_independent(self):
        m = Message(id="M1", source="a", destinations={"b"}, size=10, properties={"k": 1})
        copy = m.replicate()
        copy.add_hop("x")
        copy.properties["k"] = 2

        assert m.hops == ["a"]
        assert m.properties == {"k": 1}
        assert copy.hop_count == 1
        assert copy.id == m.id

    def test_contact_interval(self):
        assert ContactInterval(10.0, 25.0).duration == 15.0


class TestOutgoingQueue:
    """Tests for OutgoingQueue."""

    def test_add_refuses_duplicates(self):
        con = object()
        q = OutgoingQueue()
        assert q.add("M1", con)
        assert not q.add("M1", con)
        assert len(q) == 1
        assert Intent("M1", con) in q

    def test_order_preserved(self):
        con = object()
        q = OutgoingQueue()
        for mid in ("M3", "M1", "M2"):
            q.add(mid, con)
        assert [i.message_id for i in q] == ["M3", "M1", "M2"]

    def test_purge_connection(self):
        con_a, con_b = object(), object()
        q = OutgoingQueue()
        q.add("M1", con_a)
        q.add("M1", con_b)
        q.add("M2", con_a)

        assert q.purge_connection(con_a) == 2
        assert q.for_connection(con_a) == []
        assert len(q.for_connection(con_b)) == 1

    def test_purge_message(self):
        con_a, con_b = object(), object()
        q = OutgoingQueue()
        q.add("M1", con_a)
        q.add("M1", con_b)
        q.add("M2", con_a)

        assert q.purge_message("M1") == 2
        assert [i.message_id for i in q] == ["M2"]

    def test_remove_first(self):
        con = object()
        q = OutgoingQueue()
        q.add("M1", con)
        assert q.remove_first("M1", con)
        assert not q.remove_first("M1", con)
        assert len(q) == 0

    def test_retain(self):
        con = object()
        q = OutgoingQueue()
        for mid in ("M1", "M2", "M3"):
            q.add(mid, con)
        assert q.retain(lambda i: i.message_id != "M2") == 1
        assert [i.message_id for i in q] == ["M1", "M3"]

    def test_iteration_survives_mutation(self):
        con = object()
        q = OutgoingQueue()
        q.add("M1", con)
        q.add("M2", con)
        seen = []
        for intent in q:
            seen.append(intent.message_id)
            q.purge_message(intent.message_id)
        assert seen == ["M1", "M2"]
        assert len(q) == 0
