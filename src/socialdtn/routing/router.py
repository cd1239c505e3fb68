"""
DecisionEngineRouter: the forwarding controller.

The router keeps a queue of (message id, connection) intents so that the
periodic tick only has to walk the queue instead of recomputing which
message goes where. The queue changes on events:

- message created or received: per-message relay selection
- connection up: the engine is asked about every buffered message
- connection down: every intent on that connection is dropped
- transfer done / message deleted: intents for the message are dropped
- periodic tick: the two-stage relay selection refills the queue

Policy questions go to the decision engine.

The pairwise exchange on a new connection runs exactly once. Both
routers see the connection-up event one after the other; whichever sees
it first runs the exchange, which updates both engines from their
pre-exchange state, and tells the other router it is done. The second
router only records that.
"""

from __future__ import annotations
import logging
from typing import Hashable, Sequence, TYPE_CHECKING

from socialdtn.core.errors import SimError
from socialdtn.core.messages import Intent, OutgoingQueue, TransferResult
from socialdtn.decision.mdm import create_decision_engine
from socialdtn.routing.relay_selection import PeerSummary, admit_neighbors, plan_neighbor

if TYPE_CHECKING:
    from socialdtn.core.config import RouterConfig
    from socialdtn.core.interfaces import (
        Application,
        Clock,
        Connection,
        Host,
        MessageListener,
        MessageStore,
    )
    from socialdtn.core.messages import Message


logger = logging.getLogger(__name__)


class DecisionEngineRouter:
    """Event-driven forwarding controller for one host."""

    def __init__(
        self,
        config: "RouterConfig",
        host: "Host",
        store: "MessageStore",
        clock: "Clock",
        applications: Sequence["Application"] = (),
        listeners: Sequence["MessageListener"] = (),
    ):
        self.config = config
        self.host = host
        self.store = store
        self.clock = clock
        self.applications = list(applications)
        self.listeners = list(listeners)

        self.decision_engine = create_decision_engine(config.engine, host.address)
        self.outgoing = OutgoingQueue()

        self._exchanged: set = set()
        self._sending: list = []
        self._incoming: dict[tuple[str, Hashable], "Message"] = {}
        self._delivered: dict[str, "Message"] = {}
        self._tombstones: set[str] = set()

    @property
    def address(self) -> Hashable:
        return self.host.address

    @property
    def tombstones(self) -> frozenset:
        return frozenset(self._tombstones)

    def create_new_message(self, message: "Message") -> bool:
        """Admit a locally created message. Returns False if discarded."""
        if not self.decision_engine.new_message(message):
            return False
        if not self._make_room_for(message.size):
            logger.warning("%s: no room for new message %s", self.address, message.id)
            return False

        if message.receive_time is None:
            message.receive_time = message.creation_time
        self.store.add(message)
        for listener in self.listeners:
            listener.new_message(message)

        self.find_connections_for_new_message(message, self.host)
        return True

    def has_message(self, message_id: str) -> bool:
        return message_id in self.store

    def is_delivered_message(self, message_id: str) -> bool:
        return message_id in self._delivered

    @property
    def delivered_messages(self) -> dict[str, "Message"]:
        return dict(self._delivered)

    def delete_message(self, message_id: str, drop: bool) -> "Message":
        """
        Remove a message from the buffer and every intent referencing it.

        Args:
            message_id: Message to remove
            drop: True if removed for lack of space rather than by policy

        Raises:
            SimError: the message is not stored here
        """
        removed = self.store.remove(message_id)
        if removed is None:
            raise SimError(f"No message with ID {message_id} to delete at {self.address}")

        self.outgoing.purge_message(message_id)
        for listener in self.listeners:
            listener.message_deleted(removed, self.address, drop)
        return removed

    def _make_room_for(self, size: int) -> bool:
        """Evict oldest messages not being sent until size fits."""
        if size > self.store.capacity:
            return False

        while self.store.free_space < size:
            victim = self._oldest_evictable()
            if victim is None:
                return False
            logger.debug("%s: dropping %s to make room", self.address, victim.id)
            self.delete_message(victim.id, drop=True)
        return True

    def _oldest_evictable(self) -> "Message | None":
        in_flight = {con.message.id for con in self._sending if con.message is not None}
        candidates = [m for m in self.store if m.id not in in_flight]
        if not candidates:
            return None
        return min(candidates, key=lambda m: m.receive_time if m.receive_time is not None else m.creation_time)

    def connection_up(self, con: "Connection"):
        other = con.other_node(self.host)
        self.decision_engine.connection_up(other.address, self.clock.time)

        if self._should_notify_peer(con):
            self._do_exchange(con, other)
            other.router.did_exchange(con)

        for message in list(self.store):
            if self.decision_engine.should_send_message_to_host(message, other.address):
                self.outgoing.add(message.id, con)

    def connection_down(self, con: "Connection"):
        other = con.other_node(self.host)
        self.decision_engine.connection_down(other.router.decision_engine, self.clock.time)

        self._exchanged.discard(con)
        if con in self._sending:
            self._sending.remove(con)

        purged = self.outgoing.purge_connection(con)
        if purged:
            logger.debug("%s: dropped %d intents for %s", self.address, purged, other.address)

    def _should_notify_peer(self, con: "Connection") -> bool:
        return con not in self._exchanged

    def _do_exchange(self, con: "Connection", other: "Host"):
        self._exchanged.add(con)
        logger.debug("%s: exchange with %s", self.address, other.address)
        self.decision_engine.do_exchange_for_new_connection(
            other.router.decision_engine, self.clock.time
        )

    def did_exchange(self, con: "Connection"):
        """Called by the peer router once it ran the exchange for con."""
        self._exchanged.add(con)

    def start_transfer(self, message: "Message", con: "Connection") -> TransferResult:
        """Try to start sending message over con."""
        if not con.is_ready_for_transfer():
            return TransferResult.TRY_LATER_BUSY

        result = con.start_transfer(self.host, message)
        other = con.other_node(self.host)

        if result == TransferResult.RCV_OK:
            self._sending.append(con)
        elif self.config.tombstones and result == TransferResult.DENIED_DELIVERED:
            self.delete_message(message.id, drop=False)
            self._tombstones.add(message.id)
        elif (
            self.config.delete_delivered
            and result in (TransferResult.DENIED_OLD, TransferResult.DENIED_DELIVERED)
            and self.decision_engine.should_delete_old_message(message, other.address)
        ):
            self.delete_message(message.id, drop=False)

        return result

    def receive_message(self, message: "Message", from_host: "Host") -> TransferResult:
        """Peer-facing admission check for an incoming transfer."""
        if self.is_delivered_message(message.id) or (
            self.config.tombstones and message.id in self._tombstones
        ):
            return TransferResult.DENIED_DELIVERED
        if self.is_transferring():
            return TransferResult.TRY_LATER_BUSY
        if self.has_message(message.id):
            return TransferResult.DENIED_OLD
        if message.size > self.store.capacity:
            return TransferResult.DENIED_NO_SPACE

        incoming = message.replicate()
        incoming.add_hop(self.address)
        self._incoming[(message.id, from_host.address)] = incoming
        return TransferResult.RCV_OK

    def message_transferred(self, message_id: str, from_host: "Host") -> "Message":
        """
        A transfer to this host completed.

        Raises:
            SimError: the message was never staged
        """
        incoming = self._incoming.pop((message_id, from_host.address), None)
        if incoming is None:
            raise SimError(
                f"No message with ID {message_id} in the incoming buffer of {self.address}"
            )
        incoming.receive_time = self.clock.time

        outgoing = incoming
        for app in self.applications:
            outgoing = app.handle(outgoing, self.address)
            if outgoing is None:
                break

        message = incoming if outgoing is None else outgoing

        is_final = self.decision_engine.is_final_dest(message, self.address)
        first_delivery = is_final and not self.is_delivered_message(message.id)

        if outgoing is not None and self.decision_engine.should_save_received_message(
            message, self.address
        ):
            if self._make_room_for(message.size):
                self.store.add(message)
                self.find_connections_for_new_message(message, from_host)
            else:
                logger.warning("%s: no room to keep %s", self.address, message.id)

        if first_delivery:
            self._delivered[message.id] = message

        for listener in self.listeners:
            listener.message_transferred(message, from_host.address, self.address, first_delivery)
        return message

    def message_aborted(self, message_id: str, from_host: "Host") -> "Message | None":
        """A transfer to this host was cut before completing."""
        return self._incoming.pop((message_id, from_host.address), None)

    def transfer_aborted(self, con: "Connection"):
        """A transfer from this host was cut before completing."""
        if con in self._sending:
            self._sending.remove(con)

    def transfer_done(self, con: "Connection"):
        """
        A transfer from this host completed.

        Raises:
            SimError: nothing was in flight, or the sent message is gone
        """
        in_flight = con.message
        if in_flight is None:
            raise SimError(f"Transfer done on idle connection at {self.address}")
        if con in self._sending:
            self._sending.remove(con)

        transferred = self.store.get(in_flight.id)
        if transferred is None:
            raise SimError(f"No message with ID {in_flight.id} at {self.address} after transfer")

        self.outgoing.remove_first(transferred.id, con)

        other = con.other_node(self.host)
        if self.decision_engine.should_delete_sent_message(transferred, other.address):
            self.delete_message(transferred.id, drop=False)

    def is_transferring(self) -> bool:
        if self._sending:
            return True
        return any(not con.is_ready_for_transfer() for con in self.host.connections)

    def can_start_transfer(self) -> bool:
        return len(self.store) > 0 and len(self.host.connections) > 0

    def find_connections_for_new_message(self, message: "Message", from_host: "Host"):
        """Queue message for every neighbour the engine wants it sent to."""
        for con in self.host.connections:
            other = con.other_node(self.host)
            if other.address == from_host.address:
                continue
            if self.decision_engine.should_send_message_to_host(message, other.address):
                self.outgoing.add(message.id, con)

    def select_relays(self) -> int:
        """
        Run the two-stage relay selection over all open connections.

        Returns the number of intents added to the queue.
        """
        messages = list(self.store)
        plans = []
        for con in self.host.connections:
            if not con.is_up:
                continue
            other = con.other_node(self.host)
            plans.append(plan_neighbor(con, messages, other.router.peer_summary()))

        added = 0
        for plan in admit_neighbors(plans, self.config.admission_probability):
            for message in plan.candidates:
                if self.outgoing.add(message.id, plan.connection):
                    added += 1
        if added:
            logger.debug("%s: relay selection queued %d intents", self.address, added)
        return added

    def try_messages_for_connected(self) -> Intent | None:
        """Try intents front to back; stop at the first transfer that starts."""
        for intent in self.outgoing:
            message = self.store.get(intent.message_id)
            if message is None or not intent.connection.is_up:
                continue
            if self.start_transfer(message, intent.connection) == TransferResult.RCV_OK:
                return intent
        return None

    def update(self):
        """Periodic tick."""
        if not self.can_start_transfer() or self.is_transferring():
            return

        self.select_relays()
        self.try_messages_for_connected()
        self.outgoing.retain(lambda intent: intent.message_id in self.store)

    def peer_summary(self) -> PeerSummary:
        """Immutable self-report used by neighbours' relay selection."""
        return PeerSummary(
            address=self.address,
            free_buffer=self.store.free_space,
            message_ids=frozenset(m.id for m in self.store),
            path_weights=self.decision_engine.path_weights(),
        )
