"""
World: a minimal discrete-event harness for DecisionEngineRouter.

The harness provides the collaborators the routing core consumes and
nothing more: a clock, per-host message buffers, connections with
size/speed transfer timing, and replay of contact and message traces.
There is no mobility, radio or link model; a contact is simply an
up event followed by a down event.

Each step:
1. Apply due trace events (connections, new messages) in time order
2. Complete transfers whose time has come
3. Tick every router
"""

from __future__ import annotations
import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Hashable, Iterable, Iterator, Sequence, TYPE_CHECKING

from socialdtn.core.config import RouterConfig
from socialdtn.core.messages import Message, TransferResult
from socialdtn.routing.router import DecisionEngineRouter
from socialdtn.sim.trace import ContactEvent, MessageEvent

if TYPE_CHECKING:
    from socialdtn.core.interfaces import Application, MessageListener


logger = logging.getLogger(__name__)


@dataclass
class WorldConfig:
    """Configuration for the harness."""

    buffer_size: int = 5_000_000        # Bytes per host
    transfer_speed: float = 250_000.0   # Bytes per second per connection
    update_interval: float = 1.0        # Seconds between router ticks
    router: RouterConfig = field(default_factory=RouterConfig)

    def __post_init__(self):
        if self.buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        if self.transfer_speed <= 0:
            raise ValueError("transfer_speed must be positive")
        if self.update_interval <= 0:
            raise ValueError("update_interval must be positive")


class SimClock:
    """Monotonic simulation clock."""

    def __init__(self, start: float = 0.0):
        self._time = float(start)

    @property
    def time(self) -> float:
        return self._time

    def advance(self, dt: float):
        if dt < 0:
            raise ValueError(f"Cannot move the clock backwards by {dt}")
        self._time += dt

    def set_time(self, t: float):
        if t < self._time:
            raise ValueError(f"Cannot move the clock from {self._time} back to {t}")
        self._time = float(t)


class MessageBuffer:
    """Per-host message store with a byte capacity."""

    def __init__(self, capacity: int):
        self._capacity = int(capacity)
        self._messages: dict[str, Message] = {}
        self._used = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def used(self) -> int:
        return self._used

    @property
    def free_space(self) -> int:
        return self._capacity - self._used

    def add(self, message: Message):
        previous = self._messages.pop(message.id, None)
        if previous is not None:
            self._used -= previous.size
        self._messages[message.id] = message
        self._used += message.size

    def remove(self, message_id: str) -> Message | None:
        message = self._messages.pop(message_id, None)
        if message is not None:
            self._used -= message.size
        return message

    def get(self, message_id: str) -> Message | None:
        return self._messages.get(message_id)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._messages

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages.values()))

    def __len__(self) -> int:
        return len(self._messages)


class SimConnection:
    """
    A bidirectional link between two hosts.

    One message can be in flight at a time. A transfer of size bytes
    completes size / speed seconds after it starts.
    """

    def __init__(self, host_a: "Host", host_b: "Host", speed: float, clock: SimClock):
        self.host_a = host_a
        self.host_b = host_b
        self.speed = speed
        self.clock = clock

        self._up = True
        self._message: Message | None = None
        self._from_host: Host | None = None
        self._done_at = 0.0

    @property
    def is_up(self) -> bool:
        return self._up

    @property
    def message(self) -> Message | None:
        return self._message

    @property
    def from_host(self) -> "Host | None":
        return self._from_host

    def other_node(self, host) -> "Host":
        if host.address == self.host_a.address:
            return self.host_b
        if host.address == self.host_b.address:
            return self.host_a
        raise ValueError(f"{host.address} is not an endpoint of {self}")

    def is_ready_for_transfer(self) -> bool:
        return self._up and self._message is None

    def start_transfer(self, from_host: "Host", message: Message) -> TransferResult:
        if not self.is_ready_for_transfer():
            return TransferResult.TRY_LATER_BUSY

        receiver = self.other_node(from_host)
        result = receiver.router.receive_message(message, from_host)
        if result == TransferResult.RCV_OK:
            self._message = message
            self._from_host = from_host
            self._done_at = self.clock.time + message.size / self.speed
        return result

    def is_message_transferred(self) -> bool:
        return self._message is not None and self.clock.time >= self._done_at

    def finalize_transfer(self):
        self._message = None
        self._from_host = None

    def abort_transfer(self):
        """Cut the transfer in flight and tell both ends."""
        if self._message is None:
            return
        receiver = self.other_node(self._from_host)
        receiver.router.message_aborted(self._message.id, self._from_host)
        self._from_host.router.transfer_aborted(self)
        self.finalize_transfer()

    def tear_down(self):
        self._up = False

    def __repr__(self) -> str:
        state = "up" if self._up else "down"
        return f"SimConnection({self.host_a.address}<->{self.host_b.address}, {state})"


class Host:
    """A node: address, buffer, open connections and its router."""

    def __init__(
        self,
        address: Hashable,
        config: WorldConfig,
        clock: SimClock,
        applications: Sequence["Application"] = (),
        listeners: Sequence["MessageListener"] = (),
    ):
        self.address = address
        self.store = MessageBuffer(config.buffer_size)
        self._connections: list[SimConnection] = []
        self.router = DecisionEngineRouter(
            config.router,
            self,
            self.store,
            clock,
            applications=applications,
            listeners=listeners,
        )

    @property
    def connections(self) -> list[SimConnection]:
        return list(self._connections)

    def add_connection(self, con: SimConnection):
        self._connections.append(con)

    def remove_connection(self, con: SimConnection):
        self._connections.remove(con)

    def __repr__(self) -> str:
        return f"Host({self.address!r})"


class World:
    """Drives a set of hosts through contact and message traces."""

    def __init__(
        self,
        addresses: Iterable[Hashable],
        config: WorldConfig | None = None,
        applications: Sequence["Application"] = (),
        listeners: Sequence["MessageListener"] = (),
    ):
        self.config = config or WorldConfig()
        self.clock = SimClock()
        self.listeners = list(listeners)
        self.hosts: dict[Hashable, Host] = {
            address: Host(address, self.config, self.clock, applications, self.listeners)
            for address in addresses
        }

        self._connections: dict[frozenset, SimConnection] = {}
        self._pending: list = []
        self._seq = itertools.count()

        self.contacts_opened = 0
        self.transfers_completed = 0
        self.messages_created = 0

    def host(self, address: Hashable) -> Host:
        return self.hosts[address]

    def connection_between(self, a: Hashable, b: Hashable) -> SimConnection | None:
        return self._connections.get(frozenset((a, b)))

    def connect(self, a: Hashable, b: Hashable) -> SimConnection:
        """
        Bring up a connection between a and b.

        Routers are told in argument order: a first, then b.
        """
        key = frozenset((a, b))
        if key in self._connections:
            return self._connections[key]

        host_a, host_b = self.hosts[a], self.hosts[b]
        con = SimConnection(host_a, host_b, self.config.transfer_speed, self.clock)
        self._connections[key] = con
        host_a.add_connection(con)
        host_b.add_connection(con)
        self.contacts_opened += 1

        host_a.router.connection_up(con)
        host_b.router.connection_up(con)
        return con

    def disconnect(self, a: Hashable, b: Hashable):
        """Tear down the connection between a and b, if there is one."""
        con = self._connections.pop(frozenset((a, b)), None)
        if con is None:
            logger.debug("disconnect %s-%s: no open connection", a, b)
            return

        con.abort_transfer()
        con.tear_down()
        host_a, host_b = self.hosts[a], self.hosts[b]
        host_a.remove_connection(con)
        host_b.remove_connection(con)

        host_a.router.connection_down(con)
        host_b.router.connection_down(con)

    def create_message(
        self,
        source: Hashable,
        destinations: Iterable[Hashable],
        size: int,
        message_id: str | None = None,
    ) -> Message | None:
        """Create a message at source. Returns None if its router discarded it."""
        self.messages_created += 1
        message = Message(
            id=message_id or f"M{self.messages_created}",
            source=source,
            destinations=frozenset(destinations),
            size=size,
            creation_time=self.clock.time,
        )
        if self.hosts[source].router.create_new_message(message):
            return message
        return None

    def schedule(self, events: Iterable[ContactEvent | MessageEvent]):
        """Queue trace events for replay by step() and run()."""
        for event in events:
            heapq.heappush(self._pending, (event.time, self._order(event), next(self._seq), event))

    @staticmethod
    def _order(event) -> int:
        # At equal times: downs, then ups, then messages
        if isinstance(event, ContactEvent):
            return 1 if event.up else 0
        return 2

    def _apply(self, event: ContactEvent | MessageEvent):
        if isinstance(event, ContactEvent):
            if event.up:
                self.connect(event.host_a, event.host_b)
            else:
                self.disconnect(event.host_a, event.host_b)
        else:
            self.create_message(event.source, event.destinations, event.size, event.message_id)

    def step(self, dt: float | None = None):
        """Advance by dt (default: update_interval)."""
        target = self.clock.time + (self.config.update_interval if dt is None else dt)

        while self._pending and self._pending[0][0] <= target:
            t, _, _, event = heapq.heappop(self._pending)
            self.clock.set_time(max(t, self.clock.time))
            self._apply(event)

        self.clock.set_time(target)
        self.complete_transfers()
        for host in self.hosts.values():
            host.router.update()

    def complete_transfers(self) -> int:
        """Deliver every in-flight message whose transfer time has elapsed."""
        done = 0
        for con in list(self._connections.values()):
            if not con.is_message_transferred():
                continue
            sender = con.from_host
            receiver = con.other_node(sender)
            receiver.router.message_transferred(con.message.id, sender)
            sender.router.transfer_done(con)
            con.finalize_transfer()
            done += 1
        self.transfers_completed += done
        return done

    def run(self, end_time: float, events: Iterable[ContactEvent | MessageEvent] = ()) -> dict:
        """
        Replay events until end_time.

        Returns:
            Summary of the run
        """
        self.schedule(events)
        while self.clock.time < end_time:
            self.step(min(self.config.update_interval, end_time - self.clock.time))

        summary = {
            "end_time": self.clock.time,
            "n_hosts": len(self.hosts),
            "contacts_opened": self.contacts_opened,
            "messages_created": self.messages_created,
            "transfers_completed": self.transfers_completed,
            "mean_community_size": self.mean_community_size(),
        }
        logger.info("run finished: %s", summary)
        return summary

    def mean_community_size(self) -> float:
        if not self.hosts:
            return 0.0
        sizes = [len(h.router.decision_engine.get_local_community()) for h in self.hosts.values()]
        return sum(sizes) / len(sizes)
