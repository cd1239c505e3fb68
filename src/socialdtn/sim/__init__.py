"""
Simulation harness: the external collaborators, in memory.

- World / Host / SimConnection / MessageBuffer / SimClock
- Contact traces: parsed from event lines or generated with structure
"""

from socialdtn.sim.trace import (
    ContactEvent,
    MessageEvent,
    parse_event_lines,
    random_contact_trace,
    random_message_events,
    sort_events,
)
from socialdtn.sim.world import Host, MessageBuffer, SimClock, SimConnection, World, WorldConfig

__all__ = [
    "ContactEvent",
    "MessageEvent",
    "parse_event_lines",
    "random_contact_trace",
    "random_message_events",
    "sort_events",
    "Host",
    "MessageBuffer",
    "SimClock",
    "SimConnection",
    "World",
    "WorldConfig",
]
