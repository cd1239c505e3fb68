"""
Contact and message traces that drive the harness.

Two sources of contacts:
- parse_event_lines: standard connection event lines,
  "<time> CONN <host1> <host2> up|down"
- random_contact_trace: synthetic contacts with community structure.
  Hosts are split into groups; pairs inside a group meet far more often
  than pairs across groups, which is what K-Clique detection should find.
"""

from __future__ import annotations
from dataclasses import dataclass
from itertools import combinations
from typing import Hashable, Iterable, Sequence

import numpy as np


@dataclass(frozen=True)
class ContactEvent:
    """A connection between two hosts going up or down."""

    time: float
    host_a: Hashable
    host_b: Hashable
    up: bool


@dataclass(frozen=True)
class MessageEvent:
    """A message created at source at the given time."""

    time: float
    message_id: str
    source: Hashable
    destinations: frozenset
    size: int


def parse_event_lines(lines: Iterable[str]) -> list[ContactEvent]:
    """
    Parse connection event lines.

    Blank lines and lines starting with '#' are skipped. Host ids that
    look like integers become ints.

    Raises:
        ValueError: malformed line
    """
    events = []
    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        if len(parts) != 5 or parts[1] != "CONN":
            raise ValueError(f"Line {lineno}: expected '<time> CONN <a> <b> up|down', got {line!r}")
        state = parts[4].lower()
        if state not in ("up", "down"):
            raise ValueError(f"Line {lineno}: connection state must be up or down, got {parts[4]!r}")
        events.append(
            ContactEvent(
                time=float(parts[0]),
                host_a=_host_id(parts[2]),
                host_b=_host_id(parts[3]),
                up=state == "up",
            )
        )
    return sort_events(events)


def _host_id(token: str) -> Hashable:
    return int(token) if token.lstrip("-").isdigit() else token


def sort_events(events: Iterable[ContactEvent]) -> list[ContactEvent]:
    """Time order; at equal times, downs go before ups."""
    return sorted(events, key=lambda e: (e.time, e.up))


def random_contact_trace(
    rng: np.random.Generator,
    groups: Sequence[Sequence[Hashable]],
    end_time: float,
    intra_rate: float = 1 / 600.0,
    inter_rate: float = 1 / 6000.0,
    mean_duration: float = 120.0,
) -> list[ContactEvent]:
    """
    Synthetic contact trace with group structure.

    Each pair of hosts alternates between apart and together. Time apart
    is exponential with the pair's meeting rate, contact duration is
    exponential with mean_duration.

    Args:
        rng: Random generator (use np.random.default_rng(seed))
        groups: Host ids per community
        end_time: Trace length in seconds
        intra_rate: Meetings per second for pairs in the same group
        inter_rate: Meetings per second for pairs in different groups
        mean_duration: Mean contact length in seconds

    Returns:
        Time-ordered ContactEvents; every up has a matching down
    """
    group_of = {host: g for g, members in enumerate(groups) for host in members}
    events = []
    for a, b in combinations(list(group_of), 2):
        rate = intra_rate if group_of[a] == group_of[b] else inter_rate
        if rate <= 0:
            continue
        t = rng.exponential(1.0 / rate)
        while t < end_time:
            duration = max(rng.exponential(mean_duration), 1.0)
            end = min(t + duration, end_time)
            events.append(ContactEvent(float(t), a, b, True))
            events.append(ContactEvent(float(end), a, b, False))
            t = end + rng.exponential(1.0 / rate)
    return sort_events(events)


def random_message_events(
    rng: np.random.Generator,
    hosts: Sequence[Hashable],
    end_time: float,
    interval: float = 300.0,
    size_range: tuple[int, int] = (500, 1000),
    n_destinations: int = 1,
    prefix: str = "M",
) -> list[MessageEvent]:
    """
    Messages created at exponential intervals from random sources.

    Destinations are drawn without replacement from hosts other than the
    source.
    """
    hosts = list(hosts)
    events = []
    t = rng.exponential(interval)
    counter = 1
    while t < end_time:
        source_idx = int(rng.integers(len(hosts)))
        others = [h for i, h in enumerate(hosts) if i != source_idx]
        k = min(n_destinations, len(others))
        picks = rng.choice(len(others), size=k, replace=False)
        events.append(
            MessageEvent(
                time=float(t),
                message_id=f"{prefix}{counter}",
                source=hosts[source_idx],
                destinations=frozenset(others[int(i)] for i in picks),
                size=int(rng.integers(size_range[0], size_range[1] + 1)),
            )
        )
        counter += 1
        t += rng.exponential(interval)
    return events
