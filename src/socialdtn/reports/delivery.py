"""
DeliveryReport: how many messages arrived, how fast, over how many hops.

Counts follow the usual DTN report conventions:
- delivered: first deliveries only, repeated copies do not count
- relayed: every completed transfer, including deliveries
- overhead ratio: (relayed - delivered) / delivered
"""

from __future__ import annotations
from typing import Hashable, TYPE_CHECKING

import numpy as np

from socialdtn.reports.base import Report

if TYPE_CHECKING:
    from socialdtn.core.messages import Message


class DeliveryReport(Report):
    """Message delivery statistics, collected as a listener."""

    def __init__(self):
        self.created: dict[str, float] = {}
        self.latencies: dict[str, float] = {}
        self.hop_counts: dict[str, int] = {}
        self.relayed = 0
        self.dropped = 0
        self.removed = 0

    def new_message(self, message: "Message") -> None:
        self.created[message.id] = message.creation_time

    def message_transferred(
        self,
        message: "Message",
        from_host: Hashable,
        to_host: Hashable,
        first_delivery: bool,
    ) -> None:
        self.relayed += 1
        if first_delivery and message.id not in self.latencies:
            receive_time = message.receive_time if message.receive_time is not None else 0.0
            self.latencies[message.id] = receive_time - message.creation_time
            self.hop_counts[message.id] = message.hop_count

    def message_deleted(self, message: "Message", host: Hashable, dropped: bool) -> None:
        if dropped:
            self.dropped += 1
        else:
            self.removed += 1

    @property
    def delivered(self) -> int:
        return len(self.latencies)

    def delivery_ratio(self) -> float:
        if not self.created:
            return 0.0
        return self.delivered / len(self.created)

    def overhead_ratio(self) -> float:
        if self.delivered == 0:
            return float("nan")
        return (self.relayed - self.delivered) / self.delivered

    def latency_array(self) -> np.ndarray:
        return np.fromiter(self.latencies.values(), dtype=np.float64, count=len(self.latencies))

    def get_measurements(self) -> dict:
        latencies = self.latency_array()
        hops = np.fromiter(self.hop_counts.values(), dtype=np.float64, count=len(self.hop_counts))
        return {
            "created": len(self.created),
            "delivered": self.delivered,
            "relayed": self.relayed,
            "dropped": self.dropped,
            "removed": self.removed,
            "delivery_ratio": self.delivery_ratio(),
            "overhead_ratio": self.overhead_ratio(),
            "latency_avg": float(latencies.mean()) if latencies.size else float("nan"),
            "latency_median": float(np.median(latencies)) if latencies.size else float("nan"),
            "hopcount_avg": float(hops.mean()) if hops.size else float("nan"),
        }
