"""
CommunityReport: community growth over time.

Sampled between simulation steps. Each sample records, per host, the
size of its familiar set and local community, so growth curves and the
never-shrinks property can be checked after a run.
"""

from __future__ import annotations
from typing import Hashable, Iterable, TYPE_CHECKING

import numpy as np

from socialdtn.reports.base import Report

if TYPE_CHECKING:
    from socialdtn.sim.world import Host


class CommunityReport(Report):
    """Per-host familiar-set and community sizes, sampled over time."""

    def __init__(self):
        self.times: list[float] = []
        self.addresses: list[Hashable] = []
        self._community_sizes: list[list[int]] = []
        self._familiar_sizes: list[list[int]] = []

    def sample(self, time: float, hosts: Iterable["Host"]) -> None:
        hosts = list(hosts)
        if not self.addresses:
            self.addresses = [h.address for h in hosts]

        by_address = {h.address: h for h in hosts}
        community, familiar = [], []
        for address in self.addresses:
            detector = by_address[address].router.decision_engine.community
            community.append(len(detector.get_local_community()))
            familiar.append(len(detector.get_familiar_set()))

        self.times.append(time)
        self._community_sizes.append(community)
        self._familiar_sizes.append(familiar)

    @property
    def community_sizes(self) -> np.ndarray:
        """Shape [n_samples, n_hosts]."""
        return self._as_array(self._community_sizes)

    @property
    def familiar_sizes(self) -> np.ndarray:
        """Shape [n_samples, n_hosts]."""
        return self._as_array(self._familiar_sizes)

    def _as_array(self, rows: list[list[int]]) -> np.ndarray:
        if not rows:
            return np.zeros((0, len(self.addresses)), dtype=np.int64)
        return np.asarray(rows, dtype=np.int64)

    def is_monotone(self) -> bool:
        """True if no host's community ever shrank between samples."""
        sizes = self.community_sizes
        if sizes.shape[0] < 2:
            return True
        return bool(np.all(np.diff(sizes, axis=0) >= 0))

    def get_measurements(self) -> dict:
        sizes = self.community_sizes
        final = sizes[-1] if sizes.shape[0] else np.zeros(0, dtype=np.int64)
        return {
            "n_samples": len(self.times),
            "times": list(self.times),
            "final_mean_community": float(final.mean()) if final.size else 0.0,
            "final_max_community": int(final.max()) if final.size else 0,
            "monotone": self.is_monotone(),
        }
