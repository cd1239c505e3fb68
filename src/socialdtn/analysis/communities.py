"""
Offline analysis of detected communities.

IMPORTANT: routers never see any of this. These functions read the final
state of every node at once, which no node can do during a run.

- familiarity_matrix: who considers whom familiar, as an adjacency matrix
- global_communities: connected components of the mutual-familiarity graph
- community_agreement: how well each local view matches its component
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Hashable, Iterable, Sequence, TYPE_CHECKING

import numpy as np
from scipy import sparse
from scipy.sparse.csgraph import connected_components

if TYPE_CHECKING:
    from socialdtn.sim.world import Host


def _detector(host: "Host"):
    return host.router.decision_engine.community


def familiarity_matrix(hosts: Sequence["Host"], mutual: bool = True) -> np.ndarray:
    """
    Adjacency matrix of the familiarity relation.

    Args:
        hosts: Hosts in the order rows and columns should follow
        mutual: If True, keep only edges both ends agree on

    Returns:
        [n, n] bool array, A[i, j] = host j is familiar to host i
    """
    index = {h.address: i for i, h in enumerate(hosts)}
    n = len(hosts)
    adjacency = np.zeros((n, n), dtype=bool)
    for i, host in enumerate(hosts):
        for peer in _detector(host).get_familiar_set():
            j = index.get(peer)
            if j is not None:
                adjacency[i, j] = True
    if mutual:
        adjacency &= adjacency.T
    return adjacency


def global_communities(hosts: Sequence["Host"]) -> list[frozenset]:
    """
    Connected components of the mutual-familiarity graph.

    This is the coarse ground truth the distributed detection
    approximates. Isolated hosts form singleton components.
    """
    adjacency = familiarity_matrix(hosts, mutual=True)
    n_components, labels = connected_components(
        sparse.csr_matrix(adjacency), directed=False
    )
    components = [set() for _ in range(n_components)]
    for host, label in zip(hosts, labels):
        components[label].add(host.address)
    return [frozenset(c) for c in components]


@dataclass
class AgreementResult:
    """Per-host agreement between local community and global component."""

    addresses: list
    jaccard: np.ndarray
    mean_jaccard: float
    exact_matches: int


def community_agreement(hosts: Sequence["Host"]) -> AgreementResult:
    """Jaccard index of each host's local community vs. its global component."""
    component_of = {}
    for component in global_communities(hosts):
        for address in component:
            component_of[address] = component

    scores = np.zeros(len(hosts), dtype=np.float64)
    exact = 0
    for i, host in enumerate(hosts):
        local = _detector(host).get_local_community()
        component = component_of[host.address]
        scores[i] = len(local & component) / len(local | component)
        exact += int(local == component)

    return AgreementResult(
        addresses=[h.address for h in hosts],
        jaccard=scores,
        mean_jaccard=float(scores.mean()) if scores.size else 0.0,
        exact_matches=exact,
    )


def community_size_stats(hosts: Iterable["Host"]) -> dict:
    """Summary statistics of local community sizes."""
    sizes = np.array(
        [len(_detector(h).get_local_community()) for h in hosts], dtype=np.float64
    )
    if sizes.size == 0:
        return {"n_hosts": 0, "mean": 0.0, "std": 0.0, "min": 0, "max": 0}
    return {
        "n_hosts": int(sizes.size),
        "mean": float(sizes.mean()),
        "std": float(sizes.std()),
        "min": int(sizes.min()),
        "max": int(sizes.max()),
    }


def path_weight_matrix(hosts: Sequence["Host"]) -> np.ndarray:
    """
    Cached path weights as a matrix; NaN where unknown.

    W[i, j] is host i's path weight towards host j.
    """
    index = {h.address: i for i, h in enumerate(hosts)}
    n = len(hosts)
    weights = np.full((n, n), np.nan)
    for i, host in enumerate(hosts):
        for peer, weight in host.router.decision_engine.path_weights().items():
            j = index.get(peer)
            if j is not None:
                weights[i, j] = weight
    return weights


def addresses_of(hosts: Iterable["Host"]) -> list[Hashable]:
    return [h.address for h in hosts]
