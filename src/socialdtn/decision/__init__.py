"""
Decision engines: policy answers for the forwarding controller.

- MDMDecisionEngine: social path-weight engine over K-Clique communities
- UNKNOWN: path weight for nodes the engine has no route to
"""

from socialdtn.decision.base import UNKNOWN, DecisionEngine, PathWeight
from socialdtn.decision.mdm import MDMDecisionEngine, create_decision_engine

__all__ = [
    "UNKNOWN",
    "DecisionEngine",
    "PathWeight",
    "MDMDecisionEngine",
    "create_decision_engine",
]
