"""
Core primitives shared by every layer.

This layer knows NOTHING about communities or path weights.
It only knows:
- Messages, contact intervals and transfer result codes
- The outgoing intent queue
- Configuration dataclasses
- The protocols of external collaborators (clock, connections, stores)
"""

from socialdtn.core.config import DecisionEngineConfig, KCliqueConfig, RouterConfig
from socialdtn.core.errors import PathWeightError, SimError
from socialdtn.core.messages import (
    ContactInterval,
    Intent,
    Message,
    OutgoingQueue,
    TransferResult,
)

__all__ = [
    "DecisionEngineConfig",
    "KCliqueConfig",
    "RouterConfig",
    "PathWeightError",
    "SimError",
    "ContactInterval",
    "Intent",
    "Message",
    "OutgoingQueue",
    "TransferResult",
]
