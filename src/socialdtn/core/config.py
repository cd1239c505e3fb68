"""
Configuration for routers, decision engines and community detection.

Everything a node needs is resolved here, once, before the node is
built. Each node then gets fresh engine and detector instances from the
factories; nothing is ever copied from a node that is already running.

The message TTL constant used by the path-weight formula lives in
KCliqueConfig rather than in any shared global.
"""

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping


ENGINE_VARIANTS = ("mdm",)
COMMUNITY_VARIANTS = ("kclique",)


@dataclass
class KCliqueConfig:
    """Configuration for K-Clique community detection."""

    k: int = 3                          # Admission needs >= K-1 shared members
    familiar_threshold: float = 700.0   # Cumulative contact seconds to become familiar
    msg_ttl: float = 300.0              # T in the path-weight formula

    def __post_init__(self):
        if self.k < 2:
            raise ValueError(f"K must be at least 2, got {self.k}")
        if self.familiar_threshold < 0:
            raise ValueError("familiar_threshold must be non-negative")
        if self.msg_ttl <= 0:
            raise ValueError("msg_ttl must be positive")


@dataclass
class DecisionEngineConfig:
    """Which decision engine and community detector a node runs."""

    engine: Literal["mdm"] = "mdm"
    community_algorithm: Literal["kclique"] = "kclique"
    kclique: KCliqueConfig = field(default_factory=KCliqueConfig)

    def __post_init__(self):
        if self.engine not in ENGINE_VARIANTS:
            raise ValueError(f"Unknown decision engine: {self.engine}")
        if self.community_algorithm not in COMMUNITY_VARIANTS:
            raise ValueError(f"Unknown community detection: {self.community_algorithm}")


@dataclass
class RouterConfig:
    """Configuration for the forwarding controller."""

    engine: DecisionEngineConfig = field(default_factory=DecisionEngineConfig)
    tombstones: bool = False            # Remember delivered ids, refuse them forever
    delete_delivered: bool = False      # Ask the engine about DENIED_OLD/DELIVERED copies
    admission_probability: float = 0.5  # p in the stage-2 gate: loop while q > 1 - p

    def __post_init__(self):
        if not 0.0 <= self.admission_probability <= 1.0:
            raise ValueError(
                f"admission_probability must be in [0, 1], got {self.admission_probability}"
            )

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "RouterConfig":
        """
        Build a config from flat settings keys.

        Accepts the key names used by scenario files:
        decisionEngine, communityDetectAlgo, K, familiarThreshold, msgTtl,
        tombstones, deleteDelivered, relayProbability. Missing keys fall
        back to the dataclass defaults.
        """
        defaults = KCliqueConfig()
        kclique = KCliqueConfig(
            k=int(settings.get("K", defaults.k)),
            familiar_threshold=float(settings.get("familiarThreshold", defaults.familiar_threshold)),
            msg_ttl=float(settings.get("msgTtl", defaults.msg_ttl)),
        )
        engine = DecisionEngineConfig(
            engine=_variant_name(settings.get("decisionEngine", "mdm")),
            community_algorithm=_variant_name(settings.get("communityDetectAlgo", "kclique")),
            kclique=kclique,
        )
        return cls(
            engine=engine,
            tombstones=_as_bool(settings.get("tombstones", False)),
            delete_delivered=_as_bool(settings.get("deleteDelivered", False)),
            admission_probability=float(settings.get("relayProbability", 0.5)),
        )


def _variant_name(value: str) -> str:
    """
    Normalise a variant name.

    Scenario files often carry class names ("MDMDecisionEngine",
    "KCliqueCommunityDetection"); map those onto the short variant keys.
    """
    name = str(value).strip().rsplit(".", 1)[-1].lower()
    for suffix in ("decisionengine", "communitydetection"):
        if name.endswith(suffix) and name != suffix:
            name = name[: -len(suffix)]
    return name


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)
