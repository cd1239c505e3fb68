"""
Pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def kclique_config():
    """K=2 with a short familiarity threshold and a small TTL constant."""
    from socialdtn.core import KCliqueConfig
    return KCliqueConfig(k=2, familiar_threshold=50.0, msg_ttl=1e-3)


@pytest.fixture
def engine_config(kclique_config):
    """MDM engine over K-Clique detection."""
    from socialdtn.core import DecisionEngineConfig
    return DecisionEngineConfig(kclique=kclique_config)


@pytest.fixture
def make_world(engine_config):
    """Factory for small worlds; keyword arguments go to RouterConfig."""
    from socialdtn.core import RouterConfig
    from socialdtn.sim import World, WorldConfig

    def _make(addresses, buffer_size=10_000, applications=(), listeners=(), **router_kwargs):
        config = WorldConfig(
            buffer_size=buffer_size,
            transfer_speed=1_000.0,
            update_interval=1.0,
            router=RouterConfig(engine=engine_config, **router_kwargs),
        )
        return World(addresses, config, applications=applications, listeners=listeners)

    return _make


@pytest.fixture
def three_host_lines():
    """Pairwise 200s contacts between a, b and c, one after another."""
    return [
        "# time CONN a b state",
        "0 CONN a b up",
        "200 CONN a b down",
        "300 CONN a c up",
        "500 CONN a c down",
        "600 CONN b c up",
        "800 CONN b c down",
    ]


@pytest.fixture
def rng():
    """Reproducible random number generator."""
    return np.random.default_rng(seed=42)
