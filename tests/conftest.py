"""
Pytest configuration and shared fixtures for the FollowGraph test suite.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset the event bus and config singletons around each test."""
    from infrastructure.config import set_config
    from infrastructure.event_bus import reset_event_bus

    reset_event_bus()
    set_config(None)

    yield

    reset_event_bus()
    set_config(None)


@pytest.fixture
def fresh_graph():
    """Provide an empty FollowGraph."""
    from core.graph_db import FollowGraph
    return FollowGraph()


@pytest.fixture
def triangle_graph():
    """@a -> @b -> @c -> @a: one component of three."""
    from core.graph_db import create_graph_from_edges
    return create_graph_from_edges(
        ["@a", "@b", "@c"],
        [("@a", "@b"), ("@b", "@c"), ("@c", "@a")],
    )


@pytest.fixture
def chain_graph():
    """@a -> @b -> @c: three singleton components."""
    from core.graph_db import create_graph_from_edges
    return create_graph_from_edges(
        ["@a", "@b", "@c"],
        [("@a", "@b"), ("@b", "@c")],
    )


@pytest.fixture
def sample_text():
    """A small network with two cycles joined by one edge."""
    return (
        "users\n"
        "@ana\n"
        "@beto\n"
        "@carla\n"
        "@dani\n"
        "@eva\n"
        "relations\n"
        "@ana, @beto\n"
        "@beto, @ana\n"
        "@beto, @carla\n"
        "@carla, @dani\n"
        "@dani, @eva\n"
        "@eva, @carla\n"
    )
