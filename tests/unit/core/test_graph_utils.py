"""
Unit tests for core/graph_utils.py

Tests:
- copy_graph independence
- transpose (order, involution, self-loops)
- handle validation (core rule vs "@" rule)
- ensure_all_references_exist / count_outgoing_edges
"""
import pytest

from core.graph_db import (
    FollowGraph,
    InvalidHandleError,
    PreconditionViolatedError,
    create_graph_from_edges,
)
from core.graph_utils import (
    copy_graph,
    transpose,
    validate_handle,
    validate_user_handle,
    snapshot_adjacency,
    ensure_all_references_exist,
    count_outgoing_edges,
)
from infrastructure.config import FollowGraphConfig, HandleConfig, set_config


# =============================================================================
# COPY TESTS
# =============================================================================

def test_copy_graph_is_deep(triangle_graph):
    """
    Validate that copy_graph shares nothing with its source.

    Verifies:
    - Equal right after copying
    - Mutating the copy leaves the original unchanged, and vice versa
    """
    copy = copy_graph(triangle_graph)
    assert copy == triangle_graph

    copy.add_node("@d")
    copy.add_edge("@a", "@d")
    triangle_graph.remove_edge("@b", "@c")

    assert not triangle_graph.contains_node("@d")
    assert triangle_graph.neighbors("@a") == ["@b"]
    assert copy.has_edge("@b", "@c")


def test_copy_graph_drops_event_bus(triangle_graph):
    from infrastructure.event_bus import EventBus

    triangle_graph.attach_event_bus(EventBus())
    assert copy_graph(triangle_graph).event_bus is None


def test_copy_graph_rejects_none():
    with pytest.raises(PreconditionViolatedError):
        copy_graph(None)


# =============================================================================
# TRANSPOSE TESTS
# =============================================================================

def test_transpose_reverses_every_edge(chain_graph):
    reversed_graph = transpose(chain_graph)
    assert reversed_graph.nodes() == ["@a", "@b", "@c"]
    assert reversed_graph.neighbors("@b") == ["@a"]
    assert reversed_graph.neighbors("@c") == ["@b"]
    assert reversed_graph.neighbors("@a") == []
    assert reversed_graph.edge_count == chain_graph.edge_count


def test_transpose_is_an_involution():
    graph = create_graph_from_edges(
        ["@a", "@b", "@c", "@d"],
        [("@a", "@b"), ("@a", "@c"), ("@c", "@a"), ("@d", "@a"), ("@b", "@d")],
    )
    twice = transpose(transpose(graph))
    assert twice.nodes() == graph.nodes()
    assert {r.as_tuple() for r in twice.edges()} == {r.as_tuple() for r in graph.edges()}


def test_transpose_keeps_self_loops(fresh_graph):
    fresh_graph.add_node("@a")
    fresh_graph.add_edge("@a", "@a")
    assert transpose(fresh_graph).has_edge("@a", "@a")


def test_transpose_does_not_mutate_input(chain_graph):
    before = copy_graph(chain_graph)
    transpose(chain_graph)
    assert chain_graph == before


def test_transpose_of_empty_graph(fresh_graph):
    assert transpose(fresh_graph).is_empty


# =============================================================================
# HANDLE VALIDATION TESTS
# =============================================================================

def test_validate_handle_core_rule():
    assert validate_handle(" x ") == "x"
    with pytest.raises(InvalidHandleError):
        validate_handle("  ")


def test_validate_user_handle_requires_sigil():
    """
    Validate the caller-level "@" rule.

    Verifies:
    - Leading "@" accepted (after trimming)
    - Missing "@" rejected with a reason naming the sigil
    """
    assert validate_user_handle("  @ana ") == "@ana"

    with pytest.raises(InvalidHandleError) as exc_info:
        validate_user_handle("ana")
    assert "'@'" in exc_info.value.reason


def test_validate_user_handle_rejects_separator():
    """
    Validate that a comma is never part of a user handle.

    Verifies:
    - InvalidHandleError names the separator
    - The rule holds even with the sigil check disabled
    """
    with pytest.raises(InvalidHandleError) as exc_info:
        validate_user_handle("@a,b")
    assert "','" in exc_info.value.reason

    with pytest.raises(InvalidHandleError):
        validate_user_handle("a,b", sigil="")


def test_validate_user_handle_uses_configured_sigil():
    set_config(FollowGraphConfig(handles=HandleConfig(sigil="#")))
    assert validate_user_handle("#tag") == "#tag"
    with pytest.raises(InvalidHandleError):
        validate_user_handle("@ana")


def test_validate_user_handle_empty_sigil_disables_check():
    assert validate_user_handle("ana", sigil="") == "ana"


def test_snapshot_adjacency(chain_graph):
    view = snapshot_adjacency(chain_graph)
    assert view == chain_graph.adjacency_view()


# =============================================================================
# REFERENCE HELPERS TESTS
# =============================================================================

def test_ensure_all_references_exist():
    """
    Validate that every mentioned handle becomes a node.

    Verifies:
    - Missing sources and targets are created in first-mention order
    - Existing nodes are not reported
    - No edges are added
    """
    graph = FollowGraph()
    graph.add_node("@a")

    created = ensure_all_references_exist(graph, {"@a": ["@b", "@c"], "@d": ["@a", "@b"]})

    assert created == ["@b", "@c", "@d"]
    assert graph.nodes() == ["@a", "@b", "@c", "@d"]
    assert graph.edge_count == 0


def test_ensure_all_references_exist_rejects_none(fresh_graph):
    with pytest.raises(PreconditionViolatedError):
        ensure_all_references_exist(fresh_graph, None)


def test_count_outgoing_edges(triangle_graph):
    triangle_graph.add_edge("@a", "@c")
    assert count_outgoing_edges(triangle_graph, ["@a", "@b"]) == 3
    assert count_outgoing_edges(triangle_graph, ["@a", "@a"]) == 2
    assert count_outgoing_edges(triangle_graph, ["@ghost"]) == 0
