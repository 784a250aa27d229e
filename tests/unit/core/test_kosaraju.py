"""
Unit tests for core/kosaraju.py - KosarajuSCC

Tests the SCC solver including:
- Small reference scenarios (cycle, chain, two cycles, self-loop)
- Partition and maximality on random graphs
- Cross-check against rustworkx.strongly_connected_components
- Determinism and input immutability
"""
import random

import pytest

from core.analytics import rustworkx_components, validate_partition
from core.graph_db import FollowGraph, PreconditionViolatedError, create_graph_from_edges
from core.graph_utils import copy_graph
from core.kosaraju import KosarajuSCC, strongly_connected_components


def _random_graph(seed: int, nodes: int, edges: int) -> FollowGraph:
    rng = random.Random(seed)
    handles = [f"@u{i}" for i in range(nodes)]
    graph = FollowGraph()
    graph.ensure_nodes_present(handles)
    for _ in range(edges):
        graph.add_edge(rng.choice(handles), rng.choice(handles))
    return graph


def _as_frozensets(components):
    return {frozenset(c) for c in components}


# =============================================================================
# REFERENCE SCENARIOS
# =============================================================================

def test_cycle_is_one_component(triangle_graph):
    assert KosarajuSCC().compute(triangle_graph) == [{"@a", "@b", "@c"}]


def test_chain_is_all_singletons(chain_graph):
    """
    Validate that a chain splits into singletons in topological order.

    Verifies:
    - Three components
    - Pass 2 discovers the chain head first
    """
    assert KosarajuSCC().compute(chain_graph) == [{"@a"}, {"@b"}, {"@c"}]


def test_finishing_order_of_chain(chain_graph):
    assert KosarajuSCC().finishing_order(chain_graph) == ["@c", "@b", "@a"]


def test_two_cycles_joined_by_one_edge():
    graph = create_graph_from_edges(
        ["@a", "@b", "@c", "@d"],
        [("@a", "@b"), ("@b", "@a"), ("@b", "@c"), ("@c", "@d"), ("@d", "@c")],
    )
    components = KosarajuSCC().compute(graph)
    assert components == [{"@a", "@b"}, {"@c", "@d"}]


def test_isolated_nodes_are_singletons():
    graph = create_graph_from_edges(["@a", "@b", "@c"])
    components = strongly_connected_components(graph)
    assert _as_frozensets(components) == {frozenset({"@a"}), frozenset({"@b"}), frozenset({"@c"})}


def test_self_loop_is_a_singleton_component(fresh_graph):
    fresh_graph.ensure_nodes_present(["@a", "@b"])
    fresh_graph.add_edge("@a", "@a")
    fresh_graph.add_edge("@a", "@b")
    assert _as_frozensets(KosarajuSCC().compute(fresh_graph)) == {frozenset({"@a"}), frozenset({"@b"})}


def test_empty_graph_has_no_components(fresh_graph):
    assert KosarajuSCC().compute(fresh_graph) == []
    result = KosarajuSCC().compute_result(fresh_graph)
    assert result.components == []
    assert result.mapping == {}


def test_none_graph_is_rejected():
    with pytest.raises(PreconditionViolatedError):
        KosarajuSCC().compute(None)
    with pytest.raises(PreconditionViolatedError):
        KosarajuSCC().finishing_order(None)


# =============================================================================
# RESULT SHAPE
# =============================================================================

def test_compute_result_mapping_matches_components(sample_text):
    from infrastructure.graph_file import GraphFileParser

    graph = GraphFileParser().parse_text(sample_text).graph
    result = KosarajuSCC().compute_result(graph)

    assert result.component_count == 2
    assert set(result.mapping) == set(graph.nodes())
    for index, component in enumerate(result.components):
        for handle in component:
            assert result.mapping[handle] == index
    assert result.mapping["@ana"] == result.mapping["@beto"]
    assert result.mapping["@carla"] == result.mapping["@dani"] == result.mapping["@eva"]
    assert result.mapping["@ana"] != result.mapping["@carla"]


def test_compute_result_indexes_components_in_discovery_order(chain_graph):
    result = KosarajuSCC().compute_result(chain_graph)
    assert result.mapping == {"@a": 0, "@b": 1, "@c": 2}


# =============================================================================
# PROPERTIES ON RANDOM GRAPHS
# =============================================================================

@pytest.mark.parametrize("seed", range(8))
def test_partition_is_valid_and_maximal(seed):
    """
    Validate that every result is exactly the SCC partition.

    Verifies:
    - Components are disjoint and cover every node
    - Members of a component are mutually reachable
    - No two components could be merged
    """
    graph = _random_graph(seed, nodes=30, edges=45)
    components = KosarajuSCC().compute(graph)
    assert validate_partition(graph, components) == []


@pytest.mark.parametrize("seed", range(12))
def test_matches_rustworkx(seed):
    graph = _random_graph(seed, nodes=60, edges=90 + seed * 10)
    ours = _as_frozensets(KosarajuSCC().compute(graph))
    theirs = _as_frozensets(rustworkx_components(graph))
    assert ours == theirs


def test_result_is_deterministic():
    graph = _random_graph(7, nodes=80, edges=160)
    first = KosarajuSCC().compute_result(graph)
    second = KosarajuSCC().compute_result(copy_graph(graph))
    assert first == second


def test_solver_does_not_mutate_input():
    graph = _random_graph(3, nodes=40, edges=80)
    before = copy_graph(graph)
    KosarajuSCC().compute(graph)
    assert graph == before
