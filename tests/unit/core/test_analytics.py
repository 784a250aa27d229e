"""
Unit tests for core/analytics.py

Tests:
- reachability and mutual reachability
- condensation DAG
- partition validation (catching bad partitions)
- degree metrics and the health report
"""
import pytest
import rustworkx as rx

from core.analytics import (
    reachable_from,
    is_mutually_reachable,
    condensation,
    validate_partition,
    find_weak_components,
    compute_degrees,
    find_isolated_nodes,
    compute_graph_density,
    get_graph_health_report,
)
from core.graph_db import PreconditionViolatedError, create_graph_from_edges
from core.kosaraju import KosarajuSCC


@pytest.fixture
def two_cycles():
    return create_graph_from_edges(
        ["@a", "@b", "@c", "@d", "@e"],
        [("@a", "@b"), ("@b", "@a"), ("@b", "@c"), ("@c", "@d"), ("@d", "@c")],
    )


# =============================================================================
# REACHABILITY
# =============================================================================

def test_reachable_from_includes_start(chain_graph):
    assert reachable_from(chain_graph, "@a") == {"@a", "@b", "@c"}
    assert reachable_from(chain_graph, "@c") == {"@c"}


def test_reachable_from_follows_cycles(triangle_graph):
    """
    Validate reachability around a cycle.

    Verifies:
    - Every member of the cycle reaches every other member
    - A self-loop does not duplicate or drop the start handle
    """
    triangle_graph.add_edge("@a", "@a")
    for handle in ("@a", "@b", "@c"):
        assert reachable_from(triangle_graph, handle) == {"@a", "@b", "@c"}


def test_reachable_from_unknown_start(chain_graph):
    assert reachable_from(chain_graph, "@ghost") == set()


def test_reachable_from_rejects_none():
    with pytest.raises(PreconditionViolatedError):
        reachable_from(None, "@a")


def test_is_mutually_reachable(two_cycles):
    assert is_mutually_reachable(two_cycles, "@a", "@b")
    assert not is_mutually_reachable(two_cycles, "@a", "@c")


# =============================================================================
# COMPONENT ANALYSIS
# =============================================================================

def test_condensation_is_a_dag(two_cycles):
    """
    Validate the condensation of the SCC partition.

    Verifies:
    - One node per component
    - Only edges between distinct components remain
    - The result is acyclic
    """
    components = KosarajuSCC().compute(two_cycles)
    dag = condensation(two_cycles, components)

    assert dag.node_count == len(components) == 3
    assert dag.edges()[0].as_tuple() == ("scc-1", "scc-2")
    assert dag.edge_count == 1
    assert rx.is_directed_acyclic_graph(dag.to_rustworkx())


def test_validate_partition_accepts_solver_output(two_cycles):
    assert validate_partition(two_cycles, KosarajuSCC().compute(two_cycles)) == []


def test_validate_partition_reports_problems(two_cycles):
    """
    Validate that broken partitions are caught.

    Verifies:
    - Missing nodes
    - Non-mutually-reachable members
    - Components that could be merged
    """
    missing = validate_partition(two_cycles, [{"@a", "@b"}, {"@c", "@d"}])
    assert any("missing" in p for p in missing)

    too_big = validate_partition(two_cycles, [{"@a", "@b", "@c", "@d"}, {"@e"}])
    assert any("cannot reach" in p for p in too_big)

    split = validate_partition(two_cycles, [{"@a"}, {"@b"}, {"@c", "@d"}, {"@e"}])
    assert any("could be merged" in p for p in split)

    overlap = validate_partition(two_cycles, [{"@a", "@b"}, {"@b"}, {"@c", "@d"}, {"@e"}])
    assert any("overlaps" in p for p in overlap)


def test_find_weak_components(two_cycles):
    weak = {frozenset(c) for c in find_weak_components(two_cycles)}
    assert weak == {frozenset({"@a", "@b", "@c", "@d"}), frozenset({"@e"})}


# =============================================================================
# DEGREE METRICS & HEALTH
# =============================================================================

def test_compute_degrees(two_cycles):
    reports = {r.handle: r for r in compute_degrees(two_cycles)}
    assert reports["@b"].following == 2
    assert reports["@b"].followers == 1
    assert reports["@c"].followers == 2
    assert reports["@e"].total_degree == 0


def test_find_isolated_nodes(two_cycles):
    assert find_isolated_nodes(two_cycles) == ["@e"]


def test_compute_graph_density():
    assert compute_graph_density(create_graph_from_edges(["@a"])) == 0.0
    graph = create_graph_from_edges(["@a", "@b"], [("@a", "@b"), ("@b", "@a")])
    assert compute_graph_density(graph) == 1.0


def test_health_report(two_cycles):
    report = get_graph_health_report(two_cycles)

    assert report.total_nodes == 5
    assert report.total_edges == 5
    assert report.component_count == 3
    assert report.largest_component_size == 2
    assert report.singleton_components == 1
    assert report.weak_component_count == 2
    assert report.isolated_nodes == 1
    assert report.is_dag is False


def test_health_report_on_chain(chain_graph):
    report = get_graph_health_report(chain_graph, KosarajuSCC().compute_result(chain_graph))
    assert report.is_dag is True
    assert report.singleton_components == 3
