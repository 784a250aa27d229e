"""
FOLLOWGRAPH ANALYTICS - Read-Only Questions About the Follows Graph

This module provides read-only analytics over a FollowGraph and the
components the Kosaraju solver found. Typical questions:
- Who can reach whom? (reachability)
- What does the graph look like once each SCC is collapsed? (condensation)
- Is a proposed partition really the SCC partition? (validation)
- How big, dense, and fragmented is the graph? (health report)

All functions are read-only queries: they observe but never modify.
Where rustworkx has a native routine (descendants, weak components, DAG
check, SCCs), the graph is exported once with FollowGraph.to_rustworkx()
and the Rust implementation is used.
"""
import rustworkx as rx
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from core.graph_db import FollowGraph, PreconditionViolatedError
from core.kosaraju import KosarajuSCC
from core.schemas import SccResult


# =============================================================================
# DATA CLASSES FOR RESULTS
# =============================================================================

@dataclass
class DegreeReport:
    """Follow counts for a single handle."""
    handle: str
    followers: int      # in-degree
    following: int      # out-degree

    @property
    def total_degree(self) -> int:
        return self.followers + self.following


@dataclass
class GraphHealthReport:
    """Overall shape of the follows graph."""
    total_nodes: int
    total_edges: int
    density: float
    component_count: int
    largest_component_size: int
    singleton_components: int
    weak_component_count: int
    isolated_nodes: int
    is_dag: bool


# =============================================================================
# REACHABILITY
# =============================================================================

def _export(graph: FollowGraph) -> Tuple[rx.PyDiGraph, Dict[str, int]]:
    """rustworkx copy of graph plus handle -> node index."""
    if graph is None:
        raise PreconditionViolatedError("graph cannot be None")
    rx_graph = graph.to_rustworkx()
    return rx_graph, {rx_graph[idx]: idx for idx in rx_graph.node_indices()}


def _reachable(rx_graph: rx.PyDiGraph, index_of: Dict[str, int], start: str) -> Set[str]:
    idx = index_of.get(start)
    if idx is None:
        return set()
    return {rx_graph[i] for i in rx.descendants(rx_graph, idx)} | {start}


def reachable_from(graph: FollowGraph, start: str) -> Set[str]:
    """
    Every handle reachable from start along follows edges (start included).

    Uses rx.descendants on the exported graph. Unknown start yields set().
    """
    rx_graph, index_of = _export(graph)
    return _reachable(rx_graph, index_of, start)


def is_mutually_reachable(graph: FollowGraph, u: str, v: str) -> bool:
    """True when u reaches v and v reaches u."""
    rx_graph, index_of = _export(graph)
    return v in _reachable(rx_graph, index_of, u) and u in _reachable(rx_graph, index_of, v)


# =============================================================================
# COMPONENT ANALYSIS
# =============================================================================

def condensation(graph: FollowGraph, components: Sequence[Set[str]]) -> FollowGraph:
    """
    Collapse each component into one node named "scc-<index>".

    Edges between distinct components are kept once; edges inside a
    component disappear. The result is always a DAG.
    """
    if graph is None:
        raise PreconditionViolatedError("graph cannot be None")
    owner: Dict[str, int] = {}
    for index, component in enumerate(components):
        for handle in component:
            owner[handle] = index

    dag = FollowGraph()
    dag.ensure_nodes_present(f"scc-{index}" for index in range(len(components)))
    for relation in graph.edges():
        src = owner.get(relation.source)
        dst = owner.get(relation.target)
        if src is None or dst is None or src == dst:
            continue
        dag.add_edge(f"scc-{src}", f"scc-{dst}")
    return dag


def validate_partition(graph: FollowGraph, components: Sequence[Set[str]]) -> List[str]:
    """
    Check that components are exactly the SCCs of graph.

    Verifies disjointness, coverage, mutual reachability inside each
    component, and maximality (no two components are mutually reachable).

    Returns:
        Human-readable problems; an empty list means the partition is valid
    """
    if graph is None:
        raise PreconditionViolatedError("graph cannot be None")
    problems: List[str] = []
    nodes = set(graph.nodes())

    seen: Set[str] = set()
    for index, component in enumerate(components):
        if not component:
            problems.append(f"component {index} is empty")
        overlap = seen & set(component)
        if overlap:
            problems.append(f"component {index} overlaps earlier components: {sorted(overlap)}")
        seen |= set(component)

    missing = nodes - seen
    if missing:
        problems.append(f"nodes missing from partition: {sorted(missing)}")
    unknown = seen - nodes
    if unknown:
        problems.append(f"partition names unknown nodes: {sorted(unknown)}")

    rx_graph, index_of = _export(graph)
    reach = {node: _reachable(rx_graph, index_of, node) for node in nodes}

    for index, component in enumerate(components):
        members = [m for m in component if m in nodes]
        for u in members:
            for v in members:
                if v not in reach[u]:
                    problems.append(f"component {index}: {u} cannot reach {v}")

    representatives = [next(iter(c)) for c in components if c and next(iter(c)) in nodes]
    for i, u in enumerate(representatives):
        for v in representatives[i + 1:]:
            if v in reach[u] and u in reach[v]:
                problems.append(f"components containing {u} and {v} could be merged")

    return problems


def rustworkx_components(graph: FollowGraph) -> List[Set[str]]:
    """SCCs as computed by rustworkx, for cross-checking the solver."""
    rx_graph = graph.to_rustworkx()
    return [
        {rx_graph[idx] for idx in component}
        for component in rx.strongly_connected_components(rx_graph)
    ]


def find_weak_components(graph: FollowGraph) -> List[Set[str]]:
    """Weakly connected components (edge direction ignored)."""
    rx_graph = graph.to_rustworkx()
    return [
        {rx_graph[idx] for idx in component}
        for component in rx.weakly_connected_components(rx_graph)
    ]


# =============================================================================
# DEGREE METRICS
# =============================================================================

def compute_degrees(graph: FollowGraph) -> List[DegreeReport]:
    """
    Followers / following counts per handle.

    Returns:
        Reports in node order
    """
    followers: Dict[str, int] = {node: 0 for node in graph.nodes()}
    for relation in graph.edges():
        followers[relation.target] += 1
    return [
        DegreeReport(handle=node, followers=followers[node], following=graph.out_degree(node))
        for node in graph.nodes()
    ]


def find_isolated_nodes(graph: FollowGraph) -> List[str]:
    """Handles with no followers and following nobody."""
    return [r.handle for r in compute_degrees(graph) if r.total_degree == 0]


def compute_graph_density(graph: FollowGraph) -> float:
    """
    Directed density: edges / (n * (n - 1)).

    Self-loops count as edges, so a graph full of them can exceed 1.0.
    """
    n = graph.node_count
    if n <= 1:
        return 0.0
    return graph.edge_count / (n * (n - 1))


def get_graph_health_report(graph: FollowGraph, result: Optional[SccResult] = None) -> GraphHealthReport:
    """
    Summarize the graph. Computes SCCs when result is not supplied.
    """
    if graph is None:
        raise PreconditionViolatedError("graph cannot be None")
    if result is None:
        result = KosarajuSCC().compute_result(graph)

    sizes = [len(component) for component in result.components]
    return GraphHealthReport(
        total_nodes=graph.node_count,
        total_edges=graph.edge_count,
        density=compute_graph_density(graph),
        component_count=result.component_count,
        largest_component_size=max(sizes, default=0),
        singleton_components=sum(1 for size in sizes if size == 1),
        weak_component_count=len(find_weak_components(graph)),
        isolated_nodes=len(find_isolated_nodes(graph)),
        is_dag=rx.is_directed_acyclic_graph(graph.to_rustworkx()),
    )
