"""
FOLLOWGRAPH GRAPH UTILITIES - Pure Functions Over the Store

Stateless helpers derived from FollowGraph. None of them mutate their
input graph except the two "ensure" helpers, whose whole job is to add
missing nodes.

- copy_graph: fully independent deep copy
- transpose: same nodes (same order), every edge reversed
- validate_handle / validate_user_handle: the core rule and the
  caller-level "@" rule, kept apart on purpose
- snapshot_adjacency: AdjacencyView for callers holding a reference
- ensure_all_references_exist / count_outgoing_edges
"""
from typing import Dict, Iterable, List, Optional

from core.graph_db import (
    FollowGraph,
    InvalidHandleError,
    PreconditionViolatedError,
    normalize_handle,
)
from core.schemas import AdjacencyView
from infrastructure.config import get_config


RELATION_SEPARATOR = ","


def _require_graph(graph: Optional[FollowGraph]) -> FollowGraph:
    if graph is None:
        raise PreconditionViolatedError("graph cannot be None")
    return graph


def copy_graph(graph: FollowGraph) -> FollowGraph:
    """Deep copy: no shared node dict, no shared edge lists, no event bus."""
    return FollowGraph.from_graph(_require_graph(graph))


def transpose(graph: FollowGraph) -> FollowGraph:
    """
    Reverse every edge.

    The result has the same nodes in the same insertion order. Reversed
    edges are appended while walking the source graph in node order, then
    neighbor order, so the transpose is deterministic.
    """
    view = _require_graph(graph).adjacency_view()
    result = FollowGraph()
    result.ensure_nodes_present(view.nodes)
    for source in view.nodes:
        for target in view.neighbors(source):
            result.add_edge(target, source)
    return result


def validate_handle(handle: Optional[str]) -> str:
    """
    Core rule: non-empty after trimming.

    Returns:
        The trimmed handle

    Raises:
        InvalidHandleError
    """
    return normalize_handle(handle)


def validate_user_handle(handle: Optional[str], sigil: Optional[str] = None) -> str:
    """
    Caller-level rule: the core rule plus a leading sigil ("@" by default)
    and no RELATION_SEPARATOR, which would make the handle unreadable in
    the relations section of a graph file.

    The graph store never applies this check; the parser and the service do.

    Raises:
        InvalidHandleError
    """
    trimmed = validate_handle(handle)
    if sigil is None:
        sigil = get_config().handles.sigil
    if sigil and not trimmed.startswith(sigil):
        raise InvalidHandleError(handle, f"handle must start with {sigil!r}")
    if RELATION_SEPARATOR in trimmed:
        raise InvalidHandleError(handle, f"handle cannot contain {RELATION_SEPARATOR!r}")
    return trimmed


def snapshot_adjacency(graph: FollowGraph) -> AdjacencyView:
    """Same as graph.adjacency_view()."""
    return _require_graph(graph).adjacency_view()


def ensure_all_references_exist(graph: FollowGraph, references: Dict[str, Iterable[str]]) -> List[str]:
    """
    Create every handle mentioned in a source -> targets mapping.

    Sources and their targets are visited in mapping order, so newly
    created nodes appear in the order they were first mentioned.

    Returns:
        Handles that were created
    """
    _require_graph(graph)
    if references is None:
        raise PreconditionViolatedError("references cannot be None")
    pending: List[str] = []
    for source, targets in references.items():
        pending.append(source)
        pending.extend(targets)
    return graph.ensure_nodes_present(pending)


def count_outgoing_edges(graph: FollowGraph, handles: Iterable[str]) -> int:
    """Total out-degree of the given handles; unknown handles count zero."""
    _require_graph(graph)
    if handles is None:
        raise PreconditionViolatedError("handles cannot be None")
    return sum(len(graph.neighbors(handle)) for handle in set(handles))
