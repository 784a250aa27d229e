"""
FOLLOWGRAPH CORE - Central exports for core functionality.

This module provides access to:
- The graph store (FollowGraph) and its error types
- Graph utilities (copy, transpose, handle validation)
- The Kosaraju SCC solver
"""

from core.graph_db import (
    FollowGraph,
    GraphError,
    InvalidHandleError,
    UnknownNodeError,
    PreconditionViolatedError,
    normalize_handle,
)
from core.schemas import AdjacencyView, Relation, SccResult, LoadResult
from core.graph_utils import (
    copy_graph,
    transpose,
    validate_handle,
    validate_user_handle,
    snapshot_adjacency,
    ensure_all_references_exist,
    count_outgoing_edges,
)
from core.kosaraju import KosarajuSCC, strongly_connected_components

__all__ = [
    # Store
    "FollowGraph",
    "GraphError",
    "InvalidHandleError",
    "UnknownNodeError",
    "PreconditionViolatedError",
    "normalize_handle",
    # Schemas
    "AdjacencyView",
    "Relation",
    "SccResult",
    "LoadResult",
    # Utilities
    "copy_graph",
    "transpose",
    "validate_handle",
    "validate_user_handle",
    "snapshot_adjacency",
    "ensure_all_references_exist",
    "count_outgoing_edges",
    # Solver
    "KosarajuSCC",
    "strongly_connected_components",
]
