"""
FOLLOWGRAPH GRAPH STORE - The Authoritative Follows Graph

The single mutable representation of handles (nodes) and "follows"
relations (directed edges). Everything else in the system either reads
snapshots of this store or mutates it through the methods below.

Architecture:
  Storage
  - _adjacency: Dict[str, List[str]]   (handle -> ordered out-targets)
    Python dicts keep insertion order, so node order and neighbor order
    are both the order in which things were added.

  Boundaries
  - adjacency_view() hands out frozen AdjacencyView snapshots
  - to_rustworkx() exports to a rustworkx.PyDiGraph for interop and
    cross-checking against Rust-native algorithms

Invariants:
- Every edge target is a node (no dangling edges, ever)
- No duplicate nodes, no duplicate (source, target) pairs
- Self-loops are representable; policy layers decide whether to allow them
- Mutations validate first and then apply, so a failed call changes nothing

Performance Characteristics:
- Node lookup / add: O(1)
- Edge add / remove: O(out-degree of source)
- Node removal: O(V + E) because incoming references are purged everywhere
"""
import logging
from typing import Dict, Iterable, Iterator, List, Optional

import rustworkx as rx

from core.schemas import AdjacencyView, Relation
from infrastructure.event_bus import EventBus, EventType


logger = logging.getLogger("followgraph.graph")


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================

class GraphError(Exception):
    """Base exception for graph operations."""
    pass


class InvalidHandleError(GraphError, ValueError):
    """Raised when a handle is None, empty, or whitespace-only."""
    def __init__(self, handle: Optional[str], reason: str = "handle cannot be empty"):
        self.handle = handle
        self.reason = reason
        super().__init__(f"Invalid handle {handle!r}: {reason}")


class UnknownNodeError(GraphError):
    """Raised when an edge operation names a node that is not in the graph."""
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class PreconditionViolatedError(GraphError):
    """Raised when a utility or the solver is handed no graph at all."""
    pass


# =============================================================================
# HANDLE NORMALIZATION
# =============================================================================

def normalize_handle(handle: Optional[str]) -> str:
    """
    Trim a handle and reject empty results.

    This is the only rule the store itself enforces. Sigil checks
    ("must start with @") live in core.graph_utils.validate_user_handle.
    """
    if handle is None:
        raise InvalidHandleError(handle, "handle cannot be None")
    if not isinstance(handle, str):
        raise InvalidHandleError(handle, f"expected str, got {type(handle).__name__}")
    normalized = handle.strip()
    if not normalized:
        raise InvalidHandleError(handle)
    return normalized


# =============================================================================
# FOLLOW GRAPH (The Store)
# =============================================================================

class FollowGraph:
    """
    In-memory directed graph of handles and follows relations.

    Usage:
        graph = FollowGraph()
        graph.add_node("@ana")
        graph.add_node("@beto")
        graph.add_edge("@ana", "@beto")

        graph.neighbors("@ana")       # ["@beto"]
        view = graph.adjacency_view() # frozen snapshot

    Thread Safety:
        NOT thread-safe. The owning service layer must serialize mutations
        (GraphService does this with an RLock).
    """

    def __init__(self, event_bus: Optional[EventBus] = None):
        """
        Initialize an empty graph.

        Args:
            event_bus: Optional bus that receives NODE_/EDGE_ events for
                       every successful mutation.
        """
        self._adjacency: Dict[str, List[str]] = {}
        self._event_bus = event_bus

    @classmethod
    def from_graph(cls, other: "FollowGraph", event_bus: Optional[EventBus] = None) -> "FollowGraph":
        """Deep copy constructor: new node dict, new edge lists."""
        if other is None:
            raise PreconditionViolatedError("graph cannot be None")
        graph = cls(event_bus=event_bus)
        graph._adjacency = {node: list(targets) for node, targets in other._adjacency.items()}
        return graph

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def node_count(self) -> int:
        """Number of nodes in the graph."""
        return len(self._adjacency)

    @property
    def edge_count(self) -> int:
        """Sum of out-edge counts across all nodes."""
        return sum(len(targets) for targets in self._adjacency.values())

    @property
    def is_empty(self) -> bool:
        """True if graph has no nodes."""
        return not self._adjacency

    @property
    def event_bus(self) -> Optional[EventBus]:
        return self._event_bus

    def attach_event_bus(self, event_bus: Optional[EventBus]) -> None:
        """Route future mutation events to another bus (or to none)."""
        self._event_bus = event_bus

    # =========================================================================
    # NODE OPERATIONS
    # =========================================================================

    def add_node(self, handle: str) -> bool:
        """
        Add a node with no outgoing edges.

        Returns:
            True if the node was created, False if it already existed

        Raises:
            InvalidHandleError: If the handle is empty after trimming
        """
        node_id = normalize_handle(handle)
        if node_id in self._adjacency:
            return False

        self._adjacency[node_id] = []
        logger.debug("node created: %s", node_id)
        self._publish(EventType.NODE_CREATED, {"node_id": node_id})
        return True

    def remove_node(self, handle: str) -> bool:
        """
        Remove a node together with every edge that points at it.

        Returns:
            True if the node existed and was removed, False otherwise
        """
        node_id = normalize_handle(handle)
        if node_id not in self._adjacency:
            return False

        # Compute the purge first so the removal below cannot fail halfway.
        followers = [
            source for source, targets in self._adjacency.items()
            if source != node_id and node_id in targets
        ]

        del self._adjacency[node_id]
        for source in followers:
            self._adjacency[source].remove(node_id)

        logger.debug("node removed: %s (purged %d incoming edges)", node_id, len(followers))
        self._publish(EventType.NODE_DELETED, {
            "node_id": node_id,
            "incoming_removed": followers,
        })
        return True

    def contains_node(self, handle: str) -> bool:
        """Check if a node exists. Invalid handles are never contained."""
        try:
            return normalize_handle(handle) in self._adjacency
        except InvalidHandleError:
            return False

    def nodes(self) -> List[str]:
        """All node handles in insertion order."""
        return list(self._adjacency)

    def iter_nodes(self) -> Iterator[str]:
        """Iterate over node handles without copying."""
        return iter(self._adjacency)

    def ensure_nodes_present(self, handles: Iterable[str]) -> List[str]:
        """
        Create every handle that is not already a node.

        Idempotent. All handles are validated before any node is created.

        Returns:
            The handles that were newly created, in order
        """
        normalized = list(dict.fromkeys(normalize_handle(h) for h in handles))
        created = []
        for node_id in normalized:
            if self.add_node(node_id):
                created.append(node_id)
        return created

    # =========================================================================
    # EDGE OPERATIONS
    # =========================================================================

    def add_edge(self, source: str, target: str) -> bool:
        """
        Add a directed edge source -> target.

        Both endpoints must already be nodes; the store never auto-creates.

        Returns:
            True if added, False if the edge already existed

        Raises:
            InvalidHandleError: If either handle is empty after trimming
            UnknownNodeError: If source or target is not a node
        """
        source_id = normalize_handle(source)
        target_id = normalize_handle(target)

        if source_id not in self._adjacency:
            raise UnknownNodeError(source_id)
        if target_id not in self._adjacency:
            raise UnknownNodeError(target_id)

        targets = self._adjacency[source_id]
        if target_id in targets:
            return False

        targets.append(target_id)
        logger.debug("edge created: %s -> %s", source_id, target_id)
        self._publish(EventType.EDGE_CREATED, {
            "source_id": source_id,
            "target_id": target_id,
        })
        return True

    def remove_edge(self, source: str, target: str) -> bool:
        """
        Remove the edge source -> target.

        Returns:
            True if removed, False if source is unknown or the edge is absent
        """
        source_id = normalize_handle(source)
        target_id = normalize_handle(target)

        targets = self._adjacency.get(source_id)
        if targets is None or target_id not in targets:
            return False

        targets.remove(target_id)
        logger.debug("edge removed: %s -> %s", source_id, target_id)
        self._publish(EventType.EDGE_DELETED, {
            "source_id": source_id,
            "target_id": target_id,
        })
        return True

    def has_edge(self, source: str, target: str) -> bool:
        """Check if an edge exists."""
        try:
            source_id = normalize_handle(source)
            target_id = normalize_handle(target)
        except InvalidHandleError:
            return False
        return target_id in self._adjacency.get(source_id, ())

    def neighbors(self, handle: str) -> List[str]:
        """
        Out-targets of a node in insertion order.

        Returns a copy; an unknown node yields an empty list, not an error.
        """
        try:
            node_id = normalize_handle(handle)
        except InvalidHandleError:
            return []
        return list(self._adjacency.get(node_id, ()))

    def predecessors(self, handle: str) -> List[str]:
        """Nodes with an edge into handle, in node order. O(V + E)."""
        try:
            node_id = normalize_handle(handle)
        except InvalidHandleError:
            return []
        return [
            source for source, targets in self._adjacency.items()
            if node_id in targets
        ]

    def out_degree(self, handle: str) -> int:
        return len(self.neighbors(handle))

    def edges(self) -> List[Relation]:
        """All edges, grouped by source in node order."""
        return [
            Relation(source=source, target=target)
            for source, targets in self._adjacency.items()
            for target in targets
        ]

    # =========================================================================
    # SNAPSHOTS & EXPORT
    # =========================================================================

    def adjacency_view(self) -> AdjacencyView:
        """Point-in-time frozen snapshot; never a live view."""
        return AdjacencyView.from_mapping(self._adjacency)

    def to_rustworkx(self) -> rx.PyDiGraph:
        """
        Export to a rustworkx PyDiGraph.

        Node payloads are the handles; node indices follow insertion order
        (0..n-1) on a freshly built graph. Edge payloads are None.
        """
        graph = rx.PyDiGraph(multigraph=False)
        indices = graph.add_nodes_from(list(self._adjacency))
        index_of = dict(zip(self._adjacency, indices))
        graph.add_edges_from_no_data([
            (index_of[source], index_of[target])
            for source, targets in self._adjacency.items()
            for target in targets
        ])
        return graph

    # =========================================================================
    # INTERNAL UTILITIES
    # =========================================================================

    def _publish(self, event_type: EventType, payload: Dict) -> None:
        if self._event_bus is None:
            return
        try:
            self._event_bus.emit(event_type, payload, source="graph_db")
        except Exception:
            # The bus isolates handler errors itself; this guards the emit path.
            logger.exception("failed to publish %s", event_type.value)

    def __len__(self) -> int:
        """Return number of nodes."""
        return self.node_count

    def __contains__(self, handle: str) -> bool:
        return self.contains_node(handle)

    def __iter__(self) -> Iterator[str]:
        return self.iter_nodes()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FollowGraph):
            return NotImplemented
        return list(self._adjacency.items()) == list(other._adjacency.items())

    __hash__ = None

    def __repr__(self) -> str:
        return f"FollowGraph(nodes={self.node_count}, edges={self.edge_count})"


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================

def create_empty_graph(event_bus: Optional[EventBus] = None) -> FollowGraph:
    """Create an empty FollowGraph."""
    return FollowGraph(event_bus=event_bus)


def create_graph_from_edges(
    nodes: Iterable[str],
    edges: Optional[Iterable[tuple]] = None,
) -> FollowGraph:
    """
    Create a FollowGraph pre-populated with nodes and edges.

    Nodes are added first, in order; every edge endpoint must be among them.
    """
    graph = FollowGraph()
    graph.ensure_nodes_present(nodes)
    for source, target in edges or ():
        graph.add_edge(source, target)
    return graph
