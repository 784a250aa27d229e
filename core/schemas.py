"""
FOLLOWGRAPH SCHEMAS - The Shapes That Leave the Store

The graph store keeps its state in plain dicts and lists. Everything that
crosses a boundary (to the solver, the serializer, the CLI, a subscriber)
is one of the structures defined here:

- AdjacencyView: point-in-time snapshot of nodes and their out-edges
- Relation: a single directed "follows" edge
- SccResult: components plus the handle -> component index mapping
- LoadResult: what the service reports after loading a file

Design Principles:
1. SNAPSHOTS, NOT VIEWS: every struct owns copies of its sequences
2. FROZEN: msgspec.Struct(frozen=True) so a snapshot cannot be edited in place
3. ORDER IS DATA: node order and neighbor order are preserved exactly
"""
import msgspec
from typing import Dict, Iterator, List, Optional, Tuple


# =============================================================================
# ADJACENCY SNAPSHOT
# =============================================================================

class AdjacencyView(msgspec.Struct, frozen=True, kw_only=True):
    """
    Immutable snapshot pairing node order with each node's out-edges.

    Built by FollowGraph.adjacency_view(). Mutating the store afterwards
    never changes a view that was already handed out.
    """
    nodes: Tuple[str, ...] = ()
    adjacency: Dict[str, Tuple[str, ...]] = msgspec.field(default_factory=dict)

    @classmethod
    def from_mapping(cls, adjacency: Dict[str, List[str]]) -> "AdjacencyView":
        """Copy an ordered node -> targets mapping into a frozen view."""
        return cls(
            nodes=tuple(adjacency),
            adjacency={node: tuple(targets) for node, targets in adjacency.items()},
        )

    def neighbors(self, handle: str) -> Tuple[str, ...]:
        """Out-targets of a node, empty for unknown handles."""
        return self.adjacency.get(handle, ())

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(targets) for targets in self.adjacency.values())

    def edges(self) -> List["Relation"]:
        """All edges in node order, then neighbor order."""
        return [
            Relation(source=node, target=target)
            for node in self.nodes
            for target in self.adjacency.get(node, ())
        ]

    def __iter__(self) -> Iterator[str]:
        return iter(self.nodes)

    def __contains__(self, handle: str) -> bool:
        return handle in self.adjacency

    def __len__(self) -> int:
        return len(self.nodes)


# =============================================================================
# RELATION
# =============================================================================

class Relation(msgspec.Struct, frozen=True, kw_only=True):
    """A directed follows edge: source follows target."""
    source: str
    target: str

    def reversed(self) -> "Relation":
        return Relation(source=self.target, target=self.source)

    def as_tuple(self) -> Tuple[str, str]:
        return (self.source, self.target)

    def __str__(self) -> str:
        return f"{self.source} -> {self.target}"


# =============================================================================
# SCC RESULT
# =============================================================================

class SccResult(msgspec.Struct, frozen=True, kw_only=True):
    """
    Output of the Kosaraju solver.

    components: one tuple per SCC, in the order the second pass discovered
        them; each tuple lists handles in collection order.
    mapping: handle -> index into components. The index is the component
        identity callers use (e.g. for coloring); nothing else is implied.
    """
    components: List[Tuple[str, ...]] = msgspec.field(default_factory=list)
    mapping: Dict[str, int] = msgspec.field(default_factory=dict)

    @classmethod
    def from_components(cls, components: List[List[str]]) -> "SccResult":
        mapping: Dict[str, int] = {}
        for index, component in enumerate(components):
            for handle in component:
                mapping[handle] = index
        return cls(
            components=[tuple(component) for component in components],
            mapping=mapping,
        )

    @property
    def component_count(self) -> int:
        return len(self.components)

    def component_of(self, handle: str) -> Optional[int]:
        return self.mapping.get(handle)

    def as_sets(self) -> List[set]:
        return [set(component) for component in self.components]

    def largest(self) -> Tuple[str, ...]:
        """The biggest component (first one wins on ties), empty if none."""
        if not self.components:
            return ()
        return max(self.components, key=len)


# =============================================================================
# LOAD RESULT
# =============================================================================

class LoadResult(msgspec.Struct, frozen=True, kw_only=True):
    """Summary handed back by GraphService after a load."""
    warnings: List[str] = msgspec.field(default_factory=list)
    auto_created: List[str] = msgspec.field(default_factory=list)
    source: Optional[str] = None
    user_count: int = 0
    relation_count: int = 0


# =============================================================================
# SERIALIZATION HELPERS
# =============================================================================

_json_encoder = msgspec.json.Encoder()


def to_json(obj: msgspec.Struct) -> bytes:
    """Encode any schema struct as JSON."""
    return _json_encoder.encode(obj)


def scc_result_from_json(data: bytes) -> SccResult:
    return msgspec.json.decode(data, type=SccResult)
