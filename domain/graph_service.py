"""
FOLLOWGRAPH SERVICE - Policies and Orchestration Around the Store

GraphService owns one FollowGraph and is the layer every front end (the
CLI, a UI, a test) talks to. It adds the rules the store deliberately
leaves out:

- user handles must carry the configured sigil ("@")
- a user cannot follow itself (compared case-insensitively)
- both users must exist before a relation is added
- adding an existing user/relation or removing a missing one is an error
- every successful mutation marks the graph dirty and drops the cached SCCs
- load/save/new mark the graph clean

Thread Safety:
    All public methods hold one RLock, so a service shared between threads
    serializes every read and mutation of its graph.
"""
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from core.graph_db import FollowGraph, GraphError
from core.graph_utils import copy_graph, validate_user_handle
from core.kosaraju import KosarajuSCC
from core.schemas import LoadResult, Relation, SccResult
from infrastructure.change_tracker import UnsavedChangesTracker
from infrastructure.event_bus import EventBus, EventType, get_event_bus
from infrastructure.graph_file import GraphFileParser, GraphFileWriter, ParseResult


logger = logging.getLogger("followgraph.service")


# =============================================================================
# SERVICE ERRORS
# =============================================================================

class GraphServiceError(GraphError):
    """Base exception for policy violations in the service layer."""
    pass


class DuplicateUserError(GraphServiceError):
    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"User already exists: {handle}")


class UserNotFoundError(GraphServiceError):
    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"User not found: {handle}")


class SelfRelationError(GraphServiceError):
    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"A user cannot follow itself: {handle}")


class DuplicateRelationError(GraphServiceError):
    def __init__(self, source: str, target: str):
        self.source = source
        self.target = target
        super().__init__(f"Relation already exists: {source} -> {target}")


class RelationNotFoundError(GraphServiceError):
    def __init__(self, source: str, target: str):
        self.source = source
        self.target = target
        super().__init__(f"Relation not found: {source} -> {target}")


class NoAssociatedFileError(GraphServiceError):
    def __init__(self):
        super().__init__("No file is associated with this graph; use save_as()")


# =============================================================================
# GRAPH SERVICE
# =============================================================================

class GraphService:
    """
    Usage:
        service = GraphService()
        service.load_from_file(Path("network.txt"))
        service.add_user("@dana")
        service.add_relation("@dana", "@ana")
        result = service.compute_strongly_connected_components()
        result.mapping["@dana"]       # component index
        service.save()
    """

    def __init__(
        self,
        parser: Optional[GraphFileParser] = None,
        writer: Optional[GraphFileWriter] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self._parser = parser or GraphFileParser()
        self._writer = writer or GraphFileWriter()
        self._event_bus = event_bus if event_bus is not None else get_event_bus()
        self._solver = KosarajuSCC()
        self._tracker = UnsavedChangesTracker(event_bus=self._event_bus)
        self._lock = threading.RLock()

        self._graph = FollowGraph(event_bus=self._event_bus)
        self._current_file: Optional[Path] = None
        self._last_result: Optional[SccResult] = None

    # =========================================================================
    # LOAD / SAVE
    # =========================================================================

    def load_from_file(self, path: Union[str, Path]) -> LoadResult:
        """Parse a file and replace the current graph with it."""
        path = Path(path)
        with self._lock:
            parsed = self._parser.parse(path)
            return self._apply(parsed, path)

    def load_from_text(self, text: str) -> LoadResult:
        """Parse in-memory text; the graph has no associated file afterwards."""
        with self._lock:
            parsed = self._parser.parse_text(text)
            return self._apply(parsed, None)

    def save(self) -> Path:
        with self._lock:
            if self._current_file is None:
                raise NoAssociatedFileError()
            return self.save_as(self._current_file)

    def save_as(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        with self._lock:
            self._writer.write(path, self._graph)
            self._current_file = path
            self._tracker.mark_clean()
            self._event_bus.emit(EventType.GRAPH_SAVED, {"path": str(path)}, source="graph_service")
            return path

    def create_new_graph(self) -> None:
        with self._lock:
            self._graph = FollowGraph(event_bus=self._event_bus)
            self._current_file = None
            self._last_result = None
            self._tracker.mark_clean()
            self._event_bus.emit(EventType.GRAPH_RESET, {}, source="graph_service")

    # =========================================================================
    # MUTATIONS (policy-checked)
    # =========================================================================

    def add_user(self, handle: str) -> str:
        with self._lock:
            handle = validate_user_handle(handle)
            if not self._graph.add_node(handle):
                raise DuplicateUserError(handle)
            self._mark_dirty()
            return handle

    def remove_user(self, handle: str) -> str:
        with self._lock:
            handle = validate_user_handle(handle)
            if not self._graph.remove_node(handle):
                raise UserNotFoundError(handle)
            self._mark_dirty()
            return handle

    def add_relation(self, source: str, target: str) -> Relation:
        with self._lock:
            source = validate_user_handle(source)
            target = validate_user_handle(target)
            if source.lower() == target.lower():
                raise SelfRelationError(source)
            for handle in (source, target):
                if not self._graph.contains_node(handle):
                    raise UserNotFoundError(handle)
            if not self._graph.add_edge(source, target):
                raise DuplicateRelationError(source, target)
            self._mark_dirty()
            return Relation(source=source, target=target)

    def remove_relation(self, source: str, target: str) -> Relation:
        with self._lock:
            source = validate_user_handle(source)
            target = validate_user_handle(target)
            if not self._graph.remove_edge(source, target):
                raise RelationNotFoundError(source, target)
            self._mark_dirty()
            return Relation(source=source, target=target)

    # =========================================================================
    # SCC
    # =========================================================================

    def compute_strongly_connected_components(self) -> SccResult:
        """Run Kosaraju on the current graph and cache the result."""
        with self._lock:
            result = self._solver.compute_result(self._graph)
            self._last_result = result
            logger.info(
                "computed %d components over %d users",
                result.component_count, self._graph.node_count,
            )
            self._event_bus.emit(
                EventType.SCC_COMPUTED,
                {"component_count": result.component_count},
                source="graph_service",
            )
            return result

    def last_scc_mapping(self) -> Dict[str, int]:
        """handle -> component index from the last computation ({} if stale)."""
        with self._lock:
            if self._last_result is None:
                return {}
            return dict(self._last_result.mapping)

    def last_components(self) -> List[Tuple[str, ...]]:
        with self._lock:
            if self._last_result is None:
                return []
            return list(self._last_result.components)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_graph_snapshot(self) -> FollowGraph:
        """Deep copy of the current graph, safe to hand to another thread."""
        with self._lock:
            return copy_graph(self._graph)

    def user_count(self) -> int:
        with self._lock:
            return self._graph.node_count

    def relation_count(self) -> int:
        with self._lock:
            return self._graph.edge_count

    def users(self) -> List[str]:
        with self._lock:
            return self._graph.nodes()

    def relations(self) -> List[Relation]:
        with self._lock:
            return self._graph.edges()

    def current_file(self) -> Optional[Path]:
        with self._lock:
            return self._current_file

    def has_unsaved_changes(self) -> bool:
        with self._lock:
            return self._tracker.has_unsaved_changes()

    @property
    def tracker(self) -> UnsavedChangesTracker:
        return self._tracker

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _apply(self, parsed: ParseResult, path: Optional[Path]) -> LoadResult:
        graph = copy_graph(parsed.graph)
        graph.attach_event_bus(self._event_bus)
        self._graph = graph
        self._current_file = path
        self._last_result = None
        self._tracker.mark_clean()

        for warning in parsed.warnings:
            logger.warning(warning)
        self._event_bus.emit(
            EventType.GRAPH_LOADED,
            {
                "source": str(path) if path else None,
                "user_count": graph.node_count,
                "relation_count": graph.edge_count,
            },
            source="graph_service",
        )
        return LoadResult(
            warnings=list(parsed.warnings),
            auto_created=list(parsed.auto_created),
            source=str(path) if path else None,
            user_count=graph.node_count,
            relation_count=graph.edge_count,
        )

    def _mark_dirty(self) -> None:
        self._last_result = None
        self._tracker.mark_dirty()
