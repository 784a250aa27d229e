"""
FOLLOWGRAPH TEXT FORMAT - Two-Section Users/Relations Files

File layout:

    users
    @ana
    @beto
    relations
    @ana, @beto
    @beto, @carla

Parsing rules:
- Lines are trimmed; blank lines are ignored
- Section markers match case-insensitively (names come from [format] config)
- Content before the first marker is ignored with a warning
- users section: each line is a handle checked with the "@" rule;
  invalid handles and duplicates become warnings
- relations section: "source, target"; a line that is not exactly two
  fields, or names an invalid handle, is a GraphFileError
- A self-relation (case-insensitive) is skipped with a warning
- Both sections are required
- Relation endpoints that were never declared are auto-created, in order
  of first appearance, and reported

The auto-creation and self-loop rules are parser policy; FollowGraph itself
neither auto-creates nor rejects self-loops.
"""
import io
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, TextIO, Union

import msgspec

from core.graph_db import FollowGraph, GraphError, InvalidHandleError
from core.schemas import AdjacencyView
from core.graph_utils import RELATION_SEPARATOR, validate_user_handle
from infrastructure.config import FormatConfig, get_config


logger = logging.getLogger("followgraph.graph_file")


# =============================================================================
# ERRORS & RESULTS
# =============================================================================

class GraphFileError(GraphError):
    """Raised when a graph file cannot be parsed."""
    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        super().__init__(message)


@dataclass
class ParseResult:
    """Graph plus everything worth telling the user about the parse."""
    graph: FollowGraph
    warnings: List[str] = field(default_factory=list)
    auto_created: List[str] = field(default_factory=list)


class _Section(Enum):
    NONE = "none"
    USERS = "users"
    RELATIONS = "relations"


class _RelationLine(msgspec.Struct, frozen=True):
    source: str
    target: str


# =============================================================================
# PARSER
# =============================================================================

class GraphFileParser:
    """
    Parse the two-section text format into a FollowGraph.

    Usage:
        result = GraphFileParser().parse(Path("network.txt"))
        result.graph.node_count
        for warning in result.warnings:
            print(warning)
    """

    def __init__(self, format_config: Optional[FormatConfig] = None, sigil: Optional[str] = None):
        settings = get_config()
        self._format = format_config or settings.format
        self._sigil = settings.handles.sigil if sigil is None else sigil
        self._users_markers = {m.lower() for m in self._format.users_markers}
        self._relations_markers = {m.lower() for m in self._format.relations_markers}

    def parse(self, path: Union[str, Path]) -> ParseResult:
        """Parse a file on disk. Warnings are prefixed with "path:line: "."""
        if path is None:
            raise GraphFileError("path cannot be None")
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            return self._parse(f, origin=str(path))

    def parse_text(self, text: str) -> ParseResult:
        """Parse an in-memory string. Warnings are prefixed with "Line N: "."""
        return self._parse(io.StringIO(text), origin=None)

    def parse_lines(self, lines: Iterable[str]) -> ParseResult:
        return self._parse(lines, origin=None)

    def parse_stream(self, stream: TextIO, origin: Optional[str] = None) -> ParseResult:
        return self._parse(stream, origin=origin)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _parse(self, lines: Iterable[str], origin: Optional[str]) -> ParseResult:
        users: List[str] = []
        declared = set()
        relations: List[_RelationLine] = []
        warnings: List[str] = []
        section = _Section.NONE
        users_seen = False
        relations_seen = False

        def fmt(line_number: int, message: str) -> str:
            if origin is not None:
                return f"{origin}:{line_number}: {message}"
            return f"Line {line_number}: {message}"

        line_number = 0
        for line_number, raw in enumerate(lines, start=1):
            line = raw.strip()
            if not line:
                continue

            marker = self._marker(line)
            if marker is not None:
                section = marker
                if marker is _Section.USERS:
                    users_seen = True
                else:
                    relations_seen = True
                continue

            if section is _Section.NONE:
                warnings.append(fmt(line_number, f"line ignored before the 'users' section: {line}"))
            elif section is _Section.USERS:
                try:
                    handle = validate_user_handle(line, sigil=self._sigil)
                except InvalidHandleError as e:
                    warnings.append(fmt(line_number, e.reason))
                    continue
                if handle in declared:
                    warnings.append(fmt(line_number, f"duplicate user ignored: {handle}"))
                    continue
                declared.add(handle)
                users.append(handle)
            else:
                relation = self._parse_relation(line, line_number, fmt)
                if relation.source.lower() == relation.target.lower():
                    warnings.append(fmt(line_number, f"self-relation ignored: {line}"))
                    continue
                relations.append(relation)

        if not users_seen or not relations_seen:
            raise GraphFileError(
                "the file must contain both a 'users' and a 'relations' section",
                line_number=line_number or None,
            )
        if not users:
            warnings.append("no users were declared in the 'users' section")

        graph = FollowGraph()
        graph.ensure_nodes_present(users)
        auto_created: List[str] = []
        for relation in relations:
            for handle in (relation.source, relation.target):
                if graph.add_node(handle):
                    auto_created.append(handle)
            graph.add_edge(relation.source, relation.target)

        for handle in auto_created:
            warnings.append(f"user auto-created from relations: {handle}")

        logger.info(
            "parsed %s: %d users, %d relations, %d warnings",
            origin or "<text>", graph.node_count, graph.edge_count, len(warnings),
        )
        return ParseResult(graph=graph, warnings=warnings, auto_created=auto_created)

    def _marker(self, line: str) -> Optional[_Section]:
        lowered = line.lower()
        if lowered in self._users_markers:
            return _Section.USERS
        if lowered in self._relations_markers:
            return _Section.RELATIONS
        return None

    def _parse_relation(self, line: str, line_number: int, fmt) -> _RelationLine:
        tokens = line.split(RELATION_SEPARATOR)
        if len(tokens) != 2:
            raise GraphFileError(
                fmt(line_number, f"invalid relation, expected 'source, target': {line}"),
                line_number=line_number,
            )
        try:
            source = validate_user_handle(tokens[0], sigil=self._sigil)
            target = validate_user_handle(tokens[1], sigil=self._sigil)
        except InvalidHandleError as e:
            raise GraphFileError(fmt(line_number, e.reason), line_number=line_number) from e
        return _RelationLine(source, target)


# =============================================================================
# WRITER
# =============================================================================

class GraphFileWriter:
    """
    Serialize a FollowGraph back into the two-section format.

    Node lines follow node order; relation lines follow node order, then
    neighbor order. Parsing the output reproduces the same graph.

    A handle containing the relation separator cannot be read back, so the
    writer raises GraphFileError before writing anything.
    """

    def __init__(self, format_config: Optional[FormatConfig] = None):
        self._format = format_config or get_config().format

    def render(self, graph: FollowGraph) -> str:
        buffer = io.StringIO()
        self.write_stream(buffer, graph)
        return buffer.getvalue()

    def write(self, path: Union[str, Path], graph: FollowGraph) -> None:
        if path is None:
            raise GraphFileError("path cannot be None")
        if graph is None:
            raise GraphFileError("graph cannot be None")
        text = self.render(graph)
        path = Path(path)
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        logger.info("wrote %s: %d users, %d relations", path, graph.node_count, graph.edge_count)

    def write_stream(self, stream: TextIO, graph: FollowGraph) -> None:
        if graph is None:
            raise GraphFileError("graph cannot be None")
        view = self._checked_view(graph)
        stream.write(f"{self._format.write_users_marker}\n")
        for node in view.nodes:
            stream.write(f"{node}\n")
        stream.write(f"{self._format.write_relations_marker}\n")
        for relation in view.edges():
            stream.write(f"{relation.source}, {relation.target}\n")

    @staticmethod
    def _checked_view(graph: FollowGraph) -> AdjacencyView:
        view = graph.adjacency_view()
        for node in view.nodes:
            if RELATION_SEPARATOR in node:
                raise GraphFileError(f"handle cannot be written, it contains {RELATION_SEPARATOR!r}: {node}")
        return view
