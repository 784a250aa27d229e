"""
FOLLOWGRAPH SCC SOLVER - Kosaraju Over an Explicit Stack

Partitions the handles of a FollowGraph into strongly connected
components: maximal sets in which every handle can reach every other one
along follows edges.

Algorithm (two passes, no recursion):
  Pass 1  Iterative DFS over the original graph, in node order, producing
          a finishing order. A node stays on the stack until every
          neighbor it pushed has been consumed, and is appended to the
          finishing order the first time it is popped.
  Pass 2  Build the transpose, walk the finishing order backwards and run
          an iterative DFS on the transpose from each unexplored node.
          Every such traversal collects exactly one component.

Components come out in the order pass 2 starts them, which is what makes
the component index a stable identity for callers (coloring, export).

Complexity: O(V + E) time, O(V) markers, O(V + E) worst-case stack entries.
Python's recursion limit never comes into play, so long follow chains are safe.
"""
import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from core.graph_db import FollowGraph, PreconditionViolatedError
from core.graph_utils import copy_graph, transpose
from core.schemas import SccResult


logger = logging.getLogger("followgraph.kosaraju")

Adjacency = Dict[str, Tuple[str, ...]]


class KosarajuSCC:
    """
    Stateless SCC solver. One instance can be reused for any number of graphs.

    The input graph is never mutated. The solver first takes a private deep
    copy and works only from that copy's snapshot and transpose, so a caller
    that mutates the live graph afterwards cannot disturb a finished result.
    It must still not run while another thread is mutating the same graph.
    """

    def compute(self, graph: Optional[FollowGraph]) -> List[Set[str]]:
        """
        Strongly connected components, in discovery order.

        Raises:
            PreconditionViolatedError: If graph is None
        """
        return [set(component) for component in self._components(graph)]

    def compute_result(self, graph: Optional[FollowGraph]) -> SccResult:
        """Components (as ordered tuples) plus the handle -> index mapping."""
        return SccResult.from_components(self._components(graph))

    def finishing_order(self, graph: Optional[FollowGraph]) -> List[str]:
        """Pass 1 on its own, exposed for inspection and tests."""
        if graph is None:
            raise PreconditionViolatedError("graph cannot be None")
        view = graph.adjacency_view()
        return self._finishing_order(view.nodes, view.adjacency)

    # =========================================================================
    # PASSES
    # =========================================================================

    def _components(self, graph: Optional[FollowGraph]) -> List[List[str]]:
        if graph is None:
            raise PreconditionViolatedError("graph cannot be None")

        snapshot = copy_graph(graph)
        view = snapshot.adjacency_view()
        order = self._finishing_order(view.nodes, view.adjacency)

        reversed_view = transpose(snapshot).adjacency_view()
        explored: Set[str] = set()
        components: List[List[str]] = []
        for node in reversed(order):
            if node not in explored:
                components.append(self._collect(reversed_view.adjacency, node, explored))

        logger.debug(
            "kosaraju: %d nodes, %d edges -> %d components",
            view.node_count, view.edge_count, len(components),
        )
        return components

    @staticmethod
    def _finishing_order(nodes: Sequence[str], adjacency: Adjacency) -> List[str]:
        visited: Set[str] = set()
        finished: Set[str] = set()
        order: List[str] = []

        for root in nodes:
            if root in visited:
                continue
            stack = [root]
            while stack:
                current = stack[-1]
                if current not in visited:
                    visited.add(current)
                    pushed = False
                    for neighbor in adjacency.get(current, ()):
                        if neighbor not in visited:
                            stack.append(neighbor)
                            pushed = True
                    if pushed:
                        continue
                stack.pop()
                if current not in finished:
                    finished.add(current)
                    order.append(current)
        return order

    @staticmethod
    def _collect(adjacency: Adjacency, start: str, explored: Set[str]) -> List[str]:
        component: List[str] = []
        stack = [start]
        while stack:
            current = stack.pop()
            if current in explored:
                continue
            explored.add(current)
            component.append(current)
            for neighbor in adjacency.get(current, ()):
                if neighbor not in explored:
                    stack.append(neighbor)
        return component


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def strongly_connected_components(graph: FollowGraph) -> List[Set[str]]:
    """Run the solver once: KosarajuSCC().compute(graph)."""
    return KosarajuSCC().compute(graph)

