"""
FOLLOWGRAPH LOGGING - Handlers and the Mutation Log

Two concerns live here:

1. configure_logging(): installs one stream handler on the "followgraph"
   logger from the [logging] config section. Library modules only ever call
   logging.getLogger(...); main.py is the one place that configures output.

2. MutationLog: an event-bus subscriber that keeps a ring buffer of recent
   graph mutations and mirrors them to the "followgraph.mutations" logger.

Usage:
    configure_logging("DEBUG")

    log = MutationLog(bus)
    graph = FollowGraph(event_bus=bus)
    graph.add_node("@ana")
    log.get_last(1)[0].type      # EventType.NODE_CREATED
"""
import logging
import sys
import threading
from collections import deque
from typing import List, Optional

from infrastructure.config import get_config
from infrastructure.event_bus import EventBus, EventType, GraphEvent


ROOT_LOGGER_NAME = "followgraph"

MUTATION_EVENTS = (
    EventType.NODE_CREATED,
    EventType.NODE_DELETED,
    EventType.EDGE_CREATED,
    EventType.EDGE_DELETED,
)


# =============================================================================
# HANDLER SETUP
# =============================================================================

def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None, stream=None) -> logging.Logger:
    """
    Configure the "followgraph" logger hierarchy.

    Calling it again replaces the handler installed by a previous call
    instead of stacking a second one.

    Args:
        level: Level name; defaults to config [logging].level
        fmt: logging format string; defaults to config [logging].format
        stream: Output stream; defaults to sys.stderr
    """
    settings = get_config().logging
    level_name = (level or settings.level).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level_name}")

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        if getattr(handler, "_followgraph_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(fmt or settings.format))
    handler._followgraph_handler = True
    root.addHandler(handler)
    root.setLevel(numeric_level)
    return root


def get_logger(name: str) -> logging.Logger:
    """Child logger under the followgraph namespace."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


# =============================================================================
# MUTATION LOG
# =============================================================================

class MutationLog:
    """
    Ring buffer of recent graph mutation events.

    Subscribes to the four mutation event types on the given bus. Thread-safe
    for reads while the single writer appends.
    """

    def __init__(self, event_bus: EventBus, max_size: int = 10000):
        self._buffer: deque = deque(maxlen=max_size)
        self._lock = threading.RLock()
        self._event_bus = event_bus
        self._logger = get_logger("mutations")
        for event_type in MUTATION_EVENTS:
            event_bus.subscribe(event_type, self._record)

    def _record(self, event: GraphEvent) -> None:
        with self._lock:
            self._buffer.append(event)
        self._logger.info("%s %s", event.type.value, event.payload)

    def get_last(self, n: int) -> List[GraphEvent]:
        """Get the last n events, oldest first."""
        with self._lock:
            items = list(self._buffer)
        return items[-n:] if n > 0 else []

    def get_by_node(self, node_id: str) -> List[GraphEvent]:
        """Events that created/deleted the node or touched it as an edge endpoint."""
        with self._lock:
            return [
                e for e in self._buffer
                if node_id in (
                    e.payload.get("node_id"),
                    e.payload.get("source_id"),
                    e.payload.get("target_id"),
                )
            ]

    def get_by_type(self, event_type: EventType) -> List[GraphEvent]:
        with self._lock:
            return [e for e in self._buffer if e.type == event_type]

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()

    def close(self) -> None:
        """Stop listening on the bus."""
        for event_type in MUTATION_EVENTS:
            self._event_bus.unsubscribe(event_type, self._record)

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)
