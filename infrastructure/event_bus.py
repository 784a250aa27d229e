"""
FOLLOWGRAPH EVENT BUS - Change Notifications Without Coupling

The graph store, the service and the unsaved-changes tracker announce what
happened here; whoever cares (the mutation log, a CLI progress printer, a
UI, a test) subscribes. Publishers never learn who is listening.

Delivery rules:
- Sync handlers run inline, in subscription order, on the publishing thread
- Async handlers (coroutine functions) are scheduled on the running loop;
  with no loop running they are skipped with a warning
- A failing handler is logged with its traceback and never reaches the
  publisher, so a broken subscriber cannot undo a graph mutation

Flow:
    FollowGraph / GraphService / UnsavedChangesTracker
        -> EventBus.emit(type, payload, source)
        -> GraphEvent (msgspec Struct)
        -> subscribers of that type

Usage:
    bus = get_event_bus()
    bus.subscribe(EventType.DIRTY_STATE_CHANGED, lambda e: print(e.payload["dirty"]))
    bus.emit(EventType.DIRTY_STATE_CHANGED, {"dirty": True}, source="change_tracker")
"""
import asyncio
import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import msgspec


logger = logging.getLogger("followgraph.event_bus")


class EventType(str, Enum):
    """Everything the graph and service layers announce."""
    # store mutations
    NODE_CREATED = "node_created"
    NODE_DELETED = "node_deleted"
    EDGE_CREATED = "edge_created"
    EDGE_DELETED = "edge_deleted"
    # service lifecycle
    GRAPH_LOADED = "graph_loaded"
    GRAPH_SAVED = "graph_saved"
    GRAPH_RESET = "graph_reset"
    SCC_COMPUTED = "scc_computed"
    DIRTY_STATE_CHANGED = "dirty_state_changed"


class GraphEvent(msgspec.Struct, kw_only=True):
    """
    One notification.

    payload keys by type:
        NODE_CREATED         node_id
        NODE_DELETED         node_id, incoming_removed
        EDGE_CREATED/DELETED source_id, target_id
        GRAPH_LOADED         source, user_count, relation_count
        GRAPH_SAVED          path
        SCC_COMPUTED         component_count
        DIRTY_STATE_CHANGED  dirty
    """
    type: EventType
    payload: Dict[str, Any]
    timestamp: float
    source: str


Handler = Callable[[GraphEvent], Any]


class EventBus:
    """
    Per-type subscriber registry.

    Registration is guarded by a lock so threads may subscribe while another
    publishes; publishing iterates over a copy of the handler list. Event
    ordering across threads is up to the publishers (GraphService serializes
    its own).
    """

    def __init__(self):
        self._lock = threading.Lock()
        # event type -> [(handler, is_async)] in subscription order
        self._registry: Dict[EventType, List[Tuple[Handler, bool]]] = {}

    # =========================================================================
    # SUBSCRIPTION
    # =========================================================================

    def subscribe(self, event_type: EventType, handler: Callable[[GraphEvent], None]) -> None:
        """Register a plain callable. Registering it twice is a no-op."""
        self._register(event_type, handler, is_async=False)

    def subscribe_async(self, event_type: EventType, handler: Handler) -> None:
        """Register a coroutine function."""
        self._register(event_type, handler, is_async=True)

    def unsubscribe(self, event_type: EventType, handler: Handler) -> None:
        with self._lock:
            entries = self._registry.get(event_type, [])
            remaining = [entry for entry in entries if entry[0] != handler]
            if len(remaining) != len(entries):
                self._registry[event_type] = remaining
                logger.debug("unsubscribed %r from %s", handler, event_type.value)

    def clear_subscribers(self, event_type: Optional[EventType] = None) -> None:
        """Drop every handler for one type, or for all types when None."""
        with self._lock:
            if event_type is None:
                self._registry.clear()
            else:
                self._registry.pop(event_type, None)
        logger.debug("cleared subscribers for %s", event_type.value if event_type else "all events")

    def subscriber_count(self, event_type: Optional[EventType] = None) -> int:
        with self._lock:
            if event_type is not None:
                return len(self._registry.get(event_type, ()))
            return sum(len(entries) for entries in self._registry.values())

    def _register(self, event_type: EventType, handler: Handler, is_async: bool) -> None:
        with self._lock:
            entries = self._registry.setdefault(event_type, [])
            if any(existing == handler for existing, _ in entries):
                return
            entries.append((handler, is_async))
        logger.debug("subscribed %s handler to %s", "async" if is_async else "sync", event_type.value)

    # =========================================================================
    # PUBLISHING
    # =========================================================================

    def publish(self, event: GraphEvent) -> None:
        """Deliver an already-built event."""
        with self._lock:
            entries = list(self._registry.get(event.type, ()))
        logger.debug("publishing %s from %s to %d handler(s)", event.type.value, event.source, len(entries))

        for handler, is_async in entries:
            if is_async:
                self._schedule(handler, event)
                continue
            try:
                handler(event)
            except Exception:
                logger.error("handler %r failed on %s", handler, event.type.value, exc_info=True)

    def emit(self, event_type: EventType, payload: Dict[str, Any], source: str) -> GraphEvent:
        """Build a timestamped GraphEvent, publish it, and return it."""
        event = GraphEvent(type=event_type, payload=payload, timestamp=time.time(), source=source)
        self.publish(event)
        return event

    def _schedule(self, handler: Handler, event: GraphEvent) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "cannot schedule async handler for %s: no event loop running",
                event.type.value,
            )
            return
        try:
            loop.create_task(handler(event))
        except Exception:
            logger.error("scheduling %r failed on %s", handler, event.type.value, exc_info=True)


# =============================================================================
# PROCESS-WIDE INSTANCE
# =============================================================================

_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """The shared bus, created on first use."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
        logger.debug("created global event bus")
    return _event_bus


def reset_event_bus() -> None:
    """Forget the shared bus. Tests call this between cases."""
    global _event_bus
    _event_bus = None
