"""
Unsaved-changes tracking with listener notification.

A tiny state machine (clean <-> dirty). Listeners are plain callables that
receive the new state, and fire only when the state actually flips. A
failing listener is logged and does not stop the others. When
an EventBus is supplied the flip is also published as DIRTY_STATE_CHANGED,
so subscribers elsewhere do not need a reference to the tracker.
"""
import logging
from typing import Callable, List, Optional

from infrastructure.event_bus import EventBus, EventType


logger = logging.getLogger("followgraph.change_tracker")


class UnsavedChangesTracker:
    """Dirty flag plus observers."""

    def __init__(self, event_bus: Optional[EventBus] = None):
        self._dirty = False
        self._listeners: List[Callable[[bool], None]] = []
        self._event_bus = event_bus

    def mark_dirty(self) -> None:
        self._update(True)

    def mark_clean(self) -> None:
        self._update(False)

    def has_unsaved_changes(self) -> bool:
        return self._dirty

    def add_listener(self, listener: Callable[[bool], None]) -> None:
        if listener is None:
            raise ValueError("listener cannot be None")
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[bool], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _update(self, dirty: bool) -> None:
        if self._dirty == dirty:
            return
        self._dirty = dirty
        logger.debug("unsaved changes: %s", dirty)
        for listener in list(self._listeners):
            try:
                listener(dirty)
            except Exception:
                logger.error("unsaved-changes listener %r failed", listener, exc_info=True)
        if self._event_bus is not None:
            self._event_bus.emit(
                EventType.DIRTY_STATE_CHANGED,
                {"dirty": dirty},
                source="change_tracker",
            )
