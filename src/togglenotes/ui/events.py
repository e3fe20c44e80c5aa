"""Event bus and editor events connecting the core to the presentation layer."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar
from weakref import WeakMethod

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events published on the :class:`EventBus`."""


# =============================================================================
# Editor lifecycle
# =============================================================================


@dataclass(slots=True)
class EditorOpened(Event):
    """Emitted when a note becomes the working copy.

    Attributes:
        note_id: Identifier of the opened note.
    """

    note_id: int


@dataclass(slots=True)
class EditorClosed(Event):
    """Emitted when the working copy is discarded.

    Attributes:
        note_id: Identifier of the note that was open, if any.
    """

    note_id: int | None


@dataclass(slots=True)
class HistoryChanged(Event):
    """Emitted after every history push, undo, redo or clear.

    Attributes:
        can_undo: Whether an undo entry is available.
        can_redo: Whether a redo entry is available.
        undo_size: Number of undo entries.
        redo_size: Number of redo entries.
    """

    can_undo: bool
    can_redo: bool
    undo_size: int = 0
    redo_size: int = 0


# =============================================================================
# Persistence
# =============================================================================


@dataclass(slots=True)
class NoteCommitted(Event):
    """Emitted when an edit has been saved.

    Attributes:
        note_id: Identifier of the saved note.
        source: ``"autosave"``, ``"undo"`` or ``"redo"``.
    """

    note_id: int
    source: str


@dataclass(slots=True)
class PersistenceFailed(Event):
    """Emitted when saving did not succeed; the in-memory edit stays live.

    Attributes:
        note_id: Identifier of the note that failed to save, if known.
        message: Human-readable failure description.
    """

    note_id: int | None
    message: str


@dataclass(slots=True)
class NoteCreated(Event):
    note_id: int


@dataclass(slots=True)
class NoteDeleted(Event):
    note_id: int


class EventBus(Generic[E]):
    """Synchronous typed publish/subscribe bus.

    Bound methods are held through :class:`weakref.WeakMethod` so widgets can be
    garbage collected without unsubscribing. A failing handler is logged and
    does not stop delivery to the remaining handlers. Not thread-safe; use it
    from the event loop thread only.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: defaultdict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug("Subscribed handler %s to %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""

        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                return

    def publish(self, event: E) -> None:
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            logger.debug("No handlers for event type %s", event_type.__name__)
            return

        dead: list[_HandlerRef] = []
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
        for handler_ref in dead:
            handlers.remove(handler_ref)

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for plain callables."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "EditorOpened",
    "EditorClosed",
    "HistoryChanged",
    "NoteCommitted",
    "PersistenceFailed",
    "NoteCreated",
    "NoteDeleted",
]
