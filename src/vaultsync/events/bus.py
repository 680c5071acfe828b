"""Local-change event bus.

Hosts publish deletion, drop and paste events; the sync core subscribes
handlers to the event kinds it cares about.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Union

from ..utils.logging import get_logger


class EventKind(str, Enum):
    """Kinds of local-change events."""
    DELETE = "delete"
    DROP = "drop"
    PASTE = "paste"


@dataclass(frozen=True)
class FileDeletedEvent:
    """A file was deleted from the vault."""

    name: str
    path: str
    kind: EventKind = EventKind.DELETE


@dataclass(frozen=True)
class DroppedFile:
    """Raw file carried by a drop or paste event."""

    name: str
    content: bytes
    mime_type: Optional[str] = None


@dataclass(frozen=True)
class FilesDroppedEvent:
    """One or more files were dropped or pasted into the vault."""

    files: List[DroppedFile] = field(default_factory=list)
    kind: EventKind = EventKind.DROP


Event = Union[FileDeletedEvent, FilesDroppedEvent]
EventHandler = Callable[[Event], Awaitable[object]]


class EventBus:
    """Dispatches events to handlers registered per event kind."""

    def __init__(self):
        self._handlers: Dict[EventKind, List[EventHandler]] = {}
        self.logger = get_logger(self.__class__.__name__)

    def subscribe(self, kind: EventKind, handler: EventHandler) -> Callable[[], None]:
        """Register an async handler for an event kind.

        Returns:
            A callable that removes the registration again
        """
        self._handlers.setdefault(kind, []).append(handler)
        self.logger.debug("Handler subscribed", kind=kind.value, handler=getattr(handler, "__qualname__", repr(handler)))

        def unsubscribe() -> None:
            handlers = self._handlers.get(kind, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def handler_count(self, kind: EventKind) -> int:
        return len(self._handlers.get(kind, []))

    async def publish(self, event: Event) -> int:
        """Deliver an event to every handler of its kind, in registration order.

        A failing handler is logged and does not keep the remaining handlers
        from running.

        Returns:
            Number of handlers that completed without raising
        """
        handlers = list(self._handlers.get(event.kind, []))
        if not handlers:
            self.logger.debug("No handlers for event", kind=event.kind.value)
            return 0

        completed = 0
        for handler in handlers:
            try:
                await handler(event)
                completed += 1
            except Exception as e:
                self.logger.error(
                    "Event handler failed",
                    kind=event.kind.value,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(e)
                )
        return completed
