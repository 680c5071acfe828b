"""Local-change events for vaultsync."""

from .bus import (
    DroppedFile,
    Event,
    EventBus,
    EventKind,
    FileDeletedEvent,
    FilesDroppedEvent,
)

__all__ = [
    "DroppedFile",
    "Event",
    "EventBus",
    "EventKind",
    "FileDeletedEvent",
    "FilesDroppedEvent",
]
