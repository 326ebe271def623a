"""Models for the aioicy metadata client."""

from __future__ import annotations

from . import events, types
from .events import (
    ConnectionErrorEvent,
    ParseDriftEvent,
    StreamEvent,
    TitleChangedEvent,
    UnsupportedEvent,
)
from .types import DriftReason, MetadataEvent, SessionState

__all__ = [
    "ConnectionErrorEvent",
    "DriftReason",
    "MetadataEvent",
    "ParseDriftEvent",
    "SessionState",
    "StreamEvent",
    "TitleChangedEvent",
    "UnsupportedEvent",
    "events",
    "types",
]
