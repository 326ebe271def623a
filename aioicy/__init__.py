"""aioicy: asyncio client for ICY (SHOUTcast/Icecast) stream titles."""

from __future__ import annotations

# Re-export client library for easy import
from aioicy.client import (
    EventCallback,
    IcyDemuxer,
    SessionConfig,
    StreamSessionManager,
    decode_metadata,
    parse_metadata_fields,
)
from aioicy.models import (
    ConnectionErrorEvent,
    MetadataEvent,
    ParseDriftEvent,
    SessionState,
    StreamEvent,
    TitleChangedEvent,
    UnsupportedEvent,
)

__all__ = [
    "ConnectionErrorEvent",
    "EventCallback",
    "IcyDemuxer",
    "MetadataEvent",
    "ParseDriftEvent",
    "SessionConfig",
    "SessionState",
    "StreamEvent",
    "StreamSessionManager",
    "TitleChangedEvent",
    "UnsupportedEvent",
    "decode_metadata",
    "parse_metadata_fields",
]
