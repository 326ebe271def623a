"""Public interface for the aioicy client package."""

from .config import SessionConfig
from .decoder import decode_metadata, parse_metadata_fields
from .demuxer import IcyDemuxer
from .session import EventCallback, StreamSessionManager

__all__ = [
    "EventCallback",
    "IcyDemuxer",
    "SessionConfig",
    "StreamSessionManager",
    "decode_metadata",
    "parse_metadata_fields",
]
