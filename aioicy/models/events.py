"""Events emitted by a stream session.

Every event carries the URL and the generation of the session that produced it.
The generation is a monotonically increasing id assigned by the session manager on
each start, so consumers can tell events of consecutive sessions apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .types import DriftReason, MetadataEvent


@dataclass
class TitleChangedEvent(MetadataEvent):
    """The StreamTitle of the stream changed."""

    url: str
    generation: int
    title: str | None
    """New title, or None when the station cleared it."""
    type: Literal["title/changed"] = "title/changed"


@dataclass
class UnsupportedEvent(MetadataEvent):
    """The server does not interleave ICY metadata into this stream."""

    url: str
    generation: int
    type: Literal["stream/unsupported"] = "stream/unsupported"


@dataclass
class ParseDriftEvent(MetadataEvent):
    """Metadata framing looked wrong; only delivered when drift reporting is enabled."""

    url: str
    generation: int
    reason: DriftReason
    block_length: int
    """Declared metadata block length in bytes."""
    consecutive: int
    """Number of drifts in a row, including this one."""
    type: Literal["parse/drift"] = "parse/drift"


@dataclass
class ConnectionErrorEvent(MetadataEvent):
    """The connection failed; the session has ended."""

    url: str
    generation: int
    message: str
    type: Literal["connection/error"] = "connection/error"


StreamEvent = TitleChangedEvent | UnsupportedEvent | ParseDriftEvent | ConnectionErrorEvent
"""Any event a stream session can deliver."""
