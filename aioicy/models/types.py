"""Base event model and enum types used by aioicy."""

from dataclasses import dataclass
from enum import Enum

from mashumaro.config import BaseConfig
from mashumaro.mixins.orjson import DataClassORJSONMixin
from mashumaro.types import Discriminator


# Base event class
@dataclass
class MetadataEvent(DataClassORJSONMixin):
    """Base class for events delivered by a stream session."""

    class Config(BaseConfig):
        """Config for parsing json events."""

        discriminator = Discriminator(field="type", include_subtypes=True)


# Enums


class SessionState(Enum):
    """Lifecycle states of a stream session."""

    IDLE = "idle"
    """No session was started yet."""
    CONNECTING = "connecting"
    """HTTP request sent, waiting for the response headers."""
    STREAMING = "streaming"
    """Headers parsed, audio/metadata bytes are being demultiplexed."""
    STOPPED = "stopped"
    """Stopped by the caller, by end of stream or because metadata is unsupported."""
    FAILED = "failed"
    """Ended by a connection error."""


class DriftReason(Enum):
    """Why the demuxer suspects the metadata framing is off."""

    OVERSIZED = "oversized"
    """Declared block length exceeds the configured maximum."""
    MALFORMED = "malformed"
    """Non-empty block that reads like audio bytes rather than key='value' text."""
