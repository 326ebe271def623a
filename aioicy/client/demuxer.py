"""Incremental demultiplexer for ICY interleaved audio/metadata streams.

An ICY stream repeats the same frame: ``icy_metaint`` audio bytes, one length byte
``L`` and ``L * 16`` bytes of metadata text. The network may split that frame at any
byte, so the parser state is an explicit value carried from one ``feed()`` call to
the next.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import NamedTuple

from aioicy.models.types import DriftReason

from .decoder import decode_metadata_block

logger = logging.getLogger(__name__)

METADATA_BLOCK_UNIT = 16
MAX_METADATA_LENGTH = 255 * METADATA_BLOCK_UNIT

AudioCallback = Callable[[bytes], None]


# Parser phases
@dataclass(frozen=True, slots=True)
class ReadingAudio:
    """Skipping audio bytes until the next length byte."""

    remaining: int


@dataclass(frozen=True, slots=True)
class ReadingLength:
    """Waiting for the metadata length byte."""


@dataclass(frozen=True, slots=True)
class ReadingMetadata:
    """Collecting (or skipping, when ``discard`` is set) a metadata block."""

    remaining: int
    discard: bool = False


Phase = ReadingAudio | ReadingLength | ReadingMetadata


@dataclass(frozen=True, slots=True)
class DemuxerState:
    """Complete parser state between two ``feed()`` calls."""

    phase: Phase
    buffer: bytes = b""
    """Bytes of a metadata block that is not complete yet."""
    last_title: str | None = None
    drift_count: int = 0
    """Consecutive blocks with suspicious framing."""


# Results of feed()
class TitleChange(NamedTuple):
    """The StreamTitle differs from the previously reported one."""

    title: str | None


class FramingDrift(NamedTuple):
    """A metadata block did not look like ICY metadata."""

    reason: DriftReason
    block_length: int
    consecutive: int


DemuxEvent = TitleChange | FramingDrift


class IcyDemuxer:
    """Split an ICY byte stream into audio bytes and title changes."""

    def __init__(
        self,
        icy_metaint: int,
        *,
        max_metadata_length: int = MAX_METADATA_LENGTH,
        audio_callback: AudioCallback | None = None,
    ) -> None:
        """Create a demuxer for a stream with ``icy_metaint`` audio bytes per frame."""
        if icy_metaint <= 0:
            raise ValueError("icy_metaint must be positive")
        if max_metadata_length <= 0:
            raise ValueError("max_metadata_length must be positive")
        self._icy_metaint = icy_metaint
        self._max_metadata_length = max_metadata_length
        self._audio_callback = audio_callback
        self._state = DemuxerState(phase=ReadingAudio(icy_metaint))
        self.audio_bytes = 0
        self.metadata_blocks = 0

    @property
    def icy_metaint(self) -> int:
        """Return the number of audio bytes between two metadata blocks."""
        return self._icy_metaint

    @property
    def state(self) -> DemuxerState:
        """Return the current parser state."""
        return self._state

    @property
    def last_title(self) -> str | None:
        """Return the most recently reported title."""
        return self._state.last_title

    def feed(self, chunk: bytes) -> list[DemuxEvent]:
        """
        Consume the next chunk of the stream.

        Args:
            chunk: Bytes as received from the network, of any size.

        Returns:
            Title changes and framing drifts found in this chunk, in stream order.
        """
        if not chunk:
            return []
        state = self._state
        data = state.buffer + bytes(chunk)
        size = len(data)
        pos = 0
        phase = state.phase
        last_title = state.last_title
        drift_count = state.drift_count
        events: list[DemuxEvent] = []

        while pos < size:
            available = size - pos
            match phase:
                case ReadingAudio(remaining=remaining):
                    take = min(remaining, available)
                    self._pass_audio(data[pos : pos + take])
                    pos += take
                    if take == remaining:
                        phase = ReadingLength()
                    else:
                        phase = ReadingAudio(remaining - take)
                case ReadingLength():
                    block_length = data[pos] * METADATA_BLOCK_UNIT
                    pos += 1
                    if block_length == 0:
                        phase = ReadingAudio(self._icy_metaint)
                    elif block_length > self._max_metadata_length:
                        drift_count += 1
                        logger.warning(
                            "Metadata block of %d bytes exceeds limit of %d, skipping it",
                            block_length,
                            self._max_metadata_length,
                        )
                        events.append(
                            FramingDrift(DriftReason.OVERSIZED, block_length, drift_count)
                        )
                        phase = ReadingMetadata(block_length, discard=True)
                    else:
                        phase = ReadingMetadata(block_length)
                case ReadingMetadata(remaining=remaining, discard=True):
                    take = min(remaining, available)
                    pos += take
                    if take == remaining:
                        phase = ReadingAudio(self._icy_metaint)
                    else:
                        phase = ReadingMetadata(remaining - take, discard=True)
                case ReadingMetadata(remaining=remaining):
                    if available < remaining:
                        break
                    block = decode_metadata_block(data[pos : pos + remaining])
                    pos += remaining
                    self.metadata_blocks += 1
                    phase = ReadingAudio(self._icy_metaint)
                    if block.malformed:
                        drift_count += 1
                        logger.debug("Malformed metadata block: %r", block.text[:64])
                        events.append(FramingDrift(DriftReason.MALFORMED, remaining, drift_count))
                        continue
                    drift_count = 0
                    title = block.title
                    if title != last_title:
                        last_title = title
                        events.append(TitleChange(title))

        self._state = DemuxerState(
            phase=phase,
            buffer=data[pos:],
            last_title=last_title,
            drift_count=drift_count,
        )
        return events

    def _pass_audio(self, audio: bytes) -> None:
        self.audio_bytes += len(audio)
        if self._audio_callback is not None and audio:
            self._audio_callback(audio)
