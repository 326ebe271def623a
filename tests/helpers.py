"""Builders for ICY framed test streams."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator


def audio(metaint: int, index: int = 0) -> bytes:
    """Return ``metaint`` audio bytes, distinct per frame index."""
    return bytes((index * 7 + i) % 251 for i in range(metaint))


def metadata_block(payload: bytes) -> bytes:
    """Return the length byte plus ``payload`` padded with NULs to 16 bytes."""
    padded = payload + b"\x00" * (-len(payload) % 16)
    return bytes([len(padded) // 16]) + padded


def title_block(title: str, encoding: str = "utf-8") -> bytes:
    """Return a framed metadata block carrying a StreamTitle."""
    return metadata_block(f"StreamTitle='{title}';".encode(encoding))


EMPTY_BLOCK = b"\x00"


def icy_stream(metaint: int, blocks: list[bytes]) -> bytes:
    """Interleave one audio frame before each framed metadata block."""
    return b"".join(audio(metaint, index) + block for index, block in enumerate(blocks))


def audio_only(metaint: int, frames: int) -> bytes:
    """Return the audio sub-stream of an icy_stream with ``frames`` frames."""
    return b"".join(audio(metaint, index) for index in range(frames))


def chunked(data: bytes, size: int) -> Iterator[bytes]:
    """Split ``data`` into chunks of ``size`` bytes."""
    for start in range(0, len(data), size):
        yield data[start : start + size]


async def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    """Poll until ``predicate`` returns True."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.01)
