"""Stream session manager: one ICY metadata connection at a time."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import suppress
from dataclasses import dataclass
from types import TracebackType
from typing import Self

from aiohttp import ClientError, ClientResponse, ClientResponseError, ClientSession

from aioicy.exceptions import MetadataFramingError, UnsupportedStreamError
from aioicy.models.events import (
    ConnectionErrorEvent,
    ParseDriftEvent,
    StreamEvent,
    TitleChangedEvent,
    UnsupportedEvent,
)
from aioicy.models.types import SessionState

from .config import SessionConfig
from .demuxer import AudioCallback, FramingDrift, IcyDemuxer, TitleChange

logger = logging.getLogger(__name__)

ICY_METAINT_HEADER = "icy-metaint"

EventCallback = Callable[[StreamEvent], Awaitable[None] | None]

# Events buffered per events() iterator before the oldest are dropped.
EVENT_QUEUE_SIZE = 256


def parse_icy_metaint(headers: Mapping[str, str]) -> int:
    """
    Return the metadata interval announced by the server.

    Raises:
        UnsupportedStreamError: The header is missing, not a decimal number or zero.
    """
    raw = headers.get(ICY_METAINT_HEADER)
    if raw is None:
        raise UnsupportedStreamError("no icy-metaint header")
    value = raw.strip()
    if not value.isascii() or not value.isdigit():
        raise UnsupportedStreamError(f"invalid icy-metaint header {raw!r}")
    icy_metaint = int(value)
    if icy_metaint <= 0:
        raise UnsupportedStreamError("icy-metaint is zero")
    return icy_metaint


@dataclass(slots=True)
class StreamSession:
    """State of one connection to a stream URL."""

    url: str
    generation: int
    state: SessionState = SessionState.CONNECTING
    icy_metaint: int | None = None
    """Set once the response headers are parsed."""
    demuxer: IcyDemuxer | None = None
    task: asyncio.Task[None] | None = None


class StreamSessionManager:
    """Follow the ICY StreamTitle of one stream URL at a time."""

    def __init__(
        self,
        *,
        config: SessionConfig | None = None,
        session: ClientSession | None = None,
        audio_callback: AudioCallback | None = None,
    ) -> None:
        """
        Create a session manager.

        Args:
            config: Connection and parser settings, defaults to SessionConfig().
            session: aiohttp session to use; one is created (and owned) when omitted.
            audio_callback: Receives the audio sub-stream of the active session.
        """
        self._config = config or SessionConfig()
        self._session = session
        self._owns_session = session is None
        self._audio_callback = audio_callback
        self._stream: StreamSession | None = None
        self._generation = 0
        self._discard_through = 0
        self._current_title: str | None = None
        self._event_callbacks: list[EventCallback] = []
        self._subscribers: list[asyncio.Queue[StreamEvent | None]] = []

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    @property
    def config(self) -> SessionConfig:
        """Return the settings applied to new sessions."""
        return self._config

    @property
    def state(self) -> SessionState:
        """Return the state of the current (or last) session."""
        return self._stream.state if self._stream is not None else SessionState.IDLE

    @property
    def url(self) -> str | None:
        """Return the URL of the current (or last) session."""
        return self._stream.url if self._stream is not None else None

    @property
    def icy_metaint(self) -> int | None:
        """Return the metadata interval of the current session, once known."""
        return self._stream.icy_metaint if self._stream is not None else None

    @property
    def generation(self) -> int:
        """Return the id of the most recently started session (0 before any start)."""
        return self._generation

    @property
    def current_title(self) -> str | None:
        """Return the last title reported by the current session."""
        return self._current_title

    @property
    def active(self) -> bool:
        """Return True while a session is connecting or streaming."""
        return self.state in (SessionState.CONNECTING, SessionState.STREAMING)

    async def start(self, url: str) -> None:
        """
        Start following the metadata of ``url``.

        Any previous session is torn down first, so at most one session is alive.
        When calls overlap, the last one wins. Returns once the connection task is
        scheduled; progress is reported through events.
        """
        # Claim the slot before awaiting anything so overlapping calls see it.
        self._discard_through = self._generation
        self._generation += 1
        stream = StreamSession(url=url, generation=self._generation)
        previous, self._stream = self._stream, stream
        self._current_title = None
        if previous is not None:
            await self._teardown(previous)
        if not self._is_live(stream.generation):
            logger.debug("Session %d for %s superseded before it started", stream.generation, url)
            return
        if self._session is None:
            self._session = ClientSession()
        logger.info("Starting session %d for %s", stream.generation, url)
        stream.task = asyncio.get_running_loop().create_task(self._run(stream))

    async def restart(self) -> None:
        """Start a fresh session for the current URL."""
        if self._stream is None:
            raise RuntimeError("No stream was started")
        await self.start(self._stream.url)

    async def stop(self) -> None:
        """
        Stop the current session.

        Cancels the connection and drops its demuxer. No event of the stopped
        session is delivered afterwards. Does nothing when no session is running.
        """
        self._discard_through = self._generation
        stream = self._stream
        if stream is None or stream.state not in (SessionState.CONNECTING, SessionState.STREAMING):
            return
        await self._teardown(stream)
        logger.info("Stopped session %d for %s", stream.generation, stream.url)

    async def close(self) -> None:
        """Stop the session, end all event iterators and release the HTTP session."""
        await self.stop()
        for queue in self._subscribers:
            _enqueue(queue, None)
        self._subscribers.clear()
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def add_event_listener(self, callback: EventCallback) -> None:
        """Register a callback invoked for every delivered event."""
        self._event_callbacks.append(callback)

    def remove_event_listener(self, callback: EventCallback) -> None:
        """Unregister a callback added with add_event_listener."""
        with suppress(ValueError):
            self._event_callbacks.remove(callback)

    def events(self) -> AsyncIterator[StreamEvent]:
        """
        Return an iterator over delivered events.

        The iterator is subscribed immediately and ends when the manager is closed.
        Events of a session stopped before they were consumed are skipped. At most
        ``EVENT_QUEUE_SIZE`` events are buffered; when the consumer falls behind the
        oldest are dropped.
        """
        queue: asyncio.Queue[StreamEvent | None] = asyncio.Queue(maxsize=EVENT_QUEUE_SIZE)
        self._subscribers.append(queue)
        return self._iter_queue(queue)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _is_live(self, generation: int) -> bool:
        return generation == self._generation and generation > self._discard_through

    async def _teardown(self, stream: StreamSession) -> None:
        task = stream.task
        stream.task = None
        stream.demuxer = None
        if stream.state in (SessionState.CONNECTING, SessionState.STREAMING):
            stream.state = SessionState.STOPPED
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def _run(self, stream: StreamSession) -> None:
        assert self._session is not None
        try:
            async with self._session.get(
                stream.url,
                headers=self._config.request_headers,
                timeout=self._config.client_timeout,
            ) as response:
                response.raise_for_status()
                await self._stream_response(stream, response)
            if self._is_live(stream.generation):
                logger.info("Stream %s ended", stream.url)
                self._finish(stream, SessionState.STOPPED)
        except UnsupportedStreamError as err:
            logger.warning("Stream %s does not support ICY metadata: %s", stream.url, err)
            await self._deliver(UnsupportedEvent(url=stream.url, generation=stream.generation))
            self._finish(stream, SessionState.STOPPED)
        except MetadataFramingError as err:
            logger.warning("Giving up on %s: %s", stream.url, err)
            await self._fail(stream, str(err))
        except ClientResponseError as err:
            logger.warning("Stream %s answered HTTP %s", stream.url, err.status)
            await self._fail(stream, f"HTTP {err.status}: {err.message}")
        except (ClientError, OSError, TimeoutError) as err:
            logger.warning("Connection to %s failed: %r", stream.url, err)
            await self._fail(stream, _describe_error(err))

    async def _stream_response(self, stream: StreamSession, response: ClientResponse) -> None:
        icy_metaint = parse_icy_metaint(response.headers)
        if not self._is_live(stream.generation):
            return
        demuxer = IcyDemuxer(
            icy_metaint,
            max_metadata_length=self._config.max_metadata_length,
            audio_callback=self._make_audio_sink(stream.generation),
        )
        stream.icy_metaint = icy_metaint
        stream.demuxer = demuxer
        stream.state = SessionState.STREAMING
        logger.info("Connected to %s (icy-metaint %d)", stream.url, icy_metaint)

        async for chunk in response.content.iter_chunked(self._config.chunk_size):
            if not self._is_live(stream.generation):
                return
            for result in demuxer.feed(chunk):
                if not self._is_live(stream.generation):
                    return
                await self._handle_demux_event(stream, result)

    async def _handle_demux_event(
        self, stream: StreamSession, result: TitleChange | FramingDrift
    ) -> None:
        match result:
            case TitleChange(title=title):
                logger.info("Now playing on %s: %s", stream.url, title)
                self._current_title = title
                await self._deliver(
                    TitleChangedEvent(url=stream.url, generation=stream.generation, title=title)
                )
            case FramingDrift(reason=reason, block_length=block_length, consecutive=consecutive):
                logger.warning(
                    "Metadata framing drift on %s (%s, %d bytes, %d in a row)",
                    stream.url,
                    reason.value,
                    block_length,
                    consecutive,
                )
                if self._config.report_drift:
                    await self._deliver(
                        ParseDriftEvent(
                            url=stream.url,
                            generation=stream.generation,
                            reason=reason,
                            block_length=block_length,
                            consecutive=consecutive,
                        )
                    )
                if consecutive >= self._config.max_drift_events:
                    raise MetadataFramingError(
                        f"metadata framing lost after {consecutive} bad blocks"
                    )

    def _make_audio_sink(self, generation: int) -> AudioCallback | None:
        callback = self._audio_callback
        if callback is None:
            return None

        def sink(audio: bytes) -> None:
            if not self._is_live(generation):
                return
            try:
                callback(audio)
            except Exception:
                logger.exception("Error in audio callback %s", callback)

        return sink

    async def _fail(self, stream: StreamSession, message: str) -> None:
        await self._deliver(
            ConnectionErrorEvent(url=stream.url, generation=stream.generation, message=message)
        )
        self._finish(stream, SessionState.FAILED)

    def _finish(self, stream: StreamSession, state: SessionState) -> None:
        if not self._is_live(stream.generation):
            return
        stream.state = state
        stream.task = None
        stream.demuxer = None

    async def _deliver(self, event: StreamEvent) -> None:
        if not self._is_live(event.generation):
            logger.debug("Dropping %s of superseded session %d", event.type, event.generation)
            return
        for queue in self._subscribers:
            _enqueue(queue, event)
        for callback in list(self._event_callbacks):
            if not self._is_live(event.generation):
                return
            try:
                result = callback(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("Error in event callback %s", callback)

    async def _iter_queue(
        self, queue: asyncio.Queue[StreamEvent | None]
    ) -> AsyncIterator[StreamEvent]:
        try:
            while (event := await queue.get()) is not None:
                if event.generation <= self._discard_through:
                    continue
                yield event
        finally:
            with suppress(ValueError):
                self._subscribers.remove(queue)

    async def __aenter__(self) -> Self:
        """Enter the async context manager returning this instance."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the manager when leaving the async context manager."""
        await self.close()


def _describe_error(err: BaseException) -> str:
    text = str(err)
    if isinstance(err, TimeoutError) and not text:
        return "timed out"
    return text or type(err).__name__


def _enqueue(queue: asyncio.Queue[StreamEvent | None], item: StreamEvent | None) -> None:
    if queue.full():
        dropped = queue.get_nowait()
        logger.debug("Event queue full, dropping %r", dropped)
    queue.put_nowait(item)
