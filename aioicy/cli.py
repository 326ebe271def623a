"""Command-line interface for following the title of an internet radio stream."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence
from contextlib import suppress
from dataclasses import dataclass

import aioconsole

from aioicy.client import SessionConfig, StreamSessionManager
from aioicy.client.config import DEFAULT_USER_AGENT
from aioicy.models.events import (
    ConnectionErrorEvent,
    ParseDriftEvent,
    StreamEvent,
    TitleChangedEvent,
    UnsupportedEvent,
)

logger = logging.getLogger(__name__)

INITIAL_BACKOFF = 1.0
MAX_BACKOFF = 300.0  # 5 minutes


@dataclass
class CLIState:
    """Holds what the CLI last heard about the stream."""

    url: str | None = None
    title: str | None = None
    supported: bool | None = None
    last_error: str | None = None

    def update(self, event: StreamEvent) -> None:
        """Merge an event into the state."""
        if self.url != event.url:
            self.url = event.url
            self.title = None
            self.supported = None
            self.last_error = None
        match event:
            case TitleChangedEvent(title=title):
                self.title = title
                self.supported = True
                self.last_error = None
            case UnsupportedEvent():
                self.supported = False
            case ConnectionErrorEvent(message=message):
                self.last_error = message

    def describe(self) -> str:
        """Return a human-friendly description of the current state."""
        if self.url is None:
            return "Nothing playing"
        lines = [f"Station: {self.url}"]
        if self.supported is False:
            lines.append("Stream does not send titles")
        elif self.title:
            lines.append(f"Now playing: {self.title}")
        if self.last_error:
            lines.append(f"Last error: {self.last_error}")
        return "\n".join(lines)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the aioicy client."""
    parser = argparse.ArgumentParser(description="Print the now playing title of a radio stream")
    parser.add_argument(
        "--url",
        default=None,
        help="Stream URL to follow right away. Use 'play <url>' to switch later.",
    )
    parser.add_argument(
        "--user-agent",
        default=DEFAULT_USER_AGENT,
        help="User-Agent header sent to the stream server",
    )
    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=10.0,
        help="Seconds to wait for the connection to be established",
    )
    parser.add_argument(
        "--read-timeout",
        type=float,
        default=30.0,
        help="Seconds without data before the connection is considered dead",
    )
    parser.add_argument(
        "--max-drift-events",
        type=int,
        default=3,
        help="Malformed metadata blocks in a row before giving up on a stream",
    )
    parser.add_argument(
        "--report-drift",
        action="store_true",
        help="Print malformed metadata framing events",
    )
    parser.add_argument(
        "--reconnect",
        action="store_true",
        help="Reconnect with exponential backoff after connection errors",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print events as JSON lines",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level to use",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> SessionConfig:
    """Map parsed CLI arguments onto session settings."""
    return SessionConfig(
        user_agent=args.user_agent,
        connect_timeout=args.connect_timeout,
        read_timeout=args.read_timeout,
        max_drift_events=args.max_drift_events,
        report_drift=args.report_drift,
    )


class ReconnectPolicy:
    """Restarts a failed session after an exponentially growing delay."""

    def __init__(
        self,
        manager: StreamSessionManager,
        *,
        initial_backoff: float = INITIAL_BACKOFF,
        max_backoff: float = MAX_BACKOFF,
    ) -> None:
        """Initialize the policy for the given session manager."""
        self._manager = manager
        self._initial_backoff = initial_backoff
        self._max_backoff = max_backoff
        self._backoff = initial_backoff
        self._task: asyncio.Task[None] | None = None

    @property
    def backoff(self) -> float:
        """Return the delay applied to the next reconnect."""
        return self._backoff

    @property
    def pending(self) -> bool:
        """Return True while a reconnect is scheduled."""
        return self._task is not None and not self._task.done()

    def on_event(self, event: StreamEvent) -> None:
        """Schedule a reconnect on connection errors; reset the delay on titles."""
        match event:
            case TitleChangedEvent():
                self._backoff = self._initial_backoff
            case ConnectionErrorEvent(url=url, generation=generation):
                self.cancel()
                delay = self._backoff
                self._backoff = min(self._backoff * 2, self._max_backoff)
                _print_event(f"Connection error, retrying in {delay:.0f}s...")
                self._task = asyncio.get_running_loop().create_task(
                    self._reconnect(url, generation, delay)
                )

    def cancel(self) -> None:
        """Drop a scheduled reconnect."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def reset(self) -> None:
        """Drop a scheduled reconnect and restore the initial delay."""
        self.cancel()
        self._backoff = self._initial_backoff

    async def _reconnect(self, url: str, generation: int, delay: float) -> None:
        await asyncio.sleep(delay)
        # The user switched or stopped the station meanwhile.
        if self._manager.generation != generation:
            return
        logger.info("Reconnecting to %s", url)
        self._task = None
        await self._manager.start(url)


def format_event(event: StreamEvent) -> str:
    """Return a one-line human description of an event."""
    match event:
        case TitleChangedEvent(title=title):
            return f"Now playing: {title}" if title else "Now playing: (no title)"
        case UnsupportedEvent(url=url):
            return f"{url} does not send stream titles"
        case ParseDriftEvent(reason=reason, block_length=block_length, consecutive=consecutive):
            return f"Metadata framing drift ({reason.value}, {block_length} bytes, {consecutive}x)"
        case ConnectionErrorEvent(message=message):
            return f"Connection error: {message}"
    return repr(event)


def _handle_event(state: CLIState, event: StreamEvent, *, json_output: bool) -> None:
    state.update(event)
    if json_output:
        _print_event(event.to_json())
    else:
        _print_event(format_event(event))


async def handle_command(
    line: str,
    manager: StreamSessionManager,
    state: CLIState,
    reconnect: ReconnectPolicy | None = None,
) -> bool:
    """
    Execute one interactive command.

    Returns:
        False when the CLI should exit, True otherwise.
    """
    raw_line = line.strip()
    if not raw_line:
        return True
    parts = raw_line.split(maxsplit=1)
    keyword = parts[0].lower()
    if keyword in {"quit", "exit", "q"}:
        return False
    if keyword in {"play", "p"}:
        if len(parts) != 2:
            _print_event("Usage: play <url>")
            return True
        if reconnect is not None:
            reconnect.reset()
        _print_event(f"Tuning in to {parts[1]}")
        await manager.start(parts[1])
    elif keyword in {"stop", "s"}:
        if reconnect is not None:
            reconnect.reset()
        await manager.stop()
        _print_event("Stopped")
    elif keyword in {"restart", "r"}:
        if manager.url is None:
            _print_event("Nothing to restart, use play <url>")
            return True
        if reconnect is not None:
            reconnect.reset()
        await manager.restart()
    elif keyword == "status":
        _print_event(f"State: {manager.state.value}")
        _print_event(state.describe())
    else:
        _print_event("Unknown command")
    return True


async def _keyboard_loop(
    manager: StreamSessionManager,
    state: CLIState,
    reconnect: ReconnectPolicy | None,
) -> None:
    try:
        while True:
            try:
                line = await aioconsole.ainput()
            except EOFError:
                break
            if not await handle_command(line, manager, state, reconnect):
                break
    except asyncio.CancelledError:
        # Graceful shutdown on Ctrl+C
        logger.debug("Keyboard loop cancelled, exiting gracefully")
        raise


async def main_async(argv: Sequence[str] | None = None) -> int:
    """Entry point executing the asynchronous CLI workflow."""
    args = parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(level=getattr(logging, args.log_level))

    try:
        config = build_config(args)
    except ValueError as err:
        _print_event(f"Invalid settings: {err}")
        return 2

    state = CLIState()
    async with StreamSessionManager(config=config) as manager:
        reconnect = ReconnectPolicy(manager) if args.reconnect else None
        manager.add_event_listener(
            lambda event: _handle_event(state, event, json_output=args.json)
        )
        if reconnect is not None:
            manager.add_event_listener(reconnect.on_event)

        _print_instructions()
        if args.url:
            await manager.start(args.url)

        keyboard_task = asyncio.create_task(_keyboard_loop(manager, state, reconnect))

        # Set up signal handler for graceful shutdown on Ctrl+C
        loop = asyncio.get_running_loop()

        def signal_handler() -> None:
            logger.debug("Received interrupt signal, shutting down...")
            keyboard_task.cancel()

        loop.add_signal_handler(signal.SIGINT, signal_handler)
        try:
            with suppress(asyncio.CancelledError):
                await keyboard_task
        finally:
            loop.remove_signal_handler(signal.SIGINT)
            if reconnect is not None:
                reconnect.cancel()

    return 0


def _print_event(message: str) -> None:
    print(message, flush=True)  # noqa: T201


def _print_instructions() -> None:
    print(  # noqa: T201
        "Commands: play(p) <url>, stop(s), restart(r), status, quit(q)",
        flush=True,
    )


def main() -> int:
    """Run the CLI client."""
    return asyncio.run(main_async(sys.argv[1:]))


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
