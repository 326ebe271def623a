"""Session settings for the aioicy client."""

from __future__ import annotations

from dataclasses import dataclass

from aiohttp import ClientTimeout

from .demuxer import MAX_METADATA_LENGTH

DEFAULT_USER_AGENT = "aioicy/1.0"
ICY_REQUEST_HEADER = "Icy-MetaData"


@dataclass(slots=True)
class SessionConfig:
    """Connection and parser settings applied to every stream session."""

    user_agent: str = DEFAULT_USER_AGENT
    """User-Agent header sent with the stream request."""
    connect_timeout: float = 10.0
    """Seconds to wait for the TCP/TLS connection."""
    read_timeout: float = 30.0
    """Seconds without any received byte before the connection is considered dead."""
    chunk_size: int = 8192
    """Maximum number of bytes read from the socket at once."""
    max_metadata_length: int = MAX_METADATA_LENGTH
    """Metadata blocks declared larger than this are skipped as framing drift."""
    max_drift_events: int = 3
    """Consecutive framing drifts after which the session fails."""
    report_drift: bool = False
    """Deliver ParseDriftEvent to listeners instead of only logging it."""

    def __post_init__(self) -> None:
        """Validate the provided settings."""
        if not self.user_agent:
            raise ValueError("user_agent must not be empty")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
        if self.read_timeout <= 0:
            raise ValueError("read_timeout must be positive")
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 < self.max_metadata_length <= MAX_METADATA_LENGTH:
            raise ValueError(f"max_metadata_length must be between 1 and {MAX_METADATA_LENGTH}")
        if self.max_drift_events < 1:
            raise ValueError("max_drift_events must be at least 1")

    @property
    def client_timeout(self) -> ClientTimeout:
        """Return the aiohttp timeout for a long-lived stream request."""
        return ClientTimeout(total=None, connect=self.connect_timeout, sock_read=self.read_timeout)

    @property
    def request_headers(self) -> dict[str, str]:
        """Return the headers sent with every stream request."""
        return {ICY_REQUEST_HEADER: "1", "User-Agent": self.user_agent}
