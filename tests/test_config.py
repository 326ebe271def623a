"""Tests for session settings."""

import pytest

from aioicy.client.config import DEFAULT_USER_AGENT, SessionConfig
from aioicy.client.demuxer import MAX_METADATA_LENGTH


class TestSessionConfig:
    """Tests for SessionConfig."""

    def test_defaults(self) -> None:
        """Defaults match a typical long-lived radio stream."""
        config = SessionConfig()
        assert config.user_agent == DEFAULT_USER_AGENT
        assert config.max_metadata_length == MAX_METADATA_LENGTH == 4080
        assert config.max_drift_events == 3
        assert config.report_drift is False

    def test_request_headers(self) -> None:
        """ICY metadata is always requested."""
        headers = SessionConfig(user_agent="RadioPlay/1.0").request_headers
        assert headers == {"Icy-MetaData": "1", "User-Agent": "RadioPlay/1.0"}

    def test_client_timeout(self) -> None:
        """The stream itself has no total timeout, only connect and read limits."""
        timeout = SessionConfig(connect_timeout=3.0, read_timeout=7.0).client_timeout
        assert timeout.total is None
        assert timeout.connect == 3.0
        assert timeout.sock_read == 7.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"user_agent": ""},
            {"connect_timeout": 0},
            {"read_timeout": -1},
            {"chunk_size": 0},
            {"max_metadata_length": 0},
            {"max_metadata_length": MAX_METADATA_LENGTH + 16},
            {"max_drift_events": 0},
        ],
    )
    def test_invalid_values(self, kwargs: dict[str, object]) -> None:
        """Out of range settings are rejected."""
        with pytest.raises(ValueError):
            SessionConfig(**kwargs)  # type: ignore[arg-type]
