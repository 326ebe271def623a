"""Tests for event serialisation."""

import orjson

from aioicy.models import (
    ConnectionErrorEvent,
    DriftReason,
    MetadataEvent,
    ParseDriftEvent,
    TitleChangedEvent,
    UnsupportedEvent,
)


class TestEventSerialisation:
    """Events serialise with a type discriminator."""

    def test_title_changed_json(self) -> None:
        """The type field names the event."""
        event = TitleChangedEvent(url="http://radio/stream", generation=2, title="A - B")
        assert orjson.loads(event.to_json()) == {
            "url": "http://radio/stream",
            "generation": 2,
            "title": "A - B",
            "type": "title/changed",
        }

    def test_parse_drift_enum_value(self) -> None:
        """Enums are serialised by value."""
        event = ParseDriftEvent(
            url="u", generation=1, reason=DriftReason.OVERSIZED, block_length=4096, consecutive=1
        )
        assert orjson.loads(event.to_json())["reason"] == "oversized"

    def test_base_class_resolves_subtype(self) -> None:
        """Parsing through the base class returns the concrete event."""
        for event in (
            TitleChangedEvent(url="u", generation=1, title=None),
            UnsupportedEvent(url="u", generation=1),
            ConnectionErrorEvent(url="u", generation=3, message="refused"),
        ):
            assert MetadataEvent.from_json(event.to_json()) == event
