"""Tests for metadata block decoding."""

import random

import pytest

from aioicy.client.decoder import (
    decode_metadata,
    decode_metadata_block,
    decode_text,
    parse_metadata_fields,
)


class TestDecodeMetadata:
    """Tests for decode_metadata."""

    def test_plain_title(self) -> None:
        """A StreamTitle field yields its value."""
        assert decode_metadata(b"StreamTitle='Daft Punk - One More Time';") == (
            "Daft Punk - One More Time"
        )

    def test_nul_padding_is_stripped(self) -> None:
        """Trailing NUL padding does not end up in the title."""
        block = b"StreamTitle='A';" + b"\x00" * 16
        assert decode_metadata(block) == "A"

    @pytest.mark.parametrize("block", [b"", b"\x00" * 16, b"\x00" * 4080])
    def test_empty_blocks(self, block: bytes) -> None:
        """Empty and all-NUL blocks carry no title."""
        assert decode_metadata(block) is None

    def test_missing_stream_title(self) -> None:
        """Blocks without StreamTitle carry no title."""
        assert decode_metadata(b"StreamUrl='http://example.com';") is None

    def test_empty_title(self) -> None:
        """An empty StreamTitle means no title."""
        assert decode_metadata(b"StreamTitle='';") is None

    def test_whitespace_is_trimmed(self) -> None:
        """Surrounding whitespace is removed."""
        assert decode_metadata(b"StreamTitle='  Artist - Song  ';") == "Artist - Song"

    def test_title_among_other_fields(self) -> None:
        """StreamTitle is found regardless of its position."""
        block = b"StreamUrl='http://x';StreamTitle='Song';"
        assert decode_metadata(block) == "Song"

    def test_title_without_trailing_semicolon(self) -> None:
        """A value closed at the end of the text is accepted."""
        assert decode_metadata(b"StreamTitle='Song'") == "Song"

    def test_unterminated_value(self) -> None:
        """A value without closing quote is malformed."""
        assert decode_metadata(b"StreamTitle='Song") is None

    def test_apostrophe_inside_title(self) -> None:
        """An unescaped apostrophe not followed by ';' is part of the title."""
        block = b"StreamTitle='Guns N' Roses - Patience';"
        assert decode_metadata(block) == "Guns N' Roses - Patience"

    def test_escaped_quote(self) -> None:
        """Backslash escaped quotes are unescaped."""
        block = b"StreamTitle='Rock \\'n\\' Roll';"
        assert decode_metadata(block) == "Rock 'n' Roll"

    def test_utf8_title(self) -> None:
        """UTF-8 encoded titles are decoded as UTF-8."""
        block = "StreamTitle='Motörhead - Ace of Spades';".encode()
        assert decode_metadata(block) == "Motörhead - Ace of Spades"

    def test_latin1_fallback(self) -> None:
        """Titles that are not valid UTF-8 are decoded as Latin-1."""
        block = "StreamTitle='Motörhead - Ace of Spades';".encode("latin-1")
        assert decode_metadata(block) == "Motörhead - Ace of Spades"

    def test_never_raises(self) -> None:
        """Arbitrary bytes always decode to a defined result."""
        rng = random.Random(1234)
        for length in range(0, 600, 7):
            block = bytes(rng.randrange(256) for _ in range(length))
            result = decode_metadata(block)
            assert result is None or isinstance(result, str)
        for value in range(256):
            decode_metadata(bytes([value]) * 16)


class TestDecodeText:
    """Tests for the text decoding step."""

    def test_replacement_character_triggers_latin1(self) -> None:
        """A literal U+FFFD in valid UTF-8 also falls back to Latin-1."""
        raw = "x\ufffd".encode()
        assert decode_text(raw) == raw.decode("latin-1")

    def test_inner_nul_bytes_removed(self) -> None:
        """NUL bytes are removed everywhere, not only at the end."""
        assert decode_text(b"Stream\x00Title") == "StreamTitle"


class TestParseMetadataFields:
    """Tests for parse_metadata_fields."""

    def test_multiple_fields(self) -> None:
        """All quoted fields are returned."""
        fields = parse_metadata_fields("StreamTitle='Song';StreamUrl='http://x/y.jpg';")
        assert fields == {"StreamTitle": "Song", "StreamUrl": "http://x/y.jpg"}

    def test_no_fields(self) -> None:
        """Text without fields gives an empty mapping."""
        assert parse_metadata_fields("nothing here") == {}


class TestMalformed:
    """Tests for the malformed-block heuristic."""

    def test_regular_block_is_not_malformed(self) -> None:
        """A well-formed block is accepted."""
        assert not decode_metadata_block(b"StreamTitle='A';").malformed

    def test_empty_block_is_not_malformed(self) -> None:
        """NUL padding alone is a valid empty block."""
        assert not decode_metadata_block(b"\x00" * 32).malformed

    def test_unquoted_field_is_tolerated(self) -> None:
        """Unquoted values are odd but not a framing problem."""
        assert not decode_metadata_block(b"StreamTitle=Song;").malformed

    def test_text_without_fields_is_malformed(self) -> None:
        """Printable text without any key= token is malformed."""
        assert decode_metadata_block(b"garbage!garbage!").malformed

    def test_binary_data_is_malformed(self) -> None:
        """Audio bytes read as metadata are malformed."""
        assert decode_metadata_block(bytes(range(1, 48))).malformed
