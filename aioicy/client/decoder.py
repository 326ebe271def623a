"""Decoding of ICY metadata blocks into text fields."""

from __future__ import annotations

import re
from typing import NamedTuple

STREAM_TITLE = "StreamTitle"

# A value ends at the first unescaped quote followed by ';' or the end of the text.
# Servers do not escape quotes in titles, so "Guns N' Roses" must survive.
_FIELD_RE = re.compile(r"([A-Za-z][\w-]*)='((?:\\.|[^\\])*?)'(?=;|$)", re.DOTALL)
_KEY_RE = re.compile(r"[A-Za-z][\w-]*=")
_CONTROL_RE = re.compile(r"[\x01-\x08\x0b\x0c\x0e-\x1f\x7f]")
_ESCAPED_QUOTE = "\\'"


class MetadataBlock(NamedTuple):
    """A decoded metadata block."""

    text: str
    """Block text with NUL padding removed."""
    fields: dict[str, str]
    """All key='value' pairs found in the text."""

    @property
    def title(self) -> str | None:
        """Return the trimmed StreamTitle, or None when absent or empty."""
        value = self.fields.get(STREAM_TITLE)
        if value is None:
            return None
        return value.strip() or None

    @property
    def malformed(self) -> bool:
        """
        Return True when the block looks like audio read as metadata.

        That is a non-empty block without any quoted field that either has no
        key= token at all or contains control characters. Unquoted fields such
        as "StreamTitle=Foo;" are tolerated.
        """
        if not self.text.strip() or self.fields:
            return False
        return _KEY_RE.search(self.text) is None or _CONTROL_RE.search(self.text) is not None


def decode_text(block: bytes) -> str:
    """
    Decode the raw bytes of a metadata block.

    Trailing NUL padding is stripped. UTF-8 is tried first; when it fails or yields
    replacement characters the block is decoded as Latin-1, which accepts any byte.
    """
    raw = bytes(block).rstrip(b"\x00")
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        text = raw.decode("latin-1")
    else:
        if "\ufffd" in text:
            text = raw.decode("latin-1")
    return text.replace("\x00", "")


def parse_metadata_fields(text: str) -> dict[str, str]:
    """Return the key='value' fields of a metadata text; later keys win."""
    return {
        match.group(1): match.group(2).replace(_ESCAPED_QUOTE, "'")
        for match in _FIELD_RE.finditer(text)
    }


def decode_metadata_block(block: bytes) -> MetadataBlock:
    """Decode a raw metadata block into its text and fields."""
    text = decode_text(block)
    return MetadataBlock(text=text, fields=parse_metadata_fields(text))


def decode_metadata(block: bytes) -> str | None:
    """Return the StreamTitle carried by a raw metadata block, if any.

    Never raises: empty, all-NUL or unparsable blocks yield None.

    The value ends at the first quote followed by ``;`` or the end of the block,
    not at the first quote, so ``StreamTitle='Guns N' Roses';`` keeps its apostrophe.
    """
    return decode_metadata_block(block).title
