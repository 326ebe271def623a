"""Exceptions raised inside aioicy stream sessions."""

from __future__ import annotations


class IcyError(Exception):
    """Base class for aioicy errors."""


class UnsupportedStreamError(IcyError):
    """The server response carries no usable icy-metaint header."""


class MetadataFramingError(IcyError):
    """Metadata framing stayed out of sync for too many blocks in a row."""
