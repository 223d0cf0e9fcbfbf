"""
Character Card Errors
=====================

Exception hierarchy for the card codec. Every decode/encode failure is a
``CodecError`` so callers can isolate a single file without catching
unrelated exceptions.
"""

from typing import Optional


class CodecError(Exception):
    """Base exception for character card decode/encode failures."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.message = message
        self.source = source
        super().__init__(self._format())

    def _format(self) -> str:
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message


class FormatError(CodecError):
    """Input bytes are not a structurally usable PNG."""
    pass


class NotAPng(FormatError):
    """PNG signature missing on the read path."""
    pass


class MalformedBaseImage(FormatError):
    """Base image handed to the encoder has no signature or readable IHDR."""
    pass


class NoMetadataFound(CodecError):
    """The PNG was scanned completely without a matching metadata chunk."""
    pass


class TransportDecodeError(CodecError):
    """Base64, UTF-8 or JSON decoding of an embedded payload failed."""
    pass


class PayloadTooLarge(TransportDecodeError):
    """A compressed iTXt payload inflated past the configured ceiling."""

    def __init__(self, limit: int, source: Optional[str] = None):
        self.limit = limit
        super().__init__(
            f"Decompressed metadata exceeds limit of {limit} bytes", source
        )


class InvalidJsonDocument(CodecError):
    """A bare JSON card file could not be parsed."""
    pass
