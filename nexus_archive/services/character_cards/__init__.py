"""
Character Card Codec
====================

Portable character records embedded in PNG images as Base64-encoded JSON.

Supports:
- Reading cards from tEXt and (optionally compressed) iTXt chunks
- Bare JSON card documents
- V1 (flat), V2 and V3 (nested ``data``) layouts, normalized to one record
- Writing V2 cards as a tEXt chunk spliced after IHDR
"""

from .card_exporter import CharacterCardExporter
from .card_importer import CharacterCardImporter
from .crc import crc32
from .errors import (
    CodecError,
    FormatError,
    NotAPng,
    MalformedBaseImage,
    NoMetadataFound,
    TransportDecodeError,
    PayloadTooLarge,
    InvalidJsonDocument,
)
from .format_detector import FormatDetector
from .metadata_handler import PLACEHOLDER_PNG, PNGMetadataHandler
from .models import (
    CardImportResult,
    CardSource,
    CardSpec,
    CharacterBook,
    CharacterCardData,
    ExportFormat,
)
from .normalizer import normalize
from .transport import decode_transport, encode_transport

__all__ = [
    'CharacterCardExporter',
    'CharacterCardImporter',
    'crc32',
    'CodecError',
    'FormatError',
    'NotAPng',
    'MalformedBaseImage',
    'NoMetadataFound',
    'TransportDecodeError',
    'PayloadTooLarge',
    'InvalidJsonDocument',
    'FormatDetector',
    'PLACEHOLDER_PNG',
    'PNGMetadataHandler',
    'CardImportResult',
    'CardSource',
    'CardSpec',
    'CharacterBook',
    'CharacterCardData',
    'ExportFormat',
    'normalize',
    'decode_transport',
    'encode_transport',
    'decode',
    'encode',
]


def decode(data: bytes, filename: str = None, content_type: str = None) -> CardImportResult:
    """Decode a card file with default settings."""
    return CharacterCardImporter().decode(data, filename=filename, content_type=content_type)


def encode(record: CharacterCardData, image: bytes) -> bytes:
    """Embed a record into a PNG image with default settings."""
    return CharacterCardExporter().encode(record, image)
