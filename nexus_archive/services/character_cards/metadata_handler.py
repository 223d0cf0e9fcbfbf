"""
PNG Metadata Handler
===================

Reads and writes the text chunks that carry character card metadata.

Chunk layout (all integers big-endian):

    [4-byte length][4-byte type][length bytes data][4-byte CRC32]

Cards are read from ``tEXt`` or ``iTXt`` chunks and always written as
``tEXt``, spliced directly after the ``IHDR`` header chunk.
"""

import logging
import struct
import zlib
from typing import Iterator, NamedTuple, Optional

from .crc import crc32
from .errors import MalformedBaseImage, NotAPng, PayloadTooLarge, TransportDecodeError

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

TEXT_CHUNK = b"tEXt"
ITXT_CHUNK = b"iTXt"
HEADER_CHUNK = b"IHDR"
END_CHUNK = b"IEND"

DEFAULT_MAX_DECOMPRESSED_BYTES = 50 * 1024 * 1024

# 1x1 fully transparent RGBA image, used when a card has no portrait
PLACEHOLDER_PNG = bytes([
    137, 80, 78, 71, 13, 10, 26, 10,
    0, 0, 0, 13, 73, 72, 68, 82, 0, 0, 0, 1, 0, 0, 0, 1, 8, 6, 0, 0, 0, 31, 21, 196, 137,
    0, 0, 0, 10, 73, 68, 65, 84, 120, 156, 99, 0, 1, 0, 0, 5, 0, 1, 13, 10, 45, 180,
    0, 0, 0, 0, 73, 69, 78, 68, 174, 66, 96, 130,
])


class PNGChunk(NamedTuple):
    """A single chunk as laid out in the byte stream."""
    type: bytes
    data: bytes
    crc: bytes
    offset: int  # Offset of the length field


class PNGMetadataHandler:
    """Handle PNG tEXt/iTXt chunk operations for character card metadata."""

    @staticmethod
    def has_signature(png_data: bytes) -> bool:
        return png_data[:8] == PNG_SIGNATURE

    @staticmethod
    def iter_chunks(png_data: bytes) -> Iterator[PNGChunk]:
        """
        Walk the chunks of a PNG byte stream.

        CRCs are not validated. Iteration stops after ``IEND`` or at the first
        chunk whose declared length runs past the end of the data.
        """
        offset = len(PNG_SIGNATURE)
        total = len(png_data)

        while offset + 8 <= total:
            length, chunk_type = struct.unpack_from(">I4s", png_data, offset)
            data_start = offset + 8
            data_end = data_start + length
            if data_end > total:
                logger.debug(f"Truncated {chunk_type!r} chunk at offset {offset}, stopping scan")
                return

            yield PNGChunk(
                type=chunk_type,
                data=png_data[data_start:data_end],
                crc=png_data[data_end:data_end + 4],
                offset=offset,
            )

            if chunk_type == END_CHUNK:
                return
            offset = data_end + 4

    @staticmethod
    def find_metadata_chunk(
        png_data: bytes,
        keyword: str,
        max_decompressed_bytes: int = DEFAULT_MAX_DECOMPRESSED_BYTES,
        source: Optional[str] = None,
    ) -> Optional[str]:
        """
        Extract the payload of the first tEXt/iTXt chunk with ``keyword``.

        Args:
            png_data: PNG file data as bytes
            keyword: Chunk keyword to search for, compared case-insensitively
            max_decompressed_bytes: Ceiling for compressed iTXt payloads
            source: Optional file name used in error messages

        Returns:
            Payload text if found, None if the scan finished without a match

        Raises:
            NotAPng: If the PNG signature is missing
            TransportDecodeError: If the matching chunk is malformed
            PayloadTooLarge: If a compressed payload exceeds the ceiling
        """
        if not PNGMetadataHandler.has_signature(png_data):
            raise NotAPng("Not a PNG file", source)

        target = keyword.lower()

        for chunk in PNGMetadataHandler.iter_chunks(png_data):
            if chunk.type not in (TEXT_CHUNK, ITXT_CHUNK):
                continue

            null_idx = chunk.data.find(b"\x00")
            if null_idx < 0:
                logger.debug(f"Skipping {chunk.type!r} chunk without keyword separator")
                continue

            chunk_keyword = chunk.data[:null_idx].decode("latin-1")
            if chunk_keyword.lower() != target:
                continue

            logger.debug(f"Found {chunk.type.decode()} chunk with keyword '{chunk_keyword}'")
            body = chunk.data[null_idx + 1:]
            if chunk.type == TEXT_CHUNK:
                return body.decode("latin-1")
            return PNGMetadataHandler._read_itxt_text(body, max_decompressed_bytes, source)

        logger.debug(f"Metadata chunk with keyword '{keyword}' not found")
        return None

    @staticmethod
    def _read_itxt_text(body: bytes, max_decompressed_bytes: int, source: Optional[str]) -> str:
        """Decode the text portion of an iTXt chunk (everything after the keyword)."""
        if len(body) < 2:
            raise TransportDecodeError("Truncated iTXt chunk header", source)

        compression_flag = body[0]
        compression_method = body[1]
        rest = body[2:]

        # Language tag, then translated keyword, both NUL-terminated
        for field in ("language tag", "translated keyword"):
            end = rest.find(b"\x00")
            if end < 0:
                raise TransportDecodeError(f"Unterminated iTXt {field}", source)
            rest = rest[end + 1:]

        if compression_flag == 1:
            if compression_method != 0:
                raise TransportDecodeError(
                    f"Unsupported iTXt compression method {compression_method}", source
                )
            rest = PNGMetadataHandler._inflate(rest, max_decompressed_bytes, source)

        try:
            return rest.decode("utf-8")
        except UnicodeDecodeError as e:
            raise TransportDecodeError(f"iTXt text is not valid UTF-8: {e}", source)

    @staticmethod
    def _inflate(data: bytes, limit: int, source: Optional[str]) -> bytes:
        """Decompress a zlib stream, refusing to produce more than ``limit`` bytes."""
        decompressor = zlib.decompressobj()
        try:
            output = decompressor.decompress(data, limit + 1)
        except zlib.error as e:
            raise TransportDecodeError(f"Failed to decompress iTXt payload: {e}", source)

        if len(output) > limit:
            raise PayloadTooLarge(limit, source)
        if not decompressor.eof:
            raise TransportDecodeError("Truncated compressed iTXt payload", source)
        return output

    @staticmethod
    def build_text_chunk(keyword: str, text: str) -> bytes:
        """
        Build a complete tEXt chunk (length, type, data, CRC).

        Args:
            keyword: Chunk keyword (Latin-1)
            text: Chunk text (Latin-1; card payloads are Base64 and thus ASCII)
        """
        data = keyword.encode("latin-1") + b"\x00" + text.encode("latin-1")
        crc = crc32(TEXT_CHUNK + data)
        return struct.pack(">I", len(data)) + TEXT_CHUNK + data + struct.pack(">I", crc)

    @staticmethod
    def header_end_offset(png_data: bytes) -> int:
        """
        Offset of the first byte after the IHDR chunk.

        Raises:
            MalformedBaseImage: If the signature or header chunk is unreadable
        """
        if not PNGMetadataHandler.has_signature(png_data):
            raise MalformedBaseImage("Base image is not a PNG file")

        header_offset = len(PNG_SIGNATURE)
        if len(png_data) < header_offset + 8:
            raise MalformedBaseImage("Base image has no header chunk")

        length, chunk_type = struct.unpack_from(">I4s", png_data, header_offset)
        if chunk_type != HEADER_CHUNK:
            raise MalformedBaseImage(f"Expected IHDR as first chunk, found {chunk_type!r}")

        end = header_offset + 4 + 4 + length + 4
        if end > len(png_data):
            raise MalformedBaseImage("Base image header chunk is truncated")
        return end

    @staticmethod
    def write_text_chunk(png_data: bytes, keyword: str, text: str) -> bytes:
        """
        Splice a new tEXt chunk into PNG data directly after IHDR.

        All other bytes are left untouched, including any existing chunk with
        the same keyword; the new chunk precedes it and wins on read.

        Args:
            png_data: Base PNG file data
            keyword: tEXt chunk keyword (e.g., 'chara')
            text: Chunk text

        Returns:
            New PNG data with the chunk inserted
        """
        insert_at = PNGMetadataHandler.header_end_offset(png_data)
        chunk = PNGMetadataHandler.build_text_chunk(keyword, text)
        logger.debug(f"Inserting {len(chunk)}-byte tEXt '{keyword}' chunk at offset {insert_at}")
        return png_data[:insert_at] + chunk + png_data[insert_at:]

    @staticmethod
    def extract_image(png_path: str) -> bytes:
        """
        Load image data from file.

        Args:
            png_path: Path to image file

        Returns:
            File data as bytes
        """
        try:
            with open(png_path, 'rb') as f:
                return f.read()
        except OSError as e:
            logger.error(f"Error reading image file '{png_path}': {e}")
            raise

    @staticmethod
    def save_image(png_data: bytes, output_path: str) -> None:
        """
        Save PNG data to file.

        Args:
            png_data: PNG file data as bytes
            output_path: Path to save PNG file
        """
        try:
            with open(output_path, 'wb') as f:
                f.write(png_data)
        except OSError as e:
            logger.error(f"Error saving PNG file to '{output_path}': {e}")
            raise
