"""
Tests for PNG chunk scanning and tEXt chunk insertion.
"""

import struct
import zlib
from io import BytesIO

import pytest
from PIL import Image

from nexus_archive.services.character_cards.errors import (
    MalformedBaseImage,
    NotAPng,
    PayloadTooLarge,
    TransportDecodeError,
)
from nexus_archive.services.character_cards.metadata_handler import (
    PLACEHOLDER_PNG,
    PNG_SIGNATURE,
    PNGMetadataHandler,
)

from conftest import b64_json, insert_after_ihdr, make_chunk, make_itxt, make_png, make_text


class TestChunkScanner:

    def test_reads_text_chunk(self, base_png):
        payload = b64_json({"name": "Aria"})
        png = insert_after_ihdr(base_png, make_text("chara", payload))

        assert PNGMetadataHandler.find_metadata_chunk(png, "chara") == payload

    def test_keyword_is_case_insensitive(self, base_png):
        png = insert_after_ihdr(base_png, make_text("Chara", "abc"))

        assert PNGMetadataHandler.find_metadata_chunk(png, "chara") == "abc"
        assert PNGMetadataHandler.find_metadata_chunk(png, "CHARA") == "abc"

    def test_first_match_wins(self, base_png):
        png = insert_after_ihdr(
            base_png,
            make_text("comment", "ignored"),
            make_text("chara", "first"),
            make_text("chara", "second"),
        )

        assert PNGMetadataHandler.find_metadata_chunk(png, "chara") == "first"

    def test_missing_keyword_returns_none(self, base_png):
        png = insert_after_ihdr(base_png, make_text("Software", "something"))

        assert PNGMetadataHandler.find_metadata_chunk(png, "chara") is None

    def test_not_a_png(self):
        with pytest.raises(NotAPng):
            PNGMetadataHandler.find_metadata_chunk(b"GIF89a" + b"\x00" * 20, "chara")

    def test_chunk_without_separator_is_skipped(self, base_png):
        png = insert_after_ihdr(
            base_png,
            make_chunk(b"tEXt", b"charanoseparator"),
            make_text("chara", "good"),
        )

        assert PNGMetadataHandler.find_metadata_chunk(png, "chara") == "good"

    def test_bad_crc_is_tolerated(self, base_png):
        chunk = bytearray(make_text("chara", "payload"))
        chunk[-1] ^= 0xFF
        png = insert_after_ihdr(base_png, bytes(chunk))

        assert PNGMetadataHandler.find_metadata_chunk(png, "chara") == "payload"

    def test_truncated_stream_is_not_found(self, base_png):
        chunk = make_text("chara", "payload")
        png = insert_after_ihdr(base_png[:33], chunk[:-8])

        assert PNGMetadataHandler.find_metadata_chunk(png, "chara") is None

    def test_chunks_after_iend_are_ignored(self, base_png):
        png = base_png + make_text("chara", "trailing")

        assert PNGMetadataHandler.find_metadata_chunk(png, "chara") is None

    def test_text_chunk_is_latin1(self, base_png):
        data = b"chara\x00caf\xe9"
        png = insert_after_ihdr(base_png, make_chunk(b"tEXt", data))

        assert PNGMetadataHandler.find_metadata_chunk(png, "chara") == "café"


class TestITXt:

    def test_uncompressed(self, base_png):
        payload = b64_json({"name": "Aria"})
        png = insert_after_ihdr(base_png, make_itxt("chara", payload.encode("ascii")))

        assert PNGMetadataHandler.find_metadata_chunk(png, "chara") == payload

    def test_compressed_matches_text_chunk(self, base_png):
        payload = b64_json({"name": "Aria", "description": "x" * 500})
        text_png = insert_after_ihdr(base_png, make_text("chara", payload))
        itxt_png = insert_after_ihdr(
            base_png,
            make_itxt("chara", payload.encode("ascii"), compressed=True, language=b"en", translated=b"Chara"),
        )

        assert (
            PNGMetadataHandler.find_metadata_chunk(itxt_png, "chara")
            == PNGMetadataHandler.find_metadata_chunk(text_png, "chara")
        )

    def test_utf8_text(self, base_png):
        png = insert_after_ihdr(base_png, make_itxt("chara", "héllo ✓".encode("utf-8")))

        assert PNGMetadataHandler.find_metadata_chunk(png, "chara") == "héllo ✓"

    def test_decompression_ceiling(self, base_png):
        png = insert_after_ihdr(base_png, make_itxt("chara", b"A" * 10_000, compressed=True))

        with pytest.raises(PayloadTooLarge) as exc_info:
            PNGMetadataHandler.find_metadata_chunk(png, "chara", max_decompressed_bytes=1000)
        assert exc_info.value.limit == 1000

    def test_ceiling_allows_exact_size(self, base_png):
        png = insert_after_ihdr(base_png, make_itxt("chara", b"A" * 1000, compressed=True))

        assert PNGMetadataHandler.find_metadata_chunk(png, "chara", max_decompressed_bytes=1000) == "A" * 1000

    def test_corrupt_deflate_stream(self, base_png):
        data = b"chara\x00" + bytes([1, 0]) + b"\x00\x00" + b"not zlib at all"
        png = insert_after_ihdr(base_png, make_chunk(b"iTXt", data))

        with pytest.raises(TransportDecodeError):
            PNGMetadataHandler.find_metadata_chunk(png, "chara")

    def test_unsupported_compression_method(self, base_png):
        data = b"chara\x00" + bytes([1, 7]) + b"\x00\x00" + zlib.compress(b"abc")
        png = insert_after_ihdr(base_png, make_chunk(b"iTXt", data))

        with pytest.raises(TransportDecodeError):
            PNGMetadataHandler.find_metadata_chunk(png, "chara")

    def test_truncated_header(self, base_png):
        png = insert_after_ihdr(base_png, make_chunk(b"iTXt", b"chara\x00\x00"))

        with pytest.raises(TransportDecodeError):
            PNGMetadataHandler.find_metadata_chunk(png, "chara")


class TestChunkBuilder:

    def test_build_text_chunk_layout(self):
        chunk = PNGMetadataHandler.build_text_chunk("chara", "QUJD")
        length, chunk_type = struct.unpack(">I4s", chunk[:8])

        assert chunk_type == b"tEXt"
        assert length == len(b"chara\x00QUJD")
        assert chunk[8:8 + length] == b"chara\x00QUJD"
        stored_crc = struct.unpack(">I", chunk[8 + length:])[0]
        assert stored_crc == zlib.crc32(b"tEXt" + b"chara\x00QUJD") & 0xFFFFFFFF

    def test_inserted_directly_after_ihdr(self, base_png):
        result = PNGMetadataHandler.write_text_chunk(base_png, "chara", "QUJD")
        chunks = list(PNGMetadataHandler.iter_chunks(result))

        assert chunks[0].type == b"IHDR"
        assert chunks[1].type == b"tEXt"
        assert chunks[1].offset == 33

    def test_other_bytes_untouched(self, base_png):
        result = PNGMetadataHandler.write_text_chunk(base_png, "chara", "QUJD")
        inserted = len(PNGMetadataHandler.build_text_chunk("chara", "QUJD"))

        assert result[:33] == base_png[:33]
        assert result[33 + inserted:] == base_png[33:]

    def test_all_crcs_valid(self, base_png):
        result = PNGMetadataHandler.write_text_chunk(base_png, "chara", "QUJD")

        for chunk in PNGMetadataHandler.iter_chunks(result):
            assert struct.unpack(">I", chunk.crc)[0] == zlib.crc32(chunk.type + chunk.data) & 0xFFFFFFFF

    def test_pillow_reads_inserted_chunk(self, base_png):
        result = PNGMetadataHandler.write_text_chunk(base_png, "chara", "QUJD")

        with Image.open(BytesIO(result)) as img:
            img.load()
            assert img.text["chara"] == "QUJD"
            assert img.size == (4, 3)

    def test_rejects_non_png(self):
        with pytest.raises(MalformedBaseImage):
            PNGMetadataHandler.write_text_chunk(b"\xff\xd8\xff\xe0JFIF", "chara", "x")

    def test_rejects_missing_header(self):
        with pytest.raises(MalformedBaseImage):
            PNGMetadataHandler.write_text_chunk(PNG_SIGNATURE + b"\x00\x00", "chara", "x")

    def test_rejects_non_ihdr_first_chunk(self):
        png = PNG_SIGNATURE + make_chunk(b"IDAT", b"\x00" * 4)

        with pytest.raises(MalformedBaseImage):
            PNGMetadataHandler.write_text_chunk(png, "chara", "x")

    def test_rejects_truncated_header(self):
        with pytest.raises(MalformedBaseImage):
            PNGMetadataHandler.write_text_chunk(PLACEHOLDER_PNG[:20], "chara", "x")


def test_placeholder_is_a_1x1_png():
    chunks = list(PNGMetadataHandler.iter_chunks(PLACEHOLDER_PNG))

    assert [c.type for c in chunks] == [b"IHDR", b"IDAT", b"IEND"]
    with Image.open(BytesIO(PLACEHOLDER_PNG)) as img:
        assert img.size == (1, 1)


def test_iter_chunks_on_pillow_image():
    png = make_png(8, 8)
    types = [c.type for c in PNGMetadataHandler.iter_chunks(png)]

    assert types[0] == b"IHDR"
    assert types[-1] == b"IEND"
    assert b"IDAT" in types
