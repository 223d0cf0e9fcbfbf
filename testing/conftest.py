"""Shared fixtures for card codec tests."""

import base64
import json
import struct
import zlib
from io import BytesIO

import pytest
from PIL import Image

from nexus_archive.services.character_cards.models import CharacterBook, CharacterCardData


def make_png(width: int = 4, height: int = 3, color=(200, 30, 30, 255)) -> bytes:
    """Encode a solid-color RGBA PNG with Pillow."""
    img = Image.new('RGBA', (width, height), color=color)
    output = BytesIO()
    img.save(output, format='PNG')
    return output.getvalue()


def make_chunk(chunk_type: bytes, data: bytes) -> bytes:
    """Build a raw chunk using zlib's CRC as the reference implementation."""
    crc = zlib.crc32(chunk_type + data) & 0xFFFFFFFF
    return struct.pack(">I", len(data)) + chunk_type + data + struct.pack(">I", crc)


def make_oversized_png(width: int = 20000, height: int = 20000) -> bytes:
    """A PNG whose header declares dimensions past Pillow's decompression-bomb limit."""
    header = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + make_chunk(b"IHDR", header)
        + make_chunk(b"IDAT", b"\x00")
        + make_chunk(b"IEND", b"")
    )


def make_itxt(keyword: str, text: bytes, compressed: bool = False,
              language: bytes = b"", translated: bytes = b"") -> bytes:
    if compressed:
        text = zlib.compress(text)
    data = (
        keyword.encode("latin-1") + b"\x00"
        + bytes([1 if compressed else 0, 0])
        + language + b"\x00"
        + translated + b"\x00"
        + text
    )
    return make_chunk(b"iTXt", data)


def make_text(keyword: str, text: str) -> bytes:
    return make_chunk(b"tEXt", keyword.encode("latin-1") + b"\x00" + text.encode("latin-1"))


def insert_after_ihdr(png: bytes, *chunks: bytes) -> bytes:
    ihdr_len = struct.unpack(">I", png[8:12])[0]
    offset = 8 + 12 + ihdr_len
    return png[:offset] + b"".join(chunks) + png[offset:]


def b64_json(document) -> str:
    return base64.b64encode(json.dumps(document).encode("utf-8")).decode("ascii")


@pytest.fixture
def base_png() -> bytes:
    return make_png()


@pytest.fixture
def sample_record() -> CharacterCardData:
    return CharacterCardData(
        name="Aria Vex",
        description="A wandering cartographer.\n\nShe maps places that move.",
        personality="curious, stubborn",
        scenario="A border town at dusk.",
        first_mes="*Aria unrolls a map* Lost?",
        mes_example="<START>\n{{user}}: Hi\n{{char}}: Hello.",
        creator_notes="Works best with long replies. Ünïcödé ✓",
        system_prompt="Stay in character.",
        post_history_instructions="Keep replies under 200 words.",
        alternate_greetings=["Need directions?", "Another traveler..."],
        character_book=CharacterBook(
            name="Shifting Lands",
            entries=[
                {"comment": "Town", "content": "Veldt moves nightly.", "keys": ["veldt"], "enabled": True},
            ],
        ),
        tags=["fantasy", "explorer"],
        creator="mapmaker",
        character_version="2.1",
        extensions={"talkativeness": "0.5", "depth_prompt": {"depth": 4, "prompt": "x"}},
    )
