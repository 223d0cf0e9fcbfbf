"""
PNG CRC32
=========

CRC32 as defined by the PNG specification (ISO 3309 / ITU-T V.42), computed
over a chunk's type and data bytes.
"""

from typing import Tuple

CRC_POLYNOMIAL = 0xEDB88320


def _build_crc_table() -> Tuple[int, ...]:
    """Build the 256-entry lookup table for the reflected polynomial."""
    table = []
    for n in range(256):
        c = n
        for _ in range(8):
            if c & 1:
                c = CRC_POLYNOMIAL ^ (c >> 1)
            else:
                c >>= 1
        table.append(c)
    return tuple(table)


# Built once at import, never mutated
CRC_TABLE = _build_crc_table()


def crc32(data: bytes) -> int:
    """
    Compute the PNG CRC32 of ``data``.

    Args:
        data: Bytes to checksum (chunk type followed by chunk data)

    Returns:
        Unsigned 32-bit checksum
    """
    crc = 0xFFFFFFFF
    table = CRC_TABLE
    for byte in data:
        crc = table[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ 0xFFFFFFFF
