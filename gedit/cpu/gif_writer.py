"""
GIF89a block writer.

Builds the byte layout of a GIF file: header and logical screen descriptor,
colour tables, extension blocks, image descriptors and sub-block framed LZW data.
See https://www.w3.org/Graphics/GIF/spec-gif89a.txt
"""

import struct
import numpy as np
from typing import Optional

from .lzw import lzw_compress, min_code_size_for


GIF_SIGNATURE = b"GIF89a"
EXTENSION_INTRODUCER = 0x21
GRAPHIC_CONTROL_LABEL = 0xF9
APPLICATION_LABEL = 0xFF
IMAGE_SEPARATOR = 0x2C
TRAILER = b"\x3B"

COLOR_TABLE_FLAG = 0x80
MAX_SUB_BLOCK = 255

DISPOSAL_UNSPECIFIED = 0
DISPOSAL_RESTORE_BACKGROUND = 2


def color_table_bits(entries: int) -> int:
    """Bits needed for a colour table holding ``entries`` colours (1..8)."""
    if entries > 256:
        raise ValueError(f"GIF colour tables hold at most 256 entries, got {entries}")
    return max(1, (max(entries, 1) - 1).bit_length())


def pack_color_table(palette: np.ndarray, bits: int) -> bytes:
    """Pad an (entries, 3) palette with black up to ``1 << bits`` entries."""
    table = np.zeros((1 << bits, 3), dtype=np.uint8)
    count = min(len(palette), 1 << bits)
    table[:count] = palette[:count]
    return table.tobytes()


def screen_descriptor(width: int, height: int, global_bits: Optional[int] = None) -> bytes:
    """Signature plus logical screen descriptor; the global table follows separately."""
    flags = 0
    if global_bits is not None:
        # colour resolution mirrors the table size
        flags = COLOR_TABLE_FLAG | ((global_bits - 1) << 4) | (global_bits - 1)
    return GIF_SIGNATURE + struct.pack("<HHBBB", width, height, flags, 0, 0)


def loop_extension(loop: int) -> bytes:
    """NETSCAPE2.0 application extension; a loop count of 0 repeats forever."""
    return (bytes([EXTENSION_INTRODUCER, APPLICATION_LABEL, 11]) + b"NETSCAPE2.0"
            + struct.pack("<BBHB", 3, 1, loop, 0))


def graphic_control_extension(delay: int, transparency: Optional[int] = None,
                              disposal: int = DISPOSAL_UNSPECIFIED) -> bytes:
    flags = (disposal & 0x07) << 2
    if transparency is not None:
        flags |= 0x01
    return (bytes([EXTENSION_INTRODUCER, GRAPHIC_CONTROL_LABEL, 4])
            + struct.pack("<BHBB", flags, delay, transparency or 0, 0))


def image_descriptor(width: int, height: int, local_bits: Optional[int] = None) -> bytes:
    flags = 0
    if local_bits is not None:
        flags = COLOR_TABLE_FLAG | (local_bits - 1)
    return bytes([IMAGE_SEPARATOR]) + struct.pack("<HHHHB", 0, 0, width, height, flags)


def sub_blocks(data: bytes) -> bytes:
    """Split data into length-prefixed sub-blocks followed by the block terminator."""
    chunks = []
    for offset in range(0, len(data), MAX_SUB_BLOCK):
        chunk = data[offset:offset + MAX_SUB_BLOCK]
        chunks.append(bytes([len(chunk)]) + chunk)
    chunks.append(b"\x00")
    return b"".join(chunks)


def image_data(indices: np.ndarray, table_bits: int) -> bytes:
    """LZW minimum code size byte followed by the compressed raster."""
    min_code_size = min_code_size_for(table_bits)
    flat = np.ascontiguousarray(indices, dtype=np.uint8).ravel()
    compressed = lzw_compress(flat, min_code_size)
    return bytes([min_code_size]) + sub_blocks(compressed.tobytes())
