"""
Structural scan of a GIF byte stream.

Walks the block layout (header, colour tables, extensions, image blocks,
trailer) without decompressing anything, so truncated or malformed files are
rejected before any pixel decoding starts.
"""

import struct
from dataclasses import dataclass


HEADER_SIZE = 13
IMAGE_DESCRIPTOR_SIZE = 9
VERSIONS = (b"87a", b"89a")


class GifFormatError(ValueError):
    """Raised when the byte stream does not follow the GIF block layout."""


@dataclass
class GifLayout:
    width: int
    height: int
    image_count: int
    has_global_table: bool


def _table_size(flags: int) -> int:
    return 3 << ((flags & 0x07) + 1)


def _skip_sub_blocks(data: bytes, pos: int) -> int:
    while True:
        if pos >= len(data):
            raise GifFormatError("truncated data sub-block")
        size = data[pos]
        pos += 1
        if size == 0:
            return pos
        pos += size
        if pos > len(data):
            raise GifFormatError("truncated data sub-block")


def scan_gif(data: bytes) -> GifLayout:
    """
    Validate the block structure and count image blocks.

    Raises:
        GifFormatError: On a bad signature, a truncated block, an unknown block
            type or a missing trailer
    """
    if len(data) < 6 or data[:3] != b"GIF" or data[3:6] not in VERSIONS:
        raise GifFormatError("missing GIF signature")
    if len(data) < HEADER_SIZE:
        raise GifFormatError("truncated logical screen descriptor")

    width, height, flags = struct.unpack_from("<HHB", data, 6)
    pos = HEADER_SIZE
    has_global_table = bool(flags & 0x80)
    if has_global_table:
        pos += _table_size(flags)

    images = 0
    while True:
        if pos >= len(data):
            raise GifFormatError("missing trailer")
        introducer = data[pos]
        pos += 1

        if introducer == 0x3B:
            break
        if introducer == 0x21:
            if pos >= len(data):
                raise GifFormatError("truncated extension")
            pos = _skip_sub_blocks(data, pos + 1)
        elif introducer == 0x2C:
            if pos + IMAGE_DESCRIPTOR_SIZE > len(data):
                raise GifFormatError(f"truncated image descriptor for image {images}")
            image_flags = data[pos + IMAGE_DESCRIPTOR_SIZE - 1]
            pos += IMAGE_DESCRIPTOR_SIZE
            if image_flags & 0x80:
                pos += _table_size(image_flags)
            elif not has_global_table:
                raise GifFormatError(f"image {images} has no colour table")
            if pos >= len(data):
                raise GifFormatError(f"truncated image data for image {images}")
            min_code_size = data[pos]
            if not 2 <= min_code_size <= 8:
                raise GifFormatError(f"invalid LZW minimum code size {min_code_size} for image {images}")
            pos = _skip_sub_blocks(data, pos + 1)
            images += 1
        else:
            raise GifFormatError(f"unknown block 0x{introducer:02x} at offset {pos - 1}")

    return GifLayout(width=width, height=height, image_count=images, has_global_table=has_global_table)
