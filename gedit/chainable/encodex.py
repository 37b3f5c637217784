"""
GIF encoding component.

Assembles an ordered sequence of palette-indexed frames into a GIF89a byte
stream. Frames are written full size, in input order, one image block each.
Consecutive identical frames are kept as separate blocks, which is why the
block layout is written here rather than through Pillow's GIF writer (it merges
them).
"""

from typing import List, Optional, Sequence, Tuple

from . import ChainComponent, Frame, GifData, StillImage, EncodeError
from ..cpu import color_table_bits, pack_color_table, image_data
from ..cpu.gif_writer import (
    screen_descriptor, loop_extension, graphic_control_extension, image_descriptor,
    TRAILER, DISPOSAL_UNSPECIFIED, DISPOSAL_RESTORE_BACKGROUND,
)


def _color_table(frame: Frame) -> Tuple[bytes, int]:
    """Packed colour table for a frame, large enough to address every pixel."""
    pixels = frame.pixels
    highest = int(pixels.max()) if pixels.size else 0
    entries = max(len(frame.palette), highest + 1)
    bits = color_table_bits(entries)
    return pack_color_table(frame.palette, bits), bits


class GifEncoder(ChainComponent):
    """Component for encoding frames into a GIF byte stream."""

    error_class = EncodeError

    def __init__(self, loop: Optional[int] = 0):
        """
        Initialize GifEncoder component.

        Args:
            loop: NETSCAPE loop count (0 loops forever); None writes no loop block
        """
        super().__init__("GifEncoder")
        if loop is not None and not 0 <= loop <= 0xFFFF:
            raise ValueError(f"Loop count must be between 0 and 65535, got {loop}")
        self.loop = loop

    def _describe(self, index: int, frame: Frame) -> str:
        return f"frame {index} ('{frame.source}')" if frame.source else f"frame {index}"

    def _validate_frames(self, frames: Sequence[Frame]):
        """Check the paletted and same-size preconditions before any bytes are produced."""
        if not frames:
            raise EncodeError(
                "Cannot encode a GIF without frames",
                component=self.name,
                details={'operation': 'encode'}
            )

        size = frames[0].size
        for index, frame in enumerate(frames):
            if not frame.is_paletted:
                raise EncodeError(
                    f"{self._describe(index, frame)} is not palette-indexed "
                    f"(mode {frame.image.mode}); only paletted images can be packed",
                    component=self.name,
                    details={'operation': 'encode', 'path': frame.source, 'mode': frame.image.mode}
                )
            if frame.size != size:
                raise EncodeError(
                    f"{self._describe(index, frame)} is {frame.width}x{frame.height}, "
                    f"expected {size[0]}x{size[1]}",
                    component=self.name,
                    details={'operation': 'encode', 'path': frame.source}
                )

    def process(self, frames: Sequence[Frame]) -> bytes:
        """
        Encode frames into a complete GIF file.

        Args:
            frames: Palette-indexed frames of identical size, in display order

        Returns:
            The encoded GIF bytes
        """
        self._validate_frames(frames)
        width, height = frames[0].size

        global_table, global_bits = _color_table(frames[0])
        # Transparent pixels must not reveal the previous frame.
        disposal = DISPOSAL_UNSPECIFIED
        if any(frame.transparency is not None for frame in frames):
            disposal = DISPOSAL_RESTORE_BACKGROUND

        parts: List[bytes] = [screen_descriptor(width, height, global_bits), global_table]
        if self.loop is not None and len(frames) > 1:
            parts.append(loop_extension(self.loop))

        for frame in frames:
            table, bits = _color_table(frame)
            transparency = frame.transparency
            if transparency is not None and transparency >= (1 << bits):
                transparency = None

            parts.append(graphic_control_extension(frame.delay, transparency, disposal))
            if (table, bits) == (global_table, global_bits):
                parts.append(image_descriptor(width, height))
            else:
                parts.append(image_descriptor(width, height, bits))
                parts.append(table)
            parts.append(image_data(frame.pixels, bits))

        parts.append(TRAILER)
        encoded = b"".join(parts)
        self.logger.info(f"Encoded {len(frames)} frames at {width}x{height} into {len(encoded)} bytes")
        return encoded

    def encode(self, data: GifData) -> bytes:
        """Encode a whole container, keeping its loop setting when it has one."""
        if data.loop is not None:
            self.loop = data.loop
        return self.execute(data.frames)


def frames_from_images(images: Sequence[StillImage], delay: int = 0) -> List[Frame]:
    """Wrap still images as frames with a fixed delay."""
    return [Frame(image=still.image, delay=delay, source=still.filename) for still in images]


def encode_gif(frames: Sequence[Frame], loop: Optional[int] = 0) -> bytes:
    """
    Convenience function to encode frames into GIF bytes.

    Args:
        frames: Palette-indexed frames of identical size
        loop: NETSCAPE loop count, None for no loop block

    Returns:
        The encoded GIF bytes
    """
    return GifEncoder(loop=loop).execute(frames)
