"""
GIF decoding component.

Reads a complete GIF from a source stream with Pillow and converts it into a
GifData container of palette-indexed frames. Decoding is all-or-nothing: every
frame is loaded and copied before the container is returned.
"""

import io
import struct
import numpy as np
from typing import BinaryIO, List, Optional, Union

from PIL import Image, ImageSequence, GifImagePlugin, UnidentifiedImageError

from . import ChainComponent, Frame, GifData, DecodeError, ProgressReporter
from .openx import SourceHandle
from ..cpu.gif_scanner import scan_gif, GifFormatError


MAX_PALETTE_ENTRIES = 256
TRANSPARENT_KEY = 1 << 24


def to_paletted(image: Image.Image) -> Optional[Image.Image]:
    """
    Re-index a decoded RGB or RGBA frame exactly.

    Fully transparent pixels share a single transparent index. Returns None when
    the frame holds more than 256 distinct colours.
    """
    if image.mode == "P":
        return image

    rgba = np.asarray(image.convert("RGBA"), dtype=np.uint32)
    keys = (rgba[..., 0] << 16) | (rgba[..., 1] << 8) | rgba[..., 2]
    keys = np.where(rgba[..., 3] == 0, TRANSPARENT_KEY, keys).ravel()

    colors, inverse = np.unique(keys, return_inverse=True)
    if len(colors) > MAX_PALETTE_ENTRIES:
        return None

    palette = np.zeros((len(colors), 3), dtype=np.uint8)
    opaque = colors != TRANSPARENT_KEY
    palette[opaque, 0] = (colors[opaque] >> 16) & 0xFF
    palette[opaque, 1] = (colors[opaque] >> 8) & 0xFF
    palette[opaque, 2] = colors[opaque] & 0xFF

    indices = inverse.reshape(image.height, image.width).astype(np.uint8)
    paletted = Image.fromarray(indices)
    paletted.putpalette(palette.tobytes())
    if not opaque.all():
        paletted.info["transparency"] = int(np.flatnonzero(~opaque)[0])
    return paletted


class GifDecoder(ChainComponent):
    """Component for decoding a GIF stream into frames."""

    error_class = DecodeError

    # Keep frames paletted unless their colour table differs from the first frame's
    LOADING_STRATEGY = GifImagePlugin.LoadingStrategy.RGB_AFTER_DIFFERENT_PALETTE_ONLY

    def __init__(self):
        super().__init__("GifDecoder")

    def _read_frames(self, image: Image.Image) -> List[Frame]:
        frames = []
        n_frames = getattr(image, "n_frames", 1)
        progress = ProgressReporter(n_frames, "Decoding frames")

        for index, frame in enumerate(ImageSequence.Iterator(image)):
            copied = frame.copy()
            paletted = to_paletted(copied)
            if paletted is None:
                self.logger.warning(f"Frame {index} has more than {MAX_PALETTE_ENTRIES} colours, quantizing")
                paletted = copied.convert("RGB").quantize(colors=MAX_PALETTE_ENTRIES)
            duration = frame.info.get("duration", 0) or 0
            frames.append(Frame(image=paletted, delay=int(duration) // 10))
            progress.update()

        progress.finish()
        return frames

    def process(self, source: Union[SourceHandle, BinaryIO]) -> GifData:
        """
        Decode every frame of a GIF.

        Args:
            source: Open SourceHandle, or any readable binary stream

        Returns:
            GifData with one palette-indexed frame per image block
        """
        identifier = getattr(source, "identifier", None)
        details = {'operation': 'decode', 'path': identifier}

        raw = source.read()
        try:
            layout = scan_gif(raw)
        except GifFormatError as e:
            raise DecodeError(f"Malformed GIF: {e}", component=self.name, details=details) from e

        frames: List[Frame] = []
        loop = None
        if layout.image_count:
            # Process-global Pillow setting, restored before returning
            previous_strategy = GifImagePlugin.LOADING_STRATEGY
            GifImagePlugin.LOADING_STRATEGY = self.LOADING_STRATEGY
            try:
                with Image.open(io.BytesIO(raw), formats=["GIF"]) as image:
                    loop = image.info.get("loop")
                    frames = self._read_frames(image)
            except UnidentifiedImageError as e:
                raise DecodeError(f"Not a GIF: {e}", component=self.name, details=details) from e
            except (OSError, EOFError, SyntaxError, ValueError, struct.error) as e:
                raise DecodeError(f"Malformed GIF: {e}", component=self.name, details=details) from e
            finally:
                GifImagePlugin.LOADING_STRATEGY = previous_strategy

        if len(frames) != layout.image_count:
            raise DecodeError(
                f"Decoded {len(frames)} of {layout.image_count} image blocks",
                component=self.name,
                details=details
            )

        width, height = frames[0].size if frames else (layout.width, layout.height)
        data = GifData(frames=frames, width=width, height=height, loop=loop,
                       metadata={'source_file': identifier})
        data.add_processing_step(self.name, {'source': identifier})

        self.logger.info(f"GIF: {width}x{height}, {data.frame_count} frames")
        return data


def decode_gif(source: Union[SourceHandle, BinaryIO]) -> GifData:
    """
    Convenience function to decode a GIF stream.

    Args:
        source: Open SourceHandle or readable binary stream

    Returns:
        GifData containing every frame
    """
    return GifDecoder().execute(source)
