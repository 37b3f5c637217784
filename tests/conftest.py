import io

import numpy as np
import pytest
from PIL import Image

from gedit.chainable.basex import Frame, GifData


PALETTE = np.array(
    [[0, 0, 0], [255, 0, 0], [0, 255, 0], [0, 0, 255]],
    dtype=np.uint8,
)


def make_paletted(indices, palette=PALETTE) -> Image.Image:
    """Build a mode "P" image from an index raster."""
    image = Image.fromarray(np.asarray(indices, dtype=np.uint8))
    image.putpalette(np.asarray(palette, dtype=np.uint8).tobytes())
    return image


def rgb(image: Image.Image) -> np.ndarray:
    return np.asarray(image.convert("RGB"))


@pytest.fixture
def frame_indices():
    """Three distinct 4x3 index rasters."""
    base = (np.arange(12, dtype=np.uint8) % 4).reshape(3, 4)
    return [np.roll(base, shift, axis=1) for shift in range(3)]


@pytest.fixture
def expected_rgb(frame_indices):
    return [PALETTE[indices] for indices in frame_indices]


@pytest.fixture
def sample_frames(frame_indices):
    return [Frame(image=make_paletted(indices), delay=5 * (i + 1))
            for i, indices in enumerate(frame_indices)]


@pytest.fixture
def sample_gif_data(sample_frames) -> GifData:
    return GifData(frames=sample_frames, width=4, height=3, loop=0)


@pytest.fixture
def pillow_gif_bytes(frame_indices) -> bytes:
    """Animated GIF written by Pillow, independent of the package encoder."""
    images = [make_paletted(indices) for indices in frame_indices]
    buffer = io.BytesIO()
    images[0].save(buffer, format="GIF", save_all=True, append_images=images[1:],
                   duration=[50, 100, 150], loop=0)
    return buffer.getvalue()


@pytest.fixture
def sample_gif(tmp_path, pillow_gif_bytes):
    path = tmp_path / "anim.gif"
    path.write_bytes(pillow_gif_bytes)
    return path
