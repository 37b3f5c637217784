import numpy as np
import pytest

from gedit.cpu import GifFormatError, color_table_bits, lzw_compress, min_code_size_for, scan_gif
from gedit.cpu.gif_writer import (
    TRAILER, graphic_control_extension, image_data, image_descriptor, loop_extension,
    pack_color_table, screen_descriptor, sub_blocks,
)

from conftest import PALETTE


def two_image_gif():
    raster = np.zeros((2, 2), dtype=np.uint8)
    body = b"".join([
        screen_descriptor(2, 2, 2), pack_color_table(PALETTE, 2), loop_extension(0),
        graphic_control_extension(10), image_descriptor(2, 2), image_data(raster, 2),
        graphic_control_extension(10), image_descriptor(2, 2), image_data(raster, 2),
    ])
    return body + TRAILER


@pytest.mark.parametrize("entries, bits", [(0, 1), (1, 1), (2, 1), (3, 2), (4, 2), (5, 3), (129, 8), (256, 8)])
def test_color_table_bits(entries, bits):
    assert color_table_bits(entries) == bits


def test_color_table_bits_rejects_large_palettes():
    with pytest.raises(ValueError):
        color_table_bits(257)


def test_pack_color_table_pads_with_black():
    table = pack_color_table(PALETTE[:3], 2)

    assert len(table) == 12
    assert table[9:] == b"\x00\x00\x00"


def test_sub_blocks_split_at_255():
    blocks = sub_blocks(b"a" * 300)

    assert blocks[0] == 255
    assert blocks[256] == 45
    assert blocks[-1] == 0
    assert len(blocks) == 1 + 255 + 1 + 45 + 1


def test_empty_sub_blocks_is_terminator_only():
    assert sub_blocks(b"") == b"\x00"


def test_min_code_size_is_at_least_two():
    assert min_code_size_for(1) == 2
    assert min_code_size_for(8) == 8


def test_lzw_starts_with_clear_and_ends_with_eoi():
    # min code size 2: clear = 4, eoi = 5, first codes are 3 bits wide
    out = lzw_compress(np.array([1], dtype=np.uint8), 2)

    bits = int.from_bytes(out.tobytes(), "little")
    assert bits & 0b111 == 4
    assert (bits >> 3) & 0b111 == 1
    assert (bits >> 6) & 0b111 == 5


def test_graphic_control_extension_layout():
    block = graphic_control_extension(25, transparency=7, disposal=2)

    assert block[:3] == b"\x21\xf9\x04"
    assert block[3] == (2 << 2) | 1
    assert block[4:6] == (25).to_bytes(2, "little")
    assert block[6] == 7
    assert block[7] == 0


def test_scan_counts_images():
    layout = scan_gif(two_image_gif())

    assert layout.image_count == 2
    assert (layout.width, layout.height) == (2, 2)
    assert layout.has_global_table


@pytest.mark.parametrize("data, message", [
    (b"PNG89a", "signature"),
    (b"GIF89a\x01\x00", "screen descriptor"),
    (screen_descriptor(1, 1), "trailer"),
    (screen_descriptor(1, 1) + b"\x99", "unknown block"),
    (screen_descriptor(1, 1) + image_descriptor(1, 1) + b"\x02\x00" + TRAILER, "colour table"),
])
def test_scan_rejects_malformed(data, message):
    with pytest.raises(GifFormatError) as excinfo:
        scan_gif(data)

    assert message in str(excinfo.value)


def test_scan_rejects_truncation_inside_image():
    data = two_image_gif()

    with pytest.raises(GifFormatError):
        scan_gif(data[:-4])


def test_scan_rejects_bad_min_code_size():
    data = (screen_descriptor(1, 1, 1) + pack_color_table(PALETTE[:2], 1)
            + image_descriptor(1, 1) + b"\x0c\x00" + TRAILER)

    with pytest.raises(GifFormatError):
        scan_gif(data)
