"""
CPU kernels for GIF encoding and structural checks.
"""

from .lzw import lzw_compress, min_code_size_for
from .gif_writer import color_table_bits, pack_color_table, image_data
from .gif_scanner import scan_gif, GifLayout, GifFormatError


__all__ = ['lzw_compress', 'min_code_size_for', 'color_table_bits', 'pack_color_table', 'image_data',
           'scan_gif', 'GifLayout', 'GifFormatError']
