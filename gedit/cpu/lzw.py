"""
CPU LZW compression for GIF image data.

Variable-width LZW as used by GIF: codes are packed least significant bit first,
a clear code opens the stream, the code table is reset when it fills up and an
end-of-information code closes the stream. Compiled with Numba since the inner
loop runs once per pixel.
"""

import numpy as np
from typing import Tuple
from numba import jit


MAX_CODE_SIZE = 12
MAX_CODE = (1 << MAX_CODE_SIZE) - 1


@jit(nopython=True)
def _emit(out: np.ndarray, pos: int, buf: int, nbits: int, code: int, width: int) -> Tuple[int, int, int]:
    """Append one code to the output and return the new (pos, buf, nbits)."""
    buf |= code << nbits
    nbits += width
    while nbits >= 8:
        out[pos] = buf & 0xFF
        pos += 1
        buf >>= 8
        nbits -= 8
    return pos, buf, nbits


@jit(nopython=True)
def lzw_compress(indices: np.ndarray, min_code_size: int) -> np.ndarray:
    """
    Compress a flat array of palette indices.

    Args:
        indices: 1D uint8 array, every value below ``1 << min_code_size``
        min_code_size: LZW minimum code size (2..8)

    Returns:
        Compressed bytes as a uint8 array, without sub-block framing
    """
    n = indices.shape[0]
    clear_code = 1 << min_code_size
    eoi_code = clear_code + 1

    # Every code is at most 12 bits, so two bytes per pixel plus clears is an upper bound
    out = np.zeros(2 * n + 2 * (n // 64) + 16, dtype=np.uint8)
    # (prefix code, next index) -> code, -1 when unassigned
    table = np.full((MAX_CODE + 1, 256), -1, dtype=np.int16)

    width = min_code_size + 1
    overflow = 1 << width
    hi = eoi_code

    pos, buf, nbits = _emit(out, 0, 0, 0, clear_code, width)

    if n > 0:
        prefix = np.int64(indices[0])
        for i in range(1, n):
            value = np.int64(indices[i])
            code = table[prefix, value]
            if code >= 0:
                prefix = np.int64(code)
                continue

            pos, buf, nbits = _emit(out, pos, buf, nbits, prefix, width)

            hi += 1
            if hi == overflow:
                width += 1
                overflow <<= 1
            if hi == MAX_CODE:
                pos, buf, nbits = _emit(out, pos, buf, nbits, clear_code, width)
                table[:, :] = -1
                width = min_code_size + 1
                overflow = 1 << width
                hi = eoi_code
            else:
                table[prefix, value] = hi
            prefix = value

        pos, buf, nbits = _emit(out, pos, buf, nbits, prefix, width)
        hi += 1
        if hi == overflow:
            width += 1
            overflow <<= 1
        if hi == MAX_CODE:
            pos, buf, nbits = _emit(out, pos, buf, nbits, clear_code, width)
            width = min_code_size + 1

    pos, buf, nbits = _emit(out, pos, buf, nbits, eoi_code, width)
    if nbits > 0:
        out[pos] = buf & 0xFF
        pos += 1

    return out[:pos]


def min_code_size_for(color_table_bits: int) -> int:
    """GIF requires a minimum code size of at least 2."""
    return max(2, color_table_bits)
