"""Reversal of the PNG row predictor (``/Predictor 15`` in PDF terms).

The decoder hands PNG image data to PDF unchanged and lets the consumer undo
the per-row filters. This module is that consumer side, used to recover the
raw samples of a decoded image.
"""

from __future__ import annotations

from typing import Optional

from .errors import CorruptImageDataError


def _paeth(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa = abs(p - a)
    pb = abs(p - b)
    pc = abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c


def unfilter_row(filter_type: int, line: bytes, previous: Optional[bytes], bpp: int) -> bytearray:
    """Undo one filtered row; ``previous`` is the already reconstructed row above."""

    out = bytearray(line)
    if previous is None:
        previous = bytes(len(line))

    if filter_type == 0:
        pass
    elif filter_type == 1:
        for i in range(bpp, len(out)):
            out[i] = (out[i] + out[i - bpp]) & 0xFF
    elif filter_type == 2:
        for i in range(len(out)):
            out[i] = (out[i] + previous[i]) & 0xFF
    elif filter_type == 3:
        for i in range(len(out)):
            left = out[i - bpp] if i >= bpp else 0
            out[i] = (out[i] + ((left + previous[i]) >> 1)) & 0xFF
    elif filter_type == 4:
        for i in range(len(out)):
            if i >= bpp:
                left, corner = out[i - bpp], previous[i - bpp]
            else:
                left = corner = 0
            out[i] = (out[i] + _paeth(left, previous[i], corner)) & 0xFF
    else:
        raise ValueError(f"Unknown PNG filter type {filter_type}")
    return out


def unpredict(data: bytes, parameters, name: str = "<stream>") -> bytes:
    """Return the raw samples of inflated, PNG-predicted ``data``.

    ``parameters`` is a :class:`pdfpng.png.DecodeParameters`. Rows are
    ``1 + ceil(colors * bits_per_component * columns / 8)`` bytes long; a
    trailing partial row is an error.
    """

    colors = parameters.colors
    bits_per_component = parameters.bits_per_component
    columns = parameters.columns

    row_length = (colors * bits_per_component * columns + 7) // 8
    bpp = max(1, (colors * bits_per_component + 7) // 8)
    stride = row_length + 1
    if len(data) % stride:
        raise CorruptImageDataError(
            f"Predicted data length {len(data)} is not a multiple of the row size {stride}", name
        )

    result = bytearray()
    previous: Optional[bytes] = None
    for start in range(0, len(data), stride):
        try:
            row = unfilter_row(data[start], data[start + 1 : start + stride], previous, bpp)
        except ValueError as exc:
            raise CorruptImageDataError(str(exc), name) from exc
        result += row
        previous = bytes(row)
    return bytes(result)


__all__ = ["unfilter_row", "unpredict"]
