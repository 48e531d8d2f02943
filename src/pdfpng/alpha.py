"""Splitting of PNG alpha channels into a separate PDF soft mask.

PDF images cannot carry an alpha channel, so gray+alpha and RGB+alpha data is
inflated, de-interleaved scanline by scanline and deflated again as two
streams: the color samples and the alpha samples. Each output row keeps the
original filter-type byte, which stays valid because every PNG filter only
refers to the same channel of neighbouring pixels.
"""

from __future__ import annotations

import logging
from typing import Tuple

from .errors import CodecUnavailableError, CorruptImageDataError

try:
    import zlib
except ImportError:  # pragma: no cover - interpreters built without zlib
    zlib = None

logger = logging.getLogger(__name__)


def _codec(name: str):
    if zlib is None:
        raise CodecUnavailableError("zlib not available, can't handle alpha channel", name)
    return zlib


def inflate(data: bytes, name: str = "<stream>") -> bytes:
    codec = _codec(name)
    try:
        return codec.decompress(data)
    except codec.error as exc:
        raise CorruptImageDataError(f"Cannot inflate image data ({exc})", name) from exc


def deflate(data: bytes, name: str = "<stream>") -> bytes:
    return _codec(name).compress(data)


def deinterleave(raw: bytes, width: int, height: int, channels: int, name: str = "<stream>") -> Tuple[bytes, bytes]:
    """Split filtered scanlines into color-only and alpha-only scanlines.

    ``raw`` holds ``height`` rows of ``[filter][c1..cN, alpha] * width`` with
    one byte per sample; ``channels`` is the number of color samples (1 for
    gray, 3 for RGB).
    """

    pixel_size = channels + 1
    stride = 1 + pixel_size * width
    if len(raw) < stride * height:
        raise CorruptImageDataError(
            f"Image data holds {len(raw)} bytes, expected {stride * height}", name
        )

    color = bytearray()
    alpha = bytearray()
    color_row = bytearray(channels * width)
    for row in range(height):
        start = row * stride
        line = raw[start + 1 : start + stride]
        color.append(raw[start])
        alpha.append(raw[start])
        for channel in range(channels):
            color_row[channel::channels] = line[channel::pixel_size]
        color += color_row
        alpha += line[channels::pixel_size]

    return bytes(color), bytes(alpha)


def split_alpha(data: bytes, width: int, height: int, channels: int, name: str = "<stream>") -> Tuple[bytes, bytes]:
    """Return ``(color, soft_mask)`` deflated streams for compressed ``data``."""

    raw = inflate(data, name)
    color, alpha = deinterleave(raw, width, height, channels, name)
    logger.debug(
        "separated alpha of %s: %d color bytes, %d alpha bytes", name, len(color), len(alpha)
    )
    return deflate(color, name), deflate(alpha, name)


__all__ = ["deflate", "deinterleave", "inflate", "split_alpha"]
