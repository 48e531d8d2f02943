"""Single-pass PNG decoder producing what a PDF image XObject needs.

The decoder supports non-interlaced PNG files with up to 8 bits per channel,
the standard deflate compression and the adaptive filter method. Image data is
not unfiltered: the deflated IDAT payload is handed over as-is and the PDF
consumer reverses the PNG predictor itself, guided by ``decode_parameters``.
Only images with an alpha channel are inflated, because their alpha samples
must move to a separate soft mask stream.
"""

from __future__ import annotations

import binascii
import io
import logging
import struct
from dataclasses import dataclass
from enum import Enum
from os import PathLike
from typing import BinaryIO, Dict, List, Optional, Tuple, Union

from .alpha import inflate, split_alpha
from .errors import (
    ChecksumMismatchError,
    InvalidHeaderError,
    InvalidPaletteError,
    InvalidSignatureError,
    MissingImageDataError,
    MissingPaletteError,
    TruncatedStreamError,
    UnsupportedBitDepthError,
    UnsupportedColorTypeError,
    UnsupportedCompressionError,
    UnsupportedFilterError,
    UnsupportedInterlacingError,
)
from .predictor import unpredict

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
FLATE_FILTER = "FlateDecode"
PNG_PREDICTOR = 15

# largest single read issued against the source
_READ_BLOCK = 64 * 1024


class ColorSpace(Enum):
    GRAY = "DeviceGray"
    RGB = "DeviceRGB"
    INDEXED = "Indexed"


class ChunkKind(Enum):
    PALETTE = b"PLTE"
    TRANSPARENCY = b"tRNS"
    IMAGE_DATA = b"IDAT"
    END = b"IEND"
    OTHER = None

    @classmethod
    def from_tag(cls, tag: bytes) -> "ChunkKind":
        try:
            return cls(tag)
        except ValueError:
            return cls.OTHER


_COLOR_SPACES = {
    0: ColorSpace.GRAY,
    2: ColorSpace.RGB,
    3: ColorSpace.INDEXED,
    4: ColorSpace.GRAY,
    6: ColorSpace.RGB,
}

# color types carrying alpha, mapped to their number of color samples
_ALPHA_COLOR_TYPES = {4: 1, 6: 3}


@dataclass(frozen=True)
class DecodeParameters:
    colors: int
    bits_per_component: int
    columns: int
    predictor: int = PNG_PREDICTOR

    def as_dict(self) -> Dict[str, int]:
        return {
            "Predictor": self.predictor,
            "Colors": self.colors,
            "BitsPerComponent": self.bits_per_component,
            "Columns": self.columns,
        }


@dataclass(frozen=True)
class ImageDescriptor:
    """Everything a PDF writer needs to embed one PNG image.

    ``compressed_data`` is a deflate stream of PNG-filtered rows. When the
    source had an alpha channel, ``soft_mask`` holds the alpha samples in the
    same layout and ``compressed_data`` only the color samples.
    """

    width: int
    height: int
    color_space: ColorSpace
    bits_per_component: int
    decode_parameters: DecodeParameters
    compressed_data: bytes
    color_type: int
    palette: bytes = b""
    transparency: Optional[Tuple[int, ...]] = None
    soft_mask: Optional[bytes] = None
    filter_name: str = FLATE_FILTER

    @property
    def needs_alpha_support(self) -> bool:
        return self.soft_mask is not None

    @property
    def minimum_pdf_version(self) -> str:
        # soft masks were introduced with PDF 1.4
        return "1.4" if self.needs_alpha_support else "1.3"

    @property
    def soft_mask_decode_parameters(self) -> Optional[DecodeParameters]:
        if self.soft_mask is None:
            return None
        return DecodeParameters(colors=1, bits_per_component=8, columns=self.width)

    @property
    def palette_entries(self) -> List[Tuple[int, int, int]]:
        pal = self.palette
        return [(pal[i], pal[i + 1], pal[i + 2]) for i in range(0, len(pal) - 2, 3)]

    def color_samples(self) -> bytes:
        """Inflate ``compressed_data`` and undo the predictor."""
        return unpredict(inflate(self.compressed_data), self.decode_parameters)

    def alpha_samples(self) -> Optional[bytes]:
        if self.soft_mask is None:
            return None
        return unpredict(inflate(self.soft_mask), self.soft_mask_decode_parameters)


def _read(source: BinaryIO, length: int, name: str) -> bytes:
    parts: List[bytes] = []
    remaining = length
    while remaining > 0:
        try:
            block = source.read(min(remaining, _READ_BLOCK))
        except OSError as exc:
            raise TruncatedStreamError("Error while reading stream", name) from exc
        if not block:
            break
        parts.append(block)
        remaining -= len(block)
    if remaining > 0:
        raise TruncatedStreamError("Unexpected end of stream", name)
    return b"".join(parts)


def _read_int(source: BinaryIO, name: str) -> int:
    return struct.unpack(">I", _read(source, 4, name))[0]


def _read_chunk_body(
    source: BinaryIO,
    tag: bytes,
    length: int,
    name: str,
    verify: bool,
    keep: bool = True,
) -> bytes:
    """Consume payload and checksum of a chunk whose header was already read.

    With ``keep`` false the payload is streamed past instead of collected.
    """

    crc = binascii.crc32(tag)
    if keep:
        payload = _read(source, length, name)
        crc = binascii.crc32(payload, crc)
    else:
        payload = b""
        remaining = length
        while remaining > 0:
            block = _read(source, min(remaining, _READ_BLOCK), name)
            crc = binascii.crc32(block, crc)
            remaining -= len(block)

    stored = _read_int(source, name)
    if verify and stored != crc & 0xFFFFFFFF:
        raise ChecksumMismatchError(f"Bad checksum in {tag.decode('latin-1')} chunk", name)
    return payload


def _transparency_key(color_type: int, payload: bytes, name: str) -> Optional[Tuple[int, ...]]:
    if color_type == 0:
        if len(payload) < 2:
            logger.warning("ignoring short transparency chunk in %s", name)
            return None
        return (payload[1],)
    if color_type == 2:
        if len(payload) < 6:
            logger.warning("ignoring short transparency chunk in %s", name)
            return None
        return (payload[1], payload[3], payload[5])
    if color_type == 3:
        index = payload.find(b"\x00")
        return None if index == -1 else (index,)
    logger.warning("ignoring transparency chunk on image with alpha channel %s", name)
    return None


def decode(
    source: BinaryIO,
    name: str = "<stream>",
    *,
    stop_on_empty_chunk: bool = False,
    verify_checksums: bool = False,
) -> ImageDescriptor:
    """Decode the PNG read from ``source`` into an :class:`ImageDescriptor`.

    ``source`` must be positioned at the PNG signature; it is left open.
    ``name`` only appears in error messages. With ``stop_on_empty_chunk`` the
    chunk walk ends at the first zero-length chunk of any type instead of at
    ``IEND`` only. ``verify_checksums`` enables CRC checks on every chunk.
    """

    if _read(source, 8, name) != PNG_SIGNATURE:
        raise InvalidSignatureError("Not a PNG file", name)

    _read(source, 4, name)
    if _read(source, 4, name) != b"IHDR":
        raise InvalidHeaderError("Incorrect PNG file", name)
    header = bytearray()

    def field(size: int) -> int:
        raw = _read(source, size, name)
        header.extend(raw)
        return int.from_bytes(raw, "big")

    width = field(4)
    height = field(4)
    bit_depth = field(1)
    if bit_depth > 8:
        raise UnsupportedBitDepthError(f"{bit_depth}-bit depth not supported", name)
    color_type = field(1)
    if color_type not in _COLOR_SPACES:
        raise UnsupportedColorTypeError(f"Unknown color type {color_type}", name)
    if color_type in _ALPHA_COLOR_TYPES and bit_depth != 8:
        raise UnsupportedBitDepthError(f"{bit_depth}-bit depth not supported with alpha channel", name)
    if field(1) != 0:
        raise UnsupportedCompressionError("Unknown compression method", name)
    if field(1) != 0:
        raise UnsupportedFilterError("Unknown filter method", name)
    if field(1) != 0:
        raise UnsupportedInterlacingError("Interlacing not supported", name)
    if width == 0 or height == 0:
        raise InvalidHeaderError(f"Invalid image size {width}x{height}", name)
    logger.debug("%s: %dx%d depth=%d color_type=%d", name, width, height, bit_depth, color_type)

    stored = _read_int(source, name)
    if verify_checksums and stored != binascii.crc32(b"IHDR" + header):
        raise ChecksumMismatchError("Bad checksum in IHDR chunk", name)

    color_space = _COLOR_SPACES[color_type]
    palette = b""
    transparency: Optional[Tuple[int, ...]] = None
    image_data: List[bytes] = []

    while True:
        length = _read_int(source, name)
        tag = _read(source, 4, name)
        kind = ChunkKind.from_tag(tag)
        logger.debug("%s: %r chunk, %d bytes", name, tag, length)

        if kind is ChunkKind.END:
            break
        if kind is ChunkKind.OTHER:
            _read_chunk_body(source, tag, length, name, verify_checksums, keep=False)
        else:
            payload = _read_chunk_body(source, tag, length, name, verify_checksums)
            if kind is ChunkKind.PALETTE:
                palette = payload
            elif kind is ChunkKind.TRANSPARENCY:
                transparency = _transparency_key(color_type, payload, name)
            else:
                image_data.append(payload)

        if length == 0 and stop_on_empty_chunk:
            break

    if color_space is ColorSpace.INDEXED and not palette:
        raise MissingPaletteError("Missing palette", name)
    if color_space is ColorSpace.INDEXED and len(palette) % 3:
        raise InvalidPaletteError(f"Palette of {len(palette)} bytes is not a list of RGB entries", name)

    data = b"".join(image_data)
    if not data:
        raise MissingImageDataError("PNG file has no image data", name)

    soft_mask = None
    if color_type in _ALPHA_COLOR_TYPES:
        data, soft_mask = split_alpha(data, width, height, _ALPHA_COLOR_TYPES[color_type], name)

    return ImageDescriptor(
        width=width,
        height=height,
        color_space=color_space,
        bits_per_component=bit_depth,
        decode_parameters=DecodeParameters(
            colors=3 if color_space is ColorSpace.RGB else 1,
            bits_per_component=bit_depth,
            columns=width,
        ),
        compressed_data=data,
        color_type=color_type,
        palette=palette,
        transparency=transparency,
        soft_mask=soft_mask,
    )


def decode_bytes(data: bytes, name: str = "<bytes>", **options) -> ImageDescriptor:
    return decode(io.BytesIO(data), name, **options)


def decode_file(path: Union[str, PathLike], **options) -> ImageDescriptor:
    with open(path, "rb") as handle:
        return decode(handle, str(path), **options)


__all__ = [
    "ChunkKind",
    "ColorSpace",
    "DecodeParameters",
    "ImageDescriptor",
    "PNG_SIGNATURE",
    "decode",
    "decode_bytes",
    "decode_file",
]
