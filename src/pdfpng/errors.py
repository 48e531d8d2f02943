"""Exceptions raised while decoding PNG data for PDF embedding.

Every error carries the diagnostic ``name`` of the source being decoded so
the caller can report which image broke document generation.
"""

from __future__ import annotations


class PNGError(Exception):
    """Base class for every decoder failure."""

    def __init__(self, message: str, name: str = "<stream>") -> None:
        self.name = name
        self.message = message
        super().__init__(f"{message}: {name}")


class PNGFormatError(PNGError, ValueError):
    """Raised when the data is not a PNG or lies outside the supported subset."""


class InvalidSignatureError(PNGFormatError):
    pass


class InvalidHeaderError(PNGFormatError):
    pass


class UnsupportedBitDepthError(PNGFormatError):
    pass


class UnsupportedColorTypeError(PNGFormatError):
    pass


class UnsupportedCompressionError(PNGFormatError):
    pass


class UnsupportedFilterError(PNGFormatError):
    pass


class UnsupportedInterlacingError(PNGFormatError):
    pass


class MissingPaletteError(PNGFormatError):
    pass


class InvalidPaletteError(PNGFormatError):
    """The palette length is not a whole number of RGB entries."""


class MissingImageDataError(PNGFormatError):
    pass


class CorruptImageDataError(PNGFormatError):
    """The image data could not be inflated or has the wrong geometry."""


class ChecksumMismatchError(PNGFormatError):
    pass


class TruncatedStreamError(PNGError, EOFError):
    """The source ran out (or failed) before a declared length was read."""


class CodecUnavailableError(PNGError, RuntimeError):
    """Alpha separation needs zlib, which this interpreter does not provide."""


__all__ = [
    "ChecksumMismatchError",
    "CodecUnavailableError",
    "CorruptImageDataError",
    "InvalidHeaderError",
    "InvalidPaletteError",
    "InvalidSignatureError",
    "MissingImageDataError",
    "MissingPaletteError",
    "PNGError",
    "PNGFormatError",
    "TruncatedStreamError",
    "UnsupportedBitDepthError",
    "UnsupportedColorTypeError",
    "UnsupportedCompressionError",
    "UnsupportedFilterError",
    "UnsupportedInterlacingError",
]
