"""Decode PNG images into the pieces a PDF image object is made of."""

from .document import ImageDocument, PDFDocumentError, PDFPage, PlacedImage
from .errors import (
    ChecksumMismatchError,
    CodecUnavailableError,
    CorruptImageDataError,
    InvalidHeaderError,
    InvalidPaletteError,
    InvalidSignatureError,
    MissingImageDataError,
    MissingPaletteError,
    PNGError,
    PNGFormatError,
    TruncatedStreamError,
    UnsupportedBitDepthError,
    UnsupportedColorTypeError,
    UnsupportedCompressionError,
    UnsupportedFilterError,
    UnsupportedInterlacingError,
)
from .png import ColorSpace, DecodeParameters, ImageDescriptor, decode, decode_bytes, decode_file
from .pdf_writer import build_pdf

__all__ = [
    "ChecksumMismatchError",
    "CodecUnavailableError",
    "ColorSpace",
    "CorruptImageDataError",
    "DecodeParameters",
    "ImageDescriptor",
    "ImageDocument",
    "InvalidHeaderError",
    "InvalidPaletteError",
    "InvalidSignatureError",
    "MissingImageDataError",
    "MissingPaletteError",
    "PDFDocumentError",
    "PDFPage",
    "PNGError",
    "PNGFormatError",
    "PlacedImage",
    "TruncatedStreamError",
    "UnsupportedBitDepthError",
    "UnsupportedColorTypeError",
    "UnsupportedCompressionError",
    "UnsupportedFilterError",
    "UnsupportedInterlacingError",
    "build_pdf",
    "decode",
    "decode_bytes",
    "decode_file",
]
