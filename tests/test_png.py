from __future__ import annotations

import base64
import io
import logging
import zlib

import pytest

from pdfpng import alpha
from pdfpng.errors import (
    ChecksumMismatchError,
    CodecUnavailableError,
    CorruptImageDataError,
    InvalidHeaderError,
    InvalidPaletteError,
    InvalidSignatureError,
    MissingImageDataError,
    MissingPaletteError,
    PNGFormatError,
    TruncatedStreamError,
    UnsupportedBitDepthError,
    UnsupportedColorTypeError,
    UnsupportedCompressionError,
    UnsupportedFilterError,
    UnsupportedInterlacingError,
)
from pdfpng.png import ChunkKind, ColorSpace, decode, decode_bytes, decode_file
from pngfactory import PNG_SIGNATURE, make_png, png_chunk, rgba_rows


SAMPLE_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAIAAACQd1PeAAAADElEQVR4nGP4z8AAAAMBAQDJ/pLvAAAAAElFTkSuQmCC"
)

PALETTE = bytes([255, 0, 0, 0, 255, 0, 0, 0, 255])


class TrickleReader:
    """File-like object handing out at most one byte per read."""

    def __init__(self, data: bytes) -> None:
        self._stream = io.BytesIO(data)

    def read(self, size: int = -1) -> bytes:
        return self._stream.read(min(size, 1))


class FailingReader:
    def read(self, size: int = -1) -> bytes:
        raise OSError("device gone")


def test_parse_png_metadata() -> None:
    parsed = decode_bytes(SAMPLE_PNG, verify_checksums=True)
    assert parsed.width == 1
    assert parsed.height == 1
    assert parsed.bits_per_component == 8
    assert parsed.color_type == 2
    assert parsed.color_space is ColorSpace.RGB
    assert parsed.filter_name == "FlateDecode"
    assert parsed.compressed_data == bytes.fromhex("789c63f8cfc0000003010100")
    assert parsed.decode_parameters.as_dict() == {
        "Predictor": 15,
        "Colors": 3,
        "BitsPerComponent": 8,
        "Columns": 1,
    }
    assert parsed.soft_mask is None
    assert not parsed.needs_alpha_support
    assert parsed.minimum_pdf_version == "1.3"
    assert len(parsed.color_samples()) == 3


def test_parse_png_rejects_non_png() -> None:
    with pytest.raises(InvalidSignatureError) as excinfo:
        decode_bytes(b"not png data", "sample.txt")
    assert excinfo.value.name == "sample.txt"
    assert "sample.txt" in str(excinfo.value)
    assert isinstance(excinfo.value, PNGFormatError)


def test_rejects_missing_header_chunk() -> None:
    data = PNG_SIGNATURE + b"\x00\x00\x00\x0dIHDX" + bytes(17)
    with pytest.raises(InvalidHeaderError):
        decode_bytes(data)


def test_indexed_scenario() -> None:
    data = make_png(2, 2, [b"\x00\x01", b"\x02\x00"], color_type=3, palette=PALETTE)
    image = decode_bytes(data)
    assert image.width == 2
    assert image.height == 2
    assert image.color_space is ColorSpace.INDEXED
    assert image.bits_per_component == 8
    assert image.palette == PALETTE
    assert image.palette_entries == [(255, 0, 0), (0, 255, 0), (0, 0, 255)]
    assert image.transparency is None
    assert image.soft_mask is None
    assert image.decode_parameters.colors == 1
    assert image.color_samples() == b"\x00\x01\x02\x00"


def test_rgba_scenario_soft_mask() -> None:
    rows = rgba_rows(
        [
            [(10, 20, 30, 255), (40, 50, 60, 255)],
            [(70, 80, 90, 128), (100, 110, 120, 0)],
        ]
    )
    image = decode_bytes(make_png(2, 2, rows, color_type=6))
    assert image.color_space is ColorSpace.RGB
    assert image.soft_mask is not None
    assert zlib.decompress(image.soft_mask) == bytes([0, 255, 255, 0, 128, 0])
    assert image.alpha_samples() == bytes([255, 255, 128, 0])
    assert image.color_samples() == bytes(range(10, 130, 10))
    assert image.needs_alpha_support
    assert image.minimum_pdf_version == "1.4"
    assert image.soft_mask_decode_parameters.as_dict() == {
        "Predictor": 15,
        "Colors": 1,
        "BitsPerComponent": 8,
        "Columns": 2,
    }


def test_gray_alpha_split() -> None:
    rows = [bytes([1, 200, 2, 201, 3, 202]), bytes([4, 203, 5, 204, 6, 205])]
    image = decode_bytes(make_png(3, 2, rows, color_type=4))
    assert image.color_space is ColorSpace.GRAY
    assert image.decode_parameters.colors == 1
    assert zlib.decompress(image.compressed_data) == bytes([0, 1, 2, 3, 0, 4, 5, 6])
    assert zlib.decompress(image.soft_mask) == bytes([0, 200, 201, 202, 0, 203, 204, 205])


@pytest.mark.parametrize("filters", [[0], [1], [2], [3], [4], [1, 2, 3, 4, 0]])
def test_alpha_split_survives_every_filter(filters) -> None:
    pixels = [
        [((x * 37 + y * 11) % 256, (x * 5) % 256, (y * 91) % 256, (x * y * 13) % 256) for x in range(5)]
        for y in range(4)
    ]
    image = decode_bytes(make_png(5, 4, rgba_rows(pixels), color_type=6, filters=filters))
    expected_color = bytes(v for row in pixels for (r, g, b, _) in row for v in (r, g, b))
    expected_alpha = bytes(a for row in pixels for (_, _, _, a) in row)
    assert image.color_samples() == expected_color
    assert image.alpha_samples() == expected_alpha


def test_image_data_chunks_are_concatenated() -> None:
    rows = [bytes(range(i, i + 12)) for i in range(4)]
    single = decode_bytes(make_png(4, 4, rows))
    split = decode_bytes(make_png(4, 4, rows, idat_parts=3))
    assert split.compressed_data == single.compressed_data
    assert split.color_samples() == b"".join(rows)


@pytest.mark.parametrize(
    "color_type, trns, expected",
    [
        (0, b"\x00\x07", (7,)),
        (2, b"\x00\x01\x00\x02\x00\x03", (1, 2, 3)),
        (3, b"\xff\x00\x80", (1,)),
        (3, b"\xff\x80", None),
        (0, b"\x00", None),
    ],
)
def test_transparency_keys(color_type, trns, expected) -> None:
    width = 2
    row = bytes(width * (3 if color_type == 2 else 1))
    palette = PALETTE if color_type == 3 else None
    image = decode_bytes(make_png(width, 1, [row], color_type=color_type, palette=palette, trns=trns))
    assert image.transparency == expected


def test_short_transparency_chunk_is_logged(caplog) -> None:
    data = make_png(1, 1, [b"\x00\x00\x00"], color_type=2, trns=b"\x00\x01")
    with caplog.at_level(logging.WARNING, logger="pdfpng.png"):
        image = decode_bytes(data, "short.png")
    assert image.transparency is None
    assert "short.png" in caplog.text


def test_missing_palette() -> None:
    data = make_png(2, 2, [b"\x00\x01", b"\x02\x00"], color_type=3)
    with pytest.raises(MissingPaletteError):
        decode_bytes(data)


def test_missing_image_data() -> None:
    data = PNG_SIGNATURE + png_chunk(b"IHDR", bytes.fromhex("00000001000000010802000000")) + png_chunk(b"IEND", b"")
    with pytest.raises(MissingImageDataError):
        decode_bytes(data)


def test_truncated_mid_chunk() -> None:
    data = make_png(4, 4, [bytes(12)] * 4, end=False)
    # drop the tail of the last IDAT payload and its checksum
    with pytest.raises(TruncatedStreamError):
        decode_bytes(data[:-6])


def test_missing_end_chunk_is_truncation() -> None:
    with pytest.raises(TruncatedStreamError):
        decode_bytes(make_png(1, 1, [b"\x00\x00\x00"], end=False))


def test_short_input_is_truncation() -> None:
    with pytest.raises(TruncatedStreamError) as excinfo:
        decode_bytes(b"\x89PN")
    assert isinstance(excinfo.value, EOFError)
    assert not isinstance(excinfo.value, PNGFormatError)


@pytest.mark.parametrize(
    "header, error",
    [
        ({"bit_depth": 16}, UnsupportedBitDepthError),
        ({"interlace": 1}, UnsupportedInterlacingError),
        ({"color_type": 5}, UnsupportedColorTypeError),
        ({"compression": 1}, UnsupportedCompressionError),
        ({"filter_method": 1}, UnsupportedFilterError),
        ({"color_type": 6, "bit_depth": 4}, UnsupportedBitDepthError),
    ],
)
def test_unsupported_headers(header, error) -> None:
    header.setdefault("color_type", 2)
    data = make_png(1, 1, [b"\x00\x00\x00\x00\x00\x00"], **header)
    with pytest.raises(error):
        decode_bytes(data)


def test_zero_width_is_rejected() -> None:
    with pytest.raises(InvalidHeaderError):
        decode_bytes(make_png(0, 1, [b""]))


def test_low_bit_depth_gray() -> None:
    image = decode_bytes(make_png(8, 1, [b"\xa5"], color_type=0, bit_depth=1))
    assert image.bits_per_component == 1
    assert image.decode_parameters.as_dict()["BitsPerComponent"] == 1
    assert image.color_samples() == b"\xa5"


def test_ancillary_chunks_are_skipped() -> None:
    data = make_png(
        1,
        1,
        [b"\x01\x02\x03"],
        before_idat=[(b"gAMA", b"\x00\x00\xb1\x8f"), (b"tEXt", b"Comment\x00hello")],
    )
    image = decode_bytes(data)
    assert image.color_samples() == b"\x01\x02\x03"


def test_empty_ancillary_chunk_before_image_data() -> None:
    data = make_png(1, 1, [b"\x01\x02\x03"], before_idat=[(b"sRGB", b"")])
    # only IEND ends the chunk walk by default
    assert decode_bytes(data).color_samples() == b"\x01\x02\x03"
    # the legacy behaviour stops at the empty chunk and never sees IDAT
    with pytest.raises(MissingImageDataError):
        decode_bytes(data, stop_on_empty_chunk=True)


def test_checksums_only_checked_on_request() -> None:
    data = bytearray(make_png(1, 1, [b"\x01\x02\x03"], before_idat=[(b"tEXt", b"a\x00b")]))
    crc_offset = data.index(b"tEXt") + 4 + 3
    data[crc_offset] ^= 0xFF
    assert decode_bytes(bytes(data)).width == 1
    with pytest.raises(ChecksumMismatchError):
        decode_bytes(bytes(data), verify_checksums=True)


def test_short_reads_are_retried() -> None:
    rows = rgba_rows([[(1, 2, 3, 4), (5, 6, 7, 8)]])
    image = decode(TrickleReader(make_png(2, 1, rows, color_type=6)), "trickle")
    assert image.alpha_samples() == b"\x04\x08"


def test_read_failure_is_truncation() -> None:
    with pytest.raises(TruncatedStreamError) as excinfo:
        decode(FailingReader(), "broken")
    assert isinstance(excinfo.value.__cause__, OSError)


def test_corrupt_alpha_payload() -> None:
    data = bytearray(make_png(2, 1, rgba_rows([[(1, 2, 3, 4), (5, 6, 7, 8)]]), color_type=6))
    idat = data.index(b"IDAT") + 4
    data[idat : idat + 4] = b"\xde\xad\xbe\xef"
    with pytest.raises(CorruptImageDataError):
        decode_bytes(bytes(data))


def test_alpha_needs_codec(monkeypatch) -> None:
    monkeypatch.setattr(alpha, "zlib", None)
    rgb = make_png(1, 1, [b"\x01\x02\x03"])
    assert decode_bytes(rgb).width == 1
    with pytest.raises(CodecUnavailableError):
        decode_bytes(make_png(1, 1, [b"\x01\x02\x03\x04"], color_type=6))


def test_decode_file_uses_path_as_name(tmp_path) -> None:
    path = tmp_path / "broken.png"
    path.write_bytes(make_png(2, 2, [b"\x00\x01", b"\x02\x00"], color_type=3))
    with pytest.raises(MissingPaletteError) as excinfo:
        decode_file(path)
    assert excinfo.value.name == str(path)


def test_chunk_kind_lookup() -> None:
    assert ChunkKind.from_tag(b"PLTE") is ChunkKind.PALETTE
    assert ChunkKind.from_tag(b"IEND") is ChunkKind.END
    assert ChunkKind.from_tag(b"zTXt") is ChunkKind.OTHER


def test_pillow_rgba_round_trip() -> None:
    Image = pytest.importorskip("PIL.Image")
    pixels = [((x * 30) % 256, (y * 50) % 256, (x + y) * 9, (x * y * 7) % 256) for y in range(5) for x in range(7)]
    source = Image.frombytes("RGBA", (7, 5), bytes(value for pixel in pixels for value in pixel))
    buffer = io.BytesIO()
    source.save(buffer, format="PNG")
    image = decode_bytes(buffer.getvalue(), verify_checksums=True)
    assert (image.width, image.height) == (7, 5)
    assert image.color_samples() == source.convert("RGB").tobytes()
    assert image.alpha_samples() == source.getchannel("A").tobytes()


def test_pillow_gray_alpha_round_trip() -> None:
    Image = pytest.importorskip("PIL.Image")
    samples = bytes(value for y in range(3) for x in range(4) for value in (x * 60, y * 100))
    source = Image.frombytes("LA", (4, 3), samples)
    buffer = io.BytesIO()
    source.save(buffer, format="PNG")
    image = decode_bytes(buffer.getvalue())
    assert image.color_type == 4
    assert image.color_samples() == source.getchannel("L").tobytes()
    assert image.alpha_samples() == source.getchannel("A").tobytes()


def test_pillow_palette_transparency() -> None:
    Image = pytest.importorskip("PIL.Image")
    source = Image.frombytes("P", (3, 2), bytes([0, 1, 2, 2, 1, 0]))
    source.putpalette([0, 0, 0, 255, 255, 255, 255, 0, 0])
    buffer = io.BytesIO()
    source.save(buffer, format="PNG", transparency=1)
    image = decode_bytes(buffer.getvalue())
    assert image.color_space is ColorSpace.INDEXED
    assert image.palette_entries[:3] == [(0, 0, 0), (255, 255, 255), (255, 0, 0)]
    assert image.transparency == (1,)


@pytest.mark.parametrize("color_type, row", [(4, b"\x10\x20"), (6, b"\x01\x02\x03\x04")])
def test_transparency_chunk_ignored_with_alpha_channel(color_type, row, caplog) -> None:
    data = make_png(1, 1, [row], color_type=color_type, trns=b"\x00\x01")
    with caplog.at_level(logging.WARNING, logger="pdfpng.png"):
        image = decode_bytes(data, "alpha.png")
    assert image.transparency is None
    assert image.soft_mask is not None
    assert "alpha.png" in caplog.text


def test_header_checksum_verified_on_request() -> None:
    data = bytearray(make_png(1, 1, [b"\x01\x02\x03"]))
    # signature, length, tag and the 13 header bytes precede the checksum
    data[8 + 4 + 4 + 13] ^= 0xFF
    assert decode_bytes(bytes(data)).width == 1
    with pytest.raises(ChecksumMismatchError) as excinfo:
        decode_bytes(bytes(data), verify_checksums=True)
    assert "IHDR" in str(excinfo.value)


def test_header_fields_checked_as_read() -> None:
    # the stream ends right after a 16-bit depth byte
    data = PNG_SIGNATURE + b"\x00\x00\x00\x0dIHDR" + bytes.fromhex("0000000100000001") + b"\x10"
    with pytest.raises(UnsupportedBitDepthError):
        decode_bytes(data)


def test_bit_depth_checked_before_size() -> None:
    with pytest.raises(UnsupportedBitDepthError):
        decode_bytes(make_png(0, 1, [b""], bit_depth=16))


@pytest.mark.parametrize("palette", [b"\xff", b"\xff\x00\x00\x00"])
def test_palette_must_hold_whole_entries(palette) -> None:
    data = make_png(1, 1, [b"\x00"], color_type=3, palette=palette)
    with pytest.raises(InvalidPaletteError):
        decode_bytes(data)
