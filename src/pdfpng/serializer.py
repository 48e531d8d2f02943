"""Serialisation of image documents into PDF file syntax.

Values are names, references, numbers, ``None`` and the dictionaries and
arrays built from them; nothing the image writer emits needs string escaping.
"""

from __future__ import annotations

import io
from typing import Iterable

from .primitives import PDFName, PDFObject, PDFReference

# binary marker comment so transfer tools treat the file as binary
BINARY_MARKER = b"%\xE2\xE3\xCF\xD3\n"


def _format_number(value: float) -> str:
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return text or "0"


def serialize(value) -> bytes:
    if isinstance(value, PDFName):
        return str(value).encode("latin-1")
    if isinstance(value, PDFReference):
        return f"{value.obj_id} {value.generation} R".encode("ascii")
    if value is None:
        return b"null"
    if isinstance(value, int):
        return str(value).encode("ascii")
    if isinstance(value, float):
        return _format_number(value).encode("ascii")
    if isinstance(value, dict):
        entries = b"".join(b" " + serialize(PDFName(key)) + b" " + serialize(item) for key, item in value.items())
        return b"<<" + entries + b" >>"
    if isinstance(value, (list, tuple)):
        return b"[" + b" ".join(serialize(item) for item in value) + b"]"
    raise TypeError(f"Unsupported value type: {type(value)!r}")


def _write_object(buffer: io.BytesIO, obj: PDFObject) -> None:
    buffer.write(f"{obj.obj_id} {obj.generation} obj\n".encode("ascii"))
    if obj.stream is None:
        buffer.write(serialize(obj.value))
    else:
        dictionary = dict(obj.value, Length=len(obj.stream.data))
        buffer.write(serialize(dictionary) + b"\nstream\n" + obj.stream.data + b"\nendstream")
    buffer.write(b"\nendobj\n")


def write_pdf(objects: Iterable[PDFObject], root: PDFReference, version: str = "1.3") -> bytes:
    """Write the header, numbered objects, cross-reference table and trailer.

    Object ids must run ``1..n`` without gaps; each stream dictionary gets its
    ``/Length``.
    """

    buffer = io.BytesIO()
    buffer.write(f"%PDF-{version}\n".encode("ascii") + BINARY_MARKER)
    offsets = []
    for obj in sorted(objects, key=lambda item: item.obj_id):
        offsets.append(buffer.tell())
        _write_object(buffer, obj)

    xref_position = buffer.tell()
    buffer.write(f"xref\n0 {len(offsets) + 1}\n0000000000 65535 f \n".encode("ascii"))
    buffer.write(b"".join(f"{offset:010d} 00000 n \n".encode("ascii") for offset in offsets))
    trailer = {"Size": len(offsets) + 1, "Root": root}
    buffer.write(b"trailer\n" + serialize(trailer) + b"\nstartxref\n")
    buffer.write(f"{xref_position}\n%%EOF\n".encode("ascii"))
    return buffer.getvalue()


__all__ = ["serialize", "write_pdf"]
