"""PDF object building blocks used when writing image documents.

Only what is needed to emit images and the page tree around them is modelled;
dictionaries, arrays and numbers are plain Python values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PDFName:
    """Represents a PDF name object (e.g. ``/XObject``).

    The value is stored without the leading slash; ``str(name)`` adds it
    back when serialising.
    """

    value: str

    def __str__(self) -> str:
        return f"/{self.value}"


@dataclass(frozen=True)
class PDFReference:
    """Indirect object reference (``12 0 R``)."""

    obj_id: int
    generation: int = 0


@dataclass
class PDFStream:
    """Stream bytes, already encoded with the filter named in the dictionary."""

    data: bytes


@dataclass
class PDFObject:
    """Numbered indirect object with an optional stream body."""

    obj_id: int
    value: Any
    stream: PDFStream | None = None
    generation: int = 0
