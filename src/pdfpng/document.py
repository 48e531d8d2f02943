"""In-memory document of pages holding placed PNG images."""

from __future__ import annotations

from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .errors import PNGError
from .png import ImageDescriptor, decode_bytes, decode_file


class PDFDocumentError(RuntimeError):
    pass


@dataclass
class PlacedImage:
    """One drawing of a decoded image, in PDF user space (origin bottom left)."""

    id: str
    image_key: str
    x: float
    y: float
    width: float
    height: float


@dataclass
class PDFPage:
    number: int
    width: float
    height: float
    images: List[PlacedImage] = field(default_factory=list)


def _display_size(
    descriptor: ImageDescriptor, width: Optional[float], height: Optional[float]
) -> Tuple[float, float]:
    # one point per pixel unless told otherwise, keeping the aspect ratio
    if width is None and height is None:
        return float(descriptor.width), float(descriptor.height)
    if width is None:
        return float(height) * descriptor.width / descriptor.height, float(height)
    if height is None:
        return float(width), float(width) * descriptor.height / descriptor.width
    return float(width), float(height)


def _version_key(version: str) -> Tuple[int, ...]:
    return tuple(int(part) for part in version.split("."))


class ImageDocument:
    """Pages of images ready to be written with :func:`pdfpng.pdf_writer.build_pdf`.

    Decoded images are stored once in ``images`` and may be placed any number
    of times; PNG files are cached by path.
    """

    def __init__(self, pages: List[PDFPage], pdf_version: str = "1.3"):
        self.pages = pages
        self.images: Dict[str, ImageDescriptor] = {}
        self.base_pdf_version = pdf_version
        self._next_id = 1

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def new(
        cls,
        page_width: float = 595.0,
        page_height: float = 842.0,
        pages: int = 1,
        pdf_version: str = "1.3",
    ) -> "ImageDocument":
        page_list = [
            PDFPage(number=index + 1, width=page_width, height=page_height)
            for index in range(pages)
        ]
        return cls(page_list, pdf_version=pdf_version)

    def add_page(self, width: Optional[float] = None, height: Optional[float] = None) -> PDFPage:
        last = self.pages[-1] if self.pages else None
        page = PDFPage(
            number=len(self.pages) + 1,
            width=float(width if width is not None else (last.width if last else 595.0)),
            height=float(height if height is not None else (last.height if last else 842.0)),
        )
        self.pages.append(page)
        return page

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------
    def _allocate_id(self) -> str:
        ident = f"obj{self._next_id}"
        self._next_id += 1
        return ident

    def _page(self, page_index: int) -> PDFPage:
        if not 0 <= page_index < len(self.pages):
            raise PDFDocumentError(f"Page {page_index} does not exist ({len(self.pages)} pages)")
        return self.pages[page_index]

    def add_image_from_bytes(
        self,
        page_index: int,
        data: bytes,
        x: float,
        y: float,
        width: Optional[float] = None,
        height: Optional[float] = None,
        name: Optional[str] = None,
        **options,
    ) -> PlacedImage:
        self._page(page_index)
        key = name or self._allocate_id()
        if key not in self.images:
            try:
                self.images[key] = decode_bytes(data, key, **options)
            except PNGError as exc:
                raise PDFDocumentError(f"Cannot add image: {exc}") from exc
        return self.place_image(page_index, key, x, y, width, height)

    def register_file(self, path: Union[str, PathLike], **options) -> ImageDescriptor:
        """Decode the PNG at ``path`` once and keep it under ``str(path)``."""
        key = str(path)
        if key not in self.images:
            try:
                self.images[key] = decode_file(path, **options)
            except PNGError as exc:
                raise PDFDocumentError(f"Cannot add image: {exc}") from exc
        return self.images[key]

    def add_image_from_file(
        self,
        page_index: int,
        path: Union[str, PathLike],
        x: float,
        y: float,
        width: Optional[float] = None,
        height: Optional[float] = None,
        **options,
    ) -> PlacedImage:
        self._page(page_index)
        self.register_file(path, **options)
        return self.place_image(page_index, str(path), x, y, width, height)

    def place_image(
        self,
        page_index: int,
        image_key: str,
        x: float,
        y: float,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> PlacedImage:
        page = self._page(page_index)
        try:
            descriptor = self.images[image_key]
        except KeyError:
            raise PDFDocumentError(f"Unknown image '{image_key}'") from None
        display_width, display_height = _display_size(descriptor, width, height)
        item = PlacedImage(
            id=self._allocate_id(),
            image_key=image_key,
            x=float(x),
            y=float(y),
            width=display_width,
            height=display_height,
        )
        page.images.append(item)
        return item

    # ------------------------------------------------------------------
    # Derived document state
    # ------------------------------------------------------------------
    def placed_images(self) -> List[ImageDescriptor]:
        """Decoded images drawn on at least one page, in first-use order."""
        keys = dict.fromkeys(placed.image_key for page in self.pages for placed in page.images)
        return [self.images[key] for key in keys]

    @property
    def needs_alpha_support(self) -> bool:
        return any(image.needs_alpha_support for image in self.placed_images())

    @property
    def pdf_version(self) -> str:
        versions = [self.base_pdf_version]
        versions.extend(image.minimum_pdf_version for image in self.placed_images())
        return max(versions, key=_version_key)

    def save(self, path: Union[str, PathLike]) -> None:
        from .pdf_writer import build_pdf

        Path(path).write_bytes(build_pdf(self))


__all__ = ["ImageDocument", "PDFDocumentError", "PDFPage", "PlacedImage"]
