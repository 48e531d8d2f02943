"""Command line entry point: inspect PNG files or wrap them into a PDF."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence

from .document import ImageDocument, PDFDocumentError
from .errors import PNGError
from .png import ImageDescriptor, decode_file

logger = logging.getLogger(__name__)

PAGE_SIZES = {
    "a4": (595.28, 841.89),
    "letter": (612.0, 792.0),
    "image": None,
}


def describe(descriptor: ImageDescriptor) -> List[str]:
    lines = [
        f"size: {descriptor.width}x{descriptor.height}",
        f"color space: {descriptor.color_space.value}",
        f"bits per component: {descriptor.bits_per_component}",
        f"filter: {descriptor.filter_name}",
        "decode parameters: "
        + " ".join(f"/{key} {value}" for key, value in descriptor.decode_parameters.as_dict().items()),
        f"image data: {len(descriptor.compressed_data)} bytes",
    ]
    if descriptor.palette:
        lines.append(f"palette: {len(descriptor.palette_entries)} entries")
    if descriptor.transparency is not None:
        lines.append("transparency: " + " ".join(str(value) for value in descriptor.transparency))
    if descriptor.soft_mask is not None:
        lines.append(f"soft mask: {len(descriptor.soft_mask)} bytes")
    lines.append(f"minimum PDF version: {descriptor.minimum_pdf_version}")
    return lines


def _decode_options(args: argparse.Namespace) -> dict:
    return {
        "stop_on_empty_chunk": args.stop_on_empty_chunk,
        "verify_checksums": args.verify_checksums,
    }


def cmd_info(args: argparse.Namespace) -> int:
    for index, path in enumerate(args.images):
        descriptor = decode_file(path, **_decode_options(args))
        if index:
            print()
        print(path)
        for line in describe(descriptor):
            print(f"  {line}")
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    page_size = PAGE_SIZES[args.page_size]
    document = ImageDocument([])
    for path in args.images:
        descriptor = document.register_file(path, **_decode_options(args))
        if page_size is None:
            page = document.add_page(descriptor.width, descriptor.height)
            document.place_image(page.number - 1, str(path), 0, 0)
        else:
            page = document.add_page(*page_size)
            # fit inside the page, anchored top left
            scale = min(page.width / descriptor.width, page.height / descriptor.height)
            width = descriptor.width * scale
            height = descriptor.height * scale
            document.place_image(page.number - 1, str(path), 0, page.height - height, width, height)
    document.save(args.output)
    logger.info("wrote %d page(s) to %s", len(document.pages), args.output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pdfpng", description="Embed PNG images into PDF files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log decoding details")
    parser.add_argument(
        "--stop-on-empty-chunk",
        action="store_true",
        help="Stop reading chunks at the first zero-length chunk",
    )
    parser.add_argument("--verify-checksums", action="store_true", help="Check chunk CRCs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    info = subparsers.add_parser("info", help="Show what a PDF needs to know about PNG files")
    info.add_argument("images", nargs="+", help="PNG files")
    info.set_defaults(handler=cmd_info)

    convert = subparsers.add_parser("convert", help="Write PNG files into a PDF, one per page")
    convert.add_argument("images", nargs="+", help="PNG files")
    convert.add_argument("-o", "--output", required=True, help="Destination PDF")
    convert.add_argument(
        "--page-size",
        choices=sorted(PAGE_SIZES),
        default="image",
        help="Page format; 'image' sizes each page to its image",
    )
    convert.set_defaults(handler=cmd_convert)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.handler(args)
    except (PNGError, PDFDocumentError, OSError) as exc:
        print(f"pdfpng: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
