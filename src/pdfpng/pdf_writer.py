"""PDF serialisation of image documents.

Decoded PNG images become image XObjects whose stream is the PNG deflate data
itself; ``/DecodeParms`` tells the reader to undo the PNG predictor. Alpha
channels are written as a separate ``/DeviceGray`` image referenced by
``/SMask``.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from .document import ImageDocument, PDFPage
from .png import ColorSpace, ImageDescriptor
from .primitives import PDFName, PDFObject, PDFReference, PDFStream
from .serializer import write_pdf

AddObject = Callable[..., PDFReference]

TRANSPARENCY_GROUP = {
    "Type": PDFName("Group"),
    "S": PDFName("Transparency"),
    "CS": PDFName("DeviceRGB"),
}


def image_dictionary(
    descriptor: ImageDescriptor,
    palette_ref: Optional[PDFReference] = None,
    smask_ref: Optional[PDFReference] = None,
) -> Dict[str, object]:
    """Return the XObject dictionary of ``descriptor`` (without ``/Length``)."""

    if descriptor.color_space is ColorSpace.INDEXED:
        if palette_ref is None:
            raise ValueError("Indexed images need a palette reference")
        hival = len(descriptor.palette) // 3 - 1
        color_space: object = [PDFName("Indexed"), PDFName("DeviceRGB"), hival, palette_ref]
    else:
        color_space = PDFName(descriptor.color_space.value)

    entries: Dict[str, object] = {
        "Type": PDFName("XObject"),
        "Subtype": PDFName("Image"),
        "Width": descriptor.width,
        "Height": descriptor.height,
        "ColorSpace": color_space,
        "BitsPerComponent": descriptor.bits_per_component,
        "Filter": PDFName(descriptor.filter_name),
        "DecodeParms": descriptor.decode_parameters.as_dict(),
    }
    if descriptor.transparency is not None:
        # a color key mask lists a [min max] range per component
        entries["Mask"] = [value for value in descriptor.transparency for _ in range(2)]
    if smask_ref is not None:
        entries["SMask"] = smask_ref
    return entries


def soft_mask_dictionary(descriptor: ImageDescriptor) -> Dict[str, object]:
    params = descriptor.soft_mask_decode_parameters
    if params is None:
        raise ValueError("Image has no soft mask")
    return {
        "Type": PDFName("XObject"),
        "Subtype": PDFName("Image"),
        "Width": descriptor.width,
        "Height": descriptor.height,
        "ColorSpace": PDFName("DeviceGray"),
        "BitsPerComponent": 8,
        "Filter": PDFName(descriptor.filter_name),
        "DecodeParms": params.as_dict(),
    }


def build_image_objects(descriptor: ImageDescriptor, add_object: AddObject) -> PDFReference:
    """Add the objects of one image through ``add_object`` and return its reference.

    ``add_object(value, stream)`` must register a new indirect object and
    return its reference.
    """

    smask_ref = None
    if descriptor.soft_mask is not None:
        smask_ref = add_object(soft_mask_dictionary(descriptor), PDFStream(descriptor.soft_mask))
    palette_ref = None
    if descriptor.color_space is ColorSpace.INDEXED:
        palette_ref = add_object({}, PDFStream(descriptor.palette))
    return add_object(
        image_dictionary(descriptor, palette_ref=palette_ref, smask_ref=smask_ref),
        PDFStream(descriptor.compressed_data),
    )


def build_pdf(document: ImageDocument) -> bytes:
    """Serialize ``document`` to a PDF file."""

    objects: List[PDFObject] = []

    def add_object(value, stream: Optional[PDFStream] = None) -> PDFReference:
        objects.append(PDFObject(obj_id=len(objects) + 1, value=value, stream=stream))
        return PDFReference(len(objects))

    # Reserve place for the /Pages node (parent of page objects)
    pages_ref = add_object(None)

    image_refs: Dict[str, PDFReference] = {}
    image_names: Dict[str, str] = {}
    page_refs: List[PDFReference] = []

    for page in document.pages:
        # Ensure image objects exist before the page references them.
        for placed in page.images:
            if placed.image_key not in image_refs:
                descriptor = document.images[placed.image_key]
                image_refs[placed.image_key] = build_image_objects(descriptor, add_object)
                image_names[placed.image_key] = f"Im{len(image_names) + 1}"

        content_ref = add_object({}, PDFStream(_build_content_stream(page, image_names)))
        page_body = _build_page_object(
            page, pages_ref, content_ref, image_refs, image_names, document.needs_alpha_support
        )
        page_refs.append(add_object(page_body))

    objects[pages_ref.obj_id - 1].value = {
        "Type": PDFName("Pages"),
        "Kids": page_refs,
        "Count": len(page_refs),
    }
    catalog_ref = add_object({"Type": PDFName("Catalog"), "Pages": pages_ref})

    return write_pdf(objects, catalog_ref, version=document.pdf_version)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _build_content_stream(page: PDFPage, image_names: Dict[str, str]) -> bytes:
    lines: List[bytes] = []
    for image in page.images:
        lines.extend(
            [
                b"q",
                f"{image.width:.2f} 0 0 {image.height:.2f} {image.x:.2f} {image.y:.2f} cm".encode("latin-1"),
                f"/{image_names[image.image_key]} Do".encode("latin-1"),
                b"Q",
            ]
        )
    return b"\n".join(lines) + b"\n"


def _build_page_object(
    page: PDFPage,
    pages_ref: PDFReference,
    content_ref: PDFReference,
    image_refs: Dict[str, PDFReference],
    image_names: Dict[str, str],
    with_alpha: bool,
) -> Dict[str, object]:
    resources: Dict[str, object] = {
        "ProcSet": [PDFName(name) for name in ("PDF", "ImageB", "ImageC", "ImageI")],
    }
    used = {placed.image_key for placed in page.images}
    if used:
        resources["XObject"] = {
            image_names[key]: image_refs[key] for key in image_names if key in used
        }
    body: Dict[str, object] = {
        "Type": PDFName("Page"),
        "Parent": pages_ref,
        "MediaBox": [0, 0, page.width, page.height],
        "Resources": resources,
        "Contents": content_ref,
    }
    if with_alpha:
        body["Group"] = dict(TRANSPARENCY_GROUP)
    return body


__all__ = [
    "build_image_objects",
    "build_pdf",
    "image_dictionary",
    "soft_mask_dictionary",
]
