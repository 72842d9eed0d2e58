"""
DocMerge — Image to PDF converter.

Converts one raster image into a single-page A4 PDF. The image is
decoded with Pillow, re-encoded to an intermediate PNG that PyMuPDF
embeds, and placed according to the page fitter. The intermediate
never outlives the call.
"""

from __future__ import annotations

from pathlib import Path

import fitz
from PIL import Image, UnidentifiedImageError

from docmerge.errors import ArtifactStoreError, DecodeError
from docmerge.models.source import ConvertedDocument, SourceKind
from docmerge.pdf.geometry import A4_GEOMETRY, PageGeometry, fit_image
from docmerge.utils.logging import logger

# Modes PyMuPDF embeds from PNG without surprises
_EMBEDDABLE_MODES = {"RGB", "RGBA", "L", "LA"}


def _decode(source_path: Path, source_name: str) -> Image.Image:
    try:
        img = Image.open(source_path)
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as exc:
        raise DecodeError(source_name, str(exc)) from exc

    if img.mode in ("P", "PA"):
        img = img.convert("RGBA")
    elif img.mode not in _EMBEDDABLE_MODES:
        img = img.convert("RGB")
    return img


def image_to_pdf(
    source_path: Path,
    source_name: str,
    geometry: PageGeometry = A4_GEOMETRY,
) -> ConvertedDocument:
    """
    Convert the image at ``source_path`` into ``<stem>.pdf`` next to it.

    Raises DecodeError for corrupt pixel data, InvalidImageError for
    degenerate sizes and ArtifactStoreError if files cannot be written.
    The original image is deleted once the PDF exists.
    """
    temp_png = source_path.with_name(f"{source_path.stem}_temp.png")
    pdf_path = source_path.with_suffix(".pdf")

    try:
        img = _decode(source_path, source_name)
        try:
            width, height = img.size
            fit = fit_image(width, height, geometry)
            img.save(temp_png, format="PNG")
        except OSError as exc:
            raise ArtifactStoreError("write intermediate image", str(exc)) from exc
        finally:
            img.close()

        page_w, page_h = geometry.page_size_pt
        doc = fitz.open()
        try:
            page = doc.new_page(width=page_w, height=page_h)
            try:
                page.insert_image(fitz.Rect(*fit.rect_pt()), filename=str(temp_png))
            except (RuntimeError, ValueError) as exc:
                raise DecodeError(source_name, str(exc)) from exc
            try:
                doc.save(str(pdf_path))
            except (RuntimeError, OSError) as exc:
                pdf_path.unlink(missing_ok=True)
                raise ArtifactStoreError("write converted PDF", str(exc)) from exc
        finally:
            doc.close()
    finally:
        temp_png.unlink(missing_ok=True)

    source_path.unlink(missing_ok=True)

    logger.info(
        "  %s: %dx%d px → %.1fx%.1f mm at (%.1f, %.1f), scale %.4f",
        source_name, width, height, fit.render_width, fit.render_height,
        fit.offset_x, fit.offset_y, fit.scale,
    )
    return ConvertedDocument(
        path=pdf_path,
        source_name=source_name,
        kind=SourceKind.RASTER_IMAGE,
        pages=1,
    )
