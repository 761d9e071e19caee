"""
Stamp a captured signature onto an existing PDF attachment.

The overlay (signature image plus caption) is drawn with reportlab on a page
of the same size and merged onto the last page with pypdf. Stamping produces
new bytes; those are the bytes that get hashed and signed afterwards.
"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from legen.common.exceptions import MalformedRecordError

from .renderer import signature_caption, signature_image

if TYPE_CHECKING:
    from legen.common.models import SignatureRecord

logger = logging.getLogger(__name__)

# Placement on the last page, in PDF points from the bottom-left corner
STAMP_X = 50
STAMP_Y = 50
STAMP_WIDTH = 100
STAMP_HEIGHT = 40
CAPTION_Y = 30
CAPTION_FONT = "Helvetica"
CAPTION_FONT_SIZE = 10


def _make_overlay(page_w: float, page_h: float, signature: SignatureRecord) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=(page_w, page_h))
    c.drawImage(
        ImageReader(signature_image(signature)),
        STAMP_X,
        STAMP_Y,
        width=STAMP_WIDTH,
        height=STAMP_HEIGHT,
        mask="auto",
    )
    c.setFillColorRGB(0, 0, 0)
    c.setFont(CAPTION_FONT, CAPTION_FONT_SIZE)
    c.drawString(STAMP_X, CAPTION_Y, signature_caption(signature))
    c.save()
    return buf.getvalue()


def _read_pdf(document_bytes: bytes) -> PdfReader:
    try:
        reader = PdfReader(io.BytesIO(document_bytes))
        if not reader.pages:
            msg = "PDF has no pages"
            raise MalformedRecordError(msg)
    except (PyPdfError, ValueError, KeyError, TypeError) as err:
        msg = f"Attachment is not a readable PDF: {err}"
        raise MalformedRecordError(msg) from err
    return reader


def stamp(document_bytes: bytes, signature: SignatureRecord) -> bytes:
    """Return new PDF bytes with the signature drawn on the last page."""
    reader = _read_pdf(document_bytes)
    writer = PdfWriter()
    last = len(reader.pages) - 1

    for i, page in enumerate(reader.pages):
        if i == last:
            box = page.mediabox
            overlay = _make_overlay(float(box.width), float(box.height), signature)
            page.merge_page(PdfReader(io.BytesIO(overlay)).pages[0])
        writer.add_page(page)

    out = io.BytesIO()
    writer.write(out)
    stamped = out.getvalue()
    logger.info(
        "Stamped signature of %s onto %d-page PDF", signature.signed_by_id, last + 1
    )
    return stamped


def count_pages(document_bytes: bytes) -> int:
    """Number of pages in a PDF; raises MalformedRecordError if unreadable."""
    return len(_read_pdf(document_bytes).pages)
