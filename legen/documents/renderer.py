"""
Paginated letter rendering with reportlab.

Layout is measured in millimetres from the top-left corner of an A4 page,
the way the letter is designed, and converted to PDF points when drawing.
"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from PIL import Image

from legen.common.exceptions import MalformedRecordError

if TYPE_CHECKING:
    from legen.common.models import SignatureRecord

logger = logging.getLogger(__name__)

PAGE_WIDTH_MM = 210
PAGE_HEIGHT_MM = 297
MARGIN_LEFT_MM = 20
MARGIN_RIGHT_MM = 20
MARGIN_TOP_MM = 15
MARGIN_BOTTOM_MM = 15
BORDER_INSET_MM = 10
BORDER_LINE_WIDTH_MM = 0.5
LINE_HEIGHT_MM = 7
TEXT_WIDTH_MM = PAGE_WIDTH_MM - MARGIN_LEFT_MM - MARGIN_RIGHT_MM

BODY_FONT = "Helvetica"
BODY_FONT_SIZE = 12
CAPTION_FONT = "Helvetica-Oblique"
CAPTION_FONT_SIZE = 10

SIGNATURE_GAP_MM = 14
SIGNATURE_WIDTH_MM = 50
SIGNATURE_HEIGHT_MM = 20
SIGNATURE_ADVANCE_MM = 25
CAPTION_TIME_FORMAT = "%d/%m/%Y, %H:%M:%S"


def signature_caption(signature: SignatureRecord) -> str:
    signed_at = signature.signed_at.strftime(CAPTION_TIME_FORMAT)
    return f"Signed by {signature.signed_by_name} on {signed_at}"


def signature_image(signature: SignatureRecord) -> Image.Image:
    """Decode the stored PNG; truncated or foreign data is a malformed record."""
    try:
        with Image.open(io.BytesIO(signature.image_png)) as img:
            return img.convert("RGBA")
    except (OSError, SyntaxError, ValueError) as err:
        msg = "Signature image could not be decoded"
        raise MalformedRecordError(msg) from err


def wrap_text(text: str, font: str, size: float, width_mm: float) -> list[str]:
    """Wrap to the printable width, keeping blank lines as paragraph breaks."""
    lines: list[str] = []
    for paragraph in text.split("\n"):
        lines.extend(simpleSplit(paragraph, font, size, width_mm * mm) or [""])
    return lines


class DocumentRenderer:
    """Lays letter text out on bordered A4 pages, with an optional signature."""

    def render(
        self, body_text: str, signature: SignatureRecord | None = None
    ) -> bytes:
        """Return finished PDF bytes. Identical inputs give identical bytes."""
        buf = io.BytesIO()
        # invariant=1 drops the creation date and random document id
        pdf = canvas.Canvas(buf, pagesize=A4, invariant=1)
        pdf.setTitle("Letter")
        self._start_page(pdf)

        y = MARGIN_TOP_MM
        pdf.setFont(BODY_FONT, BODY_FONT_SIZE)
        for line in wrap_text(body_text, BODY_FONT, BODY_FONT_SIZE, TEXT_WIDTH_MM):
            if y > PAGE_HEIGHT_MM - MARGIN_BOTTOM_MM:
                y = self._new_page(pdf)
                pdf.setFont(BODY_FONT, BODY_FONT_SIZE)
            self._text(pdf, line, y)
            y += LINE_HEIGHT_MM

        if signature is not None:
            self._signature_block(pdf, signature, y)

        pdf.save()
        document = buf.getvalue()
        logger.debug("Rendered letter (%d bytes)", len(document))
        return document

    def _signature_block(
        self, pdf: canvas.Canvas, signature: SignatureRecord, y: float
    ) -> None:
        y += SIGNATURE_GAP_MM
        caption_lines = wrap_text(
            signature_caption(signature), CAPTION_FONT, CAPTION_FONT_SIZE, TEXT_WIDTH_MM
        )
        needed = len(caption_lines) * LINE_HEIGHT_MM + SIGNATURE_HEIGHT_MM
        if y + needed > PAGE_HEIGHT_MM - MARGIN_BOTTOM_MM:
            y = self._new_page(pdf)

        image = signature_image(signature)
        pdf.drawImage(
            ImageReader(image),
            MARGIN_LEFT_MM * mm,
            (PAGE_HEIGHT_MM - y - SIGNATURE_HEIGHT_MM) * mm,
            width=SIGNATURE_WIDTH_MM * mm,
            height=SIGNATURE_HEIGHT_MM * mm,
            mask="auto",
        )
        y += SIGNATURE_ADVANCE_MM

        pdf.setFont(CAPTION_FONT, CAPTION_FONT_SIZE)
        for line in caption_lines:
            self._text(pdf, line, y)
            y += LINE_HEIGHT_MM

    def _new_page(self, pdf: canvas.Canvas) -> float:
        pdf.showPage()
        self._start_page(pdf)
        return MARGIN_TOP_MM

    @staticmethod
    def _start_page(pdf: canvas.Canvas) -> None:
        pdf.setLineWidth(BORDER_LINE_WIDTH_MM * mm)
        pdf.rect(
            BORDER_INSET_MM * mm,
            BORDER_INSET_MM * mm,
            (PAGE_WIDTH_MM - 2 * BORDER_INSET_MM) * mm,
            (PAGE_HEIGHT_MM - 2 * BORDER_INSET_MM) * mm,
        )

    @staticmethod
    def _text(pdf: canvas.Canvas, line: str, y: float) -> None:
        pdf.drawString(MARGIN_LEFT_MM * mm, (PAGE_HEIGHT_MM - y) * mm, line)


def render(body_text: str, signature: SignatureRecord | None = None) -> bytes:
    """Module-level shortcut for :meth:`DocumentRenderer.render`."""
    return DocumentRenderer().render(body_text, signature)
