"""
Free-hand signature capture.

A :class:`SignaturePad` mirrors the browser drawing surface: pointer events
paint straight segments onto a transparent bitmap, and ``save`` packages the
PNG with the signer's name, id and a timestamp.
"""

from __future__ import annotations

import base64
import binascii
import datetime as dt
import io
import logging
from typing import TYPE_CHECKING

from PIL import Image, ImageDraw

from legen.common.config import Config
from legen.common.exceptions import LetterValidationError, MalformedRecordError
from legen.common.models import SignatureInput, SignatureRecord

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

INK = (0, 0, 0, 255)
DATA_URL_PREFIX = "data:image/png;base64,"

Point = tuple[float, float]


class SignaturePad:
    """Drawing surface producing :class:`SignatureRecord` objects."""

    def __init__(
        self,
        width: int | None = None,
        height: int | None = None,
        stroke_width: int | None = None,
    ) -> None:
        config = Config()
        self.width = width or config.SIGNATURE_PAD_WIDTH
        self.height = height or config.SIGNATURE_PAD_HEIGHT
        self.stroke_width = stroke_width or config.SIGNATURE_STROKE_WIDTH
        self._image = self._blank()
        self._draw = ImageDraw.Draw(self._image)
        self._last: Point | None = None
        self._segments = 0

    def _blank(self) -> Image.Image:
        return Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))

    @property
    def is_drawing(self) -> bool:
        return self._last is not None

    @property
    def is_empty(self) -> bool:
        return self._segments == 0

    def pointer_down(self, x: float, y: float) -> None:
        """Begin a new path at the pointer position."""
        self._last = (x, y)

    def pointer_move(self, x: float, y: float) -> None:
        """Extend the active path with a straight segment and paint it."""
        if self._last is None:
            return
        self._draw.line([self._last, (x, y)], fill=INK, width=self.stroke_width)
        # Round caps, as the browser canvas draws them
        r = self.stroke_width / 2
        self._draw.ellipse((x - r, y - r, x + r, y + r), fill=INK)
        self._last = (x, y)
        self._segments += 1

    def pointer_up(self) -> None:
        self._last = None

    def pointer_leave(self) -> None:
        self._last = None

    def clear(self) -> None:
        """Erase everything painted so far; the pad stays open."""
        self._image = self._blank()
        self._draw = ImageDraw.Draw(self._image)
        self._segments = 0

    def to_png(self) -> bytes:
        buf = io.BytesIO()
        self._image.save(buf, format="PNG")
        return buf.getvalue()

    def save(
        self,
        signer_name: str,
        signer_id: str,
        now: dt.datetime | None = None,
    ) -> SignatureRecord:
        """Rasterize the surface and package it with the signer metadata."""
        record = SignatureRecord(
            image_png=self.to_png(),
            signed_by_name=signer_name,
            signed_by_id=signer_id,
            signed_at=now or dt.datetime.now(dt.timezone.utc),
        )
        logger.info("Captured signature for %s (%d segments)", signer_id, self._segments)
        return record

    @classmethod
    def replay(
        cls,
        strokes: Iterable[Sequence[Point]],
        width: int | None = None,
        height: int | None = None,
        stroke_width: int | None = None,
    ) -> SignaturePad:
        """Build a pad by replaying recorded strokes as pointer events."""
        pad = cls(width, height, stroke_width)
        for stroke in strokes:
            if not stroke:
                continue
            pad.pointer_down(*stroke[0])
            for point in stroke[1:]:
                pad.pointer_move(*point)
            pad.pointer_up()
        return pad


def signature_from_data_url(
    data_url: str,
    signer_name: str,
    signer_id: str,
    now: dt.datetime | None = None,
) -> SignatureRecord:
    """Accept a PNG already rasterized by a browser canvas (``toDataURL``)."""
    encoded = data_url.removeprefix(DATA_URL_PREFIX)
    try:
        png = base64.b64decode(encoded, validate=True)
        with Image.open(io.BytesIO(png)) as img:
            if img.format != "PNG":
                msg = f"Signature image must be PNG, got {img.format}"
                raise MalformedRecordError(msg)
            # Decode the pixel data too; the header alone passes for a cut-off file
            img.load()
    except (binascii.Error, ValueError, OSError, SyntaxError) as err:
        msg = "Signature image could not be decoded"
        raise MalformedRecordError(msg) from err
    return SignatureRecord(
        image_png=png,
        signed_by_name=signer_name,
        signed_by_id=signer_id,
        signed_at=now or dt.datetime.now(dt.timezone.utc),
    )


def signature_from_input(
    signature: SignatureInput,
    signer_name: str,
    signer_id: str,
    now: dt.datetime | None = None,
) -> SignatureRecord:
    """Build a record from submitted strokes or a data URL."""
    if signature.image is not None:
        return signature_from_data_url(signature.image, signer_name, signer_id, now)

    pad = SignaturePad.replay(signature.strokes or [], signature.width, signature.height)
    if pad.is_empty:
        msg = "Please provide a signature."
        raise LetterValidationError(msg)
    return pad.save(signer_name, signer_id, now)
