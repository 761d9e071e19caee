"""
Registration checks: form rules plus an OCR check of the uploaded ID card.
"""

from __future__ import annotations

import io
import logging
import re
import uuid
from typing import TYPE_CHECKING

import pytesseract
from PIL import Image

from legen.common.config import Config
from legen.common.exceptions import IdentityVerificationError
from legen.common.models import STUDENT_ROLE, RegistrationForm, UserProfile

if TYPE_CHECKING:
    from legen.common.interfaces import ITextExtractor

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
COLLEGE_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,4}$")


class TesseractTextExtractor:
    """OCR through the tesseract binary."""

    def __init__(self, lang: str = "eng"):
        self.lang = lang

    def extract_text(self, image_bytes: bytes) -> str:
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (OSError, SyntaxError) as err:
            msg = "Please upload a valid image file."
            raise IdentityVerificationError(msg) from err
        try:
            return pytesseract.image_to_string(image, lang=self.lang)
        except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError) as err:
            logger.exception("OCR failed")
            msg = "Error during image text extraction."
            raise IdentityVerificationError(msg) from err


class IdentityVerifier:
    """Validates a registration and the institutional marker on its ID card."""

    def __init__(
        self,
        text_extractor: ITextExtractor | None = None,
        config: Config | None = None,
    ):
        self.config = config or Config()
        self.text_extractor = text_extractor or TesseractTextExtractor()
        self.marker = self.config.INSTITUTION_MARKER
        self.mail_domain = self.config.COLLEGE_MAIL_DOMAIN

    def validate_form(self, form: RegistrationForm) -> None:
        """Raise IdentityVerificationError for the first rule the form breaks."""
        roles = set(form.roles)
        checks = [
            (bool(form.name.strip()), "Name is required."),
            (bool(form.email.strip()), "Personal Email ID is required."),
            (bool(EMAIL_RE.search(form.email)), "Invalid Personal Email ID format."),
            (bool(form.college_mail_id.strip()), "College Mail ID is required."),
            (
                bool(COLLEGE_EMAIL_RE.match(form.college_mail_id))
                and form.college_mail_id.endswith(self.mail_domain),
                f"Invalid College Mail ID format. Use {self.mail_domain} domain.",
            ),
            (bool(roles), "Select at least one Profession Role."),
            (
                "staff advisor" not in roles or bool(_text(form.dept_and_section)),
                "Department, Section, and Year required for Staff Advisors.",
            ),
            (
                not (
                    "sub warden" in roles
                    or (STUDENT_ROLE in roles and form.is_hosteller)
                )
                or bool(_text(form.hostel_name)),
                "Hostel Name required for Sub Wardens and Hosteller Students.",
            ),
            (
                not roles & {"hod", "staff advisor", STUDENT_ROLE}
                or bool(_text(form.department)),
                "Department required for the selected role(s).",
            ),
            (
                STUDENT_ROLE not in roles or bool(_text(form.roll_number)),
                "Roll Number required for Students.",
            ),
        ]
        for ok, message in checks:
            if not ok:
                raise IdentityVerificationError(message)

    def check_id_card(self, image_bytes: bytes) -> str:
        """Return the OCR text if it carries the institutional marker."""
        if not image_bytes:
            msg = "Upload your ID card."
            raise IdentityVerificationError(msg)
        text = self.text_extractor.extract_text(image_bytes)
        if self.marker not in text:
            logger.info("ID card rejected: marker %r not found", self.marker)
            msg = f"Invalid {self.config.INSTITUTION_NAME} ID card."
            raise IdentityVerificationError(msg)
        return text

    def verify_registration(
        self, form: RegistrationForm, image_bytes: bytes
    ) -> UserProfile:
        """Validate the form and ID card; return the profile to register."""
        self.validate_form(form)
        self.check_id_card(image_bytes)
        return UserProfile(
            id=str(uuid.uuid4()),
            name=form.name.strip(),
            email=form.college_mail_id.strip(),
            roles=list(form.roles),
            personal_email=form.email.strip(),
            department=_text(form.department),
            dept_and_section=_text(form.dept_and_section),
            roll_number=_text(form.roll_number),
            hostel_name=(
                _text(form.hostel_name)
                if form.is_hosteller or "sub warden" in form.roles
                else None
            ),
        )


def _text(value: str | None) -> str | None:
    """Stripped value, or None when blank."""
    if value is None:
        return None
    return value.strip() or None
