"""
Letter composition: structured letter fields to canonical letter text.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import TYPE_CHECKING

from legen.common.config import Config
from legen.common.models import LetterForm, LetterType, RenderedLetter

from .templates import TEMPLATES, UNSUPPORTED_BODY, closing_for

if TYPE_CHECKING:
    from collections.abc import Iterable

    from legen.common.models import LetterRequest, UserProfile

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d-%m-%Y"


def format_letter_date(day: dt.date) -> str:
    return day.strftime(DATE_FORMAT)


def suggested_filename(letter_type: str, day: dt.date) -> str:
    return f"{letter_type}_letter_{format_letter_date(day)}.pdf"


class LetterComposer:
    """Builds letter text from a typed request. Pure: no clock, no session."""

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or Config()
        self.institution_name = self.config.INSTITUTION_NAME
        self.institution_location = self.config.INSTITUTION_LOCATION

    def compose(
        self,
        request: LetterRequest,
        sender: UserProfile,
        recipients: Iterable[UserProfile],
        today: dt.date,
    ) -> RenderedLetter:
        """Render the letter for ``request`` as written by ``sender`` on ``today``."""
        recipient = self._find_recipient(request.recipient_id, recipients)
        subject, paragraphs = TEMPLATES[request.letter_type](request)
        body = "\n\n".join([f"Sub: {subject}", *paragraphs])
        closing = closing_for(request.letter_type)

        content = (
            self._header(sender, today)
            + self._recipient_block(recipient)
            + f"{body}\n\n{closing},\n{sender.name}"
        )
        logger.debug("Composed %s letter for %s", request.letter_type.value, sender.id)
        return RenderedLetter(
            body_text=content,
            suggested_filename=suggested_filename(request.letter_type.value, today),
            subject=subject,
        )

    def compose_form(
        self,
        form: LetterForm,
        sender: UserProfile,
        recipients: Iterable[UserProfile],
        today: dt.date,
    ) -> RenderedLetter:
        """Compose from a raw form.

        An unknown letter type yields a "not supported" letter instead of an
        error; a known type with missing fields still raises
        :class:`~legen.common.exceptions.LetterValidationError`.
        """
        if form.letter_type in {t.value for t in LetterType}:
            return self.compose(form.to_request(), sender, recipients, today)

        logger.warning("Letter type %r not supported", form.letter_type)
        recipient = self._find_recipient(form.recipient_id, recipients)
        content = (
            self._header(sender, today)
            + self._recipient_block(recipient)
            + f"{UNSUPPORTED_BODY}\n\n"
        )
        return RenderedLetter(
            body_text=content,
            suggested_filename=suggested_filename(form.letter_type, today),
        )

    @staticmethod
    def _find_recipient(
        recipient_id: str, recipients: Iterable[UserProfile]
    ) -> UserProfile | None:
        return next((r for r in recipients if r.id == recipient_id), None)

    def _header(self, sender: UserProfile, today: dt.date) -> str:
        lines = [sender.name]
        # Optional lines are left out rather than printed blank
        lines.extend(
            value
            for value in (sender.dept_and_section, sender.roll_number, sender.hostel_name)
            if value
        )
        lines += [self.institution_name, self.institution_location, ""]
        lines += [format_letter_date(today), "", ""]
        return "\n".join(lines)

    def _recipient_block(self, recipient: UserProfile | None) -> str:
        if recipient is not None and recipient.roles:
            role = recipient.roles[0]
            role_line = f"The {role[:1].upper()}{role[1:]}"
        else:
            role_line = "The Staff"
        salutation = (
            "Respected Sir/Madam"
            if recipient is not None and recipient.is_hod
            else "Dear Sir/Madam"
        )
        name = recipient.name if recipient is not None else ""
        lines = [
            name,
            role_line,
            self.institution_name,
            self.institution_location,
            "",
            f"{salutation},",
            "",
            "",
        ]
        return "\n".join(lines)


def compose(
    request: LetterRequest,
    sender: UserProfile,
    recipients: Iterable[UserProfile],
    today: dt.date,
    config: Config | None = None,
) -> RenderedLetter:
    """Module-level shortcut for :meth:`LetterComposer.compose`."""
    return LetterComposer(config).compose(request, sender, recipients, today)
