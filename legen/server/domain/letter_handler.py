"""
Letter request handler: compose, render and record generated letters.
"""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import TYPE_CHECKING, Callable

from legen.common.exceptions import NotFoundError
from legen.common.models import LetterHistoryEntry
from legen.signature import signature_from_input

if TYPE_CHECKING:
    from legen.common.interfaces import ILetterStore, IRecipientDirectory
    from legen.common.models import (
        LetterForm,
        LetterSubmission,
        RenderedLetter,
        SessionContext,
        SignatureRecord,
        UserProfile,
    )
    from legen.documents import DocumentRenderer
    from legen.letters import LetterComposer


class LetterHandler:
    """Handles letter generation, history and re-download."""

    def __init__(
        self,
        composer: LetterComposer,
        renderer: DocumentRenderer,
        letter_store: ILetterStore,
        directory: IRecipientDirectory,
        clock: Callable[[], dt.datetime],
    ):
        self.composer = composer
        self.renderer = renderer
        self.letter_store = letter_store
        self.directory = directory
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    def generate(
        self, session: SessionContext, submission: LetterSubmission
    ) -> tuple[LetterHistoryEntry, bytes]:
        """Compose and render a letter, then record it in the history."""
        now = self.clock()
        rendered = self._compose(session.profile, submission.form, now.date())

        signature: SignatureRecord | None = None
        if submission.signature is not None:
            signature = signature_from_input(
                submission.signature, session.profile.name, session.user_id, now
            )

        body = submission.edited_content or rendered.body_text
        document = self.renderer.render(body, signature)

        entry = LetterHistoryEntry(
            id=str(uuid.uuid4()),
            user_id=session.user_id,
            name=rendered.suggested_filename,
            created_at=now,
            form_data=submission.form,
            edited_content=submission.edited_content,
            signature=signature,
            document_size=len(document),
        )
        self.letter_store.add(entry)
        self.logger.info(
            "Generated %s for %s (%d bytes)", entry.name, session.user_id, len(document)
        )
        return entry, document

    def list_letters(self, session: SessionContext) -> list[LetterHistoryEntry]:
        return self.letter_store.list_for_user(session.user_id)

    def download(
        self, session: SessionContext, letter_id: str
    ) -> tuple[LetterHistoryEntry, bytes]:
        """Re-derive a stored letter's PDF from its form or edited text."""
        entry = self.letter_store.get(letter_id)
        if entry.user_id != session.user_id:
            msg = f"Letter {letter_id} not found"
            raise NotFoundError(msg)

        if entry.edited_content:
            body = entry.edited_content
        else:
            sender = self.directory.find(entry.user_id) or session.profile
            body = self._compose(
                sender, entry.form_data, entry.created_at.date()
            ).body_text
        return entry, self.renderer.render(body, entry.signature)

    def _compose(
        self, sender: UserProfile, form: LetterForm, today: dt.date
    ) -> RenderedLetter:
        return self.composer.compose_form(
            form, sender, self.directory.list_users(), today
        )
