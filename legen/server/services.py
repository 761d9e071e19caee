"""Business logic services for the letter server.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import time
from typing import TYPE_CHECKING, Any, Callable

from legen.common.exceptions import ValidationError
from legen.common.models import SessionContext
from legen.server.domain.letter_handler import LetterHandler
from legen.server.domain.mail_handler import MailHandler

if TYPE_CHECKING:
    import logging

    from legen.common.interfaces import (
        ILetterStore,
        IMailTransport,
        IRecipientDirectory,
    )
    from legen.common.models import (
        AttachmentDownload,
        EmailDraft,
        EmailRecord,
        LetterHistoryEntry,
        LetterSubmission,
        OutgoingEmail,
        RegistrationForm,
        SignatureInput,
        UserProfile,
        VerificationStatus,
    )
    from legen.documents import DocumentRenderer
    from legen.letters import LetterComposer
    from legen.server.identity import IdentityVerifier
    from legen.server.pipeline import SendPipeline


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class LetterService:
    """Handles business logic for the letter server."""

    def __init__(  # noqa: PLR0913
        self,
        composer: LetterComposer,
        renderer: DocumentRenderer,
        letter_store: ILetterStore,
        transport: IMailTransport,
        directory: IRecipientDirectory,
        verifier: IdentityVerifier,
        logger: logging.Logger,
        clock: Callable[[], dt.datetime] = _utcnow,
    ):
        self.directory = directory
        self.verifier = verifier
        self.logger = logger

        # Initialize handlers
        self.letter_handler = LetterHandler(
            composer=composer,
            renderer=renderer,
            letter_store=letter_store,
            directory=directory,
            clock=clock,
        )
        self.mail_handler = MailHandler(transport=transport, clock=clock)

    def health(self) -> dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok", "timestamp": int(time.time())}

    def resolve_session(self, user_id: str | None) -> SessionContext:
        """Build the caller's session from the X-User-Id header value."""
        if not user_id:
            msg = "Missing X-User-Id header"
            raise ValidationError(msg, 401)
        profile = self.directory.find(user_id)
        if profile is None:
            msg = f"Unknown user {user_id}"
            raise ValidationError(msg, 401)
        return SessionContext(user_id=user_id, profile=profile)

    def recipients(self, exclude_role: str | None) -> list[UserProfile]:
        return self.directory.list_users(exclude_role)

    async def register(
        self, form: RegistrationForm, id_card: bytes
    ) -> UserProfile:
        """Handle /register: OCR runs in a worker thread."""
        profile = await asyncio.to_thread(
            self.verifier.verify_registration, form, id_card
        )
        self.directory.add(profile)
        self.logger.info("Registered %s as %s", profile.email, ", ".join(profile.roles))
        return profile

    async def generate_letter(
        self, session: SessionContext, submission: LetterSubmission
    ) -> tuple[LetterHistoryEntry, bytes]:
        return await asyncio.to_thread(
            self.letter_handler.generate, session, submission
        )

    def list_letters(self, session: SessionContext) -> list[LetterHistoryEntry]:
        return self.letter_handler.list_letters(session)

    async def download_letter(
        self, session: SessionContext, letter_id: str
    ) -> tuple[LetterHistoryEntry, bytes]:
        return await asyncio.to_thread(
            self.letter_handler.download, session, letter_id
        )

    async def send_email(
        self, session: SessionContext, draft: EmailDraft
    ) -> tuple[SendPipeline, EmailRecord | None]:
        return await self.mail_handler.send(session, draft)

    async def sign_pending(
        self, session: SessionContext, send_id: str, signature: SignatureInput
    ) -> EmailRecord:
        return await self.mail_handler.sign_pending(session, send_id, signature)

    def cancel_pending(self, session: SessionContext, send_id: str) -> None:
        self.mail_handler.cancel(session, send_id)

    def list_emails(self, session: SessionContext) -> list[dict[str, Any]]:
        return self.mail_handler.list_emails(session)

    async def store_record(
        self, session: SessionContext, email: OutgoingEmail
    ) -> EmailRecord:
        """Persist an already-prepared message for a remote pipeline."""
        return await asyncio.to_thread(self.mail_handler.store, session, email)

    def get_record(self, session: SessionContext, email_id: str) -> EmailRecord:
        return self.mail_handler.get_record(session, email_id)

    def list_records(self, session: SessionContext) -> list[EmailRecord]:
        return self.mail_handler.list_records(session)

    async def attachment(
        self, session: SessionContext, email_id: str
    ) -> AttachmentDownload:
        return await self.mail_handler.attachment(session, email_id)

    async def verify_email(
        self, session: SessionContext, email_id: str
    ) -> VerificationStatus:
        return await asyncio.to_thread(self.mail_handler.verify, session, email_id)
