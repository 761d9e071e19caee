"""
Mail request handler: drives send pipelines and serves stored attachments.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import TYPE_CHECKING, Any, Callable

from legen.common.exceptions import NotFoundError
from legen.server.pipeline import (
    PipelineState,
    SendPipeline,
    decode_attachment,
    fetch_attachment,
    verification_status,
)
from legen.signature import signature_from_input

if TYPE_CHECKING:
    from legen.common.interfaces import IMailTransport
    from legen.common.models import (
        AttachmentDownload,
        EmailDraft,
        EmailRecord,
        OutgoingEmail,
        SessionContext,
        SignatureInput,
        VerificationStatus,
    )


class MailHandler:
    """Handles sending, pending signatures and mailbox reads."""

    def __init__(self, transport: IMailTransport, clock: Callable[[], dt.datetime]):
        self.transport = transport
        self.clock = clock
        self.pending: dict[str, SendPipeline] = {}
        self.logger = logging.getLogger(__name__)

    async def send(
        self, session: SessionContext, draft: EmailDraft
    ) -> tuple[SendPipeline, EmailRecord | None]:
        """Start a send; signers with an attachment stop at awaiting_signature."""
        pipeline = SendPipeline(session, draft, self.transport, clock=self.clock)
        record = await pipeline.submit()
        if pipeline.state is PipelineState.AWAITING_SIGNATURE:
            self.pending[pipeline.send_id] = pipeline
        return pipeline, record

    async def sign_pending(
        self, session: SessionContext, send_id: str, signature: SignatureInput
    ) -> EmailRecord:
        pipeline = self._pending(session, send_id)
        record = signature_from_input(
            signature, session.profile.name, session.user_id, self.clock()
        )
        try:
            return await pipeline.provide_signature(record)
        finally:
            if pipeline.state is PipelineState.IDLE:
                self.pending.pop(send_id, None)

    def cancel(self, session: SessionContext, send_id: str) -> None:
        pipeline = self._pending(session, send_id)
        pipeline.cancel()
        self.pending.pop(send_id, None)

    def list_emails(self, session: SessionContext) -> list[dict[str, Any]]:
        """Sent and received records, without the attachment payload."""
        records = self.transport.list_for_user(session.user_id, session.profile.email)
        return [
            {
                **r.model_dump(mode="json", exclude={"pdf_attachment"}),
                "has_attachment": bool(r.pdf_attachment),
            }
            for r in records
        ]

    def store(self, session: SessionContext, email: OutgoingEmail) -> EmailRecord:
        """Persist a message prepared (and possibly signed) by the caller."""
        email = email.model_copy(
            update={"user_id": session.user_id, "sender_email": session.profile.email}
        )
        return self.transport.send(email)

    def get_record(self, session: SessionContext, email_id: str) -> EmailRecord:
        return self._visible(session, email_id)

    def list_records(self, session: SessionContext) -> list[EmailRecord]:
        return self.transport.list_for_user(session.user_id, session.profile.email)

    async def attachment(
        self, session: SessionContext, email_id: str
    ) -> AttachmentDownload:
        self._visible(session, email_id)
        return await fetch_attachment(self.transport, email_id)

    def verify(self, session: SessionContext, email_id: str) -> VerificationStatus:
        record = self._visible(session, email_id)
        return verification_status(record, decode_attachment(record))

    def _pending(self, session: SessionContext, send_id: str) -> SendPipeline:
        pipeline = self.pending.get(send_id)
        if pipeline is None or pipeline.session.user_id != session.user_id:
            msg = f"No pending send {send_id}"
            raise NotFoundError(msg)
        return pipeline

    def _visible(self, session: SessionContext, email_id: str) -> EmailRecord:
        record = self.transport.get(email_id)
        if session.user_id != record.user_id and (
            session.profile.email != record.recipient_email
        ):
            msg = f"Email {email_id} not found"
            raise NotFoundError(msg)
        return record
