"""
Send pipeline: compose, optionally sign, then hand off to the transport.

    idle -> composing -> awaiting_signature -> signing -> transmitting -> idle

Students (and anyone sending without an attachment) skip the signature
stages. Blocking PDF and crypto work runs in worker threads; each stage is
awaited before the next one starts.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import datetime as dt
import logging
import uuid
from enum import Enum
from typing import TYPE_CHECKING, Callable

from legen.common.crypto import generate_key_pair, verify
from legen.common.exceptions import (
    LetterValidationError,
    MalformedRecordError,
    PipelineBusyError,
    PipelineStateError,
    TransportError,
    ValidationError,
)
from legen.common.models import (
    AttachmentDownload,
    OutgoingEmail,
    SignedDocument,
    VerificationStatus,
)
from legen.documents import stamp

if TYPE_CHECKING:
    from legen.common.interfaces import IMailTransport
    from legen.common.models import (
        EmailDraft,
        EmailRecord,
        SessionContext,
        SignatureRecord,
    )

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
PDF_MAGIC = b"%PDF"


class PipelineState(str, Enum):
    IDLE = "idle"
    COMPOSING = "composing"
    AWAITING_SIGNATURE = "awaiting_signature"
    SIGNING = "signing"
    TRANSMITTING = "transmitting"


BUSY_STATES = (PipelineState.SIGNING, PipelineState.TRANSMITTING)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def validate_draft(draft: EmailDraft) -> None:
    """Raise LetterValidationError unless the draft can be sent."""
    if not draft.recipient_email.strip():
        msg = "Recipient email is required."
        raise LetterValidationError(msg)
    if not draft.subject.strip():
        msg = "Subject is required."
        raise LetterValidationError(msg)
    if not draft.message.strip():
        msg = "Message is required."
        raise LetterValidationError(msg)
    if draft.attachment is not None:
        content_type = draft.attachment_content_type
        if content_type not in (None, PDF_CONTENT_TYPE) or not draft.attachment.startswith(
            PDF_MAGIC
        ):
            msg = "Only PDF files are allowed."
            raise LetterValidationError(msg)


class SendPipeline:
    """One outgoing message and the stages it passes through."""

    def __init__(
        self,
        session: SessionContext,
        draft: EmailDraft,
        transport: IMailTransport,
        clock: Callable[[], dt.datetime] = _utcnow,
        send_id: str | None = None,
    ):
        self.session = session
        self.draft = draft
        self.transport = transport
        self.clock = clock
        self.send_id = send_id or str(uuid.uuid4())
        self.state = PipelineState.IDLE
        self.submitted_at: dt.datetime | None = None
        self.last_error: str | None = None
        self.result: EmailRecord | None = None

    @property
    def requires_signature(self) -> bool:
        return self.session.profile.is_signer and self.draft.attachment is not None

    async def submit(self) -> EmailRecord | None:
        """Validate and send, or stop at awaiting_signature (returns None)."""
        if self.state in BUSY_STATES:
            msg = f"Send {self.send_id} is already {self.state.value}"
            raise PipelineBusyError(msg)
        if self.state is PipelineState.AWAITING_SIGNATURE:
            msg = f"Send {self.send_id} is waiting for a signature"
            raise PipelineStateError(msg)

        validate_draft(self.draft)
        self.state = PipelineState.COMPOSING
        self.submitted_at = self.clock()
        self.last_error = None

        if self.requires_signature:
            self.state = PipelineState.AWAITING_SIGNATURE
            logger.info("Send %s awaiting signature", self.send_id)
            return None

        document = (
            SignedDocument(document_bytes=self.draft.attachment)
            if self.draft.attachment is not None
            else None
        )
        return await self._transmit(document)

    async def provide_signature(self, signature: SignatureRecord) -> EmailRecord:
        """Stamp, sign and transmit. Only valid while awaiting a signature."""
        if self.state in BUSY_STATES:
            msg = f"Send {self.send_id} is already {self.state.value}"
            raise PipelineBusyError(msg)
        if self.state is not PipelineState.AWAITING_SIGNATURE:
            msg = f"Send {self.send_id} is not waiting for a signature"
            raise PipelineStateError(msg)

        self.state = PipelineState.SIGNING
        try:
            document = await asyncio.to_thread(self._sign, signature)
        except Exception:
            # Nothing was transmitted; the caller may start over
            self.state = PipelineState.IDLE
            logger.exception("Signing failed for send %s", self.send_id)
            raise
        return await self._transmit(document)

    def cancel(self) -> None:
        """Abandon the send while it waits for a signature."""
        if self.state in BUSY_STATES:
            msg = f"Send {self.send_id} can no longer be cancelled"
            raise PipelineBusyError(msg)
        if self.state is not PipelineState.AWAITING_SIGNATURE:
            msg = f"Send {self.send_id} is not waiting for a signature"
            raise PipelineStateError(msg)
        self.state = PipelineState.IDLE
        logger.info("Send %s cancelled", self.send_id)

    def _sign(self, signature: SignatureRecord) -> SignedDocument:
        assert self.draft.attachment is not None
        stamped = stamp(self.draft.attachment, signature)
        key_pair = generate_key_pair()
        digital_signature = key_pair.sign(stamped)
        logger.info(
            "Signed attachment for send %s (%d bytes)", self.send_id, len(stamped)
        )
        return SignedDocument(
            document_bytes=stamped,
            signature_record=signature,
            digital_signature=digital_signature,
            public_key=key_pair.public_key,
        )

    async def _transmit(self, document: SignedDocument | None) -> EmailRecord:
        self.state = PipelineState.TRANSMITTING
        profile = self.session.profile
        outgoing = OutgoingEmail(
            sender_email=profile.email,
            recipient_email=self.draft.recipient_email.strip(),
            subject=self.draft.subject,
            message=self.draft.message,
            user_id=self.session.user_id,
            file_bytes=document.document_bytes if document else None,
            file_name=self.draft.attachment_name if document else None,
            digital_signature=document.digital_signature if document else None,
            public_key=document.public_key if document else None,
        )
        try:
            record = await asyncio.to_thread(self.transport.send, outgoing)
        except Exception as err:
            # The draft stays on the pipeline for a retry
            self.last_error = str(err)
            self.state = PipelineState.IDLE
            logger.warning("Send %s failed: %s", self.send_id, err)
            if isinstance(err, ValidationError):
                raise
            msg = f"Mail transport failed: {err}"
            raise TransportError(msg) from err
        self.state = PipelineState.IDLE
        self.result = record
        logger.info("Send %s delivered as email %s", self.send_id, record.id)
        return record


def decode_attachment(record: EmailRecord) -> bytes:
    """Attachment bytes of a stored record."""
    if not record.pdf_attachment:
        msg = "No attachment found."
        raise MalformedRecordError(msg)
    try:
        return base64.b64decode(record.pdf_attachment, validate=True)
    except (binascii.Error, ValueError) as err:
        msg = "No attachment found."
        raise MalformedRecordError(msg) from err


def verification_status(record: EmailRecord, document_bytes: bytes) -> VerificationStatus:
    if not record.digital_signature and not record.public_key:
        return VerificationStatus.ABSENT
    if not record.digital_signature or not record.public_key:
        logger.warning("Email %s carries half a signature", record.id)
        return VerificationStatus.INVALID
    if verify(document_bytes, record.digital_signature, record.public_key):
        return VerificationStatus.VALID
    return VerificationStatus.INVALID


async def fetch_attachment(
    transport: IMailTransport, email_id: str
) -> AttachmentDownload:
    """Fetch a stored attachment and check its signature against its bytes."""
    record = await asyncio.to_thread(transport.get, email_id)
    document_bytes = decode_attachment(record)
    status = await asyncio.to_thread(verification_status, record, document_bytes)
    logger.info("Attachment of email %s verified: %s", email_id, status.value)
    return AttachmentDownload(
        document_bytes=document_bytes,
        filename=record.pdf_name or "document.pdf",
        status=status,
    )
