import asyncio
import base64
import threading

import pytest

from legen.common.exceptions import (
    LetterValidationError,
    MalformedRecordError,
    NotFoundError,
    PipelineBusyError,
    PipelineStateError,
    TransportError,
)
from legen.common.models import (
    EmailDraft,
    OutgoingEmail,
    SessionContext,
    VerificationStatus,
)
from legen.server.persistence import JsonMailStore
from legen.server.pipeline import (
    PipelineState,
    SendPipeline,
    fetch_attachment,
    verification_status,
)


class FailingStore(JsonMailStore):
    def send(self, email: OutgoingEmail):
        msg = "mail store unavailable"
        raise TransportError(msg)


class MissingEndpointStore(JsonMailStore):
    broken = True

    def send(self, email: OutgoingEmail):
        if self.broken:
            msg = "no such endpoint"
            raise NotFoundError(msg)
        return super().send(email)


class CrashingStore(JsonMailStore):
    def send(self, email: OutgoingEmail):
        msg = "bad reply"
        raise ValueError(msg)


class BlockingStore(JsonMailStore):
    def __init__(self, file_path, release: threading.Event):
        super().__init__(file_path)
        self.release = release

    def send(self, email: OutgoingEmail):
        self.release.wait(timeout=5)
        return super().send(email)


@pytest.fixture
def store(tmp_path) -> JsonMailStore:
    return JsonMailStore(tmp_path / "emails.json")


def _draft(attachment: bytes | None = None) -> EmailDraft:
    return EmailDraft(
        recipient_email="meena@mepcoeng.ac.in",
        subject="Leave request",
        message="Please find my letter attached.",
        attachment=attachment,
        attachment_name="leave.pdf" if attachment else None,
        attachment_content_type="application/pdf" if attachment else None,
    )


def _session(profile) -> SessionContext:
    return SessionContext(user_id=profile.id, profile=profile)


def test_student_send_skips_signing(store, student, sample_pdf) -> None:
    pipeline = SendPipeline(_session(student), _draft(sample_pdf), store)
    record = asyncio.run(pipeline.submit())

    assert pipeline.state is PipelineState.IDLE
    assert record is not None
    assert record.digital_signature is None
    assert base64.b64decode(record.pdf_attachment) == sample_pdf
    assert record.sender_email == "asha@mepcoeng.ac.in"

    download = asyncio.run(fetch_attachment(store, record.id))
    assert download.status is VerificationStatus.ABSENT
    assert download.status.label == "No digital signature to verify"


def test_staff_without_attachment_sends_directly(store, staff) -> None:
    record = asyncio.run(SendPipeline(_session(staff), _draft(), store).submit())
    assert record is not None
    assert record.pdf_attachment is None


def test_staff_send_is_stamped_and_signed(
    store, staff, sample_pdf, signature_record
) -> None:
    pipeline = SendPipeline(_session(staff), _draft(sample_pdf), store)

    assert asyncio.run(pipeline.submit()) is None
    assert pipeline.state is PipelineState.AWAITING_SIGNATURE
    assert store.emails == []

    record = asyncio.run(pipeline.provide_signature(signature_record))
    assert pipeline.state is PipelineState.IDLE
    assert record.digital_signature
    assert record.public_key
    assert base64.b64decode(record.pdf_attachment) != sample_pdf

    download = asyncio.run(fetch_attachment(store, record.id))
    assert download.status is VerificationStatus.VALID
    assert download.status.label == "Valid"
    assert download.filename == "leave.pdf"


def test_tampered_attachment_is_invalid(
    store, staff, sample_pdf, signature_record
) -> None:
    pipeline = SendPipeline(_session(staff), _draft(sample_pdf), store)
    asyncio.run(pipeline.submit())
    record = asyncio.run(pipeline.provide_signature(signature_record))

    stored = store.get(record.id)
    data = bytearray(base64.b64decode(stored.pdf_attachment))
    data[len(data) // 2] ^= 0x01
    stored.pdf_attachment = base64.b64encode(bytes(data)).decode()

    download = asyncio.run(fetch_attachment(store, record.id))
    assert download.status is VerificationStatus.INVALID


def test_missing_attachment_is_malformed(store, student) -> None:
    record = asyncio.run(SendPipeline(_session(student), _draft(), store).submit())
    with pytest.raises(MalformedRecordError, match="No attachment found."):
        asyncio.run(fetch_attachment(store, record.id))


def test_undecodable_attachment_is_malformed(store, student, sample_pdf) -> None:
    record = asyncio.run(
        SendPipeline(_session(student), _draft(sample_pdf), store).submit()
    )
    store.get(record.id).pdf_attachment = "%%% not base64 %%%"
    with pytest.raises(MalformedRecordError):
        asyncio.run(fetch_attachment(store, record.id))


def test_cancel_persists_nothing(store, staff, sample_pdf) -> None:
    pipeline = SendPipeline(_session(staff), _draft(sample_pdf), store)
    asyncio.run(pipeline.submit())
    pipeline.cancel()

    assert pipeline.state is PipelineState.IDLE
    assert store.emails == []
    with pytest.raises(PipelineStateError):
        pipeline.cancel()


def test_signature_only_accepted_while_awaiting(
    store, staff, signature_record
) -> None:
    pipeline = SendPipeline(_session(staff), _draft(), store)
    with pytest.raises(PipelineStateError):
        asyncio.run(pipeline.provide_signature(signature_record))


def test_transport_failure_keeps_the_draft(tmp_path, student, sample_pdf) -> None:
    draft = _draft(sample_pdf)
    pipeline = SendPipeline(
        _session(student), draft, FailingStore(tmp_path / "emails.json")
    )

    with pytest.raises(TransportError):
        asyncio.run(pipeline.submit())

    assert pipeline.state is PipelineState.IDLE
    assert pipeline.draft == draft
    assert pipeline.last_error == "mail store unavailable"
    assert pipeline.result is None


def test_any_transport_error_returns_to_idle(
    tmp_path, staff, sample_pdf, signature_record
) -> None:
    store = MissingEndpointStore(tmp_path / "emails.json")
    pipeline = SendPipeline(_session(staff), _draft(sample_pdf), store)
    asyncio.run(pipeline.submit())

    with pytest.raises(NotFoundError):
        asyncio.run(pipeline.provide_signature(signature_record))
    assert pipeline.state is PipelineState.IDLE
    assert pipeline.last_error == "no such endpoint"

    # Not stuck: a fresh submit goes through again
    store.broken = False
    asyncio.run(pipeline.submit())
    assert pipeline.state is PipelineState.AWAITING_SIGNATURE
    record = asyncio.run(pipeline.provide_signature(signature_record))
    assert record.digital_signature is not None


def test_unexpected_transport_exceptions_become_transport_errors(
    tmp_path, student
) -> None:
    store = CrashingStore(tmp_path / "emails.json")
    pipeline = SendPipeline(_session(student), _draft(), store)

    with pytest.raises(TransportError, match="bad reply"):
        asyncio.run(pipeline.submit())
    assert pipeline.state is PipelineState.IDLE
    assert pipeline.last_error == "bad reply"


def test_half_signature_is_invalid(store, student, sample_pdf) -> None:
    record = asyncio.run(
        SendPipeline(_session(student), _draft(sample_pdf), store).submit()
    )
    assert record is not None
    key_only = record.model_copy(update={"public_key": "AAAA"})
    signature_only = record.model_copy(update={"digital_signature": "AAAA"})

    assert verification_status(key_only, sample_pdf) is VerificationStatus.INVALID
    assert verification_status(signature_only, sample_pdf) is VerificationStatus.INVALID
    assert verification_status(record, sample_pdf) is VerificationStatus.ABSENT


def test_signing_failure_transmits_nothing(store, staff, signature_record) -> None:
    broken = b"%PDF-1.4 this is not really a pdf"
    pipeline = SendPipeline(_session(staff), _draft(broken), store)
    asyncio.run(pipeline.submit())

    with pytest.raises(MalformedRecordError):
        asyncio.run(pipeline.provide_signature(signature_record))
    assert pipeline.state is PipelineState.IDLE
    assert store.emails == []


def test_resubmit_while_transmitting_is_rejected(tmp_path, student) -> None:
    release = threading.Event()
    store = BlockingStore(tmp_path / "emails.json", release)
    pipeline = SendPipeline(_session(student), _draft(), store)

    async def scenario():
        task = asyncio.create_task(pipeline.submit())
        await asyncio.sleep(0)
        assert pipeline.state is PipelineState.TRANSMITTING
        with pytest.raises(PipelineBusyError):
            await pipeline.submit()
        with pytest.raises(PipelineBusyError):
            pipeline.cancel()
        release.set()
        return await task

    record = asyncio.run(scenario())
    assert record is not None
    assert len(store.emails) == 1


@pytest.mark.parametrize(
    ("changes", "message"),
    [
        ({"recipient_email": " "}, "Recipient"),
        ({"subject": ""}, "Subject"),
        ({"message": ""}, "Message"),
        ({"attachment": b"plain text", "attachment_content_type": "text/plain"}, "PDF"),
        ({"attachment": b"GIF89a", "attachment_content_type": "application/pdf"}, "PDF"),
    ],
)
def test_invalid_drafts_are_rejected(store, student, changes, message) -> None:
    draft = _draft().model_copy(update=changes)
    pipeline = SendPipeline(_session(student), draft, store)

    with pytest.raises(LetterValidationError, match=message):
        asyncio.run(pipeline.submit())
    assert pipeline.state is PipelineState.IDLE
    assert store.emails == []
