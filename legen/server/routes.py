"""
Routes for the letter server.
"""

from typing import Any
from urllib.parse import quote

from fastapi import FastAPI, File, Form, Header, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError

from legen.common.config import Config
from legen.common.exceptions import ValidationError
from legen.common.models import (
    EmailDraft,
    EmailRecord,
    LetterHistoryEntry,
    LetterSubmission,
    OutgoingEmail,
    RegistrationForm,
    SignatureInput,
    UserProfile,
)

from .services import LetterService

PDF_MEDIA_TYPE = "application/pdf"
DEFAULT_DOWNLOAD_NAME = "document.pdf"


def _content_disposition(filename: str) -> str:
    """Attachment header safe for any filename (RFC 6266 / RFC 5987)."""
    quoted = quote(filename)
    if quoted == filename:
        return f'attachment; filename="{filename}"'
    # Headers are Latin-1; old clients read the plain ASCII name
    fallback = "".join(
        c for c in filename if c.isascii() and c.isprintable() and c not in '"\\'
    )
    if not fallback.rsplit(".", 1)[0].strip(" ._-"):
        fallback = DEFAULT_DOWNLOAD_NAME
    return f"attachment; filename=\"{fallback}\"; filename*=utf-8''{quoted}"


def _pdf_response(document: bytes, filename: str, **headers: str) -> Response:
    return Response(
        content=document,
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": _content_disposition(filename), **headers},
    )


class LetterRoutes:
    """Handles FastAPI routes for the letter server."""

    def __init__(self, service: LetterService, config: Config):
        self.service = service
        self.config = config

    def setup_routes(self, app: FastAPI) -> None:
        """Setup API routes on the FastAPI app."""

        app.get("/health")(self.health)
        app.get("/recipients")(self.recipients)
        app.post("/register")(self.register)
        app.post("/letters")(self.generate_letter)
        app.get("/letters")(self.list_letters)
        app.get("/letters/download/{letter_id}")(self.download_letter)
        app.post("/emails")(self.send_email)
        app.post("/emails/pending/{send_id}/signature")(self.sign_pending)
        app.delete("/emails/pending/{send_id}")(self.cancel_pending)
        app.get("/emails")(self.list_emails)
        app.get("/emails/{email_id}/attachment")(self.attachment)
        app.get("/emails/{email_id}/verify")(self.verify_email)
        app.post("/records")(self.store_record)
        app.get("/records")(self.list_records)
        app.get("/records/{email_id}")(self.get_record)

    async def health(self) -> dict[str, Any]:
        """Handle /health endpoint."""
        return self.service.health()

    async def recipients(self, exclude_role: str | None = None) -> list[UserProfile]:
        """Handle /recipients endpoint."""
        return self.service.recipients(exclude_role)

    async def register(
        self,
        name: str = Form(""),
        email: str = Form(""),
        college_mail_id: str = Form(""),
        roles: list[str] = Form([]),
        department: str | None = Form(None),
        dept_and_section: str | None = Form(None),
        roll_number: str | None = Form(None),
        is_hosteller: bool = Form(False),
        hostel_name: str | None = Form(None),
        id_card: UploadFile | None = File(None),
    ) -> UserProfile:
        """Handle /register endpoint."""
        form = RegistrationForm(
            name=name,
            email=email,
            college_mail_id=college_mail_id,
            roles=roles,
            department=department,
            dept_and_section=dept_and_section,
            roll_number=roll_number,
            is_hosteller=is_hosteller,
            hostel_name=hostel_name,
        )
        image = await id_card.read() if id_card is not None else b""
        try:
            return await self.service.register(form, image)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e

    async def generate_letter(
        self, submission: LetterSubmission, x_user_id: str | None = Header(None)
    ) -> Response:
        """Handle POST /letters endpoint."""
        try:
            session = self.service.resolve_session(x_user_id)
            entry, document = await self.service.generate_letter(session, submission)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e
        return _pdf_response(document, entry.name, **{"X-Letter-Id": entry.id})

    async def list_letters(
        self, x_user_id: str | None = Header(None)
    ) -> list[LetterHistoryEntry]:
        """Handle GET /letters endpoint."""
        try:
            session = self.service.resolve_session(x_user_id)
            return self.service.list_letters(session)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e

    async def download_letter(
        self, letter_id: str, x_user_id: str | None = Header(None)
    ) -> Response:
        """Handle /letters/download/{letter_id} endpoint."""
        try:
            session = self.service.resolve_session(x_user_id)
            entry, document = await self.service.download_letter(session, letter_id)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e
        return _pdf_response(document, entry.name)

    async def send_email(
        self,
        to: str = Form(""),
        subject: str = Form(""),
        message: str = Form(""),
        file: UploadFile | None = File(None),
        x_user_id: str | None = Header(None),
    ) -> Any:
        """Handle POST /emails endpoint."""
        try:
            session = self.service.resolve_session(x_user_id)
            attachment = await file.read() if file is not None else None
            if attachment is not None and len(attachment) > self.config.MAX_ATTACHMENT_BYTES:
                msg = "Attachment is too large."
                raise ValidationError(msg, 413)
            draft = EmailDraft(
                recipient_email=to,
                subject=subject,
                message=message,
                attachment=attachment,
                attachment_name=file.filename if file is not None else None,
                attachment_content_type=file.content_type if file is not None else None,
            )
            pipeline, record = await self.service.send_email(session, draft)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e

        if record is None:
            return JSONResponse(
                status_code=202,
                content={
                    "status": pipeline.state.value,
                    "send_id": pipeline.send_id,
                },
            )
        return {
            "status": "sent",
            "email": record.model_dump(mode="json", exclude={"pdf_attachment"}),
        }

    async def sign_pending(
        self,
        send_id: str,
        signature: SignatureInput,
        x_user_id: str | None = Header(None),
    ) -> dict[str, Any]:
        """Handle /emails/pending/{send_id}/signature endpoint."""
        try:
            session = self.service.resolve_session(x_user_id)
            record = await self.service.sign_pending(session, send_id, signature)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e
        return {
            "status": "sent",
            "email": record.model_dump(mode="json", exclude={"pdf_attachment"}),
        }

    async def cancel_pending(
        self, send_id: str, x_user_id: str | None = Header(None)
    ) -> dict[str, str]:
        """Handle DELETE /emails/pending/{send_id} endpoint."""
        try:
            session = self.service.resolve_session(x_user_id)
            self.service.cancel_pending(session, send_id)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e
        return {"status": "cancelled"}

    async def list_emails(
        self, x_user_id: str | None = Header(None)
    ) -> list[dict[str, Any]]:
        """Handle GET /emails endpoint."""
        try:
            session = self.service.resolve_session(x_user_id)
            return self.service.list_emails(session)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e

    async def attachment(
        self, email_id: str, x_user_id: str | None = Header(None)
    ) -> Response:
        """Handle /emails/{email_id}/attachment endpoint."""
        try:
            session = self.service.resolve_session(x_user_id)
            download = await self.service.attachment(session, email_id)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e
        return _pdf_response(
            download.document_bytes,
            download.filename,
            **{"X-Signature-Status": download.status.value},
        )

    async def verify_email(
        self, email_id: str, x_user_id: str | None = Header(None)
    ) -> dict[str, str]:
        """Handle /emails/{email_id}/verify endpoint."""
        try:
            session = self.service.resolve_session(x_user_id)
            status = await self.service.verify_email(session, email_id)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e
        return {"status": status.value, "label": status.label}

    async def store_record(
        self, request: Request, x_user_id: str | None = Header(None)
    ) -> EmailRecord:
        """Handle POST /records endpoint (remote transport)."""
        try:
            session = self.service.resolve_session(x_user_id)
            # JSON mode so the base64 attachment decodes to bytes
            email = OutgoingEmail.model_validate_json(await request.body())
            return await self.service.store_record(session, email)
        except PydanticValidationError as e:
            raise HTTPException(422, str(e)) from e
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e

    async def list_records(
        self, x_user_id: str | None = Header(None)
    ) -> list[EmailRecord]:
        """Handle GET /records endpoint."""
        try:
            session = self.service.resolve_session(x_user_id)
            return self.service.list_records(session)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e

    async def get_record(
        self, email_id: str, x_user_id: str | None = Header(None)
    ) -> EmailRecord:
        """Handle GET /records/{email_id} endpoint."""
        try:
            session = self.service.resolve_session(x_user_id)
            return self.service.get_record(session, email_id)
        except ValidationError as e:
            raise HTTPException(e.status_code, str(e)) from e
