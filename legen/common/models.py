"""
Pydantic models for letters, signatures, stored records and request bodies.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError

from legen.common.exceptions import LetterValidationError

STUDENT_ROLE = "student"
HOD_ROLE = "hod"


class LetterType(str, Enum):
    LEAVE = "leave"
    INTERNSHIP = "internship"
    LAPTOP = "laptop"
    SYMPOSIUM = "symposium"
    APOLOGY = "apology"
    INDUSTRIAL_VISIT = "iv"


class UserProfile(BaseModel):
    """A directory entry: a sender when composing, a recipient when addressed."""

    id: str
    name: str
    email: str  # college mail id; used as the sender address
    roles: list[str] = Field(default_factory=list)
    personal_email: str | None = None
    department: str | None = None
    dept_and_section: str | None = None
    roll_number: str | None = None
    hostel_name: str | None = None

    @property
    def is_student(self) -> bool:
        return STUDENT_ROLE in self.roles

    @property
    def is_hod(self) -> bool:
        return HOD_ROLE in self.roles

    @property
    def is_signer(self) -> bool:
        """Staff (anyone who is not a student) sign their attachments."""
        return not self.is_student


class SessionContext(BaseModel):
    """Identity of the caller, passed explicitly into every pipeline entry point."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    profile: UserProfile


# Letter variants


class _LetterBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    recipient_id: str = Field(min_length=1)


class _DateRangeLetter(_LetterBase):
    start_date: dt.date
    end_date: dt.date

    @model_validator(mode="after")
    def _check_range(self) -> _DateRangeLetter:
        if self.end_date < self.start_date:
            msg = "end_date must not be before start_date"
            raise ValueError(msg)
        return self


class LeaveLetter(_DateRangeLetter):
    letter_type: Literal[LetterType.LEAVE] = LetterType.LEAVE
    reason: str = Field(min_length=1)

    @property
    def number_of_days(self) -> int:
        # Whole calendar dates, so ceil((end - start) / 1 day) is just .days
        return (self.end_date - self.start_date).days + 1


class InternshipLetter(_DateRangeLetter):
    letter_type: Literal[LetterType.INTERNSHIP] = LetterType.INTERNSHIP
    company_name: str = Field(min_length=1)
    company_location: str = Field(min_length=1)


class LaptopLetter(_DateRangeLetter):
    letter_type: Literal[LetterType.LAPTOP] = LetterType.LAPTOP


class SymposiumLetter(_LetterBase):
    letter_type: Literal[LetterType.SYMPOSIUM] = LetterType.SYMPOSIUM
    college_name: str = Field(min_length=1)
    college_location: str = Field(min_length=1)
    date: dt.date


class ApologyLetter(_LetterBase):
    letter_type: Literal[LetterType.APOLOGY] = LetterType.APOLOGY
    reason: str = Field(min_length=1)


class IndustrialVisitLetter(_DateRangeLetter):
    letter_type: Literal[LetterType.INDUSTRIAL_VISIT] = LetterType.INDUSTRIAL_VISIT
    location: str = Field(min_length=1)


LetterRequest = Annotated[
    Union[
        LeaveLetter,
        InternshipLetter,
        LaptopLetter,
        SymposiumLetter,
        ApologyLetter,
        IndustrialVisitLetter,
    ],
    Field(discriminator="letter_type"),
]

LETTER_MODELS: dict[LetterType, type[_LetterBase]] = {
    LetterType.LEAVE: LeaveLetter,
    LetterType.INTERNSHIP: InternshipLetter,
    LetterType.LAPTOP: LaptopLetter,
    LetterType.SYMPOSIUM: SymposiumLetter,
    LetterType.APOLOGY: ApologyLetter,
    LetterType.INDUSTRIAL_VISIT: IndustrialVisitLetter,
}

_letter_adapter: TypeAdapter[Any] = TypeAdapter(LetterRequest)


def required_fields(letter_type: LetterType) -> list[str]:
    """Form fields a letter type needs besides the recipient."""
    return [
        name
        for name in LETTER_MODELS[letter_type].model_fields
        if name not in ("letter_type", "recipient_id")
    ]


class LetterForm(BaseModel):
    """Flat letter form as submitted by the web client."""

    recipient_id: str = ""
    letter_type: str = LetterType.LEAVE.value
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    reason: str | None = None
    company_name: str | None = None
    company_location: str | None = None
    college_name: str | None = None
    college_location: str | None = None
    date: dt.date | None = None
    location: str | None = None

    def to_request(self) -> LetterRequest:
        """Convert to the typed letter variant, enforcing its required fields."""
        try:
            letter_type = LetterType(self.letter_type)
        except ValueError as err:
            msg = f"Unsupported letter type: {self.letter_type}"
            raise LetterValidationError(msg) from err

        if not self.recipient_id:
            msg = "Recipient is required."
            raise LetterValidationError(msg)

        fields = required_fields(letter_type)
        missing = [name for name in fields if getattr(self, name) in (None, "")]
        if missing:
            msg = (
                f"Missing required field(s) for {letter_type.value} letter: "
                f"{', '.join(missing)}"
            )
            raise LetterValidationError(msg)

        data: dict[str, Any] = {
            "letter_type": letter_type,
            "recipient_id": self.recipient_id,
        }
        data.update({name: getattr(self, name) for name in fields})
        try:
            return _letter_adapter.validate_python(data)
        except PydanticValidationError as err:
            first = err.errors()[0]
            msg = f"Invalid {letter_type.value} letter: {first['msg']}"
            raise LetterValidationError(msg) from err


class RenderedLetter(BaseModel):
    model_config = ConfigDict(frozen=True)

    body_text: str
    suggested_filename: str
    subject: str | None = None


# Signatures


class SignatureRecord(BaseModel):
    """Bitmap signature plus who signed and when. Never mutated after capture."""

    model_config = ConfigDict(
        frozen=True, ser_json_bytes="base64", val_json_bytes="base64"
    )

    image_png: bytes
    signed_by_name: str
    signed_by_id: str
    signed_at: dt.datetime


class SignedDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    document_bytes: bytes
    signature_record: SignatureRecord | None = None
    digital_signature: str | None = None
    public_key: str | None = None

    @model_validator(mode="after")
    def _signature_pairing(self) -> SignedDocument:
        if (self.digital_signature is None) != (self.public_key is None):
            msg = "digital_signature and public_key must be given together"
            raise ValueError(msg)
        return self

    @property
    def is_signed(self) -> bool:
        return self.digital_signature is not None


class VerificationStatus(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    ABSENT = "absent"

    @property
    def label(self) -> str:
        if self is VerificationStatus.ABSENT:
            return "No digital signature to verify"
        return self.value.capitalize()


# Stored records


class LetterHistoryEntry(BaseModel):
    id: str
    user_id: str
    name: str
    created_at: dt.datetime
    form_data: LetterForm
    edited_content: str | None = None
    signature: SignatureRecord | None = None
    document_size: int


class OutgoingEmail(BaseModel):
    """Payload handed to the transport when persisting a message."""

    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    sender_email: str
    recipient_email: str
    subject: str
    message: str
    user_id: str
    file_bytes: bytes | None = None
    file_name: str | None = None
    digital_signature: str | None = None
    public_key: str | None = None


class EmailRecord(BaseModel):
    id: str
    sender_email: str
    recipient_email: str
    subject: str
    message: str
    user_id: str
    created_at: dt.datetime
    pdf_name: str | None = None
    pdf_attachment: str | None = None  # base64
    digital_signature: str | None = None
    public_key: str | None = None


class EmailDraft(BaseModel):
    """Composed message fields; kept intact across a failed send for retry."""

    recipient_email: str = ""
    subject: str = ""
    message: str = ""
    attachment: bytes | None = None
    attachment_name: str | None = None
    attachment_content_type: str | None = None


# Request bodies


class SignatureInput(BaseModel):
    """A drawn signature: recorded pointer strokes or a PNG data URL."""

    strokes: list[list[tuple[float, float]]] | None = None
    image: str | None = None
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _one_source(self) -> SignatureInput:
        if (self.strokes is None) == (self.image is None):
            msg = "provide exactly one of strokes or image"
            raise ValueError(msg)
        return self


class LetterSubmission(BaseModel):
    form: LetterForm
    edited_content: str | None = None
    signature: SignatureInput | None = None


class RegistrationForm(BaseModel):
    name: str
    email: str
    college_mail_id: str
    roles: list[str] = Field(default_factory=list)
    department: str | None = None
    dept_and_section: str | None = None
    roll_number: str | None = None
    is_hosteller: bool = False
    hostel_name: str | None = None


class ClientConfig(BaseModel):
    server_url: str | None = None
    user_id: str | None = None
    timeout: float | None = None
    log_level: int | None = None


class AttachmentDownload(BaseModel):
    """A fetched attachment together with its signature check outcome."""

    document_bytes: bytes
    filename: str
    status: VerificationStatus
