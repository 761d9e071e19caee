"""
Data persistence utilities.

Letters, email records and the user directory are kept in JSON files. Bytes
fields are stored base64-encoded.
"""

from __future__ import annotations

import base64
import binascii
import datetime as dt
import json
import logging
import threading
import uuid
from pathlib import Path  # noqa: TC003
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from legen.common.exceptions import (
    MalformedRecordError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from legen.common.models import (
    EmailRecord,
    LetterHistoryEntry,
    OutgoingEmail,
    SignatureRecord,
    UserProfile,
)

logger = logging.getLogger(__name__)


class DataPersistence:
    """Handles loading and saving persistent data."""

    @staticmethod
    def serialize_signature(signature: SignatureRecord) -> dict[str, Any]:
        """Serialize SignatureRecord to JSON-serializable format."""
        data = signature.model_dump(mode="json", exclude={"image_png"})
        data["image_png"] = base64.b64encode(signature.image_png).decode("utf-8")
        return data

    @staticmethod
    def deserialize_signature(data: dict[str, Any]) -> SignatureRecord:
        """Deserialize SignatureRecord from JSON format."""
        try:
            image = base64.b64decode(data["image_png"], validate=True)
        except (KeyError, TypeError, binascii.Error) as err:
            msg = "Stored signature image is missing or not base64"
            raise MalformedRecordError(msg) from err
        return SignatureRecord(**{**data, "image_png": image})

    @staticmethod
    def _serialize_letter(entry: LetterHistoryEntry) -> dict[str, Any]:
        data = entry.model_dump(mode="json", exclude={"signature"})
        data["signature"] = (
            DataPersistence.serialize_signature(entry.signature)
            if entry.signature is not None
            else None
        )
        return data

    @staticmethod
    def _deserialize_letter(data: dict[str, Any]) -> LetterHistoryEntry:
        signature = data.get("signature")
        if signature is not None:
            data = {**data, "signature": DataPersistence.deserialize_signature(signature)}
        return LetterHistoryEntry(**data)

    @staticmethod
    def load_json(file_path: Path) -> list[dict[str, Any]]:
        """Load a list of records from file."""
        try:
            with file_path.open() as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except json.JSONDecodeError as err:
            msg = f"Data file {file_path} is corrupt"
            raise MalformedRecordError(msg) from err
        if not isinstance(data, list):
            msg = f"Data file {file_path} does not hold a list"
            raise MalformedRecordError(msg)
        return data

    @staticmethod
    def save_json(file_path: Path, records: list[dict[str, Any]]) -> None:
        """Save a list of records to file."""
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with file_path.open("w") as f:
                json.dump(records, f, indent=2)
        except OSError as err:
            msg = f"Could not write {file_path}: {err}"
            raise TransportError(msg) from err

    @staticmethod
    def load_letters(file_path: Path) -> list[LetterHistoryEntry]:
        try:
            return [
                DataPersistence._deserialize_letter(item)
                for item in DataPersistence.load_json(file_path)
            ]
        except PydanticValidationError as err:
            msg = f"Letter history in {file_path} is malformed"
            raise MalformedRecordError(msg) from err

    @staticmethod
    def save_letters(file_path: Path, letters: list[LetterHistoryEntry]) -> None:
        DataPersistence.save_json(
            file_path, [DataPersistence._serialize_letter(e) for e in letters]
        )

    @staticmethod
    def load_emails(file_path: Path) -> list[EmailRecord]:
        try:
            return [EmailRecord(**item) for item in DataPersistence.load_json(file_path)]
        except PydanticValidationError as err:
            msg = f"Email records in {file_path} are malformed"
            raise MalformedRecordError(msg) from err

    @staticmethod
    def save_emails(file_path: Path, emails: list[EmailRecord]) -> None:
        DataPersistence.save_json(file_path, [e.model_dump(mode="json") for e in emails])

    @staticmethod
    def load_profiles(file_path: Path) -> list[UserProfile]:
        try:
            return [UserProfile(**item) for item in DataPersistence.load_json(file_path)]
        except PydanticValidationError as err:
            msg = f"Directory in {file_path} is malformed"
            raise MalformedRecordError(msg) from err

    @staticmethod
    def save_profiles(file_path: Path, profiles: list[UserProfile]) -> None:
        DataPersistence.save_json(file_path, [p.model_dump(mode="json") for p in profiles])


class JsonLetterStore:
    """Letter history kept in a JSON file."""

    def __init__(self, file_path: Path):
        self.file_path = file_path
        self.letters: list[LetterHistoryEntry] = DataPersistence.load_letters(file_path)
        self._lock = threading.Lock()

    def add(self, entry: LetterHistoryEntry) -> LetterHistoryEntry:
        with self._lock:
            self.letters.append(entry)
            try:
                DataPersistence.save_letters(self.file_path, self.letters)
            except TransportError:
                self.letters.remove(entry)
                raise
        return entry

    def get(self, letter_id: str) -> LetterHistoryEntry:
        for entry in self.letters:
            if entry.id == letter_id:
                return entry
        msg = f"Letter {letter_id} not found"
        raise NotFoundError(msg)

    def list_for_user(self, user_id: str) -> list[LetterHistoryEntry]:
        entries = [e for e in self.letters if e.user_id == user_id]
        return sorted(entries, key=lambda e: e.created_at, reverse=True)


class JsonMailStore:
    """Mailbox records kept in a JSON file; implements IMailTransport."""

    def __init__(self, file_path: Path):
        self.file_path = file_path
        self.emails: list[EmailRecord] = DataPersistence.load_emails(file_path)
        # send() may run in worker threads
        self._lock = threading.Lock()

    def send(self, email: OutgoingEmail) -> EmailRecord:
        record = EmailRecord(
            id=str(uuid.uuid4()),
            sender_email=email.sender_email,
            recipient_email=email.recipient_email,
            subject=email.subject,
            message=email.message,
            user_id=email.user_id,
            created_at=dt.datetime.now(dt.timezone.utc),
            pdf_name=email.file_name,
            pdf_attachment=(
                base64.b64encode(email.file_bytes).decode("utf-8")
                if email.file_bytes is not None
                else None
            ),
            digital_signature=email.digital_signature,
            public_key=email.public_key,
        )
        with self._lock:
            self.emails.append(record)
            try:
                DataPersistence.save_emails(self.file_path, self.emails)
            except TransportError:
                self.emails.remove(record)
                raise
        logger.info("Stored email %s from %s", record.id, record.sender_email)
        return record

    def get(self, email_id: str) -> EmailRecord:
        for record in self.emails:
            if record.id == email_id:
                return record
        msg = f"Email {email_id} not found"
        raise NotFoundError(msg)

    def list_for_user(self, user_id: str, email: str) -> list[EmailRecord]:
        records = [
            r for r in self.emails if r.user_id == user_id or r.recipient_email == email
        ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)


class JsonRecipientDirectory:
    """Registered users kept in a JSON file, in registration order."""

    def __init__(self, file_path: Path):
        self.file_path = file_path
        self.profiles: list[UserProfile] = DataPersistence.load_profiles(file_path)
        self._lock = threading.Lock()

    def list_users(self, exclude_role: str | None = None) -> list[UserProfile]:
        if not exclude_role:
            return list(self.profiles)
        return [p for p in self.profiles if exclude_role not in p.roles]

    def find(self, user_id: str) -> UserProfile | None:
        return next((p for p in self.profiles if p.id == user_id), None)

    def find_by_email(self, email: str) -> UserProfile | None:
        return next((p for p in self.profiles if p.email == email), None)

    def add(self, profile: UserProfile) -> UserProfile:
        with self._lock:
            if self.find_by_email(profile.email) is not None:
                msg = f"User with email {profile.email} already exists"
                raise ValidationError(msg, 409)
            self.profiles.append(profile)
            try:
                DataPersistence.save_profiles(self.file_path, self.profiles)
            except TransportError:
                self.profiles.remove(profile)
                raise
        return profile
