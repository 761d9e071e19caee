"""
Interfaces and protocols for dependency injection.
"""

from __future__ import annotations

from typing import Protocol

from legen.common.models import (
    EmailRecord,
    LetterHistoryEntry,
    OutgoingEmail,
    UserProfile,
)


class IMailTransport(Protocol):
    """Persists email-like records and fetches them back."""

    def send(self, email: OutgoingEmail) -> EmailRecord: ...

    def get(self, email_id: str) -> EmailRecord: ...

    def list_for_user(self, user_id: str, email: str) -> list[EmailRecord]: ...


class ILetterStore(Protocol):
    """Persists generated letters for the history view."""

    def add(self, entry: LetterHistoryEntry) -> LetterHistoryEntry: ...

    def get(self, letter_id: str) -> LetterHistoryEntry: ...

    def list_for_user(self, user_id: str) -> list[LetterHistoryEntry]: ...


class IRecipientDirectory(Protocol):
    """Users the service knows about, in registration order."""

    def list_users(self, exclude_role: str | None = None) -> list[UserProfile]: ...

    def find(self, user_id: str) -> UserProfile | None: ...

    def add(self, profile: UserProfile) -> UserProfile: ...


class ITextExtractor(Protocol):
    """Extracts printed text from an image (OCR)."""

    def extract_text(self, image_bytes: bytes) -> str: ...
