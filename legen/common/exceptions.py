"""
Custom exceptions for the letter service.
"""

from __future__ import annotations


class ValidationError(Exception):
    """Exception for validation failures."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class LetterValidationError(ValidationError):
    """A letter form is missing a field its letter type requires."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 400)


class IdentityVerificationError(ValidationError):
    """Registration details or the ID card did not check out."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 400)


class NotFoundError(ValidationError):
    """Exception for unknown users, letters, emails or pending sends."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class PipelineStateError(ValidationError):
    """Exception for an operation the send pipeline cannot take right now."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class PipelineBusyError(PipelineStateError):
    """A send is already signing or transmitting."""


class MalformedRecordError(ValidationError):
    """Stored data or an uploaded document could not be decoded."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 422)


class SigningError(ValidationError):
    """Key generation or signing failed; the send is aborted."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 500)


class KeyAlreadyUsedError(SigningError):
    """A one-shot signing key was asked to sign a second time."""


class TransportError(ValidationError):
    """Persisting or fetching a record failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 502)
