"""
Configuration settings for the letter generation service.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path


class Config:
    """Central configuration class for all system settings."""

    def __init__(self) -> None:
        # Institution settings
        self.INSTITUTION_NAME: str = os.getenv(
            "LEGEN_INSTITUTION_NAME", "Mepco Schlenk Engineering College"
        )
        self.INSTITUTION_LOCATION: str = os.getenv(
            "LEGEN_INSTITUTION_LOCATION", "Sivakasi"
        )
        # Text an ID card must carry to be accepted at registration
        self.INSTITUTION_MARKER: str = os.getenv(
            "LEGEN_INSTITUTION_MARKER", "www.mepcoeng.ac.in"
        )
        self.COLLEGE_MAIL_DOMAIN: str = os.getenv(
            "LEGEN_COLLEGE_MAIL_DOMAIN", "mepcoeng.ac.in"
        )

        # Signature settings
        self.RSA_KEY_SIZE: int = 2048
        self.RSA_PUBLIC_EXPONENT: int = 65537
        self.PSS_SALT_LENGTH: int = 32  # bytes
        self.SIGNATURE_PAD_WIDTH: int = 500
        self.SIGNATURE_PAD_HEIGHT: int = 200
        self.SIGNATURE_STROKE_WIDTH: int = 2

        # Attachment limits
        self.MAX_ATTACHMENT_BYTES: int = 10 * 1024 * 1024  # 10MB

        # Server settings
        self.SERVER_HOST: str = os.getenv("LEGEN_SERVER_HOST", "127.0.0.1")
        self.SERVER_PORT: int = int(os.getenv("LEGEN_SERVER_PORT", "8000"))
        self.SERVER_URL: str = f"http://{self.SERVER_HOST}:{self.SERVER_PORT}"

        # File paths
        self.BASE_DIR: Path = Path(__file__).parent.parent
        self.DATA_DIR: Path = Path(
            os.getenv("LEGEN_DATA_DIR", str(self.BASE_DIR / "data"))
        )
        self.DIRECTORY_FILE_PATH: Path = self.DATA_DIR / "directory.json"
        self.LETTERS_FILE_PATH: Path = self.DATA_DIR / "letters.json"
        self.EMAILS_FILE_PATH: Path = self.DATA_DIR / "emails.json"

        # Logging
        self.LOG_LEVEL: int = getattr(
            logging, os.getenv("LEGEN_LOG_LEVEL", "INFO").upper(), logging.INFO
        )
