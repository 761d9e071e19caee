"""
Letter server using FastAPI.
"""

from __future__ import annotations

import logging
from pathlib import Path  # noqa: TC003
from typing import TYPE_CHECKING

from fastapi import FastAPI

from legen.common.config import Config
from legen.common.logging_utils import configure_logging
from legen.documents import DocumentRenderer
from legen.letters import LetterComposer

from .identity import IdentityVerifier
from .persistence import JsonLetterStore, JsonMailStore, JsonRecipientDirectory
from .routes import LetterRoutes
from .services import LetterService

if TYPE_CHECKING:
    from legen.common.interfaces import IMailTransport, ITextExtractor


class LetterServer:
    """Wires stores, composer, renderer and routes into a FastAPI app."""

    def __init__(
        self,
        config: Config | None = None,
        log_level: int | None = None,
        data_dir: Path | None = None,
        text_extractor: ITextExtractor | None = None,
        transport: IMailTransport | None = None,
    ):
        self.config = config or Config()
        configure_logging(log_level or self.config.LOG_LEVEL)
        self.logger = logging.getLogger(__name__)

        self.server_host = self.config.SERVER_HOST
        self.server_port = self.config.SERVER_PORT
        if data_dir is not None:
            directory_path = data_dir / "directory.json"
            letters_path = data_dir / "letters.json"
            emails_path = data_dir / "emails.json"
        else:
            directory_path = self.config.DIRECTORY_FILE_PATH
            letters_path = self.config.LETTERS_FILE_PATH
            emails_path = self.config.EMAILS_FILE_PATH

        # Initialize components
        self.directory = JsonRecipientDirectory(directory_path)
        self.letter_store = JsonLetterStore(letters_path)
        self.transport = transport or JsonMailStore(emails_path)
        self.service = LetterService(
            composer=LetterComposer(self.config),
            renderer=DocumentRenderer(),
            letter_store=self.letter_store,
            transport=self.transport,
            directory=self.directory,
            verifier=IdentityVerifier(text_extractor, self.config),
            logger=self.logger,
        )

        # Setup routes
        self.app = FastAPI(title="Letter Generation Service")
        LetterRoutes(self.service, self.config).setup_routes(self.app)

        self.logger.info(
            "Letter server configured for http://%s:%s (%d registered users)",
            self.server_host,
            self.server_port,
            len(self.directory.list_users()),
        )
