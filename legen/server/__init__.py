"""
Entry point for the letter server.
"""

import logging

import uvicorn

from legen.common.config import Config

from .core import LetterServer


def start_server(config: Config | None = None) -> None:
    """Start the letter server."""
    if config is None:
        config = Config()
    logging.basicConfig(level=config.LOG_LEVEL)
    server = LetterServer(config=config)
    uvicorn.run(server.app, host=server.server_host, port=server.server_port)
