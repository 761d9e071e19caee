"""
Logging helpers shared by the server, the store client and the CLI.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Chatty at DEBUG; their warnings are still shown
QUIET_LOGGERS = ("PIL", "pypdf", "multipart", "urllib3")


def setup_logger(logger: logging.Logger, log_level: int) -> None:
    """
    Attach a StreamHandler with the standard format to a logger, once.

    Args:
        logger: The logger instance to configure
        log_level: The logging level to set
    """
    logger.setLevel(log_level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(log_level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)


def configure_logging(log_level: int) -> logging.Logger:
    """Configure the ``legen`` package logger and quiet third-party loggers."""
    root = logging.getLogger("legen")
    setup_logger(root, log_level)
    root.propagate = False
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
    return root
