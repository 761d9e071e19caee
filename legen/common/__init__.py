# Common utilities
from legen.common.crypto import generate_key_pair as generate_key_pair
from legen.common.crypto import sign_document as sign_document
from legen.common.crypto import verify as verify
from legen.common.logging_utils import configure_logging as configure_logging
from legen.common.logging_utils import setup_logger as setup_logger

__all__ = [
    "configure_logging",
    "generate_key_pair",
    "setup_logger",
    "sign_document",
    "verify",
]
