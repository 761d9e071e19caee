# Letter generation and document signing

from legen.common.crypto import sign_document, verify
from legen.documents import DocumentRenderer, stamp
from legen.letters import LetterComposer
from legen.signature import SignaturePad

__all__ = [
    "DocumentRenderer",
    "LetterComposer",
    "SignaturePad",
    "sign_document",
    "stamp",
    "verify",
]
