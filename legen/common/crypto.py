"""Document signing with ephemeral RSA-PSS keys.

Every signed document carries its own public key next to the signature. The
private half lives only inside a :class:`KeyPair`, signs exactly once and is
then dropped; there is no persistent signer identity.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from legen.common.config import Config
from legen.common.exceptions import KeyAlreadyUsedError, SigningError

logger = logging.getLogger(__name__)

_config = Config()


def _pss() -> padding.PSS:
    return padding.PSS(
        mgf=padding.MGF1(hashes.SHA256()),
        salt_length=_config.PSS_SALT_LENGTH,
    )


def document_digest(document_bytes: bytes) -> bytes:
    """SHA-256 of the exact document bytes; this is what gets signed."""
    return hashlib.sha256(document_bytes).digest()


class KeyPair:
    """Exportable public key plus a private key usable for one signature."""

    def __init__(self, private_key: rsa.RSAPrivateKey) -> None:
        self._private_key: rsa.RSAPrivateKey | None = private_key
        der = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        self.public_key: str = base64.b64encode(der).decode("ascii")

    @property
    def used(self) -> bool:
        return self._private_key is None

    def sign(self, document_bytes: bytes) -> str:
        """Sign SHA-256(document_bytes) and return the base64 signature."""
        private_key = self._private_key
        if private_key is None:
            msg = "Signing key already used; generate a new key pair per document"
            raise KeyAlreadyUsedError(msg)
        self._private_key = None

        try:
            signature = private_key.sign(
                document_digest(document_bytes), _pss(), hashes.SHA256()
            )
        except (ValueError, TypeError) as err:
            msg = f"Failed to sign document: {err}"
            raise SigningError(msg) from err
        return base64.b64encode(signature).decode("ascii")

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self.public_key[:16]}..., used={self.used})"


def generate_key_pair() -> KeyPair:
    """Generate a fresh RSA key pair for a single signing operation."""
    try:
        private_key = rsa.generate_private_key(
            public_exponent=_config.RSA_PUBLIC_EXPONENT,
            key_size=_config.RSA_KEY_SIZE,
        )
    except (ValueError, UnsupportedAlgorithm) as err:
        msg = f"Failed to generate RSA key pair: {err}"
        raise SigningError(msg) from err
    return KeyPair(private_key)


def sign_document(document_bytes: bytes) -> tuple[str, str]:
    """Generate a key pair, sign once, discard the private key.

    Returns:
        (signature, public_key), both base64 text.
    """
    key_pair = generate_key_pair()
    signature = key_pair.sign(document_bytes)
    logger.info(
        "Signed document (%d bytes, sha256=%s...)",
        len(document_bytes),
        hashlib.sha256(document_bytes).hexdigest()[:12],
    )
    return signature, key_pair.public_key


def verify(document_bytes: bytes, signature: str, public_key: str) -> bool:
    """Check a signature against the presented bytes. Never raises."""
    try:
        signature_bytes = base64.b64decode(signature, validate=True)
        key = serialization.load_der_public_key(
            base64.b64decode(public_key, validate=True)
        )
        if not isinstance(key, rsa.RSAPublicKey):
            logger.info("Public key is not an RSA key")
            return False
        key.verify(
            signature_bytes, document_digest(document_bytes), _pss(), hashes.SHA256()
        )
    except InvalidSignature:
        logger.info("Document signature invalid")
        return False
    except (binascii.Error, ValueError, TypeError, UnsupportedAlgorithm) as err:
        logger.info("Document signature could not be checked: %s", err)
        return False
    return True
