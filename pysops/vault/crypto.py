"""
Vault Crypto Core — Key derivation, encryption/decryption, and serialization.

Envelope layer:
- Key: SHA256(raw_key) → 32-byte AES-256 key (no salt, deterministic)
- Cipher: AES-256-GCM, random 96-bit nonce, 128-bit tag kept apart from
  the ciphertext so each part is stored as its own base64 field.
- Legacy: AES-256-CBC envelopes without a tag (read-only, opt-in).

Security Note:
    Never log plaintext, ciphertext or key values.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import base64
import binascii
import logging
from typing import Any, NamedTuple, Protocol, Optional

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import DecryptionError, SerializationError

logger = logging.getLogger("pysops.vault")

ALGORITHM = "aes-256-gcm"
NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # 128-bit GCM tag
KEY_LENGTH = 32  # AES-256
LEGACY_IV_SIZE = 16  # AES block size


class EncryptedPayload(NamedTuple):
    """Base64-encoded output of a single encryption call."""

    iv: str
    content: str
    tag: str


class CipherFields(Protocol):
    iv: str
    content: str
    tag: Optional[str]


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(raw_key: str) -> bytes:
    """Derive the 32-byte AES-256 key from a raw key string.

    Plain SHA-256 over the UTF-8 bytes of the raw key. This is only sound
    because raw keys are high-entropy random material, never passphrases.

    Args:
        raw_key: Raw key as stored in the key file.

    Returns:
        32-byte derived key.
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(raw_key.encode("utf-8"))
    return digest.finalize()


def _b64decode(value: Any) -> bytes:
    if not isinstance(value, str):
        raise ValueError("expected base64 text")
    return base64.b64decode(value, validate=True)


# ---------------------------------------------------------------------------
# Authenticated encryption
# ---------------------------------------------------------------------------

def encrypt(plaintext: str, raw_key: str) -> EncryptedPayload:
    """Encrypt a text payload with AES-256-GCM.

    Args:
        plaintext: Text to encrypt (UTF-8 encoded before encryption).
        raw_key: Raw key, derived through :func:`derive_key`.

    Returns:
        EncryptedPayload with base64 ``iv``, ``content`` and ``tag``.
    """
    nonce = os.urandom(NONCE_SIZE)
    cipher = AESGCM(derive_key(raw_key))
    sealed = cipher.encrypt(nonce, plaintext.encode("utf-8"), None)
    ct, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return EncryptedPayload(
        iv=base64.b64encode(nonce).decode("ascii"),
        content=base64.b64encode(ct).decode("ascii"),
        tag=base64.b64encode(tag).decode("ascii"),
    )


def decrypt(payload: CipherFields, raw_key: str) -> str:
    """Decrypt and authenticate an AES-256-GCM payload.

    Args:
        payload: Object with base64 ``iv``, ``content`` and ``tag`` attributes
            (an Envelope or an EncryptedPayload).
        raw_key: Raw key used at encryption time.

    Returns:
        Decrypted UTF-8 plaintext.

    Raises:
        DecryptionError: On any failure. The message is the same whatever
            check failed and the underlying error is not chained.
    """
    try:
        nonce = _b64decode(payload.iv)
        ct = _b64decode(payload.content)
        tag = _b64decode(payload.tag)
        if len(nonce) != NONCE_SIZE or len(tag) != TAG_SIZE:
            raise ValueError("invalid nonce or tag length")
        cipher = AESGCM(derive_key(raw_key))
        return cipher.decrypt(nonce, ct + tag, None).decode("utf-8")
    except (InvalidTag, ValueError, binascii.Error, UnicodeDecodeError):
        raise DecryptionError() from None


def decrypt_legacy(payload: CipherFields, raw_key: str) -> str:
    """Decrypt an envelope written before authentication tags were added.

    The legacy format is AES-256-CBC with PKCS#7 padding and offers no
    integrity protection; callers must opt in explicitly.

    Raises:
        DecryptionError: On any failure (same generic message as GCM).
    """
    try:
        iv = _b64decode(payload.iv)
        ct = _b64decode(payload.content)
        if len(iv) != LEGACY_IV_SIZE:
            raise ValueError("invalid iv length")
        decryptor = Cipher(
            algorithms.AES(derive_key(raw_key)), modes.CBC(iv),
        ).decryptor()
        padded = decryptor.update(ct) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        data = unpadder.update(padded) + unpadder.finalize()
        return data.decode("utf-8")
    except (ValueError, binascii.Error, UnicodeDecodeError):
        raise DecryptionError() from None


# ---------------------------------------------------------------------------
# Document serialization
# ---------------------------------------------------------------------------

def serialize_document(document: Any) -> str:
    """Serialize a document to its canonical (compact) JSON text.

    Key order is preserved; dates coming from YAML are rendered as ISO
    strings by orjson.

    Raises:
        SerializationError: If the document holds non-JSON values.
    """
    try:
        return orjson.dumps(document, option=orjson.OPT_NON_STR_KEYS).decode("utf-8")
    except TypeError as err:
        raise SerializationError(f"Document is not JSON serializable: {err}") from err


def deserialize_document(text: str) -> Any:
    """Parse canonical JSON text back to a document.

    Raises:
        SerializationError: If the text is not valid JSON.
    """
    try:
        return orjson.loads(text)
    except orjson.JSONDecodeError as err:
        raise SerializationError(f"Decrypted payload is not valid JSON: {err}") from err
