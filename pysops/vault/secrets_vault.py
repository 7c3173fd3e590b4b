"""
SecretsVault — Encrypted YAML/JSON documents bound to a key file.

Provides the public API for pysops:
- ``initialize()`` — generate and persist a new key file
- ``get_key()`` — load the raw key (cached after the first load)
- ``encrypt(input, output)`` — encrypt a plaintext document into an envelope
- ``decrypt(input, output)`` — decrypt an envelope into a plaintext document
- ``view(input)`` / ``get(input, dot_path)`` — decrypt in memory only

Security Note:
    Never log key material or decrypted values. Only log file paths and
    operations.
"""
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from ..data import (
    JsonValue,
    MISSING,
    PathLike,
    read_document,
    resolve_path,
    write_document,
)
from ..exceptions import (
    DecryptionError,
    DecryptionOperationError,
    EncryptionOperationError,
    KeyAlreadyExistsError,
    KeyNotFoundError,
    MalformedEnvelopeError,
)
from .config import VaultConfig
from .crypto import (
    decrypt,
    decrypt_legacy,
    deserialize_document,
    encrypt,
    serialize_document,
)
from .envelope import Envelope, read_envelope, write_envelope
from .keys import generate_key, load_key, save_key

logger = logging.getLogger("pysops.vault")

# Core failures that view()/get() let through unwrapped.
_PASSTHROUGH_ERRORS = (DecryptionError, MalformedEnvelopeError, KeyNotFoundError)


class KeyState(Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"


class SecretsVault:
    """Encrypts and decrypts secrets files with a single symmetric key.

    The key path is resolved once, at construction, in this order:
    explicit ``key_path`` → ``config.key_path`` → key file found in the
    current directory or its parents → ``./.sops-key``.

    The raw key is loaded lazily and cached for the lifetime of the
    instance (``state`` goes from ``UNLOADED`` to ``LOADED``).
    """

    def __init__(
        self,
        key_path: Optional[PathLike] = None,
        config: Optional[VaultConfig] = None,
    ):
        self._config = config or VaultConfig()
        self._key_path = self._config.resolve_key_path(
            Path(key_path) if key_path else None
        )
        self._key: Optional[str] = None

    def __repr__(self) -> str:
        return f"<SecretsVault key_path={str(self._key_path)!r} state={self.state.value}>"

    @property
    def key_path(self) -> Path:
        return self._key_path

    @property
    def config(self) -> VaultConfig:
        return self._config

    @property
    def state(self) -> KeyState:
        return KeyState.LOADED if self._key is not None else KeyState.UNLOADED

    # ------------------------------------------------------------------
    # Key lifecycle
    # ------------------------------------------------------------------

    def key_exists(self) -> bool:
        """Return True if a key file exists at the resolved path."""
        return self._key_path.exists()

    def initialize(self) -> str:
        """Generate, persist and cache a new key.

        Returns:
            The newly generated raw key.

        Raises:
            KeyAlreadyExistsError: A key file already exists; it is not
                touched.
            KeyPersistError: The key file could not be written.
        """
        if self.key_exists():
            raise KeyAlreadyExistsError(
                f"Key file already exists at {self._key_path}"
            )
        key = generate_key()
        save_key(key, self._key_path)
        self._key = key
        logger.info("Initialized new key file at %s", self._key_path)
        return key

    def get_key(self) -> str:
        """Return the raw key, loading it from disk on first use.

        Raises:
            KeyNotFoundError: No key file at the resolved path.
        """
        if self._key is not None:
            return self._key
        if not self._key_path.exists():
            raise KeyNotFoundError(
                f"Key file not found at {self._key_path}. Run initialize() first."
            )
        self._key = load_key(self._key_path)
        logger.debug("Loaded key from %s", self._key_path)
        return self._key

    # ------------------------------------------------------------------
    # Envelope helpers
    # ------------------------------------------------------------------

    def _open(self, envelope: Envelope) -> JsonValue:
        envelope.check(allow_legacy=self._config.allow_legacy)
        key = self.get_key()
        if envelope.is_legacy:
            plaintext = decrypt_legacy(envelope, key)
        else:
            plaintext = decrypt(envelope, key)
        return deserialize_document(plaintext)

    def encrypt_document(self, document: JsonValue, output_path: PathLike) -> Envelope:
        """Encrypt an in-memory document and write the envelope.

        Returns:
            The envelope that was written.
        """
        payload = encrypt(serialize_document(document), self.get_key())
        envelope = Envelope.seal(payload)
        write_envelope(output_path, envelope)
        return envelope

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def encrypt(self, input_path: PathLike, output_path: PathLike) -> None:
        """Encrypt a YAML/JSON secrets file.

        Args:
            input_path: Plaintext document (.yaml, .yml or .json).
            output_path: Destination of the JSON envelope.

        Raises:
            EncryptionOperationError: Wraps any failure; the original error
                is available as ``cause``.
        """
        try:
            document = read_document(input_path)
            self.encrypt_document(document, output_path)
        except Exception as err:
            raise EncryptionOperationError(input_path, err) from err
        logger.info("Encrypted %s -> %s", input_path, output_path)

    def decrypt(self, input_path: PathLike, output_path: PathLike) -> None:
        """Decrypt an envelope into a YAML/JSON file chosen by extension.

        The output file is only written once decryption fully succeeded,
        with owner-only permissions.

        Raises:
            DecryptionOperationError: Wraps any failure; the original error
                is available as ``cause``.
        """
        try:
            document = self._open(read_envelope(input_path))
            write_document(output_path, document)
        except Exception as err:
            raise DecryptionOperationError(input_path, err) from err
        logger.info("Decrypted %s -> %s", input_path, output_path)

    def view(self, input_path: PathLike) -> JsonValue:
        """Decrypt an envelope and return the document without writing it.

        Raises:
            DecryptionError: Wrong key or tampered data.
            MalformedEnvelopeError: The file is not a valid envelope.
            KeyNotFoundError: No key available.
            DecryptionOperationError: Any other failure (missing or
                unreadable file, invalid payload).
        """
        try:
            return self._open(read_envelope(input_path))
        except _PASSTHROUGH_ERRORS:
            raise
        except Exception as err:
            raise DecryptionOperationError(input_path, err) from err

    def get(
        self,
        input_path: PathLike,
        dot_path: str,
        default: Any = None,
    ) -> Any:
        """Return the value at ``dot_path`` (e.g. ``"data.api.key"``).

        Args:
            input_path: Envelope file.
            dot_path: Dot-separated keys (integer segments index lists).
            default: Returned when the path does not exist. Pass
                ``pysops.MISSING`` to tell an absent path from a null value.

        Returns:
            The value found, or ``default``.
        """
        value = resolve_path(self.view(input_path), dot_path)
        if value is MISSING:
            return default
        return value
