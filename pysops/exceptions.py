"""
Exception hierarchy for pysops operations.

Every error carries a ``kind`` from the closed :class:`ErrorKind`
enumeration so callers (and the CLI exit-code mapping) can match on the
kind instead of parsing messages.
"""
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class ErrorKind(str, Enum):
    """Closed set of failure kinds raised by pysops."""

    KEY_ALREADY_EXISTS = "key_already_exists"
    KEY_NOT_FOUND = "key_not_found"
    KEY_PERSIST = "key_persist"
    KEY_GENERATION = "key_generation"
    DECRYPTION = "decryption"
    MALFORMED_ENVELOPE = "malformed_envelope"
    UNSUPPORTED_FILE_TYPE = "unsupported_file_type"
    SERIALIZATION = "serialization"
    KEY_ROTATION = "key_rotation"
    ENCRYPTION_OPERATION = "encryption_operation"
    DECRYPTION_OPERATION = "decryption_operation"


class SopsError(Exception):
    """Base exception for all pysops operations."""

    kind: ErrorKind


class KeyAlreadyExistsError(SopsError):
    """A key file already exists where a new key would be written."""

    kind = ErrorKind.KEY_ALREADY_EXISTS


class KeyNotFoundError(SopsError):
    """No key file could be resolved or loaded."""

    kind = ErrorKind.KEY_NOT_FOUND


class KeyPersistError(SopsError):
    """Key file could not be written."""

    kind = ErrorKind.KEY_PERSIST


class KeyGenerationError(SopsError):
    """The randomness source failed while generating a key."""

    kind = ErrorKind.KEY_GENERATION


class DecryptionError(SopsError):
    """Authentication or format failure while decrypting.

    The message is always generic: it never says whether the key was wrong
    or the data was tampered with.
    """

    kind = ErrorKind.DECRYPTION

    GENERIC_MESSAGE = (
        "Decryption failed: incorrect key or corrupted/tampered data"
    )

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.GENERIC_MESSAGE)


class MalformedEnvelopeError(SopsError):
    """The encrypted file is not a structurally valid envelope."""

    kind = ErrorKind.MALFORMED_ENVELOPE


class UnsupportedFileTypeError(SopsError):
    """The document codec cannot infer a format from the file extension."""

    kind = ErrorKind.UNSUPPORTED_FILE_TYPE


class SerializationError(SopsError):
    """Document could not be serialized or parsed."""

    kind = ErrorKind.SERIALIZATION


class KeyRotationError(SopsError):
    """Rotation request is invalid (e.g. old and new key are the same file)."""

    kind = ErrorKind.KEY_ROTATION


class OperationError(SopsError):
    """Wraps a failure of a file operation with the path it concerned.

    The original error is kept both as ``cause`` and as ``__cause__``.
    """

    verb: str = "process"

    def __init__(self, path: Union[str, Path], cause: BaseException):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Failed to {self.verb} file {self.path}: {cause}")
        self.__cause__ = cause

    @property
    def root_cause(self) -> BaseException:
        """First error in the cause chain that is not an operation wrapper."""
        err: BaseException = self
        while isinstance(err, OperationError):
            err = err.cause
        return err


class EncryptionOperationError(OperationError):
    kind = ErrorKind.ENCRYPTION_OPERATION
    verb = "encrypt"


class DecryptionOperationError(OperationError):
    kind = ErrorKind.DECRYPTION_OPERATION
    verb = "decrypt"


class InsecurePermissionsWarning(UserWarning):
    """Key file is readable or writable by group or others."""
