"""PySOPS.

Simple file-based secrets management: YAML/JSON secrets encrypted with
AES-256-GCM under a single key file.
"""
from .version import __version__
from .data import MISSING, read_document, write_document, resolve_path
from .exceptions import (
    ErrorKind,
    SopsError,
    KeyAlreadyExistsError,
    KeyNotFoundError,
    KeyPersistError,
    KeyGenerationError,
    InsecurePermissionsWarning,
    DecryptionError,
    MalformedEnvelopeError,
    UnsupportedFileTypeError,
    SerializationError,
    KeyRotationError,
    EncryptionOperationError,
    DecryptionOperationError,
)
from .vault import SecretsVault, VaultConfig, rotate_key

__all__ = (
    "__version__",
    "SecretsVault",
    "VaultConfig",
    "rotate_key",
    "MISSING",
    "read_document",
    "write_document",
    "resolve_path",
    "ErrorKind",
    "SopsError",
    "KeyAlreadyExistsError",
    "KeyNotFoundError",
    "KeyPersistError",
    "KeyGenerationError",
    "InsecurePermissionsWarning",
    "DecryptionError",
    "MalformedEnvelopeError",
    "UnsupportedFileTypeError",
    "SerializationError",
    "KeyRotationError",
    "EncryptionOperationError",
    "DecryptionOperationError",
)
