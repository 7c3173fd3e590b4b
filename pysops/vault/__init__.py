"""Vault — Authenticated encryption of secrets files under a key file.

Security Note (Threat Model):
    Decrypted documents live in process memory while in use, and the raw key
    is cached for the lifetime of a SecretsVault. Anyone able to read the
    key file can decrypt every envelope written with it; the key file is
    therefore created with owner-only permissions and must never be
    committed to version control.
"""

from .secrets_vault import SecretsVault, KeyState
from .key_rotation import rotate_key, secure_remove
from .config import VaultConfig
from .envelope import Envelope, EnvelopeMetadata, FORMAT_VERSION
from .keys import (
    generate_key,
    save_key,
    load_key,
    has_secure_permissions,
    find_key_file,
    resolve_key_path,
)
from .crypto import derive_key, encrypt, decrypt

__all__ = [
    "SecretsVault",
    "KeyState",
    "rotate_key",
    "secure_remove",
    "VaultConfig",
    "Envelope",
    "EnvelopeMetadata",
    "FORMAT_VERSION",
    "generate_key",
    "save_key",
    "load_key",
    "has_secure_permissions",
    "find_key_file",
    "resolve_key_path",
    "derive_key",
    "encrypt",
    "decrypt",
]
