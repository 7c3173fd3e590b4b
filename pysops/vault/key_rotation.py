"""
Vault Key Rotation — Re-encryption of a secrets file under a new key.

The document is decrypted with the old key, staged in a transient plaintext
file and encrypted with the new key. The transient file is overwritten and
removed whether or not the rotation succeeds, and the envelope write is
atomic: the output is either a valid new envelope or left unchanged.

Security Note:
    Plaintext exists on disk only for the lifetime of the staging file.
    Never log plaintext, ciphertext or key values.
"""
import os
import logging
import tempfile
from pathlib import Path
from typing import Optional

import orjson

from ..data import PathLike
from ..exceptions import KeyRotationError
from .secrets_vault import SecretsVault

logger = logging.getLogger("pysops.vault")

_WIPE_CHUNK = 64 * 1024


def secure_remove(path: PathLike) -> None:
    """Overwrite a file with zeros, flush it to disk, then delete it.

    Missing files are ignored.
    """
    try:
        size = os.path.getsize(path)
    except FileNotFoundError:
        return
    with open(path, "r+b") as fp:
        remaining = size
        while remaining > 0:
            chunk = min(remaining, _WIPE_CHUNK)
            fp.write(b"\0" * chunk)
            remaining -= chunk
        fp.flush()
        os.fsync(fp.fileno())
    os.unlink(path)


def rotate_key(
    old_vault: SecretsVault,
    new_vault: SecretsVault,
    input_path: PathLike,
    output_path: Optional[PathLike] = None,
    temp_dir: Optional[PathLike] = None,
) -> Path:
    """Re-encrypt ``input_path`` from the old vault's key to the new one.

    Args:
        old_vault: Vault holding the key the file is encrypted with.
        new_vault: Vault to re-encrypt with; its key is created if its key
            file does not exist yet.
        input_path: Envelope to rotate.
        output_path: Destination envelope (defaults to ``input_path``).
        temp_dir: Directory for the transient plaintext file (defaults to
            the system temp directory).

    Returns:
        Path of the re-encrypted envelope.

    Raises:
        KeyRotationError: Old and new vault use the same key file.
        DecryptionError: The old key does not open ``input_path``.
        EncryptionOperationError: Re-encryption failed.
    """
    input_path = Path(input_path)
    output_path = Path(output_path) if output_path else input_path

    if old_vault.key_path.resolve() == new_vault.key_path.resolve():
        raise KeyRotationError(
            f"Old and new key are the same file: {new_vault.key_path}"
        )

    logger.info(
        "Starting key rotation of %s (old key %s, new key %s)",
        input_path, old_vault.key_path, new_vault.key_path,
    )
    data = old_vault.view(input_path)

    if not new_vault.key_exists():
        new_vault.initialize()

    fd, staging = tempfile.mkstemp(
        prefix=".sops-rotate-", suffix=".json", dir=temp_dir,
    )
    try:
        with os.fdopen(fd, "wb") as fp:
            fp.write(orjson.dumps(data, option=orjson.OPT_NON_STR_KEYS))
        new_vault.encrypt(staging, output_path)
    finally:
        secure_remove(staging)

    logger.info("Key rotation complete: %s", output_path)
    return output_path
