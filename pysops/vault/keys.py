"""
Vault Keys — Generation, persistence and discovery of the raw key file.

The key file holds a single base64 line and must only be accessible to its
owner (mode 0600).

Security Note:
    Never log key material. Only log key file paths.
"""
import os
import stat
import base64
import secrets
import logging
import warnings
from pathlib import Path
from typing import Optional

from ..data import PathLike, write_atomic
from ..exceptions import (
    InsecurePermissionsWarning,
    KeyGenerationError,
    KeyNotFoundError,
    KeyPersistError,
)

logger = logging.getLogger("pysops.vault")

DEFAULT_KEY_FILE = ".sops-key"
DEFAULT_MAX_DEPTH = 5
RAW_KEY_BYTES = 32
KEY_FILE_MODE = 0o600


def generate_key() -> str:
    """Generate a random 32-byte key and return it as a base64 string.

    Returns:
        Base64-encoded key (44 characters).

    Raises:
        KeyGenerationError: If the OS randomness source is unavailable.
    """
    try:
        raw = secrets.token_bytes(RAW_KEY_BYTES)
    except (OSError, NotImplementedError) as err:
        raise KeyGenerationError(f"Failed to generate key: {err}") from err
    return base64.b64encode(raw).decode("ascii")


def _missing_parents(directory: Path) -> list[Path]:
    """Return the directories that ``mkdir(parents=True)`` would create."""
    missing = []
    while not directory.exists():
        missing.append(directory)
        if directory.parent == directory:
            break
        directory = directory.parent
    return missing


def save_key(key: str, path: PathLike) -> Path:
    """Write a key file readable and writable by its owner only.

    The key is written to a 0600 temp file next to the target and renamed
    into place, so the key is never visible with wider permissions.
    Directories created here are removed again if the write fails.

    Args:
        key: Raw key text.
        path: Destination key file.

    Returns:
        Path of the written key file.

    Raises:
        KeyPersistError: If a directory or the file cannot be written.
    """
    target = Path(path)
    created = _missing_parents(target.parent)
    try:
        write_atomic(target, key.encode("utf-8"), mode=KEY_FILE_MODE)
        os.chmod(target, KEY_FILE_MODE)
    except OSError as err:
        for directory in created:
            try:
                directory.rmdir()
            except OSError:
                break
        raise KeyPersistError(f"Failed to save key to {target}: {err}") from err
    logger.debug("Key saved to %s", target)
    return target


def has_secure_permissions(path: PathLike) -> bool:
    """Return True if no group/other permission bits are set on ``path``.

    Windows does not expose POSIX modes, so files there are always treated
    as secure. A file that cannot be stat'ed is reported as insecure.
    """
    if os.name == "nt":
        return True
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return False
    return stat.S_IMODE(mode) & 0o077 == 0


def load_key(path: PathLike) -> str:
    """Load the raw key from ``path``.

    A key file with group/other access still loads, but an
    :class:`InsecurePermissionsWarning` is logged and emitted.

    Returns:
        The key with surrounding whitespace removed.

    Raises:
        KeyNotFoundError: If the file does not exist or is empty.
    """
    path = Path(path)
    if not path.is_file():
        raise KeyNotFoundError(f"Key file does not exist: {path}")
    if not has_secure_permissions(path):
        message = (
            f"Key file {path} has insecure permissions. "
            f"Consider running: chmod 600 {path}"
        )
        logger.warning(message)
        warnings.warn(message, InsecurePermissionsWarning, stacklevel=2)
    key = path.read_text(encoding="utf-8").strip()
    if not key:
        raise KeyNotFoundError(f"Key file is empty: {path}")
    return key


def find_key_file(
    name: str = DEFAULT_KEY_FILE,
    max_depth: int = DEFAULT_MAX_DEPTH,
    start: Optional[PathLike] = None,
) -> Optional[Path]:
    """Look for ``name`` in ``start`` (default: cwd) and its parents.

    At most ``max_depth`` directories are searched; the walk also stops at
    the filesystem root.

    Returns:
        Path to the first key file found, or None.
    """
    current = Path(start) if start is not None else Path.cwd()
    current = current.resolve()
    for _ in range(max_depth):
        candidate = current / name
        if candidate.is_file():
            return candidate
        if current.parent == current:
            break
        current = current.parent
    return None


def resolve_key_path(
    key_path: Optional[PathLike] = None,
    name: str = DEFAULT_KEY_FILE,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Path:
    """Resolve the key file: explicit path > discovered file > ``./name``."""
    if key_path:
        return Path(key_path).expanduser()
    found = find_key_file(name, max_depth)
    if found is not None:
        logger.debug("Discovered key file at %s", found)
        return found
    return Path.cwd() / name
