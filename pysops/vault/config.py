"""
Vault Configuration — Key file location and validated settings.

Reads settings from environment variables:
    SOPS_KEY_FILE = <path to the key file>
    SOPS_KEY_NAME = <file name searched for in cwd and parents>
    SOPS_MAX_DEPTH = <number of directories searched>
    SOPS_ALLOW_LEGACY = <1/true to read envelopes without an auth tag>

Security Note:
    Never log key material. Only log key file paths.
"""
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .keys import DEFAULT_KEY_FILE, DEFAULT_MAX_DEPTH, resolve_key_path

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    key_path: Optional[Path] = None
    key_file_name: str = Field(default=DEFAULT_KEY_FILE)
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=0, le=64)
    allow_legacy: bool = False

    @field_validator("key_file_name")
    @classmethod
    def validate_key_file_name(cls, v: str) -> str:
        """Key file name must be a bare file name."""
        if not v or v in (".", ".."):
            raise ValueError("key_file_name cannot be empty")
        if "/" in v or (os.sep != "/" and os.sep in v):
            raise ValueError(
                f"key_file_name must not contain path separators: {v}"
            )
        return v

    def resolve_key_path(self, key_path: Optional[Path] = None) -> Path:
        """Resolve the key file: argument > configured path > discovery > default."""
        return resolve_key_path(
            key_path or self.key_path, self.key_file_name, self.max_depth,
        )

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        values: dict = {}
        if os.environ.get("SOPS_KEY_FILE"):
            values["key_path"] = os.environ["SOPS_KEY_FILE"]
        if os.environ.get("SOPS_KEY_NAME"):
            values["key_file_name"] = os.environ["SOPS_KEY_NAME"]
        if os.environ.get("SOPS_MAX_DEPTH"):
            values["max_depth"] = os.environ["SOPS_MAX_DEPTH"]
        raw_legacy = os.environ.get("SOPS_ALLOW_LEGACY", "")
        values["allow_legacy"] = raw_legacy.strip().lower() in _TRUE_VALUES
        return cls(**values)
