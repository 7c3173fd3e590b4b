"""
Vault Envelope — On-disk format of an encrypted document.

Format (version 1.0), pretty printed JSON with a fixed key order::

    {
      "iv": "<base64 12-byte nonce>",
      "content": "<base64 ciphertext>",
      "tag": "<base64 16-byte GCM tag>",
      "metadata": {"encryptedAt": "<ISO-8601>", "version": "1.0"}
    }

Envelopes without ``tag`` predate authenticated encryption; they are only
accepted when legacy reading is enabled.
"""
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..data import PathLike, write_atomic
from ..exceptions import MalformedEnvelopeError
from .crypto import EncryptedPayload

logger = logging.getLogger("pysops.vault")

FORMAT_VERSION = "1.0"
SUPPORTED_VERSIONS = frozenset({FORMAT_VERSION})
ENVELOPE_FILE_MODE = 0o644


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    moment = moment or datetime.now(timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class EnvelopeMetadata(BaseModel):
    """Metadata stored next to the ciphertext."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    encrypted_at: str = Field(alias="encryptedAt")
    version: str = FORMAT_VERSION

    @field_validator("encrypted_at")
    @classmethod
    def validate_timestamp(cls, v: str) -> str:
        """encryptedAt must be an ISO-8601 timestamp."""
        try:
            datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError as err:
            raise ValueError(f"encryptedAt is not an ISO-8601 timestamp: {v}") from err
        return v


class Envelope(BaseModel):
    """Encrypted document: nonce, ciphertext, tag and metadata."""

    model_config = ConfigDict(extra="ignore")

    iv: str
    content: str
    tag: Optional[str] = None
    metadata: Optional[EnvelopeMetadata] = None

    @classmethod
    def seal(
        cls,
        payload: EncryptedPayload,
        encrypted_at: Optional[datetime] = None,
    ) -> "Envelope":
        """Wrap the output of one encryption call in a current-version envelope."""
        return cls(
            iv=payload.iv,
            content=payload.content,
            tag=payload.tag,
            metadata=EnvelopeMetadata(
                encrypted_at=utc_timestamp(encrypted_at),
                version=FORMAT_VERSION,
            ),
        )

    @property
    def version(self) -> Optional[str]:
        return self.metadata.version if self.metadata else None

    @property
    def is_legacy(self) -> bool:
        """True for envelopes written before authentication tags existed."""
        return self.tag is None and self.version != FORMAT_VERSION

    def check(self, allow_legacy: bool = False) -> None:
        """Validate the envelope before decryption.

        Raises:
            MalformedEnvelopeError: The envelope lacks a required field, has
                an unsupported version, or is legacy while legacy reading is
                disabled.
        """
        if self.is_legacy:
            if not allow_legacy:
                raise MalformedEnvelopeError(
                    "Envelope has no authentication tag (legacy format); "
                    "enable legacy reading to decrypt it"
                )
            logger.warning(
                "Reading legacy envelope without authentication tag: "
                "integrity of the content cannot be verified"
            )
            return
        if self.tag is None:
            raise MalformedEnvelopeError(
                f"Envelope version {self.version} requires an authentication tag"
            )
        if self.version is not None and self.version not in SUPPORTED_VERSIONS:
            raise MalformedEnvelopeError(
                f"Unsupported envelope version: {self.version}"
            )


def dump_envelope(envelope: Envelope) -> bytes:
    """Serialize an envelope to pretty printed JSON."""
    data = envelope.model_dump(by_alias=True, exclude_none=True)
    return orjson.dumps(data, option=orjson.OPT_INDENT_2)


def load_envelope(data: Union[bytes, str]) -> Envelope:
    """Parse envelope JSON.

    Raises:
        MalformedEnvelopeError: Invalid JSON, missing fields or wrong types.
    """
    try:
        raw = orjson.loads(data)
    except orjson.JSONDecodeError as err:
        raise MalformedEnvelopeError(f"Envelope is not valid JSON: {err}") from err
    if not isinstance(raw, dict):
        raise MalformedEnvelopeError("Envelope must be a JSON object")
    try:
        return Envelope.model_validate(raw)
    except ValidationError as err:
        fields = ", ".join(
            ".".join(str(p) for p in e["loc"]) for e in err.errors()
        )
        raise MalformedEnvelopeError(
            f"Invalid envelope fields: {fields}"
        ) from err


def write_envelope(path: PathLike, envelope: Envelope) -> Path:
    """Write an envelope atomically to ``path``."""
    return write_atomic(path, dump_envelope(envelope), mode=ENVELOPE_FILE_MODE)


def read_envelope(path: PathLike) -> Envelope:
    """Read and parse an envelope file.

    Raises:
        FileNotFoundError: The file does not exist.
        MalformedEnvelopeError: The file is not a valid envelope.
    """
    return load_envelope(Path(path).read_bytes())
