"""Plain documents: YAML/JSON codec, atomic writes and dot-path lookup."""
import os
import tempfile
from pathlib import Path
from typing import Any, Union

import orjson
import yaml

from .exceptions import SerializationError, UnsupportedFileTypeError

JsonValue = Union[None, bool, int, float, str, list, dict]
PathLike = Union[str, os.PathLike]

YAML_EXTENSIONS = frozenset({'.yaml', '.yml'})
JSON_EXTENSIONS = frozenset({'.json'})


class _Missing:
    """Marker for a path that does not exist in a document."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'MISSING'

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def file_extension(path: PathLike) -> str:
    return Path(path).suffix.lower()


def is_yaml_file(path: PathLike) -> bool:
    return file_extension(path) in YAML_EXTENSIONS


def is_json_file(path: PathLike) -> bool:
    return file_extension(path) in JSON_EXTENSIONS


def write_atomic(path: PathLike, data: bytes, mode: int = 0o644) -> Path:
    """Write ``data`` to ``path`` so readers never see a partial file.

    Content goes to a temp file in the target directory, then replaces the
    target with ``os.replace``. Parent directories are created as needed.

    Args:
        path: Destination file.
        data: Full file content.
        mode: Permission bits of the resulting file.

    Returns:
        The destination path.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(
        prefix=f'.{target.name}.', suffix='.tmp', dir=target.parent,
    )
    try:
        with os.fdopen(fd, 'wb') as fp:
            fp.write(data)
            fp.flush()
            os.fsync(fp.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, target)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise
    return target


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------

def read_document(path: PathLike) -> JsonValue:
    """Read a YAML or JSON document, dispatching on the file extension.

    Raises:
        UnsupportedFileTypeError: Extension is not .json, .yaml or .yml.
        FileNotFoundError: The file does not exist.
        SerializationError: The file cannot be parsed.
    """
    path = Path(path)
    if is_yaml_file(path):
        try:
            return yaml.safe_load(path.read_text(encoding='utf-8'))
        except yaml.YAMLError as err:
            raise SerializationError(
                f"Failed to read YAML file {path}: {err}"
            ) from err
    if is_json_file(path):
        try:
            return orjson.loads(path.read_bytes())
        except orjson.JSONDecodeError as err:
            raise SerializationError(
                f"Failed to read JSON file {path}: {err}"
            ) from err
    raise UnsupportedFileTypeError(f"Unsupported file type: {path}")


def dump_document(path: PathLike, document: JsonValue) -> bytes:
    """Render a document in the format implied by ``path``."""
    if is_yaml_file(path):
        try:
            text = yaml.safe_dump(
                document, sort_keys=False, allow_unicode=True,
                default_flow_style=False,
            )
        except yaml.YAMLError as err:
            raise SerializationError(f"Failed to render YAML: {err}") from err
        return text.encode('utf-8')
    if is_json_file(path):
        try:
            return orjson.dumps(
                document,
                option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS,
            )
        except TypeError as err:
            raise SerializationError(f"Failed to render JSON: {err}") from err
    raise UnsupportedFileTypeError(f"Unsupported file type: {path}")


def write_document(path: PathLike, document: JsonValue, mode: int = 0o600) -> Path:
    """Write a document as YAML or JSON, owner-only by default.

    The document is fully rendered in memory before the file is touched.
    """
    return write_atomic(path, dump_document(path, document), mode=mode)


# ---------------------------------------------------------------------------
# Dot-path lookup
# ---------------------------------------------------------------------------

def resolve_path(document: JsonValue, dot_path: str) -> Any:
    """Walk ``document`` along a dot-separated path.

    Mapping segments are looked up as keys; sequence segments must be
    integer indices. Returns :data:`MISSING` when a segment is absent or
    the path goes through a scalar (including ``None``).

    >>> resolve_path({"data": {"api": {"key": "abc"}}}, "data.api.key")
    'abc'
    """
    value = document
    for part in dot_path.split('.'):
        if isinstance(value, dict):
            if part not in value:
                return MISSING
            value = value[part]
        elif isinstance(value, list):
            try:
                index = int(part)
            except ValueError:
                return MISSING
            if not 0 <= index < len(value):
                return MISSING
            value = value[index]
        else:
            return MISSING
    return value
