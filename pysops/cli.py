"""Command line interface: ``pysops init|encrypt|decrypt|view|get|rotate``."""
import os
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click
import orjson
from pydantic import ValidationError

from .data import MISSING
from .exceptions import (
    DecryptionError,
    KeyAlreadyExistsError,
    KeyGenerationError,
    KeyNotFoundError,
    KeyRotationError,
    MalformedEnvelopeError,
    SopsError,
)
from .vault import SecretsVault, VaultConfig, rotate_key
from .version import __version__

logger = logging.getLogger("pysops.cli")

EXIT_FAILURE = 1
EXIT_FILE_NOT_FOUND = 2
EXIT_PERMISSION_DENIED = 3
EXIT_CRYPTO_FAILURE = 4
EXIT_INVALID_KEY = 5

_EXIT_CODES = (
    ((FileNotFoundError, KeyNotFoundError), EXIT_FILE_NOT_FOUND),
    ((PermissionError,), EXIT_PERMISSION_DENIED),
    ((DecryptionError, MalformedEnvelopeError), EXIT_CRYPTO_FAILURE),
    ((KeyAlreadyExistsError, KeyGenerationError, KeyRotationError), EXIT_INVALID_KEY),
)

_LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}

PathType = click.Path(dir_okay=False, path_type=Path)


def exit_code_for(err: BaseException) -> int:
    """Map an error (or the first matching error in its cause chain) to an exit code."""
    current: Optional[BaseException] = err
    while current is not None:
        for types, code in _EXIT_CODES:
            if isinstance(current, types):
                return code
        current = current.__cause__
    return EXIT_FAILURE


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Print pysops failures as ``Error: ...`` and exit with their code."""
    try:
        yield
    except (SopsError, OSError, ValidationError) as err:
        logger.debug("Command failed", exc_info=True)
        click.secho("Error: ", fg="red", err=True, nl=False)
        click.echo(str(err), err=True)
        raise SystemExit(exit_code_for(err)) from err


def _vault(
    config: VaultConfig,
    key_file: Optional[Path],
    allow_legacy: bool = False,
) -> SecretsVault:
    if allow_legacy:
        config = config.model_copy(update={"allow_legacy": True})
    return SecretsVault(key_file, config)


def _echo_json(value) -> None:
    click.echo(orjson.dumps(value, option=orjson.OPT_INDENT_2).decode("utf-8"))


legacy_option = click.option(
    "--allow-legacy",
    is_flag=True,
    default=False,
    help="Accept envelopes without an authentication tag (no integrity check).",
)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(__version__, prog_name="pysops")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-vv for debug).")
@click.pass_context
def cli(ctx: click.Context, verbose: int) -> None:
    """Simple secrets management for YAML/JSON configuration files."""
    if verbose:
        level = _LOG_LEVELS.get(verbose, logging.DEBUG)
    else:
        level = os.environ.get("SOPS_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    with reporting_errors():
        ctx.obj = VaultConfig.from_env()


@cli.command("init")
@click.option(
    "-k", "--key-file", type=PathType, default=Path(".sops-key"),
    show_default=True, help="Path to the key file.",
)
@click.pass_obj
def cmd_init(config: VaultConfig, key_file: Path) -> None:
    """Initialize a new encryption key."""
    key_path = key_file.resolve()
    with reporting_errors():
        key = _vault(config, key_path).initialize()
    click.secho("✓ Generated new encryption key:", fg="green")
    click.echo(key)
    click.echo()
    click.secho("Key saved to: ", fg="blue", nl=False)
    click.echo(str(key_path))
    click.secho("IMPORTANT: Add this file to .gitignore!", fg="yellow")


@cli.command("encrypt")
@click.option("-i", "--input", "input_path", type=PathType, required=True,
              help="Input file path (plaintext YAML or JSON).")
@click.option("-o", "--output", "output_path", type=PathType, default=None,
              help="Output file path (encrypted). Defaults to INPUT.enc.")
@click.option("-k", "--key-file", type=PathType, default=None, help="Path to the key file.")
@click.pass_obj
def cmd_encrypt(
    config: VaultConfig,
    input_path: Path,
    output_path: Optional[Path],
    key_file: Optional[Path],
) -> None:
    """Encrypt a secrets file."""
    input_path = input_path.resolve()
    output_path = output_path.resolve() if output_path else Path(f"{input_path}.enc")
    with reporting_errors():
        _vault(config, key_file).encrypt(input_path, output_path)
    click.secho("✓ File encrypted successfully", fg="green")
    click.secho("Encrypted file saved to: ", fg="blue", nl=False)
    click.echo(str(output_path))


@cli.command("decrypt")
@click.option("-i", "--input", "input_path", type=PathType, required=True,
              help="Input file path (encrypted).")
@click.option("-o", "--output", "output_path", type=PathType, default=None,
              help="Output file path (plaintext). Defaults to INPUT without .enc.")
@click.option("-k", "--key-file", type=PathType, default=None, help="Path to the key file.")
@legacy_option
@click.pass_obj
def cmd_decrypt(
    config: VaultConfig,
    input_path: Path,
    output_path: Optional[Path],
    key_file: Optional[Path],
    allow_legacy: bool,
) -> None:
    """Decrypt a secrets file."""
    input_path = input_path.resolve()
    if output_path:
        output_path = output_path.resolve()
    elif input_path.suffix == ".enc":
        output_path = input_path.with_suffix("")
    else:
        raise click.UsageError(
            "--output is required when the input file does not end with .enc"
        )
    with reporting_errors():
        _vault(config, key_file, allow_legacy).decrypt(input_path, output_path)
    click.secho("✓ File decrypted successfully", fg="green")
    click.secho("Decrypted file saved to: ", fg="blue", nl=False)
    click.echo(str(output_path))
    click.secho(
        "NOTE: This file contains plaintext secrets! Do not commit it to git.",
        fg="yellow",
    )


@cli.command("view")
@click.option("-i", "--input", "input_path", type=PathType, required=True,
              help="Input file path (encrypted).")
@click.option("-k", "--key-file", type=PathType, default=None, help="Path to the key file.")
@legacy_option
@click.pass_obj
def cmd_view(
    config: VaultConfig,
    input_path: Path,
    key_file: Optional[Path],
    allow_legacy: bool,
) -> None:
    """View decrypted content without writing to a file."""
    with reporting_errors():
        data = _vault(config, key_file, allow_legacy).view(input_path.resolve())
    click.secho("✓ Decrypted content:", fg="green")
    _echo_json(data)


@cli.command("get")
@click.option("-i", "--input", "input_path", type=PathType, required=True,
              help="Input file path (encrypted).")
@click.option("-k", "--key", "dot_path", required=True,
              help='Dot-notation path to the value (e.g., "data.api.key").')
@click.option("--key-file", type=PathType, default=None, help="Path to the encryption key file.")
@legacy_option
@click.pass_obj
def cmd_get(
    config: VaultConfig,
    input_path: Path,
    dot_path: str,
    key_file: Optional[Path],
    allow_legacy: bool,
) -> None:
    """Get a specific value from encrypted content."""
    with reporting_errors():
        value = _vault(config, key_file, allow_legacy).get(
            input_path.resolve(), dot_path, default=MISSING,
        )
    if value is MISSING:
        click.secho(f"No value found for key: {dot_path}", fg="yellow")
    elif isinstance(value, str):
        click.echo(value)
    else:
        _echo_json(value)


@cli.command("rotate")
@click.option("-i", "--input", "input_path", type=PathType, required=True,
              help="Input file path (encrypted).")
@click.option("-o", "--output", "output_path", type=PathType, default=None,
              help="Output file path (encrypted). Defaults to the input file.")
@click.option("--old-key-file", type=PathType, default=None,
              help="Path to the old encryption key file.")
@click.option("--new-key-file", type=PathType, required=True,
              help="Path to the new encryption key file (created if missing).")
@legacy_option
@click.pass_obj
def cmd_rotate(
    config: VaultConfig,
    input_path: Path,
    output_path: Optional[Path],
    old_key_file: Optional[Path],
    new_key_file: Path,
    allow_legacy: bool,
) -> None:
    """Rotate the encryption key of a file (re-encrypt with a new key)."""
    input_path = input_path.resolve()
    output_path = output_path.resolve() if output_path else input_path
    with reporting_errors():
        old_vault = _vault(config, old_key_file, allow_legacy)
        new_vault = _vault(config, new_key_file.resolve())
        generated = not new_vault.key_exists()
        rotate_key(old_vault, new_vault, input_path, output_path)
    click.secho("✓ Key rotated successfully", fg="green")
    click.secho("Re-encrypted file saved to: ", fg="blue", nl=False)
    click.echo(str(output_path))
    if generated:
        click.secho(
            f"A new key has been generated at {new_vault.key_path}. "
            "Be sure to update your key management accordingly.",
            fg="yellow",
        )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
