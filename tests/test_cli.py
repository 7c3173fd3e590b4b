"""
Tests for the pysops command line interface.
"""
import orjson
import pytest
from click.testing import CliRunner

from pysops import SecretsVault
from pysops.cli import (
    EXIT_CRYPTO_FAILURE,
    EXIT_FILE_NOT_FOUND,
    EXIT_INVALID_KEY,
    EXIT_PERMISSION_DENIED,
    cli,
    exit_code_for,
)
from pysops.exceptions import (
    DecryptionError,
    DecryptionOperationError,
    KeyAlreadyExistsError,
    KeyNotFoundError,
)


@pytest.fixture
def runner():
    return CliRunner()


class TestInit:

    def test_creates_key(self, runner, tmp_path):
        key_file = tmp_path / ".sops-key"
        result = runner.invoke(cli, ["init", "-k", str(key_file)])
        assert result.exit_code == 0, result.output
        assert key_file.read_text() in result.output
        assert ".gitignore" in result.output

    def test_refuses_existing_key(self, runner, key_path):
        before = key_path.read_text()
        result = runner.invoke(cli, ["init", "-k", str(key_path)])
        assert result.exit_code == EXIT_INVALID_KEY
        assert "Error:" in result.output
        assert key_path.read_text() == before


class TestEncryptDecrypt:

    def test_encrypt_default_output(self, runner, key_path, yaml_path):
        result = runner.invoke(cli, ["encrypt", "-i", str(yaml_path), "-k", str(key_path)])
        assert result.exit_code == 0, result.output
        encrypted = yaml_path.with_name(yaml_path.name + ".enc")
        assert encrypted.exists()
        assert "File encrypted successfully" in result.output

    def test_decrypt_default_output(self, runner, key_path, yaml_path, secrets_doc):
        runner.invoke(cli, ["encrypt", "-i", str(yaml_path), "-k", str(key_path)])
        yaml_path.unlink()
        encrypted = yaml_path.with_name(yaml_path.name + ".enc")
        result = runner.invoke(cli, ["decrypt", "-i", str(encrypted), "-k", str(key_path)])
        assert result.exit_code == 0, result.output
        assert "plaintext secrets" in result.output
        assert SecretsVault(key_path).view(encrypted) == secrets_doc
        assert yaml_path.exists()

    def test_decrypt_requires_output_without_enc_suffix(self, runner, key_path,
                                                        encrypted_path):
        result = runner.invoke(cli, ["decrypt", "-i", str(encrypted_path), "-k", str(key_path)])
        assert result.exit_code == 2
        assert "--output" in result.output

    def test_encrypt_missing_input(self, runner, key_path, tmp_path):
        result = runner.invoke(cli, [
            "encrypt", "-i", str(tmp_path / "missing.yaml"), "-k", str(key_path),
        ])
        assert result.exit_code == EXIT_FILE_NOT_FOUND
        assert "Failed to encrypt file" in result.output

    def test_decrypt_with_wrong_key(self, runner, encrypted_path, tmp_path):
        wrong = tmp_path / "wrong-key"
        wrong.write_text("wrong")
        wrong.chmod(0o600)
        result = runner.invoke(cli, [
            "decrypt", "-i", str(encrypted_path), "-o", str(tmp_path / "out.json"),
            "-k", str(wrong),
        ])
        assert result.exit_code == EXIT_CRYPTO_FAILURE
        assert "incorrect key" in result.output
        assert not (tmp_path / "out.json").exists()


class TestViewGet:

    def test_view(self, runner, key_path, encrypted_path, secrets_doc):
        result = runner.invoke(cli, ["view", "-i", str(encrypted_path), "-k", str(key_path)])
        assert result.exit_code == 0, result.output
        body = result.output.split("\n", 1)[1]
        assert orjson.loads(body) == secrets_doc

    def test_view_missing_key(self, runner, encrypted_path, tmp_path):
        result = runner.invoke(cli, [
            "view", "-i", str(encrypted_path), "-k", str(tmp_path / "none"),
        ])
        assert result.exit_code == EXIT_FILE_NOT_FOUND

    def test_get_string(self, runner, key_path, encrypted_path):
        result = runner.invoke(cli, [
            "get", "-i", str(encrypted_path), "-k", "data.api.key", "--key-file", str(key_path),
        ])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "test-api-key-12345"

    def test_get_container_as_json(self, runner, key_path, encrypted_path):
        result = runner.invoke(cli, [
            "get", "-i", str(encrypted_path), "-k", "data.database", "--key-file", str(key_path),
        ])
        assert orjson.loads(result.output) == {
            "username": "test-db-user",
            "password": "test-db-password",
        }

    def test_get_missing(self, runner, key_path, encrypted_path):
        result = runner.invoke(cli, [
            "get", "-i", str(encrypted_path), "-k", "data.nope", "--key-file", str(key_path),
        ])
        assert result.exit_code == 0
        assert "No value found for key: data.nope" in result.output


class TestRotate:

    def test_rotate_with_new_key(self, runner, key_path, encrypted_path, tmp_path,
                                 secrets_doc):
        new_key = tmp_path / "new" / ".sops-key"
        result = runner.invoke(cli, [
            "rotate", "-i", str(encrypted_path),
            "--old-key-file", str(key_path), "--new-key-file", str(new_key),
        ])
        assert result.exit_code == 0, result.output
        assert "A new key has been generated" in result.output
        assert SecretsVault(new_key).view(encrypted_path) == secrets_doc

    def test_rotate_requires_new_key_file(self, runner, key_path, encrypted_path):
        result = runner.invoke(cli, [
            "rotate", "-i", str(encrypted_path), "--old-key-file", str(key_path),
        ])
        assert result.exit_code == 2


class TestExitCodes:

    def test_wrapped_errors_use_cause(self):
        err = DecryptionOperationError("x.enc", DecryptionError())
        assert exit_code_for(err) == EXIT_CRYPTO_FAILURE

    def test_kinds(self):
        assert exit_code_for(KeyNotFoundError("k")) == EXIT_FILE_NOT_FOUND
        assert exit_code_for(KeyAlreadyExistsError("k")) == EXIT_INVALID_KEY
        assert exit_code_for(PermissionError("denied")) == EXIT_PERMISSION_DENIED
        assert exit_code_for(RuntimeError("other")) == 1
