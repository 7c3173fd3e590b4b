"""
Pytest configuration and fixtures for pysops tests.
"""
import os

import orjson
import pytest

from pysops import SecretsVault

TEST_KEY = "abcdefghijklmnopqrstuvwxyz123456"

SECRETS = {
    "data": {
        "api": {
            "key": "test-api-key-12345",
            "secret": "test-api-secret-67890",
        },
        "database": {
            "username": "test-db-user",
            "password": "test-db-password",
        },
    }
}

SECRETS_YAML = """\
data:
  api:
    key: test-api-key-12345
    secret: test-api-secret-67890
  database:
    username: test-db-user
    password: test-db-password
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep SOPS_* variables from the outer environment out of the tests."""
    for name in list(os.environ):
        if name.startswith("SOPS_"):
            monkeypatch.delenv(name)


@pytest.fixture
def secrets_doc():
    return orjson.loads(orjson.dumps(SECRETS))


@pytest.fixture
def key_path(tmp_path):
    """Key file with a known key and owner-only permissions."""
    path = tmp_path / ".test-sops-key"
    path.write_text(TEST_KEY)
    path.chmod(0o600)
    return path


@pytest.fixture
def vault(key_path):
    return SecretsVault(key_path=key_path)


@pytest.fixture
def yaml_path(tmp_path):
    path = tmp_path / "test-secrets.yaml"
    path.write_text(SECRETS_YAML)
    return path


@pytest.fixture
def json_path(tmp_path):
    path = tmp_path / "test-secrets.json"
    path.write_bytes(orjson.dumps(SECRETS, option=orjson.OPT_INDENT_2))
    return path


@pytest.fixture
def encrypted_path(tmp_path, vault, yaml_path):
    """Envelope of SECRETS encrypted with TEST_KEY."""
    path = tmp_path / "test-secrets.enc.json"
    vault.encrypt(yaml_path, path)
    return path
