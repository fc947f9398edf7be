"""Tests for keylocker.cli - command line interface."""

import json
import os

import pytest
from click.testing import CliRunner

from keylocker import __version__, get_security_features
from keylocker.cli import cli
from keylocker.generator import PASSWORD_ALPHABET


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, vault_path):
    """Run a keylocker command against the temporary vault."""
    def _invoke(*args):
        return runner.invoke(cli, ["--vault", vault_path, *args])
    return _invoke


def _generated_password(output):
    for line in output.splitlines():
        if "Generated master password:" in line:
            return line.split(": ", 1)[1].strip()
    raise AssertionError(f"no generated password in output:\n{output}")


class TestEncryptDecrypt:
    def test_round_trip(self, invoke):
        result = invoke("encrypt", "openrouter", "sk-or-v1-abc123", "hunter2")
        assert result.exit_code == 0, result.output
        assert "Encrypted key 'openrouter' saved successfully" in result.output
        assert "Generated master password" not in result.output

        result = invoke("decrypt", "openrouter", "hunter2")
        assert result.exit_code == 0, result.output
        assert "Decrypted key for 'openrouter': sk-or-v1-abc123" in result.output

    def test_generated_password_shown_once_and_works(self, invoke, vault_path):
        result = invoke("encrypt", "openrouter", "sk-or-v1-abc123")
        assert result.exit_code == 0, result.output
        assert "IMPORTANT" in result.output

        password = _generated_password(result.output)
        assert len(password) == 32
        assert set(password) <= set(PASSWORD_ALPHABET)

        with open(vault_path, encoding="utf-8") as f:
            assert password not in f.read()

        result = invoke("decrypt", "openrouter", password)
        assert "sk-or-v1-abc123" in result.output

    def test_wrong_password(self, invoke):
        invoke("encrypt", "openrouter", "sk-or-v1-abc123", "hunter2")
        result = invoke("decrypt", "openrouter", "wrongpass")
        assert result.exit_code == 1
        assert "Failed to decrypt" in result.output
        assert "sk-or-v1-abc123" not in result.output

    def test_decrypt_without_vault(self, invoke):
        result = invoke("decrypt", "openrouter", "hunter2")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_decrypt_unknown_key(self, invoke):
        invoke("encrypt", "openrouter", "sk-or-v1-abc123", "hunter2")
        result = invoke("decrypt", "stripe", "hunter2")
        assert result.exit_code == 1
        assert "No encrypted key found for 'stripe'" in result.output

    def test_encrypt_missing_arguments(self, invoke, vault_path):
        result = invoke("encrypt", "openrouter")
        assert result.exit_code == 1
        assert "Key name and API key are required" in result.output
        assert "Usage: keylocker encrypt" in result.output

    def test_decrypt_missing_password(self, invoke):
        result = invoke("decrypt", "openrouter")
        assert result.exit_code == 1
        assert "Usage: keylocker decrypt" in result.output

    def test_legacy_cbc_option(self, invoke, vault_path):
        invoke("encrypt", "openrouter", "sk-1", "hunter2", "--legacy-cbc")
        with open(vault_path, encoding="utf-8") as f:
            assert json.load(f)["openrouter"]["cipher"] == "aes-256-cbc"
        assert "sk-1" in invoke("decrypt", "openrouter", "hunter2").output

    @pytest.mark.parametrize("kdf", [
        {"algorithm": "pbkdf2-sha256", "iterations": -1},
        {"algorithm": "pbkdf2-sha256", "iterations": 10 ** 12},
        {"algorithm": "argon2id", "time_cost": 1, "memory_cost": -8, "parallelism": 1},
    ])
    def test_corrupt_kdf_record(self, invoke, vault_path, kdf):
        invoke("encrypt", "openrouter", "sk-1", "hunter2")
        with open(vault_path, encoding="utf-8") as f:
            vault = json.load(f)
        vault["openrouter"]["kdf"] = kdf
        with open(vault_path, "w", encoding="utf-8") as f:
            json.dump(vault, f)

        result = invoke("decrypt", "openrouter", "hunter2")
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "Traceback" not in result.output
        assert isinstance(result.exception, SystemExit)

    def test_vault_from_environment(self, runner, vault_path, monkeypatch):
        monkeypatch.setenv("KEYLOCKER_VAULT", vault_path)
        result = runner.invoke(cli, ["encrypt", "openrouter", "sk-1", "hunter2"])
        assert result.exit_code == 0, result.output
        with open(vault_path, encoding="utf-8") as f:
            assert "openrouter" in json.load(f)


class TestGeneratePassword:
    def test_default_length(self, invoke):
        result = invoke("generate-password")
        assert result.exit_code == 0
        password = result.output.strip().split(": ", 1)[1]
        assert len(password) == 32

    def test_custom_length(self, invoke):
        result = invoke("generate-password", "12")
        password = result.output.strip().split(": ", 1)[1]
        assert len(password) == 12

    @pytest.mark.parametrize("length", ["abc", "0", "-3"])
    def test_invalid_length(self, invoke, length):
        result = invoke("generate-password", "--", length)
        assert result.exit_code == 1
        assert "Usage: keylocker generate-password" in result.output

    def test_does_not_create_vault(self, invoke, vault_path):
        invoke("generate-password")
        assert not os.path.exists(vault_path)


class TestList:
    def test_empty(self, invoke):
        result = invoke("list")
        assert result.exit_code == 0
        assert "No encrypted keys found" in result.output

    def test_lists_names_and_timestamps(self, invoke, vault_path):
        invoke("encrypt", "openrouter", "sk-1", "hunter2")
        invoke("encrypt", "stripe", "sk-2", "hunter2")

        result = invoke("list")
        assert result.exit_code == 0
        assert "openrouter" in result.output
        assert "stripe" in result.output
        assert "Total: 2 key(s)" in result.output

        with open(vault_path, encoding="utf-8") as f:
            created = json.load(f)["stripe"]["created"]
        assert created in result.output

    def test_corrupt_vault(self, invoke, vault_path):
        os.makedirs(os.path.dirname(vault_path))
        with open(vault_path, "w", encoding="utf-8") as f:
            f.write("{ nope")
        result = invoke("list")
        assert result.exit_code == 1
        assert "not valid JSON" in result.output


class TestValidate:
    def test_valid(self, invoke):
        invoke("encrypt", "openrouter", "sk-1", "hunter2")
        result = invoke("validate", "openrouter")
        assert result.exit_code == 0
        assert "Key 'openrouter' format is valid" in result.output

    def test_invalid(self, invoke, vault_path):
        os.makedirs(os.path.dirname(vault_path))
        with open(vault_path, "w", encoding="utf-8") as f:
            json.dump({"broken": {"data": "c2hvcnQ=", "created": "x", "updated": "x"}}, f)
        result = invoke("validate", "broken")
        assert result.exit_code == 0
        assert "Key 'broken' format is invalid" in result.output

    def test_unknown(self, invoke):
        invoke("encrypt", "openrouter", "sk-1", "hunter2")
        result = invoke("validate", "stripe")
        assert result.exit_code == 1

    def test_missing_name(self, invoke):
        result = invoke("validate")
        assert result.exit_code == 1
        assert "Usage: keylocker validate" in result.output


class TestVersion:
    def test_version_command(self, invoke):
        result = invoke("version")
        assert result.exit_code == 0
        assert __version__ in result.output
        assert "Security features:" in result.output
        for feature in get_security_features():
            assert feature.replace("_", " ") in result.output

    def test_version_flag(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "KeyLocker" in result.output

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("encrypt", "decrypt", "generate-password", "list", "validate"):
            assert command in result.output
