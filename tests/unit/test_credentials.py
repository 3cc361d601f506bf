"""Tests for credential acquisition and the session token store."""

from __future__ import annotations

import json
import stat
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from messer.errors import ConfigError
from messer.models import Credentials
from messer.services.credentials import CredentialSource, SessionTokenStore


class TestSessionTokenStore:
    def test_missing_file_loads_nothing(self, tmp_path: Path) -> None:
        assert SessionTokenStore(tmp_path / "session.json").load() is None

    def test_save_then_load(self, tmp_path: Path) -> None:
        store = SessionTokenStore(tmp_path / "nested" / "session.json")
        store.save("tok-abc")
        assert store.load() == "tok-abc"
        assert json.loads(store.path.read_text()) == {"session_token": "tok-abc"}

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_file_is_owner_only(self, tmp_path: Path) -> None:
        store = SessionTokenStore(tmp_path / "session.json")
        store.save("tok-abc")
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600

    def test_clear_removes_file(self, tmp_path: Path) -> None:
        store = SessionTokenStore(tmp_path / "session.json")
        store.save("tok-abc")
        store.clear()
        assert not store.path.exists()
        store.clear()

    @pytest.mark.parametrize("content", ["not json", "[1, 2]", '{"session_token": ""}', '{"other": "x"}'])
    def test_unusable_file_is_ignored(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "session.json"
        path.write_text(content)
        assert SessionTokenStore(path).load() is None


class TestCredentialSource:
    @pytest.mark.asyncio
    async def test_saved_token_comes_first(self, tmp_path: Path) -> None:
        store = SessionTokenStore(tmp_path / "session.json")
        store.save("tok-saved")
        creds_file = tmp_path / "creds.yaml"
        creds_file.write_text("identifier: me@example.com\nsecret: hunter2\n")
        prompt = MagicMock()

        creds = await CredentialSource(store, creds_file, prompt=prompt).get_credentials()

        assert creds.session_token == "tok-saved"
        assert creds.uses_session_token
        prompt.assert_not_called()

    @pytest.mark.asyncio
    async def test_credentials_file_before_prompt(self, tmp_path: Path) -> None:
        creds_file = tmp_path / "creds.yaml"
        creds_file.write_text("identifier: me@example.com\nsecret: hunter2\n")
        prompt = MagicMock()

        creds = await CredentialSource(
            SessionTokenStore(tmp_path / "session.json"), creds_file, prompt=prompt
        ).get_credentials()

        assert creds.identifier == "me@example.com"
        assert creds.secret.get_secret_value() == "hunter2"
        assert not creds.uses_session_token
        prompt.assert_not_called()

    @pytest.mark.asyncio
    async def test_accepts_json_with_email_password_keys(self, tmp_path: Path) -> None:
        creds_file = tmp_path / "creds.json"
        creds_file.write_text(json.dumps({"email": "me@example.com", "password": "hunter2"}))

        creds = await CredentialSource(SessionTokenStore(tmp_path / "s.json"), creds_file).get_credentials()

        assert creds.identifier == "me@example.com"
        assert creds.secret.get_secret_value() == "hunter2"

    @pytest.mark.asyncio
    async def test_incomplete_file_is_a_config_error(self, tmp_path: Path) -> None:
        creds_file = tmp_path / "creds.yaml"
        creds_file.write_text("identifier: me@example.com\n")
        source = CredentialSource(SessionTokenStore(tmp_path / "s.json"), creds_file)

        with pytest.raises(ConfigError, match="identifier' and 'secret'"):
            await source.get_credentials()

    @pytest.mark.asyncio
    async def test_non_mapping_file_is_a_config_error(self, tmp_path: Path) -> None:
        creds_file = tmp_path / "creds.yaml"
        creds_file.write_text("- hunter2\n")
        source = CredentialSource(SessionTokenStore(tmp_path / "s.json"), creds_file)

        with pytest.raises(ConfigError) as exc_info:
            await source.get_credentials()
        assert "hunter2" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_falls_back_to_prompt(self, tmp_path: Path) -> None:
        expected = Credentials(identifier="typed@example.com", secret="s3cret")
        prompt = MagicMock(return_value=expected)
        source = CredentialSource(SessionTokenStore(tmp_path / "s.json"), tmp_path / "absent.yaml", prompt=prompt)

        assert await source.get_credentials() is expected
        prompt.assert_called_once_with()

    def test_secret_is_masked_in_repr(self) -> None:
        creds = Credentials(identifier="me@example.com", secret="hunter2")
        assert "hunter2" not in repr(creds)
        assert "hunter2" not in str(creds)
