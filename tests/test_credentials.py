"""Tests for credentials.json / token.json handling."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
import json
import os
import stat

import pytest

from waybar_gcal.config import ConfigError
from waybar_gcal.credentials import (
    DEFAULT_TOKEN_URI,
    Token,
    read_client_config,
    read_token,
    write_token,
)


@pytest.fixture
def installed_credentials():
    return {
        "installed": {
            "client_id": "client-123.apps.googleusercontent.com",
            "client_secret": "shh",
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": ["http://localhost"],
        }
    }


class TestReadClientConfig:
    def test_reads_installed_section(self, tmp_path, installed_credentials):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps(installed_credentials))

        client = read_client_config(path)

        assert client.client_id == "client-123.apps.googleusercontent.com"
        assert client.client_secret == "shh"
        assert client.redirect_uri == "http://localhost"

    def test_reads_web_section_with_defaults(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps({"web": {"client_id": "id", "client_secret": "s"}}))

        client = read_client_config(path)

        assert client.token_uri == DEFAULT_TOKEN_URI
        assert client.redirect_uri == ""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Couldn't read credentials"):
            read_client_config(tmp_path / "credentials.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text("{not json")

        with pytest.raises(ConfigError, match="Couldn't parse"):
            read_client_config(path)

    def test_missing_client_section(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps({"other": {}}))

        with pytest.raises(ConfigError, match="no 'installed' or 'web'"):
            read_client_config(path)

    def test_missing_secret(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps({"installed": {"client_id": "id"}}))

        with pytest.raises(ConfigError, match="client_secret"):
            read_client_config(path)


class TestToken:
    def test_valid_without_expiry(self):
        assert Token(access_token="abc").is_valid()

    def test_invalid_without_access_token(self):
        assert not Token(refresh_token="r").is_valid()

    def test_expired(self):
        now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        token = Token(access_token="abc", expiry=now - timedelta(minutes=1))

        assert not token.is_valid(now)

    def test_about_to_expire_counts_as_expired(self):
        now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        token = Token(access_token="abc", expiry=now + timedelta(seconds=5))

        assert not token.is_valid(now)

    def test_reads_go_style_expiry(self, tmp_path):
        path = tmp_path / "token.json"
        path.write_text(
            json.dumps(
                {
                    "access_token": "ya29.a0",
                    "token_type": "Bearer",
                    "refresh_token": "1//0g",
                    "expiry": "2024-05-01T10:15:30.123456789+02:00",
                }
            )
        )

        token = read_token(path)

        assert token.access_token == "ya29.a0"
        assert token.refresh_token == "1//0g"
        assert token.expiry == datetime(
            2024, 5, 1, 8, 15, 30, 123456, tzinfo=timezone.utc
        )

    def test_reads_zulu_expiry(self, tmp_path):
        path = tmp_path / "token.json"
        path.write_text(json.dumps({"access_token": "a", "expiry": "2024-05-01T10:15:30Z"}))

        assert read_token(path).expiry == datetime(2024, 5, 1, 10, 15, 30, tzinfo=timezone.utc)

    def test_go_zero_expiry_means_no_expiry(self, tmp_path):
        path = tmp_path / "token.json"
        path.write_text(
            json.dumps(
                {
                    "access_token": "ya29.a0",
                    "token_type": "Bearer",
                    "refresh_token": "1//0g",
                    "expiry": "0001-01-01T00:00:00Z",
                }
            )
        )

        token = read_token(path)

        assert token.expiry is None
        assert token.is_valid()

    def test_far_past_expiry_is_expired(self):
        token = Token(
            access_token="abc",
            expiry=datetime(1, 1, 2, tzinfo=timezone.utc),
        )

        assert not token.is_valid()

    def test_bad_expiry(self, tmp_path):
        path = tmp_path / "token.json"
        path.write_text(json.dumps({"access_token": "a", "expiry": "tomorrow"}))

        with pytest.raises(ConfigError, match="Invalid token expiry"):
            read_token(path)

    def test_missing_token_file(self, tmp_path):
        with pytest.raises(ConfigError):
            read_token(tmp_path / "token.json")


class TestWriteToken:
    def test_writes_owner_only_json(self, tmp_path):
        path = tmp_path / "nested" / "token.json"
        expiry = datetime(2024, 1, 1, 13, 0, tzinfo=timezone.utc)

        write_token(path, Token(access_token="a", refresh_token="r", expiry=expiry))

        assert json.loads(path.read_text()) == {
            "access_token": "a",
            "token_type": "Bearer",
            "refresh_token": "r",
            "expiry": "2024-01-01T13:00:00+00:00",
        }
        if os.name == "posix":
            assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_written_token_reads_back(self, tmp_path):
        path = tmp_path / "token.json"
        token = Token(
            access_token="a",
            refresh_token="r",
            expiry=datetime(2024, 1, 1, 13, 0, tzinfo=timezone.utc),
        )

        write_token(path, token)

        assert read_token(path) == token
