"""Unit tests for Google Drive authentication.

Tests client configuration loading, the interactive code exchange, the
credential cache, and access token refresh.
"""

import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import MagicMock, patch

import pytest
from google.oauth2.credentials import Credentials

from drog.errors import AuthError, ConfigError
from drog.gdrive.auth import (
    LOOPBACK_REDIRECT_URI,
    OOB_REDIRECT_URI,
    Authenticator,
    DriveSession,
    _redirect_uri,
    extract_code,
    load_client_config,
)
from drog.gdrive.credentials import CredentialStore
from drog.models import Credential

# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


class FakeExchange:
    """CodeExchange that accepts a single known code."""

    def __init__(self, credential: Credential, valid_code: str = "4/valid-code") -> None:
        self.credential = credential
        self.valid_code = valid_code
        self.codes: List[str] = []

    def authorization_url(self) -> str:
        return "https://accounts.google.com/o/oauth2/auth?client_id=abc"

    def exchange(self, code: str) -> Credential:
        self.codes.append(code)
        if code != self.valid_code:
            raise ValueError("invalid_grant: Malformed auth code.")
        return self.credential


@pytest.fixture
def fake_exchange(sample_credential: Credential) -> FakeExchange:
    return FakeExchange(sample_credential)


def make_authenticator(
    store: CredentialStore, exchange: FakeExchange, prompt: Any
) -> Authenticator:
    return Authenticator(store, prompt=prompt, exchange_factory=lambda config, scopes: exchange)


# -----------------------------------------------------------------------------
# Test load_client_config
# -----------------------------------------------------------------------------


class TestLoadClientConfig:
    """Tests for load_client_config."""

    def test_loads_installed_client(
        self, client_secrets_path: Path, client_config: Dict[str, Any]
    ) -> None:
        assert load_client_config(client_secrets_path) == client_config

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file is a configuration error naming the path."""
        path = tmp_path / "absent.json"
        with pytest.raises(ConfigError) as exc_info:
            load_client_config(path)
        assert exc_info.value.path == str(path)
        assert "console.cloud.google.com" in str(exc_info.value)

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "client_secret.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="not valid JSON"):
            load_client_config(path)

    def test_missing_client_section(self, tmp_path: Path) -> None:
        path = tmp_path / "client_secret.json"
        path.write_text(json.dumps({"client_id": "abc"}))
        with pytest.raises(ConfigError, match="no 'installed' or 'web'"):
            load_client_config(path)

    def test_redirect_uri_prefers_configured_value(self, client_config: Dict[str, Any]) -> None:
        assert _redirect_uri(client_config) == "http://localhost"

    def test_redirect_uri_skips_out_of_band(self) -> None:
        """Legacy client files listing the retired OOB URI first use the loopback entry."""
        config = {"installed": {"redirect_uris": [OOB_REDIRECT_URI, "http://localhost:8080"]}}
        assert _redirect_uri(config) == "http://localhost:8080"

    def test_redirect_uri_falls_back_to_loopback(self) -> None:
        assert _redirect_uri({"web": {"client_id": "abc"}}) == LOOPBACK_REDIRECT_URI
        assert _redirect_uri({"installed": {"redirect_uris": [OOB_REDIRECT_URI]}}) == (
            LOOPBACK_REDIRECT_URI
        )


# -----------------------------------------------------------------------------
# Test extract_code
# -----------------------------------------------------------------------------


class TestExtractCode:
    """Tests for extract_code."""

    def test_bare_code(self) -> None:
        assert extract_code("  4/0AbCdEf  \n") == "4/0AbCdEf"

    def test_redirected_address(self) -> None:
        """The code is taken from the address bar of the redirected page."""
        pasted = "http://localhost/?state=xyz&code=4/0AbCdEf&scope=https://www.googleapis.com/auth/drive"
        assert extract_code(pasted) == "4/0AbCdEf"

    def test_address_without_code(self) -> None:
        assert extract_code("http://localhost/?error=access_denied") == ""


# -----------------------------------------------------------------------------
# Test Authenticator
# -----------------------------------------------------------------------------


class TestAuthenticator:
    """Tests for Authenticator.get_session."""

    def test_first_run_prompts_and_saves(
        self,
        token_path: Path,
        client_config: Dict[str, Any],
        fake_exchange: FakeExchange,
        sample_credential: Credential,
    ) -> None:
        """Without a cache the user is prompted and the credential is cached."""
        prompt = MagicMock(return_value="4/valid-code")
        store = CredentialStore(token_path)

        session = make_authenticator(store, fake_exchange, prompt).get_session(client_config)

        prompt.assert_called_once_with(fake_exchange.authorization_url())
        assert fake_exchange.codes == ["4/valid-code"]
        assert session.credential == sample_credential
        assert store.load() == sample_credential

    def test_pasted_redirect_address_is_accepted(
        self, token_path: Path, client_config: Dict[str, Any], fake_exchange: FakeExchange
    ) -> None:
        prompt = MagicMock(return_value="http://localhost/?code=4/valid-code&scope=drive")

        make_authenticator(CredentialStore(token_path), fake_exchange, prompt).get_session(
            client_config
        )

        assert fake_exchange.codes == ["4/valid-code"]

    def test_cached_credential_skips_prompt(
        self,
        token_path: Path,
        client_config: Dict[str, Any],
        fake_exchange: FakeExchange,
        sample_credential: Credential,
    ) -> None:
        store = CredentialStore(token_path)
        store.save(sample_credential)
        prompt = MagicMock()

        session = make_authenticator(store, fake_exchange, prompt).get_session(client_config)

        prompt.assert_not_called()
        assert fake_exchange.codes == []
        assert session.credential == sample_credential

    def test_corrupt_cache_triggers_authorization(
        self,
        token_path: Path,
        client_config: Dict[str, Any],
        fake_exchange: FakeExchange,
    ) -> None:
        token_path.parent.mkdir(parents=True)
        token_path.write_text("garbage")
        prompt = MagicMock(return_value="4/valid-code")

        make_authenticator(CredentialStore(token_path), fake_exchange, prompt).get_session(
            client_config
        )

        prompt.assert_called_once()

    def test_tokenless_cache_triggers_authorization(
        self,
        token_path: Path,
        client_config: Dict[str, Any],
        fake_exchange: FakeExchange,
        sample_credential: Credential,
    ) -> None:
        token_path.parent.mkdir(parents=True)
        token_path.write_text("{}")
        prompt = MagicMock(return_value="4/valid-code")
        store = CredentialStore(token_path)

        make_authenticator(store, fake_exchange, prompt).get_session(client_config)

        prompt.assert_called_once()
        assert store.load() == sample_credential

    def test_empty_code_is_rejected(
        self, token_path: Path, client_config: Dict[str, Any], fake_exchange: FakeExchange
    ) -> None:
        authenticator = make_authenticator(
            CredentialStore(token_path), fake_exchange, MagicMock(return_value="")
        )

        with pytest.raises(AuthError) as exc_info:
            authenticator.get_session(client_config)

        assert exc_info.value.reason == "prompt"
        assert fake_exchange.codes == []

    def test_prompt_end_of_input(
        self, token_path: Path, client_config: Dict[str, Any], fake_exchange: FakeExchange
    ) -> None:
        authenticator = make_authenticator(
            CredentialStore(token_path), fake_exchange, MagicMock(side_effect=EOFError)
        )

        with pytest.raises(AuthError, match="Unable to read authorization code"):
            authenticator.get_session(client_config)

    def test_rejected_code_is_not_cached(
        self, token_path: Path, client_config: Dict[str, Any], fake_exchange: FakeExchange
    ) -> None:
        """A failed exchange raises and leaves no cache file behind."""
        authenticator = make_authenticator(
            CredentialStore(token_path), fake_exchange, MagicMock(return_value="4/wrong")
        )

        with pytest.raises(AuthError) as exc_info:
            authenticator.get_session(client_config)

        assert exc_info.value.reason == "exchange"
        assert "Unable to retrieve token from web" in str(exc_info.value)
        assert not token_path.exists()

    def test_exchange_setup_failure(self, token_path: Path, client_config: Dict[str, Any]) -> None:
        def broken_factory(config: Dict[str, Any], scopes: List[str]) -> Any:
            raise ValueError("Client secrets must be for a web or installed app.")

        authenticator = Authenticator(
            CredentialStore(token_path), prompt=MagicMock(), exchange_factory=broken_factory
        )

        with pytest.raises(AuthError) as exc_info:
            authenticator.get_session(client_config)
        assert exc_info.value.reason == "setup"

    def test_save_failure_is_not_fatal(
        self,
        token_path: Path,
        client_config: Dict[str, Any],
        fake_exchange: FakeExchange,
        sample_credential: Credential,
    ) -> None:
        """An unwritable cache still yields a usable session."""
        store = CredentialStore(token_path)
        prompt = MagicMock(return_value="4/valid-code")

        with patch.object(store, "save", side_effect=PermissionError("read-only")):
            session = make_authenticator(store, fake_exchange, prompt).get_session(client_config)

        assert session.credential == sample_credential

    def test_default_scope_is_full_drive(self, token_path: Path) -> None:
        authenticator = Authenticator(CredentialStore(token_path))
        assert authenticator.scopes == ["https://www.googleapis.com/auth/drive"]


# -----------------------------------------------------------------------------
# Test DriveSession
# -----------------------------------------------------------------------------


class TestDriveSession:
    """Tests for DriveSession service access and token refresh."""

    def test_builds_drive_v3_service_once(self, sample_credential: Credential) -> None:
        session = DriveSession(sample_credential)

        with patch("drog.gdrive.auth.build") as mock_build:
            session.files()
            session.files()

        mock_build.assert_called_once()
        args, kwargs = mock_build.call_args
        assert args == ("drive", "v3")
        assert kwargs["cache_discovery"] is False

    def test_build_failure_raises_auth_error(self, sample_credential: Credential) -> None:
        session = DriveSession(sample_credential)

        with patch("drog.gdrive.auth.build", side_effect=RuntimeError("no network")):
            with pytest.raises(AuthError) as exc_info:
                session.files()

        assert exc_info.value.reason == "build"

    def test_expired_token_is_refreshed_and_saved(
        self, token_path: Path, expired_credential: Credential
    ) -> None:
        """An expired access token is refreshed and written back to the cache."""
        store = CredentialStore(token_path)
        new_expiry = datetime.utcnow().replace(microsecond=0) + timedelta(hours=1)

        def fake_refresh(credentials: Credentials, request: Any) -> None:
            credentials.token = "ya29.refreshed"
            credentials.expiry = new_expiry

        session = DriveSession(expired_credential, store=store)
        with patch.object(Credentials, "refresh", autospec=True, side_effect=fake_refresh):
            with patch("drog.gdrive.auth.build"):
                session.files()

        saved = store.load()
        assert saved is not None
        assert saved.token == "ya29.refreshed"
        assert saved.expiry == new_expiry
        assert saved.refresh_token == expired_credential.refresh_token

    def test_unexpired_token_is_not_refreshed(self, sample_credential: Credential) -> None:
        session = DriveSession(sample_credential)

        with patch.object(Credentials, "refresh") as mock_refresh:
            with patch("drog.gdrive.auth.build"):
                session.files()

        mock_refresh.assert_not_called()

    def test_refresh_failure_raises_auth_error(
        self, token_path: Path, expired_credential: Credential
    ) -> None:
        session = DriveSession(expired_credential, store=CredentialStore(token_path))

        with patch.object(Credentials, "refresh", side_effect=RuntimeError("invalid_grant")):
            with pytest.raises(AuthError) as exc_info:
                session.files()

        assert exc_info.value.reason == "refresh"
        assert str(token_path) in str(exc_info.value)

    def test_expired_without_refresh_token(self, expired_credential: Credential) -> None:
        session = DriveSession(expired_credential.model_copy(update={"refresh_token": None}))

        with pytest.raises(AuthError) as exc_info:
            session.files()

        assert exc_info.value.reason == "no_refresh_token"
