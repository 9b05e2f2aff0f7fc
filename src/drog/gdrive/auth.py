"""Google Drive authentication for drog.

This module turns an OAuth2 client configuration into a live Drive session:
- load_client_config: reads the client secrets JSON downloaded from the
  Google Cloud Console
- Authenticator: reuses the cached credential or runs the interactive
  code exchange (visit a URL, paste the one-time code)
- DriveSession: binds a credential to the Drive v3 service and refreshes
  an expired access token before each remote call

Example:
    from drog.gdrive.auth import Authenticator, load_client_config
    from drog.gdrive.credentials import CredentialStore

    client_config = load_client_config(Path("~/.google_drive_client_secret.json").expanduser())
    auth = Authenticator(CredentialStore(token_path))
    session = auth.get_session(client_config)
    session.files().create(body={"name": "notes"}).execute()
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol
from urllib.parse import parse_qs, urlparse

import structlog
from google.auth.transport.requests import Request
from googleapiclient.discovery import Resource, build

from drog.errors import AuthError, ConfigError
from drog.gdrive.credentials import CredentialStore
from drog.models import Credential

logger = structlog.get_logger()

# Google Drive API version
DRIVE_API_VERSION = "v3"
DRIVE_API_SERVICE = "drive"

DEFAULT_SCOPES: List[str] = ["https://www.googleapis.com/auth/drive"]

# Google no longer accepts the out-of-band redirect; Desktop clients get a
# loopback redirect and the code arrives in the redirected page's address.
OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"
LOOPBACK_REDIRECT_URI = "http://localhost"

CLIENT_SECTIONS = ("installed", "web")


def load_client_config(path: Path) -> Dict[str, Any]:
    """Read an OAuth2 client secrets file.

    Args:
        path: Path to the client secrets JSON file.

    Returns:
        Parsed client configuration with an "installed" or "web" section.

    Raises:
        ConfigError: If the file is missing, unreadable or malformed.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(
            f"Unable to read client secret file {path}: {e}. "
            "Download OAuth2 credentials from Google Cloud Console: "
            "https://console.cloud.google.com/apis/credentials",
            path=str(path),
        ) from e

    try:
        config = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Client secret file {path} is not valid JSON: {e}", path=str(path)) from e

    if not isinstance(config, dict) or not any(key in config for key in CLIENT_SECTIONS):
        raise ConfigError(
            f"Client secret file {path} has no 'installed' or 'web' client section",
            path=str(path),
        )

    logger.debug("client_config_loaded", path=str(path))
    return config


class CodeExchange(Protocol):
    """Remote half of the interactive authorization exchange."""

    def authorization_url(self) -> str:
        """Return the URL the user must visit to obtain a one-time code."""
        ...

    def exchange(self, code: str) -> Credential:
        """Trade a one-time code for a credential."""
        ...


# Receives the authorization URL, returns the code typed by the user
CodePrompt = Callable[[str], str]


class OAuthCodeExchange:
    """CodeExchange backed by google-auth-oauthlib's Flow."""

    def __init__(self, client_config: Dict[str, Any], scopes: List[str]) -> None:
        from google_auth_oauthlib.flow import Flow

        self._flow = Flow.from_client_config(
            client_config,
            scopes=scopes,
            redirect_uri=_redirect_uri(client_config),
        )

    def authorization_url(self) -> str:
        url, _state = self._flow.authorization_url(access_type="offline", prompt="consent")
        return str(url)

    def exchange(self, code: str) -> Credential:
        self._flow.fetch_token(code=code)
        return Credential.from_google(self._flow.credentials)


def _redirect_uri(client_config: Dict[str, Any]) -> str:
    for section in CLIENT_SECTIONS:
        uris = client_config.get(section, {}).get("redirect_uris") or []
        for uri in uris:
            if uri != OOB_REDIRECT_URI:
                return str(uri)
    return LOOPBACK_REDIRECT_URI


def extract_code(answer: str) -> str:
    """Return the one-time code from what the user pasted.

    Accepts the bare code or the whole redirected address, from which the
    ``code`` query parameter is taken.
    """
    answer = answer.strip()
    if "://" not in answer:
        return answer
    codes = parse_qs(urlparse(answer).query).get("code") or [""]
    return codes[0]


def read_code_from_stdin(auth_url: str) -> str:
    """Print the authorization URL and read the code pasted by the user."""
    print(
        "Open the following link in your browser and grant access:\n"
        f"{auth_url}\n"
        "Your browser is then sent to a page that may fail to load. Copy the 'code' "
        "parameter from its address bar, or paste the whole address:"
    )
    return input().strip()


class DriveSession:
    """Authenticated Drive v3 access bound to one credential.

    The access token is refreshed with the refresh token whenever it has
    expired, and the refreshed credential is written back to the store.
    """

    def __init__(
        self,
        credential: Credential,
        store: Optional[CredentialStore] = None,
    ) -> None:
        self._credentials = credential.to_google()
        self._store = store
        self._service: Optional[Resource] = None

    @property
    def credential(self) -> Credential:
        """Current credential, including any refreshed access token."""
        return Credential.from_google(self._credentials)

    def files(self) -> Any:
        """Return the Drive files collection, refreshing the token first."""
        self._ensure_fresh()
        return self._get_service().files()

    def _ensure_fresh(self) -> None:
        if not self._credentials.expired:
            return
        if not self._credentials.refresh_token:
            raise AuthError(
                "Access token expired and no refresh token is cached. "
                "Delete the credential file and authorize again.",
                reason="no_refresh_token",
            )

        try:
            logger.debug("refreshing_access_token")
            self._credentials.refresh(Request())  # type: ignore[no-untyped-call]
        except Exception as e:
            logger.error("token_refresh_failed", error=str(e))
            hint = f" Try deleting {self._store.path} and re-authenticating." if self._store else ""
            raise AuthError(f"Failed to refresh OAuth2 token: {e}.{hint}", reason="refresh") from e

        if self._store is not None:
            try:
                self._store.save(self.credential)
            except OSError as e:
                # Non-fatal: the refreshed token is still valid in memory
                logger.warning("credential_save_failed", path=str(self._store.path), error=str(e))

    def _get_service(self) -> Resource:
        if self._service is None:
            try:
                self._service = build(
                    DRIVE_API_SERVICE,
                    DRIVE_API_VERSION,
                    credentials=self._credentials,
                    cache_discovery=False,
                )
            except Exception as e:
                logger.error("drive_service_build_failed", error=str(e))
                raise AuthError(
                    f"Failed to build Drive API service: {e}. "
                    "This may indicate a network issue or API availability problem.",
                    reason="build",
                ) from e
        return self._service


class Authenticator:
    """Obtains a DriveSession, authorizing interactively when needed.

    Attributes:
        store: Credential cache consulted before any interactive exchange.
        scopes: OAuth2 scopes requested on a fresh authorization.
    """

    def __init__(
        self,
        store: CredentialStore,
        scopes: Optional[List[str]] = None,
        *,
        prompt: Optional[CodePrompt] = None,
        exchange_factory: Optional[Callable[[Dict[str, Any], List[str]], CodeExchange]] = None,
    ) -> None:
        """Initialize the authenticator.

        Args:
            store: Where the credential is cached between runs.
            scopes: OAuth2 scopes. Defaults to full Drive access.
            prompt: Shows the authorization URL and returns the code the
                user typed. Defaults to reading standard input.
            exchange_factory: Builds the CodeExchange for a client
                configuration. Defaults to OAuthCodeExchange.
        """
        self.store = store
        self.scopes = scopes or DEFAULT_SCOPES.copy()
        self._prompt = prompt or read_code_from_stdin
        self._exchange_factory = exchange_factory or OAuthCodeExchange

    def get_session(self, client_config: Dict[str, Any]) -> DriveSession:
        """Return a session for the cached or freshly authorized credential.

        Args:
            client_config: Parsed OAuth2 client configuration.

        Returns:
            DriveSession ready for Drive calls.

        Raises:
            AuthError: If the interactive exchange fails.
        """
        credential = self.store.load()
        if credential is None:
            logger.info("authorization_required")
            credential = self._authorize(client_config)
            try:
                self.store.save(credential)
            except OSError as e:
                # Non-fatal: we have a valid credential, just can't cache it
                logger.warning("credential_save_failed", path=str(self.store.path), error=str(e))
        else:
            logger.debug("using_cached_credential", path=str(self.store.path))

        return DriveSession(credential, store=self.store)

    def _authorize(self, client_config: Dict[str, Any]) -> Credential:
        try:
            exchange = self._exchange_factory(client_config, self.scopes)
            auth_url = exchange.authorization_url()
        except Exception as e:
            raise AuthError(f"Unable to start authorization: {e}", reason="setup") from e

        try:
            code = extract_code(self._prompt(auth_url))
        except (EOFError, KeyboardInterrupt, OSError) as e:
            raise AuthError("Unable to read authorization code", reason="prompt") from e
        if not code:
            raise AuthError("Unable to read authorization code: no code entered", reason="prompt")

        try:
            credential = exchange.exchange(code)
        except Exception as e:
            logger.error("code_exchange_failed", error=str(e))
            raise AuthError(f"Unable to retrieve token from web: {e}", reason="exchange") from e

        logger.info("authorization_complete", scopes=credential.scopes)
        return credential
