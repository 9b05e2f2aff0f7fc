"""Configuration dataclasses for drog.

This module defines the configuration structure: OAuth2 file locations and
scopes, upload behaviour, and page fetching. Values come from defaults and
an optional YAML settings file.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
import yaml  # type: ignore[import-untyped]

from drog.errors import ConfigError

logger = structlog.get_logger()

# If modifying these scopes, delete the cached credential file so the
# authorization exchange runs again.
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"

DEFAULT_CLIENT_SECRETS_PATH = Path("~/.google_drive_client_secret.json")
DEFAULT_TOKEN_PATH = Path("~/.credentials/drog-drive.json")
DEFAULT_SETTINGS_PATH = Path("~/.config/drog/settings.yaml")

TITLE_MARKER = "  drogpost"


@dataclass
class AuthConfig:
    """OAuth2 authentication configuration."""

    client_secrets_path: Path = field(default_factory=lambda: DEFAULT_CLIENT_SECRETS_PATH.expanduser())
    token_path: Path = field(default_factory=lambda: DEFAULT_TOKEN_PATH.expanduser())
    scopes: List[str] = field(default_factory=lambda: [DRIVE_SCOPE])


@dataclass
class UploadConfig:
    """Upload configuration."""

    title_marker: str = TITLE_MARKER
    notify: bool = True


@dataclass
class FetchConfig:
    """Web page fetch configuration for URL mode."""

    timeout_seconds: Optional[float] = None  # None waits indefinitely
    user_agent: str = "drog"


@dataclass
class DrogConfig:
    """Main configuration for drog.

    Example:
        config = DrogConfig()
        config.upload.notify = False
        config.auth.token_path = Path("/tmp/token.json")
    """

    auth: AuthConfig = field(default_factory=AuthConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DrogConfig":
        """Create a DrogConfig from a dictionary (e.g., from YAML).

        Args:
            data: Dictionary with configuration values.

        Returns:
            DrogConfig instance with values from the dictionary.
        """
        config = cls()

        if "auth" in data:
            auth_data = data["auth"] or {}
            if "client_secrets_path" in auth_data:
                config.auth.client_secrets_path = Path(auth_data["client_secrets_path"]).expanduser()
            if "token_path" in auth_data:
                config.auth.token_path = Path(auth_data["token_path"]).expanduser()
            if "scopes" in auth_data:
                config.auth.scopes = list(auth_data["scopes"])

        if "upload" in data:
            upload_data = data["upload"] or {}
            config.upload.title_marker = upload_data.get("title_marker", config.upload.title_marker)
            config.upload.notify = bool(upload_data.get("notify", config.upload.notify))

        if "fetch" in data:
            fetch_data = data["fetch"] or {}
            config.fetch.timeout_seconds = fetch_data.get(
                "timeout_seconds", config.fetch.timeout_seconds
            )
            config.fetch.user_agent = fetch_data.get("user_agent", config.fetch.user_agent)

        return config


def load_config(path: Optional[Path] = None) -> DrogConfig:
    """Load configuration from a YAML settings file.

    Args:
        path: Settings file. Defaults to ~/.config/drog/settings.yaml; a
            missing default file means built-in defaults.

    Returns:
        Loaded configuration.

    Raises:
        ConfigError: If an explicitly given file is missing, or any file is
            not a valid YAML mapping.
    """
    explicit = path is not None
    settings_path = (path or DEFAULT_SETTINGS_PATH).expanduser()

    if not settings_path.exists():
        if explicit:
            raise ConfigError(f"Settings file not found: {settings_path}", path=str(settings_path))
        logger.debug("using_default_config")
        return DrogConfig()

    try:
        with open(settings_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(
            f"Unable to read settings file {settings_path}: {e}", path=str(settings_path)
        ) from e

    if not isinstance(data, dict):
        raise ConfigError(
            f"Settings file {settings_path} must contain a YAML mapping",
            path=str(settings_path),
        )

    logger.info("config_loaded", path=str(settings_path))
    return DrogConfig.from_dict(data)
