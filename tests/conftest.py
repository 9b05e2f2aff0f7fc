"""
Shared pytest fixtures for drog tests.

This module provides common fixtures used across test modules including:
- Credential fixtures
- Client configuration fixtures
- Mock Drive session fixtures
"""

import json
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterator
from unittest.mock import MagicMock

import pytest
import structlog

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from drog.models import Credential

# ============================================================================
# Logging
# ============================================================================


@pytest.fixture(autouse=True)
def reset_structlog() -> Iterator[None]:
    """Undo logging configuration applied by CLI invocations."""
    yield
    structlog.reset_defaults()


# ============================================================================
# Credential Fixtures
# ============================================================================


@pytest.fixture
def sample_credential() -> Credential:
    """Create a valid, unexpired credential."""
    return Credential(
        token="ya29.access-token",
        refresh_token="1//refresh-token",
        client_id="client-id.apps.googleusercontent.com",
        client_secret="client-secret",
        scopes=["https://www.googleapis.com/auth/drive"],
        expiry=datetime.utcnow().replace(microsecond=0) + timedelta(hours=1),
    )


@pytest.fixture
def expired_credential(sample_credential: Credential) -> Credential:
    """Create a credential whose access token has expired."""
    return sample_credential.model_copy(
        update={"expiry": datetime.utcnow().replace(microsecond=0) - timedelta(hours=1)}
    )


@pytest.fixture
def token_path(tmp_path: Path) -> Path:
    """Return a credential cache path inside a not-yet-existing directory."""
    return tmp_path / "credentials" / "drog-drive.json"


# ============================================================================
# Client Configuration Fixtures
# ============================================================================


@pytest.fixture
def client_config() -> Dict[str, Any]:
    """Return an installed-app OAuth2 client configuration."""
    return {
        "installed": {
            "client_id": "client-id.apps.googleusercontent.com",
            "client_secret": "client-secret",
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": ["http://localhost"],
        }
    }


@pytest.fixture
def client_secrets_path(tmp_path: Path, client_config: Dict[str, Any]) -> Path:
    """Write the client configuration to a file and return its path."""
    path = tmp_path / "client_secret.json"
    path.write_text(json.dumps(client_config))
    return path


# ============================================================================
# Drive Fixtures
# ============================================================================


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock Drive session whose create call succeeds."""
    session = MagicMock()
    session.files().create().execute.return_value = {
        "id": "file123",
        "name": "Q1  drogpost",
        "mimeType": "application/vnd.google-apps.spreadsheet",
    }
    return session
