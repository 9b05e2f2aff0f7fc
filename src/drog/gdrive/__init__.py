"""Google Drive integration for drog.

This module provides:
- Caching the OAuth2 credential on disk
- Authenticating with the Drive API (interactive code exchange)
- Uploading content with server-side conversion to Google formats

Example:
    from drog.gdrive import Authenticator, CredentialStore, DriveUploader, load_client_config

    client_config = load_client_config(client_secrets_path)
    session = Authenticator(CredentialStore(token_path)).get_session(client_config)
    uploader = DriveUploader(session)
"""

# Authentication
from drog.gdrive.auth import (
    Authenticator,
    CodeExchange,
    DriveSession,
    OAuthCodeExchange,
    load_client_config,
)

# Credential cache
from drog.gdrive.credentials import CredentialStore

# Uploader
from drog.gdrive.uploader import DriveUploader, UploadRequest

__all__ = [
    # Authentication
    "Authenticator",
    "CodeExchange",
    "DriveSession",
    "OAuthCodeExchange",
    "load_client_config",
    # Credential cache
    "CredentialStore",
    # Uploader
    "DriveUploader",
    "UploadRequest",
]
