"""
Core data models for drog.

Credentials, classification rules and upload results are defined here so
the classifier, the Drive layer and the reporter share one set of types.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class TargetDocumentType(str, Enum):
    """Google-native formats Drive can convert an upload into."""
    DOCUMENT = "application/vnd.google-apps.document"
    SPREADSHEET = "application/vnd.google-apps.spreadsheet"
    PRESENTATION = "application/vnd.google-apps.presentation"
    DRAWING = "application/vnd.google-apps.drawing"


class ClassificationRule(BaseModel):
    """How content with a given extension is sent to Drive."""
    model_config = ConfigDict(frozen=True)

    source_mime: str = Field(description="MIME type of the raw uploaded bytes")
    target_type: TargetDocumentType = Field(description="Google document type to convert into")
    convert: bool = Field(default=True, description="Whether to request server-side conversion")


class Credential(BaseModel):
    """OAuth2 authorized-user credential persisted between runs.

    The JSON form matches the "authorized user" files written by
    google-auth, so existing token caches can be reused.
    """
    model_config = ConfigDict(frozen=True)

    token: Optional[str] = Field(default=None, description="Short-lived access token")
    refresh_token: Optional[str] = Field(default=None, description="Long-lived refresh token")
    token_uri: str = Field(default=GOOGLE_TOKEN_URI)
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    scopes: list[str] = Field(default_factory=list)
    expiry: Optional[datetime] = Field(default=None, description="Access token expiry, naive UTC")

    @field_validator("expiry")
    @classmethod
    def _naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # google-auth compares expiry against a naive UTC clock
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    @property
    def usable(self) -> bool:
        """Whether the credential can authorize a request, now or after a refresh."""
        return bool(self.token) or bool(self.refresh_token)

    @classmethod
    def from_google(cls, credentials: Any) -> "Credential":
        """Build from a google.oauth2.credentials.Credentials instance."""
        return cls(
            token=credentials.token,
            refresh_token=credentials.refresh_token,
            token_uri=credentials.token_uri or GOOGLE_TOKEN_URI,
            client_id=credentials.client_id,
            client_secret=credentials.client_secret,
            scopes=list(credentials.scopes or []),
            expiry=credentials.expiry,
        )

    def to_google(self) -> Any:
        """Return an equivalent google.oauth2.credentials.Credentials."""
        from google.oauth2.credentials import Credentials

        return Credentials(  # type: ignore[no-untyped-call]
            token=self.token,
            refresh_token=self.refresh_token,
            token_uri=self.token_uri,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=self.scopes or None,
            expiry=self.expiry,
        )


class UploadResult(BaseModel):
    """Drive's acknowledgment of a created file."""
    model_config = ConfigDict(frozen=True)

    file_id: str = Field(description="Drive file ID")
    name: str = Field(description="Stored file name")
    mime_type: str = Field(description="Resolved MIME type of the stored file")

    @classmethod
    def from_drive_response(cls, response: dict[str, Any]) -> "UploadResult":
        """Build from a files.create response with id, name and mimeType fields."""
        return cls(
            file_id=str(response.get("id", "")),
            name=str(response.get("name", "")),
            mime_type=str(response.get("mimeType", "")),
        )
