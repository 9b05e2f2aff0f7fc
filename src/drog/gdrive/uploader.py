"""Google Drive create-and-convert uploads.

The uploader classifies the request's extension, sends the content typed
with the source MIME type, and asks Drive to convert it into the target
Google document type.

Example:
    from drog.gdrive.uploader import DriveUploader, UploadRequest

    uploader = DriveUploader(session)
    with open("report.xlsx", "rb") as f:
        result = uploader.upload(UploadRequest(content=f, title="Q1  drogpost", extension=".xlsx"))
    print(result.file_id)
"""

from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, Optional

import structlog
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from drog.classifier import classify
from drog.errors import AuthError, UploadError
from drog.models import ClassificationRule, UploadResult

logger = structlog.get_logger()

RESPONSE_FIELDS = "id, name, mimeType"


@dataclass
class UploadRequest:
    """One piece of content to upload.

    Attributes:
        content: Seekable binary stream positioned at the start of the data.
        title: Final Drive file name, marker included.
        extension: Normalized extension used for classification.
        source: Where the content came from (path, "<stdin>" or URL), for logs.
    """

    content: BinaryIO
    title: str
    extension: str
    source: Optional[str] = None


def build_metadata(title: str, rule: ClassificationRule) -> Dict[str, str]:
    """Drive file metadata for a create call.

    A mimeType is only set when conversion is requested; without it Drive
    stores the bytes unchanged.
    """
    metadata = {"name": title}
    if rule.convert:
        metadata["mimeType"] = rule.target_type.value
    return metadata


class DriveUploader:
    """Creates Drive files from UploadRequests.

    The session may be a DriveSession or any object exposing a Drive v3
    files() collection.
    """

    def __init__(self, session: Any, resumable: bool = True) -> None:
        """Initialize the uploader.

        Args:
            session: Authenticated session exposing files().
            resumable: Use Drive's resumable upload protocol.
        """
        self._session = session
        self._resumable = resumable

    def upload(self, request: UploadRequest) -> UploadResult:
        """Upload content and request conversion into its target type.

        Args:
            request: Content, title and extension to upload.

        Returns:
            UploadResult with Drive's ID, name and MIME type.

        Raises:
            UploadError: If Drive rejects or fails the call.
            AuthError: If the session cannot refresh its credential.
        """
        rule = classify(request.extension)
        metadata = build_metadata(request.title, rule)
        media = MediaIoBaseUpload(
            request.content,
            mimetype=rule.source_mime,
            resumable=self._resumable,
        )

        logger.info(
            "upload_started",
            title=request.title,
            source=request.source,
            source_mime=rule.source_mime,
            target_type=rule.target_type.value if rule.convert else None,
        )

        try:
            response = (
                self._session.files()
                .create(body=metadata, media_body=media, fields=RESPONSE_FIELDS)
                .execute()
            )
        except AuthError:
            raise
        except HttpError as e:
            raise self._http_error(e, request.title) from e
        except Exception as e:
            logger.error("upload_failed", title=request.title, error=str(e), error_type=type(e).__name__)
            raise UploadError(f"Upload FAILED for '{request.title}': {e}", title=request.title) from e

        result = UploadResult.from_drive_response(response)
        logger.info("upload_complete", file_id=result.file_id, name=result.name, mime_type=result.mime_type)
        return result

    def _http_error(self, error: HttpError, title: str) -> UploadError:
        status_code = getattr(getattr(error, "resp", None), "status", None)
        try:
            status_code = int(status_code) if status_code is not None else None
        except (TypeError, ValueError):
            status_code = None
        reason = str(getattr(error, "reason", "") or error)
        reason_lower = reason.lower()

        logger.error("upload_failed", title=title, status_code=status_code, error=reason)

        if status_code == 507 or "storage quota" in reason_lower or "quota" in reason_lower:
            message = (
                f"Storage quota exceeded when uploading '{title}': {reason}. "
                "Free up space in your Google Drive or upgrade storage."
            )
        elif status_code in (401, 403):
            message = (
                f"Permission denied when uploading '{title}': {reason}. "
                "If you changed scopes, delete the cached credential file and authorize again."
            )
        elif status_code == 404:
            message = f"Drive could not find a resource needed for '{title}': {reason}"
        else:
            message = f"Upload FAILED for '{title}' (HTTP {status_code}): {reason}"

        return UploadError(message, title=title, status_code=status_code)
