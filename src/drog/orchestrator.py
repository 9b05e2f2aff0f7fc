"""
Upload orchestration for the three invocation modes.

- Path mode: a local file, classified by its suffix
- Stream mode: piped content with an explicit extension (.txt, .html, .csv)
- URL mode: a fetched web page, always uploaded as HTML

Every mode appends the title marker once and hands a single UploadRequest
to the Drive uploader.
"""

from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Any, BinaryIO, Optional, Union

import structlog

from drog.classifier import (
    STREAMABLE_EXTENSIONS,
    extension_from_path,
    normalize_extension,
    valid_for_streamed_input,
)
from drog.config import TITLE_MARKER
from drog.errors import FileError, InvalidExtensionError
from drog.gdrive.uploader import UploadRequest
from drog.models import UploadResult
from drog.sources import FetchedPage, PageFetcher

logger = structlog.get_logger()

HTML_EXTENSION = ".html"
STDIN_SOURCE = "<stdin>"


class InvocationMode(str, Enum):
    """Where the uploaded content comes from."""
    PATH = "path"
    STREAM = "stream"
    URL = "url"


def compose_title(title: str, marker: str = TITLE_MARKER) -> str:
    """Append the provenance marker to a user-supplied title."""
    return title + marker


def check_streamable(extension: str) -> str:
    """Normalize a piped-input extension and make sure it is allowed.

    Raises:
        InvalidExtensionError: If the extension is not .txt, .html or .csv.
    """
    normalized = normalize_extension(extension)
    if not valid_for_streamed_input(normalized):
        allowed = ", ".join(sorted(STREAMABLE_EXTENSIONS))
        raise InvalidExtensionError(
            f"Invalid extension for piped input: '{extension}' (allowed: {allowed})",
            extension=extension,
        )
    return normalized


class UploadOrchestrator:
    """Builds upload requests for each invocation mode and dispatches them.

    Example:
        orchestrator = UploadOrchestrator(DriveUploader(session))
        result = orchestrator.upload_path("report.xlsx", "Q1")
        # uploaded as "Q1  drogpost", converted into a Google Sheet
    """

    def __init__(
        self,
        uploader: Any,
        fetcher: Optional[PageFetcher] = None,
        title_marker: str = TITLE_MARKER,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            uploader: Object with an upload(UploadRequest) -> UploadResult method.
            fetcher: Page fetcher for URL mode. Created on first use if omitted.
            title_marker: Suffix appended to every title.
        """
        self._uploader = uploader
        self._fetcher = fetcher
        self._title_marker = title_marker

    def upload_path(self, path: Union[str, Path], title: str) -> UploadResult:
        """Upload a local file.

        Raises:
            FileError: If the file cannot be opened for reading.
            UploadError: If Drive rejects the upload.
        """
        path = Path(path)
        extension = extension_from_path(path)

        try:
            f = open(path, "rb")
        except OSError as e:
            raise FileError(f"Unable to open {path}: {e.strerror or e}", path=str(path)) from e

        with f:
            request = UploadRequest(
                content=f,
                title=compose_title(title, self._title_marker),
                extension=extension,
                source=str(path),
            )
            return self._dispatch(InvocationMode.PATH, request)

    def upload_stream(self, stream: BinaryIO, title: str, extension: str) -> UploadResult:
        """Upload piped content.

        The extension is checked before the stream is read, so a disallowed
        extension never reaches the network.

        Raises:
            InvalidExtensionError: If the extension cannot be streamed.
            UploadError: If Drive rejects the upload.
        """
        normalized = check_streamable(extension)
        data = stream.read()
        return self._upload_data(InvocationMode.STREAM, data, title, normalized, STDIN_SOURCE)

    def upload_bytes(self, data: bytes, title: str, extension: str) -> UploadResult:
        """Upload an in-memory payload classified by the given extension."""
        return self._upload_data(
            InvocationMode.STREAM, data, title, normalize_extension(extension), None
        )

    def fetch_page(self, url: str) -> FetchedPage:
        """Fetch a web page for URL mode.

        Raises:
            FetchError: If the URL is malformed or the fetch fails.
        """
        if self._fetcher is None:
            self._fetcher = PageFetcher()
        return self._fetcher.fetch(url)

    def upload_page(self, page: FetchedPage, title: str) -> UploadResult:
        """Upload an already fetched page as HTML."""
        return self._upload_data(InvocationMode.URL, page.body, title, HTML_EXTENSION, page.url)

    def upload_url(self, url: str, title: str = "", use_page_title: bool = False) -> UploadResult:
        """Fetch a page and upload it.

        Args:
            url: Page address.
            title: Title to use unless use_page_title is set.
            use_page_title: Use the page's <title> text verbatim.

        Raises:
            FetchError: If the URL is malformed or the fetch fails.
            UploadError: If Drive rejects the upload.
        """
        page = self.fetch_page(url)
        return self.upload_page(page, page.title if use_page_title else title)

    def _upload_data(
        self,
        mode: InvocationMode,
        data: bytes,
        title: str,
        extension: str,
        source: Optional[str],
    ) -> UploadResult:
        # Drive media uploads need a seekable body
        with BytesIO(data) as buffer:
            request = UploadRequest(
                content=buffer,
                title=compose_title(title, self._title_marker),
                extension=extension,
                source=source,
            )
            return self._dispatch(mode, request)

    def _dispatch(self, mode: InvocationMode, request: UploadRequest) -> UploadResult:
        logger.debug("dispatching_upload", mode=mode.value, extension=request.extension)
        result: UploadResult = self._uploader.upload(request)
        return result
