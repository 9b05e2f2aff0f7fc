"""Reporting upload outcomes to the user."""

from typing import Optional

import structlog
from rich.console import Console

from drog.models import UploadResult
from drog.notify import DesktopNotifier

logger = structlog.get_logger()

SUCCESS_TITLE = "Upload succeeded"


class ResultReporter:
    """Prints upload results and mirrors successes as desktop notifications."""

    def __init__(
        self,
        console: Optional[Console] = None,
        error_console: Optional[Console] = None,
        notifier: Optional[DesktopNotifier] = None,
    ) -> None:
        self._console = console or Console()
        self._error_console = error_console or Console(stderr=True)
        self._notifier = notifier

    @staticmethod
    def format_message(result: UploadResult) -> str:
        """Human-readable summary of a created Drive file."""
        return (
            f"Filename in drive: {result.name}\n"
            f"ID in drive: {result.file_id}\n"
            f"MIME type: {result.mime_type}"
        )

    def report(self, result: UploadResult) -> None:
        """Emit a success message on stdout and, if possible, a notification."""
        message = self.format_message(result)
        self._console.print(f"[bold green]{SUCCESS_TITLE}[/]")
        self._console.print(message, markup=False, highlight=False, soft_wrap=True)

        if self._notifier is not None:
            self._notifier.notify(SUCCESS_TITLE, message)

    def report_failure(self, error: BaseException) -> None:
        """Emit an error message on stderr."""
        logger.error("upload_aborted", error=str(error), error_type=type(error).__name__)
        self._error_console.print("[bold red]Upload FAILED:[/] ", end="")
        self._error_console.print(str(error), markup=False, highlight=False, soft_wrap=True)
