"""
CLI Entrypoint for drog

Uploads a file, piped standard input, or a web page to Google Drive and
converts it into the matching Google document type.

Usage:
    drog <path> <-ask|title>
    echo "a,b" | drog -- <-ask|title> <-ask|.csv|.html|.txt>
    drog <--url|-u> <http://...> <-ask|-onpage|title>
"""

from __future__ import annotations

import logging
import sys
from functools import partial
from pathlib import Path
from types import TracebackType
from typing import Any, List, Optional, TextIO, Type

import structlog
import typer
from rich.console import Console
from rich.prompt import Prompt

from drog import __version__
from drog.config import DrogConfig, load_config
from drog.errors import DrogError, PromptCancelledError
from drog.gdrive.auth import Authenticator, DriveSession, load_client_config
from drog.gdrive.credentials import CredentialStore
from drog.gdrive.uploader import DriveUploader
from drog.models import UploadResult
from drog.notify import DesktopNotifier
from drog.orchestrator import InvocationMode, UploadOrchestrator, check_streamable
from drog.reporter import ResultReporter
from drog.sources import PageFetcher

ASK = "-ask"
ON_PAGE = "-onpage"

DEFAULT_TITLE = "any title"
DEFAULT_EXTENSION = ".txt"

# Controlling terminal, used for prompts while stdin carries the upload
TTY_PATH = "/dev/tty"

USAGE = """\
drog: A commandline tool for uploading files to google drive

Usage:
drog <path> <-ask|any text as title>
echo "something" | drog -- <-ask|any text as title> <-ask|.csv|.html|.txt>
drog <--url|-u> <http://...> <-ask|-onpage|any text as title>
"""

CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    # lets the -ask and -onpage sentinels through as plain arguments
    "ignore_unknown_options": True,
}

app = typer.Typer(
    name="drog",
    help="Upload files, piped text and web pages to Google Drive",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

logger = structlog.get_logger()


def configure_logging(verbose: bool = False) -> None:
    """Send structured logs to stderr, WARNING and above unless verbose."""
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


class TerminalInput:
    """Answers for prompts read from the controlling terminal.

    Piped mode uploads standard input, so its prompts must not read from
    it. The terminal is opened on the first prompt and closed on exit.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or TTY_PATH
        self._stream: Optional[TextIO] = None

    def stream(self) -> TextIO:
        """Return the open terminal.

        Raises:
            PromptCancelledError: If there is no terminal to prompt on.
        """
        if self._stream is None:
            try:
                self._stream = open(self.path, encoding="utf-8")
            except OSError as e:
                raise PromptCancelledError(
                    f"No terminal available to answer prompts while reading piped input ({e}). "
                    "Pass the title and extension as arguments instead of -ask."
                ) from e
        return self._stream

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def __enter__(self) -> "TerminalInput":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()


def _input_stream(terminal: Optional[TerminalInput]) -> Optional[TextIO]:
    return terminal.stream() if terminal is not None else None


def ask(message: str, default: str, terminal: Optional[TerminalInput] = None) -> str:
    """Prompt for a value, reading the answer from terminal when given.

    Raises:
        PromptCancelledError: If input ends, the user presses Ctrl-C, or
            no terminal is available.
    """
    stream = _input_stream(terminal)
    try:
        return Prompt.ask(message, default=default, console=console, stream=stream)
    except (EOFError, KeyboardInterrupt) as e:
        raise PromptCancelledError(f"Prompt cancelled: {message}") from e


def resolve_title(
    title: str, default: str = DEFAULT_TITLE, terminal: Optional[TerminalInput] = None
) -> str:
    """Return the literal title, or prompt for one when given -ask."""
    if title == ASK:
        return ask("Please enter the title", default, terminal)
    return title


def prompt_for_code(auth_url: str, terminal: Optional[TerminalInput] = None) -> str:
    """Show the authorization URL and read the one-time code."""
    stream = _input_stream(terminal)
    console.print("Open the following link in your browser and grant access:")
    console.print(auth_url, markup=False, highlight=False, soft_wrap=True)
    console.print(
        "Your browser is then sent to a page that may fail to load. Copy the 'code' "
        "parameter from its address bar, or paste the whole address."
    )
    return Prompt.ask("Authorization code", console=console, stream=stream).strip()


def open_session(
    config: DrogConfig,
    client_config: dict[str, Any],
    terminal: Optional[TerminalInput] = None,
) -> DriveSession:
    """Authenticate with Drive using the cached or a fresh credential."""
    authenticator = Authenticator(
        CredentialStore(config.auth.token_path),
        config.auth.scopes,
        prompt=partial(prompt_for_code, terminal=terminal),
    )
    return authenticator.get_session(client_config)


def _usage_error(message: str) -> typer.Exit:
    err_console.print(f"[red]{message}[/]")
    err_console.print(USAGE, markup=False, highlight=False)
    return typer.Exit(code=1)


def select_mode(args: List[str], url: Optional[str], stdin: bool) -> InvocationMode:
    """Pick the invocation mode and check the argument count for it.

    Raises:
        typer.Exit: With code 1 when the arguments do not fit any mode.
    """
    if url is not None and stdin:
        raise _usage_error("--url and -- cannot be combined")
    if url is not None:
        if len(args) != 1:
            raise _usage_error("URL mode takes exactly one title argument")
        return InvocationMode.URL
    if stdin:
        if len(args) != 2:
            raise _usage_error("Piped mode takes a title and an extension")
        return InvocationMode.STREAM
    if len(args) != 2:
        raise _usage_error("Expected a path and a title")
    return InvocationMode.PATH


def run_upload(
    mode: InvocationMode,
    args: List[str],
    url: Optional[str],
    config: DrogConfig,
) -> UploadResult:
    """Resolve inputs for one invocation and perform the upload.

    The client configuration is read before anything is prompted, and a
    disallowed piped extension is rejected before any network call. In
    piped mode every prompt reads from the terminal, leaving stdin intact.
    """
    client_config = load_client_config(config.auth.client_secrets_path)
    fetcher = PageFetcher(
        timeout=config.fetch.timeout_seconds,
        user_agent=config.fetch.user_agent,
    )

    if mode is InvocationMode.URL:
        if url is None:
            raise _usage_error("URL mode needs --url <http://...>")
        page = fetcher.fetch(url)
        title_arg = args[0]
        if title_arg == ON_PAGE:
            title = page.title
        else:
            title = resolve_title(title_arg, default=page.title)
        orchestrator = _orchestrator(config, client_config, fetcher)
        return orchestrator.upload_page(page, title)

    if mode is InvocationMode.STREAM:
        with TerminalInput() as terminal:
            title = resolve_title(args[0], terminal=terminal)
            extension = args[1]
            if extension == ASK:
                extension = ask("Please enter the file extension", DEFAULT_EXTENSION, terminal)
            check_streamable(extension)
            orchestrator = _orchestrator(config, client_config, fetcher, terminal)
            return orchestrator.upload_stream(typer.get_binary_stream("stdin"), title, extension)

    path, title_arg = args
    title = resolve_title(title_arg)
    orchestrator = _orchestrator(config, client_config, fetcher)
    return orchestrator.upload_path(Path(path), title)


def _orchestrator(
    config: DrogConfig,
    client_config: dict[str, Any],
    fetcher: PageFetcher,
    terminal: Optional[TerminalInput] = None,
) -> UploadOrchestrator:
    session = open_session(config, client_config, terminal)
    return UploadOrchestrator(
        DriveUploader(session),
        fetcher=fetcher,
        title_marker=config.upload.title_marker,
    )


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"drog {__version__}")
        raise typer.Exit()


@app.command(context_settings=CONTEXT_SETTINGS, epilog=USAGE)
def upload(
    args: Optional[List[str]] = typer.Argument(
        None,
        metavar="ARGS...",
        help="<path> <title>, or <title> <extension> with --, or <title> with --url",
    ),
    url: Optional[str] = typer.Option(
        None,
        "--url",
        "-u",
        help="Fetch this web page and upload it as HTML",
    ),
    stdin: bool = typer.Option(
        False,
        "--stdin",
        help="Read the content from standard input (same as a leading --)",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Path to a settings.yaml configuration file",
    ),
    no_notify: bool = typer.Option(
        False,
        "--no-notify",
        help="Do not show a desktop notification on success",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Log progress details to stderr",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """
    Upload a file, piped text or a web page to Google Drive.

    The file extension decides the Google format the upload is converted
    into (Docs, Sheets, Slides or Drawings). Titles accept -ask to prompt
    for a value; in URL mode -onpage uses the page's own title.

    First run requires OAuth2 authorization: open the printed link, grant
    access and paste the code back into the terminal.
    """
    configure_logging(verbose)
    arguments = list(args or [])
    mode = select_mode(arguments, url, stdin)

    reporter = ResultReporter(console=console, error_console=err_console)
    try:
        drog_config = load_config(config)
        if drog_config.upload.notify and not no_notify:
            reporter = ResultReporter(
                console=console,
                error_console=err_console,
                notifier=DesktopNotifier(),
            )
        result = run_upload(mode, arguments, url, drog_config)
    except DrogError as e:
        reporter.report_failure(e)
        raise typer.Exit(code=1) from e

    reporter.report(result)


def main(argv: Optional[List[str]] = None) -> None:
    """Console script entry point.

    A leading "--" selects piped mode. Click would otherwise swallow it as
    the end-of-options marker, so it is rewritten to --stdin first.
    """
    arguments = list(sys.argv[1:] if argv is None else argv)
    if arguments[:1] == ["--"]:
        arguments[0] = "--stdin"
    app(args=arguments, prog_name="drog")


if __name__ == "__main__":
    main()
