"""
Content classification for uploads.

Maps a file extension to the MIME type of the bytes being sent and the
Google document type Drive should convert them into. The table is closed:
anything not listed falls back to DEFAULT_RULE, uploaded as plain text and
converted into a Google Doc.

Lookups are case-sensitive. Callers normalize with normalize_extension()
or extension_from_path() first.
"""

from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Union

from drog.models import ClassificationRule, TargetDocumentType

DEFAULT_RULE = ClassificationRule(
    source_mime="text/plain",
    target_type=TargetDocumentType.DOCUMENT,
)

# Extensions accepted for piped input, where only text-like content can be
# typed sensibly without a file to inspect.
STREAMABLE_EXTENSIONS = frozenset({".txt", ".html", ".csv"})


def _rules(
    extensions: tuple[str, ...],
    source_mime: str,
    target_type: TargetDocumentType,
    convert: bool = True,
) -> dict[str, ClassificationRule]:
    rule = ClassificationRule(source_mime=source_mime, target_type=target_type, convert=convert)
    return {ext: rule for ext in extensions}


CLASSIFICATION_TABLE: Mapping[str, ClassificationRule] = MappingProxyType({
    # Spreadsheets
    **_rules((".csv",), "text/csv", TargetDocumentType.SPREADSHEET),
    **_rules((".xls", ".xlt", ".xla"), "application/vnd.ms-excel", TargetDocumentType.SPREADSHEET),
    **_rules(
        (".xlsx",),
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        TargetDocumentType.SPREADSHEET,
    ),
    **_rules(
        (".ods",),
        "application/vnd.oasis.opendocument.spreadsheet",
        TargetDocumentType.SPREADSHEET,
    ),
    # Drawings
    **_rules(
        (".odg",),
        "application/vnd.oasis.opendocument.graphics",
        TargetDocumentType.DRAWING,
    ),
    # Presentations
    **_rules(
        (".ppt", ".pot", ".pps", ".ppa"),
        "application/vnd.ms-powerpoint",
        TargetDocumentType.PRESENTATION,
    ),
    **_rules(
        (".pptx",),
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        TargetDocumentType.PRESENTATION,
    ),
    **_rules(
        (".odp",),
        "application/vnd.oasis.opendocument.presentation",
        TargetDocumentType.PRESENTATION,
    ),
    # Documents
    **_rules((".doc", ".dot"), "application/msword", TargetDocumentType.DOCUMENT),
    **_rules(
        (".docx",),
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        TargetDocumentType.DOCUMENT,
    ),
    **_rules((".odt",), "application/vnd.oasis.opendocument.text", TargetDocumentType.DOCUMENT),
    # PDFs are stored as-is, no conversion requested
    **_rules((".pdf",), "application/pdf", TargetDocumentType.DOCUMENT, convert=False),
    **_rules((".png",), "image/png", TargetDocumentType.DOCUMENT),
    **_rules((".jpg", ".jpeg"), "image/jpeg", TargetDocumentType.DOCUMENT),
    **_rules((".html",), "text/html", TargetDocumentType.DOCUMENT),
})


def classify(extension: str) -> ClassificationRule:
    """Return the classification rule for an extension.

    Args:
        extension: Extension including the leading dot (e.g. ".xlsx").

    Returns:
        The matching rule, or DEFAULT_RULE when the extension is not listed.
    """
    return CLASSIFICATION_TABLE.get(extension, DEFAULT_RULE)


def valid_for_streamed_input(extension: str) -> bool:
    """Check whether piped content may be uploaded with this extension."""
    return extension in STREAMABLE_EXTENSIONS


def normalize_extension(extension: str) -> str:
    """Lowercase an extension and make sure it starts with a dot.

    "CSV", ".Csv" and " .csv " all become ".csv". Empty input stays empty.
    """
    extension = extension.strip().lower()
    if extension and not extension.startswith("."):
        extension = "." + extension
    return extension


def extension_from_path(path: Union[str, Path]) -> str:
    """Return the lowercased final suffix of a path ("" when there is none)."""
    return Path(path).suffix.lower()
