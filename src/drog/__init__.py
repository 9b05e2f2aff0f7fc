"""drog - upload files, piped text and web pages to Google Drive.

Content is converted server-side into the matching Google document type
(Docs, Sheets, Slides or Drawings) based on the source file extension.
"""

__version__ = "0.2.0"
__author__ = "drog contributors"

__all__ = [
    "__version__",
    "__author__",
]
