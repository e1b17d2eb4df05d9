"""
Upload guard applied before a document reaches the processor.
"""

import mimetypes
from pathlib import Path
from typing import Optional, Union

from taxquote.config import get_settings
from taxquote.utils.errors import PDFSizeError, UnsupportedFileTypeError


def guess_content_type(path: Union[str, Path]) -> str:
    """Guess a media type from a file name, empty string when unknown."""
    content_type, _ = mimetypes.guess_type(str(path))
    return content_type or ""


def validate_upload(
    content_type: Optional[str],
    size_bytes: int,
    filename: str = "document.pdf",
    max_size_bytes: Optional[int] = None,
) -> None:
    """
    Reject uploads that are not PDFs or are too large.

    Args:
        content_type: Declared media type, e.g. ``application/pdf``
        size_bytes: Declared byte length
        filename: Name used in error details
        max_size_bytes: Size limit (defaults to settings)

    Raises:
        UnsupportedFileTypeError: If the type does not name a PDF
        PDFSizeError: If the size exceeds the limit
    """
    settings = get_settings()
    max_size = max_size_bytes if max_size_bytes is not None else settings.max_pdf_size_bytes

    if settings.accepted_type_marker not in (content_type or ""):
        raise UnsupportedFileTypeError(content_type or "", filename)

    if size_bytes > max_size:
        raise PDFSizeError(file_size=size_bytes, max_size=max_size, filename=filename)
