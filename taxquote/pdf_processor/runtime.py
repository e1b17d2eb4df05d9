"""
Process-wide PyMuPDF setup.

MuPDF keeps global message settings for the whole interpreter. ``init`` applies
them once; the signal engine never touches them.
"""

import threading
from typing import Optional

import fitz  # PyMuPDF

from taxquote.config import get_settings
from taxquote.utils.logging import get_logger

logger = get_logger(__name__)

_init_lock = threading.Lock()
_initialized = False


def init(show_mupdf_errors: Optional[bool] = None) -> bool:
    """
    Configure PyMuPDF for this process. Safe to call repeatedly.

    Args:
        show_mupdf_errors: Whether MuPDF prints its own errors to stderr
            (defaults to settings)

    Returns:
        True if this call performed the setup, False if it was already done
    """
    global _initialized
    with _init_lock:
        if _initialized:
            return False

        if show_mupdf_errors is None:
            show_mupdf_errors = get_settings().show_mupdf_errors

        # Errors are surfaced through our own exceptions and logs instead
        fitz.TOOLS.mupdf_display_errors(show_mupdf_errors)
        _initialized = True

    logger.debug(
        "PyMuPDF initialized",
        extra={"mupdf_version": fitz.VersionBind, "show_mupdf_errors": show_mupdf_errors},
    )
    return True


def is_initialized() -> bool:
    return _initialized


def _reset_for_tests() -> None:
    global _initialized
    with _init_lock:
        _initialized = False
