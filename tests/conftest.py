"""
Test configuration and fixtures.
"""

import logging
import tempfile
from pathlib import Path
from typing import Callable, Sequence

import pytest

from taxquote.config import reset_settings
from tests.fakes import build_pdf


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Isolate settings from the developer's environment."""
    for name in (
        "TAXQUOTE_LOG_LEVEL",
        "TAXQUOTE_LOG_FILE",
        "TAXQUOTE_DEV_MODE",
        "TAXQUOTE_MAX_PDF_SIZE_BYTES",
        "TAXQUOTE_ACCEPTED_TYPE_MARKER",
        "TAXQUOTE_SHOW_MUPDF_ERRORS",
        "TAXQUOTE_EXPORT_FILENAME",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def write_pdf(temp_dir) -> Callable[..., Path]:
    """Write a generated PDF to the temp dir and return its path."""

    def _write(pages: Sequence[str], name: str = "return.pdf") -> Path:
        path = temp_dir / name
        path.write_bytes(build_pdf(pages))
        return path

    return _write


@pytest.fixture
def restore_root_logger():
    """Undo handler changes made by setup_logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
