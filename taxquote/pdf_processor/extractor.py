"""
PDF text extraction using PyMuPDF.

This module turns PDF bytes into a page text source: a page count plus one
flattened text string per 1-based page. Page text is produced off the event
loop so the processor can await it like any other I/O.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from typing import Iterable, Optional

import fitz  # PyMuPDF

from taxquote.config import get_settings
from taxquote.pdf_processor import runtime
from taxquote.utils.errors import PDFCorruptedError
from taxquote.utils.logging import get_logger

logger = get_logger(__name__)

# MuPDF is not thread-safe, even across separate documents
_mupdf_lock = threading.Lock()


def flatten_text_runs(runs: Iterable[Optional[str]], separator: str = " ") -> str:
    """Join positional text runs into one string, skipping empty runs."""
    return separator.join(run for run in runs if run)


class PageTextSource(ABC):
    """
    An opened document that can produce text one page at a time.

    Implementations only need a page count and per-page text; the processor
    handles ordering and per-page failures.
    """

    @property
    @abstractmethod
    def page_count(self) -> int:
        """Number of pages in the document."""
        pass

    @abstractmethod
    async def page_text(self, page_number: int) -> str:
        """
        Return the flattened text of one page.

        Args:
            page_number: 1-based page index

        Raises:
            Exception: Any failure for this page only
        """
        pass

    def close(self) -> None:
        """Release resources held by the document."""
        pass

    def __enter__(self) -> "PageTextSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class PyMuPDFTextSource(PageTextSource):
    """Page text source backed by an open ``fitz.Document``."""

    def __init__(self, doc: fitz.Document, separator: str = " ") -> None:
        self._doc = doc
        self._separator = separator

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    async def page_text(self, page_number: int) -> str:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._read_page_text, page_number)

    def _read_page_text(self, page_number: int) -> str:
        if not 1 <= page_number <= self._doc.page_count:
            raise IndexError(f"Page {page_number} out of range 1..{self._doc.page_count}")

        with _mupdf_lock:
            page = self._doc[page_number - 1]
            content = page.get_text("dict")

        runs = []
        for block in content.get("blocks", []):
            if block.get("type") != 0:  # Text blocks only
                continue
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    runs.append(span.get("text", ""))

        return flatten_text_runs(runs, self._separator)

    def close(self) -> None:
        with _mupdf_lock:
            if not self._doc.is_closed:
                self._doc.close()


class PDFExtractor:
    """Open PDF bytes as page text sources."""

    def __init__(self, separator: Optional[str] = None) -> None:
        """
        Initialize the PDF extractor.

        Args:
            separator: String placed between text runs of a page
        """
        self.separator = separator if separator is not None else get_settings().page_text_separator

    async def open_document(self, data: bytes) -> PageTextSource:
        """
        Open a PDF held in memory.

        Args:
            data: Raw PDF bytes

        Returns:
            A page text source; the caller must close it

        Raises:
            PDFCorruptedError: If the bytes cannot be opened as a PDF
        """
        loop = asyncio.get_event_loop()
        doc = await loop.run_in_executor(None, self._open, data)

        logger.debug(f"Opened PDF with {doc.page_count} pages", extra={"page_count": doc.page_count})
        return PyMuPDFTextSource(doc, self.separator)

    def _open(self, data: bytes) -> fitz.Document:
        try:
            with _mupdf_lock:
                doc = fitz.open(stream=data, filetype="pdf")
                if doc.needs_pass:
                    doc.close()
                    raise PDFCorruptedError("PDF is encrypted and cannot be read")
                # MuPDF "repairs" arbitrary bytes into an empty document
                if doc.page_count == 0:
                    doc.close()
                    raise PDFCorruptedError("PDF contains no pages")
            return doc
        except PDFCorruptedError:
            raise
        except fitz.FileDataError as e:
            logger.error("Corrupted PDF stream")
            raise PDFCorruptedError(f"PDF stream is corrupted: {e}", original_error=e) from e
        except Exception as e:
            logger.error(f"Failed to open PDF: {e}")
            raise PDFCorruptedError(f"Failed to open PDF: {e}", original_error=e) from e


def create_pdf_extractor() -> PDFExtractor:
    """Create a PDF extractor instance with settings."""
    runtime.init()
    settings = get_settings()
    return PDFExtractor(separator=settings.page_text_separator)
