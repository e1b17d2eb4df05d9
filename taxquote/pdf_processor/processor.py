"""
Tax return processing: upload guard, page-by-page signal folding, finalize.

Pages of one document are folded strictly in page order into a fresh
accumulator. A page that cannot be read or analyzed is logged, recorded in the
report and skipped; only a document that cannot be opened at all fails the
whole run.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable, List, Optional, Sequence, Tuple, Union

from taxquote.config import Settings, get_settings
from taxquote.models import ProcessingStage, ProcessingStatus, TaxSummary
from taxquote.pdf_processor.extractor import PageTextSource, PDFExtractor, create_pdf_extractor
from taxquote.pdf_processor.validation import guess_content_type, validate_upload
from taxquote.signals.engine import SummaryAccumulator, apply_page_text, finalize_summary
from taxquote.utils.errors import PageExtractionError, PDFProcessingError
from taxquote.utils.logging import LogContext, get_logger, log_performance

logger = get_logger(__name__)

ProgressCallback = Callable[[ProcessingStatus], None]


@dataclass(frozen=True)
class PageText:
    """Text successfully read from one page."""

    page_number: int
    text: str


@dataclass(frozen=True)
class PageFailure:
    """A page whose text could not be read or analyzed."""

    page_number: int
    error: PageExtractionError


PageResult = Union[PageText, PageFailure]


@dataclass(frozen=True)
class AnalysisReport:
    """Summary of one document plus the pages that were skipped."""

    summary: TaxSummary
    page_count: int
    failed_pages: Tuple[PageFailure, ...] = ()

    @property
    def pages_analyzed(self) -> int:
        return self.page_count - len(self.failed_pages)


async def iter_page_results(source: PageTextSource) -> AsyncIterator[PageResult]:
    """
    Yield one result per page, in page order, starting at page 1.

    A failure on a page is turned into a ``PageFailure`` and iteration moves
    on to the next page.
    """
    for page_number in range(1, source.page_count + 1):
        try:
            text = await source.page_text(page_number)
        except Exception as e:
            yield PageFailure(page_number, PageExtractionError(page_number, f"Failed to read page: {e}"))
            continue
        yield PageText(page_number, text)


def _emit(callback: Optional[ProgressCallback], stage: ProcessingStage, progress: int, message: str) -> None:
    if callback is None:
        return
    try:
        callback(ProcessingStatus(stage=stage, progress=progress, message=message))
    except Exception as e:
        logger.warning(f"Progress callback failed: {e}")


class TaxReturnProcessor:
    """Analyze tax return PDFs into ``TaxSummary`` values."""

    def __init__(
        self,
        extractor: Optional[PDFExtractor] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        """
        Initialize the processor.

        Args:
            extractor: Opens PDF bytes as page text sources
            settings: Settings to use (defaults to the global settings)
        """
        self.settings = settings or get_settings()
        self.extractor = extractor or create_pdf_extractor()

    @log_performance
    async def analyze(
        self,
        data: bytes,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> AnalysisReport:
        """
        Fold every page of a document into a summary.

        Args:
            data: Raw PDF bytes
            progress_callback: Receives ``ProcessingStatus`` updates

        Returns:
            AnalysisReport with the summary and any skipped pages

        Raises:
            PDFProcessingError: If the document cannot be opened
        """
        _emit(progress_callback, ProcessingStage.PROCESSING, 40, "Analyzing tax return...")

        try:
            source = await self.extractor.open_document(data)
        except PDFProcessingError as e:
            _emit(progress_callback, ProcessingStage.ERROR, 0, f"Error processing file: {e.message}")
            raise
        except Exception as e:
            logger.error(f"Failed to open tax return PDF: {e}")
            _emit(progress_callback, ProcessingStage.ERROR, 0, "Error processing file: Failed to process tax return PDF")
            raise PDFProcessingError("Failed to process tax return PDF", original_error=e) from e

        accumulator = SummaryAccumulator()
        failures: List[PageFailure] = []

        with source:
            total_pages = source.page_count
            async for result in iter_page_results(source):
                if isinstance(result, PageText):
                    with LogContext(page_number=result.page_number):
                        try:
                            matched = apply_page_text(accumulator, result.text)
                        except Exception as e:
                            result = PageFailure(
                                result.page_number,
                                PageExtractionError(result.page_number, f"Failed to analyze page: {e}"),
                            )
                        else:
                            if matched:
                                logger.debug(f"Page {result.page_number} markers: {', '.join(matched)}")

                if isinstance(result, PageFailure):
                    logger.warning(
                        f"Failed to process page {result.page_number}: {result.error.message}",
                        extra={"page_number": result.page_number},
                    )
                    failures.append(result)

                progress = 40 + int(55 * result.page_number / total_pages)
                _emit(
                    progress_callback,
                    ProcessingStage.PROCESSING,
                    progress,
                    f"Analyzed page {result.page_number} of {total_pages}",
                )

        summary = finalize_summary(accumulator)
        logger.info(
            f"Tax return analyzed: {summary.estimated_complexity.value} complexity",
            extra={
                "page_count": total_pages,
                "failed_pages": len(failures),
                "schedules": list(summary.schedules),
            },
        )
        _emit(progress_callback, ProcessingStage.COMPLETE, 100, "Analysis complete!")

        return AnalysisReport(summary=summary, page_count=total_pages, failed_pages=tuple(failures))

    async def process_tax_return(
        self,
        data: bytes,
        content_type: Optional[str],
        filename: str = "document.pdf",
        progress_callback: Optional[ProgressCallback] = None,
    ) -> TaxSummary:
        """
        Validate an upload and analyze it.

        Args:
            data: Raw file bytes
            content_type: Declared media type
            filename: Original file name
            progress_callback: Receives ``ProcessingStatus`` updates

        Returns:
            The finalized TaxSummary

        Raises:
            PDFProcessingError: For validation failures and unreadable documents
        """
        with LogContext(document=filename):
            _emit(progress_callback, ProcessingStage.UPLOADING, 20, "Reading file...")
            try:
                validate_upload(content_type, len(data), filename, self.settings.max_pdf_size_bytes)
            except PDFProcessingError as e:
                logger.warning(f"Rejected upload {filename}: {e.message}")
                _emit(progress_callback, ProcessingStage.ERROR, 0, f"Error processing file: {e.message}")
                raise

            report = await self.analyze(data, progress_callback)
            return report.summary

    async def process_file(
        self,
        file_path: Union[str, Path],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> TaxSummary:
        """
        Read a PDF from disk and analyze it.

        Raises:
            PDFProcessingError: If the file cannot be read, is rejected by the
                upload guard, or cannot be opened as a PDF
        """
        file_path = Path(file_path)
        content_type = guess_content_type(file_path)

        with LogContext(document=file_path.name):
            try:
                # Size and type are checked before reading the file
                validate_upload(
                    content_type,
                    file_path.stat().st_size,
                    file_path.name,
                    self.settings.max_pdf_size_bytes,
                )

                loop = asyncio.get_event_loop()
                data = await loop.run_in_executor(None, file_path.read_bytes)
            except OSError as e:
                logger.error(f"Could not read {file_path}: {e}")
                _emit(
                    progress_callback,
                    ProcessingStage.ERROR,
                    0,
                    f"Error processing file: Could not read {file_path.name}",
                )
                raise PDFProcessingError(f"Could not read {file_path}: {e}", original_error=e) from e
            except PDFProcessingError as e:
                logger.warning(f"Rejected upload {file_path.name}: {e.message}")
                _emit(progress_callback, ProcessingStage.ERROR, 0, f"Error processing file: {e.message}")
                raise

        return await self.process_tax_return(data, content_type, file_path.name, progress_callback)

    async def process_many(
        self,
        file_paths: Sequence[Union[str, Path]],
    ) -> List[Union[TaxSummary, PDFProcessingError]]:
        """
        Analyze several documents concurrently.

        Each document gets its own accumulator. Results are returned in input
        order; a document that fails yields a ``PDFProcessingError`` and never
        discards the results of the others.
        """
        results = await asyncio.gather(
            *(self.process_file(path) for path in file_paths),
            return_exceptions=True,
        )

        outcomes: List[Union[TaxSummary, PDFProcessingError]] = []
        for path, result in zip(file_paths, results):
            if isinstance(result, PDFProcessingError):
                outcomes.append(result)
            elif isinstance(result, Exception):
                logger.error(f"Unexpected error processing {path}: {result}")
                outcomes.append(PDFProcessingError("Failed to process tax return PDF", original_error=result))
            elif isinstance(result, BaseException):
                # Cancellation and interpreter exit are not document failures
                raise result
            else:
                outcomes.append(result)
        return outcomes


_default_processor: Optional[TaxReturnProcessor] = None


async def process_tax_return(
    data: bytes,
    content_type: Optional[str],
    filename: str = "document.pdf",
    progress_callback: Optional[ProgressCallback] = None,
) -> TaxSummary:
    """Analyze an uploaded tax return with a shared default processor."""
    global _default_processor
    if _default_processor is None:
        _default_processor = TaxReturnProcessor()
    return await _default_processor.process_tax_return(data, content_type, filename, progress_callback)
