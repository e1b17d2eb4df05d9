"""
Tests for tax return processing reliability and edge cases.
"""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from taxquote.models import ComplexityTier, InvestmentComplexity, ProcessingStage, TaxSummary
from taxquote.pdf_processor.extractor import PDFExtractor
from taxquote.pdf_processor.processor import (
    PageFailure,
    PageText,
    TaxReturnProcessor,
    iter_page_results,
    process_tax_return,
)
from taxquote.utils.errors import (
    PageExtractionError,
    PDFCorruptedError,
    PDFProcessingError,
    PDFSizeError,
    UnsupportedFileTypeError,
)
from tests.fakes import FakeExtractor, FakeTextSource, build_pdf


class TestPageResults:
    """Test the per-page result sequence."""

    @pytest.mark.asyncio
    async def test_pages_in_order(self):
        source = FakeTextSource(["a", "b", "c"])
        results = [result async for result in iter_page_results(source)]

        assert results == [PageText(1, "a"), PageText(2, "b"), PageText(3, "c")]
        assert source.requested == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_iteration(self):
        source = FakeTextSource(["a", "b", "c"], failures={2: RuntimeError("bad xref")})
        results = [result async for result in iter_page_results(source)]

        assert isinstance(results[1], PageFailure)
        assert results[1].page_number == 2
        assert isinstance(results[1].error, PageExtractionError)
        assert "bad xref" in results[1].error.message
        assert results[2] == PageText(3, "c")


class TestTaxReturnProcessor:
    """Test document orchestration with fake text sources."""

    @pytest.mark.asyncio
    async def test_detects_business_income(self):
        source = FakeTextSource(["Form 1040 Schedule C Business Income"])
        processor = TaxReturnProcessor(extractor=FakeExtractor(source))

        summary = await processor.process_tax_return(b"%PDF", "application/pdf")

        assert summary.has_business_income is True
        assert "Schedule C" in summary.schedules
        assert source.closed is True

    @pytest.mark.asyncio
    async def test_multiple_schedules_advanced(self):
        source = FakeTextSource(["Schedule C Schedule E Schedule D"])
        processor = TaxReturnProcessor(extractor=FakeExtractor(source))

        summary = await processor.process_tax_return(b"%PDF", "application/pdf")

        assert summary.estimated_complexity == ComplexityTier.ADVANCED
        assert len(summary.schedules) == 3

    @pytest.mark.asyncio
    async def test_deduplicates_across_pages(self):
        source = FakeTextSource(["W-2 W-2 Schedule C", "Schedule C W-2"])
        processor = TaxReturnProcessor(extractor=FakeExtractor(source))

        summary = await processor.process_tax_return(b"%PDF", "application/pdf")

        assert summary.income_types == ("W-2",)
        assert summary.schedules == ("Schedule C",)

    @pytest.mark.asyncio
    async def test_later_page_downgrades_investments(self):
        source = FakeTextSource(["Schedule D", "Schedule B"])
        processor = TaxReturnProcessor(extractor=FakeExtractor(source))

        summary = await processor.process_tax_return(b"%PDF", "application/pdf")

        assert summary.investment_complexity == InvestmentComplexity.MODERATE

    @pytest.mark.asyncio
    async def test_bad_page_is_skipped(self, caplog):
        source = FakeTextSource(
            ["Schedule C", "Schedule E", "1099-DIV"],
            failures={2: ValueError("cannot decode page")},
        )
        processor = TaxReturnProcessor(extractor=FakeExtractor(source))

        with caplog.at_level(logging.WARNING, logger="taxquote.pdf_processor.processor"):
            report = await processor.analyze(b"%PDF")

        assert report.page_count == 3
        assert report.pages_analyzed == 2
        assert [failure.page_number for failure in report.failed_pages] == [2]
        assert report.summary.schedules == ("Schedule C",)
        assert report.summary.income_types == ("1099-DIV",)
        assert report.summary.has_rental_property is False
        assert "Failed to process page 2" in caplog.text

    @pytest.mark.asyncio
    async def test_every_page_failing_still_returns_summary(self):
        source = FakeTextSource(
            ["Schedule C", "Schedule D"],
            failures={1: RuntimeError("x"), 2: RuntimeError("y")},
        )
        processor = TaxReturnProcessor(extractor=FakeExtractor(source))

        report = await processor.analyze(b"%PDF")

        assert report.summary == TaxSummary()
        assert report.summary.estimated_complexity == ComplexityTier.BASIC
        assert len(report.failed_pages) == 2

    @pytest.mark.asyncio
    async def test_zero_pages(self):
        processor = TaxReturnProcessor(extractor=FakeExtractor(FakeTextSource([])))

        report = await processor.analyze(b"%PDF")

        assert report.page_count == 0
        assert report.summary == TaxSummary()

    @pytest.mark.asyncio
    async def test_analysis_failure_on_page_is_skipped(self, monkeypatch):
        """A page whose analysis raises is recorded like a read failure."""
        from taxquote.pdf_processor import processor as processor_module

        real_apply = processor_module.apply_page_text

        def flaky_apply(accumulator, text):
            if text == "boom":
                raise RuntimeError("rule failure")
            return real_apply(accumulator, text)

        monkeypatch.setattr(processor_module, "apply_page_text", flaky_apply)
        source = FakeTextSource(["Schedule E", "boom", "W-2"])
        processor = TaxReturnProcessor(extractor=FakeExtractor(source))

        report = await processor.analyze(b"%PDF")

        assert [failure.page_number for failure in report.failed_pages] == [2]
        assert "Failed to analyze page" in report.failed_pages[0].error.message
        assert report.summary.schedules == ("Schedule E",)
        assert report.summary.income_types == ("W-2",)

    @pytest.mark.asyncio
    async def test_unopenable_document_raises(self):
        error = PDFCorruptedError("PDF stream is corrupted: broken")
        processor = TaxReturnProcessor(extractor=FakeExtractor(open_error=error))

        with pytest.raises(PDFProcessingError) as exc_info:
            await processor.process_tax_return(b"not a pdf", "application/pdf")

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_unexpected_open_error_is_normalized(self):
        cause = MemoryError("out of memory")
        processor = TaxReturnProcessor(extractor=FakeExtractor(open_error=cause))

        with pytest.raises(PDFProcessingError, match="Failed to process tax return PDF") as exc_info:
            await processor.analyze(b"%PDF")

        assert exc_info.value.original_error is cause

    @pytest.mark.asyncio
    async def test_rejects_non_pdf_type(self):
        extractor = FakeExtractor(FakeTextSource(["Schedule C"]))
        processor = TaxReturnProcessor(extractor=extractor)

        with pytest.raises(UnsupportedFileTypeError, match="Invalid file type"):
            await processor.process_tax_return(b"dummy content", "text/plain", "test.txt")

        assert extractor.opened == 0

    @pytest.mark.asyncio
    async def test_rejects_oversized_upload(self):
        extractor = FakeExtractor(FakeTextSource(["Schedule C"]))
        processor = TaxReturnProcessor(extractor=extractor)
        processor.settings.max_pdf_size_bytes = 16

        with pytest.raises(PDFSizeError, match="File size exceeds maximum limit"):
            await processor.process_tax_return(b"x" * 17, "application/pdf", "large.pdf")

        assert extractor.opened == 0

    @pytest.mark.asyncio
    async def test_progress_updates(self):
        source = FakeTextSource(["Schedule C", "W-2"])
        processor = TaxReturnProcessor(extractor=FakeExtractor(source))
        callback = MagicMock()

        await processor.process_tax_return(b"%PDF", "application/pdf", progress_callback=callback)

        statuses = [call.args[0] for call in callback.call_args_list]
        assert statuses[0].stage == ProcessingStage.UPLOADING
        assert statuses[0].progress == 20
        assert statuses[1].stage == ProcessingStage.PROCESSING
        assert statuses[-1].stage == ProcessingStage.COMPLETE
        assert statuses[-1].progress == 100
        assert statuses[-1].message == "Analysis complete!"
        progress = [status.progress for status in statuses]
        assert progress == sorted(progress)

    @pytest.mark.asyncio
    async def test_progress_reports_error(self):
        processor = TaxReturnProcessor(extractor=FakeExtractor(open_error=PDFCorruptedError("broken")))
        callback = MagicMock()

        with pytest.raises(PDFCorruptedError):
            await processor.process_tax_return(b"%PDF", "application/pdf", progress_callback=callback)

        last = callback.call_args_list[-1].args[0]
        assert last.stage == ProcessingStage.ERROR
        assert last.progress == 0
        assert last.message == "Error processing file: broken"

    @pytest.mark.asyncio
    async def test_failing_progress_callback_is_ignored(self):
        processor = TaxReturnProcessor(extractor=FakeExtractor(FakeTextSource(["Schedule E"])))
        callback = MagicMock(side_effect=RuntimeError("ui gone"))

        summary = await processor.process_tax_return(b"%PDF", "application/pdf", progress_callback=callback)

        assert summary.has_rental_property is True

    @pytest.mark.asyncio
    async def test_slow_pages_are_awaited_in_order(self):
        """Pages are folded one at a time even when the source suspends."""
        order = []

        class SlowSource(FakeTextSource):
            async def page_text(self, page_number):
                await asyncio.sleep(0.01 * (3 - page_number))
                order.append(page_number)
                return await super().page_text(page_number)

        processor = TaxReturnProcessor(extractor=FakeExtractor(SlowSource(["Schedule D", "Schedule B", "W-2"])))
        summary = await processor.process_tax_return(b"%PDF", "application/pdf")

        assert order == [1, 2, 3]
        assert summary.investment_complexity == InvestmentComplexity.MODERATE


class TestProcessingRealPDFs:
    """Test the full path through PyMuPDF."""

    @pytest.fixture
    def processor(self):
        return TaxReturnProcessor(extractor=PDFExtractor())

    @pytest.mark.asyncio
    async def test_generated_return(self, processor):
        data = build_pdf(
            [
                "Form 1040 U.S. Individual Income Tax Return\nW-2 wages",
                "Schedule C Profit or Loss From Business\n1099-NEC",
                "Schedule E Supplemental Income\nMortgage Interest",
            ]
        )

        summary = await processor.process_tax_return(data, "application/pdf", "return.pdf")

        assert summary.schedules == ("Schedule C", "Schedule E")
        assert summary.income_types == ("W-2", "1099-NEC")
        assert summary.deduction_categories == ("Mortgage Interest",)
        assert summary.has_business_income and summary.has_rental_property
        assert summary.estimated_complexity == ComplexityTier.ADVANCED

    @pytest.mark.asyncio
    async def test_blank_pages(self, processor):
        summary = await processor.process_tax_return(build_pdf(["", "", ""]), "application/pdf")
        assert summary == TaxSummary()

    @pytest.mark.asyncio
    async def test_corrupted_pdf(self, processor):
        corrupted_pdf = b"%PDF-1.4\n%%corrupted data here\n%%EOF"

        with pytest.raises(PDFProcessingError):
            await processor.process_tax_return(corrupted_pdf, "application/pdf", "corrupted.pdf")

    @pytest.mark.asyncio
    async def test_garbage_bytes(self, processor):
        with pytest.raises(PDFCorruptedError) as exc_info:
            await processor.analyze(b"this is not a pdf at all")

        assert exc_info.value.original_error is not None

    @pytest.mark.asyncio
    async def test_process_file(self, processor, write_pdf):
        path = write_pdf(["Schedule B Interest and Ordinary Dividends 1099-INT"])

        summary = await processor.process_file(path)

        assert summary.schedules == ("Schedule B",)
        assert summary.investment_complexity == InvestmentComplexity.MODERATE
        assert summary.estimated_complexity == ComplexityTier.BASIC

    @pytest.mark.asyncio
    async def test_process_file_rejects_text_file(self, processor, temp_dir):
        path = temp_dir / "notes.txt"
        path.write_text("Schedule C")

        with pytest.raises(UnsupportedFileTypeError):
            await processor.process_file(path)

    @pytest.mark.asyncio
    async def test_process_file_rejection_reports_error_status(self, processor, temp_dir):
        path = temp_dir / "notes.txt"
        path.write_text("Schedule C")
        updates = []

        with pytest.raises(UnsupportedFileTypeError):
            await processor.process_file(path, progress_callback=updates.append)

        assert [(u.stage, u.progress) for u in updates] == [(ProcessingStage.ERROR, 0)]
        assert updates[0].message == "Error processing file: Invalid file type. Only PDF files are supported."

    @pytest.mark.asyncio
    async def test_unreadable_path_is_processing_error(self, processor, temp_dir):
        """A directory named like a PDF passes the guard but cannot be read."""
        folder = temp_dir / "folder.pdf"
        folder.mkdir()
        updates = []

        with pytest.raises(PDFProcessingError) as exc_info:
            await processor.process_file(folder, progress_callback=updates.append)

        assert "Could not read" in exc_info.value.message
        assert isinstance(exc_info.value.original_error, OSError)
        assert updates[-1].stage == ProcessingStage.ERROR

    @pytest.mark.asyncio
    async def test_missing_file_is_processing_error(self, processor, temp_dir):
        with pytest.raises(PDFProcessingError) as exc_info:
            await processor.process_file(temp_dir / "missing.pdf")

        assert isinstance(exc_info.value.original_error, FileNotFoundError)

    @pytest.mark.asyncio
    async def test_concurrent_documents_are_independent(self, processor, write_pdf, temp_dir):
        paths = [
            write_pdf(["Schedule C"], "business.pdf"),
            write_pdf(["W-2"], "wages.pdf"),
            write_pdf(["Schedule D", "Schedule B"], "investments.pdf"),
        ]
        broken = temp_dir / "broken.pdf"
        broken.write_bytes(b"%PDF-1.4 garbage")
        missing = temp_dir / "missing.pdf"

        results = await processor.process_many(paths + [broken, missing])

        business, wages, investments, broken_result, missing_result = results
        assert business.schedules == ("Schedule C",)
        assert business.income_types == ()
        assert wages.schedules == ()
        assert wages.income_types == ("W-2",)
        assert investments.investment_complexity == InvestmentComplexity.MODERATE
        assert isinstance(broken_result, PDFProcessingError)
        assert isinstance(missing_result, PDFProcessingError)
        assert isinstance(missing_result.original_error, OSError)

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_other_results(self, processor, monkeypatch):
        async def fake_process_file(path, progress_callback=None):
            if str(path) == "b.pdf":
                raise RuntimeError("renderer crashed")
            return TaxSummary(schedules=("Schedule C",), has_business_income=True)

        monkeypatch.setattr(processor, "process_file", fake_process_file)

        first, second, third = await processor.process_many(["a.pdf", "b.pdf", "c.pdf"])

        assert first.schedules == ("Schedule C",)
        assert third.schedules == ("Schedule C",)
        assert isinstance(second, PDFProcessingError)
        assert second.message == "Failed to process tax return PDF"
        assert isinstance(second.original_error, RuntimeError)

    @pytest.mark.asyncio
    async def test_analyze_uses_extractor(self):
        """The processor delegates opening to its extractor."""
        extractor = MagicMock()
        extractor.open_document = AsyncMock(return_value=FakeTextSource(["1099-DIV"]))
        processor = TaxReturnProcessor(extractor=extractor)

        report = await processor.analyze(b"%PDF")

        extractor.open_document.assert_awaited_once_with(b"%PDF")
        assert report.summary.income_types == ("1099-DIV",)


class TestDefaultProcessor:
    """Test the module-level convenience entry point."""

    @pytest.fixture
    def processor_module(self, monkeypatch):
        from taxquote.pdf_processor import processor as processor_module

        monkeypatch.setattr(processor_module, "_default_processor", None)
        return processor_module

    @pytest.mark.asyncio
    async def test_uses_installed_default(self, processor_module, monkeypatch):
        source = FakeTextSource(["Schedule E Supplemental Income", "Mortgage Interest"])
        monkeypatch.setattr(
            processor_module,
            "_default_processor",
            TaxReturnProcessor(extractor=FakeExtractor(source)),
        )

        summary = await process_tax_return(b"%PDF", "application/pdf", "rental.pdf")

        assert summary.schedules == ("Schedule E",)
        assert summary.has_rental_property is True
        assert summary.deduction_categories == ("Mortgage Interest",)
        assert source.closed is True

    @pytest.mark.asyncio
    async def test_default_created_once(self, processor_module, monkeypatch):
        extractor = FakeExtractor(FakeTextSource(["W-2"]))
        monkeypatch.setattr(processor_module, "create_pdf_extractor", lambda: extractor)

        first = await process_tax_return(b"%PDF", "application/pdf")
        default = processor_module._default_processor
        second = await process_tax_return(b"%PDF", "application/pdf")

        assert first.income_types == ("W-2",)
        assert second == first
        assert processor_module._default_processor is default
        assert default.extractor is extractor
        assert extractor.opened == 2

    @pytest.mark.asyncio
    async def test_validation_applies(self, processor_module, monkeypatch):
        extractor = FakeExtractor(FakeTextSource(["W-2"]))
        monkeypatch.setattr(processor_module, "create_pdf_extractor", lambda: extractor)

        with pytest.raises(UnsupportedFileTypeError):
            await process_tax_return(b"hello", "text/plain", "notes.txt")

        assert extractor.opened == 0
