"""
PDF processing for tax returns.

- extractor: PyMuPDF-backed page text sources
- processor: validation, page folding and finalization
- runtime: one-time PyMuPDF setup
- validation: upload type and size guard
"""

from .extractor import PageTextSource, PDFExtractor, PyMuPDFTextSource, create_pdf_extractor
from .processor import (
    AnalysisReport,
    PageFailure,
    PageText,
    TaxReturnProcessor,
    iter_page_results,
    process_tax_return,
)
from .validation import guess_content_type, validate_upload

__all__ = [
    "AnalysisReport",
    "PageFailure",
    "PageText",
    "PageTextSource",
    "PDFExtractor",
    "PyMuPDFTextSource",
    "TaxReturnProcessor",
    "create_pdf_extractor",
    "guess_content_type",
    "iter_page_results",
    "process_tax_return",
    "validate_upload",
]
