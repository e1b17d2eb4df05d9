"""
Render a TaxSummary as plain text or as a one-page PDF quote sheet.
"""

from pathlib import Path
from typing import List, Optional, Union
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from taxquote.config import get_settings
from taxquote.models import TaxSummary
from taxquote.utils.logging import get_logger

logger = get_logger(__name__)

REPORT_TITLE = "Tax Return Complexity Analysis"


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def summary_lines(summary: TaxSummary) -> List[str]:
    """One ``Label: value`` line per summary field, in display order."""
    return [
        f"Estimated Complexity: {summary.estimated_complexity.value}",
        f"Required Schedules: {', '.join(summary.schedules)}",
        f"Income Types: {', '.join(summary.income_types)}",
        f"Business Income: {_yes_no(summary.has_business_income)}",
        f"Rental Property: {_yes_no(summary.has_rental_property)}",
        f"Investment Complexity: {summary.investment_complexity.value}",
        f"Deduction Categories: {', '.join(summary.deduction_categories)}",
    ]


def format_summary_text(summary: TaxSummary) -> str:
    """Plain-text report suitable for pasting into an email or ticket."""
    lines = [REPORT_TITLE, "-" * 29] + summary_lines(summary)
    return "\n".join(lines)


def export_summary_pdf(
    summary: TaxSummary,
    output_path: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Write the summary as a one-page PDF.

    Args:
        summary: Finalized summary to render
        output_path: Destination file (defaults to the configured export name)

    Returns:
        Path of the written PDF
    """
    output_path = Path(output_path or get_settings().export_filename)

    doc = SimpleDocTemplate(str(output_path), pagesize=letter, title=REPORT_TITLE)
    styles = getSampleStyleSheet()

    story = [Paragraph(REPORT_TITLE, styles["Title"]), Spacer(1, 0.3 * inch)]
    for line in summary_lines(summary):
        story.append(Paragraph(escape(line), styles["Normal"]))
        story.append(Spacer(1, 0.15 * inch))

    doc.build(story)

    logger.info(f"Exported summary to {output_path}")
    return output_path
