"""Keyword signal detection and complexity scoring for tax return text."""

from .catalog import (
    SIGNAL_CATALOG,
    AppendLabel,
    SetFlag,
    SetLevel,
    SignalCategory,
    SignalRule,
    rules_for_category,
)
from .engine import (
    SummaryAccumulator,
    apply_page_text,
    classify_complexity,
    compute_complexity_score,
    finalize_summary,
)

__all__ = [
    # Catalog
    "SIGNAL_CATALOG",
    "AppendLabel",
    "SetFlag",
    "SetLevel",
    "SignalCategory",
    "SignalRule",
    "rules_for_category",
    # Engine
    "SummaryAccumulator",
    "apply_page_text",
    "classify_complexity",
    "compute_complexity_score",
    "finalize_summary",
]
