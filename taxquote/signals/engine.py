"""
Signal detection and complexity scoring.

A ``SummaryAccumulator`` is created for each document and folded page by page
with ``apply_page_text``. Once every page has been attempted,
``finalize_summary`` deduplicates the detected labels into a ``TaxSummary``,
which derives its complexity tier from its own fields:

    score = 2 * schedules + 3 * business + 2 * rental + investment term

where the investment term is 3 for complex, 1 for moderate and 0 for simple.
Scores above 6 are advanced, above 3 intermediate, anything else basic.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

from taxquote.models import (
    InvestmentComplexity,
    TaxSummary,
    classify_complexity,
    compute_complexity_score,
)
from taxquote.signals.catalog import (
    SIGNAL_CATALOG,
    AppendLabel,
    Effect,
    SetFlag,
    SetLevel,
    SignalCategory,
    SignalRule,
)


@dataclass
class SummaryAccumulator:
    """Mutable working state for one document."""

    schedules: List[str] = field(default_factory=list)
    income_types: List[str] = field(default_factory=list)
    deduction_categories: List[str] = field(default_factory=list)
    has_business_income: bool = False
    has_rental_property: bool = False
    investment_complexity: InvestmentComplexity = InvestmentComplexity.SIMPLE
    pages_scanned: int = 0

    def labels_for(self, category: SignalCategory) -> List[str]:
        if category is SignalCategory.SCHEDULE:
            return self.schedules
        if category is SignalCategory.INCOME_TYPE:
            return self.income_types
        return self.deduction_categories


def _apply_effect(accumulator: SummaryAccumulator, rule: SignalRule, effect: Effect) -> None:
    if isinstance(effect, AppendLabel):
        accumulator.labels_for(rule.category).append(effect.label)
    elif isinstance(effect, SetFlag):
        setattr(accumulator, effect.flag, True)
    elif isinstance(effect, SetLevel):
        # last write wins, a later Schedule B downgrades an earlier Schedule D
        accumulator.investment_complexity = effect.level


def apply_page_text(
    accumulator: SummaryAccumulator,
    text: str,
    catalog: Sequence[SignalRule] = SIGNAL_CATALOG,
) -> List[str]:
    """
    Apply every catalog rule whose marker occurs in one page's text.

    Markers are matched as case-sensitive literal substrings. All matching
    rules fire, in catalog order.

    Args:
        accumulator: Working state of the current document
        text: Flattened text of a single page
        catalog: Rules to apply (defaults to the built-in catalog)

    Returns:
        Markers found on this page, in catalog order
    """
    matched = []
    for rule in catalog:
        if rule.marker in text:
            matched.append(rule.marker)
            for effect in rule.effects:
                _apply_effect(accumulator, rule, effect)
    accumulator.pages_scanned += 1
    return matched


def dedupe(values: Iterable[str]) -> tuple:
    """Drop repeats, keeping the first occurrence of each value."""
    return tuple(dict.fromkeys(values))


def finalize_summary(accumulator: SummaryAccumulator) -> TaxSummary:
    """Build the immutable summary for a fully folded accumulator."""
    return TaxSummary(
        income_types=dedupe(accumulator.income_types),
        schedules=dedupe(accumulator.schedules),
        has_business_income=accumulator.has_business_income,
        has_rental_property=accumulator.has_rental_property,
        investment_complexity=accumulator.investment_complexity,
        deduction_categories=dedupe(accumulator.deduction_categories),
    )
