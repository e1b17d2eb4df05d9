"""
Signal catalog: the literal markers searched for on every page.

Each rule pairs a marker with the effects it triggers when found. Effects are
a small tagged variant (label append, flag set, level set) interpreted by
``taxquote.signals.engine``; the catalog itself holds no behaviour.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

from taxquote.models import InvestmentComplexity


class SignalCategory(str, Enum):
    """Which summary list a rule's label is appended to."""

    SCHEDULE = "schedule"
    INCOME_TYPE = "income-type"
    DEDUCTION = "deduction"


SUMMARY_FLAGS = frozenset(["has_business_income", "has_rental_property"])


@dataclass(frozen=True)
class AppendLabel:
    """Append a label to the list owned by the rule's category."""

    label: str


@dataclass(frozen=True)
class SetFlag:
    """Flip a summary flag to True."""

    flag: str

    def __post_init__(self) -> None:
        if self.flag not in SUMMARY_FLAGS:
            raise ValueError(f"Unknown summary flag: {self.flag}")


@dataclass(frozen=True)
class SetLevel:
    """Overwrite the investment complexity level."""

    level: InvestmentComplexity


Effect = Union[AppendLabel, SetFlag, SetLevel]


@dataclass(frozen=True)
class SignalRule:
    """A marker and the effects applied when it occurs in page text."""

    marker: str
    category: SignalCategory
    effects: Tuple[Effect, ...] = ()


SIGNAL_CATALOG: Tuple[SignalRule, ...] = (
    # Schedules
    SignalRule(
        "Schedule C",
        SignalCategory.SCHEDULE,
        (AppendLabel("Schedule C"), SetFlag("has_business_income")),
    ),
    SignalRule(
        "Schedule E",
        SignalCategory.SCHEDULE,
        (AppendLabel("Schedule E"), SetFlag("has_rental_property")),
    ),
    SignalRule(
        "Schedule B",
        SignalCategory.SCHEDULE,
        (AppendLabel("Schedule B"), SetLevel(InvestmentComplexity.MODERATE)),
    ),
    SignalRule(
        "Schedule D",
        SignalCategory.SCHEDULE,
        (AppendLabel("Schedule D"), SetLevel(InvestmentComplexity.COMPLEX)),
    ),
    # Income forms
    SignalRule("W-2", SignalCategory.INCOME_TYPE, (AppendLabel("W-2"),)),
    SignalRule("1099-NEC", SignalCategory.INCOME_TYPE, (AppendLabel("1099-NEC"),)),
    SignalRule("1099-DIV", SignalCategory.INCOME_TYPE, (AppendLabel("1099-DIV"),)),
    SignalRule("1099-INT", SignalCategory.INCOME_TYPE, (AppendLabel("1099-INT"),)),
    # Deductions
    SignalRule("Charitable", SignalCategory.DEDUCTION, (AppendLabel("Charitable Contributions"),)),
    SignalRule("Mortgage Interest", SignalCategory.DEDUCTION, (AppendLabel("Mortgage Interest"),)),
    SignalRule("Medical", SignalCategory.DEDUCTION, (AppendLabel("Medical Expenses"),)),
)


def rules_for_category(category: SignalCategory) -> Tuple[SignalRule, ...]:
    """Return the catalog rules of one category in declaration order."""
    return tuple(rule for rule in SIGNAL_CATALOG if rule.category == category)
