"""
Core data models for the taxquote analyzer.

This module defines the Pydantic models returned to callers: the finalized
tax summary and the processing status reported while a document is analyzed.
"""

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# Enums
# =============================================================================


class InvestmentComplexity(str, Enum):
    """Investment profile derived from Schedule B / Schedule D markers."""

    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class ComplexityTier(str, Enum):
    """Estimated preparation complexity of a return."""

    BASIC = "basic"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ProcessingStage(str, Enum):
    """Stage of a document analysis run."""

    IDLE = "idle"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


# =============================================================================
# Complexity Scoring
# =============================================================================

INVESTMENT_WEIGHTS = {
    InvestmentComplexity.SIMPLE: 0,
    InvestmentComplexity.MODERATE: 1,
    InvestmentComplexity.COMPLEX: 3,
}

SCHEDULE_WEIGHT = 2
BUSINESS_INCOME_WEIGHT = 3
RENTAL_PROPERTY_WEIGHT = 2

ADVANCED_THRESHOLD = 6
INTERMEDIATE_THRESHOLD = 3


def compute_complexity_score(
    schedule_count: int,
    has_business_income: bool,
    has_rental_property: bool,
    investment_complexity: InvestmentComplexity,
) -> int:
    return (
        SCHEDULE_WEIGHT * schedule_count
        + (BUSINESS_INCOME_WEIGHT if has_business_income else 0)
        + (RENTAL_PROPERTY_WEIGHT if has_rental_property else 0)
        + INVESTMENT_WEIGHTS[InvestmentComplexity(investment_complexity)]
    )


def classify_complexity(score: int) -> ComplexityTier:
    if score > ADVANCED_THRESHOLD:
        return ComplexityTier.ADVANCED
    if score > INTERMEDIATE_THRESHOLD:
        return ComplexityTier.INTERMEDIATE
    return ComplexityTier.BASIC


# =============================================================================
# Summary Models
# =============================================================================


class TaxSummary(BaseModel):
    """Finalized, read-only analysis of one tax return."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    income_types: Tuple[str, ...] = Field(default=(), description="Detected income forms")
    schedules: Tuple[str, ...] = Field(default=(), description="Detected schedules")
    has_business_income: bool = Field(False, description="Schedule C was found")
    has_rental_property: bool = Field(False, description="Schedule E was found")
    investment_complexity: InvestmentComplexity = Field(
        default=InvestmentComplexity.SIMPLE,
        description="Investment profile, last detected level wins",
    )
    deduction_categories: Tuple[str, ...] = Field(default=(), description="Detected deductions")

    @field_validator("income_types", "schedules", "deduction_categories")
    @classmethod
    def validate_unique(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        """Label sequences hold each value at most once."""
        if len(set(v)) != len(v):
            raise ValueError("Label sequences must not contain duplicates")
        return v

    @property
    def complexity_score(self) -> int:
        return compute_complexity_score(
            len(self.schedules),
            self.has_business_income,
            self.has_rental_property,
            self.investment_complexity,
        )

    # Derived on every access; an input value for it is ignored
    @computed_field(alias="estimatedComplexity", description="Tier derived from the complexity score")
    @property
    def estimated_complexity(self) -> ComplexityTier:
        return classify_complexity(self.complexity_score)


class ProcessingStatus(BaseModel):
    """Progress update emitted while a document is analyzed."""

    model_config = ConfigDict(frozen=True)

    stage: ProcessingStage = Field(..., description="Current stage")
    progress: int = Field(..., ge=0, le=100, description="Percent complete")
    message: str = Field(..., description="User-facing status message")
