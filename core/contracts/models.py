"""Structured contract analysis models.

These models describe the output contract of the extraction collaborator and
the immutable ContractAnalysis the core derives from it. Field names are
snake_case in Python and camelCase on the wire.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator
from uuid import uuid4

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated

from core.contracts.taxonomy import (
    ClauseRiskLevel,
    ClauseType,
    RiskLevel,
    normalize_clause_risk_level,
    normalize_importance,
    normalize_severity,
)


def none_to_empty(v: Any) -> Any:
    """Treat null text as empty text before validation."""
    return "" if v is None else v


def none_to_list(v: Any) -> Any:
    """Treat null lists as empty lists before validation."""
    return [] if v is None else v


def coerce_number(v: Any) -> Any:
    """Pull a number out of values like '45 days' or '₹50,000'; None if there is none."""
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return v
    digits = "".join(ch for ch in str(v) if ch.isdigit() or ch == ".")
    if not digits or digits.count(".") > 1:
        return None
    return float(digits) if "." in digits else int(digits)


Text = Annotated[str, BeforeValidator(none_to_empty)]
TextList = Annotated[list[str], BeforeValidator(none_to_list)]
Number = Annotated[float | None, BeforeValidator(coerce_number)]


class CamelModel(BaseModel):
    """Base model accepting both camelCase (wire) and snake_case (Python) keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# Clause analysis
# =============================================================================

class ClauseDetail(CamelModel):
    """Fields shared by every clause in the taxonomy."""
    detected: bool = False
    content: str | None = None
    risk_level: str = ClauseRiskLevel.SAFE.value
    recommendation: str | None = None

    @field_validator("detected", mode="before")
    @classmethod
    def validate_detected(cls, v: Any) -> bool:
        """Null means not detected."""
        return bool(v) if v is not None else False

    @field_validator("risk_level", mode="before")
    @classmethod
    def validate_risk_level(cls, v: Any) -> str:
        """Normalize clause rating to safe/caution/risky."""
        if v is None:
            return ClauseRiskLevel.SAFE.value
        return normalize_clause_risk_level(v)


class PaymentTermsClause(ClauseDetail):
    payment_days: Number = None
    payment_method: str | None = None


class UsageRightsClause(ClauseDetail):
    duration: str | None = None
    scope: TextList = Field(default_factory=list)
    exclusivity: bool | None = None


class DeliverableItem(CamelModel):
    type: Text = ""
    quantity: Number = None
    deadline: str | None = None
    description: str | None = None


class DeliverablesClause(ClauseDetail):
    items: Annotated[list[DeliverableItem], BeforeValidator(none_to_list)] = Field(default_factory=list)


class ExclusivityClause(ClauseDetail):
    duration: str | None = None
    scope: TextList = Field(default_factory=list)
    competitors: TextList = Field(default_factory=list)


class Penalty(CamelModel):
    condition: Text = ""
    penalty: Text = ""
    amount: Number = None


class PenaltyClauses(ClauseDetail):
    penalties: Annotated[list[Penalty], BeforeValidator(none_to_list)] = Field(default_factory=list)


class TerminationClause(ClauseDetail):
    notice_period: str | None = None
    conditions: TextList = Field(default_factory=list)


class IntellectualPropertyClause(ClauseDetail):
    ownership: str | None = None
    license_type: str | None = None


def none_to_dict(v: Any) -> Any:
    """Treat a null clause as an undetected clause."""
    return {} if v is None else v


class ClauseAnalysisSet(CamelModel):
    """Exactly one analysis per clause type in the fixed taxonomy."""
    payment_terms: Annotated[PaymentTermsClause, BeforeValidator(none_to_dict)] = Field(
        default_factory=PaymentTermsClause
    )
    usage_rights: Annotated[UsageRightsClause, BeforeValidator(none_to_dict)] = Field(
        default_factory=UsageRightsClause
    )
    deliverables: Annotated[DeliverablesClause, BeforeValidator(none_to_dict)] = Field(
        default_factory=DeliverablesClause
    )
    exclusivity_clause: Annotated[ExclusivityClause, BeforeValidator(none_to_dict)] = Field(
        default_factory=ExclusivityClause
    )
    penalty_clauses: Annotated[PenaltyClauses, BeforeValidator(none_to_dict)] = Field(
        default_factory=PenaltyClauses
    )
    termination_clause: Annotated[TerminationClause, BeforeValidator(none_to_dict)] = Field(
        default_factory=TerminationClause
    )
    intellectual_property: Annotated[IntellectualPropertyClause, BeforeValidator(none_to_dict)] = Field(
        default_factory=IntellectualPropertyClause
    )

    def get(self, clause_type: ClauseType) -> ClauseDetail:
        """Get the analysis for a clause type."""
        return getattr(self, clause_type.value)

    def iter_clauses(self) -> Iterator[tuple[ClauseType, ClauseDetail]]:
        """Yield (clause_type, clause) pairs in taxonomy order."""
        for clause_type in ClauseType:
            yield clause_type, self.get(clause_type)

    def detected_clauses(self) -> list[ClauseType]:
        """Clause types that were found in the contract text."""
        return [ct for ct, clause in self.iter_clauses() if clause.detected]


# =============================================================================
# Red flags, missing clauses and recommendations
# =============================================================================

class RedFlag(CamelModel):
    """A named unfavorable pattern found in the contract."""
    type: Text = ""
    severity: Text = ""
    description: Text = ""
    recommendation: Text = ""
    location: str | None = None

    @field_validator("severity", mode="before")
    @classmethod
    def validate_severity(cls, v: Any) -> str:
        """Normalize severity to critical/high/medium/low where recognizable."""
        return normalize_severity(v)


class MissingClause(CamelModel):
    """A clause the contract should have but does not."""
    clause_type: Text = ""
    importance: Text = ""
    suggestion: Text = ""

    @field_validator("importance", mode="before")
    @classmethod
    def validate_importance(cls, v: Any) -> str:
        """Normalize importance to critical/important/recommended where recognizable."""
        return normalize_importance(v)


class RecommendedAction(str, Enum):
    """What the extraction recommends the creator do."""
    SIGN_AS_IS = "sign_as_is"
    NEGOTIATE_MINOR = "negotiate_minor"
    NEGOTIATE_MAJOR = "negotiate_major"
    REJECT = "reject"


class OverallRecommendation(CamelModel):
    action: str | None = None
    reasoning: str | None = None
    priority: str | None = None


# =============================================================================
# Extraction collaborator output
# =============================================================================

class ExtractionResult(CamelModel):
    """Shape of the JSON object returned by the extraction collaborator.

    ``risk_score`` and ``risk_level`` are advisory only; the Risk Scorer
    recomputes both.
    """
    risk_score: Number = None
    risk_level: str | None = None
    clause_analysis: ClauseAnalysisSet
    red_flags: Annotated[list[RedFlag], BeforeValidator(none_to_list)] = Field(default_factory=list)
    missing_clauses: Annotated[list[MissingClause], BeforeValidator(none_to_list)] = Field(default_factory=list)
    summary: Text = ""
    overall_recommendation: OverallRecommendation | None = None
    market_comparison: Annotated[dict[str, Any], BeforeValidator(none_to_dict)] = Field(default_factory=dict)


class ContractAnalysis(CamelModel):
    """Immutable analysis of one contract.

    Re-analysis produces a new instance; an existing one is never edited.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(default_factory=lambda: uuid4().hex)
    contract_id: str
    clause_analysis: ClauseAnalysisSet = Field(default_factory=ClauseAnalysisSet)
    red_flags: list[RedFlag] = Field(default_factory=list)
    missing_clauses: list[MissingClause] = Field(default_factory=list)
    risk_score: int = Field(default=0, ge=0, le=100)
    risk_level: RiskLevel = RiskLevel.LOW
    upstream_risk_score: float | None = None
    upstream_risk_level: str | None = None
    summary: str = ""
    overall_recommendation: OverallRecommendation | None = None
    market_comparison: dict[str, Any] = Field(default_factory=dict)
    ai_model: str | None = None
    processing_time_ms: int = 0
    analyzed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
