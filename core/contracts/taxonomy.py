"""Clause Taxonomy and scoring weights for creator-brand contracts.

This module defines the fixed clause taxonomy, the severity and importance
scales, and the static weight tables used by the Risk Scorer.

Usage:
    from core.contracts.taxonomy import ClauseType, Severity, RiskLevel
    from core.contracts.taxonomy import classify_risk_level, normalize_severity
"""

from enum import Enum


class ClauseType(str, Enum):
    """The seven clause categories the analysis understands.

    Declaration order is the taxonomy iteration order used by the
    negotiation point deriver.
    """

    PAYMENT_TERMS = "payment_terms"
    USAGE_RIGHTS = "usage_rights"
    DELIVERABLES = "deliverables"
    EXCLUSIVITY_CLAUSE = "exclusivity_clause"
    PENALTY_CLAUSES = "penalty_clauses"
    TERMINATION_CLAUSE = "termination_clause"
    INTELLECTUAL_PROPERTY = "intellectual_property"


# Clause type used for negotiation points raised from red flags
OTHER_CLAUSE_TYPE = "other"


class ClauseRiskLevel(str, Enum):
    """Risk rating of a single clause as reported by extraction."""

    SAFE = "safe"
    CAUTION = "caution"
    RISKY = "risky"


class Severity(str, Enum):
    """Severity levels for red flags."""

    CRITICAL = "critical"
    """Immediate attention required before signing."""

    HIGH = "high"
    """Significant issue that should be negotiated."""

    MEDIUM = "medium"
    """Notable concern that warrants review."""

    LOW = "low"
    """Minor issue with limited impact."""


class Importance(str, Enum):
    """How badly a missing clause is needed."""

    CRITICAL = "critical"
    IMPORTANT = "important"
    RECOMMENDED = "recommended"


class RiskLevel(str, Enum):
    """Overall contract risk bucket, derived solely from the risk score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RedFlagType(str, Enum):
    """Named unfavorable patterns the extraction is asked to report."""

    UNLIMITED_USAGE = "unlimited_usage"
    LONG_EXCLUSIVITY = "long_exclusivity"
    HARSH_PENALTIES = "harsh_penalties"
    VAGUE_DELIVERABLES = "vague_deliverables"
    LATE_PAYMENT = "late_payment"
    UNFAIR_TERMINATION = "unfair_termination"


class MissingClauseType(str, Enum):
    """Clause types the extraction may report as missing."""

    PAYMENT_TERMS = "payment_terms"
    USAGE_RIGHTS = "usage_rights"
    DELIVERABLES = "deliverables"
    TERMINATION = "termination"
    LIABILITY = "liability"
    FORCE_MAJEURE = "force_majeure"


# Weight of each clause type in the risk score
CLAUSE_WEIGHTS: dict[str, int] = {
    ClauseType.PAYMENT_TERMS.value: 25,
    ClauseType.USAGE_RIGHTS.value: 30,
    ClauseType.EXCLUSIVITY_CLAUSE.value: 20,
    ClauseType.PENALTY_CLAUSES.value: 15,
    ClauseType.TERMINATION_CLAUSE.value: 10,
    ClauseType.DELIVERABLES.value: 10,
    ClauseType.INTELLECTUAL_PROPERTY.value: 15,
}

DEFAULT_CLAUSE_WEIGHT = 10

# Fraction of the clause weight charged for each clause rating
CLAUSE_RISK_MULTIPLIERS: dict[str, float] = {
    ClauseRiskLevel.RISKY.value: 0.8,
    ClauseRiskLevel.CAUTION.value: 0.4,
    ClauseRiskLevel.SAFE.value: 0.1,
}

# Flat penalty per red flag
SEVERITY_PENALTIES: dict[str, int] = {
    Severity.CRITICAL.value: 25,
    Severity.HIGH.value: 15,
    Severity.MEDIUM.value: 10,
    Severity.LOW.value: 5,
}

# Flat penalty per missing clause
IMPORTANCE_PENALTIES: dict[str, int] = {
    Importance.CRITICAL.value: 20,
    Importance.IMPORTANT.value: 10,
    Importance.RECOMMENDED.value: 5,
}

# Upper bound (inclusive) of each risk level, checked in order
RISK_LEVEL_THRESHOLDS: list[tuple[int, RiskLevel]] = [
    (30, RiskLevel.LOW),
    (60, RiskLevel.MEDIUM),
    (80, RiskLevel.HIGH),
]

MIN_RISK_SCORE = 0
MAX_RISK_SCORE = 100


CLAUSE_DESCRIPTIONS: dict[ClauseType, str] = {
    ClauseType.PAYMENT_TERMS: "When and how the creator gets paid.",
    ClauseType.USAGE_RIGHTS: "How long and where the brand may use the creator's content.",
    ClauseType.DELIVERABLES: "What content the creator must produce and by when.",
    ClauseType.EXCLUSIVITY_CLAUSE: "Restrictions on working with competing brands.",
    ClauseType.PENALTY_CLAUSES: "Financial consequences for breach or late delivery.",
    ClauseType.TERMINATION_CLAUSE: "How either side can end the agreement.",
    ClauseType.INTELLECTUAL_PROPERTY: "Who owns the content and under which license.",
}


def get_clause_weight(clause_type: ClauseType | str) -> int:
    """Get the scoring weight for a clause type (unknown types weigh 10)."""
    if isinstance(clause_type, ClauseType):
        clause_type = clause_type.value
    return CLAUSE_WEIGHTS.get(clause_type, DEFAULT_CLAUSE_WEIGHT)


def classify_risk_level(risk_score: int | float) -> RiskLevel:
    """Classify a clamped risk score into a risk level.

    - score <= 30 → LOW
    - score <= 60 → MEDIUM
    - score <= 80 → HIGH
    - otherwise  → CRITICAL
    """
    for upper_bound, level in RISK_LEVEL_THRESHOLDS:
        if risk_score <= upper_bound:
            return level
    return RiskLevel.CRITICAL


def humanize_clause_type(clause_type: str) -> str:
    """Render a clause type for display, e.g. 'usage_rights' -> 'USAGE RIGHTS'."""
    return clause_type.replace("_", " ").upper()


def _clean(value: object) -> str:
    if value is None:
        return ""
    return str(value).lower().strip().replace("-", "_").replace(" ", "_")


def normalize_clause_risk_level(value: object) -> str:
    """Normalize a clause rating to safe/caution/risky.

    Unrecognized values are returned cleaned but unchanged; they score zero.
    """
    cleaned = _clean(value)
    if cleaned in {r.value for r in ClauseRiskLevel}:
        return cleaned
    if cleaned in ("high", "unsafe", "dangerous", "unfavorable"):
        return ClauseRiskLevel.RISKY.value
    if cleaned in ("medium", "moderate", "warning", "review"):
        return ClauseRiskLevel.CAUTION.value
    if cleaned in ("low", "ok", "fine", "favorable"):
        return ClauseRiskLevel.SAFE.value
    return cleaned


def normalize_severity(value: object) -> str:
    """Normalize a red flag severity string.

    Unrecognized values are returned cleaned but unchanged; they score zero.
    """
    cleaned = _clean(value)
    if cleaned in {s.value for s in Severity}:
        return cleaned
    if "critical" in cleaned or "severe" in cleaned or "extreme" in cleaned:
        return Severity.CRITICAL.value
    if "high" in cleaned or "major" in cleaned:
        return Severity.HIGH.value
    if "medium" in cleaned or "moderate" in cleaned:
        return Severity.MEDIUM.value
    if "low" in cleaned or "minor" in cleaned:
        return Severity.LOW.value
    return cleaned


def normalize_importance(value: object) -> str:
    """Normalize a missing-clause importance string."""
    cleaned = _clean(value)
    if cleaned in {i.value for i in Importance}:
        return cleaned
    if "critical" in cleaned or "required" in cleaned or "essential" in cleaned:
        return Importance.CRITICAL.value
    if "important" in cleaned or "high" in cleaned:
        return Importance.IMPORTANT.value
    if "recommend" in cleaned or "optional" in cleaned or "nice" in cleaned:
        return Importance.RECOMMENDED.value
    return cleaned
