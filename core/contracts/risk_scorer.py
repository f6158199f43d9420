"""Risk Scorer - deterministic contract risk scoring.

Converts a structured contract analysis into a bounded integer risk score
(0-100) and a risk level. The score is a weighted sum of:

- detected clauses: clause weight x rating multiplier
- red flags: flat penalty by severity
- missing clauses: flat penalty by importance

The sum is clamped to [0, 100] and rounded. The risk level is always derived
from the clamped score, never taken from the extraction output.

The scorer is a pure function with no shared state and is safe to call
concurrently.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable

from pydantic.alias_generators import to_camel

from core.contracts.models import ClauseAnalysisSet, MissingClause, RedFlag
from core.contracts.taxonomy import (
    CLAUSE_RISK_MULTIPLIERS,
    IMPORTANCE_PENALTIES,
    MAX_RISK_SCORE,
    MIN_RISK_SCORE,
    SEVERITY_PENALTIES,
    ClauseType,
    RiskLevel,
    classify_risk_level,
    get_clause_weight,
    normalize_clause_risk_level,
    normalize_importance,
    normalize_severity,
)

logger = logging.getLogger("creatorlens.risk_scorer")

# Wire (camelCase) clause keys -> taxonomy values
WIRE_CLAUSE_KEYS: dict[str, str] = {to_camel(ct.value): ct.value for ct in ClauseType}


@dataclass(frozen=True)
class ScoreContribution:
    """One line of the score breakdown."""
    source: str  # "clause", "red_flag" or "missing_clause"
    key: str
    rating: str
    points: float


@dataclass(frozen=True)
class RiskAssessment:
    """Result of scoring one analysis."""
    risk_score: int
    risk_level: RiskLevel
    raw_score: float
    clause_count: int = 0
    red_flag_count: int = 0
    missing_clause_count: int = 0
    contributions: tuple[ScoreContribution, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "risk_score": self.risk_score,
            "risk_level": self.risk_level.value,
            "raw_score": self.raw_score,
            "clause_count": self.clause_count,
            "red_flag_count": self.red_flag_count,
            "missing_clause_count": self.missing_clause_count,
            "contributions": [
                {"source": c.source, "key": c.key, "rating": c.rating, "points": c.points}
                for c in self.contributions
            ],
        }


def _get(item: Any, name: str, camel: str | None = None) -> Any:
    """Read a field from a model or a plain dict."""
    if isinstance(item, dict):
        if name in item:
            return item[name]
        return item.get(camel) if camel else None
    return getattr(item, name, None)


def _iter_clauses(clause_analysis: Any) -> Iterable[tuple[str, Any]]:
    if clause_analysis is None:
        return []
    if isinstance(clause_analysis, ClauseAnalysisSet):
        return [(ct.value, clause) for ct, clause in clause_analysis.iter_clauses()]
    if isinstance(clause_analysis, dict):
        return [(WIRE_CLAUSE_KEYS.get(key, key), clause) for key, clause in clause_analysis.items()]
    return []


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 rounding up."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> float:
    """Clamp a raw score into [0, 100]."""
    return max(MIN_RISK_SCORE, min(MAX_RISK_SCORE, value))


def score_clauses(clause_analysis: Any) -> list[ScoreContribution]:
    """Score every detected clause. Undetected clauses contribute nothing."""
    contributions = []
    for clause_type, clause in _iter_clauses(clause_analysis):
        if clause is None or not _get(clause, "detected"):
            continue
        rating = normalize_clause_risk_level(_get(clause, "risk_level", "riskLevel"))
        multiplier = CLAUSE_RISK_MULTIPLIERS.get(str(rating), 0.0)
        contributions.append(
            ScoreContribution(
                source="clause",
                key=clause_type,
                rating=str(rating),
                points=get_clause_weight(clause_type) * multiplier,
            )
        )
    return contributions


def score_red_flags(red_flags: Iterable[RedFlag | dict] | None) -> list[ScoreContribution]:
    """Flat penalty per red flag by severity."""
    contributions = []
    for flag in red_flags or []:
        severity = normalize_severity(_get(flag, "severity"))
        contributions.append(
            ScoreContribution(
                source="red_flag",
                key=str(_get(flag, "type") or ""),
                rating=severity,
                points=float(SEVERITY_PENALTIES.get(severity, 0)),
            )
        )
    return contributions


def score_missing_clauses(missing: Iterable[MissingClause | dict] | None) -> list[ScoreContribution]:
    """Flat penalty per missing clause by importance."""
    contributions = []
    for item in missing or []:
        importance = normalize_importance(_get(item, "importance"))
        contributions.append(
            ScoreContribution(
                source="missing_clause",
                key=str(_get(item, "clause_type", "clauseType") or ""),
                rating=importance,
                points=float(IMPORTANCE_PENALTIES.get(importance, 0)),
            )
        )
    return contributions


def score(analysis: Any) -> RiskAssessment:
    """Score a contract analysis.

    Accepts an ExtractionResult, a ContractAnalysis, or a plain dict with
    ``clauseAnalysis``/``redFlags``/``missingClauses`` keys. Absent parts
    are treated as empty.

    Args:
        analysis: The structured analysis to score.

    Returns:
        RiskAssessment with the clamped score, its risk level and a breakdown.
    """
    clause_analysis = _get(analysis, "clause_analysis", "clauseAnalysis")
    red_flags = _get(analysis, "red_flags", "redFlags") or []
    missing = _get(analysis, "missing_clauses", "missingClauses") or []

    contributions = (
        score_clauses(clause_analysis)
        + score_red_flags(red_flags)
        + score_missing_clauses(missing)
    )
    raw_score = sum(c.points for c in contributions)
    risk_score = round_half_up(clamp_score(raw_score))
    risk_level = classify_risk_level(risk_score)

    clause_count = sum(1 for c in contributions if c.source == "clause")

    logger.info(
        f"Risk score calculated: score={risk_score} level={risk_level.value} "
        f"raw={raw_score:.1f} clauses={clause_count} red_flags={len(red_flags)} "
        f"missing={len(missing)}"
    )

    return RiskAssessment(
        risk_score=risk_score,
        risk_level=risk_level,
        raw_score=raw_score,
        clause_count=clause_count,
        red_flag_count=len(red_flags),
        missing_clause_count=len(missing),
        contributions=tuple(contributions),
    )
