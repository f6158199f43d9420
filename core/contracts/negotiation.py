"""Negotiation Point Deriver.

Turns a contract analysis into an ordered list of negotiation points:

1. Clauses in taxonomy order: risky -> must_have, caution -> important.
2. Red flags with high/critical severity, in supplied order -> must_have.

Clause points and red flag points are never merged. A risky clause that is
also the subject of a critical red flag yields two points.
"""

import logging
from enum import Enum
from typing import Any

from pydantic import Field

from core.contracts.models import CamelModel, ClauseAnalysisSet, ContractAnalysis, ExtractionResult, Text
from core.contracts.taxonomy import OTHER_CLAUSE_TYPE, ClauseRiskLevel, Severity

logger = logging.getLogger("creatorlens.negotiation")


class NegotiationPriority(str, Enum):
    """How important a negotiation point is to the creator."""
    MUST_HAVE = "must_have"
    IMPORTANT = "important"
    NICE_TO_HAVE = "nice_to_have"


class PointStatus(str, Enum):
    """Brand response to a single negotiation point."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COUNTER_OFFERED = "counter_offered"


RISKY_CLAUSE_REASON = "Current terms are unfavorable to creator. "
CAUTION_CLAUSE_REASON = "Terms could be improved. "
RED_FLAG_REASON = "Critical issue identified: "

NEGOTIABLE_SEVERITIES = (Severity.HIGH.value, Severity.CRITICAL.value)


class NegotiationPoint(CamelModel):
    """A single change the creator asks the brand to make."""
    clause_type: str = Field(..., min_length=1)
    original_clause: Text = ""
    proposed_change: Text = ""
    reasoning: Text = ""
    priority: NegotiationPriority = NegotiationPriority.IMPORTANT
    status: PointStatus = PointStatus.PENDING


def _clause_point(clause_type: str, clause: Any, priority: NegotiationPriority, prefix: str) -> NegotiationPoint:
    recommendation = clause.recommendation or ""
    return NegotiationPoint(
        clause_type=clause_type,
        original_clause=clause.content or "",
        proposed_change=recommendation,
        reasoning=f"{prefix}{recommendation}",
        priority=priority,
    )


def derive_negotiation_points(
    analysis: ContractAnalysis | ExtractionResult,
) -> list[NegotiationPoint]:
    """Derive negotiation points from an analysis.

    Deterministic and order preserving; calling it twice on the same
    analysis yields equal lists.

    Args:
        analysis: Scored contract analysis (or raw extraction result).

    Returns:
        Points in display order, all with status ``pending``.
    """
    points: list[NegotiationPoint] = []
    clause_analysis: ClauseAnalysisSet = analysis.clause_analysis or ClauseAnalysisSet()

    for clause_type, clause in clause_analysis.iter_clauses():
        if not clause.detected:
            continue
        if clause.risk_level == ClauseRiskLevel.RISKY.value:
            points.append(
                _clause_point(clause_type.value, clause, NegotiationPriority.MUST_HAVE, RISKY_CLAUSE_REASON)
            )
        elif clause.risk_level == ClauseRiskLevel.CAUTION.value:
            points.append(
                _clause_point(clause_type.value, clause, NegotiationPriority.IMPORTANT, CAUTION_CLAUSE_REASON)
            )

    for flag in analysis.red_flags or []:
        if flag.severity not in NEGOTIABLE_SEVERITIES:
            continue
        points.append(
            NegotiationPoint(
                clause_type=OTHER_CLAUSE_TYPE,
                original_clause=flag.description,
                proposed_change=flag.recommendation,
                reasoning=f"{RED_FLAG_REASON}{flag.description}",
                priority=NegotiationPriority.MUST_HAVE,
            )
        )

    logger.info(f"Negotiation points derived: count={len(points)}")
    return points


def group_by_priority(points: list[NegotiationPoint]) -> dict[NegotiationPriority, list[NegotiationPoint]]:
    """Partition points into priority buckets, keeping input order within each."""
    buckets: dict[NegotiationPriority, list[NegotiationPoint]] = {p: [] for p in NegotiationPriority}
    for point in points:
        buckets[NegotiationPriority(point.priority)].append(point)
    return buckets
