"""Contract intelligence engine.

Pure, stateless building blocks:
- taxonomy: clause types, severity scales and scoring weights
- models: extraction output and ContractAnalysis models
- risk_scorer: deterministic 0-100 risk score and risk level
- negotiation: negotiation point derivation
- email_composer: tone-specific negotiation email text
"""

from core.contracts.email_composer import EmailTemplate, Tone, compose_negotiation_email
from core.contracts.models import ClauseAnalysisSet, ContractAnalysis, ExtractionResult, MissingClause, RedFlag
from core.contracts.negotiation import (
    NegotiationPoint,
    NegotiationPriority,
    PointStatus,
    derive_negotiation_points,
)
from core.contracts.risk_scorer import RiskAssessment, score
from core.contracts.taxonomy import ClauseType, RiskLevel

__all__ = [
    "ClauseAnalysisSet",
    "ClauseType",
    "ContractAnalysis",
    "EmailTemplate",
    "ExtractionResult",
    "MissingClause",
    "NegotiationPoint",
    "NegotiationPriority",
    "PointStatus",
    "RedFlag",
    "RiskAssessment",
    "RiskLevel",
    "Tone",
    "compose_negotiation_email",
    "derive_negotiation_points",
    "score",
]
