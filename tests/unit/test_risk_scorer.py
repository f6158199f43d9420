"""Unit tests for the Risk Scorer.

Tests cover:
- Clause weights and rating multipliers
- Red flag and missing clause penalties
- Clamping, rounding and risk level thresholds
- Plain dict (wire format) input
- Monotonicity and idempotence
"""

import pytest

from core.contracts.models import ClauseAnalysisSet, ContractAnalysis, ExtractionResult
from core.contracts.risk_scorer import clamp_score, round_half_up, score
from core.contracts.taxonomy import (
    RiskLevel,
    classify_risk_level,
    get_clause_weight,
    normalize_clause_risk_level,
    normalize_severity,
)


def make_extraction(clauses: dict | None = None, red_flags: list | None = None, missing: list | None = None) -> ExtractionResult:
    return ExtractionResult.model_validate({
        "clauseAnalysis": clauses or {},
        "redFlags": red_flags or [],
        "missingClauses": missing or [],
    })


class TestScenarios:
    """Reference scenarios."""

    def test_empty_analysis_scores_zero(self):
        """Test an analysis with nothing detected scores 0/low."""
        result = score(make_extraction())

        assert result.risk_score == 0
        assert result.risk_level == RiskLevel.LOW
        assert result.contributions == ()

    def test_risky_usage_rights_with_critical_flag(self):
        """Test risky usage rights + critical red flag + important missing clause."""
        analysis = make_extraction(
            clauses={"usageRights": {"detected": True, "riskLevel": "risky"}},
            red_flags=[{"type": "unlimited_usage", "severity": "critical", "description": "Perpetual usage"}],
            missing=[{"clauseType": "termination", "importance": "important", "suggestion": "Add exit"}],
        )

        result = score(analysis)

        # 30 * 0.8 + 25 + 10
        assert result.raw_score == pytest.approx(59.0)
        assert result.risk_score == 59
        assert result.risk_level == RiskLevel.MEDIUM
        assert result.clause_count == 1
        assert result.red_flag_count == 1
        assert result.missing_clause_count == 1

    def test_all_clauses_risky_clamped(self):
        """Test the score never exceeds 100."""
        clauses = {
            field: {"detected": True, "riskLevel": "risky"}
            for field in ClauseAnalysisSet.model_fields
        }
        flags = [{"type": "x", "severity": "critical"}] * 5

        result = score(make_extraction(clauses=clauses, red_flags=flags))

        assert result.raw_score > 100
        assert result.risk_score == 100
        assert result.risk_level == RiskLevel.CRITICAL

    def test_undetected_clause_ignored(self):
        """Test a risky but undetected clause contributes nothing."""
        analysis = make_extraction(clauses={"paymentTerms": {"detected": False, "riskLevel": "risky"}})

        assert score(analysis).risk_score == 0

    def test_safe_clause_contribution(self):
        """Test safe clauses still add 10% of their weight."""
        analysis = make_extraction(clauses={"paymentTerms": {"detected": True, "riskLevel": "safe"}})

        result = score(analysis)

        assert result.raw_score == pytest.approx(2.5)
        assert result.risk_score == 3


class TestDictInput:
    """Tests for scoring plain dictionaries."""

    def test_camel_case_clause_keys(self):
        """Test wire-format keys map onto the taxonomy weights."""
        data = {
            "clauseAnalysis": {"usageRights": {"detected": True, "riskLevel": "risky"}},
            "redFlags": [{"type": "late_payment", "severity": "high"}],
        }

        result = score(data)

        assert result.risk_score == 39
        assert result.contributions[0].key == "usage_rights"

    def test_unknown_clause_type_uses_default_weight(self):
        """Test an unknown clause type weighs 10."""
        data = {"clauseAnalysis": {"moralsClause": {"detected": True, "riskLevel": "risky"}}}

        assert score(data).risk_score == 8

    def test_unknown_severity_scores_zero(self):
        """Test unrecognized severities add nothing."""
        data = {"redFlags": [{"type": "odd", "severity": "purple"}]}

        assert score(data).risk_score == 0

    def test_missing_parts_treated_as_empty(self):
        """Test absent keys behave as empty lists."""
        assert score({}).risk_score == 0


class TestHelpers:
    """Tests for rounding, clamping and classification."""

    @pytest.mark.parametrize(
        "value,expected",
        [(0, RiskLevel.LOW), (30, RiskLevel.LOW), (31, RiskLevel.MEDIUM), (60, RiskLevel.MEDIUM),
         (61, RiskLevel.HIGH), (80, RiskLevel.HIGH), (81, RiskLevel.CRITICAL), (100, RiskLevel.CRITICAL)],
    )
    def test_classify_risk_level_boundaries(self, value, expected):
        """Test risk level thresholds are inclusive upper bounds."""
        assert classify_risk_level(value) == expected

    def test_round_half_up(self):
        """Test .5 always rounds up."""
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.4) == 2

    def test_clamp_score(self):
        """Test clamping into [0, 100]."""
        assert clamp_score(-5) == 0
        assert clamp_score(150) == 100
        assert clamp_score(42.5) == 42.5

    def test_clause_weights(self):
        """Test taxonomy weights."""
        assert get_clause_weight("usage_rights") == 30
        assert get_clause_weight("payment_terms") == 25
        assert get_clause_weight("unknown") == 10

    def test_normalize_ratings(self):
        """Test loose ratings normalize to the fixed scale."""
        assert normalize_clause_risk_level("RISKY") == "risky"
        assert normalize_clause_risk_level("high") == "risky"
        assert normalize_severity("Severe") == "critical"
        assert normalize_severity("major") == "high"


class TestProperties:
    """Tests for bounds, monotonicity and idempotence."""

    def test_adding_red_flag_never_lowers_score(self):
        """Test monotonicity under added red flags."""
        base = make_extraction(
            clauses={"exclusivityClause": {"detected": True, "riskLevel": "caution"}},
        )
        flagged = make_extraction(
            clauses={"exclusivityClause": {"detected": True, "riskLevel": "caution"}},
            red_flags=[{"type": "long_exclusivity", "severity": "low"}],
        )

        assert score(flagged).risk_score >= score(base).risk_score

    def test_raising_clause_rating_never_lowers_score(self):
        """Test monotonicity under safe -> caution -> risky."""
        scores = [
            score(make_extraction(clauses={"penaltyClauses": {"detected": True, "riskLevel": rating}})).risk_score
            for rating in ("safe", "caution", "risky")
        ]

        assert scores == sorted(scores)

    @pytest.mark.parametrize("added", [
        "usageRights",
        "exclusivityClause",
        "terminationClause",
        "deliverables",
        "penaltyClauses",
        "intellectualProperty",
    ])
    def test_adding_risky_clause_never_lowers_score(self, added):
        """Test monotonicity when an undetected clause becomes a detected risky one."""
        clauses = {
            "paymentTerms": {"detected": True, "riskLevel": "caution"},
            "usageRights": {"detected": False},
        }
        base = make_extraction(
            clauses=clauses,
            red_flags=[{"type": "payment_delay", "severity": "medium"}],
        )
        extended = make_extraction(
            clauses={**clauses, added: {"detected": True, "riskLevel": "risky"}},
            red_flags=[{"type": "payment_delay", "severity": "medium"}],
        )

        assert score(extended).risk_score >= score(base).risk_score
        assert len(extended.clause_analysis.detected_clauses()) == len(base.clause_analysis.detected_clauses()) + 1

    def test_scoring_is_idempotent(self):
        """Test scoring the same analysis twice gives the same result."""
        analysis = make_extraction(
            clauses={"deliverables": {"detected": True, "riskLevel": "caution"}},
            missing=[{"clauseType": "payment_terms", "importance": "critical"}],
        )

        assert score(analysis) == score(analysis)

    def test_contract_analysis_rescored_matches(self):
        """Test a stored ContractAnalysis rescored gives its own score."""
        extraction = make_extraction(
            clauses={"intellectualProperty": {"detected": True, "riskLevel": "risky"}},
            red_flags=[{"type": "unlimited_usage", "severity": "high"}],
        )
        first = score(extraction)
        analysis = ContractAnalysis(
            contract_id="c1",
            clause_analysis=extraction.clause_analysis,
            red_flags=extraction.red_flags,
            risk_score=first.risk_score,
            risk_level=first.risk_level,
        )

        assert score(analysis).risk_score == analysis.risk_score
        assert 0 <= analysis.risk_score <= 100

    def test_breakdown_to_dict(self):
        """Test the score breakdown serializes every contribution."""
        analysis = make_extraction(
            clauses={"usageRights": {"detected": True, "riskLevel": "risky"}},
            missing=[{"clauseType": "deliverables", "importance": "recommended"}],
        )

        data = score(analysis).to_dict()

        assert data["risk_level"] == "low"
        assert data["contributions"] == [
            {"source": "clause", "key": "usage_rights", "rating": "risky", "points": 24.0},
            {"source": "missing_clause", "key": "deliverables", "rating": "recommended", "points": 5.0},
        ]
