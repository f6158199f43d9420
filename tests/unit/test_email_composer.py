"""Unit tests for the Negotiation Email Composer."""

import pytest

from core.contracts.email_composer import Tone, compose_negotiation_email, format_point, resolve_tone
from core.contracts.negotiation import NegotiationPoint, NegotiationPriority


@pytest.fixture
def points() -> list[NegotiationPoint]:
    return [
        NegotiationPoint(
            clause_type="payment_terms",
            original_clause="Payment within 90 days.",
            proposed_change="Payment within 30 days.",
            reasoning="Current terms are unfavorable to creator. Payment within 30 days.",
            priority=NegotiationPriority.MUST_HAVE,
        ),
        NegotiationPoint(
            clause_type="usage_rights",
            proposed_change="Limit usage to 6 months.",
            reasoning="Terms could be improved. Limit usage to 6 months.",
            priority=NegotiationPriority.IMPORTANT,
        ),
        NegotiationPoint(
            clause_type="exclusivity_clause",
            proposed_change="Narrow competitor list.",
            reasoning="Nice to clarify.",
            priority=NegotiationPriority.NICE_TO_HAVE,
        ),
    ]


class TestTones:
    """Tests for tone specific subject and greeting."""

    def test_professional(self, points):
        email = compose_negotiation_email(points, Tone.PROFESSIONAL, brand_name="Acme", creator_name="Riya")

        assert email.subject == "Contract Review & Suggested Modifications - Riya"
        assert email.body.startswith("Dear Acme team,")
        assert email.tone == Tone.PROFESSIONAL

    def test_friendly(self, points):
        email = compose_negotiation_email(points, "friendly", brand_name="Acme", creator_name="Riya")

        assert email.subject == "Quick questions about our collaboration agreement - Riya"
        assert email.body.startswith("Hi there!")

    def test_assertive(self, points):
        email = compose_negotiation_email(points, "assertive", creator_name="Riya")

        assert email.subject == "Contract Review & Required Modifications - Riya"
        assert email.body.startswith("Hello,")

    def test_unknown_tone_falls_back_to_professional(self, points):
        """Test unknown tones never raise."""
        email = compose_negotiation_email(points, "sarcastic", brand_name="Acme", creator_name="Riya")

        assert email.tone == Tone.PROFESSIONAL
        assert email.subject.startswith("Contract Review & Suggested Modifications")

    def test_resolve_tone_case_insensitive(self):
        assert resolve_tone(" Friendly ") == Tone.FRIENDLY


class TestBody:
    """Tests for body layout."""

    def test_sections_in_priority_order(self, points):
        body = compose_negotiation_email(points, brand_name="Acme", creator_name="Riya").body

        critical = body.index("Critical Requirements:")
        important = body.index("Important Suggestions:")
        additional = body.index("Additional Considerations:")
        assert critical < important < additional

    def test_point_lines(self, points):
        body = compose_negotiation_email(points, brand_name="Acme", creator_name="Riya").body

        assert "1. PAYMENT TERMS: Current terms are unfavorable to creator. Payment within 30 days." in body
        assert "   Proposed change: Payment within 30 days." in body
        assert "1. EXCLUSIVITY CLAUSE: Nice to clarify." in body

    def test_numbering_restarts_per_section(self, points):
        extra = points[0].model_copy(update={"clause_type": "other", "reasoning": "Critical issue identified: x"})
        body = compose_negotiation_email([points[0], extra, points[1]]).body

        assert "2. OTHER: Critical issue identified: x" in body
        assert "1. USAGE RIGHTS:" in body

    def test_empty_sections_omitted(self, points):
        body = compose_negotiation_email(points[:1]).body

        assert "Critical Requirements:" in body
        assert "Important Suggestions:" not in body
        assert "Additional Considerations:" not in body

    def test_signature(self, points):
        body = compose_negotiation_email(points, creator_name="Riya").body

        assert body.endswith("Best regards,\nRiya")

    def test_defaults_for_missing_names(self):
        email = compose_negotiation_email([])

        assert email.subject.endswith("- Creator")
        assert email.body.startswith("Dear Brand team,")
        assert email.body.endswith("Best regards,\nCreator")

    def test_format_point(self, points):
        assert format_point(3, points[1]) == (
            "3. USAGE RIGHTS: Terms could be improved. Limit usage to 6 months.\n"
            "   Proposed change: Limit usage to 6 months.\n"
        )

    def test_deterministic(self, points):
        assert compose_negotiation_email(points, "friendly") == compose_negotiation_email(points, "friendly")
