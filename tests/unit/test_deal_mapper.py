"""Unit tests for the Deal Conversion Mapper."""

from datetime import datetime, timedelta, timezone

import pytest

from core.contracts.models import ContractAnalysis, ExtractionResult
from core.deals.mapper import (
    DEFAULT_DEAL_STATUS,
    DEFAULT_DELIVERABLE_TYPE,
    map_deal_status,
    map_deliverable_type,
    to_deal,
)
from core.errors import ConversionBlocked, ValidationError
from core.lifecycle.models import Contract, ContractStatus, ContractValue, Currency

NOW = datetime(2026, 1, 15, tzinfo=timezone.utc)


@pytest.fixture
def contract() -> Contract:
    return Contract(
        id="contract_001",
        creator_id="creator_001",
        creator_name="Riya",
        title="Acme Summer Campaign",
        brand_name="Acme",
        brand_email="partners@acme.test",
        contract_value=ContractValue(amount=50000, currency=Currency.INR),
        platforms=["youtube", "instagram"],
        status=ContractStatus.UNDER_NEGOTIATION,
    )


def make_analysis(clauses: dict | None = None, missing: list | None = None) -> ContractAnalysis:
    extraction = ExtractionResult.model_validate({
        "clauseAnalysis": clauses or {},
        "missingClauses": missing or [],
    })
    return ContractAnalysis(
        contract_id="contract_001",
        clause_analysis=extraction.clause_analysis,
        missing_clauses=extraction.missing_clauses,
    )


class TestLookupTables:
    """Tests for free-text mapping with defaults."""

    @pytest.mark.parametrize(
        "value,expected",
        [("YouTube video", "youtube_video"), ("reel", "instagram_reel"), ("podcast", "podcast"),
         ("blog post", "blog_post")],
    )
    def test_known_deliverable_types(self, value, expected):
        assert map_deliverable_type(value) == expected

    def test_unknown_deliverable_type_defaults(self):
        """Test unmapped free text falls back to the default type."""
        assert map_deliverable_type("podcast mention") == "instagram_post"
        assert map_deliverable_type(None) == DEFAULT_DELIVERABLE_TYPE

    def test_deliverable_type_is_case_sensitive(self):
        assert map_deliverable_type("Podcast") == DEFAULT_DELIVERABLE_TYPE

    def test_deal_status_mapping(self):
        assert map_deal_status("approved") == "confirmed"
        assert map_deal_status("unheard_of") == DEFAULT_DEAL_STATUS
        assert map_deal_status(None) == "potential"


class TestDefaults:
    """Tests for a plain conversion without overrides."""

    def test_basic_fields(self, contract):
        deal = to_deal(contract, make_analysis(), now=NOW)

        assert deal.user_id == "creator_001"
        assert deal.contract_id == "contract_001"
        assert deal.title == "Acme - Riya Collaboration"
        assert deal.brand.name == "Acme"
        assert deal.brand.email == "partners@acme.test"
        assert deal.deal_value.amount == 50000
        assert deal.deal_value.currency == "INR"
        assert deal.platform == "youtube"
        assert deal.status == "potential"
        assert deal.priority == "medium"
        assert deal.stage == "negotiation"
        assert deal.created_from == "contract_conversion"

    def test_timeline_defaults_to_thirty_days(self, contract):
        deal = to_deal(contract, None, now=NOW)

        assert deal.timeline.start_date == NOW
        assert deal.timeline.end_date == NOW + timedelta(days=30)

    def test_default_deliverable_when_none_detected(self, contract):
        deal = to_deal(contract, make_analysis(), now=NOW)

        assert len(deal.deliverables) == 1
        assert deal.deliverables[0].type == "instagram_post"
        assert deal.deliverables[0].platform == "youtube"

    def test_deliverables_from_clause(self, contract):
        analysis = make_analysis(clauses={
            "deliverables": {
                "detected": True,
                "riskLevel": "safe",
                "items": [
                    {"type": "reel", "quantity": 2, "deadline": "2026-02-01"},
                    {"type": "podcast mention", "quantity": None},
                ],
            },
        })

        deal = to_deal(contract, analysis, now=NOW)

        assert [d.type for d in deal.deliverables] == ["instagram_reel", "instagram_post"]
        assert deal.deliverables[0].quantity == 2
        assert deal.deliverables[0].deadline == datetime(2026, 2, 1)
        assert deal.deliverables[1].quantity == 1

    def test_payment_terms_from_clause(self, contract):
        analysis = make_analysis(clauses={
            "paymentTerms": {"detected": True, "riskLevel": "caution", "paymentDays": 45, "paymentMethod": "upi"},
        })

        deal = to_deal(contract, analysis, now=NOW)

        assert deal.payment_terms.method == "upi"
        assert deal.payment_terms.days_to_payment == 45
        assert deal.payment_terms.currency == "INR"

    def test_no_payment_terms_without_clause(self, contract):
        record = to_deal(contract, make_analysis(), now=NOW).to_record()

        assert "payment_terms" not in record


class TestOverrides:
    """Tests for caller supplied overrides."""

    def test_overrides_win(self, contract):
        deal = to_deal(
            contract,
            make_analysis(),
            overrides={"title": "Custom", "deal_value": 75000, "currency": "USD", "status": "approved",
                       "brand_email": "deals@acme.test", "priority": "high"},
            now=NOW,
        )

        assert deal.title == "Custom"
        assert deal.deal_value.amount == 75000
        assert deal.deal_value.currency == "USD"
        assert deal.status == "confirmed"
        assert deal.brand.email == "deals@acme.test"
        assert deal.priority == "high"

    def test_zero_deal_value_override(self, contract):
        deal = to_deal(contract, make_analysis(), overrides={"deal_value": 0}, now=NOW)

        assert deal.deal_value.amount == 0

    def test_unknown_override_keys_copied_through(self, contract):
        record = to_deal(contract, make_analysis(), overrides={"campaign_code": "SUMMER26"}, now=NOW).to_record()

        assert record["campaign_code"] == "SUMMER26"

    def test_none_values_stripped(self, contract):
        record = to_deal(contract, make_analysis(), overrides={"campaign_code": None}, now=NOW).to_record()

        assert "campaign_code" not in record

    def test_contact_person_override(self, contract):
        deal = to_deal(contract, None, overrides={"brand_contact_person": "Sam"}, now=NOW)

        assert deal.brand.contact_person.name == "Sam"
        assert deal.brand.contact_person.email == "partners@acme.test"


class TestConversionBlocked:
    """Tests for critical missing clauses."""

    def test_missing_critical_payment_terms_blocks(self, contract):
        analysis = make_analysis(missing=[{"clauseType": "payment_terms", "importance": "critical"}])

        with pytest.raises(ConversionBlocked) as exc_info:
            to_deal(contract, analysis, now=NOW)

        assert exc_info.value.blocking[0]["field"] == "payment_terms"
        assert exc_info.value.status_code == 422

    def test_override_resolves_block(self, contract):
        analysis = make_analysis(missing=[{"clauseType": "payment_terms", "importance": "critical"}])

        deal = to_deal(contract, analysis, overrides={"payment_terms": {"days_to_payment": 15}}, now=NOW)

        assert deal.payment_terms.days_to_payment == 15
        assert deal.payment_terms.method == "bank_transfer"

    def test_non_critical_missing_does_not_block(self, contract):
        analysis = make_analysis(missing=[{"clauseType": "deliverables", "importance": "important"}])

        assert to_deal(contract, analysis, now=NOW).deliverables

    def test_unmapped_critical_missing_does_not_block(self, contract):
        analysis = make_analysis(missing=[{"clauseType": "force_majeure", "importance": "critical"}])

        assert to_deal(contract, analysis, now=NOW).title


class TestOverrideShapes:
    """Tests for overrides the mapper cannot consume."""

    @pytest.mark.parametrize("overrides, field", [
        ({"payment_terms": "net 30"}, "payment_terms"),
        ({"deliverables": ["YouTube video"]}, "deliverables"),
        ({"deliverables": {"type": "YouTube video"}}, "deliverables"),
        ({"timeline": "two weeks"}, "timeline"),
        ({"deal_value": "sixty thousand"}, "deal_value"),
    ])
    def test_wrong_shape_rejected(self, contract, overrides, field):
        with pytest.raises(ValidationError) as exc_info:
            to_deal(contract, None, overrides=overrides, now=NOW)

        assert exc_info.value.details["field"] == field
        assert exc_info.value.status_code == 400

    def test_bad_payment_terms_value_names_field(self, contract):
        with pytest.raises(ValidationError) as exc_info:
            to_deal(contract, None, overrides={"payment_terms": {"days_to_payment": "soon"}}, now=NOW)

        assert exc_info.value.details["field"] == "payment_terms.days_to_payment"

    def test_bad_nested_value_names_field(self, contract):
        with pytest.raises(ValidationError) as exc_info:
            to_deal(contract, None, overrides={"brand_website": ["acme.test"]}, now=NOW)

        assert exc_info.value.details["field"] == "brand.website"

    def test_unhashable_status_defaults(self, contract):
        deal = to_deal(contract, None, overrides={"status": ["approved"]}, now=NOW)

        assert deal.status == "potential"
