"""Contract and negotiation round models."""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import Field

from core.contracts.email_composer import EmailTemplate
from core.contracts.models import CamelModel
from core.contracts.negotiation import NegotiationPoint


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContractStatus(str, Enum):
    """Primary lifecycle status of a contract."""
    UPLOADED = "uploaded"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    UNDER_NEGOTIATION = "under_negotiation"
    FINALIZED = "finalized"
    SIGNED = "signed"
    REJECTED = "rejected"
    UPLOAD_FAILED = "upload_failed"


class Currency(str, Enum):
    INR = "INR"
    USD = "USD"
    EUR = "EUR"


class ContractValue(CamelModel):
    amount: float = Field(default=0, ge=0)
    currency: Currency = Currency.INR


class Contract(CamelModel):
    """One uploaded brand collaboration document.

    ``analysis_id`` and ``deal_id`` are weak references; the analysis and
    deal records live in their own stores.
    """
    id: str = Field(default_factory=lambda: uuid4().hex)
    creator_id: str
    creator_name: str = ""
    title: str = ""
    brand_name: str = ""
    brand_email: str = ""
    contract_value: ContractValue | None = None
    platforms: list[str] = Field(default_factory=list)
    contract_type: str = "collaboration"
    extracted_text: str = ""
    notes: str | None = None
    status: ContractStatus = ContractStatus.UPLOADED
    analysis_id: str | None = None
    deal_id: str | None = None
    last_error: str | None = None
    is_archived: bool = False
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class BrandResponseType(str, Enum):
    FULL_ACCEPTANCE = "full_acceptance"
    PARTIAL_ACCEPTANCE = "partial_acceptance"
    COUNTER_OFFER = "counter_offer"
    REJECTION = "rejection"


class BrandResponse(CamelModel):
    received: bool = False
    response_date: datetime | None = None
    response_type: BrandResponseType | None = None
    response_notes: str | None = None


class OutcomeStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUCCESSFUL = "successful"
    FAILED = "failed"
    ABANDONED = "abandoned"


class Outcome(CamelModel):
    status: OutcomeStatus = OutcomeStatus.IN_PROGRESS
    final_terms: str | None = None
    value_impact: float = 0
    lesson_learned: str | None = None


class NegotiationHistory(CamelModel):
    """One negotiation round for a contract.

    (contract_id, negotiation_round) is unique.
    """
    id: str = Field(default_factory=lambda: uuid4().hex)
    contract_id: str
    creator_id: str
    negotiation_round: int = Field(default=1, ge=1)
    negotiation_points: list[NegotiationPoint] = Field(default_factory=list)
    email_template: EmailTemplate | None = None
    email_sent: bool = False
    sent_at: datetime | None = None
    brand_response: BrandResponse = Field(default_factory=BrandResponse)
    outcome: Outcome = Field(default_factory=Outcome)
    created_at: datetime = Field(default_factory=utcnow)
    is_active: bool = True
