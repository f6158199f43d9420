"""Request and response schemas for the contracts API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from core.contracts.email_composer import Tone
from core.contracts.models import ContractAnalysis
from core.contracts.negotiation import NegotiationPoint, PointStatus
from core.lifecycle.models import BrandResponseType, Contract, ContractStatus, ContractValue


class ContractCreate(BaseModel):
    """Schema for registering an uploaded contract."""
    creator_id: str = Field(..., min_length=1)
    creator_name: str = ""
    title: str = ""
    brand_name: str = ""
    brand_email: str = ""
    contract_value: ContractValue | None = None
    platforms: list[str] = Field(default_factory=list)
    contract_type: str = "collaboration"
    extracted_text: str = ""
    notes: str | None = None

    def to_contract(self) -> Contract:
        return Contract(**self.model_dump())


class ContractResponse(BaseModel):
    """Response schema for contract operations."""
    id: str
    creator_id: str
    title: str
    brand_name: str
    status: ContractStatus
    analysis_id: str | None = None
    deal_id: str | None = None
    risk_score: int | None = None
    risk_level: str | None = None
    last_error: str | None = None
    is_archived: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_contract(cls, contract: Contract, analysis: ContractAnalysis | None = None) -> "ContractResponse":
        return cls(
            id=contract.id,
            creator_id=contract.creator_id,
            title=contract.title,
            brand_name=contract.brand_name,
            status=contract.status,
            analysis_id=contract.analysis_id,
            deal_id=contract.deal_id,
            risk_score=analysis.risk_score if analysis else None,
            risk_level=analysis.risk_level.value if analysis else None,
            last_error=contract.last_error,
            is_archived=contract.is_archived,
            created_at=contract.created_at,
            updated_at=contract.updated_at,
        )


class NegotiationRoundCreate(BaseModel):
    """Points for a new round; derived from the analysis when omitted."""
    points: list[NegotiationPoint] | None = None


class NegotiationEmailRequest(BaseModel):
    tone: Tone | str = Tone.PROFESSIONAL
    points: list[NegotiationPoint] | None = None


class DealConversionRequest(BaseModel):
    """Caller supplied deal values; they win over derived ones."""
    overrides: dict[str, Any] = Field(default_factory=dict)


class StatusUpdate(BaseModel):
    status: ContractStatus


class ArchiveRequest(BaseModel):
    archived: bool = True


class PointStatusUpdate(BaseModel):
    status: PointStatus


class BrandResponseCreate(BaseModel):
    response_type: BrandResponseType
    notes: str | None = None
