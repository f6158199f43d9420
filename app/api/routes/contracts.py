"""Contract lifecycle routes: analysis, negotiation and deal conversion."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from app.models.contract import (
    ArchiveRequest,
    BrandResponseCreate,
    ContractCreate,
    ContractResponse,
    DealConversionRequest,
    NegotiationEmailRequest,
    NegotiationRoundCreate,
    PointStatusUpdate,
    StatusUpdate,
)
from core.contracts.taxonomy import RiskLevel
from core.lifecycle.controller import ContractLifecycleController
from core.lifecycle.models import ContractStatus

router = APIRouter()


def get_controller(request: Request) -> ContractLifecycleController:
    """Dependency returning the controller built at start-up."""
    return request.app.state.controller


@router.post("", response_model=ContractResponse, status_code=201)
async def create_contract(
    body: ContractCreate,
    controller: ContractLifecycleController = Depends(get_controller),
) -> ContractResponse:
    """Register an uploaded contract with its extracted text."""
    contract = await controller.create_contract(body.to_contract())
    analysis = None
    if contract.analysis_id:
        analysis = await controller.get_analysis(contract.id)
    return ContractResponse.from_contract(contract, analysis)


@router.get("", response_model=list[ContractResponse])
async def list_contracts(
    creator_id: str = Query(..., min_length=1),
    status: ContractStatus | None = None,
    risk_level: RiskLevel | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> list[ContractResponse]:
    """List a creator's contracts, optionally filtered by status and risk level."""
    items = await controller.list_contracts(creator_id, status=status, risk_level=risk_level)
    return [ContractResponse.from_contract(item.contract, item.analysis) for item in items]


@router.get("/analytics")
async def get_contract_analytics(
    creator_id: str = Query(..., min_length=1),
    controller: ContractLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Aggregate statistics over a creator's contracts."""
    return await controller.get_contract_analytics(creator_id)


@router.get("/{contract_id}", response_model=ContractResponse)
async def get_contract(
    contract_id: str,
    creator_id: str | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> ContractResponse:
    """Get contract by ID."""
    contract = await controller.get_contract(contract_id, creator_id)
    analysis = None
    if contract.analysis_id:
        analysis = await controller.get_analysis(contract_id)
    return ContractResponse.from_contract(contract, analysis)


@router.post("/{contract_id}/analyze")
async def analyze_contract(
    contract_id: str,
    creator_id: str | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Run extraction and risk scoring for a contract."""
    analysis = await controller.request_analysis(contract_id, creator_id)
    return analysis.model_dump(mode="json", by_alias=True)


@router.get("/{contract_id}/analysis")
async def get_analysis(
    contract_id: str,
    creator_id: str | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Get the contract's current analysis."""
    analysis = await controller.get_analysis(contract_id, creator_id)
    return analysis.model_dump(mode="json", by_alias=True)


@router.get("/{contract_id}/negotiation-points")
async def get_negotiation_points(
    contract_id: str,
    creator_id: str | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Derive negotiation points from the current analysis."""
    points = await controller.get_negotiation_points(contract_id, creator_id)
    return {
        "contract_id": contract_id,
        "count": len(points),
        "points": [p.model_dump(mode="json", by_alias=True) for p in points],
    }


@router.get("/{contract_id}/negotiations")
async def get_negotiation_history(
    contract_id: str,
    creator_id: str | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> list[dict[str, Any]]:
    """List negotiation rounds for a contract, oldest first."""
    rounds = await controller.get_negotiation_history(contract_id, creator_id)
    return [h.model_dump(mode="json", by_alias=True) for h in rounds]


@router.post("/{contract_id}/negotiations", status_code=201)
async def start_negotiation_round(
    contract_id: str,
    body: NegotiationRoundCreate | None = None,
    creator_id: str | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Open the next negotiation round."""
    points = body.points if body else None
    history = await controller.start_negotiation_round(contract_id, points, creator_id)
    return history.model_dump(mode="json", by_alias=True)


@router.post("/{contract_id}/negotiation-email")
async def compose_negotiation_email(
    contract_id: str,
    body: NegotiationEmailRequest,
    creator_id: str | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Compose the negotiation email in the requested tone."""
    email = await controller.compose_negotiation_email(
        contract_id, tone=body.tone, points=body.points, creator_id=creator_id
    )
    return email.model_dump(mode="json")


@router.post("/{contract_id}/negotiations/{negotiation_round}/email-sent")
async def mark_email_sent(
    contract_id: str,
    negotiation_round: int,
    creator_id: str | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Mark a round's email as sent."""
    history = await controller.mark_email_sent(contract_id, negotiation_round, creator_id)
    return history.model_dump(mode="json", by_alias=True)


@router.patch("/{contract_id}/negotiations/{negotiation_round}/points/{point_index}")
async def update_point_status(
    contract_id: str,
    negotiation_round: int,
    point_index: int,
    body: PointStatusUpdate,
    creator_id: str | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Record the brand's answer to one negotiation point."""
    history = await controller.update_point_status(
        contract_id, negotiation_round, point_index, body.status, creator_id
    )
    return history.model_dump(mode="json", by_alias=True)


@router.post("/{contract_id}/negotiations/{negotiation_round}/brand-response")
async def record_brand_response(
    contract_id: str,
    negotiation_round: int,
    body: BrandResponseCreate,
    creator_id: str | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Store the brand's response to a round."""
    history = await controller.record_brand_response(
        contract_id, negotiation_round, body.response_type, body.notes, creator_id
    )
    return history.model_dump(mode="json", by_alias=True)


@router.post("/{contract_id}/convert-to-deal", status_code=201)
async def convert_to_deal(
    contract_id: str,
    body: DealConversionRequest | None = None,
    creator_id: str | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Convert a negotiated contract into a deal."""
    overrides = body.overrides if body else {}
    deal = await controller.convert_to_deal(contract_id, overrides, creator_id)
    return {"contract_id": contract_id, "deal": deal}


@router.patch("/{contract_id}/status", response_model=ContractResponse)
async def update_status(
    contract_id: str,
    body: StatusUpdate,
    creator_id: str | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> ContractResponse:
    """Set the final status of a finalized contract (signed or rejected)."""
    contract = await controller.update_status(contract_id, body.status, creator_id)
    return ContractResponse.from_contract(contract)


@router.post("/{contract_id}/archive", response_model=ContractResponse)
async def archive_contract(
    contract_id: str,
    body: ArchiveRequest | None = None,
    creator_id: str | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> ContractResponse:
    """Archive (or unarchive) a contract."""
    archived = body.archived if body else True
    contract = await controller.archive(contract_id, archived, creator_id)
    return ContractResponse.from_contract(contract)


@router.delete("/{contract_id}", status_code=204)
async def delete_contract(
    contract_id: str,
    creator_id: str | None = None,
    controller: ContractLifecycleController = Depends(get_controller),
) -> None:
    """Soft-delete a contract and its negotiation history."""
    await controller.deactivate(contract_id, creator_id)
