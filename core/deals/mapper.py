"""Deal Conversion Mapper.

Translates an analyzed contract into a draft Deal. Free-text values coming
from extraction are mapped through fixed lookup tables with safe defaults;
unknown values are never an error.

Overrides always win, field by field. Override keys the mapper does not
consume are copied through verbatim, and None values are stripped.
"""

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from core.contracts.models import ContractAnalysis
from core.contracts.taxonomy import Importance
from core.errors import ConversionBlocked, ValidationError
from core.lifecycle.models import Contract

logger = logging.getLogger("creatorlens.deal_mapper")


# Case-sensitive: keys are matched exactly as extraction reports them
DELIVERABLE_TYPE_MAP: dict[str, str] = {
    "YouTube video": "youtube_video",
    "Instagram post": "instagram_post",
    "Instagram story": "instagram_story",
    "Instagram reel": "instagram_reel",
    "TikTok video": "tiktok_video",
    "Facebook post": "facebook_post",
    "LinkedIn post": "linkedin_post",
    "Twitter post": "twitter_post",
    "Snapchat story": "snapchat_story",
    "blog post": "blog_post",
    "article": "article",
    "live stream": "live_stream",
    "podcast": "podcast",
    "webinar": "webinar",
    "video": "youtube_video",
    "post": "instagram_post",
    "story": "instagram_story",
    "reel": "instagram_reel",
}
DEFAULT_DELIVERABLE_TYPE = "instagram_post"

DEAL_STATUS_MAP: dict[str, str] = {
    "inquiry": "potential",
    "pitched": "pitched",
    "negotiating": "negotiating",
    "approved": "confirmed",
    "in_progress": "in_progress",
    "delivered": "delivered",
    "completed": "completed",
    "cancelled": "cancelled",
}
DEFAULT_DEAL_STATUS = "potential"

DEFAULT_PLATFORM = "instagram"
DEFAULT_CURRENCY = "INR"
DEFAULT_PAYMENT_METHOD = "bank_transfer"
DEFAULT_PAYMENT_SCHEDULE = "milestone"
DEFAULT_PAYMENT_DAYS = 30
DEFAULT_TIMELINE_DAYS = 30

# Missing clause type -> override field that resolves it
BLOCKING_MISSING_CLAUSES: dict[str, str] = {
    "payment_terms": "payment_terms",
    "deliverables": "deliverables",
}

# Override keys the mapper reads explicitly; everything else is copied through
CONSUMED_OVERRIDE_KEYS = frozenset({
    "title",
    "brand_email",
    "brand_contact_person",
    "brand_contact_role",
    "brand_contact_email",
    "brand_website",
    "brand_company_size",
    "deal_value",
    "currency",
    "platform",
    "status",
    "deal_type",
    "timeline",
    "notes",
    "priority",
    "stage",
    "deliverables",
    "payment_terms",
})


class DeliverableStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    APPROVED = "approved"


class BrandContact(BaseModel):
    name: str
    role: str = "Marketing Manager"
    email: str = ""


class DealBrand(BaseModel):
    name: str
    email: str = ""
    contact_person: BrandContact | None = None
    website: str = ""
    company_size: str = "medium"


class DealValue(BaseModel):
    amount: float = 0
    currency: str = DEFAULT_CURRENCY


class DealTimeline(BaseModel):
    model_config = ConfigDict(extra="allow")

    start_date: datetime | None = None
    end_date: datetime | None = None


class DealDeliverable(BaseModel):
    type: str = DEFAULT_DELIVERABLE_TYPE
    quantity: int = 1
    description: str = ""
    status: str = DeliverableStatus.PENDING.value
    platform: str = DEFAULT_PLATFORM
    deadline: datetime | None = None


class DealPaymentTerms(BaseModel):
    model_config = ConfigDict(extra="allow")

    method: str = DEFAULT_PAYMENT_METHOD
    schedule: str = DEFAULT_PAYMENT_SCHEDULE
    days_to_payment: int = DEFAULT_PAYMENT_DAYS
    currency: str = DEFAULT_CURRENCY


class DealDraft(BaseModel):
    """Deal ready to be stored. Unknown override keys are kept as extras."""
    model_config = ConfigDict(extra="allow")

    user_id: str
    contract_id: str
    title: str
    brand: DealBrand
    deal_value: DealValue = Field(default_factory=DealValue)
    platform: str = DEFAULT_PLATFORM
    platforms: list[str] = Field(default_factory=list)
    status: str = DEFAULT_DEAL_STATUS
    deal_type: str = "collaboration"
    timeline: DealTimeline = Field(default_factory=DealTimeline)
    notes: str = ""
    priority: str = "medium"
    stage: str = "negotiation"
    deliverables: list[DealDeliverable] = Field(default_factory=list)
    payment_terms: DealPaymentTerms | None = None
    created_from: str = "contract_conversion"

    def to_record(self) -> dict[str, Any]:
        """Dump for storage with None values removed."""
        return self.model_dump(mode="json", exclude_none=True)


def map_deliverable_type(value: str | None) -> str:
    """Map an extraction deliverable type to a deal deliverable type."""
    if not isinstance(value, str):
        return DEFAULT_DELIVERABLE_TYPE
    return DELIVERABLE_TYPE_MAP.get(value, DEFAULT_DELIVERABLE_TYPE)


def map_deal_status(value: str | None) -> str:
    """Map an input status to a deal status."""
    if not isinstance(value, str):
        return DEFAULT_DEAL_STATUS
    return DEAL_STATUS_MAP.get(value, DEFAULT_DEAL_STATUS)


def _parse_deadline(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        logger.warning(f"Ignoring unparseable deliverable deadline: {value!r}")
        return None


def _as_quantity(value: Any) -> int:
    try:
        quantity = int(float(value))
    except (TypeError, ValueError):
        return 1
    return quantity or 1


def _build_deliverable(item: Any, brand_name: str, platform: str) -> DealDeliverable:
    if isinstance(item, BaseModel):
        item = item.model_dump()
    raw_type = item.get("type") or ""
    return DealDeliverable(
        type=map_deliverable_type(raw_type),
        quantity=_as_quantity(item.get("quantity")),
        description=item.get("description") or f"{raw_type} content for {brand_name}",
        status=item.get("status") or DeliverableStatus.PENDING.value,
        platform=item.get("platform") or platform,
        deadline=_parse_deadline(item.get("deadline")),
    )


def find_blocking_fields(
    analysis: ContractAnalysis | None, overrides: dict[str, Any]
) -> list[dict[str, str]]:
    """List critical missing clauses that no override resolves."""
    if analysis is None:
        return []
    blocking = []
    for missing in analysis.missing_clauses:
        if missing.importance != Importance.CRITICAL.value:
            continue
        field_name = BLOCKING_MISSING_CLAUSES.get(missing.clause_type)
        if field_name and overrides.get(field_name) is None:
            blocking.append({
                "clause_type": missing.clause_type,
                "field": field_name,
                "suggestion": missing.suggestion,
            })
    return blocking


def check_override_shapes(overrides: dict[str, Any]) -> None:
    """Reject overrides whose structure the mapper cannot consume.

    Raises:
        ValidationError: ``details["field"]`` names the offending override.
    """
    def reject(field_name: str, expected: str) -> None:
        value = overrides[field_name]
        raise ValidationError(
            f"Override {field_name!r} must be {expected}, got {type(value).__name__}",
            {"field": field_name, "expected": expected},
        )

    if overrides.get("payment_terms") is not None and not isinstance(overrides["payment_terms"], dict):
        reject("payment_terms", "an object")
    if overrides.get("timeline") is not None and not isinstance(overrides["timeline"], (dict, DealTimeline)):
        reject("timeline", "an object")
    deliverables = overrides.get("deliverables")
    if deliverables is not None:
        if not isinstance(deliverables, list) or not all(
            isinstance(item, (dict, BaseModel)) for item in deliverables
        ):
            reject("deliverables", "a list of objects")
    deal_value = overrides.get("deal_value")
    if deal_value is not None and (isinstance(deal_value, bool) or not isinstance(deal_value, (int, float))):
        reject("deal_value", "a number")


def _field_path(prefix: str, error: PydanticValidationError) -> str:
    errors = error.errors()
    loc = [str(part) for part in errors[0]["loc"]] if errors else []
    return ".".join([prefix, *loc] if prefix else loc)


def to_deal(
    contract: Contract,
    analysis: ContractAnalysis | None,
    overrides: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> DealDraft:
    """Build a deal draft from a contract and its analysis.

    Args:
        contract: The contract being converted.
        analysis: Its current analysis, if any.
        overrides: Caller supplied values; they win over derived ones.
        now: Reference time for the default timeline.

    Returns:
        DealDraft.

    Raises:
        ConversionBlocked: A critical missing clause maps onto a deal field
            and no override supplies it.
        ValidationError: An override has the wrong shape or value.
    """
    overrides = dict(overrides or {})
    now = now or datetime.now(timezone.utc)
    check_override_shapes(overrides)

    blocking = find_blocking_fields(analysis, overrides)
    if blocking:
        logger.warning(f"Deal conversion blocked for {contract.id}: {[b['field'] for b in blocking]}")
        raise ConversionBlocked(contract.id, blocking)

    try:
        draft = _build_draft(contract, analysis, overrides, now)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid deal overrides: {e.error_count()} validation errors",
            {"field": _field_path("", e)},
        ) from e
    logger.info(
        f"Deal draft prepared for {contract.id}: title={draft.title!r} "
        f"amount={draft.deal_value.amount} status={draft.status} "
        f"deliverables={len(draft.deliverables)}"
    )
    return draft


def _build_draft(
    contract: Contract,
    analysis: ContractAnalysis | None,
    overrides: dict[str, Any],
    now: datetime,
) -> DealDraft:
    clauses = analysis.clause_analysis if analysis else None
    brand_name = contract.brand_name
    platform = overrides.get("platform") or (contract.platforms[0] if contract.platforms else DEFAULT_PLATFORM)

    contract_amount = contract.contract_value.amount if contract.contract_value else 0
    contract_currency = contract.contract_value.currency.value if contract.contract_value else None
    currency = overrides.get("currency") or contract_currency or DEFAULT_CURRENCY

    deal_amount = overrides.get("deal_value")
    if deal_amount is None:
        deal_amount = contract_amount

    contact_person = None
    if overrides.get("brand_contact_person"):
        contact_person = {
            "name": overrides["brand_contact_person"],
            "role": overrides.get("brand_contact_role") or "Marketing Manager",
            "email": overrides.get("brand_contact_email") or contract.brand_email or "",
        }

    creator_label = contract.creator_name or "Creator"
    deal: dict[str, Any] = {
        "user_id": contract.creator_id,
        "contract_id": contract.id,
        "title": overrides.get("title") or f"{brand_name} - {creator_label} Collaboration",
        "brand": {
            "name": brand_name,
            "email": overrides.get("brand_email") or contract.brand_email or "",
            "contact_person": contact_person,
            "website": overrides.get("brand_website") or "",
            "company_size": overrides.get("brand_company_size") or "medium",
        },
        "deal_value": {
            "amount": float(deal_amount or 0),
            "currency": currency,
        },
        "platform": platform,
        "platforms": list(contract.platforms) or [platform],
        "status": map_deal_status(overrides.get("status")),
        "deal_type": overrides.get("deal_type") or "collaboration",
        "timeline": overrides.get("timeline") or DealTimeline(
            start_date=now,
            end_date=now + timedelta(days=DEFAULT_TIMELINE_DAYS),
        ),
        "notes": overrides.get("notes") or f"Deal created from contract analysis. Original contract: {contract.title}",
        "priority": overrides.get("priority") or "medium",
        "stage": overrides.get("stage") or "negotiation",
        "created_from": "contract_conversion",
    }

    if overrides.get("deliverables") is not None:
        deal["deliverables"] = [
            _build_deliverable(item, brand_name, platform) for item in overrides["deliverables"]
        ]
    elif clauses and clauses.deliverables.detected and clauses.deliverables.items:
        deal["deliverables"] = [
            _build_deliverable(item, brand_name, platform) for item in clauses.deliverables.items
        ]
    else:
        deal["deliverables"] = [
            DealDeliverable(description=f"Content for {brand_name}", platform=platform)
        ]

    if overrides.get("payment_terms") is not None:
        try:
            deal["payment_terms"] = DealPaymentTerms.model_validate(
                {"currency": currency, **overrides["payment_terms"]}
            )
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid payment_terms override: {e.error_count()} validation errors",
                {"field": _field_path("payment_terms", e)},
            ) from e
    elif clauses and clauses.payment_terms.detected:
        payment = clauses.payment_terms
        deal["payment_terms"] = DealPaymentTerms(
            method=payment.payment_method or DEFAULT_PAYMENT_METHOD,
            schedule=DEFAULT_PAYMENT_SCHEDULE,
            days_to_payment=int(payment.payment_days or DEFAULT_PAYMENT_DAYS),
            currency=currency,
        )

    for key, value in overrides.items():
        if key not in CONSUMED_OVERRIDE_KEYS and key not in deal:
            deal[key] = value

    deal = {key: value for key, value in deal.items() if value is not None}
    return DealDraft.model_validate(deal)
