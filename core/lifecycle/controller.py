"""Contract Lifecycle Controller.

Orchestrates a contract from upload to signature:

1. request_analysis: compare-and-set to ``analyzing``, call the extraction
   collaborator under a timeout, score the result, store an immutable
   ContractAnalysis and move to ``analyzed`` (or ``upload_failed``).
2. start_negotiation_round / compose_negotiation_email: numbered rounds,
   unique per contract.
3. convert_to_deal: map to a deal draft and finalize.

The extraction call is never made while holding a lock. Concurrent
requests for the same contract are resolved by the repository's
conditional status write.
"""

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from core.contracts.email_composer import EmailTemplate, Tone, compose_negotiation_email
from core.contracts.models import ContractAnalysis, ExtractionResult
from core.contracts.negotiation import NegotiationPoint, PointStatus, derive_negotiation_points
from core.contracts.risk_scorer import score
from core.contracts.taxonomy import RiskLevel, Severity
from core.deals.mapper import to_deal
from core.errors import (
    AnalysisInProgress,
    ExtractionFailure,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from core.extraction.contract_extractor import ContractExtractor, ExtractionRequest
from core.lifecycle.models import (
    BrandResponse,
    BrandResponseType,
    Contract,
    ContractStatus,
    NegotiationHistory,
    OutcomeStatus,
    utcnow,
)
from core.lifecycle.repository import ContractRepository, DuplicateRound
from core.lifecycle.state_machine import MANUAL_STATUSES, NEGOTIABLE_STATUSES, ensure_transition

logger = logging.getLogger("creatorlens.lifecycle")

DEFAULT_EXTRACTION_TIMEOUT_SECONDS = 120.0
MAX_ROUND_ATTEMPTS = 5
TOP_RED_FLAG_LIMIT = 5

OUTCOME_BY_RESPONSE: dict[BrandResponseType, OutcomeStatus] = {
    BrandResponseType.FULL_ACCEPTANCE: OutcomeStatus.SUCCESSFUL,
    BrandResponseType.PARTIAL_ACCEPTANCE: OutcomeStatus.IN_PROGRESS,
    BrandResponseType.COUNTER_OFFER: OutcomeStatus.IN_PROGRESS,
    BrandResponseType.REJECTION: OutcomeStatus.FAILED,
}


@dataclass
class ContractListItem:
    """A contract joined with its current analysis (if any)."""
    contract: Contract
    analysis: ContractAnalysis | None = None


class ContractLifecycleController:
    """Drives contracts through the lifecycle state machine.

    Example:
        controller = ContractLifecycleController(
            repository=InMemoryContractRepository(),
            extractor=ContractExtractionAgent(),
        )
        contract = await controller.create_contract(Contract(creator_id="u1", extracted_text=text))
        analysis = await controller.request_analysis(contract.id)
    """

    def __init__(
        self,
        repository: ContractRepository,
        extractor: ContractExtractor,
        extraction_timeout_seconds: float = DEFAULT_EXTRACTION_TIMEOUT_SECONDS,
        auto_analyze: bool = False,
    ) -> None:
        self.repository = repository
        self.extractor = extractor
        self.extraction_timeout_seconds = extraction_timeout_seconds
        self.auto_analyze = auto_analyze

    # ------------------------------------------------------------------
    # Contracts
    # ------------------------------------------------------------------

    async def create_contract(self, contract: Contract) -> Contract:
        """Store a new contract in ``uploaded`` state.

        With ``auto_analyze`` enabled an automatic analysis is attempted
        right away; its failure is recorded on the contract, not raised.
        """
        contract.status = ContractStatus.UPLOADED
        await self.repository.add_contract(contract)
        logger.info(f"Contract created: id={contract.id} creator={contract.creator_id} title={contract.title!r}")

        if self.auto_analyze and contract.extracted_text.strip():
            try:
                await self.request_analysis(contract.id, automatic=True)
            except ExtractionFailure as e:
                logger.warning(f"Automatic analysis failed for {contract.id}: {e.message}")
            return await self.get_contract(contract.id)
        return contract

    async def get_contract(self, contract_id: str, creator_id: str | None = None) -> Contract:
        """Load an active contract, optionally checking its owner.

        Raises:
            NotFound: Missing, soft-deleted, or owned by another creator.
        """
        contract = await self.repository.get_contract(contract_id)
        if contract is None or not contract.is_active:
            raise NotFound("Contract", contract_id)
        if creator_id is not None and contract.creator_id != creator_id:
            raise NotFound("Contract", contract_id)
        return contract

    async def list_contracts(
        self,
        creator_id: str,
        status: ContractStatus | None = None,
        risk_level: RiskLevel | None = None,
    ) -> list[ContractListItem]:
        """List a creator's contracts, newest first, joined to their analysis."""
        contracts = await self.repository.list_contracts(creator_id, status)
        analysis_ids = [c.analysis_id for c in contracts if c.analysis_id]
        analyses = await self.repository.get_analyses(analysis_ids) if analysis_ids else {}

        items = []
        for contract in contracts:
            analysis = analyses.get(contract.analysis_id) if contract.analysis_id else None
            if risk_level is not None and (analysis is None or analysis.risk_level != risk_level):
                continue
            items.append(ContractListItem(contract=contract, analysis=analysis))
        return items

    async def update_status(
        self, contract_id: str, status: ContractStatus, creator_id: str | None = None
    ) -> Contract:
        """Set a manual final status (signed or rejected)."""
        if status not in MANUAL_STATUSES:
            raise ValidationError(
                f"Status {status.value} cannot be set manually",
                {"status": status.value, "allowed": sorted(s.value for s in MANUAL_STATUSES)},
            )
        contract = await self.get_contract(contract_id, creator_id)
        current = contract.status
        ensure_transition(contract.id, current, status)

        updated = await self.repository.update_contract(
            contract_id, {"status": status}, expected_status=current
        )
        if updated is None:
            latest = await self.get_contract(contract_id)
            raise InvalidTransition(contract_id, latest.status.value, status.value)
        logger.info(f"Contract {contract_id} status: {current.value} -> {status.value}")
        return updated

    async def archive(self, contract_id: str, archived: bool = True, creator_id: str | None = None) -> Contract:
        """Set or clear the archived flag. Status is left unchanged."""
        await self.get_contract(contract_id, creator_id)
        updated = await self.repository.update_contract(contract_id, {"is_archived": archived})
        if updated is None:
            raise NotFound("Contract", contract_id)
        logger.info(f"Contract {contract_id} archived={archived}")
        return updated

    async def deactivate(self, contract_id: str, creator_id: str | None = None) -> None:
        """Soft-delete a contract and its negotiation rounds."""
        await self.get_contract(contract_id, creator_id)
        if await self.repository.update_contract(contract_id, {"is_active": False}) is None:
            raise NotFound("Contract", contract_id)

        for history in await self.repository.list_negotiations(contract_id=contract_id):
            history.is_active = False
            await self.repository.save_negotiation(history)
        logger.info(f"Contract {contract_id} deactivated")

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def request_analysis(
        self, contract_id: str, creator_id: str | None = None, automatic: bool = False
    ) -> ContractAnalysis:
        """Analyze a contract.

        Args:
            contract_id: Contract to analyze.
            creator_id: Owner check, if given.
            automatic: True for system-triggered analysis; refused for
                archived contracts.

        Returns:
            The new ContractAnalysis.

        Raises:
            AnalysisInProgress: Another analysis holds the contract.
            InvalidTransition: The contract's status does not allow analysis.
            ValidationError: No extracted text, or archived (automatic only).
            ExtractionFailure: Extraction failed, timed out, returned
                malformed output or the result could not be stored. The
                contract is left in ``upload_failed``.

        Cancellation also moves the contract to ``upload_failed`` before
        ``CancelledError`` propagates, so a later request can retry.
        """
        contract = await self.get_contract(contract_id, creator_id)

        if automatic and contract.is_archived:
            raise ValidationError(
                f"Contract {contract_id} is archived; automatic analysis is disabled",
                {"contract_id": contract_id},
            )
        if contract.status == ContractStatus.ANALYZING:
            raise AnalysisInProgress(contract_id)
        previous = contract.status
        ensure_transition(contract_id, previous, ContractStatus.ANALYZING)
        if not contract.extracted_text.strip():
            raise ValidationError(
                f"Contract {contract_id} has no extracted text to analyze",
                {"contract_id": contract_id},
            )

        claimed = await self.repository.update_contract(
            contract_id,
            {"status": ContractStatus.ANALYZING, "last_error": None},
            expected_status=previous,
        )
        if claimed is None:
            raise AnalysisInProgress(contract_id)
        logger.info(f"Contract {contract_id} status: {previous.value} -> analyzing")

        try:
            return await self._run_analysis(claimed)
        except asyncio.CancelledError:
            await self._release_analysis(contract_id, "Analysis cancelled")
            raise
        except Exception as e:
            message = self._failure_message(e)
            await self._release_analysis(contract_id, message)
            raise ExtractionFailure(message, {"contract_id": contract_id}) from e

    async def _run_analysis(self, contract: Contract) -> ContractAnalysis:
        """Extract, score and store; the contract must already be ``analyzing``."""
        contract_id = contract.id
        start_time = time.time()
        request = ExtractionRequest(
            contract_id=contract.id,
            contract_text=contract.extracted_text,
            brand_name=contract.brand_name,
            contract_type=contract.contract_type,
            platforms=contract.platforms,
        )

        raw = await asyncio.wait_for(
            self.extractor.extract(request), timeout=self.extraction_timeout_seconds
        )
        result = ExtractionResult.model_validate(raw)

        assessment = score(result)
        meta = raw.get("_meta") or {}
        analysis = ContractAnalysis(
            contract_id=contract.id,
            clause_analysis=result.clause_analysis,
            red_flags=result.red_flags,
            missing_clauses=result.missing_clauses,
            risk_score=assessment.risk_score,
            risk_level=assessment.risk_level,
            upstream_risk_score=result.risk_score,
            upstream_risk_level=result.risk_level,
            summary=result.summary,
            overall_recommendation=result.overall_recommendation,
            market_comparison=result.market_comparison,
            ai_model=meta.get("model") or getattr(self.extractor, "model_name", None),
            processing_time_ms=int((time.time() - start_time) * 1000),
        )
        await self.repository.add_analysis(analysis)

        if result.risk_level and result.risk_level != assessment.risk_level.value:
            logger.info(
                f"Upstream risk level {result.risk_level!r} replaced by {assessment.risk_level.value!r} "
                f"for contract {contract_id}"
            )
        for flag in analysis.red_flags:
            if flag.severity == Severity.CRITICAL.value:
                logger.warning(f"Critical red flag in contract {contract_id}: {flag.type} - {flag.description}")

        stored = await self.repository.update_contract(
            contract_id,
            {"status": ContractStatus.ANALYZED, "analysis_id": analysis.id, "last_error": None},
            expected_status=ContractStatus.ANALYZING,
        )
        if stored is None:
            raise RuntimeError(f"Contract {contract_id} left analyzing before its analysis was stored")
        logger.info(
            f"Contract {contract_id} status: analyzing -> analyzed "
            f"(risk_score={analysis.risk_score} risk_level={analysis.risk_level.value} "
            f"detected_clauses={len(analysis.clause_analysis.detected_clauses())})"
        )
        return analysis

    def _failure_message(self, error: Exception) -> str:
        if isinstance(error, asyncio.TimeoutError):
            return f"Extraction timed out after {self.extraction_timeout_seconds}s"
        if isinstance(error, ExtractionFailure):
            return error.message
        if isinstance(error, PydanticValidationError):
            return f"Malformed extraction output: {error.error_count()} validation errors"
        return f"Extraction error: {error}"

    async def _release_analysis(self, contract_id: str, message: str) -> None:
        """Move an analyzing contract to upload_failed so it can be retried."""
        released = await self.repository.update_contract(
            contract_id,
            {"status": ContractStatus.UPLOAD_FAILED, "last_error": message},
            expected_status=ContractStatus.ANALYZING,
        )
        if released is not None:
            logger.warning(f"Contract {contract_id} status: analyzing -> upload_failed ({message})")

    async def get_analysis(self, contract_id: str, creator_id: str | None = None) -> ContractAnalysis:
        """Return the contract's current analysis.

        Raises:
            NotFound: The contract does not exist or was never analyzed.
        """
        contract = await self.get_contract(contract_id, creator_id)
        return await self._current_analysis(contract)

    async def _current_analysis(self, contract: Contract) -> ContractAnalysis:
        analysis = None
        if contract.analysis_id:
            analysis = await self.repository.get_analysis(contract.analysis_id)
        if analysis is None:
            raise NotFound("ContractAnalysis", contract.id)
        return analysis

    async def get_negotiation_points(
        self, contract_id: str, creator_id: str | None = None
    ) -> list[NegotiationPoint]:
        """Derive negotiation points from the current analysis without storing them."""
        analysis = await self.get_analysis(contract_id, creator_id)
        return derive_negotiation_points(analysis)

    # ------------------------------------------------------------------
    # Negotiation
    # ------------------------------------------------------------------

    async def start_negotiation_round(
        self,
        contract_id: str,
        points: list[NegotiationPoint] | None = None,
        creator_id: str | None = None,
    ) -> NegotiationHistory:
        """Open the next negotiation round (max existing round + 1).

        Points default to those derived from the current analysis. The first
        round moves the contract from ``analyzed`` to ``under_negotiation``.
        """
        contract = await self.get_contract(contract_id, creator_id)
        if contract.status not in NEGOTIABLE_STATUSES:
            raise InvalidTransition(
                contract_id, contract.status.value, ContractStatus.UNDER_NEGOTIATION.value
            )
        if points is None:
            points = derive_negotiation_points(await self._current_analysis(contract))

        history = None
        for attempt in range(MAX_ROUND_ATTEMPTS):
            next_round = await self.repository.max_negotiation_round(contract_id) + 1
            candidate = NegotiationHistory(
                contract_id=contract_id,
                creator_id=contract.creator_id,
                negotiation_round=next_round,
                negotiation_points=[p.model_copy(update={"status": PointStatus.PENDING}) for p in points],
            )
            try:
                history = await self.repository.add_negotiation(candidate)
                break
            except DuplicateRound:
                logger.warning(
                    f"Negotiation round {next_round} for {contract_id} already taken, "
                    f"retrying (attempt {attempt + 1}/{MAX_ROUND_ATTEMPTS})"
                )
        if history is None:
            raise DuplicateRound(contract_id, next_round)

        if contract.status == ContractStatus.ANALYZED:
            ensure_transition(contract_id, contract.status, ContractStatus.UNDER_NEGOTIATION)
            moved = await self.repository.update_contract(
                contract_id,
                {"status": ContractStatus.UNDER_NEGOTIATION},
                expected_status=ContractStatus.ANALYZED,
            )
            if moved is not None:
                logger.info(f"Contract {contract_id} status: analyzed -> under_negotiation")

        logger.info(
            f"Negotiation round {history.negotiation_round} opened for {contract_id} "
            f"with {len(history.negotiation_points)} points"
        )
        return history

    async def compose_negotiation_email(
        self,
        contract_id: str,
        tone: Tone | str = Tone.PROFESSIONAL,
        points: list[NegotiationPoint] | None = None,
        creator_id: str | None = None,
    ) -> EmailTemplate:
        """Compose the negotiation email for a contract.

        Uses the latest round's points when none are given (or the derived
        points when no round exists yet) and stores the email on that round.
        """
        contract = await self.get_contract(contract_id, creator_id)
        rounds = await self.repository.list_negotiations(contract_id=contract_id)
        latest = rounds[-1] if rounds else None

        if points is None:
            if latest is not None:
                points = latest.negotiation_points
            else:
                points = derive_negotiation_points(await self._current_analysis(contract))

        email = compose_negotiation_email(
            points,
            tone=tone,
            brand_name=contract.brand_name,
            creator_name=contract.creator_name,
        )
        if latest is not None:
            latest.email_template = email
            await self.repository.save_negotiation(latest)
        return email

    async def get_negotiation_history(
        self, contract_id: str | None = None, creator_id: str | None = None
    ) -> list[NegotiationHistory]:
        """List active rounds ordered by (contract_id, round)."""
        if contract_id is not None:
            await self.get_contract(contract_id, creator_id)
        return await self.repository.list_negotiations(contract_id=contract_id, creator_id=creator_id)

    async def _get_round(self, contract_id: str, negotiation_round: int) -> NegotiationHistory:
        for history in await self.repository.list_negotiations(contract_id=contract_id):
            if history.negotiation_round == negotiation_round:
                return history
        raise NotFound("NegotiationHistory", f"{contract_id}#{negotiation_round}")

    async def update_point_status(
        self,
        contract_id: str,
        negotiation_round: int,
        point_index: int,
        status: PointStatus,
        creator_id: str | None = None,
    ) -> NegotiationHistory:
        """Record the brand's answer to one point of a round."""
        await self.get_contract(contract_id, creator_id)
        history = await self._get_round(contract_id, negotiation_round)
        if not 0 <= point_index < len(history.negotiation_points):
            raise ValidationError(
                f"Point index {point_index} out of range",
                {"point_index": point_index, "point_count": len(history.negotiation_points)},
            )
        history.negotiation_points[point_index].status = status
        return await self.repository.save_negotiation(history)

    async def record_brand_response(
        self,
        contract_id: str,
        negotiation_round: int,
        response_type: BrandResponseType,
        notes: str | None = None,
        creator_id: str | None = None,
    ) -> NegotiationHistory:
        """Store the brand's response to a round and update its outcome."""
        await self.get_contract(contract_id, creator_id)
        history = await self._get_round(contract_id, negotiation_round)
        history.brand_response = BrandResponse(
            received=True,
            response_date=utcnow(),
            response_type=response_type,
            response_notes=notes,
        )
        history.outcome.status = OUTCOME_BY_RESPONSE[response_type]
        logger.info(
            f"Brand response for {contract_id} round {negotiation_round}: {response_type.value}"
        )
        return await self.repository.save_negotiation(history)

    async def mark_email_sent(
        self, contract_id: str, negotiation_round: int, creator_id: str | None = None
    ) -> NegotiationHistory:
        """Flag a round's email as sent."""
        await self.get_contract(contract_id, creator_id)
        history = await self._get_round(contract_id, negotiation_round)
        if history.email_template is None:
            raise ValidationError(
                f"Round {negotiation_round} of contract {contract_id} has no composed email",
                {"contract_id": contract_id, "negotiation_round": negotiation_round},
            )
        history.email_sent = True
        history.sent_at = utcnow()
        return await self.repository.save_negotiation(history)

    # ------------------------------------------------------------------
    # Deals
    # ------------------------------------------------------------------

    async def convert_to_deal(
        self,
        contract_id: str,
        overrides: dict[str, Any] | None = None,
        creator_id: str | None = None,
    ) -> dict[str, Any]:
        """Convert a negotiated contract into a deal and finalize it.

        Returns:
            The stored deal record (including its ``id``).

        Raises:
            InvalidTransition: The contract is not under negotiation.
            ConversionBlocked: A critical clause is missing and not overridden.
        """
        contract = await self.get_contract(contract_id, creator_id)
        current = contract.status
        ensure_transition(contract_id, current, ContractStatus.FINALIZED)

        analysis = None
        if contract.analysis_id:
            analysis = await self.repository.get_analysis(contract.analysis_id)

        draft = to_deal(contract, analysis, overrides)

        claimed = await self.repository.update_contract(
            contract_id, {"status": ContractStatus.FINALIZED}, expected_status=current
        )
        if claimed is None:
            latest = await self.get_contract(contract_id)
            raise InvalidTransition(contract_id, latest.status.value, ContractStatus.FINALIZED.value)

        try:
            deal_id = await self.repository.add_deal(contract_id, draft.to_record())
        except Exception:
            await self.repository.update_contract(
                contract_id, {"status": current}, expected_status=ContractStatus.FINALIZED
            )
            logger.error(f"Deal for contract {contract_id} could not be stored; status restored to {current.value}")
            raise
        await self.repository.update_contract(contract_id, {"deal_id": deal_id})
        logger.info(f"Contract {contract_id} status: {current.value} -> finalized (deal={deal_id})")
        return await self.repository.get_deal(deal_id)

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def get_contract_analytics(self, creator_id: str, now: datetime | None = None) -> dict[str, Any]:
        """Aggregate statistics over a creator's active contracts."""
        now = now or utcnow()
        items = await self.list_contracts(creator_id)
        analyses = [item.analysis for item in items if item.analysis is not None]
        rounds = await self.repository.list_negotiations(creator_id=creator_id)

        status_distribution = Counter(item.contract.status.value for item in items)
        risk_distribution = {level.value: 0 for level in RiskLevel}
        for analysis in analyses:
            risk_distribution[analysis.risk_level.value] += 1

        red_flag_counts = Counter(flag.type for analysis in analyses for flag in analysis.red_flags if flag.type)
        rounds_per_contract = Counter(history.contract_id for history in rounds)
        successful = sum(1 for h in rounds if h.outcome.status == OutcomeStatus.SUCCESSFUL)

        def trend(days: int) -> dict[str, Any]:
            since = now - timedelta(days=days)
            recent = [item for item in items if item.contract.created_at >= since]
            scores = [item.analysis.risk_score for item in recent if item.analysis is not None]
            return {
                "contracts": len(recent),
                "average_risk_score": round(sum(scores) / len(scores), 1) if scores else 0,
            }

        return {
            "total_contracts": len(items),
            "analyzed_contracts": len(analyses),
            "status_distribution": dict(status_distribution),
            "risk_distribution": risk_distribution,
            "average_risk_score": (
                round(sum(a.risk_score for a in analyses) / len(analyses), 1) if analyses else 0
            ),
            "negotiations": {
                "total_rounds": len(rounds),
                "contracts_negotiated": len(rounds_per_contract),
                "average_rounds": (
                    round(len(rounds) / len(rounds_per_contract), 1) if rounds_per_contract else 0
                ),
                "emails_sent": sum(1 for h in rounds if h.email_sent),
                "successful": successful,
            },
            "top_red_flags": [
                {"type": flag_type, "count": count}
                for flag_type, count in red_flag_counts.most_common(TOP_RED_FLAG_LIMIT)
            ],
            "trends": {"last_30_days": trend(30), "last_90_days": trend(90)},
        }
