"""Storage interface for contracts, analyses, negotiation rounds and deals.

The lifecycle controller only talks to ``ContractRepository``. Two
implementations exist: ``InMemoryContractRepository`` (default, tests) and
``PostgresContractRepository`` (asyncpg).
"""

import asyncio
from typing import Any, Protocol
from uuid import uuid4

from core.contracts.models import ContractAnalysis
from core.lifecycle.models import Contract, ContractStatus, NegotiationHistory, utcnow


class DuplicateRound(Exception):
    """A negotiation round with the same (contract_id, negotiation_round) exists."""

    def __init__(self, contract_id: str, negotiation_round: int) -> None:
        super().__init__(f"Round {negotiation_round} already exists for contract {contract_id}")
        self.contract_id = contract_id
        self.negotiation_round = negotiation_round


class ContractRepository(Protocol):
    """Persistence operations the lifecycle controller relies on."""

    async def add_contract(self, contract: Contract) -> Contract: ...

    async def get_contract(self, contract_id: str) -> Contract | None: ...

    async def update_contract(
        self,
        contract_id: str,
        changes: dict[str, Any],
        expected_status: ContractStatus | None = None,
    ) -> Contract | None:
        """Apply ``changes`` to the stored contract's fields.

        Only the named fields are written, so concurrent updates to other
        fields are kept. When ``expected_status`` is given the write only
        happens if the stored status still equals it (compare-and-set).
        Returns the updated contract, or None when nothing was written.
        """
        ...

    async def list_contracts(
        self, creator_id: str, status: ContractStatus | None = None
    ) -> list[Contract]: ...

    async def add_analysis(self, analysis: ContractAnalysis) -> ContractAnalysis: ...

    async def get_analysis(self, analysis_id: str) -> ContractAnalysis | None: ...

    async def get_analyses(self, analysis_ids: list[str]) -> dict[str, ContractAnalysis]: ...

    async def add_negotiation(self, history: NegotiationHistory) -> NegotiationHistory:
        """Insert a round; raises DuplicateRound on (contract_id, round) collision."""
        ...

    async def save_negotiation(self, history: NegotiationHistory) -> NegotiationHistory: ...

    async def list_negotiations(
        self, contract_id: str | None = None, creator_id: str | None = None
    ) -> list[NegotiationHistory]: ...

    async def max_negotiation_round(self, contract_id: str) -> int: ...

    async def add_deal(self, contract_id: str, deal: dict[str, Any]) -> str: ...

    async def get_deal(self, deal_id: str) -> dict[str, Any] | None: ...


class InMemoryContractRepository:
    """Process-local repository.

    A single asyncio lock guards the compare-and-set and unique-round
    checks; it is never held across an await on anything else.
    """

    def __init__(self) -> None:
        self._contracts: dict[str, Contract] = {}
        self._analyses: dict[str, ContractAnalysis] = {}
        self._negotiations: dict[str, NegotiationHistory] = {}
        self._deals: dict[str, dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def add_contract(self, contract: Contract) -> Contract:
        self._contracts[contract.id] = contract.model_copy(deep=True)
        return contract

    async def get_contract(self, contract_id: str) -> Contract | None:
        stored = self._contracts.get(contract_id)
        return stored.model_copy(deep=True) if stored else None

    async def update_contract(
        self,
        contract_id: str,
        changes: dict[str, Any],
        expected_status: ContractStatus | None = None,
    ) -> Contract | None:
        async with self._lock:
            stored = self._contracts.get(contract_id)
            if stored is None or (expected_status is not None and stored.status != expected_status):
                return None
            updated = stored.model_copy(update={**changes, "updated_at": utcnow()}, deep=True)
            self._contracts[contract_id] = updated
            return updated.model_copy(deep=True)

    async def list_contracts(
        self, creator_id: str, status: ContractStatus | None = None
    ) -> list[Contract]:
        contracts = [
            c.model_copy(deep=True)
            for c in self._contracts.values()
            if c.creator_id == creator_id and c.is_active and (status is None or c.status == status)
        ]
        return sorted(contracts, key=lambda c: c.created_at, reverse=True)

    async def add_analysis(self, analysis: ContractAnalysis) -> ContractAnalysis:
        self._analyses[analysis.id] = analysis
        return analysis

    async def get_analysis(self, analysis_id: str) -> ContractAnalysis | None:
        return self._analyses.get(analysis_id)

    async def get_analyses(self, analysis_ids: list[str]) -> dict[str, ContractAnalysis]:
        return {aid: self._analyses[aid] for aid in analysis_ids if aid in self._analyses}

    async def add_negotiation(self, history: NegotiationHistory) -> NegotiationHistory:
        async with self._lock:
            for existing in self._negotiations.values():
                if (
                    existing.contract_id == history.contract_id
                    and existing.negotiation_round == history.negotiation_round
                ):
                    raise DuplicateRound(history.contract_id, history.negotiation_round)
            self._negotiations[history.id] = history.model_copy(deep=True)
        return history

    async def save_negotiation(self, history: NegotiationHistory) -> NegotiationHistory:
        self._negotiations[history.id] = history.model_copy(deep=True)
        return history

    async def list_negotiations(
        self, contract_id: str | None = None, creator_id: str | None = None
    ) -> list[NegotiationHistory]:
        rounds = [
            h.model_copy(deep=True)
            for h in self._negotiations.values()
            if h.is_active
            and (contract_id is None or h.contract_id == contract_id)
            and (creator_id is None or h.creator_id == creator_id)
        ]
        return sorted(rounds, key=lambda h: (h.contract_id, h.negotiation_round))

    async def max_negotiation_round(self, contract_id: str) -> int:
        rounds = [h.negotiation_round for h in self._negotiations.values() if h.contract_id == contract_id]
        return max(rounds, default=0)

    async def add_deal(self, contract_id: str, deal: dict[str, Any]) -> str:
        deal_id = uuid4().hex
        self._deals[deal_id] = {"id": deal_id, "contract_id": contract_id, **deal}
        return deal_id

    async def get_deal(self, deal_id: str) -> dict[str, Any] | None:
        return self._deals.get(deal_id)
