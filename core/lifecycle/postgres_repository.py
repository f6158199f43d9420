"""PostgreSQL-backed contract repository (asyncpg).

Documents are stored as JSONB next to the few columns the lifecycle needs to
query or constrain on: contract status for the analysis guard and
(contract_id, negotiation_round) for round uniqueness.
"""

import json
import logging
from typing import Any
from uuid import uuid4

import asyncpg
from pydantic_core import to_jsonable_python

from core.contracts.models import ContractAnalysis
from core.lifecycle.models import Contract, ContractStatus, NegotiationHistory, utcnow
from core.lifecycle.repository import DuplicateRound

logger = logging.getLogger("creatorlens.postgres_repository")


class PostgresContractRepository:
    """Repository for contracts, analyses, negotiation rounds and deals."""

    def __init__(self, pool: Any) -> None:
        """Initialize with a database connection pool."""
        self.pool = pool

    async def ensure_tables(self) -> None:
        """Ensure required database tables exist."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS contracts (
                    id VARCHAR(64) PRIMARY KEY,
                    creator_id VARCHAR(255) NOT NULL,
                    status VARCHAR(32) NOT NULL,
                    is_active BOOLEAN NOT NULL DEFAULT TRUE,
                    data JSONB NOT NULL,
                    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
                )
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_contracts_creator_status
                ON contracts(creator_id, status)
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS contract_analyses (
                    id VARCHAR(64) PRIMARY KEY,
                    contract_id VARCHAR(64) NOT NULL REFERENCES contracts(id),
                    risk_score INTEGER NOT NULL,
                    risk_level VARCHAR(16) NOT NULL,
                    data JSONB NOT NULL,
                    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS negotiation_histories (
                    id VARCHAR(64) PRIMARY KEY,
                    contract_id VARCHAR(64) NOT NULL REFERENCES contracts(id),
                    creator_id VARCHAR(255) NOT NULL,
                    negotiation_round INTEGER NOT NULL,
                    is_active BOOLEAN NOT NULL DEFAULT TRUE,
                    data JSONB NOT NULL,
                    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
                    UNIQUE(contract_id, negotiation_round)
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS deals (
                    id VARCHAR(64) PRIMARY KEY,
                    contract_id VARCHAR(64) NOT NULL REFERENCES contracts(id),
                    data JSONB NOT NULL,
                    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
                )
            """)

    async def add_contract(self, contract: Contract) -> Contract:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO contracts (id, creator_id, status, is_active, data)
                VALUES ($1, $2, $3, $4, $5)
                """,
                contract.id,
                contract.creator_id,
                contract.status.value,
                contract.is_active,
                contract.model_dump_json(),
            )
        return contract

    async def get_contract(self, contract_id: str) -> Contract | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT data FROM contracts WHERE id = $1", contract_id)
            return Contract.model_validate_json(row["data"]) if row else None

    async def update_contract(
        self,
        contract_id: str,
        changes: dict[str, Any],
        expected_status: ContractStatus | None = None,
    ) -> Contract | None:
        patch = to_jsonable_python({**changes, "updated_at": utcnow()})
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                UPDATE contracts
                SET data = data || $2::jsonb,
                    status = COALESCE($3::text, status),
                    is_active = COALESCE($4::boolean, is_active),
                    updated_at = NOW()
                WHERE id = $1 AND ($5::text IS NULL OR status = $5)
                RETURNING data
                """,
                contract_id,
                json.dumps(patch),
                patch.get("status"),
                patch.get("is_active"),
                expected_status.value if expected_status else None,
            )
            return Contract.model_validate_json(row["data"]) if row else None

    async def list_contracts(
        self, creator_id: str, status: ContractStatus | None = None
    ) -> list[Contract]:
        query = "SELECT data FROM contracts WHERE creator_id = $1 AND is_active"
        params: list[Any] = [creator_id]

        if status:
            query += " AND status = $2"
            params.append(status.value)

        query += " ORDER BY created_at DESC"

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
            return [Contract.model_validate_json(row["data"]) for row in rows]

    async def add_analysis(self, analysis: ContractAnalysis) -> ContractAnalysis:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO contract_analyses (id, contract_id, risk_score, risk_level, data)
                VALUES ($1, $2, $3, $4, $5)
                """,
                analysis.id,
                analysis.contract_id,
                analysis.risk_score,
                analysis.risk_level.value,
                analysis.model_dump_json(),
            )
        return analysis

    async def get_analysis(self, analysis_id: str) -> ContractAnalysis | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT data FROM contract_analyses WHERE id = $1", analysis_id)
            return ContractAnalysis.model_validate_json(row["data"]) if row else None

    async def get_analyses(self, analysis_ids: list[str]) -> dict[str, ContractAnalysis]:
        if not analysis_ids:
            return {}
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT id, data FROM contract_analyses WHERE id = ANY($1::varchar[])",
                analysis_ids,
            )
            return {row["id"]: ContractAnalysis.model_validate_json(row["data"]) for row in rows}

    async def add_negotiation(self, history: NegotiationHistory) -> NegotiationHistory:
        async with self.pool.acquire() as conn:
            try:
                await conn.execute(
                    """
                    INSERT INTO negotiation_histories
                        (id, contract_id, creator_id, negotiation_round, is_active, data)
                    VALUES ($1, $2, $3, $4, $5, $6)
                    """,
                    history.id,
                    history.contract_id,
                    history.creator_id,
                    history.negotiation_round,
                    history.is_active,
                    history.model_dump_json(),
                )
            except asyncpg.UniqueViolationError as e:
                raise DuplicateRound(history.contract_id, history.negotiation_round) from e
        return history

    async def save_negotiation(self, history: NegotiationHistory) -> NegotiationHistory:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE negotiation_histories SET is_active = $2, data = $3 WHERE id = $1
                """,
                history.id,
                history.is_active,
                history.model_dump_json(),
            )
        return history

    async def list_negotiations(
        self, contract_id: str | None = None, creator_id: str | None = None
    ) -> list[NegotiationHistory]:
        query = "SELECT data FROM negotiation_histories WHERE is_active"
        params: list[Any] = []

        if contract_id:
            params.append(contract_id)
            query += f" AND contract_id = ${len(params)}"
        if creator_id:
            params.append(creator_id)
            query += f" AND creator_id = ${len(params)}"

        query += " ORDER BY contract_id, negotiation_round"

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
            return [NegotiationHistory.model_validate_json(row["data"]) for row in rows]

    async def max_negotiation_round(self, contract_id: str) -> int:
        async with self.pool.acquire() as conn:
            value = await conn.fetchval(
                "SELECT COALESCE(MAX(negotiation_round), 0) FROM negotiation_histories WHERE contract_id = $1",
                contract_id,
            )
            return int(value or 0)

    async def add_deal(self, contract_id: str, deal: dict[str, Any]) -> str:
        deal_id = uuid4().hex
        async with self.pool.acquire() as conn:
            await conn.execute(
                "INSERT INTO deals (id, contract_id, data) VALUES ($1, $2, $3)",
                deal_id,
                contract_id,
                json.dumps(deal, default=str),
            )
        logger.info(f"Deal stored: deal_id={deal_id} contract_id={contract_id}")
        return deal_id

    async def get_deal(self, deal_id: str) -> dict[str, Any] | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT id, contract_id, data FROM deals WHERE id = $1", deal_id)
            if not row:
                return None
            return {"id": row["id"], "contract_id": row["contract_id"], **json.loads(row["data"])}
