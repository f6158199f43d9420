"""Tests for the asyncpg contract repository with a mocked pool."""

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest

from core.lifecycle.models import Contract, ContractStatus, NegotiationHistory
from core.lifecycle.postgres_repository import PostgresContractRepository
from core.lifecycle.repository import DuplicateRound


class AsyncContextManagerMock:
    """Helper class to create async context manager mocks."""

    def __init__(self, return_value: Any) -> None:
        self.return_value = return_value

    async def __aenter__(self) -> Any:
        return self.return_value

    async def __aexit__(self, *args: Any) -> None:
        pass


@pytest.fixture
def conn() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def mock_pool(conn: AsyncMock) -> MagicMock:
    """Create a mock asyncpg pool."""
    pool = MagicMock()
    pool.acquire.return_value = AsyncContextManagerMock(conn)
    return pool


class TestPostgresContractRepository:
    """Tests for the SQL issued by the repository."""

    @pytest.mark.asyncio
    async def test_ensure_tables(self, mock_pool: MagicMock, conn: AsyncMock) -> None:
        await PostgresContractRepository(mock_pool).ensure_tables()

        statements = " ".join(call.args[0] for call in conn.execute.call_args_list)
        assert "CREATE TABLE IF NOT EXISTS contracts" in statements
        assert "UNIQUE(contract_id, negotiation_round)" in statements

    @pytest.mark.asyncio
    async def test_update_contract_compare_and_set(self, mock_pool: MagicMock, conn: AsyncMock) -> None:
        conn.fetchrow.return_value = None

        updated = await PostgresContractRepository(mock_pool).update_contract(
            "c1", {"status": ContractStatus.ANALYZING, "last_error": None},
            expected_status=ContractStatus.UPLOADED,
        )

        assert updated is None
        args = conn.fetchrow.call_args.args
        assert "status = $5" in args[0]
        assert "data || $2::jsonb" in args[0]
        patch = json.loads(args[2])
        assert patch["status"] == "analyzing"
        assert patch["last_error"] is None
        assert "is_archived" not in patch
        assert args[3] == "analyzing"
        assert args[4] is None
        assert args[5] == "uploaded"

    @pytest.mark.asyncio
    async def test_update_contract_single_field(self, mock_pool: MagicMock, conn: AsyncMock) -> None:
        stored = Contract(id="c1", creator_id="creator_001", is_archived=True)
        conn.fetchrow.return_value = {"data": stored.model_dump_json()}

        updated = await PostgresContractRepository(mock_pool).update_contract("c1", {"is_archived": True})

        assert updated == stored
        args = conn.fetchrow.call_args.args
        assert set(json.loads(args[2])) == {"is_archived", "updated_at"}
        assert args[3] is None
        assert args[5] is None

    @pytest.mark.asyncio
    async def test_get_contract_round_trip(self, mock_pool: MagicMock, conn: AsyncMock) -> None:
        contract = Contract(id="c1", creator_id="creator_001", title="Acme")
        conn.fetchrow.return_value = {"data": contract.model_dump_json()}

        loaded = await PostgresContractRepository(mock_pool).get_contract("c1")

        assert loaded == contract

    @pytest.mark.asyncio
    async def test_duplicate_round(self, mock_pool: MagicMock, conn: AsyncMock) -> None:
        conn.execute.side_effect = asyncpg.UniqueViolationError("duplicate key")
        history = NegotiationHistory(contract_id="c1", creator_id="creator_001", negotiation_round=2)

        with pytest.raises(DuplicateRound) as exc_info:
            await PostgresContractRepository(mock_pool).add_negotiation(history)

        assert exc_info.value.negotiation_round == 2

    @pytest.mark.asyncio
    async def test_max_negotiation_round(self, mock_pool: MagicMock, conn: AsyncMock) -> None:
        conn.fetchval.return_value = 3

        assert await PostgresContractRepository(mock_pool).max_negotiation_round("c1") == 3

    @pytest.mark.asyncio
    async def test_get_deal(self, mock_pool: MagicMock, conn: AsyncMock) -> None:
        conn.fetchrow.return_value = {
            "id": "d1",
            "contract_id": "c1",
            "data": json.dumps({"title": "Acme - Riya Collaboration"}),
        }

        deal = await PostgresContractRepository(mock_pool).get_deal("d1")

        assert deal == {"id": "d1", "contract_id": "c1", "title": "Acme - Riya Collaboration"}
