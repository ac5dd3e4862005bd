"""Tests for SimulatedExecutor — side effects of executing one opportunity."""

from __future__ import annotations

import asyncio

import pytest

from mevdash.execution.executor import ExecutionError, SimulatedExecutor, with_timeout
from mevdash.models.opportunity import NewOpportunity
from mevdash.models.transaction import TxStatus


async def _seed(store, profit=0.02, gas=0.005, executable=True):
    return await store.add_opportunity(
        NewOpportunity("Triangular", "ETH → USDC → WBTC → ETH", profit, gas, executable),
    )


@pytest.fixture
def executor(store, generator):
    return SimulatedExecutor(store, generator, io_timeout=2.0)


class TestExecute:
    @pytest.mark.asyncio
    async def test_records_confirmed_transaction(self, store, executor):
        opp = await _seed(store, profit=0.0213, gas=0.0041)
        tx = await executor.execute(opp)
        assert tx.status is TxStatus.CONFIRMED
        assert tx.profit == pytest.approx(0.0213)
        assert tx.gas_cost == pytest.approx(0.0041)
        assert tx.pairs == opp.pairs
        assert tx.tx_hash.startswith("0x")

    @pytest.mark.asyncio
    async def test_removes_opportunity(self, store, executor):
        opp = await _seed(store)
        await executor.execute(opp)
        assert await store.get_opportunity(opp.id) is None

    @pytest.mark.asyncio
    async def test_logs_fiat_profit(self, store, executor):
        opp = await _seed(store)
        await executor.execute(opp, fiat_profit=53.0)
        rows = await store.get_mempool_activity()
        assert rows[-1].type == "execution"
        assert rows[-1].message == (
            "Executed Triangular arbitrage: ETH → USDC → WBTC → ETH - Profit: £53.00"
        )

    @pytest.mark.asyncio
    async def test_logs_eth_profit_without_rate(self, store, executor):
        opp = await _seed(store, profit=0.02)
        await executor.execute(opp)
        rows = await store.get_mempool_activity()
        assert rows[-1].message.endswith("Profit: 0.0200 ETH")

    @pytest.mark.asyncio
    async def test_updates_stats(self, store, executor):
        await executor.execute(await _seed(store))
        stats = await store.get_bot_stats()
        assert stats.total_transactions == 1

    @pytest.mark.asyncio
    async def test_log_failure_does_not_undo_execution(self, store, executor):
        async def _broken_log(message, type_):
            raise RuntimeError("log sink down")

        store.add_mempool_activity = _broken_log
        opp = await _seed(store)
        tx = await executor.execute(opp)
        assert tx.status is TxStatus.CONFIRMED
        assert await store.get_opportunity(opp.id) is None
        assert len(await store.get_transactions()) == 1


class TestExecuteById:
    @pytest.mark.asyncio
    async def test_success(self, store, executor):
        opp = await _seed(store)
        outcome = await executor.execute_by_id(opp.id)
        assert outcome.success is True
        assert outcome.transaction is not None
        assert outcome.error is None
        assert "Triangular" in outcome.message

    @pytest.mark.asyncio
    async def test_not_found_leaves_store_unchanged(self, store, executor):
        await _seed(store)
        outcome = await executor.execute_by_id(999)
        assert outcome.success is False
        assert outcome.error is ExecutionError.NOT_FOUND
        assert await store.get_transactions() == []
        assert len(await store.get_opportunities()) == 1

    @pytest.mark.asyncio
    async def test_not_executable_leaves_store_unchanged(self, store, executor):
        opp = await _seed(store, executable=False)
        outcome = await executor.execute_by_id(opp.id)
        assert outcome.success is False
        assert outcome.error is ExecutionError.NOT_EXECUTABLE
        assert await store.get_opportunity(opp.id) is not None
        assert await store.get_transactions() == []
        assert await store.get_mempool_activity() == []

    @pytest.mark.asyncio
    async def test_outcome_to_dict(self, store, executor):
        outcome = await executor.execute_by_id(12345)
        assert outcome.to_dict() == {
            "success": False,
            "message": "Opportunity not found",
            "reason": "not_found",
        }


class TestWithTimeout:
    @pytest.mark.asyncio
    async def test_passes_value_through(self):
        async def value():
            return 7

        assert await with_timeout(value(), 1.0) == 7
        assert await with_timeout(value(), None) == 7

    @pytest.mark.asyncio
    async def test_times_out(self):
        with pytest.raises(asyncio.TimeoutError):
            await with_timeout(asyncio.sleep(1.0), 0.01)
