"""Simulated opportunity executor — record tx, remove opportunity, log.

실제 체인 트랜잭션 없음. 자동 실행 루프와 수동 실행이 같은 경로 사용.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Optional

from mevdash.models.opportunity import Opportunity
from mevdash.models.transaction import NewTransaction, Transaction, TxStatus
from mevdash.strategy.generator import OpportunityGenerator

logger = logging.getLogger(__name__)


class ExecutionError(Enum):
    """수동 실행 실패 사유."""

    NOT_FOUND = "not_found"
    NOT_EXECUTABLE = "not_executable"
    FAILED = "failed"


@dataclass
class ExecutionOutcome:
    """수동 실행 결과 (예외 대신 반환)."""

    success: bool
    message: str
    transaction: Optional[Transaction] = None
    error: Optional[ExecutionError] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.transaction is not None:
            data["transaction"] = self.transaction.to_dict()
        if self.error is not None:
            data["reason"] = self.error.value
        return data


async def with_timeout(aw: Awaitable, timeout: float | None):
    """스토어 호출 타임아웃. None이면 무제한."""
    if timeout is None:
        return await aw
    return await asyncio.wait_for(aw, timeout=timeout)


class SimulatedExecutor:
    """Perform the side effects of executing one opportunity.

    Args:
        store: 스토어 (add_transaction / delete_opportunity / add_mempool_activity).
        generator: tx hash 생성용.
        io_timeout: 스토어 호출당 타임아웃 (초). None이면 무제한.
    """

    def __init__(
        self,
        store,
        generator: OpportunityGenerator,
        io_timeout: float | None = None,
    ):
        self.store = store
        self.generator = generator
        self.io_timeout = io_timeout

    async def execute(
        self, opp: Opportunity, fiat_profit: float | None = None,
    ) -> Transaction:
        """트랜잭션 기록 → 기회 삭제 → 로그.

        Args:
            opp: 실행할 기회.
            fiat_profit: 로그에 표시할 환산 수익 (£). None이면 ETH로 표시.

        Returns:
            기록된 Transaction (항상 Confirmed).
        """
        tx = await self.record_transaction(opp)
        await self.retire(opp, fiat_profit)
        return tx

    async def record_transaction(self, opp: Opportunity) -> Transaction:
        """Confirmed 트랜잭션 저장 (stats 증분 포함)."""
        tx = await with_timeout(
            self.store.add_transaction(
                NewTransaction(
                    tx_hash=self.generator.random_tx_hash(),
                    type=opp.type,
                    pairs=opp.pairs,
                    profit=opp.estimated_profit,
                    gas_cost=opp.estimated_gas_cost,
                    status=TxStatus.CONFIRMED,
                )
            ),
            self.io_timeout,
        )
        logger.info("Executed opportunity #%d (%s) → %s", opp.id, opp.type, tx.tx_hash)
        return tx

    async def retire(self, opp: Opportunity, fiat_profit: float | None = None) -> None:
        """실행된 기회 삭제 + 실행 로그 한 줄.

        로그 append 실패는 경고만 남김 (fire-and-forget).
        """
        await with_timeout(self.store.delete_opportunity(opp.id), self.io_timeout)

        if fiat_profit is None:
            profit_str = f"{opp.estimated_profit:.4f} ETH"
        else:
            profit_str = f"£{fiat_profit:.2f}"
        try:
            await with_timeout(
                self.store.add_mempool_activity(
                    f"Executed {opp.type} arbitrage: {opp.pairs} - Profit: {profit_str}",
                    "execution",
                ),
                self.io_timeout,
            )
        except Exception as exc:
            logger.warning("Failed to append execution log for #%d: %s", opp.id, exc)

    async def execute_by_id(self, opportunity_id: int) -> ExecutionOutcome:
        """수동 실행 — 자동 실행 루프와 독립, 진행도에 반영 안 함."""
        opp = await with_timeout(self.store.get_opportunity(opportunity_id), self.io_timeout)
        if opp is None:
            return ExecutionOutcome(
                success=False,
                message="Opportunity not found",
                error=ExecutionError.NOT_FOUND,
            )
        if not opp.is_executable:
            return ExecutionOutcome(
                success=False,
                message="Opportunity is not executable",
                error=ExecutionError.NOT_EXECUTABLE,
            )

        tx = await self.execute(opp)
        return ExecutionOutcome(
            success=True,
            message=f"Successfully executed {opp.type} arbitrage opportunity",
            transaction=tx,
        )
