"""Execution coordinator — automated run toward a profit target.

State machine: IDLE --start--> RUNNING --stop / target reached--> IDLE.

While RUNNING a background task repeats one cycle at a time:
    fetch → filter executable → select best → record tx → record profit
    → remove opportunity + log → (target reached? finish : replenish) → pause
An empty pool is replenished with one generated opportunity and re-checked
after a shorter pause. Faults inside a cycle are logged and retried after
``fault_retry_delay`` while the run is still current.

Every ExecutionState mutation happens under one asyncio.Lock. Each run gets
a new run_id; a loop task only acts while its run_id is current, so a loop
left over from a stopped run can never touch the next run's state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from mevdash.config import BotConfig
from mevdash.execution.executor import (
    ExecutionError,
    ExecutionOutcome,
    SimulatedExecutor,
    with_timeout,
)
from mevdash.models.payload import InvalidPayload, iso, parse_number, utc_now
from mevdash.monitoring.telegram import TelegramAlerter
from mevdash.strategy.generator import ExecutablePolicy, OpportunityGenerator
from mevdash.strategy.selection import executable_only, select_best

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExecutionSnapshot:
    """status() 결과 — 불변 스냅샷."""

    is_running: bool
    profit: float  # £
    transactions: int
    start_time: Optional[datetime]
    target_profit: float  # £
    percent_complete: float

    def to_dict(self) -> dict:
        return {
            "isRunning": self.is_running,
            "profit": self.profit,
            "transactions": self.transactions,
            "startTime": iso(self.start_time),
            "targetProfit": self.target_profit,
            "percentComplete": self.percent_complete,
        }


@dataclass
class CoordinatorResult:
    """start/stop 결과. 실패도 같은 형태로 반환 (예외 없음)."""

    success: bool
    message: str
    start_time: Optional[datetime] = None
    stats: Optional[ExecutionSnapshot] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.start_time is not None:
            data["startTime"] = iso(self.start_time)
        if self.stats is not None:
            data["stats"] = self.stats.to_dict()
        return data


@dataclass(frozen=True)
class ProfitUpdate:
    """record_profit 결과."""

    target_reached: bool
    current_profit: float
    transactions: int
    completed_run: bool = False  # 이 업데이트가 RUNNING → IDLE 전이를 수행


class CycleOutcome(Enum):
    """한 사이클 결과."""

    EXECUTED = "executed"          # 실행 + 보충, 다음 사이클 예정
    REPLENISHED = "replenished"    # 실행 가능 기회 없음 → 생성 후 재확인
    TARGET_REACHED = "target_reached"
    STALE = "stale"                # 이 루프의 run이 더 이상 current 아님


@dataclass
class _ExecutionState:
    is_running: bool = False
    accumulated_profit: float = 0.0
    executed_count: int = 0
    started_at: Optional[datetime] = None
    target_profit: float = 20.0
    run_id: int = 0


def percent_complete(profit: float, target: float) -> float:
    """100 * profit / target. target이 0 이하면 0."""
    return (profit / target) * 100.0 if target > 0 else 0.0


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------


class ExecutionCoordinator:
    """Own the ExecutionState and drive the automated execution loop.

    One instance per process, wired at startup and handed to the HTTP layer.

    Args:
        store: 기회/트랜잭션/통계/로그 스토어.
        config: BotConfig (지연, 환율, 기본 목표, 타임아웃).
        generator: 기회 생성기. None이면 config의 정책으로 생성.
        alerter: TelegramAlerter. None이면 비활성 alerter.
    """

    def __init__(
        self,
        store,
        config: BotConfig | None = None,
        generator: OpportunityGenerator | None = None,
        alerter: TelegramAlerter | None = None,
    ):
        self.store = store
        self.config = config or BotConfig()
        self.generator = generator or OpportunityGenerator(
            policy=ExecutablePolicy(self.config.executable_policy),
            executable_probability=self.config.executable_probability,
        )
        self.alerter = alerter or TelegramAlerter()
        self.executor = SimulatedExecutor(
            store, self.generator, io_timeout=self.config.io_timeout,
        )

        self._state = _ExecutionState(target_profit=self.config.default_target_profit)
        self._lock = asyncio.Lock()
        self._wake = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Boundary operations
    # ------------------------------------------------------------------

    async def start(self, target_profit: Any = None) -> CoordinatorResult:
        """IDLE → RUNNING. 루프는 백그라운드에서 시작, 즉시 반환.

        Args:
            target_profit: 목표 수익 (£). None이면 이전 값 또는 기본값.
        """
        target: Optional[float] = None
        if target_profit is not None:
            try:
                target = parse_number(target_profit, "targetProfit")
            except InvalidPayload as exc:
                return CoordinatorResult(success=False, message=str(exc))
            if target <= 0:
                return CoordinatorResult(
                    success=False, message="targetProfit must be positive",
                )

        async with self._lock:
            state = self._state
            if state.is_running:
                return CoordinatorResult(success=False, message="Execution already running")

            state.run_id += 1
            state.is_running = True
            state.accumulated_profit = 0.0
            state.executed_count = 0
            state.started_at = utc_now()
            if target is not None:
                state.target_profit = target
            self._wake.clear()

            run_id = state.run_id
            started_at = state.started_at
            goal = state.target_profit
            self._task = asyncio.create_task(
                self._run_loop(run_id), name=f"mev-execution-{run_id}",
            )

        logger.info("Started MEV execution run %d (target £%.2f)", run_id, goal)
        return CoordinatorResult(
            success=True,
            message=f"Started MEV execution with target profit of £{goal:g}",
            start_time=started_at,
        )

    async def stop(self) -> CoordinatorResult:
        """RUNNING → IDLE. 진행 중 사이클은 끝까지 실행, 다음 사이클 전에 종료."""
        async with self._lock:
            if not self._state.is_running:
                return CoordinatorResult(
                    success=False, message="No execution currently running",
                )
            self._state.is_running = False
            snapshot = self._snapshot()
            self._state.started_at = None
            self._wake.set()

        logger.info(
            "Stopped MEV execution: £%.2f over %d transactions",
            snapshot.profit, snapshot.transactions,
        )
        return CoordinatorResult(success=True, message="Stopped MEV execution", stats=snapshot)

    def status(self) -> ExecutionSnapshot:
        """현재 상태 스냅샷 (부작용 없음)."""
        return self._snapshot()

    async def record_profit(self, amount: float) -> ProfitUpdate:
        """수익 누적 (음수 = 손실) + 목표 달성 시 자동 정지."""
        async with self._lock:
            return self._apply_profit(amount)

    async def execute_opportunity(self, opportunity_id: int) -> ExecutionOutcome:
        """수동 단건 실행. 자동 실행 진행도와 별개 카운터."""
        try:
            return await self.executor.execute_by_id(opportunity_id)
        except Exception:
            logger.exception("Error executing opportunity %s", opportunity_id)
            return ExecutionOutcome(
                success=False,
                message="Failed to execute opportunity",
                error=ExecutionError.FAILED,
            )

    async def shutdown(self, grace: float = 5.0) -> None:
        """프로세스 종료 시 호출: 정지 후 루프 태스크 정리."""
        if self._state.is_running:
            await self.stop()
        task = self._task
        if task is None or task.done():
            return
        try:
            await asyncio.wait_for(task, timeout=grace)
        except asyncio.TimeoutError:
            logger.warning("Execution loop did not finish within %.1fs", grace)

    # ------------------------------------------------------------------
    # State helpers (call with lock held where they mutate)
    # ------------------------------------------------------------------

    def _snapshot(self) -> ExecutionSnapshot:
        s = self._state
        return ExecutionSnapshot(
            is_running=s.is_running,
            profit=s.accumulated_profit,
            transactions=s.executed_count,
            start_time=s.started_at,
            target_profit=s.target_profit,
            percent_complete=percent_complete(s.accumulated_profit, s.target_profit),
        )

    def _apply_profit(self, amount: float) -> ProfitUpdate:
        s = self._state
        s.accumulated_profit += amount
        s.executed_count += 1
        reached = s.accumulated_profit >= s.target_profit
        completed = reached and s.is_running
        if completed:
            s.is_running = False
            s.started_at = None
            self._wake.set()
        return ProfitUpdate(
            target_reached=reached,
            current_profit=s.accumulated_profit,
            transactions=s.executed_count,
            completed_run=completed,
        )

    def _is_current(self, run_id: int) -> bool:
        return self._state.is_running and self._state.run_id == run_id

    async def _record_cycle_profit(self, run_id: int, amount: float) -> Optional[ProfitUpdate]:
        """루프 전용: 같은 run일 때만 반영. 이미 다른 run이면 None."""
        async with self._lock:
            if self._state.run_id != run_id:
                return None
            return self._apply_profit(amount)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def _run_loop(self, run_id: int) -> None:
        await self.alerter.alert_run_started(self._state.target_profit)

        while self._is_current(run_id):
            try:
                outcome = await self.run_cycle(run_id)
            except Exception:
                logger.exception("Error in MEV execution cycle (run %d)", run_id)
                await self.alerter.alert_error(f"Execution run {run_id} cycle error, retrying")
                delay = self.config.fault_retry_delay
            else:
                if outcome in (CycleOutcome.TARGET_REACHED, CycleOutcome.STALE):
                    break
                if outcome is CycleOutcome.EXECUTED:
                    delay = self.config.execution_delay
                else:
                    delay = self.config.empty_pool_delay

            await self._pause(delay)

        logger.info("Execution loop for run %d finished", run_id)

    async def run_cycle(self, run_id: int) -> CycleOutcome:
        """한 사이클: 선택 → 실행 → 수익 기록 → 보충.

        Raises:
            Exception: 스토어/생성기 오류 (루프가 잡아서 재시도).
        """
        if not self._is_current(run_id):
            return CycleOutcome.STALE

        timeout = self.config.io_timeout
        opportunities = await with_timeout(self.store.get_opportunities(), timeout)
        best = select_best(executable_only(opportunities))

        if best is None:
            await self._replenish()
            logger.info("No executable opportunities — generated a new candidate")
            return CycleOutcome.REPLENISHED

        rate = self.config.base_to_fiat_rate
        tx = await self.executor.record_transaction(best)
        profit_fiat = tx.profit * rate

        # 저장된 트랜잭션은 삭제/로그 실패와 무관하게 진행도에 반영
        update = await self._record_cycle_profit(run_id, profit_fiat)
        await self.executor.retire(best, fiat_profit=best.estimated_profit * rate)
        if update is None:
            return CycleOutcome.STALE

        target = self._state.target_profit
        logger.info(
            "Executed opportunity with profit £%.2f, progress £%.2f / £%.2f (%.2f%%)",
            profit_fiat, update.current_profit, target,
            percent_complete(update.current_profit, target),
        )

        if update.completed_run:
            await self._finish_run(update, target)
            return CycleOutcome.TARGET_REACHED
        if not self._is_current(run_id):
            # stop()이 사이클 도중 호출됨: 목표 달성 처리/보충 없이 종료
            return CycleOutcome.STALE

        await self._replenish()
        return CycleOutcome.EXECUTED

    async def _replenish(self) -> None:
        spec = self.generator.generate()
        await with_timeout(self.store.add_opportunity(spec), self.config.io_timeout)

    async def _finish_run(self, update: ProfitUpdate, target: float) -> None:
        """목표 달성: 누적 통계 확인 + 로그 + 알림.

        bot_stats는 add_transaction마다 증분 반영되므로 여기서 다시 더하지 않음.
        """
        timeout = self.config.io_timeout
        try:
            stats = await with_timeout(self.store.get_bot_stats(), timeout)
            await with_timeout(
                self.store.add_mempool_activity(
                    f"Target profit of £{target:g} reached: £{update.current_profit:.2f} "
                    f"over {update.transactions} transactions",
                    "system",
                ),
                timeout,
            )
        except Exception as exc:
            logger.warning("Failed to record target completion: %s", exc)
            stats = None
        if stats is not None:
            logger.info(
                "Target profit of £%.2f reached! Lifetime: %.4f ETH over %d transactions "
                "(success rate %.1f%%)",
                target, stats.total_profit, stats.total_transactions, stats.success_rate,
            )
        await self.alerter.alert_target_reached(
            update.current_profit, target, update.transactions,
        )

    async def _pause(self, delay: float) -> None:
        """delay초 대기. stop()이 호출되면 즉시 깨어남."""
        if delay <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass  # 다음 사이클
