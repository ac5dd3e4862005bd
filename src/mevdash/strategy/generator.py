"""Synthetic opportunity generator + simulated chain/mempool data.

모든 값은 bounded random — 실제 체인/DEX 데이터 아님.

Executability has two rules in the wild: profit-vs-gas comparison and a
fixed probability. Both are exposed as ExecutablePolicy; the caller picks.
"""

from __future__ import annotations

import random
from enum import Enum

from mevdash.config import (
    BATCH_SIZE_RANGE,
    GAS_COST_RANGE,
    OPPORTUNITY_TYPES,
    POLICY_FIXED_PROBABILITY,
    POLICY_PROFIT_EXCEEDS_GAS,
    PROFIT_RANGE,
    TRADE_PATHS,
)
from mevdash.models.opportunity import NewOpportunity
from mevdash.models.status import BlockchainStatus


class ExecutablePolicy(Enum):
    """is_executable 결정 규칙."""

    PROFIT_EXCEEDS_GAS = POLICY_PROFIT_EXCEEDS_GAS  # profit > gas
    FIXED_PROBABILITY = POLICY_FIXED_PROBABILITY  # P(true) = executable_probability


class OpportunityGenerator:
    """Produce synthetic opportunities with internally bounded randomness.

    Args:
        policy: is_executable 결정 규칙.
        executable_probability: FIXED_PROBABILITY일 때 true 확률.
        rng: 테스트용 random.Random 주입.
    """

    def __init__(
        self,
        policy: ExecutablePolicy = ExecutablePolicy.PROFIT_EXCEEDS_GAS,
        executable_probability: float = 0.7,
        rng: random.Random | None = None,
    ):
        if not 0.0 <= executable_probability <= 1.0:
            raise ValueError(
                f"executable_probability must be in [0, 1]: {executable_probability}"
            )
        self.policy = policy
        self.executable_probability = executable_probability
        self._rng = rng or random.Random()

    def generate(self) -> NewOpportunity:
        """기회 하나 생성 (저장은 호출자 책임)."""
        profit = round(self._rng.uniform(*PROFIT_RANGE), 4)
        gas_cost = round(self._rng.uniform(*GAS_COST_RANGE), 4)
        return NewOpportunity(
            type=self._rng.choice(OPPORTUNITY_TYPES),
            pairs=self._rng.choice(TRADE_PATHS),
            estimated_profit=profit,
            estimated_gas_cost=gas_cost,
            is_executable=self._is_executable(profit, gas_cost),
        )

    def generate_batch(self, count: int | None = None) -> list[NewOpportunity]:
        """벌크 생성. count 미지정 시 4-8개."""
        if count is None:
            count = self._rng.randint(*BATCH_SIZE_RANGE)
        if count < 0:
            raise ValueError(f"count must be non-negative: {count}")
        return [self.generate() for _ in range(count)]

    def _is_executable(self, profit: float, gas_cost: float) -> bool:
        if self.policy is ExecutablePolicy.FIXED_PROBABILITY:
            return self._rng.random() < self.executable_probability
        return profit > gas_cost

    # ------------------------------------------------------------------
    # Other simulated values
    # ------------------------------------------------------------------

    def random_tx_hash(self) -> str:
        """가짜 tx hash: 0x + 8 hex + ... + 4 hex."""
        head = f"{self._rng.getrandbits(32):08x}"
        tail = f"{self._rng.getrandbits(16):04x}"
        return f"0x{head}...{tail}"

    def simulate_mempool_event(self) -> tuple[str, str]:
        """(message, type) — 감지된 스왑 한 건."""
        amount = self._rng.randrange(1000)
        return f"Detected swap: {amount} ETH → USDT on Uniswap", "swap"

    def simulate_blockchain_status(self) -> BlockchainStatus:
        gas_price = round(self._rng.uniform(10.0, 80.0), 1)
        return BlockchainStatus(
            pending_transactions=self._rng.randint(100, 600),
            gas_price=gas_price,
            network_congestion=classify_congestion(gas_price),
        )


def classify_congestion(gas_price: float) -> str:
    """gwei → 혼잡도 레벨."""
    if gas_price < 15:
        return "Low"
    if gas_price < 30:
        return "Medium"
    if gas_price < 60:
        return "High"
    return "Very High"


def demo_opportunities() -> list[NewOpportunity]:
    """고정 데모 세트 (시드 + simulate 엔드포인트 공용)."""
    return [
        NewOpportunity("Triangular", "ETH → USDC → WBTC → ETH", 0.0213, 0.0041, True),
        NewOpportunity("DEX", "USDT(Uniswap) → USDT(SushiSwap)", 0.0098, 0.0038, True),
        NewOpportunity("Triangular", "ETH → USDT → DAI → ETH", 0.0012, 0.0045, False),
        NewOpportunity("Flash Loan", "AAVE → Uniswap → Compound", 0.0412, 0.0158, True),
    ]
