"""Bot configuration — simulation constants, env-based config."""

from __future__ import annotations

import os
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# 시뮬레이션 상수
# ---------------------------------------------------------------------------

OPPORTUNITY_TYPES: list[str] = ["Triangular", "DEX", "Flash Loan"]

TRADE_PATHS: list[str] = [
    "ETH → USDC → WBTC → ETH",
    "ETH → DAI → USDT → ETH",
    "USDT(Uniswap) → USDT(SushiSwap)",
    "WBTC(Uniswap) → WBTC(Balancer)",
    "AAVE → Uniswap → Compound",
    "Maker → Curve → Aave → Maker",
]

# ETH 단위 (min, max)
PROFIT_RANGE: tuple[float, float] = (0.008, 0.045)
GAS_COST_RANGE: tuple[float, float] = (0.003, 0.016)

# 벌크 생성 시 개수 (min, max)
BATCH_SIZE_RANGE: tuple[int, int] = (4, 8)

POLICY_PROFIT_EXCEEDS_GAS = "profit_exceeds_gas"
POLICY_FIXED_PROBABILITY = "fixed_probability"
EXECUTABLE_POLICIES: tuple[str, ...] = (
    POLICY_PROFIT_EXCEEDS_GAS,
    POLICY_FIXED_PROBABILITY,
)


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() not in ("false", "0", "no")


# ---------------------------------------------------------------------------
# BotConfig: 환경변수 + CLI 오버라이드
# ---------------------------------------------------------------------------


@dataclass
class BotConfig:
    """서버 + 자동 실행 설정. 환경변수 또는 기본값."""

    db_path: str = "data/mevdash.db"
    host: str = "127.0.0.1"
    port: int = 5000
    default_target_profit: float = 20.0  # GBP
    base_to_fiat_rate: float = 2650.0  # £ per ETH
    execution_delay: float = 5.0  # seconds
    empty_pool_delay: float = 3.0
    fault_retry_delay: float = 10.0
    io_timeout: float = 10.0
    executable_policy: str = POLICY_PROFIT_EXCEEDS_GAS
    executable_probability: float = 0.7
    seed_demo_data: bool = True

    def __post_init__(self):
        self.execution_delay = max(0.0, self.execution_delay)
        self.fault_retry_delay = max(0.0, self.fault_retry_delay)
        # 빈 풀 대기는 실행 간 대기보다 짧아야 함
        self.empty_pool_delay = min(
            max(0.0, self.empty_pool_delay), self.execution_delay,
        )
        if self.io_timeout <= 0:
            raise ValueError(f"io_timeout must be positive: {self.io_timeout}")
        if not 0.0 <= self.executable_probability <= 1.0:
            raise ValueError(
                f"executable_probability must be in [0, 1]: {self.executable_probability}"
            )
        if self.default_target_profit <= 0:
            raise ValueError(
                f"default_target_profit must be positive: {self.default_target_profit}"
            )
        if self.executable_policy not in EXECUTABLE_POLICIES:
            raise ValueError(f"Unknown executable policy: {self.executable_policy!r}")

    @classmethod
    def from_env(cls) -> BotConfig:
        """환경변수에서 설정 로드. 없으면 안전한 기본값."""
        return cls(
            db_path=os.environ.get("MEVDASH_DB_PATH", "data/mevdash.db"),
            host=os.environ.get("MEVDASH_HOST", "127.0.0.1"),
            port=int(os.environ.get("MEVDASH_PORT", "5000")),
            default_target_profit=float(os.environ.get("MEVDASH_TARGET_PROFIT", "20")),
            base_to_fiat_rate=float(os.environ.get("MEVDASH_ETH_GBP_RATE", "2650")),
            execution_delay=float(os.environ.get("MEVDASH_EXECUTION_DELAY", "5")),
            empty_pool_delay=float(os.environ.get("MEVDASH_EMPTY_POOL_DELAY", "3")),
            fault_retry_delay=float(os.environ.get("MEVDASH_FAULT_RETRY_DELAY", "10")),
            io_timeout=float(os.environ.get("MEVDASH_IO_TIMEOUT", "10")),
            executable_policy=os.environ.get(
                "MEVDASH_EXECUTABLE_POLICY", POLICY_PROFIT_EXCEEDS_GAS,
            ).lower(),
            executable_probability=float(
                os.environ.get("MEVDASH_EXECUTABLE_PROBABILITY", "0.7")
            ),
            seed_demo_data=_env_bool("MEVDASH_SEED_DEMO_DATA", "true"),
        )
