"""Singleton records — bot stats, bot settings, blockchain status.

각 테이블은 한 행만 유지. 부분 업데이트 payload는 column → value dict로 변환.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from mevdash.models.payload import (
    InvalidPayload,
    ensure_mapping,
    iso,
    parse_int,
    parse_number,
    reject_unknown,
    require_int,
    require_number,
    require_str,
)

CONGESTION_LEVELS: tuple[str, ...] = ("Low", "Medium", "High", "Very High")


# ---------------------------------------------------------------------------
# BotStats
# ---------------------------------------------------------------------------


@dataclass
class BotStats:
    """누적 봇 통계 (싱글톤)."""

    total_profit: float = 0.0  # ETH
    total_transactions: int = 0
    total_gas_spent: float = 0.0  # ETH
    success_rate: float = 0.0  # 0-100
    last_updated: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "totalProfit": self.total_profit,
            "totalTransactions": self.total_transactions,
            "totalGasSpent": self.total_gas_spent,
            "successRate": self.success_rate,
            "lastUpdated": iso(self.last_updated),
        }


def parse_stats_update(data) -> dict:
    """POST /api/bot-stats (partial) → column dict."""
    data = ensure_mapping(data)
    reject_unknown(
        data, {"totalProfit", "totalTransactions", "totalGasSpent", "successRate"},
    )
    update: dict = {}
    if "totalProfit" in data:
        update["total_profit"] = parse_number(data["totalProfit"], "totalProfit")
    if "totalTransactions" in data:
        update["total_transactions"] = parse_int(
            data["totalTransactions"], "totalTransactions", minimum=0,
        )
    if "totalGasSpent" in data:
        update["total_gas_spent"] = parse_number(
            data["totalGasSpent"], "totalGasSpent", minimum=0.0,
        )
    if "successRate" in data:
        rate = parse_number(data["successRate"], "successRate", minimum=0.0)
        if rate > 100.0:
            raise InvalidPayload("successRate must be <= 100")
        update["success_rate"] = rate
    return update


# ---------------------------------------------------------------------------
# BotSettings
# ---------------------------------------------------------------------------


@dataclass
class BotSettings:
    """봇 설정 (대시보드 편집용)."""

    min_profit_threshold: float = 0.005  # ETH
    max_gas_price: int = 50  # gwei
    strategy: str = "arbitrage"
    auto_execute: bool = True
    run_simulations: bool = True
    last_updated: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "minProfitThreshold": self.min_profit_threshold,
            "maxGasPrice": self.max_gas_price,
            "strategy": self.strategy,
            "autoExecute": self.auto_execute,
            "runSimulations": self.run_simulations,
            "lastUpdated": iso(self.last_updated),
        }


def parse_settings_update(data) -> dict:
    """POST /api/bot-settings (partial) → column dict."""
    data = ensure_mapping(data)
    reject_unknown(
        data,
        {"minProfitThreshold", "maxGasPrice", "strategy", "autoExecute", "runSimulations"},
    )
    update: dict = {}
    if "minProfitThreshold" in data:
        update["min_profit_threshold"] = parse_number(
            data["minProfitThreshold"], "minProfitThreshold", minimum=0.0,
        )
    if "maxGasPrice" in data:
        update["max_gas_price"] = parse_int(data["maxGasPrice"], "maxGasPrice", minimum=0)
    if "strategy" in data:
        update["strategy"] = require_str(data, "strategy")
    for key, column in (("autoExecute", "auto_execute"), ("runSimulations", "run_simulations")):
        if key in data:
            if not isinstance(data[key], bool):
                raise InvalidPayload(f"{key} must be a boolean")
            update[column] = data[key]
    return update


# ---------------------------------------------------------------------------
# BlockchainStatus
# ---------------------------------------------------------------------------


@dataclass
class BlockchainStatus:
    """네트워크 상태 스냅샷 (시뮬레이션)."""

    pending_transactions: int
    gas_price: float  # gwei
    network_congestion: str
    updated_at: datetime | None = None

    @classmethod
    def from_payload(cls, data) -> BlockchainStatus:
        """POST /api/blockchain-status body 검증 (전체 교체)."""
        data = ensure_mapping(data)
        reject_unknown(data, {"pendingTransactions", "gasPrice", "networkCongestion"})
        congestion = require_str(data, "networkCongestion")
        if congestion not in CONGESTION_LEVELS:
            raise InvalidPayload(
                f"networkCongestion must be one of: {', '.join(CONGESTION_LEVELS)}"
            )
        return cls(
            pending_transactions=require_int(data, "pendingTransactions", minimum=0),
            gas_price=require_number(data, "gasPrice", minimum=0.0),
            network_congestion=congestion,
        )

    def to_dict(self) -> dict:
        return {
            "pendingTransactions": self.pending_transactions,
            "gasPrice": self.gas_price,
            "networkCongestion": self.network_congestion,
            "updatedAt": iso(self.updated_at),
        }
