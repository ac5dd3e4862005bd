"""Opportunity data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from mevdash.models.payload import (
    ensure_mapping,
    iso,
    reject_unknown,
    require_bool,
    require_number,
    require_str,
)


@dataclass
class NewOpportunity:
    """저장 전 기회 (id/identified_at은 스토어가 부여)."""

    type: str
    pairs: str
    estimated_profit: float  # ETH
    estimated_gas_cost: float  # ETH
    is_executable: bool

    FIELDS = {"type", "pairs", "estimatedProfit", "estimatedGasCost", "isExecutable"}

    @classmethod
    def from_payload(cls, data) -> NewOpportunity:
        """POST /api/opportunities body 검증."""
        data = ensure_mapping(data)
        reject_unknown(data, cls.FIELDS)
        return cls(
            type=require_str(data, "type"),
            pairs=require_str(data, "pairs"),
            estimated_profit=require_number(data, "estimatedProfit", minimum=0.0),
            estimated_gas_cost=require_number(data, "estimatedGasCost", minimum=0.0),
            is_executable=require_bool(data, "isExecutable"),
        )

    @property
    def net_profit(self) -> float:
        return self.estimated_profit - self.estimated_gas_cost


@dataclass
class Opportunity:
    """저장된 아비트라지 기회 (시뮬레이션)."""

    id: int
    type: str
    pairs: str
    estimated_profit: float
    estimated_gas_cost: float
    is_executable: bool
    identified_at: datetime

    @property
    def net_profit(self) -> float:
        """랭킹 키: estimated_profit - estimated_gas_cost."""
        return self.estimated_profit - self.estimated_gas_cost

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "pairs": self.pairs,
            "estimatedProfit": self.estimated_profit,
            "estimatedGasCost": self.estimated_gas_cost,
            "isExecutable": self.is_executable,
            "identifiedAt": iso(self.identified_at),
        }
