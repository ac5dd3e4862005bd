"""Transaction (execution record) data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from mevdash.models.payload import (
    InvalidPayload,
    ensure_mapping,
    iso,
    reject_unknown,
    require_number,
    require_str,
)


class TxStatus(Enum):
    """트랜잭션 상태."""

    CONFIRMED = "Confirmed"
    PENDING = "Pending"
    FAILED = "Failed"
    PRICE_CHANGED = "Price Changed"


@dataclass
class NewTransaction:
    """저장 전 트랜잭션."""

    tx_hash: str
    type: str
    pairs: str
    profit: float  # ETH
    gas_cost: float  # ETH
    status: TxStatus = TxStatus.CONFIRMED

    FIELDS = {"txHash", "type", "pairs", "profit", "gasCost", "status"}

    @classmethod
    def from_payload(cls, data) -> NewTransaction:
        """POST /api/transactions body 검증."""
        data = ensure_mapping(data)
        reject_unknown(data, cls.FIELDS)
        status_raw = require_str(data, "status")
        try:
            status = TxStatus(status_raw)
        except ValueError:
            allowed = ", ".join(s.value for s in TxStatus)
            raise InvalidPayload(f"status must be one of: {allowed}") from None
        return cls(
            tx_hash=require_str(data, "txHash"),
            type=require_str(data, "type"),
            pairs=require_str(data, "pairs"),
            # 손실 트랜잭션 허용 (profit < 0)
            profit=require_number(data, "profit"),
            gas_cost=require_number(data, "gasCost", minimum=0.0),
            status=status,
        )


@dataclass
class Transaction:
    """기록된 트랜잭션. 생성 후 불변."""

    id: int
    tx_hash: str
    type: str
    pairs: str
    profit: float
    gas_cost: float
    status: TxStatus
    timestamp: datetime

    @property
    def is_confirmed(self) -> bool:
        return self.status is TxStatus.CONFIRMED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "txHash": self.tx_hash,
            "type": self.type,
            "pairs": self.pairs,
            "profit": self.profit,
            "gasCost": self.gas_cost,
            "status": self.status.value,
            "timestamp": iso(self.timestamp),
        }
