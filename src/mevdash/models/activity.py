"""Mempool activity (log sink row)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from mevdash.models.payload import ensure_mapping, iso, reject_unknown, require_str


@dataclass
class MempoolActivity:
    """대시보드 로그 한 줄."""

    id: int
    message: str
    type: str  # swap, execution, system
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "message": self.message,
            "type": self.type,
            "timestamp": iso(self.timestamp),
        }


def parse_activity(data) -> tuple[str, str]:
    """POST /api/mempool-activity body → (message, type)."""
    data = ensure_mapping(data)
    reject_unknown(data, {"message", "type"})
    return require_str(data, "message"), require_str(data, "type")
