"""JSON payload validation helpers.

요청 body (dict) 필드 검증. 실패 시 InvalidPayload (ValueError).
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any


class InvalidPayload(ValueError):
    """요청 데이터 검증 실패."""


def ensure_mapping(data: Any) -> dict:
    if not isinstance(data, dict):
        raise InvalidPayload("Request body must be a JSON object")
    return data


def require_str(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InvalidPayload(f"{key} must be a non-empty string")
    return value


def require_number(data: dict, key: str, minimum: float | None = None) -> float:
    """숫자 필드. Decimal 문자열 ("0.0213")도 허용, bool은 거부."""
    if key not in data:
        raise InvalidPayload(f"{key} is required")
    return parse_number(data[key], key, minimum=minimum)


def parse_number(value: Any, key: str, minimum: float | None = None) -> float:
    if isinstance(value, bool):
        raise InvalidPayload(f"{key} must be a number")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            raise InvalidPayload(f"{key} must be a number") from None
    else:
        raise InvalidPayload(f"{key} must be a number")
    if not math.isfinite(number):
        raise InvalidPayload(f"{key} must be finite")
    if minimum is not None and number < minimum:
        raise InvalidPayload(f"{key} must be >= {minimum}")
    return number


def require_int(data: dict, key: str, minimum: int | None = None) -> int:
    if key not in data:
        raise InvalidPayload(f"{key} is required")
    return parse_int(data[key], key, minimum=minimum)


def parse_int(value: Any, key: str, minimum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidPayload(f"{key} must be an integer")
    if minimum is not None and value < minimum:
        raise InvalidPayload(f"{key} must be >= {minimum}")
    return value


def require_bool(data: dict, key: str) -> bool:
    value = data.get(key)
    if not isinstance(value, bool):
        raise InvalidPayload(f"{key} must be a boolean")
    return value


def reject_unknown(data: dict, allowed: set[str]) -> None:
    unknown = set(data) - allowed
    if unknown:
        raise InvalidPayload(f"Unknown field(s): {', '.join(sorted(unknown))}")


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
