"""Opportunity ranking and best-candidate selection."""

from __future__ import annotations

from typing import Iterable, Optional

from mevdash.models.opportunity import Opportunity


def executable_only(opportunities: Iterable[Opportunity]) -> list[Opportunity]:
    """is_executable=True만 (순서 유지)."""
    return [o for o in opportunities if o.is_executable]


def rank_opportunities(opportunities: list[Opportunity]) -> list[Opportunity]:
    """net profit 내림차순 정렬. 동점은 입력 순서 유지 (stable).

    Returns new list (원본 불변).
    """
    return sorted(opportunities, key=lambda o: o.net_profit, reverse=True)


def select_best(opportunities: list[Opportunity]) -> Optional[Opportunity]:
    """최대 net profit 기회. 동점이면 먼저 나온 것. 빈 리스트면 None."""
    ranked = rank_opportunities(opportunities)
    return ranked[0] if ranked else None
