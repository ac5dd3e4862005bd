"""Tests for opportunity ranking and selection."""

from __future__ import annotations

from datetime import datetime, timezone

from mevdash.models.opportunity import Opportunity
from mevdash.strategy.selection import executable_only, rank_opportunities, select_best


def _opp(id: int, profit: float, gas: float = 0.0, executable: bool = True) -> Opportunity:
    return Opportunity(
        id=id, type="DEX", pairs="p", estimated_profit=profit,
        estimated_gas_cost=gas, is_executable=executable,
        identified_at=datetime.now(tz=timezone.utc),
    )


class TestSelectBest:
    def test_highest_net_profit_first_on_tie(self):
        opps = [_opp(1, 5), _opp(2, 9), _opp(3, 9), _opp(4, 2)]
        assert select_best(opps).id == 2

    def test_net_profit_not_gross(self):
        opps = [_opp(1, 0.04, gas=0.035), _opp(2, 0.02, gas=0.001)]
        assert select_best(opps).id == 2

    def test_empty(self):
        assert select_best([]) is None

    def test_after_filter_nothing_left(self):
        opps = [_opp(1, 0.05, executable=False)]
        assert select_best(executable_only(opps)) is None


class TestRanking:
    def test_rank_descending_and_stable(self):
        opps = [_opp(1, 1), _opp(2, 3), _opp(3, 1), _opp(4, 3)]
        assert [o.id for o in rank_opportunities(opps)] == [2, 4, 1, 3]

    def test_rank_does_not_mutate(self):
        opps = [_opp(1, 1), _opp(2, 3)]
        rank_opportunities(opps)
        assert [o.id for o in opps] == [1, 2]

    def test_executable_only_keeps_order(self):
        opps = [_opp(1, 1), _opp(2, 2, executable=False), _opp(3, 3)]
        assert [o.id for o in executable_only(opps)] == [1, 3]
