"""Tests for DashboardRenderer.

콘솔 대시보드 렌더링 테스트.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from mevdash.config import BotConfig
from mevdash.execution.coordinator import ExecutionSnapshot
from mevdash.monitoring.dashboard import DashboardRenderer

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def renderer():
    return DashboardRenderer()


def _snapshot(**overrides) -> ExecutionSnapshot:
    values = dict(
        is_running=True,
        profit=12.5,
        transactions=4,
        start_time=datetime.now(tz=timezone.utc),
        target_profit=20.0,
        percent_complete=62.5,
    )
    values.update(overrides)
    return ExecutionSnapshot(**values)


def _assert_box_aligned(output: str, width: int) -> None:
    for line in output.splitlines():
        assert len(line) == width + 2, line


# ---------------------------------------------------------------------------
# render_startup tests
# ---------------------------------------------------------------------------


class TestRenderStartup:
    def test_contains_listen_address(self, renderer):
        output = renderer.render_startup(BotConfig(host="0.0.0.0", port=8080))
        assert "http://0.0.0.0:8080" in output

    def test_contains_target_and_rate(self, renderer):
        output = renderer.render_startup(BotConfig())
        assert "£20.00" in output
        assert "£2,650" in output

    def test_contains_policy(self, renderer):
        output = renderer.render_startup(BotConfig())
        assert "profit_exceeds_gas" in output

    def test_box_aligned(self, renderer):
        _assert_box_aligned(renderer.render_startup(BotConfig()), renderer.WIDTH)


# ---------------------------------------------------------------------------
# render_status tests
# ---------------------------------------------------------------------------


class TestRenderStatus:
    def test_running(self, renderer):
        output = renderer.render_status(_snapshot())
        assert "RUNNING" in output
        assert "£12.50 / £20.00" in output
        assert "62.5%" in output

    def test_idle(self, renderer):
        output = renderer.render_status(_snapshot(is_running=False, start_time=None))
        assert "IDLE" in output

    def test_transactions(self, renderer):
        output = renderer.render_status(_snapshot(transactions=17))
        assert "17" in output

    def test_box_aligned(self, renderer):
        _assert_box_aligned(renderer.render_status(_snapshot()), renderer.WIDTH)
