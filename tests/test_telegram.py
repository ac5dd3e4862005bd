"""Tests for Telegram alerts.

TelegramAlerter — 실행 시작/목표 달성/에러 알림 + no-op 모드.
"""

from __future__ import annotations

import re
from unittest.mock import AsyncMock, patch

import pytest
from aioresponses import aioresponses

from mevdash.monitoring.telegram import TelegramAlerter

SEND_PATTERN = re.compile(r"^https://api\.telegram\.org/bot.*/sendMessage$")

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def alerter():
    """Configured TelegramAlerter with mock tokens."""
    return TelegramAlerter(bot_token="fake_token", chat_id="12345")


@pytest.fixture
def disabled_alerter():
    """Disabled TelegramAlerter (no tokens)."""
    return TelegramAlerter()


# ---------------------------------------------------------------------------
# Enabled/disabled tests
# ---------------------------------------------------------------------------


class TestTelegramAlerterEnabled:
    def test_enabled_with_tokens(self, alerter):
        assert alerter.enabled is True

    def test_disabled_without_tokens(self, disabled_alerter):
        assert disabled_alerter.enabled is False

    def test_disabled_with_only_bot_token(self):
        assert TelegramAlerter(bot_token="token").enabled is False

    def test_disabled_with_only_chat_id(self):
        assert TelegramAlerter(chat_id="123").enabled is False

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "t")
        monkeypatch.setenv("TELEGRAM_CHAT_ID", "c")
        assert TelegramAlerter.from_env().enabled is True

    def test_from_env_missing(self, monkeypatch):
        monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
        monkeypatch.delenv("TELEGRAM_CHAT_ID", raising=False)
        assert TelegramAlerter.from_env().enabled is False


# ---------------------------------------------------------------------------
# No-op when disabled
# ---------------------------------------------------------------------------


class TestTelegramNoOp:
    @pytest.mark.asyncio
    async def test_alert_run_started_noop(self, disabled_alerter):
        with patch.object(disabled_alerter, "_send_message", new_callable=AsyncMock) as mock_send:
            await disabled_alerter.alert_run_started(20.0)
            mock_send.assert_not_called()

    @pytest.mark.asyncio
    async def test_alert_target_reached_noop(self, disabled_alerter):
        await disabled_alerter.alert_target_reached(25.0, 20.0, 1)

    @pytest.mark.asyncio
    async def test_alert_error_noop(self, disabled_alerter):
        await disabled_alerter.alert_error("test error")


# ---------------------------------------------------------------------------
# Message formatting tests
# ---------------------------------------------------------------------------


class TestTelegramFormatting:
    @pytest.mark.asyncio
    async def test_run_started_message(self, alerter):
        with patch.object(alerter, "_send_message", new_callable=AsyncMock) as mock_send:
            await alerter.alert_run_started(20.0)
            mock_send.assert_called_once()
            text = mock_send.call_args[0][0]
            assert "Started" in text
            assert "£20.00" in text

    @pytest.mark.asyncio
    async def test_target_reached_message(self, alerter):
        with patch.object(alerter, "_send_message", new_callable=AsyncMock) as mock_send:
            await alerter.alert_target_reached(25.0, 20.0, 3)
            text = mock_send.call_args[0][0]
            assert "✅" in text
            assert "£25.00" in text
            assert "Transactions: 3" in text

    @pytest.mark.asyncio
    async def test_error_message(self, alerter):
        with patch.object(alerter, "_send_message", new_callable=AsyncMock) as mock_send:
            await alerter.alert_error("store unavailable")
            text = mock_send.call_args[0][0]
            assert "🚨" in text
            assert "store unavailable" in text

    @pytest.mark.asyncio
    async def test_warning_level(self, alerter):
        with patch.object(alerter, "_send_message", new_callable=AsyncMock) as mock_send:
            await alerter.alert_error("slow", level="warning")
            text = mock_send.call_args[0][0]
            assert "⚠️" in text
            assert "WARNING" in text


# ---------------------------------------------------------------------------
# HTTP behaviour
# ---------------------------------------------------------------------------


class TestTelegramHttp:
    @pytest.mark.asyncio
    async def test_send_posts_to_bot_api(self, alerter):
        with aioresponses() as m:
            m.post(SEND_PATTERN, status=200, payload={"ok": True})
            await alerter.alert_run_started(20.0)
            assert len(m.requests) == 1

    @pytest.mark.asyncio
    async def test_api_error_does_not_raise(self, alerter):
        with aioresponses() as m:
            m.post(SEND_PATTERN, status=500, body="boom")
            await alerter.alert_error("x")

    @pytest.mark.asyncio
    async def test_send_exception_is_swallowed(self, alerter):
        with patch.object(
            alerter, "_send_message", new_callable=AsyncMock, side_effect=RuntimeError("net"),
        ):
            # Should not raise
            await alerter.alert_target_reached(25.0, 20.0, 1)
