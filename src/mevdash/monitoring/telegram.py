"""Telegram Bot API alerts.

자동 실행 시작/목표 달성/에러 알림 전송.
봇 토큰 미설정 시 모든 메서드가 no-op (크래시 없음).
"""

from __future__ import annotations

import logging
import os

import aiohttp

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramAlerter:
    """Telegram 알림 발송기.

    Args:
        bot_token: Telegram Bot API 토큰. None이면 비활성.
        chat_id: 메시지 대상 채팅 ID. None이면 비활성.
    """

    def __init__(
        self,
        bot_token: str | None = None,
        chat_id: str | None = None,
    ):
        self._bot_token = bot_token
        self._chat_id = chat_id

    @classmethod
    def from_env(cls) -> TelegramAlerter:
        """환경변수에서 생성."""
        return cls(
            bot_token=os.environ.get("TELEGRAM_BOT_TOKEN"),
            chat_id=os.environ.get("TELEGRAM_CHAT_ID"),
        )

    @property
    def enabled(self) -> bool:
        """토큰과 chat_id 모두 설정됐을 때만 활성."""
        return bool(self._bot_token and self._chat_id)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def alert_run_started(self, target_profit: float) -> None:
        """자동 실행 시작 알림."""
        if not self.enabled:
            return
        try:
            await self._send_message(
                f"🟢 <b>MEV Execution Started</b>\n"
                f"Target profit: £{target_profit:.2f}"
            )
        except Exception as exc:
            logger.error("Failed to send start alert: %s", exc)

    async def alert_target_reached(
        self, profit: float, target_profit: float, transactions: int,
    ) -> None:
        """목표 수익 달성 알림."""
        if not self.enabled:
            return
        try:
            await self._send_message(
                f"✅ <b>Target Reached</b>\n"
                f"{'━' * 24}\n"
                f"Profit: <b>£{profit:.2f}</b> / £{target_profit:.2f}\n"
                f"Transactions: {transactions}"
            )
        except Exception as exc:
            logger.error("Failed to send target alert: %s", exc)

    async def alert_error(self, message: str, level: str = "error") -> None:
        """에러/경고 알림."""
        if not self.enabled:
            return
        try:
            emoji = "🚨" if level == "error" else "⚠️"
            await self._send_message(f"{emoji} <b>{level.upper()}</b>\n{message}")
        except Exception as exc:
            logger.error("Failed to send error alert: %s", exc)

    # ------------------------------------------------------------------
    # Internal: HTTP
    # ------------------------------------------------------------------

    async def _send_message(self, text: str, parse_mode: str = "HTML") -> None:
        """Telegram sendMessage API 호출."""
        url = f"{TELEGRAM_API_URL}/bot{self._bot_token}/sendMessage"
        payload = {
            "chat_id": self._chat_id,
            "text": text,
            "parse_mode": parse_mode,
        }
        async with aiohttp.ClientSession() as session:
            async with session.post(url, json=payload) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    logger.warning("Telegram API %d: %s", resp.status, body[:200])
