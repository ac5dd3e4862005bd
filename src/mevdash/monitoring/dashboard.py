"""Console dashboard renderer.

박스 그리기 문자 (═║╔╗╚╝)로 시작 배너 + 실행 상태 표시.
"""

from __future__ import annotations

from datetime import datetime, timezone

from mevdash.config import BotConfig
from mevdash.execution.coordinator import ExecutionSnapshot


class DashboardRenderer:
    """콘솔 대시보드 렌더링."""

    WIDTH = 52

    def render_startup(self, config: BotConfig) -> str:
        """시작 배너 — 서버 주소 + 실행 파라미터."""
        w = self.WIDTH
        rows = {
            "Listening": f"http://{config.host}:{config.port}",
            "Database": config.db_path,
            "Default target": f"£{config.default_target_profit:.2f}",
            "ETH/GBP rate": f"£{config.base_to_fiat_rate:,.0f}",
            "Exec delay": f"{config.execution_delay:g}s",
            "Exec policy": config.executable_policy,
        }

        lines = [
            f"╔{'═' * w}╗",
            f"║{'mevdash — MEV Bot Simulation Dashboard':^{w}}║",
            f"╠{'═' * w}╣",
        ]
        for label, value in rows.items():
            lines.append(f"║  {label + ':':<16} {value:<{w - 20}} ║")
        lines.append(f"╚{'═' * w}╝")
        return "\n".join(lines)

    def render_status(self, snapshot: ExecutionSnapshot) -> str:
        """실행 상태 박스."""
        w = self.WIDTH
        now = datetime.now(tz=timezone.utc).strftime("%H:%M:%S UTC")
        state = "RUNNING" if snapshot.is_running else "IDLE"
        progress = f"£{snapshot.profit:.2f} / £{snapshot.target_profit:.2f}"

        lines = [
            f"╔{'═' * w}╗",
            f"║  {state:<20} {now:>27}  ║",
            f"╠{'═' * w}╣",
            f"║  Progress:     {progress:<35} ║",
            f"║  Complete:     {snapshot.percent_complete:<34.1f}% ║",
            f"║  Transactions: {snapshot.transactions:<35} ║",
            f"╚{'═' * w}╝",
        ]
        return "\n".join(lines)
