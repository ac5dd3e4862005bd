"""Dashboard server entry point.

Usage:
    python -m mevdash
    python -m mevdash --port 8080 --target 50
    python -m mevdash --policy fixed_probability --no-seed
"""

from __future__ import annotations

import argparse
import logging

from aiohttp import web

from mevdash.api.server import COORDINATOR_KEY, create_app
from mevdash.config import EXECUTABLE_POLICIES, BotConfig
from mevdash.monitoring.dashboard import DashboardRenderer
from mevdash.monitoring.telegram import TelegramAlerter

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """커맨드라인 인자 파싱."""
    parser = argparse.ArgumentParser(
        prog="mevdash",
        description="MEV bot simulation dashboard",
    )
    parser.add_argument("--host", type=str, default=None, help="Bind address")
    parser.add_argument("--port", type=int, default=None, help="Listen port")
    parser.add_argument("--db", type=str, default=None, help="SQLite database path")
    parser.add_argument(
        "--target", type=float, default=None,
        help="Default target profit in GBP for automated runs",
    )
    parser.add_argument(
        "--policy", type=str, default=None, choices=list(EXECUTABLE_POLICIES),
        help="Rule deciding whether generated opportunities are executable",
    )
    parser.add_argument(
        "--no-seed", action="store_true", default=False,
        help="Do not seed demo data into an empty database",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> BotConfig:
    """환경변수 설정 위에 CLI 인자 적용."""
    config = BotConfig.from_env()
    overrides = {
        "host": args.host,
        "port": args.port,
        "db_path": args.db,
        "default_target_profit": args.target,
        "executable_policy": args.policy,
    }
    values = dict(vars(config))
    values.update({k: v for k, v in overrides.items() if v is not None})
    if args.no_seed:
        values["seed_demo_data"] = False
    # __post_init__ 검증을 다시 거침
    return BotConfig(**values)


def cli_main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config = build_config(parse_args(argv))
    renderer = DashboardRenderer()
    alerter = TelegramAlerter.from_env()

    print(renderer.render_startup(config))
    print(f"Telegram alerts: {'ON' if alerter.enabled else 'OFF'}")

    app = create_app(config, alerter=alerter)

    async def _print_final_status(app: web.Application) -> None:
        print(renderer.render_status(app[COORDINATOR_KEY].status()))

    app.on_shutdown.append(_print_final_status)
    web.run_app(app, host=config.host, port=config.port)


if __name__ == "__main__":
    cli_main()
