"""aiohttp HTTP API for the dashboard.

CRUD endpoints over the SQLite store plus the execution coordinator boundary
(/api/mev/*, /api/execute-opportunity/{id}). JSON in/out with camelCase keys.

에러 매핑:
    InvalidPayload → 400 {"error": ...}
    그 외 예외     → 500 {"error": ...}
    코디네이터 실패 → 200 {"success": false, "message": ...}
"""

from __future__ import annotations

import json
import logging
from typing import Any

from aiohttp import web

from mevdash.config import BotConfig
from mevdash.execution.coordinator import CoordinatorResult, ExecutionCoordinator
from mevdash.execution.executor import ExecutionError
from mevdash.models.activity import parse_activity
from mevdash.models.opportunity import NewOpportunity
from mevdash.models.payload import InvalidPayload, ensure_mapping, parse_int
from mevdash.models.status import (
    BlockchainStatus,
    parse_settings_update,
    parse_stats_update,
)
from mevdash.models.transaction import NewTransaction
from mevdash.monitoring.telegram import TelegramAlerter
from mevdash.storage.sqlite_store import SqliteStorage
from mevdash.strategy.generator import (
    ExecutablePolicy,
    OpportunityGenerator,
    demo_opportunities,
)

logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", BotConfig)
STORE_KEY = web.AppKey("store", SqliteStorage)
GENERATOR_KEY = web.AppKey("generator", OpportunityGenerator)
COORDINATOR_KEY = web.AppKey("coordinator", ExecutionCoordinator)

_FAILURE_STATUS = {
    ExecutionError.NOT_FOUND: 404,
    ExecutionError.NOT_EXECUTABLE: 400,
    ExecutionError.FAILED: 500,
}

routes = web.RouteTableDef()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except InvalidPayload as exc:
        return web.json_response({"error": str(exc)}, status=400)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return web.json_response(
            {"error": f"Failed to handle {request.method} {request.path}"}, status=500,
        )


async def _read_json(request: web.Request, default: Any = None) -> Any:
    """Body JSON 파싱. body가 없으면 default."""
    if not request.body_exists:
        return {} if default is None else default
    try:
        return await request.json()
    except json.JSONDecodeError:
        raise InvalidPayload("Malformed JSON body") from None


def _limit(request: web.Request) -> int | None:
    raw = request.query.get("limit")
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise InvalidPayload("limit must be an integer") from None
    return parse_int(value, "limit", minimum=0)


def _path_id(request: web.Request) -> int:
    try:
        return int(request.match_info["id"])
    except ValueError:
        raise InvalidPayload("id must be an integer") from None


def _dump(item) -> Any:
    return item.to_dict() if item is not None else None


# ---------------------------------------------------------------------------
# MEV automated execution
# ---------------------------------------------------------------------------


@routes.post("/api/mev/start")
async def mev_start(request: web.Request) -> web.Response:
    """코디네이터 경계: 잘못된 body도 {success: false, message} 형태로 응답."""
    try:
        body = ensure_mapping(await _read_json(request))
    except InvalidPayload as exc:
        return web.json_response(CoordinatorResult(success=False, message=str(exc)).to_dict())
    result = await request.app[COORDINATOR_KEY].start(body.get("targetProfit"))
    return web.json_response(result.to_dict())


@routes.post("/api/mev/stop")
async def mev_stop(request: web.Request) -> web.Response:
    result = await request.app[COORDINATOR_KEY].stop()
    return web.json_response(result.to_dict())


@routes.get("/api/mev/status")
async def mev_status(request: web.Request) -> web.Response:
    return web.json_response(request.app[COORDINATOR_KEY].status().to_dict())


@routes.post("/api/execute-opportunity/{id}")
async def execute_opportunity(request: web.Request) -> web.Response:
    outcome = await request.app[COORDINATOR_KEY].execute_opportunity(_path_id(request))
    if outcome.success:
        return web.json_response(outcome.to_dict())
    data = outcome.to_dict()
    data["error"] = outcome.message
    return web.json_response(data, status=_FAILURE_STATUS[outcome.error])


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


@routes.get("/api/bot-settings")
async def get_bot_settings(request: web.Request) -> web.Response:
    return web.json_response(_dump(await request.app[STORE_KEY].get_bot_settings()))


@routes.post("/api/bot-settings")
async def update_bot_settings(request: web.Request) -> web.Response:
    update = parse_settings_update(await _read_json(request))
    settings = await request.app[STORE_KEY].update_bot_settings(update)
    return web.json_response(settings.to_dict())


@routes.get("/api/transactions")
async def get_transactions(request: web.Request) -> web.Response:
    txs = await request.app[STORE_KEY].get_transactions(_limit(request))
    return web.json_response([tx.to_dict() for tx in txs])


@routes.post("/api/transactions")
async def add_transaction(request: web.Request) -> web.Response:
    spec = NewTransaction.from_payload(await _read_json(request))
    tx = await request.app[STORE_KEY].add_transaction(spec)
    return web.json_response(tx.to_dict())


@routes.get("/api/opportunities")
async def get_opportunities(request: web.Request) -> web.Response:
    opps = await request.app[STORE_KEY].get_opportunities(_limit(request))
    return web.json_response([o.to_dict() for o in opps])


@routes.post("/api/opportunities")
async def add_opportunity(request: web.Request) -> web.Response:
    spec = NewOpportunity.from_payload(await _read_json(request))
    opp = await request.app[STORE_KEY].add_opportunity(spec)
    return web.json_response(opp.to_dict())


@routes.delete("/api/opportunities/{id}")
async def delete_opportunity(request: web.Request) -> web.Response:
    if await request.app[STORE_KEY].delete_opportunity(_path_id(request)):
        return web.json_response({"success": True})
    return web.json_response({"error": "Opportunity not found"}, status=404)


@routes.get("/api/mempool-activity")
async def get_mempool_activity(request: web.Request) -> web.Response:
    rows = await request.app[STORE_KEY].get_mempool_activity(_limit(request))
    return web.json_response([r.to_dict() for r in rows])


@routes.post("/api/mempool-activity")
async def add_mempool_activity(request: web.Request) -> web.Response:
    message, type_ = parse_activity(await _read_json(request))
    row = await request.app[STORE_KEY].add_mempool_activity(message, type_)
    return web.json_response(row.to_dict())


@routes.get("/api/blockchain-status")
async def get_blockchain_status(request: web.Request) -> web.Response:
    return web.json_response(_dump(await request.app[STORE_KEY].get_blockchain_status()))


@routes.post("/api/blockchain-status")
async def update_blockchain_status(request: web.Request) -> web.Response:
    status = BlockchainStatus.from_payload(await _read_json(request))
    saved = await request.app[STORE_KEY].update_blockchain_status(status)
    return web.json_response(saved.to_dict())


@routes.get("/api/bot-stats")
async def get_bot_stats(request: web.Request) -> web.Response:
    return web.json_response(_dump(await request.app[STORE_KEY].get_bot_stats()))


@routes.post("/api/bot-stats")
async def update_bot_stats(request: web.Request) -> web.Response:
    update = parse_stats_update(await _read_json(request))
    stats = await request.app[STORE_KEY].update_bot_stats(update)
    return web.json_response(stats.to_dict())


# ---------------------------------------------------------------------------
# Simulation helpers (demo)
# ---------------------------------------------------------------------------


@routes.post("/api/simulate/generate-opportunities")
async def simulate_generate_opportunities(request: web.Request) -> web.Response:
    """기존 기회 삭제 후 벌크 생성. body: {count?, policy?}."""
    body = ensure_mapping(await _read_json(request))
    generator = request.app[GENERATOR_KEY]

    if "policy" in body:
        try:
            policy = ExecutablePolicy(body["policy"])
        except ValueError:
            allowed = ", ".join(p.value for p in ExecutablePolicy)
            raise InvalidPayload(f"policy must be one of: {allowed}") from None
        generator = OpportunityGenerator(
            policy=policy,
            executable_probability=request.app[CONFIG_KEY].executable_probability,
        )
    count = parse_int(body["count"], "count", minimum=1) if "count" in body else None

    store = request.app[STORE_KEY]
    await store.clear_opportunities()
    created = [await store.add_opportunity(spec) for spec in generator.generate_batch(count)]
    return web.json_response({
        "success": True,
        "count": len(created),
        "opportunities": [o.to_dict() for o in created],
    })


@routes.post("/api/simulate/mempool-events")
async def simulate_mempool_events(request: web.Request) -> web.Response:
    message, type_ = request.app[GENERATOR_KEY].simulate_mempool_event()
    row = await request.app[STORE_KEY].add_mempool_activity(message, type_)
    return web.json_response({"success": True, "activity": row.to_dict()})


@routes.post("/api/simulate/blockchain-status")
async def simulate_blockchain_status(request: web.Request) -> web.Response:
    status = request.app[GENERATOR_KEY].simulate_blockchain_status()
    saved = await request.app[STORE_KEY].update_blockchain_status(status)
    return web.json_response({"success": True, "status": saved.to_dict()})


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


async def _seed_demo_data(app: web.Application) -> None:
    if app[CONFIG_KEY].seed_demo_data:
        await app[STORE_KEY].initialize_data(demo_opportunities())


async def _shutdown(app: web.Application) -> None:
    await app[COORDINATOR_KEY].shutdown()
    app[STORE_KEY].close()


def create_app(
    config: BotConfig | None = None,
    store: SqliteStorage | None = None,
    generator: OpportunityGenerator | None = None,
    alerter: TelegramAlerter | None = None,
) -> web.Application:
    """앱 생성. 코디네이터는 여기서 한 번만 만들어 앱에 보관."""
    config = config or BotConfig()
    store = store or SqliteStorage(config.db_path)
    generator = generator or OpportunityGenerator(
        policy=ExecutablePolicy(config.executable_policy),
        executable_probability=config.executable_probability,
    )
    coordinator = ExecutionCoordinator(
        store, config=config, generator=generator, alerter=alerter,
    )

    app = web.Application(middlewares=[error_middleware])
    app[CONFIG_KEY] = config
    app[STORE_KEY] = store
    app[GENERATOR_KEY] = generator
    app[COORDINATOR_KEY] = coordinator
    app.add_routes(routes)
    app.on_startup.append(_seed_demo_data)
    app.on_cleanup.append(_shutdown)
    return app
