"""SQLite storage for the dashboard — opportunities, transactions, stats, logs.

Single file (default data/mevdash.db). Public methods are coroutines that run
the blocking sqlite3 work on a worker thread (asyncio.to_thread), so store
I/O is a real suspension point and callers can bound it with wait_for.
One connection shared across worker threads, serialized by a lock.

Singleton tables (bot_settings, bot_stats, blockchain_status) keep one row
with id=1.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from mevdash.models.activity import MempoolActivity
from mevdash.models.opportunity import NewOpportunity, Opportunity
from mevdash.models.payload import utc_now
from mevdash.models.status import BlockchainStatus, BotSettings, BotStats
from mevdash.models.transaction import NewTransaction, Transaction, TxStatus

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS bot_settings (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    min_profit_threshold REAL NOT NULL DEFAULT 0.005,
    max_gas_price INTEGER NOT NULL DEFAULT 50,
    strategy TEXT NOT NULL DEFAULT 'arbitrage',
    auto_execute INTEGER NOT NULL DEFAULT 1,
    run_simulations INTEGER NOT NULL DEFAULT 1,
    last_updated TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tx_hash TEXT NOT NULL,
    type TEXT NOT NULL,
    pairs TEXT NOT NULL,
    profit REAL NOT NULL,
    gas_cost REAL NOT NULL,
    status TEXT NOT NULL,
    timestamp TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS opportunities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    type TEXT NOT NULL,
    pairs TEXT NOT NULL,
    estimated_profit REAL NOT NULL,
    estimated_gas_cost REAL NOT NULL,
    is_executable INTEGER NOT NULL,
    identified_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS mempool_activity (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    message TEXT NOT NULL,
    type TEXT NOT NULL,
    timestamp TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS blockchain_status (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    pending_transactions INTEGER NOT NULL,
    gas_price REAL NOT NULL,
    network_congestion TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS bot_stats (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    total_profit REAL NOT NULL DEFAULT 0,
    total_transactions INTEGER NOT NULL DEFAULT 0,
    total_gas_spent REAL NOT NULL DEFAULT 0,
    success_rate REAL NOT NULL DEFAULT 0,
    last_updated TEXT NOT NULL
);
"""

_SETTINGS_COLUMNS = {
    "min_profit_threshold", "max_gas_price", "strategy", "auto_execute", "run_simulations",
}
_STATS_COLUMNS = {"total_profit", "total_transactions", "total_gas_spent", "success_rate"}

# 데모 시드 데이터
DEMO_TRANSACTIONS: list[NewTransaction] = [
    NewTransaction("0x7a8f...3e2d", "Triangular", "ETH → USDC → WBTC → ETH", 0.0213, 0.0041),
    NewTransaction("0x4e2a...9f7b", "DEX", "USDT(Uniswap) → USDT(SushiSwap)", 0.0098, 0.0038),
]
DEMO_STATS = BotStats(
    total_profit=3.45, total_transactions=28, total_gas_spent=0.78, success_rate=92.5,
)
DEMO_BLOCKCHAIN_STATUS = BlockchainStatus(
    pending_transactions=347, gas_price=23.4, network_congestion="Medium",
)


def _dict_factory(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
    return {col[0]: row[i] for i, col in enumerate(cursor.description)}


def _ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _limit_clause(limit: int | None) -> tuple[str, tuple]:
    """None 또는 0이면 제한 없음."""
    if not limit:
        return "", ()
    return " LIMIT ?", (max(0, int(limit)),)


class SqliteStorage:
    """SQLite-backed store for every dashboard entity.

    Args:
        db_path: DB 파일 경로. ":memory:"면 인메모리 DB.
    """

    def __init__(self, db_path: str | Path = "data/mevdash.db") -> None:
        self._db_path = str(db_path)
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = _dict_factory
        self._lock = threading.Lock()
        if self._db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    async def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        """워커 스레드에서 fn 실행 (커넥션 락 보유)."""
        return await asyncio.to_thread(self._locked, fn, *args)

    def _locked(self, fn: Callable[..., Any], *args: Any) -> Any:
        with self._lock:
            return fn(*args)

    # ── Bot settings ──

    async def get_bot_settings(self) -> BotSettings | None:
        return await self._run(self._get_bot_settings)

    async def update_bot_settings(self, update: dict) -> BotSettings:
        """부분 업데이트. 행이 없으면 기본값으로 생성."""
        unknown = set(update) - _SETTINGS_COLUMNS
        if unknown:
            raise ValueError(f"Unknown settings column(s): {sorted(unknown)}")
        return await self._run(self._update_bot_settings, update)

    def _get_bot_settings(self) -> BotSettings | None:
        row = self._conn.execute("SELECT * FROM bot_settings WHERE id = 1").fetchone()
        if row is None:
            return None
        return BotSettings(
            min_profit_threshold=row["min_profit_threshold"],
            max_gas_price=row["max_gas_price"],
            strategy=row["strategy"],
            auto_execute=bool(row["auto_execute"]),
            run_simulations=bool(row["run_simulations"]),
            last_updated=_ts(row["last_updated"]),
        )

    def _update_bot_settings(self, update: dict) -> BotSettings:
        now = utc_now().isoformat()
        with self._conn:
            self._conn.execute(
                "INSERT OR IGNORE INTO bot_settings (id, last_updated) VALUES (1, ?)", (now,),
            )
            assignments = "".join(f"{col} = ?, " for col in update)
            self._conn.execute(
                f"UPDATE bot_settings SET {assignments}last_updated = ? WHERE id = 1",
                tuple(update.values()) + (now,),
            )
        settings = self._get_bot_settings()
        assert settings is not None
        return settings

    # ── Transactions ──

    async def get_transactions(self, limit: int | None = None) -> list[Transaction]:
        return await self._run(self._get_transactions, limit)

    async def add_transaction(self, spec: NewTransaction) -> Transaction:
        """트랜잭션 저장 + bot_stats 증분 업데이트 (같은 SQL 트랜잭션)."""
        return await self._run(self._add_transaction, spec)

    def _get_transactions(self, limit: int | None) -> list[Transaction]:
        clause, params = _limit_clause(limit)
        rows = self._conn.execute(
            "SELECT * FROM transactions ORDER BY id" + clause, params,
        ).fetchall()
        return [self._transaction_from_row(r) for r in rows]

    def _add_transaction(self, spec: NewTransaction) -> Transaction:
        with self._conn:
            tx = self._insert_transaction(spec)
            self._apply_transaction_to_stats(tx)
        return tx

    def _insert_transaction(self, spec: NewTransaction) -> Transaction:
        now = utc_now()
        cur = self._conn.execute(
            "INSERT INTO transactions (tx_hash, type, pairs, profit, gas_cost, status, timestamp) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                spec.tx_hash, spec.type, spec.pairs, spec.profit, spec.gas_cost,
                spec.status.value, now.isoformat(),
            ),
        )
        return Transaction(
            id=cur.lastrowid,
            tx_hash=spec.tx_hash,
            type=spec.type,
            pairs=spec.pairs,
            profit=spec.profit,
            gas_cost=spec.gas_cost,
            status=spec.status,
            timestamp=now,
        )

    def _apply_transaction_to_stats(self, tx: Transaction) -> None:
        # 단일 UPDATE 문으로 read-modify-write 경합 없음
        success = 100.0 if tx.is_confirmed else 0.0
        now = utc_now().isoformat()
        self._conn.execute(
            "INSERT OR IGNORE INTO bot_stats (id, last_updated) VALUES (1, ?)", (now,),
        )
        self._conn.execute(
            "UPDATE bot_stats SET "
            "success_rate = (success_rate * total_transactions + ?) / (total_transactions + 1), "
            "total_transactions = total_transactions + 1, "
            "total_profit = total_profit + ?, "
            "total_gas_spent = total_gas_spent + ?, "
            "last_updated = ? WHERE id = 1",
            (success, tx.profit, tx.gas_cost, now),
        )

    @staticmethod
    def _transaction_from_row(row: dict) -> Transaction:
        return Transaction(
            id=row["id"],
            tx_hash=row["tx_hash"],
            type=row["type"],
            pairs=row["pairs"],
            profit=row["profit"],
            gas_cost=row["gas_cost"],
            status=TxStatus(row["status"]),
            timestamp=_ts(row["timestamp"]),
        )

    # ── Opportunities ──

    async def get_opportunities(self, limit: int | None = None) -> list[Opportunity]:
        """저장 순서 (id 오름차순)."""
        return await self._run(self._get_opportunities, limit)

    async def get_opportunity(self, opportunity_id: int) -> Opportunity | None:
        return await self._run(self._get_opportunity, opportunity_id)

    async def add_opportunity(self, spec: NewOpportunity) -> Opportunity:
        return await self._run(self._add_opportunity, spec)

    async def delete_opportunity(self, opportunity_id: int) -> bool:
        return await self._run(self._delete_opportunity, opportunity_id)

    async def clear_opportunities(self) -> None:
        await self._run(self._execute_write, "DELETE FROM opportunities")

    def _get_opportunities(self, limit: int | None) -> list[Opportunity]:
        clause, params = _limit_clause(limit)
        rows = self._conn.execute(
            "SELECT * FROM opportunities ORDER BY id" + clause, params,
        ).fetchall()
        return [self._opportunity_from_row(r) for r in rows]

    def _get_opportunity(self, opportunity_id: int) -> Opportunity | None:
        row = self._conn.execute(
            "SELECT * FROM opportunities WHERE id = ?", (opportunity_id,),
        ).fetchone()
        return self._opportunity_from_row(row) if row else None

    def _add_opportunity(self, spec: NewOpportunity) -> Opportunity:
        now = utc_now()
        with self._conn:
            cur = self._conn.execute(
                "INSERT INTO opportunities "
                "(type, pairs, estimated_profit, estimated_gas_cost, is_executable, identified_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    spec.type, spec.pairs, spec.estimated_profit, spec.estimated_gas_cost,
                    int(spec.is_executable), now.isoformat(),
                ),
            )
        return Opportunity(
            id=cur.lastrowid,
            type=spec.type,
            pairs=spec.pairs,
            estimated_profit=spec.estimated_profit,
            estimated_gas_cost=spec.estimated_gas_cost,
            is_executable=spec.is_executable,
            identified_at=now,
        )

    def _delete_opportunity(self, opportunity_id: int) -> bool:
        return self._execute_write(
            "DELETE FROM opportunities WHERE id = ?", (opportunity_id,),
        ) > 0

    def _execute_write(self, sql: str, params: tuple = ()) -> int:
        with self._conn:
            cur = self._conn.execute(sql, params)
        return cur.rowcount

    @staticmethod
    def _opportunity_from_row(row: dict) -> Opportunity:
        return Opportunity(
            id=row["id"],
            type=row["type"],
            pairs=row["pairs"],
            estimated_profit=row["estimated_profit"],
            estimated_gas_cost=row["estimated_gas_cost"],
            is_executable=bool(row["is_executable"]),
            identified_at=_ts(row["identified_at"]),
        )

    # ── Mempool activity (log sink) ──

    async def get_mempool_activity(self, limit: int | None = None) -> list[MempoolActivity]:
        return await self._run(self._get_mempool_activity, limit)

    async def add_mempool_activity(self, message: str, type: str) -> MempoolActivity:
        return await self._run(self._add_mempool_activity, message, type)

    async def clear_mempool_activity(self) -> None:
        await self._run(self._execute_write, "DELETE FROM mempool_activity")

    def _get_mempool_activity(self, limit: int | None) -> list[MempoolActivity]:
        clause, params = _limit_clause(limit)
        rows = self._conn.execute(
            "SELECT * FROM mempool_activity ORDER BY id" + clause, params,
        ).fetchall()
        return [
            MempoolActivity(
                id=r["id"], message=r["message"], type=r["type"], timestamp=_ts(r["timestamp"]),
            )
            for r in rows
        ]

    def _add_mempool_activity(self, message: str, type: str) -> MempoolActivity:
        now = utc_now()
        with self._conn:
            cur = self._conn.execute(
                "INSERT INTO mempool_activity (message, type, timestamp) VALUES (?, ?, ?)",
                (message, type, now.isoformat()),
            )
        return MempoolActivity(id=cur.lastrowid, message=message, type=type, timestamp=now)

    # ── Blockchain status ──

    async def get_blockchain_status(self) -> BlockchainStatus | None:
        return await self._run(self._get_blockchain_status)

    async def update_blockchain_status(self, status: BlockchainStatus) -> BlockchainStatus:
        return await self._run(self._update_blockchain_status, status)

    def _get_blockchain_status(self) -> BlockchainStatus | None:
        row = self._conn.execute("SELECT * FROM blockchain_status WHERE id = 1").fetchone()
        if row is None:
            return None
        return BlockchainStatus(
            pending_transactions=row["pending_transactions"],
            gas_price=row["gas_price"],
            network_congestion=row["network_congestion"],
            updated_at=_ts(row["updated_at"]),
        )

    def _update_blockchain_status(self, status: BlockchainStatus) -> BlockchainStatus:
        now = utc_now()
        with self._conn:
            self._conn.execute(
                "INSERT INTO blockchain_status "
                "(id, pending_transactions, gas_price, network_congestion, updated_at) "
                "VALUES (1, ?, ?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET "
                "pending_transactions = excluded.pending_transactions, "
                "gas_price = excluded.gas_price, "
                "network_congestion = excluded.network_congestion, "
                "updated_at = excluded.updated_at",
                (
                    status.pending_transactions, status.gas_price,
                    status.network_congestion, now.isoformat(),
                ),
            )
        return BlockchainStatus(
            pending_transactions=status.pending_transactions,
            gas_price=status.gas_price,
            network_congestion=status.network_congestion,
            updated_at=now,
        )

    # ── Bot stats ──

    async def get_bot_stats(self) -> BotStats | None:
        return await self._run(self._get_bot_stats)

    async def update_bot_stats(self, update: dict) -> BotStats:
        """부분 업데이트. 행이 없으면 0으로 생성."""
        unknown = set(update) - _STATS_COLUMNS
        if unknown:
            raise ValueError(f"Unknown stats column(s): {sorted(unknown)}")
        return await self._run(self._update_bot_stats, update)

    def _get_bot_stats(self) -> BotStats | None:
        row = self._conn.execute("SELECT * FROM bot_stats WHERE id = 1").fetchone()
        if row is None:
            return None
        return BotStats(
            total_profit=row["total_profit"],
            total_transactions=row["total_transactions"],
            total_gas_spent=row["total_gas_spent"],
            success_rate=row["success_rate"],
            last_updated=_ts(row["last_updated"]),
        )

    def _update_bot_stats(self, update: dict) -> BotStats:
        now = utc_now().isoformat()
        with self._conn:
            self._conn.execute(
                "INSERT OR IGNORE INTO bot_stats (id, last_updated) VALUES (1, ?)", (now,),
            )
            assignments = "".join(f"{col} = ?, " for col in update)
            self._conn.execute(
                f"UPDATE bot_stats SET {assignments}last_updated = ? WHERE id = 1",
                tuple(update.values()) + (now,),
            )
        stats = self._get_bot_stats()
        assert stats is not None
        return stats

    # ── Demo data ──

    async def initialize_data(self, demo_opportunities: list[NewOpportunity]) -> bool:
        """빈 DB에 데모 데이터 시드. 이미 설정이 있으면 아무것도 안 함.

        Returns:
            True if demo data was inserted.
        """
        seeded = await self._run(self._initialize_data, demo_opportunities)
        if seeded:
            logger.info(
                "Seeded demo data: %d transactions, %d opportunities",
                len(DEMO_TRANSACTIONS), len(demo_opportunities),
            )
        return seeded

    def _initialize_data(self, demo_opportunities: list[NewOpportunity]) -> bool:
        if self._get_bot_settings() is not None:
            return False

        self._update_bot_settings({})
        self._update_bot_stats({
            "total_profit": DEMO_STATS.total_profit,
            "total_transactions": DEMO_STATS.total_transactions,
            "total_gas_spent": DEMO_STATS.total_gas_spent,
            "success_rate": DEMO_STATS.success_rate,
        })
        self._update_blockchain_status(DEMO_BLOCKCHAIN_STATUS)
        # 시드 트랜잭션은 DEMO_STATS에 이미 포함 → stats 재적용 안 함
        with self._conn:
            for spec in DEMO_TRANSACTIONS:
                self._insert_transaction(spec)
        self._add_mempool_activity("Detected swap: 500 ETH → USDT on Uniswap", "swap")
        for spec in demo_opportunities:
            self._add_opportunity(spec)
        return True
