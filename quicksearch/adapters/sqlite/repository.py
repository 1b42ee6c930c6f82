"""
SQLite Repository - Storage behind every quick search source and store.

Features:
- Async operations via aiosqlite
- Structured records and accounts searched by substring
- Discovered dashboard items with found/used timestamps
- Crawl metadata per source page
- One JSON recency ledger per actor
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import aiosqlite

from quicksearch.config.errors import ErrorCode, StorageError
from quicksearch.domains.crawl.models import (
    CrawlRecord,
    CrawlRecordUpdate,
    CrawlUpdateResult,
    DashboardUsage,
    DiscoveredItem,
    RecordError,
)

logger = logging.getLogger(__name__)

__all__ = ["SQLiteRepository"]

DAY_IN_SECONDS = 24 * 3600


def _like(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def _decode_json(raw: str | None, default: Any) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        return default


@contextmanager
def _wrap_errors(
    message: str,
    code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
    **details: Any,
) -> Iterator[None]:
    try:
        yield
    except aiosqlite.Error as e:
        raise StorageError(f"{message}: {e}", details, code=code) from e


class SQLiteRepository:
    """
    SQLite repository for quick search data.

    Example:
        >>> repo = SQLiteRepository("data/quicksearch.db")
        >>> await repo.initialize()
        >>> record_id = await repo.insert_record("Quarterly invoice", content_type="invoice")
        >>> rows = await repo.search_records("invoice")
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Initialize repository.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection: aiosqlite.Connection | None = None

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._connection is None:
            with _wrap_errors("Could not open database", ErrorCode.STORAGE_CONNECTION_FAILED):
                self._connection = await aiosqlite.connect(str(self.db_path))
            self._connection.row_factory = aiosqlite.Row
        return self._connection

    async def initialize(self) -> None:
        """Initialize database schema."""
        conn = await self._get_connection()

        with _wrap_errors("Could not create schema", ErrorCode.STORAGE_WRITE_FAILED):
            await conn.executescript("""
                -- Structured records
                CREATE TABLE IF NOT EXISTS records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT,
                    content_type TEXT NOT NULL DEFAULT 'record',
                    status TEXT NOT NULL DEFAULT 'publish',
                    modified_at INTEGER NOT NULL
                );

                -- User accounts
                CREATE TABLE IF NOT EXISTS accounts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    login TEXT NOT NULL UNIQUE,
                    display_name TEXT,
                    email TEXT,
                    updated_at INTEGER NOT NULL
                );

                -- Dashboard items discovered by the client crawler
                CREATE TABLE IF NOT EXISTS qs_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source_page TEXT NOT NULL,
                    relative_id TEXT NOT NULL,
                    label TEXT NOT NULL,
                    location TEXT,
                    target TEXT,
                    rendered_on_page TEXT,
                    found_at INTEGER,
                    used_at INTEGER,
                    UNIQUE (source_page, relative_id)
                );

                -- Crawl metadata per source page
                CREATE TABLE IF NOT EXISTS qs_crawler (
                    source_page TEXT PRIMARY KEY,
                    last_crawled_at INTEGER NOT NULL,
                    crawl_interval_days INTEGER,
                    updated_at INTEGER NOT NULL
                );

                -- Recently used item refs, one JSON object per actor
                CREATE TABLE IF NOT EXISTS qs_recent_items (
                    actor_id INTEGER PRIMARY KEY,
                    items TEXT NOT NULL,
                    updated_at INTEGER NOT NULL
                );

                -- Next due time of scheduled maintenance jobs
                CREATE TABLE IF NOT EXISTS qs_maintenance (
                    job TEXT PRIMARY KEY,
                    run_at INTEGER NOT NULL
                );

                -- Indexes
                CREATE INDEX IF NOT EXISTS idx_records_modified ON records(modified_at);
                CREATE INDEX IF NOT EXISTS idx_accounts_updated ON accounts(updated_at);
                CREATE INDEX IF NOT EXISTS idx_qs_items_found ON qs_items(found_at);
                CREATE INDEX IF NOT EXISTS idx_qs_items_used ON qs_items(used_at);
            """)
            await conn.commit()

        logger.info("Database initialized: %s", self.db_path)

    # ------------------------------------------------------------------
    # Records and accounts
    # ------------------------------------------------------------------

    async def insert_record(
        self,
        title: str | None,
        content_type: str = "record",
        status: str = "publish",
        modified_at: int | None = None,
    ) -> int:
        """
        Insert a record.

        Returns:
            Record ID
        """
        conn = await self._get_connection()

        with _wrap_errors("Could not insert record", ErrorCode.STORAGE_WRITE_FAILED):
            cursor = await conn.execute(
                """
                INSERT INTO records (title, content_type, status, modified_at)
                VALUES (?, ?, ?, ?)
                """,
                (title, content_type, status, modified_at or int(time.time())),
            )
            await conn.commit()
        return cursor.lastrowid

    async def insert_account(
        self,
        login: str,
        display_name: str | None = None,
        email: str | None = None,
        updated_at: int | None = None,
    ) -> int:
        """
        Insert an account.

        Returns:
            Account ID
        """
        conn = await self._get_connection()

        with _wrap_errors("Could not insert account", ErrorCode.STORAGE_WRITE_FAILED):
            cursor = await conn.execute(
                """
                INSERT INTO accounts (login, display_name, email, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (login, display_name, email, updated_at or int(time.time())),
            )
            await conn.commit()
        return cursor.lastrowid

    async def search_records(
        self,
        query: str,
        limit: int = 20,
        excluded_types: Sequence[str] = (),
        ids: Sequence[int] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Records whose title contains the query, most recently modified first.

        An empty query matches every record.
        """
        conditions = ["status != 'trash'"]
        params: list[Any] = []
        if query:
            conditions.append("title LIKE ? ESCAPE '\\'")
            params.append(_like(query))
        if excluded_types:
            conditions.append(f"content_type NOT IN ({_placeholders(len(excluded_types))})")
            params.extend(excluded_types)
        if ids is not None:
            if not ids:
                return []
            conditions.append(f"id IN ({_placeholders(len(ids))})")
            params.extend(ids)

        sql = f"""
            SELECT id, title, content_type, status, modified_at
            FROM records
            WHERE {" AND ".join(conditions)}
            ORDER BY modified_at DESC, id DESC
            LIMIT ?
        """
        return await self._fetch_all(sql, (*params, limit), "Could not search records")

    async def search_accounts(
        self,
        query: str,
        limit: int = 20,
        ids: Sequence[int] | None = None,
    ) -> list[dict[str, Any]]:
        """Accounts whose display name or login contains the query."""
        conditions = ["1 = 1"]
        params: list[Any] = []
        if query:
            conditions.append("(display_name LIKE ? ESCAPE '\\' OR login LIKE ? ESCAPE '\\')")
            params.extend([_like(query), _like(query)])
        if ids is not None:
            if not ids:
                return []
            conditions.append(f"id IN ({_placeholders(len(ids))})")
            params.extend(ids)

        sql = f"""
            SELECT id, login, display_name, email, updated_at
            FROM accounts
            WHERE {" AND ".join(conditions)}
            ORDER BY updated_at DESC, id DESC
            LIMIT ?
        """
        return await self._fetch_all(sql, (*params, limit), "Could not search accounts")

    # ------------------------------------------------------------------
    # Dashboard items
    # ------------------------------------------------------------------

    async def search_dashboard_items(
        self,
        query: str,
        source_pages: Sequence[str],
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        """Items on the given pages, most recently used or found first."""
        if not source_pages:
            return []

        conditions = [f"source_page IN ({_placeholders(len(source_pages))})"]
        params: list[Any] = list(source_pages)
        if query:
            conditions.append("label LIKE ? ESCAPE '\\'")
            params.append(_like(query))

        sql = f"""
            SELECT * FROM qs_items
            WHERE {" AND ".join(conditions)}
            ORDER BY MAX(COALESCE(used_at, 0), COALESCE(found_at, 0)) DESC, id DESC
            LIMIT ?
        """
        rows = await self._fetch_all(sql, (*params, limit), "Could not search dashboard items")
        return [self._decode_item(row) for row in rows]

    async def get_dashboard_items(
        self,
        keys: Sequence[tuple[str, str]],
    ) -> list[dict[str, Any]]:
        """Items by (source_page, relative_id); missing keys are skipped."""
        if not keys:
            return []

        clause = " OR ".join("(source_page = ? AND relative_id = ?)" for _ in keys)
        params = [value for key in keys for value in key]
        rows = await self._fetch_all(
            f"SELECT * FROM qs_items WHERE {clause}",
            params,
            "Could not load dashboard items",
        )
        return [self._decode_item(row) for row in rows]

    async def insert_discovered_items(
        self,
        source_page: str,
        items: Sequence[DiscoveredItem],
        merge_mode: bool = True,
    ) -> int:
        """
        Store items found on one page.

        Merge mode upserts reported items and removes the page's unreported
        items that were never used. Otherwise the page's items are replaced.

        Returns:
            Number of newly inserted items
        """
        conn = await self._get_connection()
        now = int(time.time())
        reported = list(dict.fromkeys(item.relative_id for item in items))

        try:
            if merge_mode:
                cursor = await conn.execute(
                    "SELECT relative_id FROM qs_items WHERE source_page = ?",
                    (source_page,),
                )
                existing = {row[0] for row in await cursor.fetchall()}
                await conn.execute(
                    f"""
                    DELETE FROM qs_items
                    WHERE source_page = ? AND used_at IS NULL
                    AND relative_id NOT IN ({_placeholders(len(reported))})
                    """,
                    (source_page, *reported),
                )
            else:
                existing = set()
                await conn.execute("DELETE FROM qs_items WHERE source_page = ?", (source_page,))

            await conn.executemany(
                """
                INSERT INTO qs_items
                (source_page, relative_id, label, location, target, rendered_on_page, found_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (source_page, relative_id) DO UPDATE SET
                    label = excluded.label,
                    location = excluded.location,
                    target = excluded.target,
                    rendered_on_page = excluded.rendered_on_page,
                    found_at = excluded.found_at
                """,
                [
                    (
                        source_page,
                        item.relative_id,
                        item.label,
                        json.dumps(item.location),
                        json.dumps(item.target.model_dump(exclude_none=True)),
                        item.rendered_on_page,
                        now,
                    )
                    for item in items
                ],
            )
            await conn.commit()
        except aiosqlite.Error as e:
            await conn.rollback()
            raise StorageError(
                f"Could not store items: {e}",
                {"source_page": source_page},
            ) from e

        return len([relative_id for relative_id in reported if relative_id not in existing])

    async def record_dashboard_usage(self, updates: Sequence[DashboardUsage]) -> None:
        """Set used_at on dashboard items, inserting placeholders for unknown ones."""
        if not updates:
            return

        conn = await self._get_connection()
        try:
            for update in updates:
                cursor = await conn.execute(
                    """
                    UPDATE qs_items SET used_at = MAX(COALESCE(used_at, 0), ?)
                    WHERE source_page = ? AND relative_id = ?
                    """,
                    (update.timestamp, update.source_page, update.relative_id),
                )
                if cursor.rowcount:
                    continue

                target = update.target.model_dump(exclude_none=True) if update.target else {
                    "type": "page",
                    "url": update.source_page,
                }
                await conn.execute(
                    """
                    INSERT INTO qs_items (source_page, relative_id, label, location, target, used_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        update.source_page,
                        update.relative_id,
                        update.label or update.relative_id,
                        json.dumps([]),
                        json.dumps(target),
                        update.timestamp,
                    ),
                )
            await conn.commit()
        except aiosqlite.Error as e:
            await conn.rollback()
            raise StorageError(f"Could not record dashboard usage: {e}") from e

    # ------------------------------------------------------------------
    # Crawl metadata
    # ------------------------------------------------------------------

    async def fetch_crawl_records(self, source_pages: Sequence[str]) -> dict[str, CrawlRecord]:
        """Crawl records keyed by source page."""
        if not source_pages:
            return {}

        rows = await self._fetch_all(
            f"""
            SELECT * FROM qs_crawler
            WHERE source_page IN ({_placeholders(len(source_pages))})
            """,
            list(source_pages),
            "Could not load crawl records",
        )
        return {row["source_page"]: CrawlRecord(**row) for row in rows}

    async def update_crawl_records(
        self,
        records: Sequence[CrawlRecordUpdate],
        merge_mode: bool = True,
    ) -> CrawlUpdateResult:
        """
        Insert or update crawl records.

        In merge mode the stored crawl time only moves forward and a missing
        interval keeps the stored one.
        """
        conn = await self._get_connection()
        now = int(time.time())
        existing = set(await self.fetch_crawl_records([record.source_page for record in records]))

        inserted = updated = 0
        errors: list[RecordError] = []
        for record in records:
            try:
                if record.source_page in existing:
                    if merge_mode:
                        sql = """
                            UPDATE qs_crawler SET
                                last_crawled_at = MAX(last_crawled_at, ?),
                                crawl_interval_days = COALESCE(?, crawl_interval_days),
                                updated_at = ?
                            WHERE source_page = ?
                        """
                    else:
                        sql = """
                            UPDATE qs_crawler SET
                                last_crawled_at = ?, crawl_interval_days = ?, updated_at = ?
                            WHERE source_page = ?
                        """
                    await conn.execute(
                        sql,
                        (record.last_crawled_at, record.crawl_interval_days, now, record.source_page),
                    )
                    updated += 1
                else:
                    await conn.execute(
                        """
                        INSERT INTO qs_crawler
                        (source_page, last_crawled_at, crawl_interval_days, updated_at)
                        VALUES (?, ?, ?, ?)
                        """,
                        (record.source_page, record.last_crawled_at, record.crawl_interval_days, now),
                    )
                    existing.add(record.source_page)
                    inserted += 1
            except aiosqlite.Error as e:
                logger.warning("Could not store crawl record for %s: %s", record.source_page, e)
                errors.append(
                    RecordError(
                        code="db_error",
                        message=str(e),
                        source_page=record.source_page,
                    )
                )

        with _wrap_errors("Could not commit crawl records", ErrorCode.STORAGE_WRITE_FAILED):
            await conn.commit()

        return CrawlUpdateResult(inserted=inserted, updated=updated, errors=errors)

    async def delete_stale_entries(self, item_days: int, crawl_days: int) -> None:
        """Delete items not found or used, and pages not crawled, within the thresholds."""
        conn = await self._get_connection()
        now = int(time.time())

        with _wrap_errors("Could not delete stale entries", ErrorCode.STORAGE_WRITE_FAILED):
            items = await conn.execute(
                """
                DELETE FROM qs_items
                WHERE MAX(COALESCE(found_at, 0), COALESCE(used_at, 0)) < ?
                """,
                (now - item_days * DAY_IN_SECONDS,),
            )
            pages = await conn.execute(
                "DELETE FROM qs_crawler WHERE MAX(last_crawled_at, updated_at) < ?",
                (now - crawl_days * DAY_IN_SECONDS,),
            )
            await conn.commit()

        logger.info(
            "Deleted %d stale items and %d stale crawl records",
            items.rowcount,
            pages.rowcount,
        )

    async def load_next_maintenance(self, job: str = "staleness_gc") -> int | None:
        """Unix time the job is next due, or None if it was never scheduled."""
        rows = await self._fetch_all(
            "SELECT run_at FROM qs_maintenance WHERE job = ?",
            (job,),
            "Could not load maintenance schedule",
        )
        return rows[0]["run_at"] if rows else None

    async def save_next_maintenance(self, run_at: int, job: str = "staleness_gc") -> None:
        """Store when the job is next due."""
        conn = await self._get_connection()

        with _wrap_errors("Could not save maintenance schedule", ErrorCode.STORAGE_WRITE_FAILED):
            await conn.execute(
                """
                INSERT INTO qs_maintenance (job, run_at) VALUES (?, ?)
                ON CONFLICT (job) DO UPDATE SET run_at = excluded.run_at
                """,
                (job, run_at),
            )
            await conn.commit()

    # ------------------------------------------------------------------
    # Recency ledgers
    # ------------------------------------------------------------------

    async def load_actor_ledger(self, actor_id: int) -> Any:
        """Stored ledger for an actor, or None. Malformed JSON reads as None."""
        rows = await self._fetch_all(
            "SELECT items FROM qs_recent_items WHERE actor_id = ?",
            (actor_id,),
            "Could not load recent items",
        )
        if not rows:
            return None
        return _decode_json(rows[0]["items"], None)

    async def save_actor_ledger(self, actor_id: int, ledger: dict[str, int]) -> None:
        """Replace an actor's ledger."""
        conn = await self._get_connection()

        with _wrap_errors("Could not save recent items", ErrorCode.STORAGE_WRITE_FAILED):
            await conn.execute(
                """
                INSERT INTO qs_recent_items (actor_id, items, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT (actor_id) DO UPDATE SET
                    items = excluded.items,
                    updated_at = excluded.updated_at
                """,
                (actor_id, json.dumps(ledger, separators=(",", ":")), int(time.time())),
            )
            await conn.commit()

    async def delete_actor_ledger(self, actor_id: int) -> None:
        """Remove an actor's ledger."""
        conn = await self._get_connection()

        with _wrap_errors("Could not delete recent items", ErrorCode.STORAGE_WRITE_FAILED):
            await conn.execute("DELETE FROM qs_recent_items WHERE actor_id = ?", (actor_id,))
            await conn.commit()

    # ------------------------------------------------------------------

    async def get_counts(self) -> dict[str, int]:
        """Row counts per table."""
        counts = {}
        for table in ("records", "accounts", "qs_items", "qs_crawler", "qs_recent_items"):
            rows = await self._fetch_all(
                f"SELECT COUNT(*) AS total FROM {table}", (), "Could not count rows"
            )
            counts[table] = rows[0]["total"] if rows else 0
        return counts

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def _fetch_all(
        self,
        sql: str,
        params: Sequence[Any],
        message: str,
    ) -> list[dict[str, Any]]:
        conn = await self._get_connection()
        with _wrap_errors(message):
            cursor = await conn.execute(sql, tuple(params))
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    @staticmethod
    def _decode_item(row: dict[str, Any]) -> dict[str, Any]:
        row["location"] = _decode_json(row.get("location"), [])
        row["target"] = _decode_json(row.get("target"), {})
        return row
