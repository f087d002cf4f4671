import os
from typing import List, Optional

import asyncpg
from dotenv import load_dotenv

from config import ConfigError
from models import CrawledPage, CrawlSession, SessionStatus
from storage.base import CrawlStorage
from utils import new_id

load_dotenv()

SCHEMA = """
CREATE TABLE IF NOT EXISTS crawl_sessions (
    id               TEXT PRIMARY KEY,
    url              TEXT NOT NULL,
    max_pages        INTEGER,
    max_depth        INTEGER NOT NULL,
    status           TEXT NOT NULL,
    total_pages      INTEGER NOT NULL DEFAULT 0,
    successful_pages INTEGER NOT NULL DEFAULT 0,
    error_pages      INTEGER NOT NULL DEFAULT 0,
    current_url      TEXT,
    started_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    completed_at     TIMESTAMPTZ,
    error            TEXT
);

CREATE TABLE IF NOT EXISTS crawled_pages (
    seq           BIGSERIAL,
    id            TEXT PRIMARY KEY,
    session_id    TEXT NOT NULL REFERENCES crawl_sessions (id),
    url           TEXT NOT NULL,
    status_code   INTEGER NOT NULL,
    content_type  TEXT NOT NULL DEFAULT '',
    size          INTEGER NOT NULL DEFAULT 0,
    load_time     INTEGER NOT NULL DEFAULT 0,
    depth         INTEGER NOT NULL,
    content_hash  TEXT,
    discovered_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (session_id, url)
);

CREATE INDEX IF NOT EXISTS crawled_pages_hash_idx ON crawled_pages (session_id, content_hash);

CREATE TABLE IF NOT EXISTS pdf_links (
    seq        BIGSERIAL,
    session_id TEXT NOT NULL REFERENCES crawl_sessions (id),
    url        TEXT NOT NULL,
    PRIMARY KEY (session_id, url)
);
"""

# dataclass field -> column; only these may appear in an UPDATE
SESSION_COLUMNS = (
    "url",
    "max_pages",
    "max_depth",
    "status",
    "total_pages",
    "successful_pages",
    "error_pages",
    "current_url",
    "started_at",
    "completed_at",
    "error",
)

PAGE_COLUMNS = (
    "id, session_id, url, status_code, content_type, size, load_time, depth, content_hash, discovered_at"
)


def row_to_session(row) -> CrawlSession:
    return CrawlSession(
        id=row["id"],
        url=row["url"],
        max_pages=row["max_pages"],
        max_depth=row["max_depth"],
        status=SessionStatus(row["status"]),
        total_pages=row["total_pages"],
        successful_pages=row["successful_pages"],
        error_pages=row["error_pages"],
        current_url=row["current_url"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        error=row["error"],
    )


def row_to_page(row) -> CrawledPage:
    return CrawledPage(
        id=row["id"],
        session_id=row["session_id"],
        url=row["url"],
        status_code=row["status_code"],
        content_type=row["content_type"],
        size=row["size"],
        load_time=row["load_time"],
        depth=row["depth"],
        content_hash=row["content_hash"],
        discovered_at=row["discovered_at"],
    )


def build_session_update(session_id: str, changes: dict):
    """UPDATE statement and arguments for a partial session update."""
    unknown = set(changes) - set(SESSION_COLUMNS)
    if unknown:
        raise ValueError(f"unknown session fields: {sorted(unknown)}")

    assignments = []
    args = [session_id]
    for i, (column, value) in enumerate(changes.items(), start=2):
        if isinstance(value, SessionStatus):
            value = value.value
        assignments.append(f"{column} = ${i}")
        args.append(value)

    q = f"UPDATE crawl_sessions SET {', '.join(assignments)} WHERE id = $1 RETURNING *"
    return q, args


class PostgresStore(CrawlStorage):
    def __init__(self, dsn: Optional[str] = None):
        self.dsn = dsn or os.environ.get("DATABASE_URL")
        self.pool = None

    # -------------------- CONNECTION --------------------

    async def connect(self):
        if not self.dsn:
            raise ConfigError("DATABASE_URL must be set when CRAWLER_STORAGE=postgres")
        if self.pool is None:
            self.pool = await asyncpg.create_pool(self.dsn)
            await self.ensure_schema()

    async def close(self):
        if self.pool is not None:
            await self.pool.close()
            self.pool = None

    async def ensure_schema(self):
        async with self.pool.acquire() as con:
            await con.execute(SCHEMA)

    # -------------------- SESSIONS --------------------

    async def create_session(self, url: str, max_pages: Optional[int], max_depth: int) -> CrawlSession:
        q = """
        INSERT INTO crawl_sessions (id, url, max_pages, max_depth, status)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING *
        """
        async with self.pool.acquire() as con:
            row = await con.fetchrow(q, new_id(), url, max_pages, max_depth, SessionStatus.PENDING.value)
        return row_to_session(row)

    async def get_session(self, session_id: str) -> Optional[CrawlSession]:
        async with self.pool.acquire() as con:
            row = await con.fetchrow("SELECT * FROM crawl_sessions WHERE id = $1", session_id)
        return row_to_session(row) if row else None

    async def update_session(self, session_id: str, **changes) -> Optional[CrawlSession]:
        if not changes:
            return await self.get_session(session_id)

        q, args = build_session_update(session_id, changes)
        async with self.pool.acquire() as con:
            row = await con.fetchrow(q, *args)
        return row_to_session(row) if row else None

    # -------------------- PAGES --------------------

    async def create_page(
        self,
        *,
        session_id: str,
        url: str,
        depth: int,
        status_code: int,
        content_type: str,
        size: int,
        load_time: int,
        content_hash: Optional[str],
    ) -> CrawledPage:
        q = f"""
        INSERT INTO crawled_pages (id, session_id, url, status_code, content_type,
                                   size, load_time, depth, content_hash)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
        RETURNING {PAGE_COLUMNS}
        """
        async with self.pool.acquire() as con:
            row = await con.fetchrow(
                q,
                new_id(),
                session_id,
                url,
                status_code,
                content_type or "",
                size,
                load_time,
                depth,
                content_hash,
            )
        return row_to_page(row)

    async def list_pages(self, session_id: str, status_code: Optional[int] = None) -> List[CrawledPage]:
        q = f"""
        SELECT {PAGE_COLUMNS}
        FROM crawled_pages
        WHERE session_id = $1
          AND ($2::INTEGER IS NULL OR status_code = $2)
        ORDER BY seq
        """
        async with self.pool.acquire() as con:
            rows = await con.fetch(q, session_id, status_code)
        return [row_to_page(r) for r in rows]

    async def count_pages(self, session_id: str) -> int:
        async with self.pool.acquire() as con:
            return await con.fetchval("SELECT COUNT(*) FROM crawled_pages WHERE session_id = $1", session_id)

    # -------------------- DUPLICATES --------------------

    async def unique_content_hashes(self, session_id: str) -> List[str]:
        q = """
        SELECT content_hash
        FROM crawled_pages
        WHERE session_id = $1
          AND content_hash IS NOT NULL
        GROUP BY content_hash
        ORDER BY MIN(seq)
        """
        async with self.pool.acquire() as con:
            rows = await con.fetch(q, session_id)
        return [r["content_hash"] for r in rows]

    async def pages_by_content_hash(self, session_id: str, content_hash: str) -> List[CrawledPage]:
        q = f"""
        SELECT {PAGE_COLUMNS}
        FROM crawled_pages
        WHERE session_id = $1
          AND content_hash = $2
        ORDER BY seq
        """
        async with self.pool.acquire() as con:
            rows = await con.fetch(q, session_id, content_hash)
        return [row_to_page(r) for r in rows]

    # -------------------- PDF LINKS --------------------

    async def add_pdf_link(self, session_id: str, url: str) -> None:
        q = """
        INSERT INTO pdf_links (session_id, url)
        VALUES ($1, $2) ON CONFLICT (session_id, url) DO NOTHING
        """
        async with self.pool.acquire() as con:
            await con.execute(q, session_id, url)

    async def count_pdf_links(self, session_id: str) -> int:
        async with self.pool.acquire() as con:
            return await con.fetchval("SELECT COUNT(*) FROM pdf_links WHERE session_id = $1", session_id)

    async def list_pdf_links(self, session_id: str) -> List[str]:
        async with self.pool.acquire() as con:
            rows = await con.fetch("SELECT url FROM pdf_links WHERE session_id = $1 ORDER BY seq", session_id)
        return [r["url"] for r in rows]
