from __future__ import annotations

"""
基于 SQLite 的缓存与任务状态存储。

三张表：
  - translation_cache : CacheKey -> 译文 SRT 与状态（pending / done / error）
  - jobs              : 翻译任务的进度记录，供轮询
  - source_cache      : 字幕源查询结果（下载链接）的短期缓存

所有写操作都是按主键的单语句 upsert，不需要多语句事务。
"""

import logging
import sqlite3
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .types import (
    CacheEntry,
    Job,
    STATUS_DONE,
    STATUS_ERROR,
    STATUS_PENDING,
)


logger = logging.getLogger(__name__)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS translation_cache (
    key TEXT PRIMARY KEY,
    to_lang TEXT,
    engine TEXT,
    source_hash TEXT,
    srt TEXT,
    status TEXT,
    job_id TEXT,
    updated_at REAL
);
CREATE TABLE IF NOT EXISTS jobs (
    id TEXT PRIMARY KEY,
    key TEXT,
    status TEXT,
    message TEXT,
    updated_at REAL
);
CREATE INDEX IF NOT EXISTS idx_jobs_key ON jobs(key);
CREATE TABLE IF NOT EXISTS source_cache (
    key TEXT PRIMARY KEY,
    locator TEXT,
    fetched_at REAL
);
"""


class CacheStore:
    """
    持久化的缓存存储，进程重启后数据仍然保留。

    每次操作使用一个短连接，因此可以在多个工作线程之间安全共享。
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = str(db_path)
        Path(self.db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self) -> None:
        with self._connect() as conn:
            # WAL + busy_timeout，减少并发读写时的锁冲突
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA busy_timeout=5000;")
            conn.executescript(_SCHEMA)

    # ---- translation_cache ----

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> CacheEntry:
        return CacheEntry(
            key=row["key"],
            to_lang=row["to_lang"] or "",
            engine=row["engine"] or "",
            source_hash=row["source_hash"] or "",
            srt=row["srt"] or "",
            status=row["status"] or "",
            updated_at=float(row["updated_at"] or 0.0),
            job_id=row["job_id"],
        )

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM translation_cache WHERE key = ?", (key,)
            ).fetchone()
        return self._row_to_entry(row) if row else None

    def put_entry(self, entry: CacheEntry) -> None:
        """
        整行替换（INSERT OR REPLACE），最后写入者生效。
        """
        if not entry.updated_at:
            entry.updated_at = time.time()
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO translation_cache"
                "(key, to_lang, engine, source_hash, srt, status, job_id, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    entry.key,
                    entry.to_lang,
                    entry.engine,
                    entry.source_hash,
                    entry.srt,
                    entry.status,
                    entry.job_id,
                    entry.updated_at,
                ),
            )

    def claim_pending(self, entry: CacheEntry, stale_after: float) -> bool:
        """
        尝试把 key 标记为 pending，返回是否由本次调用抢到。

        只有以下情况才会写入：key 不存在、状态为 error、done 但译文为空、
        或 pending 已超过 stale_after 秒（视为失联任务）。
        单条 upsert 语句完成判断与写入，相当于逻辑上的 compare-and-set。
        """
        now = time.time()
        entry.status = STATUS_PENDING
        entry.srt = ""
        entry.updated_at = now
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO translation_cache"
                "(key, to_lang, engine, source_hash, srt, status, job_id, updated_at) "
                "VALUES (?, ?, ?, ?, '', ?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET "
                "to_lang = excluded.to_lang, engine = excluded.engine, "
                "source_hash = excluded.source_hash, srt = '', status = excluded.status, "
                "job_id = excluded.job_id, updated_at = excluded.updated_at "
                "WHERE translation_cache.status = ? "
                "OR (translation_cache.status = ? AND COALESCE(translation_cache.srt, '') = '') "
                "OR (translation_cache.status = ? AND translation_cache.updated_at < ?) "
                "OR translation_cache.status NOT IN (?, ?, ?)",
                (
                    entry.key,
                    entry.to_lang,
                    entry.engine,
                    entry.source_hash,
                    STATUS_PENDING,
                    entry.job_id,
                    now,
                    STATUS_ERROR,
                    STATUS_DONE,
                    STATUS_PENDING,
                    now - stale_after,
                    STATUS_PENDING,
                    STATUS_DONE,
                    STATUS_ERROR,
                ),
            )
            return cur.rowcount > 0

    def touch_entry(self, key: str, job_id: str) -> bool:
        """
        刷新仍属于 job_id 的 pending 条目的 updated_at，返回是否刷新成功。

        条目已被其它任务接管或已经结束时不做任何修改。
        """
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE translation_cache SET updated_at = ? "
                "WHERE key = ? AND status = ? AND job_id = ?",
                (time.time(), key, STATUS_PENDING, job_id),
            )
            return cur.rowcount > 0

    # ---- jobs ----

    @staticmethod
    def _row_to_job(row: sqlite3.Row) -> Job:
        return Job(
            id=row["id"],
            key=row["key"] or "",
            status=row["status"] or "",
            message=row["message"],
            updated_at=float(row["updated_at"] or 0.0),
        )

    def create_job(self, key: str, job_id: Optional[str] = None) -> str:
        job_id = job_id or uuid.uuid4().hex
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO jobs(id, key, status, message, updated_at) "
                "VALUES (?, ?, ?, NULL, ?)",
                (job_id, key, STATUS_PENDING, time.time()),
            )
        return job_id

    def update_job_status(
        self,
        job_id: str,
        status: str,
        message: Optional[str] = None,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE jobs SET status = ?, message = ?, updated_at = ? WHERE id = ?",
                (status, message, time.time(), job_id),
            )

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return self._row_to_job(row) if row else None

    def count_jobs(self, key: str) -> int:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM jobs WHERE key = ?", (key,)
            ).fetchone()
        return int(row["n"])

    # ---- source_cache ----

    def get_source_locator(self, lookup_key: str, max_age: float) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT locator, fetched_at FROM source_cache WHERE key = ?",
                (lookup_key,),
            ).fetchone()
        if not row or not row["locator"]:
            return None
        if time.time() - float(row["fetched_at"] or 0.0) >= max_age:
            return None
        return row["locator"]

    def put_source_locator(self, lookup_key: str, locator: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO source_cache(key, locator, fetched_at) VALUES (?, ?, ?)",
                (lookup_key, locator, time.time()),
            )

    # ---- housekeeping ----

    def purge_stale(self, older_than: float) -> int:
        """
        清理超过 older_than 秒的 error 条目、已结束的任务与过期的字幕源缓存。

        older_than <= 0 时不做任何清理。返回删除的行数。
        """
        if older_than <= 0:
            return 0
        cutoff = time.time() - older_than
        with self._connect() as conn:
            removed = conn.execute(
                "DELETE FROM translation_cache WHERE status = ? AND updated_at < ?",
                (STATUS_ERROR, cutoff),
            ).rowcount
            removed += conn.execute(
                "DELETE FROM jobs WHERE status IN (?, ?) AND updated_at < ?",
                (STATUS_DONE, STATUS_ERROR, cutoff),
            ).rowcount
            removed += conn.execute(
                "DELETE FROM source_cache WHERE fetched_at < ?", (cutoff,)
            ).rowcount
        if removed:
            logger.info("purged %d stale cache rows", removed)
        return removed
