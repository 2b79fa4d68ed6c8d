from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


STATUS_PENDING = "pending"
STATUS_RUNNING = "running"
STATUS_DONE = "done"
STATUS_ERROR = "error"

ENTRY_STATUSES = (STATUS_PENDING, STATUS_DONE, STATUS_ERROR)
JOB_STATUSES = (STATUS_PENDING, STATUS_RUNNING, STATUS_DONE, STATUS_ERROR)


@dataclass(frozen=True)
class CacheKey:
    """
    缓存条目的复合指纹。

    有 imdb_id 时为 (imdb_id, season, episode, to, engine)，
    否则为 (source_url, to, engine)。相同的 key 必须收敛到同一份缓存结果。
    """

    to: str
    engine: str
    imdb_id: Optional[str] = None
    season: Optional[str] = None
    episode: Optional[str] = None
    source_url: Optional[str] = None

    @classmethod
    def for_content(
        cls,
        imdb_id: str,
        season: Optional[str | int],
        episode: Optional[str | int],
        to: str,
        engine: str,
    ) -> "CacheKey":
        return cls(
            to=to,
            engine=engine,
            imdb_id=imdb_id,
            season=str(season) if season not in (None, "") else None,
            episode=str(episode) if episode not in (None, "") else None,
        )

    @classmethod
    def for_source(cls, source_url: str, to: str, engine: str) -> "CacheKey":
        return cls(to=to, engine=engine, source_url=source_url)

    def __str__(self) -> str:
        if self.imdb_id:
            base = f"{self.imdb_id}|{self.season or ''}|{self.episode or ''}"
        else:
            base = f"source|{self.source_url or ''}"
        return f"{base}|{self.to}|{self.engine}"


@dataclass
class CacheEntry:
    """
    translation_cache 表中的一行。每次状态迁移整行替换，不做字段级合并。
    """

    key: str
    to_lang: str
    engine: str
    source_hash: str
    srt: str
    status: str
    updated_at: float = 0.0
    job_id: Optional[str] = None

    @property
    def is_done(self) -> bool:
        return self.status == STATUS_DONE and bool(self.srt)


@dataclass
class Job:
    id: str
    key: str
    status: str
    message: Optional[str] = None
    updated_at: float = 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "key": self.key,
            "status": self.status,
            "message": self.message,
            "updated_at": self.updated_at,
        }
