from __future__ import annotations

from .types import (
    CacheEntry,
    CacheKey,
    Job,
    STATUS_DONE,
    STATUS_ERROR,
    STATUS_PENDING,
    STATUS_RUNNING,
)
from .store import CacheStore

__all__ = [
    "CacheEntry",
    "CacheKey",
    "CacheStore",
    "Job",
    "STATUS_DONE",
    "STATUS_ERROR",
    "STATUS_PENDING",
    "STATUS_RUNNING",
]
