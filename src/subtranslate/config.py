from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Dict, Optional


DEFAULT_DEEPL_URL = "https://api-free.deepl.com/v2/translate"
DEFAULT_GOOGLE_FREE_URL = "https://translate.googleapis.com"
DEFAULT_GOOGLE_CLOUD_URL = "https://translation.googleapis.com/language/translate/v2"
DEFAULT_OPENSUBTITLES_URL = "https://api.opensubtitles.com/api/v1"


def _env_str(*names: str, default: str = "") -> str:
    for name in names:
        value = os.getenv(name)
        if value is not None and value.strip():
            return value.strip()
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class SubtranslateConfig:
    """
    服务的核心配置对象。

    所有字段都可以通过环境变量（或 .env）注入，见 from_env()。
    API Key 为空字符串表示未配置，对应的引擎/字幕源在使用时会抛出 ConfigurationError。
    """

    db_path: Path
    engine: str = "google_free"
    subtitle_source: str = "opensubtitles"
    default_to: str = "zh-CN"
    fallback_lang: str = "en"
    opensubtitles_api_key: str = ""
    opensubtitles_url: str = DEFAULT_OPENSUBTITLES_URL
    google_api_key: str = ""
    google_cloud_url: str = DEFAULT_GOOGLE_CLOUD_URL
    google_free_url: str = DEFAULT_GOOGLE_FREE_URL
    deepl_api_key: str = ""
    deepl_url: str = DEFAULT_DEEPL_URL
    # 单批次的最大字符数（按字符预算而不是条数切分）
    max_batch_chars: int = 4000
    # 全局限速：两次外部调用之间的最小间隔（秒）与最大并发数
    rate_min_interval: float = 0.3
    rate_max_concurrent: int = 1
    workers: int = 2
    # pending 超过该秒数仍未完成，则视为任务已失联，可以重新触发
    pending_timeout: float = 600.0
    placeholder_seconds: int = 30
    source_cache_ttl: float = 6 * 3600.0
    http_timeout: float = 20.0
    # error 条目与已结束任务的保留时长（秒），<= 0 表示不清理
    purge_after: float = 7 * 24 * 3600.0
    http_proxy: Optional[str] = None
    https_proxy: Optional[str] = None

    @property
    def proxies(self) -> Dict[str, str] | None:
        proxies: dict[str, str] = {}
        if self.http_proxy:
            proxies["http"] = self.http_proxy
        if self.https_proxy:
            proxies["https"] = self.https_proxy
        return proxies or None

    @classmethod
    def from_env(
        cls,
        db_path: Optional[str | Path] = None,
        engine: Optional[str] = None,
        default_to: Optional[str] = None,
        fallback_lang: Optional[str] = None,
        workers: Optional[int] = None,
        pending_timeout: Optional[float] = None,
        max_batch_chars: Optional[int] = None,
    ) -> "SubtranslateConfig":
        """
        显式传入的参数优先，其次读取环境变量，最后使用默认值。

        兼容旧部署中使用的 ENGINE / DEFAULT_TO 变量名。
        """
        if db_path is not None:
            db_path_obj = Path(db_path).expanduser().resolve()
        else:
            env_db = _env_str("SUBTRANSLATE_DB_PATH")
            if env_db:
                db_path_obj = Path(env_db).expanduser().resolve()
            else:
                db_path_obj = Path.cwd() / "data" / "cache.sqlite"

        engine_value = engine or _env_str("SUBTRANSLATE_ENGINE", "ENGINE", default="google_free")
        default_to_value = default_to or _env_str(
            "SUBTRANSLATE_DEFAULT_TO", "DEFAULT_TO", default="zh-CN"
        )
        fallback_value = fallback_lang or _env_str("SUBTRANSLATE_FALLBACK_LANG", default="en")

        if workers is None:
            workers = _env_int("SUBTRANSLATE_WORKERS", 2)
        if pending_timeout is None:
            pending_timeout = _env_float("SUBTRANSLATE_PENDING_TIMEOUT", 600.0)
        if max_batch_chars is None:
            max_batch_chars = _env_int("SUBTRANSLATE_MAX_BATCH_CHARS", 4000)

        return cls(
            db_path=db_path_obj,
            engine=engine_value.lower(),
            subtitle_source=_env_str(
                "SUBTRANSLATE_SUBTITLE_SOURCE", default="opensubtitles"
            ).lower(),
            default_to=default_to_value,
            fallback_lang=fallback_value,
            opensubtitles_api_key=_env_str("OPENSUBTITLES_API_KEY"),
            opensubtitles_url=_env_str(
                "SUBTRANSLATE_OPENSUBTITLES_URL", default=DEFAULT_OPENSUBTITLES_URL
            ).rstrip("/"),
            google_api_key=_env_str("GOOGLE_API_KEY"),
            google_cloud_url=_env_str(
                "SUBTRANSLATE_GOOGLE_CLOUD_URL", default=DEFAULT_GOOGLE_CLOUD_URL
            ),
            google_free_url=_env_str(
                "SUBTRANSLATE_GOOGLE_FREE_URL", default=DEFAULT_GOOGLE_FREE_URL
            ).rstrip("/"),
            deepl_api_key=_env_str("DEEPL_API_KEY"),
            deepl_url=_env_str("SUBTRANSLATE_DEEPL_URL", default=DEFAULT_DEEPL_URL),
            max_batch_chars=max(1, max_batch_chars),
            rate_min_interval=max(0.0, _env_float("SUBTRANSLATE_RATE_MIN_INTERVAL", 0.3)),
            rate_max_concurrent=max(1, _env_int("SUBTRANSLATE_RATE_MAX_CONCURRENT", 1)),
            workers=max(1, workers),
            pending_timeout=pending_timeout,
            placeholder_seconds=max(1, _env_int("SUBTRANSLATE_PLACEHOLDER_SECONDS", 30)),
            source_cache_ttl=_env_float("SUBTRANSLATE_SOURCE_CACHE_TTL", 6 * 3600.0),
            http_timeout=_env_float("SUBTRANSLATE_HTTP_TIMEOUT", 20.0),
            purge_after=_env_float("SUBTRANSLATE_PURGE_AFTER", 7 * 24 * 3600.0),
            http_proxy=_env_str("SUBTRANSLATE_HTTP_PROXY") or None,
            https_proxy=_env_str("SUBTRANSLATE_HTTPS_PROXY") or None,
        )
