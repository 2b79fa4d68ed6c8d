from __future__ import annotations

from subtranslate.cache import CacheStore
from subtranslate.config import SubtranslateConfig
from subtranslate.errors import ConfigurationError
from subtranslate.ratelimit import RateLimiter

from .base import SubtitleSource
from .direct import DirectSource
from .opensubtitles import OpenSubtitlesSource


def get_subtitle_source(
    config: SubtranslateConfig,
    limiter: RateLimiter,
    store: CacheStore | None = None,
) -> SubtitleSource:
    """
    根据 config.subtitle_source 返回字幕源实例。

    支持：
      - "opensubtitles" : OpenSubtitlesSource（需要 OPENSUBTITLES_API_KEY）
      - "direct"        : DirectSource（仅使用调用方给出的字幕地址）
    """
    key = (config.subtitle_source or "").strip().lower()
    if key == "opensubtitles":
        return OpenSubtitlesSource(
            limiter,
            api_key=config.opensubtitles_api_key,
            store=store,
            base_url=config.opensubtitles_url,
            cache_ttl=config.source_cache_ttl,
            timeout=config.http_timeout,
            proxies=config.proxies,
        )
    if key == "direct":
        return DirectSource(limiter, timeout=config.http_timeout, proxies=config.proxies)
    raise ConfigurationError(f"Unknown subtitle source: {config.subtitle_source}")
