from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from subtranslate.cache import CacheStore
from subtranslate.config import DEFAULT_OPENSUBTITLES_URL
from subtranslate.errors import BackendError, ConfigurationError
from subtranslate.ratelimit import RateLimiter

from .base import USER_AGENT, SubtitleSource


logger = logging.getLogger(__name__)


class OpenSubtitlesSource(SubtitleSource):
    """
    OpenSubtitles REST API (v1) 字幕源。

    查找流程：
      1. GET /subtitles，按下载量倒序，取第一条带文件的结果；
      2. POST /download 换取临时下载链接。

    下载链接会在 CacheStore 的 source_cache 表中缓存 cache_ttl 秒（默认 6 小时），
    同一部影片/剧集的重复请求不会再次消耗 API 配额。
    """

    def __init__(
        self,
        limiter: RateLimiter,
        api_key: str,
        store: CacheStore | None = None,
        base_url: str | None = None,
        cache_ttl: float = 6 * 3600.0,
        timeout: float = 15.0,
        proxies: Dict[str, str] | None = None,
    ) -> None:
        super().__init__(limiter, timeout=timeout, proxies=proxies)
        self.api_key = (api_key or "").strip()
        self.store = store
        self.base_url = (base_url or DEFAULT_OPENSUBTITLES_URL).rstrip("/")
        self.cache_ttl = cache_ttl

    def _headers(self) -> Dict[str, str]:
        return {
            "Api-Key": self.api_key,
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.limiter.schedule(
                requests.request,
                method,
                url,
                headers=self._headers(),
                timeout=self.timeout,
                proxies=self.proxies,
                **kwargs,
            )
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as exc:
            raise BackendError(f"OpenSubtitles {path} failed: {exc}") from exc
        except ValueError as exc:
            raise BackendError(f"OpenSubtitles {path} returned non-JSON response") from exc

    def find(
        self,
        imdb_id: str,
        season: Optional[str],
        episode: Optional[str],
        lang: str,
    ) -> Optional[str]:
        if not self.api_key:
            raise ConfigurationError("OPENSUBTITLES_API_KEY not configured")

        lookup_key = f"{imdb_id}|{season or ''}|{episode or ''}|{lang}"
        if self.store is not None:
            cached = self.store.get_source_locator(lookup_key, self.cache_ttl)
            if cached:
                return cached

        params: Dict[str, Any] = {
            "imdb_id": imdb_id[2:] if imdb_id.lower().startswith("tt") else imdb_id,
            "languages": lang,
            "order_by": "downloads",
            "sort": "desc",
        }
        if season:
            params["season_number"] = season
        if episode:
            params["episode_number"] = episode

        data = self._call("GET", "/subtitles", params=params)
        items = (data or {}).get("data") or []
        chosen_file: Dict[str, Any] | None = None
        for item in items:
            files = (item.get("attributes") or {}).get("files")
            if isinstance(files, list) and files:
                chosen_file = files[0]
                break
        if chosen_file is None:
            logger.info("OpenSubtitles: no %s subtitle for %s", lang, lookup_key)
            return None

        dl = self._call("POST", "/download", json={"file_id": chosen_file.get("file_id")})
        link = (dl or {}).get("link") or ((dl or {}).get("data") or {}).get("link")
        if not link:
            return None

        if self.store is not None:
            self.store.put_source_locator(lookup_key, link)
        return link
