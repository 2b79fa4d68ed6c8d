from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional

import requests

from subtranslate.errors import BackendError
from subtranslate.ratelimit import RateLimiter


USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) subtranslate/0.1.0"


class SubtitleSource(ABC):
    """
    字幕源抽象接口：按 (imdb_id, season, episode, lang) 查找字幕，并下载其文本。

    find() 返回一个可下载的定位符（通常是 URL），找不到时返回 None。
    """

    def __init__(
        self,
        limiter: RateLimiter,
        timeout: float = 20.0,
        proxies: Dict[str, str] | None = None,
    ) -> None:
        self.limiter = limiter
        self.timeout = timeout
        self.proxies = proxies

    @abstractmethod
    def find(
        self,
        imdb_id: str,
        season: Optional[str],
        episode: Optional[str],
        lang: str,
    ) -> Optional[str]:
        """
        查找指定语言的字幕，返回定位符或 None。
        """

    def fetch(self, locator: str) -> str:
        """
        下载定位符指向的字幕文本。
        """
        try:
            resp = self.limiter.schedule(
                requests.get,
                locator,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
                proxies=self.proxies,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise BackendError(f"subtitle download failed: {exc}") from exc
        return decode_subtitle_bytes(resp)


def decode_subtitle_bytes(resp: requests.Response) -> str:
    """
    响应头声明了 charset 时按其解码；否则优先尝试 UTF-8（含 BOM），
    失败后退回 requests 猜测的编码。
    """
    content_type = resp.headers.get("Content-Type", "")
    if "charset=" in content_type.lower():
        return resp.text
    raw = resp.content or b""
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        return raw.decode(resp.apparent_encoding or "latin-1", errors="replace")
