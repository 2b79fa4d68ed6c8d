from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

import requests

from subtranslate.errors import BackendError
from subtranslate.ratelimit import RateLimiter


logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) subtranslate/0.1.0"


class TranslationEngine(ABC):
    """
    翻译引擎抽象接口。

    所有具体实现（google_free / google_cloud / deepl）都遵循
    「一批字符串进，一批字符串出」的约定，以便由 BatchTranslator 统一调度。

    supports_batch 为 False 的引擎没有原生的列表接口，BatchTranslator
    会先把整批文本用分隔符拼接成一条再交给它翻译。
    """

    name: str = ""
    supports_batch: bool = True

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
    def translate_batch(self, texts: List[str], target_lang: str) -> List[str]:
        """
        将 texts 翻译为 target_lang，返回与输入等长、顺序一致的译文列表。
        """

    def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """
        经过全局限速器发起请求并解析 JSON。

        网络错误、超时、HTTP 错误与非 JSON 响应统一包装为 BackendError。
        """
        headers = kwargs.pop("headers", None) or {}
        headers.setdefault("User-Agent", USER_AGENT)
        try:
            resp = self.limiter.schedule(
                requests.request,
                method,
                url,
                headers=headers,
                timeout=self.timeout,
                proxies=self.proxies,
                **kwargs,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise BackendError(f"{self.name} request failed: {exc}") from exc
        try:
            return resp.json()
        except ValueError as exc:
            snippet = resp.text[:200]
            raise BackendError(
                f"{self.name} returned non-JSON response (first 200 chars): {snippet}"
            ) from exc

    def _check_aligned(self, texts: List[str], results: List[str]) -> List[str]:
        if len(results) != len(texts):
            raise BackendError(
                f"{self.name} returned {len(results)} translations for {len(texts)} texts"
            )
        return results
