from __future__ import annotations

from typing import Dict, List

from subtranslate.config import DEFAULT_GOOGLE_CLOUD_URL
from subtranslate.errors import BackendError, ConfigurationError
from subtranslate.ratelimit import RateLimiter

from .translator import TranslationEngine


class GoogleCloudTranslator(TranslationEngine):
    """
    Google Cloud Translation v2 接口，一次请求可翻译一个字符串列表。

    需要 GOOGLE_API_KEY，未配置时在构造阶段直接抛出 ConfigurationError。
    """

    name = "google_cloud"
    supports_batch = True

    def __init__(
        self,
        limiter: RateLimiter,
        api_key: str,
        url: str | None = None,
        timeout: float = 20.0,
        proxies: Dict[str, str] | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ConfigurationError("GOOGLE_API_KEY not configured")
        super().__init__(limiter, timeout=timeout, proxies=proxies)
        self.api_key = api_key.strip()
        self.url = url or DEFAULT_GOOGLE_CLOUD_URL

    def translate_batch(self, texts: List[str], target_lang: str) -> List[str]:
        if not texts:
            return []
        body = {"q": list(texts), "target": target_lang, "format": "text"}
        data = self._request_json(
            "POST",
            self.url,
            params={"key": self.api_key},
            json=body,
        )
        try:
            translations = data["data"]["translations"]
        except (KeyError, TypeError) as exc:
            raise BackendError(
                f"google_cloud response missing data.translations: {str(data)[:200]}"
            ) from exc
        results = [str(t.get("translatedText") or "") for t in translations]
        return self._check_aligned(texts, results)
