from __future__ import annotations

from typing import Dict, List

from subtranslate.config import DEFAULT_GOOGLE_FREE_URL
from subtranslate.errors import BackendError
from subtranslate.ratelimit import RateLimiter

from .translator import TranslationEngine


class GoogleFreeTranslator(TranslationEngine):
    """
    使用 Google 翻译免费接口（translate_a/single, client=gtx）的翻译引擎。

    - 不需要 API Key；
    - 接口只接受单条文本，没有原生批量能力（supports_batch = False），
      批量拼接/拆分由 BatchTranslator 负责；
    - base_url 可指向自建代理或反向代理服务。
    """

    name = "google_free"
    supports_batch = False

    def __init__(
        self,
        limiter: RateLimiter,
        base_url: str | None = None,
        timeout: float = 20.0,
        proxies: Dict[str, str] | None = None,
    ) -> None:
        super().__init__(limiter, timeout=timeout, proxies=proxies)
        self.base_url = (base_url or DEFAULT_GOOGLE_FREE_URL).rstrip("/")

    def _endpoint(self) -> str:
        return f"{self.base_url}/translate_a/single"

    def translate_text(self, text: str, target_lang: str) -> str:
        if not text.strip():
            return ""
        params = {
            "client": "gtx",
            "sl": "auto",
            "tl": target_lang,
            "dt": "t",
            "q": text,
        }
        data = self._request_json("GET", self._endpoint(), params=params)
        if not isinstance(data, list) or not data:
            raise BackendError(f"google_free returned unexpected payload: {str(data)[:200]}")
        translated_parts: list[str] = []
        for part in data[0] or []:
            if isinstance(part, list) and part and part[0]:
                translated_parts.append(str(part[0]))
        return "".join(translated_parts)

    def translate_batch(self, texts: List[str], target_lang: str) -> List[str]:
        # 逐条请求；BatchTranslator 总是只传入一条拼接后的文本
        return [self.translate_text(text, target_lang) for text in texts]
