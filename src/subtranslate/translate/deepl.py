from __future__ import annotations

from typing import Dict, List

from subtranslate.config import DEFAULT_DEEPL_URL
from subtranslate.errors import BackendError, ConfigurationError
from subtranslate.ratelimit import RateLimiter

from .translator import TranslationEngine


def normalize_deepl_lang(code: str) -> str:
    """
    将语言代码粗略映射为 DeepL 的两字母大写形式：去掉 "-"，取前两位再转大写。

    例如 zh-CN -> ZH，pt-BR -> PT，en -> EN。

    注意：这是近似映射，会丢失地区变体（DeepL 的 PT-BR / EN-GB 等无法表达），
    并不保证对所有 locale 都正确。
    """
    return code.replace("-", "")[:2].upper()


class DeepLTranslator(TranslationEngine):
    """
    DeepL 翻译接口，表单中重复多个 text 字段即可批量翻译。

    需要 DEEPL_API_KEY；默认使用 free 账号的接口地址，付费账号可通过
    SUBTRANSLATE_DEEPL_URL 覆盖。
    """

    name = "deepl"
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
            raise ConfigurationError("DEEPL_API_KEY not configured")
        super().__init__(limiter, timeout=timeout, proxies=proxies)
        self.api_key = api_key.strip()
        self.url = url or DEFAULT_DEEPL_URL

    def translate_batch(self, texts: List[str], target_lang: str) -> List[str]:
        if not texts:
            return []
        form = [("text", t) for t in texts]
        form.append(("target_lang", normalize_deepl_lang(target_lang)))
        data = self._request_json(
            "POST",
            self.url,
            headers={"Authorization": f"DeepL-Auth-Key {self.api_key}"},
            data=form,
        )
        translations = data.get("translations") if isinstance(data, dict) else None
        if not isinstance(translations, list):
            raise BackendError(f"deepl response missing translations: {str(data)[:200]}")
        results = [str(t.get("text") or "") for t in translations]
        return self._check_aligned(texts, results)
