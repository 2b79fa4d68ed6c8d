from __future__ import annotations

from subtranslate.config import SubtranslateConfig
from subtranslate.errors import ConfigurationError
from subtranslate.ratelimit import RateLimiter

from .deepl import DeepLTranslator
from .google_cloud import GoogleCloudTranslator
from .google_free import GoogleFreeTranslator
from .translator import TranslationEngine


ENGINE_NAMES = ("google_free", "google_cloud", "deepl")


def get_translation_engine(
    name: str,
    config: SubtranslateConfig,
    limiter: RateLimiter,
) -> TranslationEngine:
    """
    根据名称返回对应的翻译引擎实例。

    支持：
      - "google_free"  : GoogleFreeTranslator（无需 Key）
      - "google_cloud" : GoogleCloudTranslator（需要 GOOGLE_API_KEY）
      - "deepl"        : DeepLTranslator（需要 DEEPL_API_KEY）

    缺少 Key 或名称未知时抛出 ConfigurationError。
    """
    key = (name or "").strip().lower()
    if key == "google_free":
        return GoogleFreeTranslator(
            limiter,
            base_url=config.google_free_url,
            timeout=config.http_timeout,
            proxies=config.proxies,
        )
    if key == "google_cloud":
        return GoogleCloudTranslator(
            limiter,
            api_key=config.google_api_key,
            url=config.google_cloud_url,
            timeout=config.http_timeout,
            proxies=config.proxies,
        )
    if key == "deepl":
        return DeepLTranslator(
            limiter,
            api_key=config.deepl_api_key,
            url=config.deepl_url,
            timeout=config.http_timeout,
            proxies=config.proxies,
        )
    raise ConfigurationError(f"Unknown translation engine: {name}")
