from __future__ import annotations

from .translator import TranslationEngine
from .google_free import GoogleFreeTranslator
from .google_cloud import GoogleCloudTranslator
from .deepl import DeepLTranslator, normalize_deepl_lang
from .batcher import BatchTranslator
from .factory import ENGINE_NAMES, get_translation_engine

__all__ = [
    "TranslationEngine",
    "GoogleFreeTranslator",
    "GoogleCloudTranslator",
    "DeepLTranslator",
    "normalize_deepl_lang",
    "BatchTranslator",
    "ENGINE_NAMES",
    "get_translation_engine",
]
