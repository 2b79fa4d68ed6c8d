from __future__ import annotations

from .config import SubtranslateConfig
from .orchestrator import (
    TranslateResult,
    TranslationOrchestrator,
    translate_srt_text,
    translate_subtitle_items,
)

__all__ = [
    "SubtranslateConfig",
    "TranslateResult",
    "TranslationOrchestrator",
    "translate_srt_text",
    "translate_subtitle_items",
]

__version__ = "0.1.0"
