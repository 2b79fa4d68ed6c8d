from __future__ import annotations

from .base import SubtitleSource
from .direct import DirectSource
from .opensubtitles import OpenSubtitlesSource
from .factory import get_subtitle_source

__all__ = ["SubtitleSource", "DirectSource", "OpenSubtitlesSource", "get_subtitle_source"]
