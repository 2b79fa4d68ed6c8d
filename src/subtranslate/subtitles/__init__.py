from __future__ import annotations

from .types import SubtitleItem
from .srt import (
    make_placeholder_srt,
    ms_to_srt_time,
    parse_srt,
    srt_time_to_ms,
    subtitle_items_to_srt,
    write_srt,
)

__all__ = [
    "SubtitleItem",
    "make_placeholder_srt",
    "ms_to_srt_time",
    "parse_srt",
    "srt_time_to_ms",
    "subtitle_items_to_srt",
    "write_srt",
]
