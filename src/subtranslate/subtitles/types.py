from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass
class SubtitleItem:
    """
    单条字幕项，对应 SRT 中的一个时间轴块。

    start / end 保留原始时间戳字符串，start_ms 仅用于排序；
    index 可能为空或非数字，序列化时再补齐。
    """

    index: str
    start: str
    end: str
    text: str
    start_ms: int = 0

    def with_text(self, text: str) -> "SubtitleItem":
        return replace(self, text=text)
