from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, List

from .types import SubtitleItem


TIME_SEPARATOR = "-->"

_TIME_PATTERN = re.compile(r"(\d+):(\d{2}):(\d{2})[,.](\d{3})")
_BLOCK_SPLIT_PATTERN = re.compile(r"\n[ \t]*\n")
_BLANK_LINES_PATTERN = re.compile(r"\n\s*\n")


def srt_time_to_ms(value: str) -> int:
    """
    将 "HH:MM:SS,mmm" 解析为毫秒数。

    匹配失败时返回 0 而不是抛异常：单个损坏的时间戳不应导致整份字幕解析失败。
    """
    if not value:
        return 0
    m = _TIME_PATTERN.search(value)
    if not m:
        return 0
    h, mi, s, ms = (int(g) for g in m.groups())
    return ((h * 60 + mi) * 60 + s) * 1000 + ms


def ms_to_srt_time(ms: int) -> str:
    if ms < 0:
        ms = 0
    total_seconds, millis = divmod(int(ms), 1000)
    total_minutes, s = divmod(total_seconds, 60)
    h, m = divmod(total_minutes, 60)
    return f"{h:02d}:{m:02d}:{s:02d},{millis:03d}"


def parse_srt(raw: str) -> List[SubtitleItem]:
    """
    宽松的 SRT 解析器。

    - 按空行切分为块，每块内忽略空行；
    - 第一行包含 "-->" 的为时间轴行，其之前的行拼接为序号，之后的行为正文；
    - 少于 2 个非空行或找不到时间轴行的块直接丢弃，不抛异常；
    - 结果按开始时间升序（稳定）排序，源文件中的乱序会被纠正。
    """
    if not raw:
        return []
    text = raw.replace("\r\n", "\n").replace("\r", "\n").lstrip("\ufeff")

    items: List[SubtitleItem] = []
    for block in _BLOCK_SPLIT_PATTERN.split(text):
        lines = [line for line in block.split("\n") if line.strip()]
        if len(lines) < 2:
            continue
        time_idx = next(
            (i for i, line in enumerate(lines) if TIME_SEPARATOR in line), -1
        )
        if time_idx == -1:
            continue
        ident = " ".join(lines[:time_idx]).strip()
        start, _, end = lines[time_idx].strip().partition(TIME_SEPARATOR)
        body = "\n".join(lines[time_idx + 1 :]).strip()
        start = start.strip()
        items.append(
            SubtitleItem(
                index=ident,
                start=start,
                end=end.strip(),
                text=body,
                start_ms=srt_time_to_ms(start),
            )
        )

    items.sort(key=lambda item: item.start_ms)
    return items


def subtitle_items_to_srt(items: Iterable[SubtitleItem]) -> str:
    blocks: list[str] = []
    for pos, item in enumerate(items, start=1):
        ident = item.index or str(pos)
        # 正文中的空行会把一条字幕拆成两块，写出前合并掉
        text = _BLANK_LINES_PATTERN.sub("\n", item.text.strip())
        blocks.append(f"{ident}\n{item.start} {TIME_SEPARATOR} {item.end}\n{text}\n")
    return "\n".join(blocks)


def make_placeholder_srt(note: str, duration_ms: int = 30_000) -> str:
    """
    生成只有一条字幕的占位 SRT，在翻译任务完成前返回给调用方。
    """
    text = " ".join(note.splitlines()).strip()
    item = SubtitleItem(
        index="1",
        start=ms_to_srt_time(0),
        end=ms_to_srt_time(duration_ms),
        text=text,
    )
    return subtitle_items_to_srt([item])


def write_srt(items: Iterable[SubtitleItem], path: str | Path) -> Path:
    srt_text = subtitle_items_to_srt(items)
    out_path = Path(path).expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(srt_text, encoding="utf-8")
    return out_path
