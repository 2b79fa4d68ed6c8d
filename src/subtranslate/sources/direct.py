from __future__ import annotations

from typing import Optional

from .base import SubtitleSource


class DirectSource(SubtitleSource):
    """
    不做目录查找的字幕源：直接使用宿主平台已经提供的字幕地址。

    find() 总是返回 None，因此「优先目标语言原生字幕」这一步会被跳过，
    调用方需要通过 source_url 提供待翻译的字幕。
    """

    def find(
        self,
        imdb_id: str,
        season: Optional[str],
        episode: Optional[str],
        lang: str,
    ) -> Optional[str]:
        return None
