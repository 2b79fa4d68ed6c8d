from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional

from .translator import TranslationEngine


logger = logging.getLogger(__name__)

BATCH_MARKER = "###"
BATCH_DELIMITER = f"\n{BATCH_MARKER}\n"
# 默认分隔符与字幕正文冲突时依次尝试的备选标记
_FALLBACK_MARKERS = ("@@@", "%%%", "~~~")


@dataclass
class BatchStats:
    batches: int = 0
    failed: int = 0


def split_proportionally(joined: str, count: int) -> List[str]:
    """
    拆分数量对不上时的降级策略：按平均长度把整段译文切成 count 份。

    逐条对齐的精度会丢失，但总比整批失败好。最后一份吸收剩余的尾部字符。
    """
    if count <= 0:
        return []
    avg = max(1, len(joined) // count)
    parts: List[str] = []
    for i in range(count):
        start = i * avg
        end = len(joined) if i == count - 1 else start + avg
        parts.append(joined[start:end].strip())
    if len(parts) < count:
        parts.extend([""] * (count - len(parts)))
    return parts[:count]


def pick_batch_marker(batch: List[str]) -> str:
    """
    选出一个在本批所有文本中都不出现的分隔标记。

    优先使用 "###"；若正文里已有该字符串（如 "### Music ###"），依次尝试备选标记，
    最后退到带编号的 "[[n]]" 形式，直到找到不冲突的为止。
    """
    for marker in (BATCH_MARKER,) + _FALLBACK_MARKERS:
        if not any(marker in text for text in batch):
            return marker
    n = 0
    while True:
        marker = f"[[{n}]]"
        if not any(marker in text for text in batch):
            return marker
        n += 1


class BatchTranslator:
    """
    在字符预算内把字幕文本分批交给翻译引擎，并按原始下标回填结果。

    - 空字符串不发请求，直接得到空译文；
    - 每批总字符数（每条额外计 1 个分隔符）不超过 max_chars；
    - 某一批失败时，该批译文保持为空，继续处理后续批次；
      用原文替代空译文是调用方（Orchestrator）的策略，这里不做。
    """

    def __init__(self, engine: TranslationEngine, max_chars: int = 4000) -> None:
        self.engine = engine
        self.max_chars = max(1, max_chars)
        self.stats = BatchStats()

    def _group(self, texts: List[str]) -> List[List[int]]:
        groups: List[List[int]] = []
        current: List[int] = []
        current_len = 0
        for idx, text in enumerate(texts):
            if not text:
                continue
            t_len = len(text) + 1
            # 保证每组至少有一条，超长的单条文本单独成组
            if current and current_len + t_len > self.max_chars:
                groups.append(current)
                current = []
                current_len = 0
            current.append(idx)
            current_len += t_len
        if current:
            groups.append(current)
        return groups

    def _translate_joined(self, batch: List[str], target_lang: str) -> List[str]:
        marker = pick_batch_marker(batch)
        joined_source = f"\n{marker}\n".join(batch)
        translated = self.engine.translate_batch([joined_source], target_lang)
        joined = translated[0] if translated else ""
        # 引擎可能改写分隔符两侧的空白与换行
        splitter = re.compile(r"\s*" + re.escape(marker) + r"\s*")
        parts = [p.strip() for p in splitter.split(joined.strip())]
        if len(parts) == len(batch):
            return parts
        logger.warning(
            "%s returned %d segments for a batch of %d, falling back to proportional split",
            self.engine.name,
            len(parts),
            len(batch),
        )
        return split_proportionally(joined.strip(), len(batch))

    def _translate_group(self, batch: List[str], target_lang: str) -> List[str]:
        if self.engine.supports_batch:
            out = self.engine.translate_batch(batch, target_lang)
        else:
            out = self._translate_joined(batch, target_lang)
        out = [(o or "").strip() for o in out[: len(batch)]]
        if len(out) < len(batch):
            out.extend([""] * (len(batch) - len(out)))
        return out

    def translate(
        self,
        texts: List[str],
        target_lang: str,
        on_batch: Optional[Callable[[int, int], None]] = None,
    ) -> List[str]:
        """
        on_batch(done, total) 在每一批结束后（无论成功与否）被调用一次。
        """
        self.stats = BatchStats()
        cleaned = [(t or "").strip() for t in texts]
        results: List[str] = ["" for _ in cleaned]

        # 批次按顺序串行发送，结果自然保持原始字幕顺序
        groups = self._group(cleaned)
        for group in groups:
            batch = [cleaned[i] for i in group]
            self.stats.batches += 1
            try:
                translated = self._translate_group(batch, target_lang)
            except Exception as exc:
                self.stats.failed += 1
                logger.warning(
                    "batch translate error (engine=%s, first index=%d, size=%d): %s",
                    self.engine.name,
                    group[0],
                    len(group),
                    exc,
                )
                translated = []
            for i, text in zip(group, translated):
                results[i] = text
            if on_batch is not None:
                on_batch(self.stats.batches, len(groups))
        return results
