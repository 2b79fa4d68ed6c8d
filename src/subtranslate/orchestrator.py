from __future__ import annotations

import hashlib
import logging
import threading
import time
import uuid
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .cache import (
    CacheEntry,
    CacheKey,
    CacheStore,
    Job,
    STATUS_DONE,
    STATUS_ERROR,
    STATUS_PENDING,
    STATUS_RUNNING,
)
from .config import SubtranslateConfig
from .errors import BackendError, SubtitleNotFoundError
from .ratelimit import RateLimiter
from .sources import SubtitleSource, get_subtitle_source
from .subtitles import SubtitleItem, make_placeholder_srt, parse_srt, subtitle_items_to_srt
from .translate import BatchTranslator, TranslationEngine, get_translation_engine


logger = logging.getLogger(__name__)

RESULT_CACHED = "cached"
RESULT_NATIVE = "native"
RESULT_PENDING = "pending"

EngineFactory = Callable[[str, SubtranslateConfig, RateLimiter], TranslationEngine]


@dataclass
class TranslateResult:
    """
    一次请求的同步返回值。

    status:
      - "cached"  : 命中已完成的缓存；
      - "native"  : 找到了目标语言的原生字幕，直接返回；
      - "pending" : 翻译任务在后台进行，srt 为占位字幕。
    """

    status: str
    srt: str
    cache_key: str
    job_id: Optional[str] = None


def hash_text(text: str) -> str:
    return hashlib.sha1((text or "").encode("utf-8")).hexdigest()


def primary_subtag(lang: str) -> str:
    """
    zh-CN -> zh，pt_BR -> pt。
    """
    return lang.replace("_", "-").split("-")[0].strip().lower()


def translate_subtitle_items(
    items: List[SubtitleItem],
    engine: TranslationEngine,
    target_lang: str,
    max_chars: int = 4000,
    on_batch: Optional[Callable[[int, int], None]] = None,
) -> List[SubtitleItem]:
    """
    分批翻译字幕条目并回填，返回新的条目列表（时间轴与序号不变）。

    某条字幕译文为空时保留原文，不输出空字幕。
    若没有任何条目，或所有批次都失败，抛出 BackendError。
    """
    if not items:
        raise BackendError("source subtitle contains no parsable cues")

    batcher = BatchTranslator(engine, max_chars=max_chars)
    translations = batcher.translate(
        [item.text for item in items], target_lang, on_batch=on_batch
    )
    stats = batcher.stats
    if stats.batches and stats.failed == stats.batches:
        raise BackendError(f"all {stats.batches} translation batches failed ({engine.name})")

    return [
        item.with_text(translated if translated else item.text)
        for item, translated in zip(items, translations)
    ]


def translate_srt_text(
    text: str,
    engine: TranslationEngine,
    target_lang: str,
    max_chars: int = 4000,
    on_batch: Optional[Callable[[int, int], None]] = None,
) -> str:
    """
    解析 SRT -> 分批翻译 -> 回填 -> 序列化。
    """
    out_items = translate_subtitle_items(
        parse_srt(text), engine, target_lang, max_chars=max_chars, on_batch=on_batch
    )
    return subtitle_items_to_srt(out_items)


class TranslationOrchestrator:
    """
    翻译缓存与任务调度的核心状态机。

    每个 CacheKey 的状态：
      未缓存 -> 原生字幕（直接返回） | pending（已创建任务） -> done | error

    - done 且译文非空：直接返回缓存，不发任何网络请求；
    - pending 且未超时：返回占位字幕，不重复创建任务；
    - error 或 pending 超时：允许重新触发任务。

    后台任务提交到线程池后立即返回，结果只通过 CacheStore 传递。
    """

    def __init__(
        self,
        config: SubtranslateConfig,
        store: CacheStore | None = None,
        source: SubtitleSource | None = None,
        limiter: RateLimiter | None = None,
        executor: Executor | None = None,
        engine_factory: EngineFactory | None = None,
    ) -> None:
        self.config = config
        self.limiter = limiter or RateLimiter(
            min_interval=config.rate_min_interval,
            max_concurrent=config.rate_max_concurrent,
        )
        self.store = store or CacheStore(config.db_path)
        self.source = source or get_subtitle_source(config, self.limiter, self.store)
        self._engine_factory: EngineFactory = engine_factory or get_translation_engine
        self._executor = executor or ThreadPoolExecutor(
            max_workers=config.workers,
            thread_name_prefix="subtranslate-job",
        )
        self._futures: Dict[str, Future] = {}
        self._futures_lock = threading.Lock()

    def _is_live_pending(self, entry: CacheEntry) -> bool:
        if entry.status != STATUS_PENDING:
            return False
        # 本进程中仍在排队或执行的任务不算失联，无论 updated_at 多旧
        if entry.job_id and self._has_future(entry.job_id):
            return True
        return time.time() - entry.updated_at < self.config.pending_timeout

    def _has_future(self, job_id: str) -> bool:
        with self._futures_lock:
            return job_id in self._futures

    def _pending_result(
        self,
        key: str,
        to: str,
        engine: str,
        job_id: Optional[str],
    ) -> TranslateResult:
        note = (
            f"Translating subtitles to {to} (engine={engine}). Job id={job_id or 'unknown'}. "
            "Please re-open the subtitle list after ~20-60s to load the completed translation."
        )
        placeholder = make_placeholder_srt(
            note, duration_ms=self.config.placeholder_seconds * 1000
        )
        return TranslateResult(RESULT_PENDING, placeholder, key, job_id)

    def _find(
        self,
        imdb_id: str,
        season: Optional[str],
        episode: Optional[str],
        lang: str,
    ) -> Optional[str]:
        try:
            return self.source.find(imdb_id, season, episode, lang)
        except BackendError as exc:
            logger.warning("subtitle search failed (%s, lang=%s): %s", imdb_id, lang, exc)
            return None

    def request(
        self,
        imdb_id: Optional[str] = None,
        season: Optional[str | int] = None,
        episode: Optional[str | int] = None,
        source_url: Optional[str] = None,
        to: Optional[str] = None,
        engine: Optional[str] = None,
    ) -> TranslateResult:
        """
        处理一次字幕翻译请求，永远不会等待后台翻译完成。

        找不到任何源字幕时抛出 SubtitleNotFoundError；
        引擎名未知或缺少凭据时抛出 ConfigurationError。
        """
        to_lang = (to or self.config.default_to).strip()
        engine_name = (engine or self.config.engine).strip().lower()
        if imdb_id:
            cache_key = CacheKey.for_content(imdb_id, season, episode, to_lang, engine_name)
        elif source_url:
            cache_key = CacheKey.for_source(source_url, to_lang, engine_name)
        else:
            raise ValueError("missing imdb_id or source_url")
        key = str(cache_key)

        # 1) 缓存命中的快速路径
        entry = self.store.get_entry(key)
        if entry is not None:
            if entry.is_done:
                return TranslateResult(RESULT_CACHED, entry.srt, key, entry.job_id)
            if self._is_live_pending(entry):
                return self._pending_result(key, to_lang, engine_name, entry.job_id)

        # 在任何网络请求之前确认引擎可用（缺少 Key 直接失败）
        translator = self._engine_factory(engine_name, self.config, self.limiter)

        if cache_key.imdb_id:
            # 2) 优先目标语言的原生字幕
            native_locator = self._find(
                cache_key.imdb_id,
                cache_key.season,
                cache_key.episode,
                primary_subtag(to_lang),
            )
            if native_locator:
                native_text = self.source.fetch(native_locator)
                if native_text.strip():
                    self.store.put_entry(
                        CacheEntry(
                            key=key,
                            to_lang=to_lang,
                            engine=engine_name,
                            source_hash=hash_text(native_text),
                            srt=native_text,
                            status=STATUS_DONE,
                        )
                    )
                    logger.info("native %s subtitle served for %s", to_lang, key)
                    return TranslateResult(RESULT_NATIVE, native_text, key)
                logger.warning("native subtitle for %s is empty, falling back", key)

            # 3) 回退语言（通常是英文）作为翻译源
            source_locator = self._find(
                cache_key.imdb_id,
                cache_key.season,
                cache_key.episode,
                self.config.fallback_lang,
            )
            if not source_locator:
                raise SubtitleNotFoundError(
                    f"no subtitles found for {cache_key.imdb_id} "
                    f"({primary_subtag(to_lang)} / {self.config.fallback_lang})"
                )
            source_text = self.source.fetch(source_locator)
        else:
            source_text = self.source.fetch(cache_key.source_url or "")

        # 4) 抢占 pending 标记，保证同一 key 同时最多一个任务
        job_id = uuid.uuid4().hex
        pending = CacheEntry(
            key=key,
            to_lang=to_lang,
            engine=engine_name,
            source_hash=hash_text(source_text),
            srt="",
            status=STATUS_PENDING,
            job_id=job_id,
        )
        if not self.store.claim_pending(pending, stale_after=self.config.pending_timeout):
            current = self.store.get_entry(key)
            if current is not None and current.is_done:
                return TranslateResult(RESULT_CACHED, current.srt, key, current.job_id)
            return self._pending_result(
                key, to_lang, engine_name, current.job_id if current else None
            )

        # 5) 后台执行翻译，6) 立即返回占位字幕
        self.store.create_job(key, job_id)
        self._submit(job_id, key, source_text, to_lang, engine_name, translator)
        logger.info("translation job %s submitted for %s", job_id, key)
        return self._pending_result(key, to_lang, engine_name, job_id)

    def _submit(
        self,
        job_id: str,
        key: str,
        source_text: str,
        to_lang: str,
        engine_name: str,
        translator: TranslationEngine,
    ) -> None:
        future = self._executor.submit(
            self._run_job, job_id, key, source_text, to_lang, engine_name, translator
        )
        with self._futures_lock:
            self._futures[job_id] = future
        future.add_done_callback(lambda _f: self._forget(job_id))

    def _forget(self, job_id: str) -> None:
        with self._futures_lock:
            self._futures.pop(job_id, None)

    def _run_job(
        self,
        job_id: str,
        key: str,
        source_text: str,
        to_lang: str,
        engine_name: str,
        translator: TranslationEngine,
    ) -> None:
        source_hash = hash_text(source_text)

        def heartbeat(_done: int = 0, _total: int = 0) -> None:
            # 刷新 pending 条目的 updated_at，避免长任务被其它请求判为失联
            self.store.touch_entry(key, job_id)

        try:
            self.store.update_job_status(job_id, STATUS_RUNNING)
            heartbeat()
            final_srt = translate_srt_text(
                source_text,
                translator,
                to_lang,
                max_chars=self.config.max_batch_chars,
                on_batch=heartbeat,
            )
            self.store.put_entry(
                CacheEntry(
                    key=key,
                    to_lang=to_lang,
                    engine=engine_name,
                    source_hash=source_hash,
                    srt=final_srt,
                    status=STATUS_DONE,
                    job_id=job_id,
                )
            )
            self.store.update_job_status(job_id, STATUS_DONE, "completed")
            logger.info("translation job %s done (%s)", job_id, key)
        except Exception as exc:
            logger.error("translation job %s failed: %s", job_id, exc, exc_info=True)
            self.store.put_entry(
                CacheEntry(
                    key=key,
                    to_lang=to_lang,
                    engine=engine_name,
                    source_hash=source_hash,
                    srt="",
                    status=STATUS_ERROR,
                    job_id=job_id,
                )
            )
            self.store.update_job_status(job_id, STATUS_ERROR, str(exc))

    def get_job(self, job_id: str) -> Optional[Job]:
        return self.store.get_job(job_id)

    def wait(self, job_id: str, timeout: float | None = None) -> Optional[Job]:
        """
        阻塞等待本进程内提交的任务结束，然后返回任务记录。

        仅供 CLI 与测试使用；请求路径从不调用。
        """
        with self._futures_lock:
            future = self._futures.get(job_id)
        if future is not None:
            wait_futures([future], timeout=timeout)
        return self.store.get_job(job_id)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
