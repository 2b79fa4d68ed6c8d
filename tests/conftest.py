"""
Pytest configuration and shared fixtures for subtranslate.
"""

import os
import sys
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

# Allow running the suite from a plain checkout (src/ layout)
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from subtranslate.cache import CacheStore
from subtranslate.config import SubtranslateConfig
from subtranslate.errors import BackendError
from subtranslate.orchestrator import TranslationOrchestrator
from subtranslate.ratelimit import RateLimiter
from subtranslate.sources import SubtitleSource
from subtranslate.translate import TranslationEngine


HELLO_SRT = "1\n00:00:01,000 --> 00:00:03,000\nHello\n"


class FakeEngine(TranslationEngine):
    """List-API engine that maps texts through a lookup table or a function."""

    name = "fake"

    def __init__(self, mapping=None, func=None, supports_batch=True, fail=False):
        super().__init__(RateLimiter(min_interval=0, max_concurrent=8))
        self.mapping = mapping or {}
        self.func = func
        self.supports_batch = supports_batch
        self.fail = fail
        self.calls = []
        self._lock = threading.Lock()

    def _one(self, text):
        if self.func is not None:
            return self.func(text)
        return self.mapping.get(text, f"[fr] {text}")

    def translate_batch(self, texts, target_lang):
        with self._lock:
            self.calls.append((list(texts), target_lang))
        if self.fail:
            raise BackendError("engine is down")
        return [self._one(t) for t in texts]


class FakeSource(SubtitleSource):
    """In-memory subtitle source keyed by (imdb_id, lang) -> locator -> text."""

    def __init__(self, locators=None, texts=None, barrier=None):
        super().__init__(RateLimiter(min_interval=0, max_concurrent=8))
        self.locators = locators or {}
        self.texts = texts or {}
        self.barrier = barrier
        self.find_calls = []
        self.fetch_calls = []

    def find(self, imdb_id, season, episode, lang):
        self.find_calls.append((imdb_id, season, episode, lang))
        return self.locators.get((imdb_id, lang))

    def fetch(self, locator):
        self.fetch_calls.append(locator)
        if self.barrier is not None:
            self.barrier.wait(timeout=5)
        return self.texts[locator]


@pytest.fixture
def store(tmp_path):
    return CacheStore(tmp_path / "cache.sqlite")


@pytest.fixture
def limiter():
    return RateLimiter(min_interval=0, max_concurrent=4)


@pytest.fixture
def config(tmp_path):
    return SubtranslateConfig(
        db_path=tmp_path / "cache.sqlite",
        engine="fake",
        subtitle_source="direct",
        default_to="fr",
        fallback_lang="en",
        rate_min_interval=0,
        rate_max_concurrent=4,
        workers=2,
        pending_timeout=600,
    )


@pytest.fixture
def engine():
    return FakeEngine(mapping={"Hello": "Bonjour"})


@pytest.fixture
def source():
    return FakeSource(
        locators={("tt0944947", "en"): "https://subs.example/en.srt"},
        texts={"https://subs.example/en.srt": HELLO_SRT},
    )


@pytest.fixture
def make_orchestrator(config, store, limiter):
    created = []

    def factory(source, engine, **overrides):
        for name, value in overrides.items():
            setattr(config, name, value)
        calls = []

        def engine_factory(name, cfg, lim):
            calls.append(name)
            if callable(engine) and not isinstance(engine, TranslationEngine):
                return engine(name)
            return engine

        orch = TranslationOrchestrator(
            config,
            store=store,
            source=source,
            limiter=limiter,
            executor=ThreadPoolExecutor(max_workers=2),
            engine_factory=engine_factory,
        )
        orch.engine_factory_calls = calls
        created.append(orch)
        return orch

    yield factory

    for orch in created:
        orch.shutdown(wait=True)
