import time

from subtranslate.cache import (
    CacheEntry,
    CacheKey,
    CacheStore,
    STATUS_DONE,
    STATUS_ERROR,
    STATUS_PENDING,
    STATUS_RUNNING,
)


def _entry(key="k", status=STATUS_PENDING, srt="", job_id=None, updated_at=0.0):
    return CacheEntry(
        key=key,
        to_lang="fr",
        engine="fake",
        source_hash="h",
        srt=srt,
        status=status,
        updated_at=updated_at,
        job_id=job_id,
    )


def test_cache_key_formats():
    assert str(CacheKey.for_content("tt1", 1, 2, "fr", "deepl")) == "tt1|1|2|fr|deepl"
    assert str(CacheKey.for_content("tt1", None, "", "fr", "deepl")) == "tt1|||fr|deepl"
    assert str(CacheKey.for_source("http://x/a.srt", "fr", "google_free")) == (
        "source|http://x/a.srt|fr|google_free"
    )


def test_entries_survive_reopen(tmp_path):
    path = tmp_path / "nested" / "cache.sqlite"
    CacheStore(path).put_entry(_entry(status=STATUS_DONE, srt="1\nx\n"))
    entry = CacheStore(path).get_entry("k")
    assert entry is not None
    assert entry.is_done
    assert entry.updated_at > 0


def test_put_entry_replaces_whole_row(store):
    store.put_entry(_entry(status=STATUS_PENDING, job_id="j1"))
    store.put_entry(_entry(status=STATUS_DONE, srt="done", job_id=None))
    entry = store.get_entry("k")
    assert entry.status == STATUS_DONE
    assert entry.srt == "done"
    assert entry.job_id is None


def test_done_with_empty_srt_is_not_done(store):
    store.put_entry(_entry(status=STATUS_DONE, srt=""))
    assert not store.get_entry("k").is_done


def test_claim_pending_only_once(store):
    assert store.claim_pending(_entry(job_id="a"), stale_after=600)
    assert not store.claim_pending(_entry(job_id="b"), stale_after=600)
    assert store.get_entry("k").job_id == "a"


def test_claim_pending_over_error(store):
    store.put_entry(_entry(status=STATUS_ERROR, job_id="old"))
    assert store.claim_pending(_entry(job_id="new"), stale_after=600)
    entry = store.get_entry("k")
    assert entry.status == STATUS_PENDING
    assert entry.job_id == "new"


def test_claim_pending_never_overwrites_done(store):
    store.put_entry(_entry(status=STATUS_DONE, srt="translated"))
    assert not store.claim_pending(_entry(job_id="x"), stale_after=600)
    assert store.get_entry("k").srt == "translated"


def test_claim_pending_over_empty_done(store):
    store.put_entry(_entry(status=STATUS_DONE, srt=""))
    assert store.claim_pending(_entry(job_id="x"), stale_after=600)


def test_claim_pending_reclaims_stale_pending(store):
    store.put_entry(_entry(status=STATUS_PENDING, job_id="lost", updated_at=time.time() - 3600))
    assert store.claim_pending(_entry(job_id="fresh"), stale_after=600)
    assert store.get_entry("k").job_id == "fresh"


def test_jobs_lifecycle(store):
    job_id = store.create_job("k")
    job = store.get_job(job_id)
    assert job.status == STATUS_PENDING
    assert job.key == "k"

    store.update_job_status(job_id, STATUS_RUNNING)
    store.update_job_status(job_id, STATUS_ERROR, "engine is down")
    job = store.get_job(job_id)
    assert job.status == STATUS_ERROR
    assert job.message == "engine is down"
    assert job.to_dict()["id"] == job_id

    store.create_job("k", "explicit-id")
    assert store.count_jobs("k") == 2
    assert store.get_job("missing") is None


def test_source_locator_ttl(store):
    store.put_source_locator("tt1|||en", "https://subs.example/en.srt")
    assert store.get_source_locator("tt1|||en", max_age=60) == "https://subs.example/en.srt"
    assert store.get_source_locator("tt1|||en", max_age=0) is None
    assert store.get_source_locator("unknown", max_age=60) is None


def test_purge_stale(store):
    old = time.time() - 10_000
    store.put_entry(_entry(key="err", status=STATUS_ERROR, updated_at=old))
    store.put_entry(_entry(key="done", status=STATUS_DONE, srt="x", updated_at=old))
    finished = store.create_job("done")
    store.update_job_status(finished, STATUS_DONE, "completed")

    assert store.purge_stale(0) == 0
    # 任务刚刚更新过，不会被清理
    removed = store.purge_stale(3600)
    assert removed == 1
    assert store.get_entry("err") is None
    assert store.get_entry("done") is not None
    assert store.get_job(finished) is not None


def test_touch_entry_keeps_running_job_fresh(store):
    store.put_entry(_entry(status=STATUS_PENDING, job_id="a", updated_at=time.time() - 3600))
    assert not store.touch_entry("k", "other-job")
    assert store.claim_pending(_entry(job_id="b"), stale_after=600)

    store.put_entry(_entry(status=STATUS_PENDING, job_id="a", updated_at=time.time() - 3600))
    assert store.touch_entry("k", "a")
    assert not store.claim_pending(_entry(job_id="c"), stale_after=600)
    assert store.get_entry("k").job_id == "a"


def test_touch_entry_ignores_finished_entries(store):
    store.put_entry(_entry(status=STATUS_DONE, srt="x", job_id="a", updated_at=1.0))
    assert not store.touch_entry("k", "a")
    assert store.get_entry("k").updated_at == 1.0
