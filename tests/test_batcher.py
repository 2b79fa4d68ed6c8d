from subtranslate.errors import BackendError
from subtranslate.translate import BatchTranslator
from subtranslate.translate.batcher import BATCH_DELIMITER, pick_batch_marker, split_proportionally

from conftest import FakeEngine


def test_output_aligned_with_input():
    engine = FakeEngine(func=str.upper)
    out = BatchTranslator(engine).translate(["one", "two", "three"], "fr")
    assert out == ["ONE", "TWO", "THREE"]


def test_empty_texts_are_never_sent():
    engine = FakeEngine(func=str.upper)
    out = BatchTranslator(engine).translate(["", "   ", "x"], "fr")
    assert out == ["", "", "X"]
    assert engine.calls == [(["x"], "fr")]


def test_batches_respect_char_budget():
    engine = FakeEngine(func=str.upper)
    batcher = BatchTranslator(engine, max_chars=10)
    out = batcher.translate(["aaaa", "bbbb", "cccc"], "fr")
    assert out == ["AAAA", "BBBB", "CCCC"]
    assert [texts for texts, _ in engine.calls] == [["aaaa", "bbbb"], ["cccc"]]
    assert batcher.stats.batches == 2
    assert batcher.stats.failed == 0


def test_oversized_text_gets_its_own_batch():
    engine = FakeEngine(func=str.upper)
    BatchTranslator(engine, max_chars=5).translate(["a" * 20, "b"], "fr")
    assert [texts for texts, _ in engine.calls] == [["a" * 20], ["b"]]


def test_failed_batch_leaves_gaps_and_continues():
    def flaky(text):
        if text == "boom":
            raise BackendError("rate limited")
        return text.upper()

    engine = FakeEngine(func=flaky)
    batcher = BatchTranslator(engine, max_chars=5)
    out = batcher.translate(["ok", "boom", "fine"], "fr")
    assert out == ["OK", "", "FINE"]
    assert batcher.stats.batches == 3
    assert batcher.stats.failed == 1


def test_short_engine_response_is_padded():
    class ShortEngine(FakeEngine):
        def translate_batch(self, texts, target_lang):
            return ["only one"]

    out = BatchTranslator(ShortEngine()).translate(["a", "b", "c"], "fr")
    assert out == ["only one", "", ""]


def test_joined_mode_splits_on_delimiter():
    engine = FakeEngine(func=str.upper, supports_batch=False)
    out = BatchTranslator(engine).translate(["hello", "two\nlines"], "fr")
    assert out == ["HELLO", "TWO\nLINES"]
    assert engine.calls == [(["hello" + BATCH_DELIMITER + "two\nlines"], "fr")]


def test_joined_mode_tolerates_delimiter_whitespace():
    engine = FakeEngine(func=lambda _t: "Un ### \n Deux", supports_batch=False)
    out = BatchTranslator(engine).translate(["One", "Two"], "fr")
    assert out == ["Un", "Deux"]


def test_joined_mode_falls_back_to_proportional_split():
    engine = FakeEngine(func=lambda _t: "ABCDEF", supports_batch=False)
    out = BatchTranslator(engine).translate(["x", "y", "z"], "fr")
    assert out == ["AB", "CD", "EF"]


def test_split_proportionally_last_part_takes_remainder():
    assert split_proportionally("ABCDEFG", 3) == ["AB", "CD", "EFG"]
    assert split_proportionally("", 2) == ["", ""]
    assert split_proportionally("abc", 0) == []


def test_joined_mode_avoids_marker_present_in_text():
    engine = FakeEngine(func=lambda t: t, supports_batch=False)
    batcher = BatchTranslator(engine)
    out = batcher.translate(["### Music ###", "Hello there", "Goodbye"], "fr")
    assert out == ["### Music ###", "Hello there", "Goodbye"]
    sent = engine.calls[0][0][0]
    assert sent == "### Music ###\n@@@\nHello there\n@@@\nGoodbye"


def test_pick_batch_marker_skips_every_colliding_marker():
    assert pick_batch_marker(["plain"]) == "###"
    assert pick_batch_marker(["###", "@@@"]) == "%%%"
    crowded = ["### @@@ %%% ~~~", "[[0]]"]
    assert pick_batch_marker(crowded) == "[[1]]"


def test_on_batch_called_after_every_batch():
    def flaky(text):
        if text == "boom":
            raise BackendError("rate limited")
        return text

    progress = []
    BatchTranslator(FakeEngine(func=flaky), max_chars=5).translate(
        ["ok", "boom", "fine"], "fr", on_batch=lambda done, total: progress.append((done, total))
    )
    assert progress == [(1, 3), (2, 3), (3, 3)]
