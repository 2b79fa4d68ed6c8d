from subtranslate.subtitles import (
    SubtitleItem,
    make_placeholder_srt,
    ms_to_srt_time,
    parse_srt,
    srt_time_to_ms,
    subtitle_items_to_srt,
    write_srt,
)


SAMPLE = (
    "1\n00:00:01,000 --> 00:00:03,000\nHello\n\n"
    "2\n00:00:04,500 --> 00:00:06,000\nHow are you?\nFine.\n"
)


def test_time_conversion():
    assert srt_time_to_ms("01:02:03,456") == 3723456
    assert srt_time_to_ms("00:00:01.250") == 1250
    assert ms_to_srt_time(3723456) == "01:02:03,456"
    assert ms_to_srt_time(-5) == "00:00:00,000"


def test_bad_timestamp_parses_as_zero():
    assert srt_time_to_ms("garbage") == 0
    assert srt_time_to_ms("") == 0


def test_parse_basic_cues():
    items = parse_srt(SAMPLE)
    assert [i.index for i in items] == ["1", "2"]
    assert items[0].start == "00:00:01,000"
    assert items[0].end == "00:00:03,000"
    assert items[0].text == "Hello"
    assert items[1].text == "How are you?\nFine."
    assert items[1].start_ms == 4500


def test_parse_handles_crlf_and_bom():
    raw = "\ufeff" + SAMPLE.replace("\n", "\r\n")
    items = parse_srt(raw)
    assert len(items) == 2
    assert items[0].index == "1"
    assert items[1].text == "How are you?\nFine."


def test_parse_drops_malformed_blocks():
    raw = (
        "just some noise\n\n"
        "7\n\n"
        "1\n00:00:01,000 --> 00:00:02,000\nKept\n\n"
        "2\nno timing line here\nstill nothing\n"
    )
    items = parse_srt(raw)
    assert len(items) == 1
    assert items[0].text == "Kept"


def test_parse_sorts_by_start_time():
    raw = (
        "2\n00:00:05,000 --> 00:00:06,000\nSecond\n\n"
        "1\n00:00:01,000 --> 00:00:02,000\nFirst\n"
    )
    items = parse_srt(raw)
    assert [i.text for i in items] == ["First", "Second"]


def test_parse_empty_input():
    assert parse_srt("") == []
    assert parse_srt("\n\n  \n") == []


def test_serialize_uses_position_when_id_missing():
    items = [
        SubtitleItem(index="", start="00:00:01,000", end="00:00:02,000", text="A"),
        SubtitleItem(index="", start="00:00:03,000", end="00:00:04,000", text="B"),
    ]
    out = subtitle_items_to_srt(items)
    assert out == (
        "1\n00:00:01,000 --> 00:00:02,000\nA\n\n"
        "2\n00:00:03,000 --> 00:00:04,000\nB\n"
    )


def test_parse_then_serialize_keeps_structure():
    assert subtitle_items_to_srt(parse_srt(SAMPLE)) == SAMPLE


def test_placeholder_is_single_cue():
    out = make_placeholder_srt("Translating...\nplease wait", duration_ms=30_000)
    items = parse_srt(out)
    assert len(items) == 1
    assert items[0].start == "00:00:00,000"
    assert items[0].end == "00:00:30,000"
    assert items[0].text == "Translating... please wait"


def test_write_srt(tmp_path):
    items = parse_srt(SAMPLE)
    path = write_srt(items, tmp_path / "out" / "movie.fr.srt")
    assert path.read_text(encoding="utf-8") == SAMPLE


def test_round_trip_with_unsorted_and_irregular_cues():
    raw = (
        "intro\n00:00:09,000 --> 00:00:10,500\nLast line\nsecond row\n\n"
        "00:00:01,000 --> 00:00:02,000\nNo id here\n\n"
        "3\n00:00:05,000 --> 00:00:06,000\n- Hi\n- Hello\n"
    )
    first = parse_srt(raw)
    second = parse_srt(subtitle_items_to_srt(first))

    assert len(second) == len(first) == 3
    assert [i.text for i in second] == [i.text for i in first]
    assert [(i.start, i.end) for i in second] == [(i.start, i.end) for i in first]
    assert [i.text for i in first] == ["No id here", "- Hi\n- Hello", "Last line\nsecond row"]
    assert second[2].index == "intro"
    assert second[0].index == "1"


def test_serialize_collapses_blank_lines_inside_text():
    items = [
        SubtitleItem(index="1", start="00:00:01,000", end="00:00:02,000", text="Bonjour\n\nle monde"),
        SubtitleItem(index="2", start="00:00:03,000", end="00:00:04,000", text="Salut\n \n\ntoi"),
    ]
    reparsed = parse_srt(subtitle_items_to_srt(items))
    assert [i.text for i in reparsed] == ["Bonjour\nle monde", "Salut\ntoi"]
