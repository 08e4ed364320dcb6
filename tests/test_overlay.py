import random

import pytest

from viralcut.intelligence.models import ViralMoment
from viralcut.overlay.models import SubtitleCue
from viralcut.overlay.subtitle import (
    build_subtitle_cues,
    format_srt_time,
    render_srt,
    select_caption_segments,
    select_emoji,
    write_srt,
)
from viralcut.transcription.models import TranscriptSegment


@pytest.fixture
def moment():
    return ViralMoment(start=10.0, end=25.0, score=0.8, reason="Engaging question", text="...")


@pytest.fixture
def segments():
    return [
        TranscriptSegment(text="before the clip", start=0.0, end=10.0),
        TranscriptSegment(text="Why does this work?", start=10.0, end=15.0),
        TranscriptSegment(text="nobody expected it", start=15.0, end=25.0),
        TranscriptSegment(text="straddles the end", start=24.0, end=30.0),
    ]


@pytest.fixture
def stub_rng(mocker):
    rng = mocker.Mock()
    rng.choice.side_effect = lambda options: options[0]
    rng.random.return_value = 0.9
    return rng


def test_select_caption_segments_uses_inclusive_containment(segments, moment):
    selected = select_caption_segments(segments, moment)
    assert [s.text for s in selected] == ["Why does this work?", "nobody expected it"]


def test_format_srt_time():
    assert format_srt_time(0) == "00:00:00,000"
    assert format_srt_time(3661.5) == "01:01:01,500"
    assert format_srt_time(59.999) == "00:00:59,999"


def test_select_emoji_prefers_emotion(stub_rng):
    assert select_emoji("plain", ["curiosity", "excitement"], stub_rng) == "🤔"


def test_select_emoji_falls_back_to_punctuation(stub_rng):
    assert select_emoji("Look at this!", [], stub_rng) == "‼️"
    assert select_emoji("Is it real?", [], stub_rng) == "🤔"
    assert select_emoji("I love it", [], stub_rng) == "❤️"
    assert select_emoji("so bad", [], stub_rng) == "😤"
    assert select_emoji("nothing here", [], stub_rng) == ""


def test_build_cues_are_relative_to_moment(segments, moment, stub_rng):
    cues = build_subtitle_cues(segments, moment, add_emojis=False, rng=stub_rng)

    assert [(c.index, c.start, c.end) for c in cues] == [(1, 0.0, 5.0), (2, 5.0, 15.0)]
    assert cues[0].text == "Why does this work?"


def test_build_cues_decorates_when_coin_flip_passes(segments, moment, stub_rng):
    cues = build_subtitle_cues(segments, moment, add_emojis=True, rng=stub_rng)
    assert cues[0].text == "🤔 Why does this work?"
    # No emotion, no punctuation, no sentiment word
    assert cues[1].text == "nobody expected it"


def test_build_cues_skips_emoji_when_coin_flip_fails(segments, moment, stub_rng):
    stub_rng.random.return_value = 0.2
    cues = build_subtitle_cues(segments, moment, add_emojis=True, rng=stub_rng)
    assert cues[0].text == "Why does this work?"


def test_build_cues_seeded_rng_is_reproducible(segments):
    moment = ViralMoment(start=10.0, end=25.0, score=0.8, reason="r", text="t", emotions=["surprise"])
    first = build_subtitle_cues(segments, moment, rng=random.Random(7))
    second = build_subtitle_cues(segments, moment, rng=random.Random(7))
    assert first == second


def test_build_cues_empty_when_nothing_contained(segments):
    moment = ViralMoment(start=11.0, end=14.0, score=0.8, reason="r", text="t")
    assert build_subtitle_cues(segments, moment) == []


def test_render_and_write_srt(tmp_path):
    cues = [
        SubtitleCue(index=1, start=0.0, end=2.5, text="Hello"),
        SubtitleCue(index=2, start=2.5, end=61.25, text="World"),
    ]
    expected = "1\n00:00:00,000 --> 00:00:02,500\nHello\n\n2\n00:00:02,500 --> 00:01:01,250\nWorld\n\n"
    assert render_srt(cues) == expected

    out = write_srt(cues, str(tmp_path / "clip.srt"))
    assert (tmp_path / "clip.srt").read_text(encoding="utf-8") == expected
    assert out == str(tmp_path / "clip.srt")


def test_render_srt_empty():
    assert render_srt([]) == ""
