import json

import pytest

from viralcut.exceptions import TranscriptionError
from viralcut.transcription.captions import CaptionFetcher, parse_json3

JSON3 = {
    "events": [
        {"tStartMs": 0, "dDurationMs": 4000, "segs": [{"utf8": "Why does"}, {"utf8": " nobody know?"}]},
        {"tStartMs": 2500, "dDurationMs": 3000, "segs": [{"utf8": "\n"}]},
        {"tStartMs": 3000, "dDurationMs": 2000, "segs": [{"utf8": "Here is\nthe secret"}]},
        {"tStartMs": 6000},
    ]
}


def test_parse_json3_clamps_to_next_start():
    segments = parse_json3(JSON3)

    assert [s.text for s in segments] == ["Why does nobody know?", "Here is the secret"]
    assert (segments[0].start, segments[0].end) == (0.0, 3.0)
    assert (segments[1].start, segments[1].end) == (3.0, 5.0)


def test_parse_json3_empty_payload():
    assert parse_json3({}) == []


@pytest.fixture
def mock_ydl(mocker):
    mock_cls = mocker.patch("viralcut.transcription.captions.yt_dlp.YoutubeDL")
    return mock_cls.return_value.__enter__.return_value


def test_pick_track_prefers_manual_subtitles(config_manager):
    info = {
        "subtitles": {"en": [{"ext": "vtt", "url": "manual.vtt"}, {"ext": "json3", "url": "manual.json3"}]},
        "automatic_captions": {"en": [{"ext": "json3", "url": "auto.json3"}]},
    }
    assert CaptionFetcher(config_manager)._pick_track(info) == "manual.json3"


def test_pick_track_respects_language_order(config_manager):
    info = {"automatic_captions": {"de": [{"ext": "json3", "url": "de"}], "en-US": [{"ext": "json3", "url": "us"}]}}
    assert CaptionFetcher(config_manager)._pick_track(info) == "us"
    assert CaptionFetcher(config_manager)._pick_track({}) is None


def test_fetch_returns_segments(config_manager, mock_ydl):
    mock_ydl.extract_info.return_value = {"automatic_captions": {"en": [{"ext": "json3", "url": "track"}]}}
    mock_ydl.urlopen.return_value.read.return_value = json.dumps(JSON3).encode()

    segments = CaptionFetcher(config_manager).fetch("dQw4w9WgXcQ")

    assert len(segments) == 2
    mock_ydl.extract_info.assert_called_once_with("https://www.youtube.com/watch?v=dQw4w9WgXcQ", download=False)
    mock_ydl.urlopen.assert_called_once_with("track")


def test_fetch_without_track_raises(config_manager, mock_ydl):
    mock_ydl.extract_info.return_value = {"subtitles": {}, "automatic_captions": {}}
    with pytest.raises(TranscriptionError, match="No caption track"):
        CaptionFetcher(config_manager).fetch("abc")


def test_fetch_network_error_is_wrapped(config_manager, mock_ydl):
    mock_ydl.extract_info.side_effect = OSError("connection reset")
    with pytest.raises(TranscriptionError, match="connection reset"):
        CaptionFetcher(config_manager).fetch("abc")


def test_fetch_malformed_track_raises(config_manager, mock_ydl):
    mock_ydl.extract_info.return_value = {"automatic_captions": {"en": [{"ext": "json3", "url": "track"}]}}
    mock_ydl.urlopen.return_value.read.return_value = b"<html>"
    with pytest.raises(TranscriptionError, match="Malformed"):
        CaptionFetcher(config_manager).fetch("abc")


def test_fetch_empty_track_raises(config_manager, mock_ydl):
    mock_ydl.extract_info.return_value = {"automatic_captions": {"en": [{"ext": "json3", "url": "track"}]}}
    mock_ydl.urlopen.return_value.read.return_value = b'{"events": []}'
    with pytest.raises(TranscriptionError, match="empty"):
        CaptionFetcher(config_manager).fetch("abc")
