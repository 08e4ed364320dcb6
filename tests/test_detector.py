import pytest

from viralcut.exceptions import InputValidationError
from viralcut.intelligence.detector import MomentDetector, rank_by_score
from viralcut.intelligence.models import ViralMoment
from viralcut.intelligence.refiner import MomentRefiner
from viralcut.transcription.models import TranscriptSegment


def _spans(moments):
    return [(m.start, m.end) for m in moments]


def test_rank_by_score_is_stable():
    moments = [
        ViralMoment(id="a", start=0, end=10, score=0.6, reason="r", text="t"),
        ViralMoment(id="b", start=0, end=20, score=0.9, reason="r", text="t"),
        ViralMoment(id="c", start=5, end=20, score=0.6, reason="r", text="t"),
    ]
    assert [m.id for m in rank_by_score(moments)] == ["b", "a", "c"]


def test_detect_curiosity_scenario(config_manager, viral_segments):
    detector = MomentDetector(config_manager)

    moments = detector.detect(viral_segments)

    assert moments
    assert moments[0].start == 0.0
    assert moments[0].end == 30.0
    assert "Engaging question" in moments[0].reason
    assert "Viral keywords" in moments[0].reason
    assert "curiosity" in moments[0].emotions
    assert set(moments[0].keywords) == {"secret", "nobody", "crazy", "hack", "actually"}
    scores = [m.score for m in moments]
    assert scores == sorted(scores, reverse=True)
    # Equal clamped scores keep discovery order
    assert _spans(moments) == [(0.0, 30.0), (0.0, 45.0), (15.0, 45.0)]


def test_detect_is_bounded_by_final_top_k(config_manager, viral_segments):
    config_manager.config.detection.final_top_k = 2
    moments = MomentDetector(config_manager).detect(viral_segments)
    assert len(moments) == 2


def test_detect_honours_duration_overrides(config_manager, viral_segments):
    moments = MomentDetector(config_manager).detect(viral_segments, min_duration=35, max_duration=60)
    assert _spans(moments) == [(0.0, 45.0)]


def test_detect_without_llm_is_deterministic(config_manager, viral_segments):
    detector = MomentDetector(config_manager)

    first = detector.detect(viral_segments)
    second = detector.detect(viral_segments)

    assert [(m.start, m.end, m.score, m.reason) for m in first] == [
        (m.start, m.end, m.score, m.reason) for m in second
    ]


def test_failing_llm_matches_heuristic_only(mocker, config_manager, viral_segments):
    client = mocker.Mock()
    client.chat.completions.create.side_effect = RuntimeError("503 Service Unavailable")
    with_failing_llm = MomentDetector(config_manager, refiner=MomentRefiner(config_manager, client=client))

    refined = with_failing_llm.detect(viral_segments)
    heuristic = MomentDetector(config_manager).detect(viral_segments)

    client.chat.completions.create.assert_called_once()
    assert [(m.start, m.end, m.score, m.reason) for m in refined] == [
        (m.start, m.end, m.score, m.reason) for m in heuristic
    ]


def test_detect_refines_only_top_n(mocker, config_manager, viral_segments):
    config_manager.config.detection.refine_top_n = 1
    refiner = mocker.Mock(spec=MomentRefiner)
    refiner.refine.side_effect = lambda moments, text: list(moments)

    moments = MomentDetector(config_manager, refiner=refiner).detect(viral_segments)

    sent, full_text = refiner.refine.call_args.args
    assert len(sent) == 1
    assert full_text == " ".join(s.text for s in viral_segments)
    assert len(moments) == 1


def test_detect_reorders_by_refined_score(mocker, config_manager, viral_segments):
    refiner = mocker.Mock(spec=MomentRefiner)

    def demote_first(moments, text):
        return [moments[0].model_copy(update={"score": 0.1})] + list(moments[1:])

    refiner.refine.side_effect = demote_first

    moments = MomentDetector(config_manager, refiner=refiner).detect(viral_segments)

    assert _spans(moments)[-1] == (0.0, 30.0)
    assert moments[-1].score == pytest.approx(0.1)


def test_detect_rejects_overlapping_segments(config_manager):
    segments = [
        TranscriptSegment(text="Why is this a secret?", start=0.0, end=10.0),
        TranscriptSegment(text="Nobody knows!", start=5.0, end=20.0),
    ]
    with pytest.raises(InputValidationError):
        MomentDetector(config_manager).detect(segments)


def test_detect_empty_transcript(config_manager):
    assert MomentDetector(config_manager).detect([]) == []
