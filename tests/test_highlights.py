"""Tests for highlight fusion, merging and padding."""

from __future__ import annotations

import random

import pytest

from streamclipper.analysis_audio import AudioSpike
from streamclipper.analysis_highlights import (
    Highlight,
    HighlightSettings,
    HighlightType,
    apply_padding,
    calculate_overlap,
    merge_overlapping_highlights,
    overlaps,
    score_highlights,
)
from streamclipper.chat.models import ChatSpike


def audio_spike(start: float, end: float, score: float) -> AudioSpike:
    return AudioSpike(start_s=start, end_s=end, peak_rms=0.5, score=score)


def chat_spike(start: float, end: float, score: float, peak: float = 12.0, keywords: float = 20.0) -> ChatSpike:
    return ChatSpike(start_s=start, end_s=end, peak_rate=peak, keyword_score=keywords, score=score)


def highlight(start: float, end: float, score: float, kind: HighlightType = HighlightType.AUDIO, reasons=None) -> Highlight:
    return Highlight(
        id=0,
        start_s=start,
        end_s=end,
        duration_s=end - start,
        highlight_type=kind,
        score=score,
        audio_score=score if kind != HighlightType.CHAT else None,
        chat_score=score if kind == HighlightType.CHAT else None,
        reasons=list(reasons or [f"reason {start}"]),
    )


@pytest.mark.parametrize(
    "a,b,expected",
    [
        ((0, 10), (5, 15), True),
        ((0, 10), (10, 20), False),
        ((0, 10), (2, 3), True),
        ((5, 6), (0, 5), False),
    ],
)
def test_overlaps(a, b, expected):
    """Test half-open overlap in both argument orders."""
    assert overlaps(a[0], a[1], b[0], b[1]) is expected
    assert overlaps(b[0], b[1], a[0], a[1]) is expected


# ---------------------------------------------------------------------------
# Fusion
# ---------------------------------------------------------------------------


class TestScoreHighlights:
    """Tests for pairing and scoring audio and chat spikes."""

    def test_combo(self):
        """Test an overlapping pair becomes one clamped combo highlight."""
        out = score_highlights([audio_spike(10, 20, 80)], [chat_spike(15, 25, 70)])
        assert len(out) == 1
        h = out[0]
        assert h.highlight_type == HighlightType.COMBO
        assert (h.start_s, h.end_s, h.duration_s) == (10, 25, 15)
        # (80 * 0.6 + 70 * 0.4) * 1.5 = 114, clamped
        assert h.score == 100.0
        assert h.audio_score == 80
        assert h.chat_score == 70
        assert h.id == 1
        assert h.reasons == [
            "Audio spike: 80% intensity",
            "Chat surge: 12 messages/window",
            "Combo: audio and chat happened together (+50% bonus)",
        ]

    def test_unclamped_combo_score(self):
        """Test the weighted combo score below the cap."""
        out = score_highlights([audio_spike(0, 5, 40)], [chat_spike(2, 8, 30)])
        assert out[0].score == pytest.approx((40 * 0.6 + 30 * 0.4) * 1.5)

    def test_leftovers(self):
        """Test unpaired spikes become weighted audio and chat highlights, best first."""
        out = score_highlights([audio_spike(0, 5, 70), audio_spike(50, 55, 45)], [chat_spike(100, 110, 90)])
        assert [h.highlight_type for h in out] == [HighlightType.AUDIO, HighlightType.CHAT, HighlightType.AUDIO]
        assert [h.id for h in out] == [1, 2, 3]
        assert out[0].score == pytest.approx(42.0)
        assert out[1].score == pytest.approx(36.0)
        assert out[2].score == pytest.approx(27.0)

    def test_audio_only_reasons(self):
        """Test the voice reason appears only for high audio scores."""
        loud, quiet = score_highlights([audio_spike(0, 5, 92), audio_spike(50, 55, 58)], [])
        assert loud.reasons == [
            "Audio spike: 92% above normal volume",
            "Voice activity detected (streamer reaction)",
        ]
        assert quiet.reasons == ["Audio spike: 58% above normal volume"]
        assert quiet.audio_score == 58
        assert quiet.chat_score is None

    def test_chat_only_reasons(self):
        """Test chat-only reasons report rate and keywords."""
        (h,) = score_highlights([], [chat_spike(0, 5, 60, peak=15, keywords=30)])
        assert h.reasons == ["Chat surge: 15 messages/window", "Keyword matches: 30 hype words detected"]
        assert h.audio_score is None

    def test_spike_can_pair_twice(self):
        """Test one audio spike combos with every overlapping chat spike."""
        out = score_highlights([audio_spike(0, 30, 60)], [chat_spike(0, 5, 50), chat_spike(20, 25, 50)])
        assert len(out) == 2
        assert all(h.highlight_type == HighlightType.COMBO for h in out)

    def test_touching_ranges_do_not_combo(self):
        """Test ranges that only touch stay separate."""
        out = score_highlights([audio_spike(0, 10, 60)], [chat_spike(10, 20, 60)])
        assert {h.highlight_type for h in out} == {HighlightType.AUDIO, HighlightType.CHAT}

    def test_ranked_by_score(self):
        """Test output is ordered by descending score."""
        audio = [audio_spike(i * 20, i * 20 + 5, 40 + i * 7) for i in range(6)]
        out = score_highlights(audio, [])
        scores = [h.score for h in out]
        assert scores == sorted(scores, reverse=True)
        assert all(0.0 <= s <= 100.0 for s in scores)

    def test_empty(self):
        """Test no spikes yield no highlights."""
        assert score_highlights([], []) == []


class TestFreeTierSampling:
    """Tests for random capping with max_clips."""

    def _audio(self, n: int = 12):
        return [audio_spike(i * 20, i * 20 + 5, 40 + i) for i in range(n)]

    def test_cap_and_start_order(self):
        """Test the cap keeps exactly max_clips, sorted by start."""
        settings = HighlightSettings(max_clips=4)
        out = score_highlights(self._audio(), [], settings, rng=random.Random(11))
        assert len(out) == 4
        starts = [h.start_s for h in out]
        assert starts == sorted(starts)
        assert set(starts) <= {i * 20 for i in range(12)}
        assert [h.id for h in out] == [1, 2, 3, 4]

    def test_seeded_sampling_is_reproducible(self):
        """Test equal seeds give equal picks."""
        settings = HighlightSettings(max_clips=4)
        first = score_highlights(self._audio(), [], settings, rng=random.Random(5))
        second = score_highlights(self._audio(), [], settings, rng=random.Random(5))
        assert [h.start_s for h in first] == [h.start_s for h in second]

    def test_cap_not_reached(self):
        """Test no sampling happens under the cap."""
        settings = HighlightSettings(max_clips=20)
        out = score_highlights(self._audio(), [], settings)
        assert len(out) == 12
        assert out[0].score >= out[-1].score


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


class TestMerge:
    """Tests for overlap merging and re-ranking."""

    def test_overlap_fraction(self):
        """Test overlap is measured against the shorter highlight."""
        assert calculate_overlap(highlight(0, 10, 50), highlight(5, 12, 50)) == pytest.approx(5 / 7)
        assert calculate_overlap(highlight(0, 10, 50), highlight(10, 12, 50)) == 0.0

    def test_merge_keeps_best_type_and_unions_reasons(self):
        """Test a merged group takes the best member's type and unions reasons."""
        a = highlight(0, 10, 80, HighlightType.AUDIO, ["loud"])
        b = highlight(5, 12, 90, HighlightType.CHAT, ["chatty", "loud"])
        out = merge_overlapping_highlights([b, a])
        assert len(out) == 1
        h = out[0]
        assert (h.start_s, h.end_s, h.duration_s) == (0, 12, 12)
        assert h.score == 90
        assert h.highlight_type == HighlightType.CHAT
        assert h.reasons == ["loud", "chatty"]
        assert h.id == 1

    def test_small_overlap_is_kept_apart(self):
        """Test low overlap leaves highlights separate and re-ranked."""
        out = merge_overlapping_highlights([highlight(0, 10, 50), highlight(8, 20, 70)])
        assert len(out) == 2
        assert [h.score for h in out] == [70, 50]
        assert [h.id for h in out] == [1, 2]

    def test_exact_threshold_does_not_merge(self):
        """Test overlap exactly at the threshold does not merge."""
        out = merge_overlapping_highlights([highlight(0, 10, 50), highlight(5, 15, 60)])
        assert len(out) == 2

    def test_inputs_are_not_mutated(self):
        """Test merging works on copies."""
        a = highlight(0, 10, 80)
        b = highlight(2, 12, 90)
        merge_overlapping_highlights([a, b])
        assert a.end_s == 10
        assert a.reasons == ["reason 0"]

    def test_single_and_empty(self):
        """Test short inputs get fresh copies with 1-based ids."""
        assert merge_overlapping_highlights([]) == []
        original = highlight(3, 4, 10)
        original.id = 7
        (h,) = merge_overlapping_highlights([original])
        assert h.id == 1
        assert h is not original
        assert original.id == 7


def test_apply_padding():
    """Test padding is clamped to the recording."""
    hs = [highlight(10, 20, 50), highlight(1, 5, 50), highlight(95, 99, 50)]
    assert apply_padding(hs, 3.0, 2.0, 100.0) == [(7.0, 22.0), (0.0, 7.0), (92.0, 100.0)]


def test_settings_from_dict():
    """Test settings coercion and defaults."""
    settings = HighlightSettings.from_dict({"combo_bonus": 2, "max_clips": "3"})
    assert settings.combo_bonus == 2.0
    assert settings.max_clips == 3
    assert settings.audio_weight == 0.6
    assert HighlightSettings.from_dict({}).max_clips is None


def test_highlight_to_dict():
    """Test the serialized highlight shape."""
    (h,) = score_highlights([], [chat_spike(0, 5, 60)])
    d = h.to_dict()
    assert d["type"] == "chat"
    assert d["audio_score"] is None
    assert d["id"] == 1
