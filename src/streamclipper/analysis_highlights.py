"""Fuse audio and chat spikes into ranked, explainable highlights.

Stages:
  - combo pairing (every overlapping audio/chat pair, plain nested scan)
  - audio-only / chat-only leftovers
  - tier selection (optional random cap)
  - overlap merge and re-ranking
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .analysis_audio import AudioSpike
from .chat.models import ChatSpike
from .stats import clamp

logger = logging.getLogger(__name__)

DEFAULT_MERGE_THRESHOLD = 0.5
VOICE_REASON_MIN_SCORE = 60.0


class HighlightType(str, Enum):
    AUDIO = "audio"
    CHAT = "chat"
    COMBO = "combo"


@dataclass(frozen=True)
class HighlightSettings:
    audio_weight: float = 0.6  # 0.0 - 1.0
    chat_weight: float = 0.4  # 0.0 - 1.0
    combo_bonus: float = 1.5  # multiplier
    max_clips: Optional[int] = None  # None = unlimited
    merge_threshold: float = DEFAULT_MERGE_THRESHOLD

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "HighlightSettings":
        base = cls()
        max_clips = d.get("max_clips", base.max_clips)
        return cls(
            audio_weight=float(d.get("audio_weight", base.audio_weight)),
            chat_weight=float(d.get("chat_weight", base.chat_weight)),
            combo_bonus=float(d.get("combo_bonus", base.combo_bonus)),
            max_clips=int(max_clips) if max_clips is not None else None,
            merge_threshold=float(d.get("merge_threshold", base.merge_threshold)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "audio_weight": self.audio_weight,
            "chat_weight": self.chat_weight,
            "combo_bonus": self.combo_bonus,
            "max_clips": self.max_clips,
            "merge_threshold": self.merge_threshold,
        }


@dataclass
class Highlight:
    """A detected highlight. Mutable: the merge stage extends and re-ranks it."""

    id: int
    start_s: float
    end_s: float
    duration_s: float
    highlight_type: HighlightType
    score: float  # 0-100
    audio_score: Optional[float] = None
    chat_score: Optional[float] = None
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start_s": self.start_s,
            "end_s": self.end_s,
            "duration_s": self.duration_s,
            "type": self.highlight_type.value,
            "score": self.score,
            "audio_score": self.audio_score,
            "chat_score": self.chat_score,
            "reasons": list(self.reasons),
        }


def overlaps(start1: float, end1: float, start2: float, end2: float) -> bool:
    """Half-open interval intersection; touching ranges do not overlap."""
    return start1 < end2 and start2 < end1


def _combo(audio: AudioSpike, chat: ChatSpike, settings: HighlightSettings) -> Highlight:
    start = min(audio.start_s, chat.start_s)
    end = max(audio.end_s, chat.end_s)
    combined = (audio.score * settings.audio_weight + chat.score * settings.chat_weight) * settings.combo_bonus
    bonus_pct = (settings.combo_bonus - 1.0) * 100.0
    return Highlight(
        id=0,
        start_s=start,
        end_s=end,
        duration_s=end - start,
        highlight_type=HighlightType.COMBO,
        score=clamp(combined, 0.0, 100.0),
        audio_score=audio.score,
        chat_score=chat.score,
        reasons=[
            f"Audio spike: {audio.score:.0f}% intensity",
            f"Chat surge: {chat.peak_rate:.0f} messages/window",
            f"Combo: audio and chat happened together ({bonus_pct:+.0f}% bonus)",
        ],
    )


def _audio_only(audio: AudioSpike, settings: HighlightSettings) -> Highlight:
    reasons = [f"Audio spike: {audio.score:.0f}% above normal volume"]
    # High audio scores are only reachable with the voice bonus.
    if audio.score > VOICE_REASON_MIN_SCORE:
        reasons.append("Voice activity detected (streamer reaction)")
    return Highlight(
        id=0,
        start_s=audio.start_s,
        end_s=audio.end_s,
        duration_s=audio.end_s - audio.start_s,
        highlight_type=HighlightType.AUDIO,
        score=clamp(audio.score * settings.audio_weight, 0.0, 100.0),
        audio_score=audio.score,
        reasons=reasons,
    )


def _chat_only(chat: ChatSpike, settings: HighlightSettings) -> Highlight:
    return Highlight(
        id=0,
        start_s=chat.start_s,
        end_s=chat.end_s,
        duration_s=chat.end_s - chat.start_s,
        highlight_type=HighlightType.CHAT,
        score=clamp(chat.score * settings.chat_weight, 0.0, 100.0),
        chat_score=chat.score,
        reasons=[
            f"Chat surge: {chat.peak_rate:.0f} messages/window",
            f"Keyword matches: {chat.keyword_score:.0f} hype words detected",
        ],
    )


def _assign_ids(highlights: List[Highlight]) -> None:
    for i, h in enumerate(highlights):
        h.id = i + 1


def default_rng() -> random.Random:
    """Time-seeded generator: free-tier picks differ from run to run."""
    return random.Random(time.time_ns())


def score_highlights(
    audio_spikes: Sequence[AudioSpike],
    chat_spikes: Sequence[ChatSpike],
    settings: Optional[HighlightSettings] = None,
    *,
    rng: Optional[random.Random] = None,
) -> List[Highlight]:
    """Pair, score and rank spikes.

    With ``settings.max_clips`` set and exceeded, a random sample of that size
    is returned in start-time order (free tier); otherwise all highlights are
    returned best first. Pass ``rng`` for reproducible sampling.
    """
    settings = settings or HighlightSettings()
    highlights: List[Highlight] = []
    used_audio = [False] * len(audio_spikes)
    used_chat = [False] * len(chat_spikes)

    # A spike may combo with several partners; every overlapping pair counts.
    for ai, audio in enumerate(audio_spikes):
        for ci, chat in enumerate(chat_spikes):
            if overlaps(audio.start_s, audio.end_s, chat.start_s, chat.end_s):
                highlights.append(_combo(audio, chat, settings))
                used_audio[ai] = True
                used_chat[ci] = True

    for ai, audio in enumerate(audio_spikes):
        if not used_audio[ai]:
            highlights.append(_audio_only(audio, settings))

    for ci, chat in enumerate(chat_spikes):
        if not used_chat[ci]:
            highlights.append(_chat_only(chat, settings))

    highlights.sort(key=lambda h: h.score, reverse=True)

    if settings.max_clips is not None and len(highlights) > settings.max_clips:
        rng = rng or default_rng()
        rng.shuffle(highlights)
        del highlights[max(0, settings.max_clips):]
        highlights.sort(key=lambda h: h.start_s)
        logger.debug("[highlights] Randomly sampled %d highlights", len(highlights))

    _assign_ids(highlights)
    return highlights


def calculate_overlap(h1: Highlight, h2: Highlight) -> float:
    """Overlap duration as a fraction of the shorter highlight (0 when disjoint)."""
    overlap_start = max(h1.start_s, h2.start_s)
    overlap_end = min(h1.end_s, h2.end_s)
    if overlap_start >= overlap_end:
        return 0.0
    min_duration = min(h1.duration_s, h2.duration_s)
    if min_duration <= 0.0:
        return 0.0
    return (overlap_end - overlap_start) / min_duration


def merge_overlapping_highlights(
    highlights: List[Highlight],
    overlap_threshold: float = DEFAULT_MERGE_THRESHOLD,
) -> List[Highlight]:
    """Collapse heavily overlapping highlights, then re-rank by score.

    Merging walks in start order, comparing each highlight with the open group.
    The group takes the type and sub-scores of whichever member scores highest;
    reasons are unioned in first-seen order. Returns a new list with 1-based ids.
    """
    if len(highlights) < 2:
        out = [_copy(h) for h in highlights]
        _assign_ids(out)
        return out

    ordered = sorted(highlights, key=lambda h: h.start_s)
    merged: List[Highlight] = []
    current = _copy(ordered[0])

    for h in ordered[1:]:
        if calculate_overlap(current, h) > overlap_threshold:
            current.end_s = max(current.end_s, h.end_s)
            current.duration_s = current.end_s - current.start_s
            if h.score > current.score:
                current.score = h.score
                current.highlight_type = h.highlight_type
                current.audio_score = h.audio_score if h.audio_score is not None else current.audio_score
                current.chat_score = h.chat_score if h.chat_score is not None else current.chat_score
            for reason in h.reasons:
                if reason not in current.reasons:
                    current.reasons.append(reason)
        else:
            merged.append(current)
            current = _copy(h)
    merged.append(current)

    merged.sort(key=lambda h: h.score, reverse=True)
    _assign_ids(merged)
    if len(merged) != len(highlights):
        logger.debug("[highlights] Merged %d -> %d highlights", len(highlights), len(merged))
    return merged


def _copy(h: Highlight) -> Highlight:
    return Highlight(
        id=h.id,
        start_s=h.start_s,
        end_s=h.end_s,
        duration_s=h.duration_s,
        highlight_type=h.highlight_type,
        score=h.score,
        audio_score=h.audio_score,
        chat_score=h.chat_score,
        reasons=list(h.reasons),
    )


def apply_padding(
    highlights: Sequence[Highlight],
    padding_before: float,
    padding_after: float,
    video_duration: float,
) -> List[Tuple[float, float]]:
    """Clip ranges with context padding, clamped to [0, video_duration]."""
    return [
        (max(0.0, h.start_s - padding_before), min(video_duration, h.end_s + padding_after))
        for h in highlights
    ]
