from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .chat.models import ChatAnalysisResult, ChatInfo, ChatMessage, ChatSpike, ChatWindow
from .chat.windows import create_windows
from .stats import clamp, median

logger = logging.getLogger(__name__)

# Windows closer than this are treated as contiguous. Windows are generated
# back to back, so any real gap means a non-candidate window in between.
ADJACENCY_EPS_S = 0.1

DEFAULT_KEYWORDS = (
    "POG",
    "POGGERS",
    "POGU",
    "LETS GO",
    "LET'S GO",
    "OMG",
    "WTF",
    "CLIP IT",
    "CLIP THAT",
    "GG",
    "GGWP",
    "HOLY",
    "INSANE",
    "CRAZY",
    "NO WAY",
    "NOWAY",
    "KEKW",
    "LULW",
    "OMEGALUL",
    "HYPE",
)


@dataclass(frozen=True)
class ChatSettings:
    rate_multiplier: float = 3.0  # 1.0 - 5.0
    window_size: float = 5.0  # seconds
    keywords: tuple = field(default=DEFAULT_KEYWORDS)
    keyword_threshold: int = 3  # minimum keyword matches per window
    emote_threshold: float = 0.3  # minimum emote density per window

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ChatSettings":
        base = cls()
        keywords = d.get("keywords")
        return cls(
            rate_multiplier=float(d.get("rate_multiplier", base.rate_multiplier)),
            window_size=float(d.get("window_size", base.window_size)),
            keywords=tuple(str(k) for k in keywords) if keywords is not None else base.keywords,
            keyword_threshold=int(d.get("keyword_threshold", base.keyword_threshold)),
            emote_threshold=float(d.get("emote_threshold", base.emote_threshold)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rate_multiplier": self.rate_multiplier,
            "window_size": self.window_size,
            "keywords": list(self.keywords),
            "keyword_threshold": self.keyword_threshold,
            "emote_threshold": self.emote_threshold,
        }


def build_chat_spike(start_s: float, end_s: float, peak_rate: float, keyword_matches: int, baseline: float) -> ChatSpike:
    if baseline > 0.0:
        rate_score = clamp((peak_rate / baseline - 1.0) * 30.0, 0.0, 70.0)
    else:
        rate_score = 35.0
    keyword_score = min(keyword_matches * 10.0, 30.0)
    return ChatSpike(
        start_s=start_s,
        end_s=end_s,
        peak_rate=float(peak_rate),
        keyword_score=float(keyword_score),
        score=clamp(rate_score + keyword_score, 0.0, 100.0),
    )


def is_spike_window(window: ChatWindow, settings: ChatSettings, threshold: float) -> bool:
    return (
        window.message_count > threshold
        or window.keyword_matches >= settings.keyword_threshold
        or window.emote_density > settings.emote_threshold
    )


def detect_chat_spikes(
    windows: Sequence[ChatWindow],
    settings: ChatSettings,
    *,
    baseline: float,
    threshold: float,
) -> List[ChatSpike]:
    """Merge runs of contiguous candidate windows into scored spikes (time order)."""
    hits = [w for w in windows if is_spike_window(w, settings, threshold)]
    if not hits:
        return []

    spikes: List[ChatSpike] = []
    start = hits[0].start_s
    end = hits[0].end_s
    peak = float(hits[0].message_count)
    keywords = hits[0].keyword_matches

    for w in hits[1:]:
        if abs(w.start_s - end) < ADJACENCY_EPS_S:
            end = w.end_s
            peak = max(peak, float(w.message_count))
            keywords += w.keyword_matches
        else:
            spikes.append(build_chat_spike(start, end, peak, keywords, baseline))
            start, end = w.start_s, w.end_s
            peak = float(w.message_count)
            keywords = w.keyword_matches

    spikes.append(build_chat_spike(start, end, peak, keywords, baseline))
    return spikes


def analyze_chat_messages(
    messages: Sequence[ChatMessage],
    settings: Optional[ChatSettings] = None,
) -> ChatAnalysisResult:
    """Window the chat log and detect activity spikes.

    An empty log is not an error; it yields an empty result.
    """
    settings = settings or ChatSettings()
    if not messages:
        logger.info("[chat] No messages; skipping chat analysis")
        return ChatAnalysisResult()

    windows = create_windows(messages, settings.window_size, settings.keywords)
    if not windows:
        return ChatAnalysisResult()

    baseline = median([float(w.message_count) for w in windows])
    threshold = baseline * settings.rate_multiplier
    spikes = detect_chat_spikes(windows, settings, baseline=baseline, threshold=threshold)
    logger.info(
        "[chat] %d messages, %d windows, baseline=%.1f/window, %d spikes",
        len(messages),
        len(windows),
        baseline,
        len(spikes),
    )
    return ChatAnalysisResult(windows=windows, baseline_rate=baseline, threshold=threshold, spikes=spikes)


def summarize_chat(messages: Sequence[ChatMessage]) -> ChatInfo:
    """Message count, span (last timestamp) and average messages per minute."""
    total = len(messages)
    duration = float(messages[-1].timestamp_s) if messages else 0.0
    rate = total / (duration / 60.0) if duration > 0 else 0.0
    return ChatInfo(total_messages=total, duration_s=duration, avg_rate_per_min=float(rate))
