"""Chat value records shared by the window aggregator and spike detector."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class ChatMessage:
    """A single normalized chat message."""

    timestamp_s: float  # Seconds from video start
    username: str
    text: str = ""
    has_emote: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp_s,
            "username": self.username,
            "text": self.text,
            "has_emote": self.has_emote,
        }


@dataclass(frozen=True)
class ChatWindow:
    start_s: float
    end_s: float
    message_count: int
    unique_users: int
    keyword_matches: int
    emote_density: float  # 0..1
    caps_ratio: float  # 0..1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_s": self.start_s,
            "end_s": self.end_s,
            "message_count": self.message_count,
            "unique_users": self.unique_users,
            "keyword_matches": self.keyword_matches,
            "emote_density": self.emote_density,
            "caps_ratio": self.caps_ratio,
        }


@dataclass(frozen=True)
class ChatSpike:
    start_s: float
    end_s: float
    peak_rate: float  # Highest message count of any merged window
    keyword_score: float
    score: float  # 0-100

    @property
    def duration_s(self) -> float:
        return self.end_s - self.start_s

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_s": self.start_s,
            "end_s": self.end_s,
            "peak_rate": self.peak_rate,
            "keyword_score": self.keyword_score,
            "score": self.score,
        }


@dataclass
class ChatAnalysisResult:
    windows: List[ChatWindow] = field(default_factory=list)
    baseline_rate: float = 0.0
    threshold: float = 0.0
    spikes: List[ChatSpike] = field(default_factory=list)

    def diagnostics(self) -> Dict[str, Any]:
        return {
            "baseline_rate": self.baseline_rate,
            "threshold": self.threshold,
            "windows": len(self.windows),
            "spikes": len(self.spikes),
        }


@dataclass(frozen=True)
class ChatInfo:
    """Summary of a chat log, shown before analysis."""

    total_messages: int
    duration_s: float
    avg_rate_per_min: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_messages": self.total_messages,
            "duration_s": self.duration_s,
            "avg_rate_per_min": self.avg_rate_per_min,
        }
