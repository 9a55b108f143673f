"""End-to-end highlight analysis over already-decoded inputs.

    samples ──► audio stage ──┐
                              ├─► fusion ─► merge ─► tier limit ─► AnalyzeResult
    messages ─► chat stage ───┘

Stages run sequentially. Cancellation is cooperative: the caller hands in a
CancellationToken and the orchestrator checks it between stages only.
"""

from __future__ import annotations

import logging
import random
import threading
import time as _time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .analysis_audio import AudioAnalysisResult, analyze_audio_samples
from .analysis_chat import analyze_chat_messages
from .analysis_highlights import Highlight, merge_overlapping_highlights, score_highlights
from .chat.models import ChatAnalysisResult, ChatMessage
from .errors import AnalysisCancelled
from .profile import AnalyzeSettings
from .utils import utc_iso

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe cancel flag owned by whoever starts the analysis."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise AnalysisCancelled(f"Analysis cancelled before {stage}")


@dataclass
class AnalyzeResult:
    highlights: List[Highlight]
    waveform: List[float]  # per-chunk rms, for visualization
    total_duration_s: float
    audio: Dict[str, Any] = field(default_factory=dict)
    chat: Dict[str, Any] = field(default_factory=dict)
    elapsed_seconds: float = 0.0
    generated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "highlights": [h.to_dict() for h in self.highlights],
            "waveform": list(self.waveform),
            "total_duration_s": self.total_duration_s,
            "audio": dict(self.audio),
            "chat": dict(self.chat),
            "elapsed_seconds": self.elapsed_seconds,
            "generated_at": self.generated_at,
        }


def apply_tier_limit(highlights: List[Highlight], settings: AnalyzeSettings) -> List[Highlight]:
    """Free tier keeps only the best `free_tier_limit` merged highlights."""
    if settings.tier != "free" or len(highlights) <= settings.free_tier_limit:
        return highlights
    logger.info("[highlights] Free tier: limited to %d clips", settings.free_tier_limit)
    return highlights[: max(0, settings.free_tier_limit)]


def analyze(
    samples: Any,
    sample_rate: int,
    messages: Optional[Sequence[ChatMessage]] = None,
    settings: Optional[AnalyzeSettings] = None,
    *,
    rng: Optional[random.Random] = None,
    cancel: Optional[CancellationToken] = None,
) -> AnalyzeResult:
    """Detect highlights in one recording.

    Args:
        samples: Mono int16 PCM for the whole recording
        sample_rate: Rate of `samples` in Hz
        messages: Normalized chat log, or None to run audio-only
        settings: Per-run settings (defaults when omitted)
        rng: Random source for free-tier sampling (time-seeded when omitted)
        cancel: Optional token checked between stages

    Raises:
        EmptySamplesError / EmptyChunksError: no usable audio
        AnalysisCancelled: the token was cancelled
    """
    settings = settings or AnalyzeSettings()
    cancel = cancel or CancellationToken()
    start_time = _time.time()

    cancel.raise_if_cancelled("audio analysis")
    audio: AudioAnalysisResult = analyze_audio_samples(samples, sample_rate, settings.audio)

    chat = ChatAnalysisResult()
    if messages is not None:
        cancel.raise_if_cancelled("chat analysis")
        chat = analyze_chat_messages(messages, settings.chat)

    cancel.raise_if_cancelled("scoring")
    highlights = score_highlights(audio.spikes, chat.spikes, settings.highlights, rng=rng)
    logger.debug("[highlights] Scored %d highlights", len(highlights))

    highlights = merge_overlapping_highlights(highlights, settings.highlights.merge_threshold)
    highlights = apply_tier_limit(highlights, settings)
    logger.info("[highlights] Found %d highlights", len(highlights))

    sample_count = int(np.asarray(samples).size)
    return AnalyzeResult(
        highlights=highlights,
        waveform=audio.waveform,
        total_duration_s=sample_count / float(sample_rate) if sample_rate > 0 else 0.0,
        audio=audio.diagnostics(),
        chat=chat.diagnostics(),
        elapsed_seconds=_time.time() - start_time,
        generated_at=utc_iso(),
    )
