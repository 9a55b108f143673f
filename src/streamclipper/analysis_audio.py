"""Audio spike detection: loud, voice-backed moments in a PCM buffer.

Pipeline:
  1. per-chunk RMS/peak (audio_features.compute_audio_chunks)
  2. per-chunk voice ratio (analysis_vad.detect_voice_activity), optional
  3. median baseline + percentile threshold
  4. multi-criterion candidate scoring, gap-merging, spike scoring
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .analysis_vad import VoiceSegment, detect_voice_activity, voice_overlap
from .audio_features import AudioChunk, compute_audio_chunks
from .errors import EmptyChunksError, EmptySamplesError, VoiceClassifierError
from .stats import clamp, median, percentile_value, std_dev

logger = logging.getLogger(__name__)

# Weights of the per-chunk quality criteria. Voice is the strongest signal.
W_ABOVE_THRESHOLD = 20.0
W_SUDDEN_CHANGE = 15.0
W_TRANSIENT = 10.0
W_SUSTAINED = 15.0
W_WELL_ABOVE_BASELINE = 10.0
W_VOICE = 30.0

MIN_SPIKE_QUALITY = 40.0
MIN_CRITERIA = 3


@dataclass(frozen=True)
class AudioSettings:
    sensitivity: float = 2.0  # 1.0 - 4.0, higher = fewer spikes
    min_duration: float = 2.0  # seconds
    merge_gap: float = 3.0  # seconds
    chunk_duration: float = 0.5  # seconds
    workers: int = 4  # threads for chunk metrics
    use_vad: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AudioSettings":
        base = cls()
        return cls(
            sensitivity=float(d.get("sensitivity", base.sensitivity)),
            min_duration=float(d.get("min_duration", base.min_duration)),
            merge_gap=float(d.get("merge_gap", base.merge_gap)),
            chunk_duration=float(d.get("chunk_duration", base.chunk_duration)),
            workers=int(d.get("workers", base.workers)),
            use_vad=bool(d.get("use_vad", base.use_vad)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sensitivity": self.sensitivity,
            "min_duration": self.min_duration,
            "merge_gap": self.merge_gap,
            "chunk_duration": self.chunk_duration,
            "workers": self.workers,
            "use_vad": self.use_vad,
        }


@dataclass(frozen=True)
class AudioSpike:
    start_s: float
    end_s: float
    peak_rms: float
    score: float  # 0-100

    @property
    def duration_s(self) -> float:
        return self.end_s - self.start_s

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_s": self.start_s,
            "end_s": self.end_s,
            "peak_rms": self.peak_rms,
            "score": self.score,
        }


@dataclass
class AudioAnalysisResult:
    chunks: List[AudioChunk]
    baseline_rms: float
    std_dev: float
    threshold: float
    spikes: List[AudioSpike]
    voice_segments: List[VoiceSegment] = field(default_factory=list)

    @property
    def waveform(self) -> List[float]:
        return [c.rms for c in self.chunks]

    def diagnostics(self) -> Dict[str, Any]:
        return {
            "baseline_rms": self.baseline_rms,
            "std_dev": self.std_dev,
            "threshold": self.threshold,
            "chunks": len(self.chunks),
            "spikes": len(self.spikes),
            "voice_segments": sum(1 for s in self.voice_segments if s.has_voice),
        }


@dataclass(frozen=True)
class _Candidate:
    index: int
    quality: float
    voice_ratio: float


def threshold_percentile(sensitivity: float) -> float:
    if sensitivity <= 1.0:
        return 75.0
    if sensitivity <= 2.0:
        return 82.0
    if sensitivity <= 3.0:
        return 90.0
    return 95.0


def compute_threshold(rms_values: Sequence[float], baseline: float, sensitivity: float) -> float:
    """Percentile threshold, replaced by a baseline multiple when the distribution is flat."""
    threshold = percentile_value(rms_values, threshold_percentile(sensitivity))
    if threshold <= baseline * 1.15:
        threshold = baseline * (1.0 + sensitivity * 0.35)
    return threshold


def score_audio_spike(peak_rms: float, baseline: float, quality: float, voice_ratio: float) -> float:
    if baseline > 0.0:
        intensity = clamp((peak_rms / baseline - 1.0) * 30.0, 0.0, 40.0)
    else:
        intensity = 20.0
    quality_bonus = max(quality - MIN_SPIKE_QUALITY, 0.0) * 0.6
    voice_bonus = voice_ratio * 20.0
    return clamp(intensity + quality_bonus + voice_bonus, 0.0, 100.0)


def _find_candidates(
    chunks: Sequence[AudioChunk],
    *,
    baseline: float,
    threshold: float,
    sigma: float,
    voice_segments: Sequence[VoiceSegment],
) -> List[_Candidate]:
    rms = np.array([c.rms for c in chunks], dtype=np.float64)
    avg_delta = float(np.mean(np.abs(np.diff(rms))))

    out: List[_Candidate] = []
    for i in range(1, len(chunks) - 1):
        chunk = chunks[i]
        delta = abs(chunk.rms - chunks[i - 1].rms)
        has_voice, voice_ratio = voice_overlap(voice_segments, chunk.start_s, chunk.end_s)
        crest = chunk.peak / chunk.rms if chunk.rms > 0.001 else 1.0

        criteria: Tuple[Tuple[bool, float], ...] = (
            (chunk.rms > threshold, W_ABOVE_THRESHOLD),
            (delta > avg_delta * 1.5, W_SUDDEN_CHANGE),
            (crest > 2.0, W_TRANSIENT),
            (chunks[i + 1].rms > baseline * 1.2, W_SUSTAINED),
            (chunk.rms > baseline + sigma * 1.5, W_WELL_ABOVE_BASELINE),
            (has_voice or voice_ratio > 0.2, W_VOICE),
        )
        above_threshold = criteria[0][0]
        voice_detected = criteria[-1][0]
        quality = sum(w for met, w in criteria if met)
        met_count = sum(1 for met, _ in criteria if met)

        if above_threshold and (voice_detected or met_count >= MIN_CRITERIA):
            out.append(_Candidate(index=i, quality=quality, voice_ratio=voice_ratio))
    return out


def detect_audio_spikes(
    chunks: Sequence[AudioChunk],
    settings: AudioSettings,
    *,
    baseline: float,
    threshold: float,
    sigma: float,
    voice_segments: Sequence[VoiceSegment] = (),
) -> List[AudioSpike]:
    """Group candidate chunks into spikes, best score first."""
    if len(chunks) < 3:
        return []

    candidates = _find_candidates(
        chunks, baseline=baseline, threshold=threshold, sigma=sigma, voice_segments=voice_segments
    )
    if not candidates:
        return []

    spikes: List[AudioSpike] = []

    def _close(start_idx: int, end_idx: int, peak: float, quality: float, voice: float) -> None:
        duration = chunks[end_idx].end_s - chunks[start_idx].start_s
        if duration >= settings.min_duration and quality >= MIN_SPIKE_QUALITY:
            spikes.append(
                AudioSpike(
                    start_s=chunks[start_idx].start_s,
                    end_s=chunks[end_idx].end_s,
                    peak_rms=peak,
                    score=score_audio_spike(peak, baseline, quality, voice),
                )
            )

    first = candidates[0]
    start_idx = end_idx = first.index
    peak = chunks[first.index].rms
    quality = first.quality
    voice = first.voice_ratio

    for cand in candidates[1:]:
        gap = chunks[cand.index].start_s - chunks[end_idx].end_s
        if gap <= settings.merge_gap:
            end_idx = cand.index
            peak = max(peak, chunks[cand.index].rms)
            quality = max(quality, cand.quality)
            voice = max(voice, cand.voice_ratio)
        else:
            _close(start_idx, end_idx, peak, quality, voice)
            start_idx = end_idx = cand.index
            peak = chunks[cand.index].rms
            quality = cand.quality
            voice = cand.voice_ratio

    _close(start_idx, end_idx, peak, quality, voice)

    spikes.sort(key=lambda s: s.score, reverse=True)
    return spikes


def _voice_segments_or_empty(samples: np.ndarray, settings: AudioSettings, sample_rate: int) -> List[VoiceSegment]:
    if not settings.use_vad:
        return []
    try:
        return detect_voice_activity(samples, sample_rate, settings.chunk_duration)
    except VoiceClassifierError as exc:
        logger.warning("[audio_vad] Voice detection failed, continuing without it: %s", exc)
        return []


def analyze_audio_samples(
    samples: Any,
    sample_rate: int,
    settings: Optional[AudioSettings] = None,
) -> AudioAnalysisResult:
    """Run the full audio stage over a mono int16 sample buffer.

    Raises:
        EmptySamplesError: no samples at all.
        EmptyChunksError: chunking produced nothing.
    """
    settings = settings or AudioSettings()
    x = np.asarray(samples, dtype=np.int16).reshape(-1)
    if x.size == 0:
        raise EmptySamplesError("No audio samples found")

    voice_segments = _voice_segments_or_empty(x, settings, sample_rate)
    logger.debug(
        "[audio_vad] %d of %d segments contain voice",
        sum(1 for s in voice_segments if s.has_voice),
        len(voice_segments),
    )

    chunks = compute_audio_chunks(x, sample_rate, settings.chunk_duration, workers=settings.workers)
    if not chunks:
        raise EmptyChunksError("No audio chunks generated")

    rms_values = [c.rms for c in chunks]
    baseline = median(rms_values)
    sigma = std_dev(rms_values, baseline)
    threshold = compute_threshold(rms_values, baseline, settings.sensitivity)
    logger.debug("[audio] baseline=%.4f std_dev=%.4f threshold=%.4f", baseline, sigma, threshold)

    spikes = detect_audio_spikes(
        chunks,
        settings,
        baseline=baseline,
        threshold=threshold,
        sigma=sigma,
        voice_segments=voice_segments,
    )
    logger.info("[audio] %d chunks, %d spikes", len(chunks), len(spikes))

    return AudioAnalysisResult(
        chunks=chunks,
        baseline_rms=baseline,
        std_dev=sigma,
        threshold=threshold,
        spikes=spikes,
        voice_segments=voice_segments,
    )
