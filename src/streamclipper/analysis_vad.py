"""Voice Activity Detection (VAD) over a materialized PCM buffer using WebRTC VAD.

Loud moments in streams are often game sound or music; the streamer's own
voice is the better predictor of a reaction worth clipping. This module
classifies 30 ms frames as voice/non-voice and aggregates them into segments
aligned with the audio analysis chunks.

WebRTC VAD only accepts 8/16/32/48 kHz. Other rates are linearly resampled to
16 kHz; reported segment times are always in the original timeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np
import webrtcvad

from .errors import VoiceClassifierError

logger = logging.getLogger(__name__)

SUPPORTED_RATES = (8000, 16000, 32000, 48000)
FALLBACK_RATE = 16000


@dataclass(frozen=True)
class VadConfig:
    """Configuration for the frame classifier.

    Notes:
    - frame_ms must be 10, 20 or 30 (a WebRTC VAD restriction).
    - aggressiveness 0..3; 3 filters out the most non-speech.
    """

    aggressiveness: int = 3
    frame_ms: int = 30
    voice_cutoff: float = 0.3  # has_voice when voice_ratio exceeds this


@dataclass(frozen=True)
class VoiceSegment:
    start_s: float
    end_s: float
    voice_ratio: float
    has_voice: bool

    @property
    def duration_s(self) -> float:
        return self.end_s - self.start_s

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_s": self.start_s,
            "end_s": self.end_s,
            "voice_ratio": self.voice_ratio,
            "has_voice": self.has_voice,
        }


def resample_linear(samples: np.ndarray, src_rate: int, dst_rate: int = FALLBACK_RATE) -> np.ndarray:
    """Linear-interpolation resampling of int16 PCM (output truncated back to int16)."""
    x = np.asarray(samples, dtype=np.int16).reshape(-1)
    if x.size == 0 or src_rate == dst_rate:
        return x
    ratio = float(src_rate) / float(dst_rate)
    new_len = int(x.size / ratio)
    if new_len <= 0:
        return np.zeros((0,), dtype=np.int16)
    src_pos = np.arange(new_len, dtype=np.float64) * ratio
    y = np.interp(src_pos, np.arange(x.size, dtype=np.float64), x.astype(np.float64))
    return y.astype(np.int16)


def _make_vad(cfg: VadConfig) -> Any:
    try:
        return webrtcvad.Vad(int(cfg.aggressiveness))
    except Exception as exc:
        raise VoiceClassifierError(f"Failed to initialize WebRTC VAD: {exc}") from exc


def _classify_chunks(
    vad: Any,
    x: np.ndarray,
    *,
    rate: int,
    chunk_duration_s: float,
    cfg: VadConfig,
) -> List[VoiceSegment]:
    frame_samples = rate * cfg.frame_ms // 1000
    samples_per_chunk = int(rate * chunk_duration_s)
    if samples_per_chunk <= 0:
        raise VoiceClassifierError("chunk duration too small for voice detection")

    pcm = x.astype("<i2", copy=False)
    segments: List[VoiceSegment] = []
    failed_frames = 0

    for chunk_start in range(0, pcm.size, samples_per_chunk):
        chunk_end = min(chunk_start + samples_per_chunk, pcm.size)
        voice_frames = 0
        total_frames = 0
        for f0 in range(chunk_start, chunk_end - frame_samples + 1, frame_samples):
            frame = pcm[f0:f0 + frame_samples].tobytes()
            try:
                is_voice = vad.is_speech(frame, rate)
            except Exception:
                failed_frames += 1
                continue
            total_frames += 1
            if is_voice:
                voice_frames += 1

        voice_ratio = voice_frames / total_frames if total_frames > 0 else 0.0
        segments.append(
            VoiceSegment(
                start_s=chunk_start / rate,
                end_s=chunk_end / rate,
                voice_ratio=float(voice_ratio),
                has_voice=voice_ratio > cfg.voice_cutoff,
            )
        )

    if failed_frames:
        logger.debug("[audio_vad] %d frames rejected by the detector", failed_frames)
    return segments


def detect_voice_activity(
    samples: Any,
    sample_rate: int,
    chunk_duration_s: float,
    *,
    cfg: VadConfig = VadConfig(),
) -> List[VoiceSegment]:
    """Classify voice activity per chunk.

    Raises:
        VoiceClassifierError: the detector could not be used. Callers are
            expected to treat this as "no voice information".
    """
    x = np.asarray(samples, dtype=np.int16).reshape(-1)
    if sample_rate <= 0:
        raise VoiceClassifierError(f"invalid sample rate: {sample_rate}")

    vad = _make_vad(cfg)

    if sample_rate in SUPPORTED_RATES:
        return _classify_chunks(
            vad, x, rate=sample_rate, chunk_duration_s=chunk_duration_s, cfg=cfg
        )

    logger.debug("[audio_vad] Resampling %d Hz -> %d Hz for VAD", sample_rate, FALLBACK_RATE)
    resampled = resample_linear(x, sample_rate, FALLBACK_RATE)
    # Sample offsets are divided by the 16 kHz rate, so times land on the source timeline.
    return _classify_chunks(
        vad,
        resampled,
        rate=FALLBACK_RATE,
        chunk_duration_s=chunk_duration_s,
        cfg=cfg,
    )


def voice_overlap(segments: Sequence[VoiceSegment], start_s: float, end_s: float) -> Tuple[bool, float]:
    """Average voice ratio of the segments overlapping [start_s, end_s).

    Returns (False, 0.0) when nothing overlaps, else (avg > 0.25, avg).
    """
    ratios = [seg.voice_ratio for seg in segments if seg.start_s < end_s and seg.end_s > start_s]
    if not ratios:
        return False, 0.0
    avg = float(sum(ratios) / len(ratios))
    return avg > 0.25, avg
