from __future__ import annotations

import wave
from pathlib import Path
from typing import List, Sequence

import numpy as np
import pytest

from streamclipper.audio_features import AudioChunk


def make_chunks(rms_values: Sequence[float], peaks: Sequence[float] | None = None, chunk_s: float = 0.5) -> List[AudioChunk]:
    """Chunk list with explicit rms/peak values (peak defaults to rms * 1.2)."""
    out = []
    for i, rms in enumerate(rms_values):
        peak = peaks[i] if peaks is not None else rms * 1.2
        out.append(AudioChunk(start_s=i * chunk_s, end_s=(i + 1) * chunk_s, rms=rms, peak=peak))
    return out


def sine_burst(
    *,
    sample_rate: int = 16000,
    duration_s: float = 20.0,
    quiet_amp: float = 300.0,
    loud_amp: float = 20000.0,
    loud_start_s: float = 7.5,
    loud_end_s: float = 10.0,
    freq_hz: float = 440.0,
) -> np.ndarray:
    """Quiet 440 Hz tone with one loud section."""
    n = int(sample_rate * duration_s)
    t = np.arange(n, dtype=np.float64) / sample_rate
    amp = np.full(n, quiet_amp, dtype=np.float64)
    amp[int(loud_start_s * sample_rate):int(loud_end_s * sample_rate)] = loud_amp
    return np.round(amp * np.sin(2.0 * np.pi * freq_hz * t)).astype(np.int16)


def write_wav(path: Path, samples: np.ndarray, sample_rate: int, channels: int = 1, sample_width: int = 2) -> Path:
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(np.asarray(samples).tobytes())
    return path


@pytest.fixture
def burst_samples() -> np.ndarray:
    return sine_burst()
