from __future__ import annotations

import concurrent.futures
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

# Full-scale magnitude of signed 16-bit PCM.
PCM16_SCALE = 32768.0


@dataclass(frozen=True)
class AudioChunk:
    start_s: float
    end_s: float
    rms: float
    peak: float

    @property
    def duration_s(self) -> float:
        return self.end_s - self.start_s

    def to_dict(self) -> Dict[str, Any]:
        return {"start_s": self.start_s, "end_s": self.end_s, "rms": self.rms, "peak": self.peak}


def _as_pcm16(samples: Any) -> np.ndarray:
    x = np.asarray(samples)
    if x.ndim != 1:
        x = x.reshape(-1)
    return x.astype(np.int16, copy=False)


def chunk_metrics(block: np.ndarray) -> Tuple[float, float]:
    """RMS and peak of one block of int16 samples, normalized to 0..1."""
    if block.size == 0:
        return 0.0, 0.0
    b64 = block.astype(np.float64)
    rms = float(np.sqrt(np.mean(b64 * b64))) / PCM16_SCALE
    peak = float(np.max(np.abs(b64))) / PCM16_SCALE
    return rms, peak


def _batch_metrics(blocks: Sequence[np.ndarray]) -> List[Tuple[float, float]]:
    return [chunk_metrics(b) for b in blocks]


def compute_audio_chunks(
    samples: Any,
    sample_rate: int,
    chunk_duration_s: float,
    *,
    workers: int = 1,
) -> List[AudioChunk]:
    """
    Split mono PCM16 samples into fixed-length chunks and measure each one.

    - `int(sample_rate * chunk_duration_s)` samples per chunk, last may be shorter
    - Chunks are measured in a thread pool; output order always matches input order
    """
    x = _as_pcm16(samples)
    samples_per_chunk = int(sample_rate * chunk_duration_s)
    if samples_per_chunk <= 0:
        raise ValueError("chunk_duration_s too small; resulted in non-positive samples_per_chunk")
    if x.size == 0:
        return []

    blocks = [x[i:i + samples_per_chunk] for i in range(0, x.size, samples_per_chunk)]

    workers = max(1, int(workers))
    if workers == 1 or len(blocks) < 2:
        metrics = _batch_metrics(blocks)
    else:
        batch = max(1, len(blocks) // (workers * 4))
        batches = [blocks[i:i + batch] for i in range(0, len(blocks), batch)]
        metrics = []
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            # Executor.map yields results in submission order.
            for part in executor.map(_batch_metrics, batches):
                metrics.extend(part)

    chunk_s = samples_per_chunk / float(sample_rate)
    return [
        AudioChunk(start_s=i * chunk_s, end_s=(i + 1) * chunk_s, rms=rms, peak=peak)
        for i, (rms, peak) in enumerate(metrics)
    ]
