"""Adapters that turn files into the pipeline's in-memory inputs.

Only already-prepared inputs are handled here: 16-bit PCM WAV (decode other
media with ffmpeg first) and chat logs that were normalized to records of
``{timestamp, username, text, has_emote}``.
"""

from __future__ import annotations

import json
import logging
import wave
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .chat.models import ChatMessage
from .utils import parse_timestamp

logger = logging.getLogger(__name__)


def load_wav_samples(path: Path) -> Tuple[np.ndarray, int]:
    """Read a PCM16 WAV file as mono int16 samples plus its sample rate.

    Multi-channel audio is averaged down to mono.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Audio file not found: {path}")

    with wave.open(str(path), "rb") as wf:
        channels = wf.getnchannels()
        sample_width = wf.getsampwidth()
        sample_rate = wf.getframerate()
        raw = wf.readframes(wf.getnframes())

    if sample_width != 2:
        raise ValueError(f"Only 16-bit PCM WAV is supported (got {8 * sample_width}-bit): {path}")

    x = np.frombuffer(raw, dtype="<i2")
    if channels > 1:
        x = x[: (x.size // channels) * channels].reshape(-1, channels)
        x = np.round(x.astype(np.float64).mean(axis=1)).astype(np.int16)
    return x.astype(np.int16, copy=False), int(sample_rate)


def _parse_time(val: Any) -> Optional[float]:
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        return float(val)
    if isinstance(val, str):
        val = val.strip()
        if not val:
            return None
        try:
            return float(val)
        except ValueError:
            return parse_timestamp(val)
    return None


def _load_records(path: Path) -> List[Dict[str, Any]]:
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # JSONL: one record per line
        items: List[Dict[str, Any]] = []
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(obj, dict):
                items.append(obj)
        data = items
    if isinstance(data, dict):
        # A wrapper object, or a single-record log
        data = data["messages"] if "messages" in data else [data]
    if not isinstance(data, list):
        return []
    return [m for m in data if isinstance(m, dict)]


def load_chat_messages(path: Path) -> List[ChatMessage]:
    """Read a normalized chat log (JSON list, ``{"messages": [...]}`` or JSONL).

    Records without a usable timestamp are skipped. Output is time-sorted.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Chat file not found: {path}")

    messages: List[ChatMessage] = []
    skipped = 0
    for rec in _load_records(path):
        ts = _parse_time(rec.get("timestamp"))
        if ts is None or ts < 0:
            skipped += 1
            continue
        messages.append(
            ChatMessage(
                timestamp_s=ts,
                username=str(rec.get("username") or ""),
                text=str(rec.get("text") or ""),
                has_emote=bool(rec.get("has_emote", False)),
            )
        )
    if skipped:
        logger.warning("[chat] Skipped %d records without a valid timestamp in %s", skipped, path)

    messages.sort(key=lambda m: m.timestamp_s)
    return messages
