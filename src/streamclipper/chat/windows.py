"""Fixed-size windowing of a chat log into per-window activity metrics."""

from __future__ import annotations

import bisect
from typing import List, Sequence

from .models import ChatMessage, ChatWindow


def count_keyword_matches(messages: Sequence[ChatMessage], keywords: Sequence[str]) -> int:
    """Case-insensitive substring hits; one message can match several keywords."""
    upper_keywords = [k.upper() for k in keywords if k]
    count = 0
    for msg in messages:
        upper = msg.text.upper()
        count += sum(1 for k in upper_keywords if k in upper)
    return count


def calculate_caps_ratio(messages: Sequence[ChatMessage]) -> float:
    total = 0
    upper = 0
    for msg in messages:
        for ch in msg.text:
            if ch.isalpha():
                total += 1
                if ch.isupper():
                    upper += 1
    return upper / total if total > 0 else 0.0


def create_windows(
    messages: Sequence[ChatMessage],
    window_size_s: float,
    keywords: Sequence[str] = (),
) -> List[ChatWindow]:
    """Tile [first timestamp, last timestamp) with contiguous windows.

    A message falls into a window when start <= timestamp < end.
    """
    if not messages:
        return []
    if window_size_s <= 0:
        raise ValueError("window_size_s must be > 0")

    start_time = messages[0].timestamp_s
    end_time = messages[-1].timestamp_s
    # Lookup runs on a time-sorted copy so out-of-order logs still count correctly.
    ordered = sorted(messages, key=lambda m: m.timestamp_s)
    times = [m.timestamp_s for m in ordered]

    windows: List[ChatWindow] = []
    index = 0
    window_start = start_time
    while window_start < end_time:
        # Multiplying avoids accumulating float error over long logs.
        window_end = start_time + (index + 1) * window_size_s
        lo = bisect.bisect_left(times, window_start)
        hi = bisect.bisect_left(times, window_end)
        in_window = ordered[lo:hi]

        count = len(in_window)
        emotes = sum(1 for m in in_window if m.has_emote)
        windows.append(
            ChatWindow(
                start_s=window_start,
                end_s=window_end,
                message_count=count,
                unique_users=len({m.username for m in in_window}),
                keyword_matches=count_keyword_matches(in_window, keywords),
                emote_density=emotes / count if count > 0 else 0.0,
                caps_ratio=calculate_caps_ratio(in_window),
            )
        )
        index += 1
        window_start = window_end

    return windows
