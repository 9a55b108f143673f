"""Chat activity analysis: normalized messages, fixed windows, window metrics."""

from .models import ChatAnalysisResult, ChatInfo, ChatMessage, ChatSpike, ChatWindow
from .windows import calculate_caps_ratio, count_keyword_matches, create_windows

__all__ = [
    "ChatAnalysisResult",
    "ChatInfo",
    "ChatMessage",
    "ChatSpike",
    "ChatWindow",
    "calculate_caps_ratio",
    "count_keyword_matches",
    "create_windows",
]
