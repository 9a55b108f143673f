from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .analysis_audio import AudioSettings
from .analysis_chat import ChatSettings
from .analysis_highlights import HighlightSettings

TIERS = ("pro", "free")


@dataclass(frozen=True)
class AnalyzeSettings:
    """Everything one analysis run needs, grouped by stage."""

    audio: AudioSettings = field(default_factory=AudioSettings)
    chat: ChatSettings = field(default_factory=ChatSettings)
    highlights: HighlightSettings = field(default_factory=HighlightSettings)
    tier: str = "pro"
    free_tier_limit: int = 5  # highlights kept after merging on the free tier

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AnalyzeSettings":
        tier = str(d.get("tier", "pro")).lower()
        if tier not in TIERS:
            raise ValueError(f"Unknown tier {tier!r}; expected one of {', '.join(TIERS)}")
        return cls(
            audio=AudioSettings.from_dict(d.get("audio") or {}),
            chat=ChatSettings.from_dict(d.get("chat") or {}),
            highlights=HighlightSettings.from_dict(d.get("highlights") or {}),
            tier=tier,
            free_tier_limit=int(d.get("free_tier_limit", 5)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "audio": self.audio.to_dict(),
            "chat": self.chat.to_dict(),
            "highlights": self.highlights.to_dict(),
            "tier": self.tier,
            "free_tier_limit": self.free_tier_limit,
        }


def default_profile() -> Dict[str, Any]:
    return {"analysis": AnalyzeSettings().to_dict()}


def load_profile(profile_path: Optional[Path]) -> Dict[str, Any]:
    if profile_path is None:
        return default_profile()

    profile_path = Path(profile_path)
    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    data = yaml.safe_load(profile_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Profile YAML must be a mapping")
    return data


def settings_from_profile(profile: Dict[str, Any]) -> AnalyzeSettings:
    """Overlay the profile's ``analysis`` section on the defaults.

    Keys missing from the profile keep their default values.
    """
    analysis = profile.get("analysis") or {}
    if not isinstance(analysis, dict):
        raise ValueError("Profile 'analysis' section must be a mapping")
    return AnalyzeSettings.from_dict(analysis)


def dump_profile(profile: Dict[str, Any]) -> str:
    return yaml.safe_dump(profile, sort_keys=False)
