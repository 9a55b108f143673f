"""Tests for YAML profiles and AnalyzeSettings."""

from __future__ import annotations

import pytest
import yaml

from streamclipper.profile import (
    AnalyzeSettings,
    default_profile,
    dump_profile,
    load_profile,
    settings_from_profile,
)


def test_default_profile_round_trips_to_defaults():
    """Test the default profile parses back to default settings."""
    settings = settings_from_profile(default_profile())
    assert settings == AnalyzeSettings()


def test_partial_profile_keeps_defaults(tmp_path):
    """Test a partial profile overlays the defaults."""
    path = tmp_path / "profile.yaml"
    path.write_text(
        "analysis:\n"
        "  tier: FREE\n"
        "  audio:\n"
        "    sensitivity: 3.0\n"
        "    use_vad: false\n"
        "  chat:\n"
        "    keywords: [wow, clutch]\n"
        "  highlights:\n"
        "    max_clips: 4\n",
        encoding="utf-8",
    )
    settings = settings_from_profile(load_profile(path))
    assert settings.tier == "free"
    assert settings.audio.sensitivity == 3.0
    assert settings.audio.use_vad is False
    assert settings.audio.min_duration == 2.0
    assert settings.chat.keywords == ("wow", "clutch")
    assert settings.chat.window_size == 5.0
    assert settings.highlights.max_clips == 4
    assert settings.highlights.combo_bonus == 1.5


def test_no_profile_path_gives_defaults():
    """Test no path gives the default profile."""
    assert load_profile(None) == default_profile()


def test_missing_profile(tmp_path):
    """Test a missing profile raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_profile(tmp_path / "nope.yaml")


def test_profile_must_be_mapping(tmp_path):
    """Test a non-mapping profile is rejected."""
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_profile(path)


def test_analysis_section_must_be_mapping():
    """Test a non-mapping analysis section is rejected."""
    with pytest.raises(ValueError):
        settings_from_profile({"analysis": [1, 2]})


def test_unknown_tier():
    """Test an unknown tier is rejected."""
    with pytest.raises(ValueError, match="tier"):
        settings_from_profile({"analysis": {"tier": "platinum"}})


def test_dump_profile_is_valid_yaml():
    """Test the dumped profile is YAML in field order."""
    text = dump_profile(default_profile())
    data = yaml.safe_load(text)
    assert data["analysis"]["audio"]["chunk_duration"] == 0.5
    assert "sample_rate" not in data["analysis"]["audio"]
    assert data["analysis"]["highlights"]["max_clips"] is None
    assert list(data["analysis"]) == ["audio", "chat", "highlights", "tier", "free_tier_limit"]
