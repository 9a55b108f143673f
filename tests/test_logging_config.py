"""Tests for logging setup helpers."""

import logging

import pytest

from streamclipper.logging_config import parse_module_levels


def test_parse_module_levels():
    """Test short names are qualified and bad entries skipped."""
    levels = parse_module_levels("analysis_audio=DEBUG; chat:warning,bogus, x=NOTALEVEL")
    assert levels == {
        "streamclipper.analysis_audio": logging.DEBUG,
        "streamclipper.chat": logging.WARNING,
    }


def test_parse_module_levels_keeps_qualified_names():
    """Test qualified names pass through."""
    assert parse_module_levels("streamclipper.pipeline=ERROR") == {"streamclipper.pipeline": logging.ERROR}


@pytest.mark.parametrize("value", ["", None])
def test_parse_module_levels_empty(value):
    """Test empty input gives no overrides."""
    assert parse_module_levels(value) == {}
