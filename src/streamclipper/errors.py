"""Exceptions raised by the highlight detection pipeline."""

from __future__ import annotations


class AnalysisError(RuntimeError):
    """Base class for fatal analysis failures."""


class EmptySamplesError(AnalysisError):
    """Raised when the audio buffer contains no samples."""


class EmptyChunksError(AnalysisError):
    """Raised when chunking the audio buffer produced no chunks."""


class VoiceClassifierError(AnalysisError):
    """Raised when the voice activity detector fails.

    Never fatal: the audio analyzer catches it and continues without voice info.
    """


class AnalysisCancelled(Exception):
    """Raised when analysis is cancelled between pipeline stages."""
