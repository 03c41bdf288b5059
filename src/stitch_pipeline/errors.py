from __future__ import annotations

from enum import Enum


class GenerationPhase(str, Enum):
    DIMENSIONS = "dimensions"
    RESIZE = "resize"
    EXTRACT = "extract"
    QUANTIZE = "quantize"
    MATCH = "match"
    MAP = "map"
    AGGREGATE = "aggregate"


class PatternGenerationError(RuntimeError):
    """Generation stopped; ``phase`` names the step that failed."""

    def __init__(self, phase: GenerationPhase, message: str) -> None:
        super().__init__(message)
        self.phase = phase

    def __str__(self) -> str:
        return f"{self.phase.value}: {self.args[0]}"


class InvalidSettingsError(PatternGenerationError, ValueError):
    """The caller asked for something impossible (bad size, zero colors)."""


class EmptyResultError(PatternGenerationError):
    """A phase produced nothing to work with, usually a degenerate image."""


class GenerationCancelledError(PatternGenerationError):
    pass
