from .errors import (
    EmptyResultError,
    GenerationCancelledError,
    GenerationPhase,
    InvalidSettingsError,
    PatternGenerationError,
)
from .matching import PaletteMatcher
from .models import (
    GenerationSettings,
    MatchingMethod,
    PaletteEntry,
    Pattern,
    ReferenceColor,
    Stitch,
)
from .palette import PaletteValidationError, ReferencePalette, default_palette, load_palette
from .pipeline import PatternGenerationPipeline
from .quantize import quantize

__all__ = [
    "EmptyResultError",
    "GenerationCancelledError",
    "GenerationPhase",
    "GenerationSettings",
    "InvalidSettingsError",
    "MatchingMethod",
    "PaletteEntry",
    "PaletteMatcher",
    "PaletteValidationError",
    "Pattern",
    "PatternGenerationError",
    "PatternGenerationPipeline",
    "ReferenceColor",
    "ReferencePalette",
    "Stitch",
    "default_palette",
    "load_palette",
    "quantize",
]
