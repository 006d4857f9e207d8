"""Henka: chord-progression ear training.

The theory layer turns Roman-numeral templates into voiced chord progressions;
the audio layer renders them through an audio graph with envelopes, synth and
sample voices.
"""

from __future__ import annotations

from .theory import (
    Chord,
    ChordProgression,
    DifficultyLevel,
    ProgressionGenerator,
    ProgressionOptions,
    build_chord,
    generate_progression_from_roman,
    generate_random_progression,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Chord",
    "ChordProgression",
    "DifficultyLevel",
    "ProgressionGenerator",
    "ProgressionOptions",
    "build_chord",
    "generate_progression_from_roman",
    "generate_random_progression",
]
