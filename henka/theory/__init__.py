"""Music-theory layer: chord vocabulary, Roman numerals, voicing and progressions."""

from .chord import Chord, ChordProgression, build_chord  # noqa: F401
from .difficulty import DIFFICULTY_LEVELS, DifficultyLevel, get_difficulty  # noqa: F401
from .errors import (  # noqa: F401
    TheoryError,
    UnknownChordType,
    UnknownDifficulty,
    UnknownKey,
    UnknownRomanNumeral,
)
from .progression import (  # noqa: F401
    ProgressionGenerator,
    ProgressionOptions,
    generate_progression_from_roman,
    generate_random_progression,
)
from .roman import RomanNumeral, parse_roman  # noqa: F401
from .voice_leading import voice_lead_chord  # noqa: F401
