from __future__ import annotations

"""Difficulty levels: chord vocabulary, templates and inversion policy.

The built-in levels are constants. The ``custom`` level is not stored here:
callers build one (``difficulty_from_dict``) and pass it into generation.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .chord_types import is_chord_type
from .errors import UnknownChordType, UnknownDifficulty
from .keys import normalize_key


CUSTOM = "custom"


@dataclass(frozen=True)
class DifficultyLevel:
    name: str
    chord_types: Tuple[str, ...]
    progression_length: int
    common_progressions: Tuple[Tuple[str, ...], ...] = ()
    use_inversions: bool = False
    inversion_probability: float = 0.0
    max_inversion: int = 0
    allowed_keys: Optional[Tuple[str, ...]] = None
    use_voice_leading: bool = False
    show_inversions: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        if not self.chord_types:
            raise ValueError(f"{self.name}: chord_types must not be empty")
        for t in self.chord_types:
            if not is_chord_type(t):
                raise UnknownChordType(t)
        if self.progression_length < 1:
            raise ValueError(f"{self.name}: progression_length must be >= 1")
        if not 0.0 <= self.inversion_probability <= 1.0:
            raise ValueError(f"{self.name}: inversion_probability must be within [0, 1]")
        if self.max_inversion < 0:
            raise ValueError(f"{self.name}: max_inversion must be >= 0")
        if self.allowed_keys is not None:
            object.__setattr__(self, "allowed_keys", tuple(normalize_key(k) for k in self.allowed_keys))


DIFFICULTY_LEVELS: Dict[str, DifficultyLevel] = {
    "easy": DifficultyLevel(
        name="Easy",
        chord_types=("major", "minor"),
        progression_length=4,
        common_progressions=(
            ("I", "V", "vi", "IV"),
            ("vi", "IV", "I", "V"),
            ("I", "vi", "IV", "V"),
        ),
        allowed_keys=("C", "G", "F", "D"),
        use_voice_leading=True,
    ),
    "beginner": DifficultyLevel(
        name="Beginner",
        chord_types=("major", "minor"),
        progression_length=4,
        common_progressions=(
            ("I", "V", "vi", "IV"),
            ("vi", "IV", "I", "V"),
            ("I", "vi", "IV", "V"),
            ("ii", "V", "I", "vi"),
        ),
        max_inversion=2,
        use_voice_leading=True,
    ),
    "intermediate": DifficultyLevel(
        name="Intermediate",
        chord_types=("major", "minor", "major7", "minor7", "dominant7"),
        progression_length=4,
        common_progressions=(
            ("Imaj7", "vi7", "ii7", "V7"),
            ("vi7", "ii7", "V7", "Imaj7"),
            ("Imaj7", "IV7", "vii7", "iii7"),
            ("ii7", "V7", "Imaj7", "vi7"),
        ),
        use_inversions=True,
        inversion_probability=0.3,
        max_inversion=1,
        use_voice_leading=True,
    ),
    "advanced": DifficultyLevel(
        name="Advanced",
        chord_types=(
            "major",
            "minor",
            "major7",
            "minor7",
            "dominant7",
            "diminished7",
            "half_diminished7",
            "major9",
            "minor9",
        ),
        progression_length=6,
        common_progressions=(
            ("Imaj9", "vi7", "ii7", "V7", "iii7", "vi7"),
            ("ii7", "V7", "Imaj9", "vi7", "ii7", "V7"),
            ("Imaj7", "viiø7", "iii7", "vi7", "ii7", "V7"),
        ),
        use_inversions=True,
        inversion_probability=0.6,
        max_inversion=3,
        show_inversions=True,
    ),
    "expert": DifficultyLevel(
        name="Expert",
        chord_types=(
            "major7",
            "minor7",
            "dominant7",
            "half_diminished7",
            "diminished7",
            "major9",
            "minor9",
            "dominant9",
            "major11",
            "minor11",
        ),
        progression_length=6,
        common_progressions=(
            ("Imaj9", "bVImaj7", "bVII7", "Imaj7", "iim11", "V9"),
            ("iim7b5", "V7", "i7", "IVmaj7", "bIImaj7", "Imaj9"),
            ("Imaj7", "#iv7", "IVmaj7", "iii7", "vi9", "II7/1st"),
        ),
        use_inversions=True,
        inversion_probability=0.7,
        max_inversion=3,
        use_voice_leading=True,
        show_inversions=True,
    ),
}

DEFAULT_CUSTOM_DIFFICULTY = DifficultyLevel(
    name="Custom",
    chord_types=("major", "minor"),
    progression_length=4,
    use_voice_leading=True,
    show_inversions=True,
)


def get_difficulty(name: str, custom: Optional[DifficultyLevel] = None) -> DifficultyLevel:
    """Resolve a difficulty by name; ``custom`` resolves to the level passed in."""
    if name == CUSTOM:
        return custom if custom is not None else DEFAULT_CUSTOM_DIFFICULTY
    level = DIFFICULTY_LEVELS.get(name)
    if level is None:
        raise UnknownDifficulty(name)
    return level


def difficulty_names() -> Tuple[str, ...]:
    return tuple(DIFFICULTY_LEVELS) + (CUSTOM,)


def difficulty_from_dict(data: Mapping[str, Any]) -> DifficultyLevel:
    """Build a custom level from a settings mapping (YAML section)."""
    keys = data.get("allowed_keys")
    return DifficultyLevel(
        name=str(data.get("name", DEFAULT_CUSTOM_DIFFICULTY.name)),
        chord_types=tuple(data.get("chord_types") or DEFAULT_CUSTOM_DIFFICULTY.chord_types),
        progression_length=int(data.get("progression_length", DEFAULT_CUSTOM_DIFFICULTY.progression_length)),
        common_progressions=tuple(tuple(p) for p in data.get("common_progressions") or ()),
        use_inversions=bool(data.get("use_inversions", False)),
        inversion_probability=float(data.get("inversion_probability", 0.0)),
        max_inversion=int(data.get("max_inversion", 0)),
        allowed_keys=tuple(keys) if keys else None,
        use_voice_leading=bool(data.get("use_voice_leading", True)),
        show_inversions=True,
    )
