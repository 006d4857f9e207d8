from __future__ import annotations

"""Chord-type vocabulary: semitone offsets from the root, per type."""

from typing import Dict, List, Tuple

from .errors import UnknownChordType


CHORD_TYPES: Dict[str, Tuple[int, ...]] = {
    # Triads
    "major": (0, 4, 7),
    "minor": (0, 3, 7),
    "diminished": (0, 3, 6),
    "augmented": (0, 4, 8),
    # Sevenths
    "major7": (0, 4, 7, 11),
    "minor7": (0, 3, 7, 10),
    "dominant7": (0, 4, 7, 10),
    "diminished7": (0, 3, 6, 9),
    "half_diminished7": (0, 3, 6, 10),
    # Extended
    "major9": (0, 4, 7, 11, 14),
    "minor9": (0, 3, 7, 10, 14),
    "dominant9": (0, 4, 7, 10, 14),
    "major11": (0, 4, 7, 11, 14, 17),
    "minor11": (0, 3, 7, 10, 14, 17),
    "dominant11": (0, 4, 7, 10, 14, 17),
}

# Suffix appended to the root for absolute chord names (e.g. "Am7").
ABSOLUTE_SUFFIX: Dict[str, str] = {
    "major": "",
    "minor": "m",
    "diminished": "dim",
    "augmented": "aug",
    "major7": "maj7",
    "minor7": "m7",
    "dominant7": "7",
    "diminished7": "dim7",
    "half_diminished7": "ø7",
    "major9": "maj9",
    "minor9": "m9",
    "dominant9": "9",
    "major11": "maj11",
    "minor11": "m11",
    "dominant11": "11",
}


def intervals(chord_type: str) -> Tuple[int, ...]:
    try:
        return CHORD_TYPES[chord_type]
    except KeyError:
        raise UnknownChordType(chord_type) from None


def is_chord_type(value: str) -> bool:
    return value in CHORD_TYPES


def max_inversion(chord_type: str) -> int:
    """Highest meaningful inversion index for a chord type."""
    return len(intervals(chord_type)) - 1


def chord_type_names() -> List[str]:
    return list(CHORD_TYPES)
