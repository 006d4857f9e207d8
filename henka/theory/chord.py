from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .chord_types import ABSOLUTE_SUFFIX, intervals
from .keys import MIDDLE_C, normalize_key, pitch_class_index


@dataclass(frozen=True)
class Chord:
    """A concrete chord instance for one playback/question."""

    name: str
    notes: Tuple[int, ...]       # MIDI pitches
    root_midi: int
    root: str = "C"
    chord_type: str = "major"
    roman_numeral: Optional[str] = None
    inversion: int = 0

    @property
    def base_name(self) -> str:
        """Name without the inversion suffix."""
        return self.name.split("/")[0]


@dataclass(frozen=True)
class ChordProgression:
    chords: Tuple[Chord, ...]
    key: str
    tempo: int = 120

    def __post_init__(self) -> None:
        if not self.chords:
            raise ValueError("A progression needs at least one chord")

    @property
    def chord_duration(self) -> float:
        """Seconds per chord: two beats at the progression tempo."""
        return (60.0 / self.tempo) * 2

    def roman_numerals(self) -> List[Optional[str]]:
        return [c.roman_numeral for c in self.chords]


def inversion_name(inversion: int) -> str:
    if inversion <= 0:
        return ""
    if inversion == 1:
        return "/1st"
    if inversion == 2:
        return "/2nd"
    if inversion == 3:
        return "/3rd"
    return f"/{inversion}th"


def apply_inversion(notes: Sequence[int], inversion: int) -> List[int]:
    """Move the lowest note up an octave ``inversion`` times.

    An inversion outside 1..len(notes)-1 leaves the notes untouched.
    """
    inverted = list(notes)
    if inversion <= 0 or inversion >= len(inverted):
        return inverted
    for _ in range(inversion):
        bottom = inverted.pop(0)
        inverted.append(bottom + 12)
    return inverted


def build_chord(root: str, chord_type: str, octave: int = 4, inversion: int = 0) -> Chord:
    """Build a concrete chord.

    Args:
        root: Pitch-class name of the root (e.g. "F#").
        chord_type: Name from ``CHORD_TYPES``.
        octave: Octave of the root; 4 puts C at MIDI 60.
        inversion: 0 for root position; values past the last inversion are ignored.

    Returns:
        The chord, named root + type suffix + inversion suffix.
    """
    root = normalize_key(root)
    root_midi = MIDDLE_C + pitch_class_index(root) + (octave - 4) * 12
    notes = [root_midi + offset for offset in intervals(chord_type)]
    if inversion >= len(notes) or inversion < 0:
        inversion = 0
    notes = apply_inversion(notes, inversion)
    return Chord(
        name=f"{root}{ABSOLUTE_SUFFIX[chord_type]}{inversion_name(inversion)}",
        notes=tuple(notes),
        root_midi=root_midi,
        root=root,
        chord_type=chord_type,
        inversion=inversion,
    )
