from __future__ import annotations

"""Key and pitch utilities for mapping to MIDI.

Includes the 12 pitch-class names used both as key names and for modulo-12
arithmetic, enharmonic handling, and the major-scale degree offsets.
"""

from typing import Dict, List

from .errors import UnknownKey


KEYS: List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

CIRCLE_OF_FIFTHS: List[str] = ["C", "G", "D", "A", "E", "B", "F#", "C#", "G#", "D#", "A#", "F"]

# Semitone offset of each 0-based degree of the major scale.
MAJOR_SCALE: List[int] = [0, 2, 4, 5, 7, 9, 11]

MIDDLE_C = 60

_ENHARMONIC: Dict[str, str] = {
    "Db": "C#",
    "Eb": "D#",
    "Gb": "F#",
    "Ab": "G#",
    "Bb": "A#",
    "B#": "C",
    "E#": "F",
    "Cb": "B",
    "Fb": "E",
}


def normalize_key(name: str) -> str:
    """Validate and normalize a key root name.

    Args:
        name: Root name, sharps or flats.

    Returns:
        Normalized sharp-based name from ``KEYS``.
    """
    norm = _ENHARMONIC.get(name, name)
    if norm not in KEYS:
        raise UnknownKey(name)
    return norm


def pitch_class_index(name: str) -> int:
    """Return 0..11 for a pitch-class name (C = 0)."""
    return KEYS.index(normalize_key(name))


def pitch_class_name(index: int) -> str:
    return KEYS[index % 12]


def note_name_to_midi(name: str, octave: int) -> int:
    """Convert note name and octave to MIDI number (C4 = 60)."""
    return MIDDLE_C + pitch_class_index(name) + (octave - 4) * 12


def midi_to_frequency(midi: float) -> float:
    return 440.0 * 2.0 ** ((midi - 69) / 12.0)


def midi_to_note_name(midi: int) -> str:
    """'C4' style name for a MIDI number."""
    return f"{KEYS[midi % 12]}{midi // 12 - 1}"
