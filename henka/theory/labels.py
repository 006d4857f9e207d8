from __future__ import annotations

"""Display labels for chords: absolute names and Roman numerals relative to a key."""

from typing import Dict, Tuple

from .chord_types import ABSOLUTE_SUFFIX
from .errors import UnknownChordType
from .keys import KEYS, normalize_key, pitch_class_index
from .roman import split_core


SEMITONE_TO_ROMAN_BASE: Dict[int, str] = {
    0: "I",
    1: "bII",
    2: "II",
    3: "bIII",
    4: "III",
    5: "IV",
    6: "#IV",
    7: "V",
    8: "bVI",
    9: "VI",
    10: "bVII",
    11: "VII",
}

# Sharp spellings for chromatic roots; flatted half-diminished numerals do not parse.
SHARP_ROMAN_BASE: Dict[int, str] = {
    1: "#I",
    3: "#II",
    8: "#V",
    10: "#VI",
}

# chord type -> (upper-case numeral?, quality suffix)
ROMAN_STYLE: Dict[str, Tuple[bool, str]] = {
    "major": (True, ""),
    "minor": (False, ""),
    "diminished": (False, "°"),
    "augmented": (True, "+"),
    "major7": (True, "maj7"),
    "minor7": (False, "7"),
    "dominant7": (True, "7"),
    "diminished7": (False, "°7"),
    "half_diminished7": (False, "ø7"),
    "major9": (True, "maj9"),
    "minor9": (False, "9"),
    "dominant9": (True, "9"),
    "major11": (True, "maj11"),
    "minor11": (False, "m11"),
    "dominant11": (True, "11"),
}


def format_absolute_label(root: str, chord_type: str) -> str:
    if chord_type not in ABSOLUTE_SUFFIX:
        raise UnknownChordType(chord_type)
    return f"{normalize_key(root)}{ABSOLUTE_SUFFIX[chord_type]}"


def format_roman_for_chord_type(base: str, chord_type: str) -> str:
    """Re-case a base numeral and attach the suffix for ``chord_type``.

    ``format_roman_for_chord_type("bVI", "minor7") == "bvi7"``.
    """
    leading, letters, trailing, remainder = split_core(base)
    style = ROMAN_STYLE.get(chord_type)
    if style is None:
        upper, suffix = letters.isupper(), remainder
    else:
        upper, suffix = style
    core = letters.upper() if upper else letters.lower()
    if not leading and trailing:
        return f"{core}{trailing}{suffix}"
    return f"{leading}{trailing}{core}{suffix}"


def format_roman_label(root: str, chord_type: str, key: str) -> str:
    """Roman numeral for an absolute chord heard in ``key``."""
    interval = (pitch_class_index(root) - pitch_class_index(key)) % 12
    base = SEMITONE_TO_ROMAN_BASE[interval]
    if chord_type == "half_diminished7" and base.startswith("b"):
        base = SHARP_ROMAN_BASE[interval]
    return format_roman_for_chord_type(base, chord_type)


def normalize_key_signature(key: str, default: str = "C") -> str:
    return key if key in KEYS else default
