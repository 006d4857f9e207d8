from __future__ import annotations

"""Roman-numeral tokens: tokenizer and parser.

A token such as ``"bVImaj7/2nd"`` is read in four independent passes:

1. inversion suffix after ``/`` (``/1st``, ``/2nd``, ``/3rd``, ``/<n>th``)
2. accidental runs (``b`` = -1, ``#`` = +1) before or right after the numeral
3. the numeral core ``I``..``VII``; its case gives the default quality
4. the quality suffix, matched against an ordered table, longest first
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .errors import UnknownRomanNumeral
from .keys import MAJOR_SCALE, pitch_class_index


ROMAN_DEGREES: Dict[str, int] = {
    "I": 0,
    "II": 1,
    "III": 2,
    "IV": 3,
    "V": 4,
    "VI": 5,
    "VII": 6,
}

_INVERSION_RE = re.compile(r"^(?P<body>.*)/(?P<n>\d+)(?:st|nd|rd|th)?$")
_ACCIDENTALS = "b#"
_NUMERAL_LETTERS = "IViv"

# (suffix, chord type for an upper-case core, chord type for a lower-case core).
# Order matters: longer and more specific suffixes are tried first.
_QUALITY_SUFFIXES: List[Tuple[str, str, str]] = [
    ("maj11", "major11", "major11"),
    ("maj9", "major9", "major9"),
    ("maj7", "major7", "major7"),
    ("m7b5", "half_diminished7", "half_diminished7"),
    ("ø7", "half_diminished7", "half_diminished7"),
    ("°7", "diminished7", "diminished7"),
    ("o7", "diminished7", "diminished7"),
    ("dim7", "diminished7", "diminished7"),
    ("m11", "minor11", "minor11"),
    ("m9", "minor9", "minor9"),
    ("m7", "minor7", "minor7"),
    ("11", "dominant11", "minor11"),
    ("9", "dominant9", "minor9"),
    ("7", "dominant7", "minor7"),
    ("dim", "diminished", "diminished"),
    ("°", "diminished", "diminished"),
    ("o", "diminished", "diminished"),
    ("ø", "half_diminished7", "half_diminished7"),
    ("aug", "augmented", "augmented"),
    ("+", "augmented", "augmented"),
    ("m", "minor", "minor"),
    ("", "major", "minor"),
]

_HALF_DIMINISHED = "half_diminished7"


@dataclass(frozen=True)
class RomanNumeral:
    """A parsed Roman-numeral token."""

    token: str
    degree: int              # 0-based scale degree
    accidental_shift: int    # semitones, sum of b/# marks
    chord_type: str
    inversion: Optional[int]  # explicit /Nth suffix, unclamped
    upper: bool

    def root_index(self, key: str) -> int:
        """Pitch-class index of this numeral's root in ``key``."""
        return (pitch_class_index(key) + MAJOR_SCALE[self.degree] + self.accidental_shift) % 12


def split_inversion(token: str) -> Tuple[str, Optional[int]]:
    """Strip a ``/<n>th`` suffix. Returns (body, inversion or None)."""
    if "/" not in token:
        return token, None
    m = _INVERSION_RE.match(token)
    if m is None:
        raise UnknownRomanNumeral(token, "malformed inversion suffix")
    return m.group("body"), int(m.group("n"))


def split_core(body: str) -> Tuple[str, str, str, str]:
    """Split a numeral body into (leading accidentals, letters, trailing accidentals, suffix)."""
    i = 0
    while i < len(body) and body[i] in _ACCIDENTALS:
        i += 1
    leading = body[:i]
    j = i
    while j < len(body) and body[j] in _NUMERAL_LETTERS:
        j += 1
    letters = body[i:j]
    k = j
    while k < len(body) and body[k] in _ACCIDENTALS:
        k += 1
    trailing = body[j:k]
    return leading, letters, trailing, body[k:]


def accidental_shift(marks: str) -> int:
    return sum(1 if c == "#" else -1 for c in marks)


def degree_for_letters(letters: str, token: str) -> Tuple[int, bool]:
    """Map a numeral core to (0-based degree, is upper case)."""
    if not letters:
        raise UnknownRomanNumeral(token, "missing numeral")
    if letters.isupper():
        upper = True
    elif letters.islower():
        upper = False
    else:
        raise UnknownRomanNumeral(token, "mixed-case numeral")
    degree = ROMAN_DEGREES.get(letters.upper())
    if degree is None:
        raise UnknownRomanNumeral(token)
    return degree, upper


def chord_type_for_suffix(suffix: str, upper: bool, token: str) -> str:
    for text, upper_type, lower_type in _QUALITY_SUFFIXES:
        if suffix == text:
            return upper_type if upper else lower_type
    raise UnknownRomanNumeral(token, f"unknown quality suffix {suffix!r}")


def parse_roman(token: str) -> RomanNumeral:
    """Parse a Roman-numeral token.

    Args:
        token: e.g. ``"V7"``, ``"ii7"``, ``"bVImaj7"``, ``"IV/1st"``.

    Returns:
        The parsed ``RomanNumeral``.

    Raises:
        UnknownRomanNumeral: when any pass fails to recognise its part.
    """
    body, inversion = split_inversion(token.strip())
    leading, letters, trailing, suffix = split_core(body)
    degree, upper = degree_for_letters(letters, token)
    shift = accidental_shift(leading + trailing)
    chord_type = chord_type_for_suffix(suffix, upper, token)
    if shift < 0 and chord_type == _HALF_DIMINISHED:
        raise UnknownRomanNumeral(token, "flatted half-diminished degree")
    return RomanNumeral(
        token=token,
        degree=degree,
        accidental_shift=shift,
        chord_type=chord_type,
        inversion=inversion,
        upper=upper,
    )
