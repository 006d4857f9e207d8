from __future__ import annotations

"""Question and answer helpers for progression drills.

Two answer modes:

- ``absolute``: chord names such as ``Cmaj7 Am7 Dm7 G7``.
- ``transpose``: Roman numerals relative to the key, such as ``Imaj7 vi7 ii7 V7``.

Answers are compared chord by chord after parsing both sides, so spelling
variants (``Db``/``C#``, ``M7``/``maj7``, ``°``/``dim``, ``m7b5``/``ø7``) match.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from .theory.chord import ChordProgression, inversion_name
from .theory.chord_types import ABSOLUTE_SUFFIX, max_inversion
from .theory.difficulty import DifficultyLevel, get_difficulty
from .theory.errors import TheoryError
from .theory.keys import pitch_class_index
from .theory.progression import ProgressionGenerator, ProgressionOptions
from .theory.roman import parse_roman, split_inversion


ABSOLUTE = "absolute"
TRANSPOSE = "transpose"
GAME_MODES = (ABSOLUTE, TRANSPOSE)

_ROOT_RE = re.compile(r"^(?P<root>[A-Ga-g])(?P<accidental>[#b]?)(?P<rest>.*)$")

# Absolute-name spellings accepted besides the canonical ABSOLUTE_SUFFIX ones.
_ABSOLUTE_ALIASES = {
    "major": "",
    "maj": "",
    "M": "",
    "minor": "m",
    "min": "m",
    "diminished": "dim",
    "°": "dim",
    "o": "dim",
    "augmented": "aug",
    "+": "aug",
    "M7": "maj7",
    "Δ7": "maj7",
    "Δ": "maj7",
    "major7": "maj7",
    "min7": "m7",
    "minor7": "m7",
    "dom7": "7",
    "°7": "dim7",
    "o7": "dim7",
    "m7b5": "ø7",
    "ø": "ø7",
    "M9": "maj9",
    "min9": "m9",
    "M11": "maj11",
    "min11": "m11",
}

_SUFFIX_TO_TYPE = {suffix: chord_type for chord_type, suffix in ABSOLUTE_SUFFIX.items()}

ChordKey = Tuple[int, str, int]


@dataclass
class Question:
    progression: ChordProgression
    correct_answer: List[str]
    mode: str
    difficulty: str
    user_answer: Optional[List[str]] = None
    is_correct: Optional[bool] = None


def _shows_inversions(difficulty: Union[str, DifficultyLevel], custom: Optional[DifficultyLevel] = None) -> bool:
    if isinstance(difficulty, DifficultyLevel):
        return difficulty.show_inversions
    return get_difficulty(difficulty, custom).show_inversions


def correct_answer(
    progression: ChordProgression,
    mode: str,
    difficulty: Union[str, DifficultyLevel],
    custom: Optional[DifficultyLevel] = None,
) -> List[str]:
    """The expected answer for a progression, one entry per chord.

    Inversion suffixes are kept only for levels that show inversions.
    """
    if mode not in GAME_MODES:
        raise ValueError(f"Unknown game mode: {mode}")
    with_inversions = _shows_inversions(difficulty, custom)
    answer = []
    for chord in progression.chords:
        if mode == ABSOLUTE:
            answer.append(chord.name if with_inversions else chord.base_name)
            continue
        base, _ = split_inversion(chord.roman_numeral or "I")
        answer.append(base + inversion_name(chord.inversion) if with_inversions else base)
    return answer


def _normalize_text(value: str) -> str:
    return re.sub(r"\s+", "", value)


def parse_absolute_answer(value: str) -> ChordKey:
    """``(root pitch class, chord type, inversion)`` for an absolute chord name.

    Raises:
        ValueError: when the name is not recognised.
    """
    body, inversion = split_inversion(_normalize_text(value))
    m = _ROOT_RE.match(body)
    if m is None:
        raise ValueError(f"Not a chord name: {value!r}")
    root = m.group("root").upper() + m.group("accidental")
    rest = m.group("rest")
    suffix = rest if rest in _SUFFIX_TO_TYPE else _ABSOLUTE_ALIASES.get(rest)
    if suffix is None:
        raise ValueError(f"Unknown chord quality in {value!r}")
    chord_type = _SUFFIX_TO_TYPE[suffix]
    return pitch_class_index(root), chord_type, min(inversion or 0, max_inversion(chord_type))


def parse_roman_answer(value: str) -> ChordKey:
    """``(semitones above the tonic, chord type, inversion)`` for a numeral."""
    numeral = parse_roman(_normalize_text(value))
    interval = numeral.root_index("C")
    inversion = min(numeral.inversion or 0, max_inversion(numeral.chord_type))
    return interval, numeral.chord_type, inversion


def _answer_key(value: str, mode: str) -> Optional[ChordKey]:
    try:
        if mode == ABSOLUTE:
            return parse_absolute_answer(value)
        return parse_roman_answer(value)
    except (TheoryError, ValueError):
        return None


def answers_match(correct: str, user: str, mode: str) -> bool:
    expected = _answer_key(correct, mode)
    given = _answer_key(user, mode)
    if expected is None or given is None:
        return _normalize_text(correct) == _normalize_text(user)
    return expected == given


def validate_answer(correct: Sequence[str], user: Sequence[str], mode: str) -> bool:
    """True when every chord of ``user`` matches ``correct`` in order."""
    if mode not in GAME_MODES:
        raise ValueError(f"Unknown game mode: {mode}")
    if len(correct) != len(user):
        return False
    return all(answers_match(c, u, mode) for c, u in zip(correct, user))


def split_answer(text: str) -> List[str]:
    """Split typed input such as ``"I - V - vi - IV"`` or ``"C G Am F"``."""
    return [part for part in re.split(r"[\s,\-–|]+", text.strip()) if part]


def generate_question(
    generator: ProgressionGenerator,
    mode: str,
    difficulty: str,
    key: Optional[str] = None,
    options: Optional[ProgressionOptions] = None,
) -> Question:
    progression = generator.generate_random(difficulty, key, options)
    return Question(
        progression=progression,
        correct_answer=correct_answer(progression, mode, difficulty, generator.custom),
        mode=mode,
        difficulty=difficulty,
    )


def submit_answer(question: Question, user: Sequence[str]) -> bool:
    question.user_answer = list(user)
    question.is_correct = validate_answer(question.correct_answer, user, question.mode)
    return question.is_correct


def hint(progression: ChordProgression, mode: str) -> str:
    if mode == ABSOLUTE:
        return f"The progression is in the key of {progression.key}. Listen for the chord qualities and root movements."
    return f"The root note is {progression.key}. Identify the Roman numerals from the scale degrees and chord qualities."
