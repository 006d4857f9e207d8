from __future__ import annotations

"""Progression generation from Roman-numeral tokens or difficulty templates."""

import random
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Union

from .chord import Chord, ChordProgression, build_chord
from .chord_types import max_inversion
from .difficulty import CUSTOM, DifficultyLevel, get_difficulty
from .keys import KEYS, normalize_key, pitch_class_name
from .labels import format_roman_for_chord_type
from .roman import parse_roman
from .voice_leading import DEFAULT_OCTAVE, candidate_inversions, choose_voicing, tighten


DEFAULT_TEMPO = 120

BASE_DEGREE_SYMBOLS = ("I", "II", "III", "IV", "V", "VI", "VII")

DifficultyRef = Union[str, DifficultyLevel, None]


@dataclass(frozen=True)
class ProgressionOptions:
    """Per-call overrides. ``voice_leading`` wins over the difficulty's setting."""

    voice_leading: Optional[bool] = None
    octave: int = DEFAULT_OCTAVE


class ProgressionGenerator:
    """Turns Roman-numeral templates into concrete chord progressions.

    Randomness (key choice, template choice, random inversions) comes from the
    injected ``rng`` so a seeded generator reproduces its output. The custom
    difficulty is passed in explicitly and read on every call.
    """

    def __init__(self, rng: Optional[random.Random] = None, custom: Optional[DifficultyLevel] = None) -> None:
        self.rng = rng or random.Random()
        self.custom = custom

    def _resolve(self, difficulty: DifficultyRef) -> Optional[DifficultyLevel]:
        if difficulty is None:
            return None
        if isinstance(difficulty, DifficultyLevel):
            return difficulty
        return get_difficulty(difficulty, self.custom)

    def _random_inversion(self, level: Optional[DifficultyLevel], chord_type: str) -> int:
        if level is None or not level.use_inversions:
            return 0
        if self.rng.random() >= level.inversion_probability:
            return 0
        top = min(level.max_inversion, max_inversion(chord_type))
        return self.rng.randint(0, max(0, top))

    def generate_from_roman(
        self,
        tokens: Sequence[str],
        key: str,
        difficulty: DifficultyRef = None,
        options: Optional[ProgressionOptions] = None,
    ) -> ChordProgression:
        """Build one chord per token in ``key``.

        Args:
            tokens: Roman-numeral tokens, e.g. ``["ii7", "V7", "Imaj7"]``.
            key: Pitch-class name of the tonic.
            difficulty: Name, level, or None for root-position chords.
            options: Per-call overrides.

        Returns:
            A progression at the default tempo, each chord tagged with its token.
        """
        key = normalize_key(key)
        options = options or ProgressionOptions()
        level = self._resolve(difficulty)
        voice_leading = options.voice_leading
        if voice_leading is None:
            voice_leading = bool(level and level.use_voice_leading)
        allowed_max = level.max_inversion if level is not None else 0

        chords: List[Chord] = []
        previous: Optional[Chord] = None
        for token in tokens:
            numeral = parse_roman(token)
            root = pitch_class_name(numeral.root_index(key))
            chord_type = numeral.chord_type
            prev_notes = list(previous.notes) if previous is not None else None
            octave = options.octave

            if numeral.inversion is not None:
                inversions = candidate_inversions(chord_type, allowed_max, fixed=numeral.inversion)
                if voice_leading:
                    choice = choose_voicing(root, chord_type, prev_notes, inversions, options.octave)
                    inversion, octave = choice.inversion, choice.octave
                else:
                    inversion = inversions[0]
            elif voice_leading:
                inversions = candidate_inversions(chord_type, allowed_max)
                choice = choose_voicing(root, chord_type, prev_notes, inversions, options.octave)
                inversion, octave = choice.inversion, choice.octave
            else:
                inversion = self._random_inversion(level, chord_type)

            chord = build_chord(root, chord_type, octave, inversion)
            if voice_leading and prev_notes:
                chord = replace(chord, notes=tuple(sorted(tighten(chord.notes, prev_notes))))
            chord = replace(chord, roman_numeral=token)
            chords.append(chord)
            previous = chord

        return ChordProgression(chords=tuple(chords), key=key, tempo=DEFAULT_TEMPO)

    def choose_key(self, level: DifficultyLevel, key: Optional[str] = None) -> str:
        if key:
            return normalize_key(key)
        if level.allowed_keys:
            return self.rng.choice(list(level.allowed_keys))
        return self.rng.choice(KEYS)

    def random_template(self, level: DifficultyLevel) -> List[str]:
        """Random tokens: a base degree paired with an allowed chord type per slot."""
        tokens = []
        for _ in range(level.progression_length):
            base = self.rng.choice(BASE_DEGREE_SYMBOLS)
            chord_type = self.rng.choice(list(level.chord_types))
            tokens.append(format_roman_for_chord_type(base, chord_type))
        return tokens

    def choose_template(self, name: Optional[str], level: DifficultyLevel) -> List[str]:
        if name == CUSTOM or not level.common_progressions:
            return self.random_template(level)
        return list(self.rng.choice(list(level.common_progressions)))

    def generate_random(
        self,
        difficulty: Union[str, DifficultyLevel],
        key: Optional[str] = None,
        options: Optional[ProgressionOptions] = None,
    ) -> ChordProgression:
        """Pick a key and a template for ``difficulty`` and generate from it."""
        level = self._resolve(difficulty)
        assert level is not None
        name = difficulty if isinstance(difficulty, str) else None
        selected_key = self.choose_key(level, key)
        template = self.choose_template(name, level)
        return self.generate_from_roman(template, selected_key, level, options)


_DEFAULT_GENERATOR = ProgressionGenerator()


def generate_progression_from_roman(
    tokens: Sequence[str],
    key: str,
    difficulty: DifficultyRef = None,
    options: Optional[ProgressionOptions] = None,
) -> ChordProgression:
    return _DEFAULT_GENERATOR.generate_from_roman(tokens, key, difficulty, options)


def generate_random_progression(
    difficulty: Union[str, DifficultyLevel],
    key: Optional[str] = None,
    options: Optional[ProgressionOptions] = None,
    custom: Optional[DifficultyLevel] = None,
) -> ChordProgression:
    return ProgressionGenerator(_DEFAULT_GENERATOR.rng, custom).generate_random(difficulty, key, options)
