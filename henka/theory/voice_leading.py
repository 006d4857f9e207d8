from __future__ import annotations

"""Greedy voice leading: pick the inversion and register closest to the previous chord.

The search is chord-local. Each candidate (inversion x octave) is built, pulled
towards the previous chord one voice at a time, and scored by total semitone
movement. It does not look ahead, so a progression is smooth between
neighbours but not globally optimal.
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence

from .chord import Chord, build_chord
from .chord_types import max_inversion


OCTAVE_OFFSETS = (-1, 0, 1)
DEFAULT_OCTAVE = 4
MIN_OCTAVE = 1
MAX_PAIR_DISTANCE = 6


@dataclass(frozen=True)
class VoicingChoice:
    inversion: int
    octave: int
    notes: List[int]   # tightened, in pairing order
    score: int


def _partner(previous: Sequence[int], index: int) -> int:
    # Voices past the end of the previous chord pair with its outermost note.
    return previous[min(index, len(previous) - 1)]


def tighten(candidate: Sequence[int], previous: Sequence[int]) -> List[int]:
    """Shift each candidate note by octaves until it sits within a tritone of its partner.

    Notes are paired index-wise after sorting both chords.
    """
    prev = sorted(previous)
    if not prev:
        return list(candidate)
    out: List[int] = []
    for i, note in enumerate(sorted(candidate)):
        target = _partner(prev, i)
        while note - target > MAX_PAIR_DISTANCE:
            note -= 12
        while target - note > MAX_PAIR_DISTANCE:
            note += 12
        out.append(note)
    return out


def movement(candidate: Sequence[int], previous: Sequence[int]) -> int:
    """Total absolute semitone movement between two voicings, paired by index."""
    prev = sorted(previous)
    if not prev or not candidate:
        return 0
    cand = list(candidate)
    total = 0
    for i in range(max(len(cand), len(prev))):
        total += abs(_partner(cand, i) - _partner(prev, i))
    return total


def candidate_inversions(chord_type: str, max_allowed: int, fixed: Optional[int] = None) -> List[int]:
    """Inversions to search: one fixed value, or 0..min(max_allowed, last inversion)."""
    top = max_inversion(chord_type)
    if fixed is not None:
        return [max(0, min(fixed, top))]
    return list(range(0, max(0, min(max_allowed, top)) + 1))


def choose_voicing(
    root: str,
    chord_type: str,
    previous: Optional[Sequence[int]],
    inversions: Sequence[int],
    preferred_octave: int = DEFAULT_OCTAVE,
) -> VoicingChoice:
    """Search inversions x octave offsets for the least total movement.

    Ties keep the first candidate evaluated (inversion ascending, octave
    offsets -1, 0, +1). Without a previous chord, the first inversion at the
    preferred octave is returned as-is.
    """
    if not inversions:
        inversions = [0]
    if not previous:
        chord = build_chord(root, chord_type, preferred_octave, inversions[0])
        return VoicingChoice(inversions[0], preferred_octave, list(chord.notes), 0)

    best: Optional[VoicingChoice] = None
    for inversion in inversions:
        for offset in OCTAVE_OFFSETS:
            octave = max(MIN_OCTAVE, preferred_octave + offset)
            chord = build_chord(root, chord_type, octave, inversion)
            notes = tighten(chord.notes, previous)
            score = movement(notes, previous)
            if best is None or score < best.score:
                best = VoicingChoice(inversion, octave, notes, score)
    assert best is not None
    return best


def voice_lead_chord(
    root: str,
    chord_type: str,
    previous: Optional[Chord],
    max_allowed_inversion: Optional[int] = None,
    preferred_octave: int = DEFAULT_OCTAVE,
) -> Chord:
    """Build one chord voiced against ``previous``.

    ``max_allowed_inversion`` defaults to every inversion the chord type has.
    """
    if max_allowed_inversion is None:
        max_allowed_inversion = max_inversion(chord_type)
    inversions = candidate_inversions(chord_type, max_allowed_inversion)
    prev_notes = list(previous.notes) if previous is not None else None
    choice = choose_voicing(root, chord_type, prev_notes, inversions, preferred_octave)
    chord = build_chord(root, chord_type, choice.octave, choice.inversion)
    if prev_notes:
        chord = with_notes(chord, choice.notes)
    return chord


def with_notes(chord: Chord, notes: Sequence[int]) -> Chord:
    return replace(chord, notes=tuple(sorted(notes)))
