import unittest

from henka.theory.chord import apply_inversion, build_chord, inversion_name
from henka.theory.chord_types import CHORD_TYPES, intervals, max_inversion
from henka.theory.errors import TheoryError, UnknownChordType, UnknownKey, UnknownRomanNumeral
from henka.theory.keys import (
    KEYS,
    midi_to_frequency,
    midi_to_note_name,
    normalize_key,
    note_name_to_midi,
    pitch_class_index,
)
from henka.theory.labels import (
    format_absolute_label,
    format_roman_for_chord_type,
    format_roman_label,
    normalize_key_signature,
)
from henka.theory.roman import parse_roman, split_core, split_inversion


class KeyTests(unittest.TestCase):
    def test_flats_normalize_to_sharps(self) -> None:
        self.assertEqual(normalize_key("Bb"), "A#")
        self.assertEqual(normalize_key("Db"), "C#")
        self.assertEqual(normalize_key("E"), "E")

    def test_unknown_key_raises(self) -> None:
        with self.assertRaises(UnknownKey):
            normalize_key("H")
        self.assertTrue(issubclass(UnknownKey, TheoryError))

    def test_midi_helpers(self) -> None:
        self.assertEqual(note_name_to_midi("C", 4), 60)
        self.assertEqual(note_name_to_midi("A", 4), 69)
        self.assertAlmostEqual(midi_to_frequency(69), 440.0)
        self.assertAlmostEqual(midi_to_frequency(81), 880.0)
        self.assertEqual(midi_to_note_name(61), "C#4")
        self.assertEqual(pitch_class_index("B"), 11)


class ChordTypeTests(unittest.TestCase):
    def test_intervals_are_sorted_and_start_at_root(self) -> None:
        for name, offsets in CHORD_TYPES.items():
            self.assertEqual(list(offsets), sorted(offsets), name)
            self.assertEqual(offsets[0], 0, name)

    def test_lookup(self) -> None:
        self.assertEqual(intervals("major7"), (0, 4, 7, 11))
        self.assertEqual(max_inversion("minor11"), 5)
        with self.assertRaises(UnknownChordType):
            intervals("sus4")


class BuildChordTests(unittest.TestCase):
    def test_root_position(self) -> None:
        chord = build_chord("C", "major")
        self.assertEqual(chord.notes, (60, 64, 67))
        self.assertEqual(chord.root_midi, 60)
        self.assertEqual(chord.name, "C")

    def test_octave_and_suffix(self) -> None:
        chord = build_chord("A", "minor7", octave=3)
        self.assertEqual(chord.root_midi, 57)
        self.assertEqual(chord.notes, (57, 60, 64, 67))
        self.assertEqual(chord.name, "Am7")

    def test_inversions(self) -> None:
        first = build_chord("C", "major", inversion=1)
        self.assertEqual(first.notes, (64, 67, 72))
        self.assertEqual(first.name, "C/1st")
        self.assertEqual(first.root_midi, 60)
        second = build_chord("G", "dominant7", inversion=2)
        self.assertEqual(second.notes, (74, 77, 79, 83))
        self.assertEqual(second.name, "G7/2nd")

    def test_inversion_past_note_count_is_noop(self) -> None:
        chord = build_chord("C", "major", inversion=3)
        self.assertEqual(chord.notes, (60, 64, 67))
        self.assertEqual(chord.inversion, 0)
        self.assertEqual(apply_inversion([60, 64, 67], 7), [60, 64, 67])

    def test_inversion_preserves_pitch_classes(self) -> None:
        for name, offsets in CHORD_TYPES.items():
            root = build_chord("D", name)
            expected = sorted(n % 12 for n in root.notes)
            for i in range(len(offsets)):
                inverted = build_chord("D", name, inversion=i)
                self.assertEqual(sorted(n % 12 for n in inverted.notes), expected, f"{name}/{i}")
                self.assertEqual(len(inverted.notes), len(offsets))

    def test_inversion_names(self) -> None:
        self.assertEqual([inversion_name(i) for i in range(5)], ["", "/1st", "/2nd", "/3rd", "/4th"])

    def test_unknown_inputs_raise(self) -> None:
        with self.assertRaises(UnknownKey):
            build_chord("X", "major")
        with self.assertRaises(UnknownChordType):
            build_chord("C", "power")


class RomanParserTests(unittest.TestCase):
    def test_plain_case_sets_quality(self) -> None:
        self.assertEqual(parse_roman("IV").chord_type, "major")
        self.assertEqual(parse_roman("vi").chord_type, "minor")
        self.assertEqual(parse_roman("vi").degree, 5)

    def test_suffix_precedence(self) -> None:
        cases = {
            "Imaj7": "major7",
            "Imaj9": "major9",
            "IVmaj11": "major11",
            "V7": "dominant7",
            "ii7": "minor7",
            "iim7": "minor7",
            "V9": "dominant9",
            "vi9": "minor9",
            "V11": "dominant11",
            "iim11": "minor11",
            "viiø7": "half_diminished7",
            "iim7b5": "half_diminished7",
            "vii°7": "diminished7",
            "viio7": "diminished7",
            "vii°": "diminished",
            "viidim": "diminished",
            "III+": "augmented",
            "IIIaug": "augmented",
        }
        for token, expected in cases.items():
            self.assertEqual(parse_roman(token).chord_type, expected, token)

    def test_accidentals(self) -> None:
        self.assertEqual(parse_roman("bVI").accidental_shift, -1)
        self.assertEqual(parse_roman("#iv7").accidental_shift, 1)
        self.assertEqual(parse_roman("VIIb").accidental_shift, -1)
        self.assertEqual(parse_roman("bbVII").accidental_shift, -2)

    def test_root_index_wraps(self) -> None:
        self.assertEqual(parse_roman("bII").root_index("C"), 1)
        self.assertEqual(parse_roman("bVII").root_index("C"), 10)
        # C: 0 + 0 - 1 wraps to B
        self.assertEqual(parse_roman("bI").root_index("C"), 11)
        self.assertEqual(parse_roman("V").root_index("G"), 2)

    def test_inversion_suffix(self) -> None:
        numeral = parse_roman("bVImaj7/2nd")
        self.assertEqual(numeral.inversion, 2)
        self.assertEqual(numeral.chord_type, "major7")
        self.assertEqual(numeral.degree, 5)
        self.assertIsNone(parse_roman("V7").inversion)
        self.assertEqual(split_inversion("IV/3"), ("IV", 3))
        self.assertEqual(parse_roman("I/99th").inversion, 99)

    def test_split_core(self) -> None:
        self.assertEqual(split_core("bVImaj7"), ("b", "VI", "", "maj7"))
        self.assertEqual(split_core("VII#m7"), ("", "VII", "#", "m7"))

    def test_rejections(self) -> None:
        for token in ("", "X", "Iv", "VIII", "Ifoo", "IV/", "IV/first", "bviiø7", "biim7b5", "bvø"):
            with self.assertRaises(UnknownRomanNumeral, msg=token):
                parse_roman(token)

    def test_chromatic_diminished_numerals(self) -> None:
        self.assertEqual(parse_roman("#iv°").root_index("C"), 6)
        self.assertEqual(parse_roman("#ivø7").chord_type, "half_diminished7")
        numeral = parse_roman("bvi°7")
        self.assertEqual(numeral.chord_type, "diminished7")
        self.assertEqual(numeral.root_index("C"), 8)


class LabelTests(unittest.TestCase):
    def test_absolute_label(self) -> None:
        self.assertEqual(format_absolute_label("C", "major7"), "Cmaj7")
        self.assertEqual(format_absolute_label("A", "minor"), "Am")
        self.assertEqual(format_absolute_label("B", "half_diminished7"), "Bø7")
        with self.assertRaises(UnknownChordType):
            format_absolute_label("C", "sus2")

    def test_roman_for_chord_type(self) -> None:
        self.assertEqual(format_roman_for_chord_type("bVI", "minor7"), "bvi7")
        self.assertEqual(format_roman_for_chord_type("ii", "dominant7"), "II7")
        self.assertEqual(format_roman_for_chord_type("VII", "diminished"), "vii°")
        self.assertEqual(format_roman_for_chord_type("IV", "major7"), "IVmaj7")

    def test_roman_label_relative_to_key(self) -> None:
        self.assertEqual(format_roman_label("A", "minor", "C"), "vi")
        self.assertEqual(format_roman_label("Bb", "major", "C"), "bVII")
        self.assertEqual(format_roman_label("D", "dominant7", "G"), "V7")
        self.assertEqual(format_roman_label("F#", "half_diminished7", "C"), "#ivø7")
        self.assertEqual(format_roman_label("C#", "half_diminished7", "C"), "#iø7")
        self.assertEqual(format_roman_label("Bb", "half_diminished7", "C"), "#viø7")
        self.assertEqual(format_roman_label("Ab", "diminished7", "C"), "bvi°7")

    def test_roman_labels_parse_back_in_every_key(self) -> None:
        for key in ("C", "F#"):
            for root in KEYS:
                for chord_type in CHORD_TYPES:
                    label = format_roman_label(root, chord_type, key)
                    numeral = parse_roman(label)
                    self.assertEqual(numeral.chord_type, chord_type, label)
                    self.assertEqual(numeral.root_index(key), pitch_class_index(root), label)

    def test_formatted_numerals_parse_back(self) -> None:
        for chord_type in CHORD_TYPES:
            token = format_roman_for_chord_type("II", chord_type)
            self.assertEqual(parse_roman(token).chord_type, chord_type, token)

    def test_key_signature(self) -> None:
        self.assertEqual(normalize_key_signature("D"), "D")
        self.assertEqual(normalize_key_signature("Q"), "C")
        self.assertEqual(len(KEYS), 12)


if __name__ == "__main__":
    unittest.main()
