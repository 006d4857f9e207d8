import tempfile
import unittest
from pathlib import Path

from henka.audio.instruments import (
    SAMPLE,
    SYNTH,
    UnknownInstrument,
    default_instrument_id,
    get_instrument_config,
    instrument_from_dict,
    instrument_options,
    is_instrument_id,
    load_instruments,
)


class InstrumentRegistryTests(unittest.TestCase):
    def test_default_is_selectable(self) -> None:
        ids = [option.id for option in instrument_options()]
        self.assertEqual(default_instrument_id(), "sampled_grand")
        self.assertIn(default_instrument_id(), ids)

    def test_is_instrument_id(self) -> None:
        self.assertTrue(is_instrument_id("felt_piano"))
        self.assertFalse(is_instrument_id("not_real"))
        self.assertFalse(is_instrument_id(None))

    def test_config_metadata(self) -> None:
        config = get_instrument_config(default_instrument_id())
        self.assertTrue(config.voice.oscillator)
        self.assertGreater(config.bass.gain, 0)
        self.assertGreater(config.envelope.attack, 0)
        self.assertGreater(config.envelope.release, 0)
        with self.assertRaises(UnknownInstrument):
            get_instrument_config("kazoo")

    def test_soft_piano(self) -> None:
        piano = get_instrument_config("felt_piano")
        self.assertEqual(piano.voice.oscillator, "triangle")
        self.assertEqual(piano.voice.detune, -4)
        self.assertEqual(piano.playback, SYNTH)

    def test_sampled_grand_has_assets(self) -> None:
        grand = get_instrument_config("sampled_grand")
        self.assertEqual(grand.playback, SAMPLE)
        self.assertTrue(grand.sample.files)
        self.assertEqual(grand.sample.base_path, "/audio/piano")

    def test_sampled_instruments_come_first(self) -> None:
        modes = [option.playback for option in instrument_options()]
        self.assertEqual(modes.count(SAMPLE), 4)
        first_synth = modes.index(SYNTH)
        self.assertTrue(all(mode == SAMPLE for mode in modes[:first_synth]))
        self.assertNotIn(SAMPLE, modes[first_synth:])


class InstrumentParsingTests(unittest.TestCase):
    def test_rejects_bad_entries(self) -> None:
        with self.assertRaises(ValueError):
            instrument_from_dict({"id": "x", "voice": {"oscillator": "noise"}})
        with self.assertRaises(ValueError):
            instrument_from_dict({"id": "x", "playback": "midi"})
        with self.assertRaises(ValueError):
            instrument_from_dict({"id": "x", "playback": "sample"})

    def test_custom_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "instruments.yml"
            path.write_text(
                "instruments:\n"
                "  - id: organ\n"
                "    voice: {oscillator: square, gain: 0.8}\n"
                "    envelope: {attack: 0.05, release: 0.5}\n",
                encoding="utf-8",
            )
            registry = load_instruments(path)
        self.assertEqual(list(registry), ["organ"])
        self.assertEqual(registry["organ"].envelope.release, 0.5)
        # the packaged registry is unaffected
        self.assertTrue(is_instrument_id("sampled_grand"))
        self.assertFalse(is_instrument_id("organ"))


if __name__ == "__main__":
    unittest.main()
