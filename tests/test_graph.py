import asyncio
import io
import unittest

import numpy as np
import soundfile as sf

from henka.audio.errors import InvalidStateError, SampleLoadError
from henka.audio.graph import CLOSED, RUNNING, SUSPENDED, AudioBuffer, OfflineAudioContext, decode_audio_bytes


def wav_bytes(samples: np.ndarray, sample_rate: int = 8000) -> bytes:
    buf = io.BytesIO()
    sf.write(buf, samples, sample_rate, format="WAV", subtype="FLOAT")
    return buf.getvalue()


class AudioParamTests(unittest.TestCase):
    def setUp(self) -> None:
        self.ctx = OfflineAudioContext(1000)
        self.param = self.ctx.create_gain().gain

    def test_intrinsic_value_until_first_event(self) -> None:
        self.param.value = 0.5
        self.param.set_value_at_time(0.2, 1.0)
        self.assertAlmostEqual(self.param.value_at(0.5), 0.5)
        self.assertAlmostEqual(self.param.value_at(1.0), 0.2)
        self.assertAlmostEqual(self.param.value_at(3.0), 0.2)

    def test_linear_ramp(self) -> None:
        self.param.set_value_at_time(0.0, 1.0)
        self.param.linear_ramp_to_value_at_time(1.0, 2.0)
        self.assertAlmostEqual(self.param.value_at(1.5), 0.5)
        self.assertAlmostEqual(self.param.value_at(1.25), 0.25)
        self.assertAlmostEqual(self.param.value_at(2.5), 1.0)

    def test_exponential_ramp(self) -> None:
        self.param.set_value_at_time(1.0, 0.0)
        self.param.exponential_ramp_to_value_at_time(4.0, 2.0)
        self.assertAlmostEqual(self.param.value_at(1.0), 2.0)
        with self.assertRaises(ValueError):
            self.param.exponential_ramp_to_value_at_time(0.0, 3.0)

    def test_cancel_scheduled_values(self) -> None:
        self.param.set_value_at_time(0.1, 0.0)
        self.param.set_value_at_time(0.9, 2.0)
        self.param.cancel_scheduled_values(1.0)
        self.assertAlmostEqual(self.param.value_at(5.0), 0.1)

    def test_negative_time_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.param.set_value_at_time(1.0, -0.5)

    def test_vectorised_values(self) -> None:
        self.param.set_value_at_time(0.0, 0.0)
        self.param.linear_ramp_to_value_at_time(1.0, 1.0)
        values = self.param.values(np.array([0.0, 0.25, 0.5, 2.0]))
        np.testing.assert_allclose(values, [0.0, 0.25, 0.5, 1.0])


class SourceTests(unittest.TestCase):
    def test_oscillator_renders_only_between_start_and_stop(self) -> None:
        ctx = OfflineAudioContext(1000, block_size=100)
        osc = ctx.create_oscillator()
        osc.type = "square"
        osc.frequency.value = 10.0
        osc.connect(ctx.destination)
        osc.start(0.2)
        osc.stop(0.5)
        out = ctx.render(1.0)
        self.assertEqual(out.shape, (1000,))
        self.assertFalse(out[:200].any())
        self.assertTrue(np.abs(out[200:500]).max() > 0.9)
        self.assertFalse(out[500:].any())
        self.assertTrue(osc.ended)
        self.assertAlmostEqual(ctx.current_time, 1.0)

    def test_gain_scales_input(self) -> None:
        ctx = OfflineAudioContext(1000)
        osc = ctx.create_oscillator()
        osc.type = "square"
        osc.frequency.value = 5.0
        gain = ctx.create_gain()
        gain.gain.value = 0.25
        osc.connect(gain)
        gain.connect(ctx.destination)
        osc.start(0)
        out = ctx.render(0.5)
        self.assertAlmostEqual(float(np.abs(out).max()), 0.25, places=5)

    def test_onended_fires_once(self) -> None:
        ctx = OfflineAudioContext(1000)
        osc = ctx.create_oscillator()
        calls = []
        osc.onended = lambda: calls.append(ctx.current_time)
        osc.start(0)
        osc.stop(0.1)
        self.assertEqual(ctx.active_source_count, 1)
        ctx.render(0.5)
        self.assertEqual(len(calls), 1)
        self.assertEqual(ctx.active_source_count, 0)

    def test_state_errors(self) -> None:
        ctx = OfflineAudioContext(1000)
        osc = ctx.create_oscillator()
        with self.assertRaises(InvalidStateError):
            osc.stop(1.0)
        osc.start(0)
        with self.assertRaises(InvalidStateError):
            osc.start(1.0)
        with self.assertRaises(ValueError):
            osc.type = "noise"
        ctx.close()
        with self.assertRaises(InvalidStateError):
            ctx.create_oscillator().start(0)
        with self.assertRaises(InvalidStateError):
            ctx.render(0.1)

    def test_buffer_source_plays_and_ends(self) -> None:
        ctx = OfflineAudioContext(1000)
        source = ctx.create_buffer_source()
        source.buffer = AudioBuffer(np.ones(100, dtype=np.float32), 1000)
        source.connect(ctx.destination)
        ended = []
        source.onended = lambda: ended.append(True)
        source.start(0)
        out = ctx.render(0.5)
        self.assertAlmostEqual(float(out[50]), 1.0)
        self.assertFalse(out[200:].any())
        self.assertEqual(ended, [True])

    def test_detune_changes_playback_speed(self) -> None:
        ctx = OfflineAudioContext(1000)
        source = ctx.create_buffer_source()
        source.buffer = AudioBuffer(np.linspace(0.0, 1.0, 201, dtype=np.float32), 1000)
        source.detune.value = 1200.0
        source.connect(ctx.destination)
        source.start(0)
        out = ctx.render(0.2)
        # one octave up reads two buffer frames per output frame
        self.assertAlmostEqual(float(out[50]), 0.5, places=4)
        self.assertFalse(out[150:].any())


class ContextTests(unittest.TestCase):
    def test_lifecycle(self) -> None:
        ctx = OfflineAudioContext(1000)
        self.assertEqual(ctx.state, SUSPENDED)
        asyncio.run(ctx.resume())
        self.assertEqual(ctx.state, RUNNING)
        ctx.close()
        self.assertEqual(ctx.state, CLOSED)
        with self.assertRaises(InvalidStateError):
            asyncio.run(ctx.resume())

    def test_decode_audio_bytes(self) -> None:
        data = wav_bytes(np.full(80, 0.5, dtype=np.float32))
        buffer = decode_audio_bytes(data)
        self.assertEqual(buffer.sample_rate, 8000)
        self.assertEqual(buffer.length, 80)
        self.assertEqual(buffer.number_of_channels, 1)
        self.assertAlmostEqual(buffer.duration, 0.01)
        self.assertAlmostEqual(float(buffer.get_channel_data(0)[10]), 0.5)

    def test_decode_rejects_garbage(self) -> None:
        with self.assertRaises(SampleLoadError):
            decode_audio_bytes(b"not audio at all")

    def test_async_decode(self) -> None:
        ctx = OfflineAudioContext(8000)
        buffer = asyncio.run(ctx.decode_audio_data(wav_bytes(np.zeros(16, dtype=np.float32))))
        self.assertEqual(buffer.length, 16)


if __name__ == "__main__":
    unittest.main()
