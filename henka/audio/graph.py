from __future__ import annotations

"""Audio graph rendered with numpy.

Nodes are connected into a tree that ends at the context's destination.
Rendering pulls one block of samples at a time from the destination; every
parameter change is an automation event on the context clock, so playback is
scheduled declaratively and rendered sample-accurately.

Two contexts are provided:

- ``RealtimeAudioContext`` feeds a sounddevice output stream from its callback.
- ``OfflineAudioContext`` renders on demand, for tests and export.
"""

import asyncio
import bisect
import io
import logging
import math
import threading
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

import numpy as np
import soundfile as sf

from .errors import AudioContextUnavailable, AudioPlatformError, InvalidStateError, SampleLoadError


_LOGGER = logging.getLogger("henka.audio.graph")

SUSPENDED = "suspended"
RUNNING = "running"
CLOSED = "closed"

_SET = "set"
_LINEAR = "linear"
_EXPONENTIAL = "exponential"


def _sine(phase: np.ndarray) -> np.ndarray:
    return np.sin(2.0 * np.pi * phase)


def _square(phase: np.ndarray) -> np.ndarray:
    return np.where(phase < 0.5, 1.0, -1.0)


def _sawtooth(phase: np.ndarray) -> np.ndarray:
    return 2.0 * phase - 1.0


def _triangle(phase: np.ndarray) -> np.ndarray:
    return 1.0 - 4.0 * np.abs(phase - 0.5)


WAVEFORMS: Dict[str, Callable[[np.ndarray], np.ndarray]] = {
    "sine": _sine,
    "square": _square,
    "sawtooth": _sawtooth,
    "triangle": _triangle,
}


class AudioParam:
    """A parameter with an intrinsic value and an automation timeline.

    Events are kept sorted by time; events at the same time keep the order in
    which they were scheduled.
    """

    def __init__(self, context: "BaseAudioContext", default: float) -> None:
        self._context = context
        self._value = float(default)
        self._events: List[Tuple[float, str, float]] = []

    @property
    def value(self) -> float:
        return self._value

    @value.setter
    def value(self, value: float) -> None:
        with self._context._lock:
            self._value = float(value)

    def _insert(self, time: float, kind: str, value: float) -> "AudioParam":
        if time < 0 or math.isnan(time):
            raise ValueError(f"Automation time must be >= 0, got {time}")
        with self._context._lock:
            idx = bisect.bisect_right([e[0] for e in self._events], time)
            self._events.insert(idx, (float(time), kind, float(value)))
        return self

    def set_value_at_time(self, value: float, start_time: float) -> "AudioParam":
        return self._insert(start_time, _SET, value)

    def linear_ramp_to_value_at_time(self, value: float, end_time: float) -> "AudioParam":
        return self._insert(end_time, _LINEAR, value)

    def exponential_ramp_to_value_at_time(self, value: float, end_time: float) -> "AudioParam":
        if value == 0:
            raise ValueError("Exponential ramps cannot target 0")
        return self._insert(end_time, _EXPONENTIAL, value)

    def cancel_scheduled_values(self, cancel_time: float) -> "AudioParam":
        with self._context._lock:
            self._events = [e for e in self._events if e[0] < cancel_time]
        return self

    def values(self, times: np.ndarray) -> np.ndarray:
        """Evaluate the timeline at each time in ``times`` (seconds)."""
        with self._context._lock:
            events = list(self._events)
            out = np.full(times.shape, self._value, dtype=np.float64)
            prev_t, prev_v = 0.0, self._value
        for t, kind, v in events:
            if kind != _SET:
                span = t - prev_t
                if span > 0:
                    mask = (times >= prev_t) & (times < t)
                    frac = (times[mask] - prev_t) / span
                    if kind == _LINEAR:
                        out[mask] = prev_v + (v - prev_v) * frac
                    elif prev_v * v > 0:
                        out[mask] = prev_v * (v / prev_v) ** frac
                    else:
                        out[mask] = prev_v
            out[times >= t] = v
            prev_t, prev_v = t, v
        return out

    def value_at(self, time: float) -> float:
        return float(self.values(np.array([time], dtype=np.float64))[0])


class AudioBuffer:
    """Decoded PCM data, shape (channels, frames)."""

    def __init__(self, data: np.ndarray, sample_rate: int) -> None:
        data = np.asarray(data, dtype=np.float32)
        if data.ndim == 1:
            data = data.reshape(1, -1)
        self._data = data
        self.sample_rate = int(sample_rate)
        self._mono: Optional[np.ndarray] = None

    @property
    def number_of_channels(self) -> int:
        return int(self._data.shape[0])

    @property
    def length(self) -> int:
        return int(self._data.shape[1])

    @property
    def duration(self) -> float:
        return self.length / self.sample_rate

    def get_channel_data(self, channel: int) -> np.ndarray:
        return self._data[channel]

    def mono(self) -> np.ndarray:
        if self._mono is None:
            self._mono = self._data.mean(axis=0).astype(np.float64)
        return self._mono


def decode_audio_bytes(data: bytes) -> AudioBuffer:
    """Decode an encoded audio file held in memory."""
    try:
        frames, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except (RuntimeError, ValueError, TypeError) as exc:
        raise SampleLoadError(f"Unable to decode audio data: {exc}") from exc
    return AudioBuffer(frames.T, sample_rate)


class AudioNode:
    def __init__(self, context: "BaseAudioContext") -> None:
        self.context = context
        self._inputs: List[AudioNode] = []
        self._outputs: List[AudioNode] = []
        self._cache_block = -1
        self._cache: Optional[np.ndarray] = None

    def connect(self, destination: "AudioNode") -> "AudioNode":
        if destination.context is not self.context:
            raise InvalidStateError("Cannot connect nodes from different contexts")
        with self.context._lock:
            destination._inputs.append(self)
            self._outputs.append(destination)
        return destination

    def disconnect(self) -> None:
        with self.context._lock:
            for dest in self._outputs:
                if self in dest._inputs:
                    dest._inputs.remove(self)
            self._outputs.clear()

    def _render(self, times: np.ndarray) -> np.ndarray:
        block = self.context._block
        if self._cache_block != block or self._cache is None:
            self._cache = self._process(times)
            self._cache_block = block
        return self._cache

    def _mix_inputs(self, times: np.ndarray) -> np.ndarray:
        out = np.zeros(times.shape, dtype=np.float64)
        for node in list(self._inputs):
            out += node._render(times)
        return out

    def _process(self, times: np.ndarray) -> np.ndarray:
        return self._mix_inputs(times)


class AudioDestinationNode(AudioNode):
    pass


class GainNode(AudioNode):
    def __init__(self, context: "BaseAudioContext") -> None:
        super().__init__(context)
        self.gain = AudioParam(context, 1.0)

    def _process(self, times: np.ndarray) -> np.ndarray:
        mixed = self._mix_inputs(times)
        if not mixed.any():
            return mixed
        return mixed * self.gain.values(times)


class AudioScheduledSourceNode(AudioNode):
    """A source with start/stop times and an ``onended`` callback."""

    def __init__(self, context: "BaseAudioContext") -> None:
        super().__init__(context)
        self._start_time: Optional[float] = None
        self._stop_time = math.inf
        self._ended = False
        self.onended: Optional[Callable[[], None]] = None

    @property
    def ended(self) -> bool:
        return self._ended

    def start(self, when: float = 0.0) -> None:
        with self.context._lock:
            if self._start_time is not None:
                raise InvalidStateError("start() may only be called once")
            if self.context.state == CLOSED:
                raise InvalidStateError("Context is closed")
            self._start_time = max(0.0, float(when))
            self.context._register_source(self)

    def stop(self, when: float = 0.0) -> None:
        with self.context._lock:
            if self._start_time is None:
                raise InvalidStateError("stop() called before start()")
            if self._ended:
                return
            self._stop_time = max(0.0, float(when))

    def _active_mask(self, times: np.ndarray) -> np.ndarray:
        if self._start_time is None or self._ended:
            return np.zeros(times.shape, dtype=bool)
        return (times >= self._start_time) & (times < self._stop_time)

    def _finished_by(self, time: float) -> bool:
        return time >= self._stop_time

    def _fire_ended(self) -> None:
        callback = self.onended
        if callback is not None:
            callback()


class OscillatorNode(AudioScheduledSourceNode):
    def __init__(self, context: "BaseAudioContext") -> None:
        super().__init__(context)
        self.frequency = AudioParam(context, 440.0)
        self.detune = AudioParam(context, 0.0)
        self._type = "sine"
        self._phase = 0.0

    @property
    def type(self) -> str:
        return self._type

    @type.setter
    def type(self, value: str) -> None:
        if value not in WAVEFORMS:
            raise ValueError(f"Unsupported oscillator type: {value}")
        self._type = value

    def _process(self, times: np.ndarray) -> np.ndarray:
        active = self._active_mask(times)
        if not active.any():
            return np.zeros(times.shape, dtype=np.float64)
        freq = self.frequency.values(times) * np.power(2.0, self.detune.values(times) / 1200.0)
        inc = np.where(active, freq / self.context.sample_rate, 0.0)
        phase = (self._phase + np.cumsum(inc) - inc) % 1.0
        self._phase = float((self._phase + inc.sum()) % 1.0)
        return np.where(active, WAVEFORMS[self._type](phase), 0.0)


class AudioBufferSourceNode(AudioScheduledSourceNode):
    """Plays an ``AudioBuffer`` once, resampled by playback rate and detune."""

    def __init__(self, context: "BaseAudioContext") -> None:
        super().__init__(context)
        self.buffer: Optional[AudioBuffer] = None
        self.playback_rate = AudioParam(context, 1.0)
        self.detune = AudioParam(context, 0.0)
        self._position = 0.0
        self._exhausted_at: Optional[float] = None

    def _finished_by(self, time: float) -> bool:
        if self._exhausted_at is not None and time >= self._exhausted_at:
            return True
        return super()._finished_by(time)

    def _process(self, times: np.ndarray) -> np.ndarray:
        silence = np.zeros(times.shape, dtype=np.float64)
        active = self._active_mask(times)
        if not active.any() or self._exhausted_at is not None:
            return silence
        if self.buffer is None or self.buffer.length == 0:
            self._exhausted_at = float(times[np.argmax(active)])
            return silence
        data = self.buffer.mono()
        last = len(data) - 1
        rate = self.playback_rate.values(times) * np.power(2.0, self.detune.values(times) / 1200.0)
        rate = rate * (self.buffer.sample_rate / self.context.sample_rate)
        step = np.where(active, rate, 0.0)
        pos = self._position + np.cumsum(step) - step
        inside = active & (pos < last)
        i0 = np.clip(np.floor(pos).astype(np.int64), 0, last)
        i1 = np.clip(i0 + 1, 0, last)
        frac = pos - np.floor(pos)
        out = np.where(inside, data[i0] * (1.0 - frac) + data[i1] * frac, 0.0)
        past = active & (pos >= last)
        if past.any():
            self._exhausted_at = float(times[np.argmax(past)])
        self._position += float(step.sum())
        return out


class BaseAudioContext:
    """Clock, node factories and block rendering shared by all contexts."""

    def __init__(self, sample_rate: int = 44100) -> None:
        self.sample_rate = int(sample_rate)
        self.state = SUSPENDED
        self._lock = threading.RLock()
        self._frame = 0
        self._block = 0
        self._sources: Set[AudioScheduledSourceNode] = set()
        self.destination = AudioDestinationNode(self)

    @property
    def current_time(self) -> float:
        with self._lock:
            return self._frame / self.sample_rate

    # Node factories -----------------------------------------------------
    def create_gain(self) -> GainNode:
        return GainNode(self)

    def create_oscillator(self) -> OscillatorNode:
        return OscillatorNode(self)

    def create_buffer_source(self) -> AudioBufferSourceNode:
        return AudioBufferSourceNode(self)

    def create_buffer(self, channels: int, length: int, sample_rate: int) -> AudioBuffer:
        return AudioBuffer(np.zeros((channels, length), dtype=np.float32), sample_rate)

    async def decode_audio_data(self, data: bytes) -> AudioBuffer:
        return await asyncio.to_thread(decode_audio_bytes, data)

    # Lifecycle ----------------------------------------------------------
    async def resume(self) -> None:
        if self.state == CLOSED:
            raise InvalidStateError("Cannot resume a closed context")
        self.state = RUNNING

    async def suspend(self) -> None:
        if self.state == CLOSED:
            raise InvalidStateError("Cannot suspend a closed context")
        self.state = SUSPENDED

    def close(self) -> None:
        with self._lock:
            self.state = CLOSED
            self._sources.clear()

    # Rendering ----------------------------------------------------------
    def _register_source(self, source: AudioScheduledSourceNode) -> None:
        self._sources.add(source)

    @property
    def active_source_count(self) -> int:
        with self._lock:
            return len(self._sources)

    def _render_quantum(self, frames: int) -> np.ndarray:
        with self._lock:
            times = (self._frame + np.arange(frames, dtype=np.float64)) / self.sample_rate
            self._block += 1
            out = self.destination._render(times)
            self._frame += frames
            end = self._frame / self.sample_rate
            finished = [s for s in self._sources if s._finished_by(end)]
            for source in finished:
                self._sources.discard(source)
                source._ended = True
        if finished:
            self._dispatch_ended(finished)
        return out.astype(np.float32)

    def _dispatch_ended(self, sources: Iterable[AudioScheduledSourceNode]) -> None:
        for source in sources:
            source._fire_ended()


class OfflineAudioContext(BaseAudioContext):
    """Renders on demand; the clock only advances inside ``render``."""

    def __init__(self, sample_rate: int = 44100, *, block_size: int = 128) -> None:
        super().__init__(sample_rate)
        self.block_size = int(block_size)

    def render(self, seconds: float) -> np.ndarray:
        if self.state == CLOSED:
            raise InvalidStateError("Cannot render a closed context")
        remaining = int(round(seconds * self.sample_rate))
        chunks: List[np.ndarray] = []
        while remaining > 0:
            frames = min(self.block_size, remaining)
            chunks.append(self._render_quantum(frames))
            remaining -= frames
        if not chunks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(chunks)


class RealtimeAudioContext(BaseAudioContext):
    """Streams rendered blocks to an output device through sounddevice."""

    def __init__(
        self,
        sample_rate: int = 44100,
        *,
        block_size: int = 256,
        device: Optional[str] = None,
        latency: str = "low",
    ) -> None:
        super().__init__(sample_rate)
        try:
            import sounddevice as sd  # type: ignore
        except (ImportError, OSError) as exc:  # pragma: no cover - PortAudio missing
            raise AudioContextUnavailable("sounddevice (PortAudio) is not available") from exc

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._port_audio_error = sd.PortAudioError
        try:
            self._stream = sd.OutputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                blocksize=int(block_size),
                latency=latency,
                device=device,
                callback=self._callback,
            )
        except (sd.PortAudioError, ValueError) as exc:
            raise AudioContextUnavailable(f"Failed to open audio output: {exc}") from exc

    def _callback(self, outdata: np.ndarray, frames: int, time_info: object, status: object) -> None:
        if status:
            _LOGGER.debug("Output stream status: %s", status)
        outdata[:, 0] = np.clip(self._render_quantum(frames), -1.0, 1.0)

    async def resume(self) -> None:
        if self.state == CLOSED:
            raise InvalidStateError("Cannot resume a closed context")
        self._loop = asyncio.get_running_loop()
        if not self._stream.active:
            try:
                self._stream.start()
            except self._port_audio_error as exc:
                raise AudioPlatformError(f"Failed to start audio output: {exc}") from exc
        self.state = RUNNING

    async def suspend(self) -> None:
        if self.state == CLOSED:
            raise InvalidStateError("Cannot suspend a closed context")
        if self._stream.active:
            self._stream.stop()
        self.state = SUSPENDED

    def close(self) -> None:
        if self.state == CLOSED:
            return
        try:
            self._stream.stop()
            self._stream.close()
        except self._port_audio_error as exc:
            _LOGGER.warning("Error while closing audio output: %s", exc)
        finally:
            super().close()

    def _dispatch_ended(self, sources: Iterable[AudioScheduledSourceNode]) -> None:
        # Called on the PortAudio thread; callbacks belong on the event loop.
        loop = self._loop
        if loop is None or loop.is_closed():
            super()._dispatch_ended(sources)
            return
        for source in sources:
            loop.call_soon_threadsafe(source._fire_ended)
