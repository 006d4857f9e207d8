from __future__ import annotations

"""AudioEngine: schedules chords and progressions on an audio context.

Lifecycle: uninitialized -> ready -> playing -> ready ..., disposed is final.
The context and master gain are created on first use, not at construction.

Every note becomes one voice (a source node plus a gain node carrying the
envelope). Start and stop times are computed up front on the context clock;
the engine never waits on the audio itself. Callers awaiting playback wait on
a timer that ``stop`` resolves early.

Audio-platform failures are logged and turn the call into a silent no-op.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Set, Tuple

from ..theory.chord import Chord, ChordProgression
from ..theory.keys import midi_to_frequency
from .errors import AudioPlatformError
from .graph import RUNNING, AudioScheduledSourceNode, BaseAudioContext, GainNode, RealtimeAudioContext
from .instruments import SAMPLE, InstrumentConfig, VoiceConfig, default_instrument_id, get_instrument_config
from .sample_player import Fetcher, SamplePlayer


_LOGGER = logging.getLogger("henka.audio.engine")

UNINITIALIZED = "uninitialized"
READY = "ready"
PLAYING = "playing"
DISPOSED = "disposed"

DEFAULT_MASTER_GAIN = 0.3
DEFAULT_CHORD_DURATION = 2.0
SCHEDULE_LEAD = 0.05       # seconds between "now" and the first note
PLAYBACK_TAIL = 0.1        # extra wait after the last release
MIN_GAIN = 0.0001          # envelope floor, keeps ramps click-free
VOICE_LEVEL = 0.2          # per-voice level before instrument gain
MIN_HOLD = 0.1             # shortest sustain after the attack
MIN_BASS_MIDI = 24
BASS_GAIN_MULTIPLIER = 1.25
IMMEDIATE_FADE = 0.02
GRACEFUL_FADE = 0.12
STOP_PADDING = 0.02

ContextFactory = Callable[[], BaseAudioContext]


@dataclass(eq=False)
class Voice:
    source: AudioScheduledSourceNode
    gain: GainNode


class AudioEngine:
    """Plays chords and progressions with the selected instrument.

    Args:
        instrument_id: Registry id; defaults to the registry default.
        context_factory: Builds the audio context on first use. Defaults to a
            realtime context on the default output device.
        master_gain: Level of the master gain node.
        asset_root, base_url, path_prefix, sample_fetcher: where sample files
            come from, see ``SamplePlayer``.
    """

    def __init__(
        self,
        instrument_id: Optional[str] = None,
        *,
        context_factory: Optional[ContextFactory] = None,
        master_gain: float = DEFAULT_MASTER_GAIN,
        sample_rate: int = 44100,
        block_size: int = 256,
        asset_root: Optional[str] = None,
        base_url: Optional[str] = None,
        path_prefix: Optional[str] = None,
        sample_fetcher: Optional[Fetcher] = None,
    ) -> None:
        self._instrument: InstrumentConfig = get_instrument_config(instrument_id or default_instrument_id())
        if context_factory is None:
            context_factory = lambda: RealtimeAudioContext(sample_rate, block_size=block_size)  # noqa: E731
        self._context_factory = context_factory
        self._master_level = float(master_gain)
        self._sample_options: Dict[str, Any] = {
            "asset_root": asset_root,
            "base_url": base_url,
            "path_prefix": path_prefix,
            "fetcher": sample_fetcher,
        }

        self._context: Optional[BaseAudioContext] = None
        self._master: Optional[GainNode] = None
        self._voices: Set[Voice] = set()
        self._pending: Optional[Tuple[asyncio.Future, asyncio.TimerHandle]] = None
        self._sample_player: Optional[SamplePlayer] = None
        self._sample_instrument: Optional[str] = None
        self._unlock_attempted = False
        self._disposed = False
        self._generation = 0

    # Introspection ------------------------------------------------------
    @property
    def state(self) -> str:
        if self._disposed:
            return DISPOSED
        if self._context is None:
            return UNINITIALIZED
        if self._pending is not None:
            return PLAYING
        return READY

    @property
    def context(self) -> Optional[BaseAudioContext]:
        return self._context

    @property
    def instrument(self) -> InstrumentConfig:
        return self._instrument

    @property
    def active_voice_count(self) -> int:
        return len(self._voices)

    # Context lifecycle --------------------------------------------------
    def _ensure_context(self) -> BaseAudioContext:
        if self._context is None:
            context = self._context_factory()
            master = context.create_gain()
            master.gain.value = self._master_level
            master.connect(context.destination)
            self._context, self._master = context, master
        return self._context

    async def _unlock(self, context: BaseAudioContext) -> None:
        """Play a silent one-sample buffer, then resume again.

        Some platforms (iOS Safari) keep a context suspended until a sound has
        been started from a user gesture. Tried once per engine.
        """
        self._unlock_attempted = True
        assert self._master is not None
        buffer = context.create_buffer(1, 1, context.sample_rate)
        source = context.create_buffer_source()
        source.buffer = buffer
        source.connect(self._master)
        source.start(0)
        await context.resume()

    async def _resume(self, context: BaseAudioContext) -> bool:
        if context.state == RUNNING:
            return True
        await context.resume()
        if context.state != RUNNING and not self._unlock_attempted:
            await self._unlock(context)
        return context.state == RUNNING

    async def _ensure_samples(self, context: BaseAudioContext) -> bool:
        config = self._instrument.sample
        if config is None:
            return False
        player = self._sample_player
        if player is None or player.context is not context or self._sample_instrument != self._instrument.id:
            if player is not None:
                player.dispose()
            player = SamplePlayer(context, config, **self._sample_options)
            self._sample_player = player
            self._sample_instrument = self._instrument.id
        try:
            await player.load()
        except (AudioPlatformError, OSError) as exc:
            _LOGGER.warning("Sample load failed for %s, using oscillators: %s", self._instrument.id, exc)
            if self._sample_player is player:
                player.dispose()
                self._sample_player = None
                self._sample_instrument = None
            return False
        return True

    async def _prepare(self) -> bool:
        """Create/resume the context and load samples. False means play nothing."""
        if self._disposed:
            _LOGGER.debug("Engine disposed; playback ignored")
            return False
        try:
            context = self._ensure_context()
            if not await self._resume(context):
                _LOGGER.warning("Audio context is %s; playback skipped", context.state)
                return False
        except (AudioPlatformError, OSError) as exc:
            _LOGGER.warning("Audio unavailable: %s", exc)
            return False
        if self._instrument.playback == SAMPLE:
            await self._ensure_samples(context)
        return self._context is context

    async def initialize(self) -> bool:
        """Set up audio ahead of the first play call (e.g. on a user action)."""
        return await self._prepare()

    # Scheduling ---------------------------------------------------------
    def _create_source(self, context: BaseAudioContext, midi: int, start: float, voice: VoiceConfig) -> AudioScheduledSourceNode:
        player = self._sample_player
        if self._instrument.playback == SAMPLE and player is not None and player.context is context:
            source = player.create_source(midi, start, voice.detune)
            if source is not None:
                return source
        osc = context.create_oscillator()
        osc.type = voice.oscillator
        osc.frequency.set_value_at_time(midi_to_frequency(midi), start)
        osc.detune.set_value_at_time(voice.detune, start)
        return osc

    def _schedule_voice(
        self,
        midi: int,
        start: float,
        duration: float,
        voice_config: VoiceConfig,
        gain_multiplier: float = 1.0,
    ) -> None:
        context, master = self._context, self._master
        if context is None or master is None:
            return
        envelope = self._instrument.envelope
        peak = max(MIN_GAIN, voice_config.gain * gain_multiplier * VOICE_LEVEL)
        hold_end = start + max(duration, envelope.attack + MIN_HOLD)
        release_end = hold_end + envelope.release
        try:
            source = self._create_source(context, midi, start, voice_config)
            gain = context.create_gain()
            gain.gain.value = MIN_GAIN
            gain.gain.set_value_at_time(MIN_GAIN, start)
            gain.gain.linear_ramp_to_value_at_time(peak, start + envelope.attack)
            gain.gain.set_value_at_time(peak, hold_end)
            gain.gain.linear_ramp_to_value_at_time(MIN_GAIN, release_end)
            source.start(start)
            source.stop(release_end + STOP_PADDING)
        except (AudioPlatformError, ValueError) as exc:
            _LOGGER.debug("Skipping voice %d at %.3f: %s", midi, start, exc)
            return
        voice = Voice(source=source, gain=gain)
        source.onended = lambda: self._release_voice(voice)
        source.connect(gain)
        gain.connect(master)
        self._voices.add(voice)

    def _schedule_chord(self, chord: Chord, start: float, duration: float) -> None:
        for midi in chord.notes:
            self._schedule_voice(midi, start, duration, self._instrument.voice)
        bass = max(MIN_BASS_MIDI, chord.root_midi - 12)
        if bass not in chord.notes:
            self._schedule_voice(bass, start, duration, self._instrument.bass, BASS_GAIN_MULTIPLIER)

    def _release_voice(self, voice: Voice) -> None:
        self._voices.discard(voice)
        voice.source.disconnect()
        voice.gain.disconnect()

    # Completion ---------------------------------------------------------
    def _wait(self, seconds: float) -> "asyncio.Future[None]":
        loop = asyncio.get_running_loop()
        future: "asyncio.Future[None]" = loop.create_future()
        handle = loop.call_later(max(0.0, seconds), self._settle, future)
        self._pending = (future, handle)
        return future

    def _settle(self, future: "asyncio.Future[None]") -> None:
        if self._pending is not None and self._pending[0] is future:
            self._pending = None
        if not future.done():
            future.set_result(None)

    def _settle_pending(self) -> None:
        if self._pending is None:
            return
        future, handle = self._pending
        self._pending = None
        handle.cancel()
        if not future.done():
            future.set_result(None)

    # Public API ---------------------------------------------------------
    async def play_chord(self, chord: Chord, duration: float = DEFAULT_CHORD_DURATION) -> None:
        """Play one chord; returns once it (and its release) has finished or was stopped."""
        self.stop(immediate=True)
        generation = self._generation
        if not await self._prepare() or generation != self._generation:
            return
        assert self._context is not None
        start = self._context.current_time + SCHEDULE_LEAD
        self._schedule_chord(chord, start, duration)
        total = SCHEDULE_LEAD + max(duration, self._instrument.envelope.attack + MIN_HOLD)
        await self._wait(total + self._instrument.envelope.release + PLAYBACK_TAIL)

    async def play_progression(self, progression: ChordProgression) -> None:
        """Play every chord, two beats each at the progression tempo."""
        self.stop(immediate=True)
        generation = self._generation
        if not await self._prepare() or generation != self._generation:
            return
        assert self._context is not None
        chord_duration = progression.chord_duration
        start = self._context.current_time + SCHEDULE_LEAD
        for i, chord in enumerate(progression.chords):
            self._schedule_chord(chord, start + i * chord_duration, chord_duration)
        total = SCHEDULE_LEAD + len(progression.chords) * chord_duration
        await self._wait(total + self._instrument.envelope.release + PLAYBACK_TAIL)

    def stop(self, immediate: bool = False) -> None:
        """Fade out every active voice and resolve any pending playback wait."""
        self._generation += 1
        context = self._context
        if context is not None and self._voices:
            fade = IMMEDIATE_FADE if immediate else GRACEFUL_FADE
            now = context.current_time
            for voice in list(self._voices):
                try:
                    param = voice.gain.gain
                    current = param.value_at(now)
                    param.cancel_scheduled_values(now)
                    param.set_value_at_time(current, now)
                    param.linear_ramp_to_value_at_time(MIN_GAIN, now + fade)
                    voice.source.stop(now + fade + STOP_PADDING)
                except (AudioPlatformError, ValueError) as exc:
                    _LOGGER.debug("Voice stop failed: %s", exc)
        self._voices.clear()
        self._settle_pending()

    def set_instrument(self, instrument_id: str) -> None:
        """Switch instrument; drops loaded samples and cuts current playback."""
        self._instrument = get_instrument_config(instrument_id)
        if self._sample_player is not None:
            self._sample_player.dispose()
        self._sample_player = None
        self._sample_instrument = None
        self.stop(immediate=True)

    def dispose(self) -> None:
        self.stop(immediate=True)
        if self._sample_player is not None:
            self._sample_player.dispose()
        self._sample_player = None
        self._sample_instrument = None
        context = self._context
        self._context = None
        self._master = None
        self._unlock_attempted = False
        self._disposed = True
        if context is not None:
            try:
                context.close()
            except (AudioPlatformError, OSError) as exc:
                _LOGGER.warning("Error while closing audio context: %s", exc)


def make_engine_from_config(cfg: Dict[str, Any]) -> AudioEngine:
    """Factory for AudioEngine from a validated config dict."""
    audio = cfg.get("audio", {})
    return AudioEngine(
        instrument_id=audio.get("instrument"),
        master_gain=float(audio.get("master_gain", DEFAULT_MASTER_GAIN)),
        sample_rate=int(audio.get("sample_rate", 44100)),
        block_size=int(audio.get("block_size", 256)),
        asset_root=audio.get("asset_root"),
        base_url=audio.get("asset_base_url"),
        path_prefix=audio.get("path_prefix"),
    )
