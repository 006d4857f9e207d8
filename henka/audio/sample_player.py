from __future__ import annotations

"""Sample-set playback: load one instrument's samples and pitch them to any MIDI note."""

import asyncio
import logging
import os
import urllib.request
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Tuple
from urllib.parse import urlparse

import soundfile as sf

from .errors import SampleLoadError
from .graph import AudioBuffer, AudioBufferSourceNode, BaseAudioContext
from .instruments import DEFAULT_EXTENSIONS, SampleDefinition, SamplePlaybackConfig


_LOGGER = logging.getLogger("henka.audio.sample_player")

BASE_PATH_ENV = "HENKA_BASE_PATH"

# soundfile format names probed for each file extension
EXTENSION_FORMATS = {
    "mp3": "MP3",
    "ogg": "OGG",
    "wav": "WAV",
    "flac": "FLAC",
}

Fetcher = Callable[[str], Awaitable[bytes]]

LoadedSample = Tuple[SampleDefinition, AudioBuffer]


def _normalise_segment(segment: str) -> str:
    return segment.strip("/")


def build_sample_path(config: SamplePlaybackConfig, file: str, extension: str, prefix: Optional[str] = None) -> str:
    """``/{prefix}/{base_path}/{file}.{extension}``, empty segments dropped."""
    if prefix is None:
        prefix = os.environ.get(BASE_PATH_ENV, "")
    segments: List[str] = []
    for part in (prefix, config.base_path or "/audio"):
        norm = _normalise_segment(part)
        if norm:
            segments.append(norm)
    segments.append(f"{file}.{extension}")
    return "/" + "/".join(segments)


def detect_supported_extension(config: SamplePlaybackConfig) -> Optional[str]:
    """First configured extension whose container the decoder supports."""
    candidates = config.extensions or DEFAULT_EXTENSIONS
    available = sf.available_formats()
    for extension in candidates:
        if EXTENSION_FORMATS.get(extension) in available:
            return extension
    return candidates[0] if candidates else None


def _http_get(url: str, timeout: float = 30.0) -> bytes:
    with urllib.request.urlopen(url, timeout=timeout) as response:
        return response.read()


class SamplePlayer:
    """Holds the decoded samples of one instrument for one audio context.

    Args:
        context: Context the buffers are decoded for.
        config: Sample set (base path, extensions, files).
        asset_root: Local directory that sample paths are resolved against.
        base_url: HTTP origin; when set, samples are fetched over HTTP instead.
        path_prefix: Deployment-wide prefix, defaults to ``$HENKA_BASE_PATH``.
        fetcher: Coroutine ``location -> bytes`` replacing file/HTTP access.
    """

    def __init__(
        self,
        context: BaseAudioContext,
        config: SamplePlaybackConfig,
        *,
        asset_root: Optional[str] = None,
        base_url: Optional[str] = None,
        path_prefix: Optional[str] = None,
        fetcher: Optional[Fetcher] = None,
    ) -> None:
        self.context = context
        self.config = config
        self.asset_root = Path(asset_root) if asset_root else Path(".")
        self.base_url = base_url
        self.path_prefix = path_prefix
        self._fetcher = fetcher
        self._loading: Optional[asyncio.Task] = None
        self._samples: List[LoadedSample] = []
        self.extension: Optional[str] = None

    def location_for(self, sample: SampleDefinition, extension: str) -> str:
        path = build_sample_path(self.config, sample.file, extension, self.path_prefix)
        if self.base_url:
            return self.base_url.rstrip("/") + path
        return str(self.asset_root / path.lstrip("/"))

    async def _fetch(self, location: str) -> bytes:
        if self._fetcher is not None:
            return await self._fetcher(location)
        if urlparse(location).scheme in ("http", "https"):
            return await asyncio.to_thread(_http_get, location)
        return await asyncio.to_thread(Path(location).read_bytes)

    async def load(self) -> None:
        """Fetch and decode every sample. Concurrent callers share one load."""
        if self._samples:
            return
        if self._loading is None:
            self._loading = asyncio.ensure_future(self._load_internal())
        task = self._loading
        try:
            await task
        finally:
            if self._loading is task:
                self._loading = None

    async def _load_internal(self) -> None:
        extension = detect_supported_extension(self.config)
        if extension is None:
            raise SampleLoadError("No supported audio format for sample playback")
        self.extension = extension

        async def _load_one(sample: SampleDefinition) -> LoadedSample:
            location = self.location_for(sample, extension)
            try:
                data = await self._fetch(location)
            except OSError as exc:
                raise SampleLoadError(f"Failed to fetch sample: {location}: {exc}") from exc
            buffer = await self.context.decode_audio_data(data)
            return sample, buffer

        loaded = await asyncio.gather(*(_load_one(s) for s in self.config.files))
        self._samples = sorted(loaded, key=lambda item: item[0].midi)
        _LOGGER.debug("Loaded %d samples (%s)", len(self._samples), extension)

    def is_ready(self) -> bool:
        return bool(self._samples)

    def closest_sample(self, target_midi: int) -> Optional[LoadedSample]:
        if not self._samples:
            return None
        closest = self._samples[0]
        smallest = abs(target_midi - closest[0].midi)
        for item in self._samples:
            distance = abs(target_midi - item[0].midi)
            if distance < smallest:
                smallest = distance
                closest = item
        return closest

    def create_source(
        self, target_midi: int, start_time: float, detune_cents: float = 0.0
    ) -> Optional[AudioBufferSourceNode]:
        """A source playing the nearest sample, detuned to ``target_midi``.

        Returns None when no samples are loaded.
        """
        found = self.closest_sample(target_midi)
        if found is None:
            return None
        sample, buffer = found
        source = self.context.create_buffer_source()
        source.buffer = buffer
        total_detune = (target_midi - sample.midi) * 100 + detune_cents
        source.detune.set_value_at_time(total_detune, start_time)
        return source

    def dispose(self) -> None:
        # An in-flight load is left to finish; its waiters resolve normally.
        self._samples = []
        self._loading = None
        self.extension = None
