from __future__ import annotations

"""Instrument registry: oscillator/envelope presets and sample sets.

Presets live in ``resources/instruments.yml`` and are loaded once.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .graph import WAVEFORMS


SYNTH = "synth"
SAMPLE = "sample"

DEFAULT_EXTENSIONS: Tuple[str, ...] = ("mp3", "ogg")

_REGISTRY_CACHE: Optional[Dict[str, "InstrumentConfig"]] = None
_DEFAULT_ID: Optional[str] = None


class UnknownInstrument(ValueError):
    def __init__(self, instrument_id: str) -> None:
        super().__init__(f"Unknown instrument: {instrument_id}")
        self.instrument_id = instrument_id


@dataclass(frozen=True)
class VoiceConfig:
    oscillator: str
    gain: float
    detune: float = 0.0


@dataclass(frozen=True)
class EnvelopeConfig:
    attack: float
    release: float


@dataclass(frozen=True)
class SampleDefinition:
    midi: int
    file: str


@dataclass(frozen=True)
class SamplePlaybackConfig:
    files: Tuple[SampleDefinition, ...]
    base_path: str = "/audio"
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS


@dataclass(frozen=True)
class InstrumentConfig:
    id: str
    label: str
    description: str
    voice: VoiceConfig
    bass: VoiceConfig
    envelope: EnvelopeConfig
    playback: str = SYNTH
    sample: Optional[SamplePlaybackConfig] = None


def _instruments_path() -> Path:
    # henka/audio/instruments.py -> henka/resources/instruments.yml
    return Path(__file__).resolve().parents[1] / "resources" / "instruments.yml"


def _voice_from_dict(data: Dict[str, Any], where: str) -> VoiceConfig:
    oscillator = str(data.get("oscillator", "sine"))
    if oscillator not in WAVEFORMS:
        raise ValueError(f"{where}: unsupported oscillator '{oscillator}'")
    return VoiceConfig(
        oscillator=oscillator,
        gain=float(data.get("gain", 1.0)),
        detune=float(data.get("detune", 0.0)),
    )


def instrument_from_dict(data: Dict[str, Any]) -> InstrumentConfig:
    inst_id = str(data["id"])
    playback = str(data.get("playback", SYNTH))
    if playback not in (SYNTH, SAMPLE):
        raise ValueError(f"{inst_id}: unsupported playback mode '{playback}'")
    env = data.get("envelope") or {}
    sample = None
    sample_data = data.get("sample")
    if sample_data:
        sample = SamplePlaybackConfig(
            files=tuple(SampleDefinition(int(f["midi"]), str(f["file"])) for f in sample_data.get("files") or []),
            base_path=str(sample_data.get("base_path", "/audio")),
            extensions=tuple(sample_data.get("extensions") or DEFAULT_EXTENSIONS),
        )
    if playback == SAMPLE and (sample is None or not sample.files):
        raise ValueError(f"{inst_id}: sample playback needs sample files")
    return InstrumentConfig(
        id=inst_id,
        label=str(data.get("label", inst_id)),
        description=str(data.get("description", "")),
        voice=_voice_from_dict(data.get("voice") or {}, f"{inst_id}.voice"),
        bass=_voice_from_dict(data.get("bass") or {}, f"{inst_id}.bass"),
        envelope=EnvelopeConfig(attack=float(env.get("attack", 0.02)), release=float(env.get("release", 0.12))),
        playback=playback,
        sample=sample,
    )


def load_instruments(path: Optional[Path] = None) -> Dict[str, InstrumentConfig]:
    """Load (once) and return the instrument registry keyed by id, in file order."""
    global _REGISTRY_CACHE, _DEFAULT_ID
    if _REGISTRY_CACHE is not None and path is None:
        return _REGISTRY_CACHE
    with (path or _instruments_path()).open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    registry = {}
    for entry in data.get("instruments") or []:
        inst = instrument_from_dict(entry)
        registry[inst.id] = inst
    if path is None:
        _REGISTRY_CACHE = registry
        _DEFAULT_ID = str((data.get("defaults") or {}).get("default_instrument", next(iter(registry))))
    return registry


def default_instrument_id() -> str:
    load_instruments()
    assert _DEFAULT_ID is not None
    return _DEFAULT_ID


def instrument_options() -> List[InstrumentConfig]:
    return list(load_instruments().values())


def is_instrument_id(value: object) -> bool:
    return isinstance(value, str) and value in load_instruments()


def get_instrument_config(instrument_id: str) -> InstrumentConfig:
    try:
        return load_instruments()[instrument_id]
    except KeyError:
        raise UnknownInstrument(instrument_id) from None
