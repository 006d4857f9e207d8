from __future__ import annotations

"""Configuration loading and validation for henka.

This module loads YAML configuration, applies defaults, and validates
enumerations (instrument, difficulty, key, drill mode) for the CLI.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..audio.instruments import default_instrument_id, is_instrument_id
from ..audio.sample_player import BASE_PATH_ENV
from ..theory.difficulty import DifficultyLevel, difficulty_from_dict, difficulty_names
from ..theory.errors import TheoryError
from ..theory.keys import normalize_key


ALLOWED_DRILL_MODES = {"absolute", "transpose"}


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"ERROR: Config file not found: {path}", file=sys.stderr)
        sys.exit(1)


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    if path:
        cfg = _load_yaml(Path(path))
    else:
        default_path = Path(__file__).with_name("defaults.yml")
        cfg = _load_yaml(default_path)
    return cfg


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Unknown enumeration values are reported and replaced by their default.
    The ``custom_difficulty`` section is checked by building the level; a bad
    value there raises ``ValueError``.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    # Shallow defaults for missing sections
    for section in ("audio", "generation", "custom_difficulty", "drill"):
        if cfg.get(section) is None:
            cfg[section] = {}

    audio = cfg["audio"]
    generation = cfg["generation"]
    drill = cfg["drill"]

    audio.setdefault("sample_rate", 44100)
    audio.setdefault("block_size", 256)
    audio.setdefault("master_gain", 0.3)
    audio.setdefault("instrument", default_instrument_id())
    audio.setdefault("asset_root", ".")
    audio.setdefault("asset_base_url", None)
    audio.setdefault("path_prefix", "")

    generation.setdefault("difficulty", "beginner")
    generation.setdefault("key", None)
    generation.setdefault("voice_leading", None)
    generation.setdefault("seed", None)

    drill.setdefault("mode", "absolute")
    drill.setdefault("questions", 10)
    drill.setdefault("replay_limit", 3)

    # Environment overrides
    env_prefix = os.environ.get(BASE_PATH_ENV)
    if env_prefix is not None:
        audio["path_prefix"] = env_prefix
    env_seed = os.environ.get("SEED")
    if env_seed is not None:
        try:
            generation["seed"] = int(env_seed)
        except ValueError:
            print(f"WARNING: Ignoring non-integer SEED '{env_seed}'.")

    # Enum validations
    instrument = audio.get("instrument")
    if not is_instrument_id(instrument):
        fallback = default_instrument_id()
        print(f"WARNING: Unsupported instrument '{instrument}', using '{fallback}'.")
        audio["instrument"] = fallback

    gain = float(audio.get("master_gain", 0.3))
    if not 0.0 <= gain <= 1.0:
        print(f"WARNING: master_gain {gain} outside [0, 1], using 0.3.")
        gain = 0.3
    audio["master_gain"] = gain

    difficulty = generation.get("difficulty")
    if difficulty not in difficulty_names():
        print(f"WARNING: Unsupported difficulty '{difficulty}', using 'beginner'.")
        generation["difficulty"] = "beginner"

    key = generation.get("key")
    if key is not None:
        try:
            generation["key"] = normalize_key(str(key))
        except TheoryError:
            print(f"WARNING: Unsupported key '{key}', choosing keys at random.")
            generation["key"] = None

    mode = drill.get("mode")
    if mode not in ALLOWED_DRILL_MODES:
        print(f"WARNING: Unsupported drill mode '{mode}', using 'absolute'.")
        drill["mode"] = "absolute"

    questions = int(drill.get("questions", 10))
    if questions < 1:
        print("WARNING: drill.questions must be >= 1, using 10.")
        questions = 10
    drill["questions"] = questions

    # Raises ValueError on an invalid custom level.
    custom_difficulty(cfg)

    return cfg


def custom_difficulty(cfg: Dict[str, Any]) -> DifficultyLevel:
    """The custom difficulty level described by the config."""
    return difficulty_from_dict(cfg.get("custom_difficulty") or {})
