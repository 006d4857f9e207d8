from __future__ import annotations

"""Randomness helpers for key selection and seeding."""

import os
import random
from typing import Optional

from ..theory.keys import KEYS


def seed_from_env() -> Optional[int]:
    """The SEED env var as an int, or None when unset or not a number."""
    seed = os.environ.get("SEED")
    if seed is None:
        return None
    try:
        return int(seed)
    except ValueError:
        return None


def make_rng(seed: Optional[int] = None) -> random.Random:
    """A Random seeded from ``seed``, else from SEED, else from the OS."""
    if seed is None:
        seed = seed_from_env()
    return random.Random(seed)


def choose_random_key(rng: Optional[random.Random] = None) -> str:
    """Choose a random key from the 12 pitch classes."""
    return (rng or random).choice(KEYS)
