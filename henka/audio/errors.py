from __future__ import annotations

"""Audio-platform errors.

These describe the environment (no output device, undecodable file, context
closed), not program defects. The audio engine catches and logs them.
"""


class AudioPlatformError(RuntimeError):
    """Base class for audio environment failures."""


class AudioContextUnavailable(AudioPlatformError):
    """No audio output could be opened."""


class InvalidStateError(AudioPlatformError):
    """Operation not allowed in the node's or context's current state."""


class SampleLoadError(AudioPlatformError):
    """A sample file could not be fetched or decoded."""
