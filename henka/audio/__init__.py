"""Audio layer: numpy audio graph, instrument registry, sample player and engine."""

from .engine import AudioEngine, make_engine_from_config  # noqa: F401
from .errors import (  # noqa: F401
    AudioContextUnavailable,
    AudioPlatformError,
    InvalidStateError,
    SampleLoadError,
)
from .graph import OfflineAudioContext, RealtimeAudioContext  # noqa: F401
from .instruments import (  # noqa: F401
    InstrumentConfig,
    UnknownInstrument,
    default_instrument_id,
    get_instrument_config,
    instrument_options,
    is_instrument_id,
)
from .sample_player import SamplePlayer  # noqa: F401
