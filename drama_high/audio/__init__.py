"""Procedural audio cues.

Sounds are synthesized with numpy (synth.py, cues.py), summed through a
single master gain (mixer.py) and played by a backend (backend.py).
AudioEngine (engine.py) is the only entry point the session uses.
"""

from .backend import (  # noqa: F401
    AudioBackend,
    AudioUnavailableError,
    OfflineBackend,
    SoundDeviceBackend,
)
from .engine import AudioEngine  # noqa: F401
