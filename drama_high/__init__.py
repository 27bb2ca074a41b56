"""Drama High — turn-based interactive fiction engine.

The session (session.py) sequences turns from an external generator
(generator.py), folds each turn into the accumulated state (reducer.py),
plays procedural audio cues (audio/) and saves to a single slot (codec.py,
storage.py). app.py exposes it over HTTP for the presentation layer.
"""

__version__ = "0.1.0"
