"""Exception types shared across the engine."""


class GeneratorError(RuntimeError):
    """Raised when the generator backend cannot be reached or returns no usable payload."""


class SaveLoadError(Exception):
    """Raised when a saved blob cannot be parsed into a session."""


class SessionError(Exception):
    """Base class for events the session refuses in its current phase."""


class SessionBusyError(SessionError):
    """A turn (or insight) request is already in flight."""


class UnknownChoiceError(SessionError):
    """The selected choice is not part of the current scene."""


class NoSaveError(SessionError):
    """The save slot is empty."""
