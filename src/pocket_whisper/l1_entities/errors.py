"""Domain error types."""


class LoadError(Exception):
    """Raised when model or vocabulary assets cannot be loaded."""


class InvalidFormatError(LoadError):
    """Raised when a vocabulary/filter blob is malformed (bad magic, bad sizes)."""


class AssetIOError(LoadError):
    """Raised when a model, vocabulary or audio asset cannot be read in full."""


class NotInitializedError(RuntimeError):
    """Raised when inference is requested before the engine has been loaded."""


class AudioFileNotFoundError(FileNotFoundError):
    """Raised when a transcription target does not exist."""


class EngineFailureError(RuntimeError):
    """Raised when the inference engine fails while running a request."""


class ModelResolutionError(Exception):
    """Raised when a whisper model cannot be resolved to a local path."""


class AudioSinkClosedError(Exception):
    """Raised by an audio sink that has been closed for shutdown."""
