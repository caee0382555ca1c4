"""pocket-whisper -- log-mel feature pipeline and threaded transcription scheduler."""

__version__ = '0.3.0'
