"""Port: neural transcription engine."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import numpy as np


class InferenceEngine(Protocol):
    """Opaque speech-to-text engine. Not safe for concurrent calls.

    Two variants exist (reference LiteRT interpreter, native whisper.cpp);
    both honour the same contract and are picked at construction time.
    """

    @property
    def is_initialized(self) -> bool: ...

    def initialize(self, model_path: str, vocab_path: str | None, multilingual: bool) -> None:
        """Load model (and vocabulary). Raises LoadError on failure, leaving the engine unloaded."""
        ...

    def deinitialize(self) -> None:
        """Release the native model resource."""
        ...

    def transcribe_file(self, wav_path: Path) -> str:
        """Transcribe the first 30 seconds of an audio file."""
        ...

    def transcribe_buffer(self, samples: np.ndarray) -> str:
        """Transcribe a short float32 chunk from the live stream."""
        ...
