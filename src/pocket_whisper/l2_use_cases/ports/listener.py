"""Port: callback surfaces for worker threads.

Callbacks fire on the issuing worker thread. A status update always
precedes the result it belongs to.
"""

from __future__ import annotations

from typing import Protocol

import numpy as np


class TranscriptionListener(Protocol):
    def on_status(self, message: str) -> None: ...

    def on_result(self, text: str) -> None: ...


class RecordingListener(Protocol):
    def on_status(self, message: str) -> None: ...

    def on_audio_chunk(self, samples: np.ndarray) -> None: ...
