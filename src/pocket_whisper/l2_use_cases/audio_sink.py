"""Thread-safe FIFO handoff of audio chunks from capture to transcription."""

from __future__ import annotations

import queue
import threading

import numpy as np

from pocket_whisper.l1_entities.errors import AudioSinkClosedError

_CLOSED = object()


class AudioSink:
    """Unbounded blocking queue of float32 sample chunks.

    ``push`` never blocks and wakes one waiting consumer; ``pop`` parks the
    caller until a chunk is available and returns chunks oldest first. There
    is no backpressure: a slow consumer simply lags behind.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue = queue.Queue()
        self._closed = threading.Event()

    def push(self, chunk: np.ndarray) -> None:
        if self._closed.is_set():
            raise AudioSinkClosedError('audio sink is closed')
        self._queue.put(chunk)

    def pop(self) -> np.ndarray:
        item = self._queue.get()
        if item is _CLOSED:
            # hand the marker on so every other blocked consumer wakes too
            self._queue.put(_CLOSED)
            raise AudioSinkClosedError('audio sink is closed')
        return item

    def pending(self) -> int:
        """Approximate number of queued chunks."""
        return self._queue.qsize()

    def close(self) -> None:
        """Wake all consumers with AudioSinkClosedError. Chunks queued before close are still delivered."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._queue.put(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()
