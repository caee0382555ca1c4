"""Gateway: sounddevice microphone source — implements AudioSource port."""

from __future__ import annotations

import queue

import numpy as np
import sounddevice as sd

from pocket_whisper.l1_entities.audio_constants import CHANNELS, SAMPLE_RATE


class SounddeviceAudioSource:
    """Wraps sounddevice.InputStream to provide int16 PCM blocks."""

    def __init__(self, block_size: int = 1024) -> None:
        self._block_size = block_size
        self._stream: sd.InputStream | None = None
        self._queue: queue.Queue[np.ndarray] = queue.Queue()

    def open(self, sample_rate: int = SAMPLE_RATE, channels: int = CHANNELS) -> None:
        def _callback(indata, frames, time_info, status):
            self._queue.put(indata.copy())

        self._stream = sd.InputStream(
            samplerate=sample_rate,
            channels=channels,
            blocksize=self._block_size,
            dtype='int16',
            callback=_callback,
        )
        self._stream.start()

    def read(self, timeout: float = 0.1) -> np.ndarray | None:
        try:
            return self._queue.get(timeout=timeout).flatten()
        except queue.Empty:
            return None

    def close(self) -> None:
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
        while not self._queue.empty():
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
