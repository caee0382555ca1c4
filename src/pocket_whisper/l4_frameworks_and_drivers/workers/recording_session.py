"""Recording session — microphone capture into the live stream and a saved WAV file."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import numpy as np

from pocket_whisper.l1_entities.audio_constants import BYTES_PER_SAMPLE, CHANNELS, SAMPLE_RATE
from pocket_whisper.l1_entities.config import RecordingConfig
from pocket_whisper.l1_entities.errors import AudioSinkClosedError
from pocket_whisper.l2_use_cases.audio_sink import AudioSink
from pocket_whisper.l2_use_cases.ports.audio_source import AudioSource
from pocket_whisper.l2_use_cases.ports.listener import RecordingListener
from pocket_whisper.l3_interface_adapters.gateways.paths import RECORDING_FILE
from pocket_whisper.l3_interface_adapters.gateways.wav_file import pcm16_to_float, write_wav

log = logging.getLogger('pw.recorder')

MSG_RECORDING = 'Recording...'
MSG_RECORDING_DONE = 'Recording done...!'

BYTES_PER_SECOND = SAMPLE_RATE * BYTES_PER_SAMPLE * CHANNELS
_INT16_MAX = 32767.0


class RecordingSession:
    """Idle -> Recording -> Idle, driven by one persistent capture thread.

    Each capture block feeds two buffers: the save buffer (written to the WAV
    file when the session ends, capped at ``max_duration``) and a rolling
    buffer that is flushed into the AudioSink every ``chunk_duration``
    seconds. ``stop()`` blocks until the WAV file is on disk.
    """

    def __init__(
        self,
        audio_source: AudioSource,
        config: RecordingConfig,
        audio_sink: AudioSink | None = None,
        listener: RecordingListener | None = None,
        default_wav_path: Path | None = None,
    ) -> None:
        self._source = audio_source
        self._config = config
        self._sink = audio_sink
        self._listener = listener
        self._default_wav_path = default_wav_path or Path(RECORDING_FILE)
        self._wav_path: Path | None = Path(config.wav_path) if config.wav_path else None

        self._flag_lock = threading.Lock()
        self._in_progress = False
        self._session_done = threading.Event()
        self._session_done.set()

        self._level_lock = threading.Lock()
        self._level = 0.0

        self._cond = threading.Condition()
        self._should_start = False
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None

    def set_file_path(self, path: str | Path) -> None:
        self._wav_path = Path(path)

    @property
    def wav_path(self) -> Path:
        return self._wav_path or self._default_wav_path

    @property
    def is_in_progress(self) -> bool:
        with self._flag_lock:
            return self._in_progress

    @property
    def current_audio_level(self) -> float:
        """RMS of the latest capture block, normalized to [0, 1]."""
        with self._level_lock:
            return self._level

    # -- worker lifetime --

    def start_worker(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._record_loop, name='pw-recorder', daemon=True)
        self._thread.start()

    def shutdown(self, timeout: float = 5.0) -> None:
        self.stop(timeout=timeout)
        self._stopping.set()
        with self._cond:
            self._cond.notify_all()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    # -- session control --

    def start(self) -> bool:
        with self._flag_lock:
            if self._stopping.is_set():
                log.debug('Recorder is shut down, ignoring start')
                return False
            if self._in_progress:
                log.debug('Recording is already in progress...')
                return False
            self._in_progress = True
            self._session_done.clear()

        self.start_worker()
        with self._cond:
            self._should_start = True
            self._cond.notify()
        return True

    def stop(self, timeout: float | None = None) -> bool:
        """End the session and wait for the WAV file. Returns at once when idle."""
        with self._flag_lock:
            self._in_progress = False
        return self._session_done.wait(timeout)

    def _record_loop(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._should_start or self._stopping.is_set())
                if self._stopping.is_set():
                    with self._flag_lock:
                        self._session_done.set()
                        self._in_progress = False
                    return
                self._should_start = False

            try:
                self._record_audio(self.wav_path)
            except Exception as e:
                log.error('Recording error: %s', e, exc_info=True)
                self._send_status(str(e) or 'Unknown error')
            finally:
                self._set_level(0.0)
                # start() clears session_done under the same lock
                with self._flag_lock:
                    self._session_done.set()
                    self._in_progress = False

    def _record_audio(self, wav_path: Path) -> None:
        try:
            self._source.open(SAMPLE_RATE, CHANNELS)
        except Exception as e:
            log.error('Cannot open capture device: %s', e, exc_info=True)
            self._send_status(f'Cannot open capture device: {e}')
            return

        self._send_status(MSG_RECORDING)
        chunk_bytes = self._config.chunk_bytes(BYTES_PER_SECOND)
        max_bytes = self._config.max_bytes(BYTES_PER_SECOND)
        saved = bytearray()
        rolling = bytearray()
        total = 0

        try:
            while self.is_in_progress and total < max_bytes:
                block = self._source.read(timeout=0.1)
                if block is None:
                    continue
                pcm = np.asarray(block).astype('<i2', copy=False).ravel()
                if pcm.size == 0:
                    continue
                data = pcm.tobytes()
                saved.extend(data[: max_bytes - len(saved)])
                rolling.extend(data)
                total += len(data)
                self._set_level(_rms(pcm))

                if len(rolling) >= chunk_bytes:
                    self._emit_chunk(pcm16_to_float(bytes(rolling)))
                    rolling.clear()
        finally:
            self._source.close()

        write_wav(wav_path, bytes(saved))
        log.info('Saved %.1fs of audio to %s', len(saved) / BYTES_PER_SECOND, wav_path)
        self._send_status(MSG_RECORDING_DONE)

    def _emit_chunk(self, samples: np.ndarray) -> None:
        if self._sink is not None:
            try:
                self._sink.push(samples)
            except AudioSinkClosedError:
                log.debug('Audio sink closed, live chunk dropped')
        if self._listener is not None:
            self._listener.on_audio_chunk(samples)

    def _set_level(self, level: float) -> None:
        with self._level_lock:
            self._level = level

    def _send_status(self, message: str) -> None:
        if self._listener is not None:
            self._listener.on_status(message)


def _rms(pcm: np.ndarray) -> float:
    normalized = pcm.astype(np.float64) / _INT16_MAX
    return float(np.sqrt(np.mean(normalized * normalized)))
