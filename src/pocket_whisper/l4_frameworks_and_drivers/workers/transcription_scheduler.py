"""Transcription scheduler — file-job worker and live-stream worker over one engine."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path

import numpy as np

from pocket_whisper.l1_entities.errors import AudioSinkClosedError, NotInitializedError
from pocket_whisper.l1_entities.file_request import FileRequest
from pocket_whisper.l1_entities.transcription_action import TranscriptionAction
from pocket_whisper.l2_use_cases.audio_sink import AudioSink
from pocket_whisper.l2_use_cases.ports.listener import TranscriptionListener
from pocket_whisper.l3_interface_adapters.controllers.engine_handle import EngineHandle

log = logging.getLogger('pw.scheduler')

MSG_PROCESSING = 'Processing...'
MSG_PROCESSING_DONE = 'Processing done...!'
MSG_FILE_NOT_FOUND = "Input file doesn't exist..!"
MSG_NOT_READY = 'Engine not initialized or file path not set'
MSG_STREAM_NOT_READY = 'Engine not initialized, dropping live audio chunk'


class TranscriptionScheduler:
    """Runs two long-lived worker threads that share one EngineHandle.

    * file worker: parks on a condition until ``start()`` signals a job, then
      transcribes the file in the single latest-wins request slot;
    * stream worker: parks on ``AudioSink.pop()`` and transcribes every live
      chunk in arrival order.

    The engine lock is the only synchronization between the two loops.
    """

    def __init__(
        self,
        engine: EngineHandle,
        audio_sink: AudioSink | None = None,
        listener: TranscriptionListener | None = None,
    ) -> None:
        self._engine = engine
        self._sink = audio_sink if audio_sink is not None else AudioSink()
        self._listener = listener

        self._flag_lock = threading.Lock()
        self._in_progress = False
        self._idle = threading.Event()
        self._idle.set()

        self._task_cond = threading.Condition()
        self._task_available = False
        self._start_pending = False
        self._request_path: Path | None = None
        self._action = TranscriptionAction.TRANSCRIBE

        self._stopping = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def audio_sink(self) -> AudioSink:
        return self._sink

    # -- worker lifetime --

    def start_workers(self) -> None:
        if self._threads:
            return
        self._threads = [
            threading.Thread(target=self._file_loop, name='pw-file-worker', daemon=True),
            threading.Thread(target=self._stream_loop, name='pw-stream-worker', daemon=True),
        ]
        for thread in self._threads:
            thread.start()

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop both loops. An in-flight inference runs to completion first."""
        self._stopping.set()
        with self._task_cond:
            self._task_cond.notify_all()
        self._sink.close()
        for thread in self._threads:
            thread.join(timeout=timeout)
        self._threads = []

    # -- file requests --

    def set_file_path(self, path: str | Path) -> None:
        with self._task_cond:
            self._request_path = Path(path)

    def set_action(self, action: TranscriptionAction) -> None:
        with self._task_cond:
            self._action = action

    def submit_file_request(
        self,
        path: str | Path,
        action: TranscriptionAction = TranscriptionAction.TRANSCRIBE,
    ) -> bool:
        """Replace any not-yet-started request with this one and signal the file worker.

        Returns False when a job is already in progress; the request then
        waits in the slot and runs once the current job finishes (unless a
        newer submission replaces it first).
        """
        with self._task_cond:
            self._request_path = Path(path)
            self._action = action
        return self.start()

    def start(self) -> bool:
        with self._task_cond:
            self._start_pending = True
        if not self._begin_job():
            log.debug('Execution is already in progress...')
            return False
        return True

    def stop(self) -> None:
        """Clear the in-progress flag. A running inference is not interrupted."""
        self._set_idle()

    @property
    def is_in_progress(self) -> bool:
        with self._flag_lock:
            return self._in_progress

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        return self._idle.wait(timeout)

    def _begin_job(self) -> bool:
        if not self._try_begin():
            return False
        with self._task_cond:
            self._start_pending = False
            self._task_available = True
            self._task_cond.notify()
        return True

    def _try_begin(self) -> bool:
        with self._flag_lock:
            if self._in_progress:
                return False
            self._in_progress = True
            self._idle.clear()
            return True

    def _set_idle(self) -> None:
        with self._flag_lock:
            self._in_progress = False
            self._idle.set()

    def _take_request(self) -> FileRequest | None:
        path, self._request_path = self._request_path, None
        if path is None:
            return None
        return FileRequest(path=path, action=self._action)

    def _file_loop(self) -> None:
        while True:
            with self._task_cond:
                self._task_cond.wait_for(lambda: self._task_available or self._stopping.is_set())
                if self._stopping.is_set():
                    return
                self._task_available = False
                request = self._take_request()

            self._transcribe_file(request)

            # a start() turned away while the job ran, with a request still waiting
            with self._task_cond:
                rerun = self._start_pending and self._request_path is not None
                self._start_pending = False
            if rerun:
                self._begin_job()

    def _transcribe_file(self, request: FileRequest | None) -> None:
        started = time.monotonic()
        try:
            if request is None:
                self._send_status(MSG_NOT_READY)
                return

            with self._engine.acquire() as engine:
                if not request.path.exists():
                    self._send_status(MSG_FILE_NOT_FOUND)
                    return
                self._send_status(MSG_PROCESSING)
                if request.action is TranscriptionAction.TRANSLATE:
                    log.info('TRANSLATE feature is not implemented')
                    result = None
                else:
                    result = engine.transcribe_file(request.path)

            if result is not None:
                self._send_result(result)
            log.debug('Time taken for transcription: %.0fms', (time.monotonic() - started) * 1000)
            self._send_status(MSG_PROCESSING_DONE)
        except NotInitializedError:
            self._send_status(MSG_NOT_READY)
        except Exception as e:
            log.error('Error during transcription: %s', e, exc_info=True)
            self._send_status(f'Transcription failed: {e}')
        finally:
            self._set_idle()

    def transcribe_file_now(self, path: str | Path) -> str:
        """Transcribe *path* on the calling thread. Returns '' on any failure."""
        wav_path = Path(path)
        try:
            with self._engine.acquire() as engine:
                if not wav_path.exists():
                    log.error('File does not exist: %s', wav_path)
                    return ''
                return engine.transcribe_file(wav_path) or ''
        except NotInitializedError:
            log.error('Whisper engine not initialized')
            return ''
        except Exception as e:
            log.error('Error transcribing file %s: %s', wav_path, e, exc_info=True)
            return ''

    # -- live stream --

    def write_buffer(self, samples: np.ndarray) -> None:
        self._sink.push(samples)

    def _stream_loop(self) -> None:
        while not self._stopping.is_set():
            try:
                samples = self._sink.pop()
            except AudioSinkClosedError:
                return

            try:
                with self._engine.acquire() as engine:
                    text = engine.transcribe_buffer(samples)
            except NotInitializedError:
                log.debug('Dropping %d samples: engine not initialized', len(samples))
                self._send_status(MSG_STREAM_NOT_READY)
                continue
            except Exception as e:
                log.error('Live chunk transcription failed: %s', e, exc_info=True)
                self._send_status(f'Transcription failed: {e}')
                continue

            if text:
                self._send_result(text)

    # -- listener --

    def _send_status(self, message: str) -> None:
        if self._listener is not None:
            self._listener.on_status(message)

    def _send_result(self, text: str) -> None:
        if self._listener is not None:
            self._listener.on_result(text)
