"""Gateway: accelerated engine — whisper.cpp through pywhispercpp."""

from __future__ import annotations

import contextlib
import logging
import os
from pathlib import Path

import numpy as np
from pywhispercpp.model import Model

from pocket_whisper.l1_entities.errors import AssetIOError, EngineFailureError, NotInitializedError
from pocket_whisper.l2_use_cases.mel_extractor import default_parallelism, fit_to_window
from pocket_whisper.l3_interface_adapters.gateways.audio_file_loader import load_audio_file

log = logging.getLogger('pw.engine')


@contextlib.contextmanager
def _suppress_c_stdout():
    """Redirect C-level stdout and stderr to /dev/null.

    whisper.cpp prints init/progress messages directly via C fprintf,
    bypassing Python's sys.stdout.
    """
    devnull = os.open(os.devnull, os.O_WRONLY)
    old_stdout = os.dup(1)
    old_stderr = os.dup(2)
    try:
        os.dup2(devnull, 1)
        os.dup2(devnull, 2)
        yield
    finally:
        os.dup2(old_stdout, 1)
        os.dup2(old_stderr, 2)
        os.close(devnull)
        os.close(old_stdout)
        os.close(old_stderr)


class WhisperCppEngine:
    """pywhispercpp adapter. The native model carries its own vocabulary and
    feature extraction, so ``vocab_path`` is ignored."""

    def __init__(self, threads: int | None = None) -> None:
        self._threads = threads or default_parallelism()
        self._model: Model | None = None
        self._language = 'en'

    @property
    def is_initialized(self) -> bool:
        return self._model is not None

    def initialize(self, model_path: str, vocab_path: str | None, multilingual: bool) -> None:
        self.deinitialize()
        if Path(model_path).is_absolute() and not Path(model_path).exists():
            raise AssetIOError(f'Model file not found: {model_path}')
        self._language = 'auto' if multilingual else 'en'
        with _suppress_c_stdout():
            self._model = Model(
                model_path,
                n_threads=self._threads,
                print_progress=False,
                print_realtime=False,
            )
        log.debug('Model is loaded...%s', model_path)

    def deinitialize(self) -> None:
        """Explicitly release the model, suppressing C-level teardown noise."""
        if self._model is not None:
            with _suppress_c_stdout():
                del self._model
                self._model = None

    def transcribe_file(self, wav_path: Path) -> str:
        self._require_loaded()
        return self._transcribe(fit_to_window(load_audio_file(wav_path)))

    def transcribe_buffer(self, samples: np.ndarray) -> str:
        self._require_loaded()
        return self._transcribe(np.asarray(samples, dtype=np.float32).ravel())

    def _require_loaded(self) -> None:
        if self._model is None:
            raise NotInitializedError('whisper.cpp engine is not initialized')

    def _transcribe(self, audio: np.ndarray) -> str:
        try:
            with _suppress_c_stdout():
                segments = self._model.transcribe(audio, language=self._language)  # type: ignore[union-attr]
        except RuntimeError as exc:
            raise EngineFailureError(f'whisper.cpp inference failed: {exc}') from exc
        return ' '.join(text for seg in segments if (text := seg.text.strip()))
