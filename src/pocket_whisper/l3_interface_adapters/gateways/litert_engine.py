"""Gateway: reference engine — LiteRT interpreter fed by the in-process mel extractor."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import numpy as np

from pocket_whisper.l1_entities.audio_constants import N_SAMPLES
from pocket_whisper.l1_entities.errors import (
    AssetIOError,
    EngineFailureError,
    InvalidFormatError,
    NotInitializedError,
)
from pocket_whisper.l1_entities.features import MelSpectrogram
from pocket_whisper.l1_entities.vocabulary import VocabularyTable
from pocket_whisper.l2_use_cases.decode_tokens_use_case import decode_tokens
from pocket_whisper.l2_use_cases.mel_extractor import MelExtractor, default_parallelism, fit_to_window
from pocket_whisper.l3_interface_adapters.gateways.audio_file_loader import load_audio_file
from pocket_whisper.l3_interface_adapters.gateways.binary_vocab_loader import load_filters_and_vocab

log = logging.getLogger('pw.engine')

InterpreterFactory = Callable[[str, int], Any]


def load_interpreter(model_path: str, num_threads: int) -> Any:
    """Open a ``.tflite`` model with the LiteRT runtime."""
    from ai_edge_litert.interpreter import Interpreter  # noqa: PLC0415 -- deferred: only the reference backend needs LiteRT

    if not Path(model_path).is_file():
        raise AssetIOError(f'Model file not found: {model_path}')
    try:
        return Interpreter(model_path=model_path, num_threads=num_threads)
    except ValueError as exc:
        raise InvalidFormatError(f'Cannot load model {model_path}: {exc}') from exc


class LiteRTEngine:
    """Reference engine: mel spectrogram -> interpreter -> token ids -> text.

    The interpreter's input tensor has a fixed shape (1 x 80 x 3000). Files
    are fitted to the 30 s window on the sample side; live chunks are
    transformed as they are and the short spectrogram is padded with its
    floor value up to the tensor length.
    """

    def __init__(self, threads: int | None = None, interpreter_factory: InterpreterFactory | None = None) -> None:
        self._threads = threads or default_parallelism()
        self._interpreter_factory = interpreter_factory or load_interpreter
        self._interpreter: Any = None
        self._vocab: VocabularyTable | None = None
        self._mel: MelExtractor | None = None

    @property
    def is_initialized(self) -> bool:
        return self._interpreter is not None and self._vocab is not None

    @property
    def vocab(self) -> VocabularyTable | None:
        return self._vocab

    def initialize(self, model_path: str, vocab_path: str | None, multilingual: bool) -> None:
        if vocab_path is None:
            raise AssetIOError('The reference engine needs a filters/vocab file')
        self.deinitialize()

        interpreter = self._interpreter_factory(model_path, self._threads)
        interpreter.allocate_tensors()
        log.debug('Model is loaded...%s', model_path)

        filters, vocab = load_filters_and_vocab(vocab_path, multilingual)
        log.debug('Filters and Vocab are loaded...%s', vocab_path)

        self._mel = MelExtractor(filters)
        self._vocab = vocab
        self._interpreter = interpreter

    def deinitialize(self) -> None:
        self._interpreter = None
        self._vocab = None
        self._mel = None

    def transcribe_file(self, wav_path: Path) -> str:
        self._require_loaded()
        samples = fit_to_window(load_audio_file(wav_path))
        log.debug('Calculating Mel spectrogram...')
        mel = self._mel.compute(samples, N_SAMPLES, self._threads)  # type: ignore[union-attr]
        return self._run_inference(mel)

    def transcribe_buffer(self, samples: np.ndarray) -> str:
        self._require_loaded()
        data = np.asarray(samples, dtype=np.float32).ravel()
        mel = self._mel.compute(data, len(data), self._threads)  # type: ignore[union-attr]
        if mel.n_len == 0:
            return ''
        return self._run_inference(mel)

    def _require_loaded(self) -> None:
        if not self.is_initialized:
            raise NotInitializedError('Reference engine is not initialized')

    def _run_inference(self, mel: MelSpectrogram) -> str:
        interpreter = self._interpreter
        input_detail = interpreter.get_input_details()[0]
        shape = tuple(int(d) for d in input_detail['shape'])
        expected = int(np.prod(shape))

        flat = mel.flatten()
        if flat.size != expected:
            flat = _fit_frames(mel, expected)

        try:
            interpreter.set_tensor(input_detail['index'], flat.reshape(shape).astype(input_detail['dtype']))
            interpreter.invoke()
            output_detail = interpreter.get_output_details()[0]
            tokens = np.asarray(interpreter.get_tensor(output_detail['index'])).ravel().astype(np.int64)
        except (RuntimeError, ValueError) as exc:
            raise EngineFailureError(f'Inference failed: {exc}') from exc

        log.debug('Inference is executed, output_len: %d', tokens.size)
        return decode_tokens(tokens, self._vocab)  # type: ignore[arg-type]


def _fit_frames(mel: MelSpectrogram, expected: int) -> np.ndarray:
    """Pad (with the floor value) or cut the time axis so the matrix holds *expected* floats."""
    if expected % mel.n_mel:
        raise EngineFailureError(f'Input tensor of {expected} floats does not fit {mel.n_mel} mel bands')
    n_len = expected // mel.n_mel
    fitted = np.full((mel.n_mel, n_len), float(mel.data.min()), dtype=np.float32)
    keep = min(n_len, mel.n_len)
    fitted[:, :keep] = mel.data[:, :keep]
    return fitted.reshape(-1)
