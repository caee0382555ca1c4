"""Tests for the reference engine — fake interpreter, real mel + vocab pipeline."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from pocket_whisper.l1_entities.errors import (
    AssetIOError,
    EngineFailureError,
    InvalidFormatError,
    NotInitializedError,
)
from pocket_whisper.l3_interface_adapters.gateways.litert_engine import LiteRTEngine
from tests.conftest import FakeInterpreter

# SOT, transcribe, no-timestamps, "Hello", " world", EOT, "!"
_EN_TOKENS = [50257, 50359, 50362, 0, 1, 50256, 2]


def _engine(interpreter: FakeInterpreter, threads: int = 2) -> tuple[LiteRTEngine, list]:
    factory_calls: list = []

    def _factory(model_path: str, num_threads: int) -> FakeInterpreter:
        factory_calls.append((model_path, num_threads))
        return interpreter

    return LiteRTEngine(threads=threads, interpreter_factory=_factory), factory_calls


class TestInitialize:
    def test_loads_interpreter_and_vocab(self, vocab_blob_path: Path):
        interpreter = FakeInterpreter(_EN_TOKENS)
        engine, calls = _engine(interpreter, threads=3)

        engine.initialize('model.tflite', str(vocab_blob_path), multilingual=False)

        assert engine.is_initialized
        assert interpreter.allocated
        assert calls == [('model.tflite', 3)]
        assert engine.vocab is not None
        assert engine.vocab.word_for(0) == 'Hello'

    def test_vocab_path_required(self):
        engine, _ = _engine(FakeInterpreter(_EN_TOKENS))
        with pytest.raises(AssetIOError, match='filters/vocab'):
            engine.initialize('model.tflite', None, multilingual=False)
        assert not engine.is_initialized

    def test_bad_vocab_leaves_engine_unloaded(self, tmp_path: Path):
        bad = tmp_path / 'bad.bin'
        bad.write_bytes(b'\x00' * 16)
        engine, _ = _engine(FakeInterpreter(_EN_TOKENS))
        with pytest.raises(InvalidFormatError):
            engine.initialize('model.tflite', str(bad), multilingual=False)
        assert not engine.is_initialized

    def test_deinitialize(self, vocab_blob_path: Path):
        engine, _ = _engine(FakeInterpreter(_EN_TOKENS))
        engine.initialize('model.tflite', str(vocab_blob_path), multilingual=False)
        engine.deinitialize()
        assert not engine.is_initialized
        assert engine.vocab is None


class TestTranscribeFile:
    def test_silent_wav_end_to_end(self, vocab_blob_path: Path, silent_wav: Path):
        interpreter = FakeInterpreter(_EN_TOKENS)
        engine, _ = _engine(interpreter)
        engine.initialize('model.tflite', str(vocab_blob_path), multilingual=False)

        text = engine.transcribe_file(silent_wav)

        assert text == 'Hello world'
        assert interpreter.invocations == 1
        fed = interpreter.inputs[0]
        assert fed.shape == (1, 80, 3000)
        assert fed.dtype == np.float32
        np.testing.assert_allclose(fed, -1.5)

    def test_multilingual_end_of_transcript(self, vocab_blob_path: Path, silent_wav: Path):
        # 50256 is an ordinary id in a multilingual vocab; 50257 ends the transcript
        interpreter = FakeInterpreter([0, 50257, 1])
        engine, _ = _engine(interpreter)
        engine.initialize('model.tflite', str(vocab_blob_path), multilingual=True)
        assert engine.transcribe_file(silent_wav) == 'Hello'

    def test_not_initialized(self, silent_wav: Path):
        engine, _ = _engine(FakeInterpreter(_EN_TOKENS))
        with pytest.raises(NotInitializedError):
            engine.transcribe_file(silent_wav)

    def test_missing_file(self, vocab_blob_path: Path, tmp_path: Path):
        engine, _ = _engine(FakeInterpreter(_EN_TOKENS))
        engine.initialize('model.tflite', str(vocab_blob_path), multilingual=False)
        with pytest.raises(FileNotFoundError):
            engine.transcribe_file(tmp_path / 'nope.wav')

    def test_interpreter_failure_wrapped(self, vocab_blob_path: Path, silent_wav: Path):
        interpreter = FakeInterpreter(_EN_TOKENS)
        interpreter.invoke_error = RuntimeError('delegate crashed')
        engine, _ = _engine(interpreter)
        engine.initialize('model.tflite', str(vocab_blob_path), multilingual=False)
        with pytest.raises(EngineFailureError, match='delegate crashed'):
            engine.transcribe_file(silent_wav)


class TestTranscribeBuffer:
    def test_short_chunk_padded_with_floor(self, vocab_blob_path: Path):
        interpreter = FakeInterpreter(_EN_TOKENS)
        engine, _ = _engine(interpreter)
        engine.initialize('model.tflite', str(vocab_blob_path), multilingual=False)
        rng = np.random.default_rng(3)
        chunk = (rng.standard_normal(16000 * 3) * 0.1).astype(np.float32)

        assert engine.transcribe_buffer(chunk) == 'Hello world'

        fed = interpreter.inputs[0][0]
        assert fed.shape == (80, 3000)
        floor = float(fed[:, :300].min())
        np.testing.assert_allclose(fed[:, 300:], floor)

    def test_chunk_shorter_than_one_hop(self, vocab_blob_path: Path):
        interpreter = FakeInterpreter(_EN_TOKENS)
        engine, _ = _engine(interpreter)
        engine.initialize('model.tflite', str(vocab_blob_path), multilingual=False)
        assert engine.transcribe_buffer(np.zeros(100, dtype=np.float32)) == ''
        assert interpreter.invocations == 0

    def test_incompatible_tensor_shape(self, vocab_blob_path: Path):
        interpreter = FakeInterpreter(_EN_TOKENS, input_shape=(1, 81, 3000))
        engine, _ = _engine(interpreter)
        engine.initialize('model.tflite', str(vocab_blob_path), multilingual=False)
        with pytest.raises(EngineFailureError, match='mel bands'):
            engine.transcribe_buffer(np.zeros(16000, dtype=np.float32))


class TestLoadInterpreter:
    def test_missing_model_file(self, tmp_path: Path):
        pytest.importorskip('ai_edge_litert')
        from pocket_whisper.l3_interface_adapters.gateways.litert_engine import load_interpreter  # noqa: PLC0415

        with pytest.raises(AssetIOError, match='not found'):
            load_interpreter(str(tmp_path / 'missing.tflite'), 1)
