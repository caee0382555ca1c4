"""Shared test fixtures and protocol-conforming fakes."""

from __future__ import annotations

import threading
import time
from pathlib import Path

import numpy as np
import pytest

from pocket_whisper.l1_entities.audio_constants import N_FFT, N_MEL, SAMPLE_RATE
from pocket_whisper.l1_entities.config import RecordingConfig
from pocket_whisper.l3_interface_adapters.gateways.binary_vocab_loader import build_blob
from pocket_whisper.l3_interface_adapters.gateways.wav_file import write_wav
from pocket_whisper.l4_frameworks_and_drivers.config import build_app_config

N_FILTER_BINS = N_FFT // 2 + 1  # 201

# --- Protocol-conforming Fakes ---


class FakeEngine:
    """Fake inference engine for scheduler and container tests."""

    def __init__(self, file_text: str = 'hello from file', buffer_text: str = 'hello from stream'):
        self.file_text = file_text
        self.buffer_text = buffer_text
        self.fail_initialize: Exception | None = None
        self.file_error: Exception | None = None
        self.initialize_calls: list[tuple[str, str | None, bool]] = []
        self.file_calls: list[Path] = []
        self.buffer_calls: list[np.ndarray] = []
        self.deinitialize_calls = 0
        # when set, transcribe_file parks until the test releases it
        self.gate: threading.Event | None = None
        self.entered = threading.Event()
        self._loaded = False

    @property
    def is_initialized(self) -> bool:
        return self._loaded

    def initialize(self, model_path: str, vocab_path: str | None, multilingual: bool) -> None:
        self.initialize_calls.append((model_path, vocab_path, multilingual))
        if self.fail_initialize is not None:
            raise self.fail_initialize
        self._loaded = True

    def deinitialize(self) -> None:
        self.deinitialize_calls += 1
        self._loaded = False

    def transcribe_file(self, wav_path: Path) -> str:
        self.file_calls.append(wav_path)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5.0)
        if self.file_error is not None:
            raise self.file_error
        return self.file_text

    def transcribe_buffer(self, samples: np.ndarray) -> str:
        self.buffer_calls.append(samples)
        return self.buffer_text


class FakeAudioSource:
    """Fake capture source yielding int16 blocks — implements AudioSource protocol."""

    def __init__(self, chunks: list[np.ndarray] | None = None, fail_open: Exception | None = None) -> None:
        self._chunks = list(chunks or [])
        self._fail_open = fail_open
        self.open_calls: list[tuple[int, int]] = []
        self.close_calls: int = 0
        self._idx = 0

    def open(self, sample_rate: int, channels: int) -> None:
        self.open_calls.append((sample_rate, channels))
        if self._fail_open is not None:
            raise self._fail_open

    def read(self, timeout: float = 0.1) -> np.ndarray | None:
        if self._idx >= len(self._chunks):
            time.sleep(min(timeout, 0.005))
            return None
        chunk = self._chunks[self._idx]
        self._idx += 1
        return chunk

    def close(self) -> None:
        self.close_calls += 1

    @property
    def exhausted(self) -> bool:
        return self._idx >= len(self._chunks)


class CollectingListener:
    """Records every worker callback in arrival order."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self.events: list[tuple[str, object]] = []
        self.statuses: list[str] = []
        self.results: list[str] = []
        self.chunks: list[np.ndarray] = []

    def on_status(self, message: str) -> None:
        with self._cond:
            self.statuses.append(message)
            self.events.append(('status', message))
            self._cond.notify_all()

    def on_result(self, text: str) -> None:
        with self._cond:
            self.results.append(text)
            self.events.append(('result', text))
            self._cond.notify_all()

    def on_audio_chunk(self, samples: np.ndarray) -> None:
        with self._cond:
            self.chunks.append(samples)
            self.events.append(('chunk', samples))
            self._cond.notify_all()

    def wait_for(self, predicate, timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: predicate(self), timeout=timeout)

    def wait_for_status(self, message: str, count: int = 1, timeout: float = 5.0) -> bool:
        return self.wait_for(lambda listener: listener.statuses.count(message) >= count, timeout)


class FakeInterpreter:
    """Fake LiteRT interpreter returning a fixed token sequence."""

    def __init__(self, tokens: list[int], input_shape: tuple[int, ...] = (1, N_MEL, 3000)) -> None:
        self.tokens = np.asarray(tokens, dtype=np.int32).reshape(1, -1)
        self.input_shape = input_shape
        self.allocated = False
        self.inputs: list[np.ndarray] = []
        self.invocations = 0
        self.invoke_error: Exception | None = None

    def allocate_tensors(self) -> None:
        self.allocated = True

    def get_input_details(self) -> list[dict]:
        return [{'index': 0, 'shape': np.array(self.input_shape), 'dtype': np.float32}]

    def get_output_details(self) -> list[dict]:
        return [{'index': 1, 'shape': np.array(self.tokens.shape), 'dtype': np.int32}]

    def set_tensor(self, index: int, value: np.ndarray) -> None:
        if tuple(value.shape) != tuple(self.input_shape):
            raise ValueError(f'Cannot set tensor: got shape {value.shape}')
        self.inputs.append(value)

    def invoke(self) -> None:
        if self.invoke_error is not None:
            raise self.invoke_error
        self.invocations += 1

    def get_tensor(self, index: int) -> np.ndarray:
        return self.tokens


# --- Helpers ---


def make_filters(n_mel: int = N_MEL, n_bins: int = N_FILTER_BINS) -> np.ndarray:
    """Triangular-ish positive filterbank, deterministic."""
    filters = np.zeros((n_mel, n_bins), dtype=np.float32)
    centers = np.linspace(1, n_bins - 2, n_mel)
    bins = np.arange(n_bins)
    for m, c in enumerate(centers):
        filters[m] = np.clip(1.0 - np.abs(bins - c) / 3.0, 0.0, None)
    return filters


def int16_blocks(seconds: float, block_size: int = 1600, amplitude: int = 1000) -> list[np.ndarray]:
    """Square-wave int16 blocks totalling *seconds* of audio."""
    total = int(seconds * SAMPLE_RATE)
    signal = np.where((np.arange(total) // 40) % 2 == 0, amplitude, -amplitude).astype(np.int16)
    return [signal[i : i + block_size] for i in range(0, total, block_size)]


# --- Fixtures ---


@pytest.fixture
def vocab_words() -> list[str]:
    return ['Hello', ' world', '!', ' again']


@pytest.fixture
def vocab_blob_path(tmp_path: Path, vocab_words: list[str]) -> Path:
    path = tmp_path / 'filters_vocab_en.bin'
    path.write_bytes(build_blob(make_filters(), vocab_words))
    return path


@pytest.fixture
def silent_wav(tmp_path: Path) -> Path:
    """One second of 16 kHz mono silence."""
    return write_wav(tmp_path / 'silence.wav', bytes(SAMPLE_RATE * 2))


@pytest.fixture
def recording_config() -> RecordingConfig:
    return build_app_config({}).recording


@pytest.fixture
def sample_config_yaml(tmp_path: Path) -> Path:
    p = tmp_path / 'config.yaml'
    p.write_text(
        """\
engine:
  backend: whispercpp
  model: base.en
  multilingual: false
  threads: 2
recording:
  chunk_duration: 2.0
  max_duration: 30.0
output:
  directory: /tmp/pw-out
""",
        encoding='utf-8',
    )
    return p


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.005) -> bool:
    """Poll *predicate* until it holds or *timeout* elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
