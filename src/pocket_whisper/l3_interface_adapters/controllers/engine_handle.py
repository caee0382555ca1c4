"""Controller: the single, explicitly owned inference engine handle."""

from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Iterator

from pocket_whisper.l1_entities.errors import NotInitializedError
from pocket_whisper.l1_entities.transcription_action import EngineState
from pocket_whisper.l2_use_cases.ports.inference_engine import InferenceEngine

log = logging.getLogger('pw.engine')


class EngineHandle:
    """Owns one InferenceEngine and the lock that serializes every call into it.

    Lifecycle: UNINITIALIZED -> load() -> INITIALIZED -> deinitialize() ->
    UNINITIALIZED. The scheduler's two worker loops share one handle; the
    lock guarantees the engine never runs two inferences at once.
    """

    def __init__(self, engine: InferenceEngine) -> None:
        self._engine = engine
        self._lock = threading.Lock()
        self._state = EngineState.UNINITIALIZED

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is EngineState.INITIALIZED

    def load(self, model_path: str, vocab_path: str | None, multilingual: bool) -> bool:
        """Initialize the engine. Returns False (and logs) on any failure."""
        with self._lock:
            try:
                self._engine.initialize(model_path, vocab_path, multilingual)
            except Exception as e:
                log.error('Error initializing model %s: %s', model_path, e, exc_info=True)
                self._release()
                return False
            self._state = EngineState.INITIALIZED
            log.info('Engine initialized (model=%s, multilingual=%s)', model_path, multilingual)
            return True

    def deinitialize(self) -> None:
        with self._lock:
            self._release()

    def _release(self) -> None:
        try:
            self._engine.deinitialize()
        finally:
            self._state = EngineState.UNINITIALIZED

    @contextlib.contextmanager
    def acquire(self) -> Iterator[InferenceEngine]:
        """Hold the engine lock for one inference. Raises NotInitializedError if not loaded."""
        with self._lock:
            if self._state is not EngineState.INITIALIZED or not self._engine.is_initialized:
                raise NotInitializedError('Engine not initialized')
            yield self._engine
