"""Dependency container — composition root for wiring all layers together."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from pocket_whisper.l1_entities.config import AppConfig, EngineConfig
from pocket_whisper.l1_entities.errors import ModelResolutionError
from pocket_whisper.l1_entities.transcription_action import EngineBackend
from pocket_whisper.l2_use_cases.audio_sink import AudioSink
from pocket_whisper.l2_use_cases.ports.audio_source import AudioSource
from pocket_whisper.l2_use_cases.ports.inference_engine import InferenceEngine
from pocket_whisper.l2_use_cases.ports.model_resolver import ModelResolver
from pocket_whisper.l3_interface_adapters.controllers.engine_handle import EngineHandle
from pocket_whisper.l3_interface_adapters.gateways.hf_model_resolver import HfModelResolver
from pocket_whisper.l3_interface_adapters.gateways.litert_engine import LiteRTEngine
from pocket_whisper.l3_interface_adapters.gateways.paths import RECORDING_FILE
from pocket_whisper.l4_frameworks_and_drivers.config import VOCAB_ENGLISH, VOCAB_MULTILINGUAL
from pocket_whisper.l4_frameworks_and_drivers.workers.recording_session import RecordingSession
from pocket_whisper.l4_frameworks_and_drivers.workers.transcription_scheduler import TranscriptionScheduler

log = logging.getLogger('pw.cli')


class DependencyContainer:
    """Creates and wires all concrete instances. Easy to override for testing."""

    def __init__(
        self,
        config: AppConfig,
        output_dir: Path,
        listener=None,
        engine: InferenceEngine | None = None,
        audio_source: AudioSource | None = None,
        model_resolver: ModelResolver | None = None,
        on_download_progress: Callable[[int], None] | None = None,
    ) -> None:
        self.config = config
        self.output_dir = output_dir

        self.engine: InferenceEngine = engine or self._build_engine(config.engine)
        self.engine_handle = EngineHandle(self.engine)
        self.model_resolver: ModelResolver = model_resolver or HfModelResolver(on_progress=on_download_progress)
        self.audio_sink = AudioSink()
        self.scheduler = TranscriptionScheduler(self.engine_handle, self.audio_sink, listener)
        self._audio_source = audio_source
        self._listener = listener
        self._recorder: RecordingSession | None = None

    @staticmethod
    def _build_engine(engine_config: EngineConfig) -> InferenceEngine:
        if engine_config.backend is EngineBackend.WHISPERCPP:
            from pocket_whisper.l3_interface_adapters.gateways.whispercpp_engine import (  # noqa: PLC0415 -- deferred: native library only loaded for this backend
                WhisperCppEngine,
            )

            return WhisperCppEngine(threads=engine_config.threads)
        return LiteRTEngine(threads=engine_config.threads)

    @staticmethod
    def _build_audio_source(block_size: int) -> AudioSource:
        from pocket_whisper.l3_interface_adapters.gateways.sounddevice_audio_source import (  # noqa: PLC0415 -- deferred: PortAudio only loaded for recording
            SounddeviceAudioSource,
        )

        return SounddeviceAudioSource(block_size=block_size)

    @property
    def recorder(self) -> RecordingSession:
        """Built on first use so transcribe-only runs never touch the audio device layer."""
        if self._recorder is None:
            source = self._audio_source
            if source is None:
                source = self._build_audio_source(self.config.recording.block_size)
            self._recorder = RecordingSession(
                source,
                self.config.recording,
                audio_sink=self.audio_sink,
                listener=self._listener,
                default_wav_path=self.output_dir / RECORDING_FILE,
            )
        return self._recorder

    def resolve_model_paths(self) -> tuple[str, str | None]:
        """Return (model_path, vocab_path) for the configured backend.

        Raises:
            ModelResolutionError: the model cannot be found or downloaded.
        """
        engine = self.config.engine
        if engine.backend is EngineBackend.WHISPERCPP:
            return self.model_resolver.resolve(engine.model), None

        model_path = Path(engine.model).expanduser()
        if not model_path.is_file():
            raise ModelResolutionError(f'Model file not found: {engine.model}')
        if engine.vocab:
            vocab_path = Path(engine.vocab).expanduser()
        else:
            vocab_path = model_path.parent / (VOCAB_MULTILINGUAL if engine.multilingual else VOCAB_ENGLISH)
        return str(model_path), str(vocab_path)

    def load_engine(self) -> bool:
        try:
            model_path, vocab_path = self.resolve_model_paths()
        except ModelResolutionError as e:
            log.error('Cannot resolve model: %s', e)
            return False
        return self.engine_handle.load(model_path, vocab_path, self.config.engine.multilingual)

    def close(self) -> None:
        if self._recorder is not None:
            self._recorder.shutdown()
        self.scheduler.shutdown()
        self.engine_handle.deinitialize()
