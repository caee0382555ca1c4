"""Configuration Pydantic models — pure schema, no infrastructure defaults."""

from __future__ import annotations

from pydantic import BaseModel, Field

from pocket_whisper.l1_entities.audio_constants import BYTES_PER_SAMPLE
from pocket_whisper.l1_entities.transcription_action import EngineBackend


class EngineConfig(BaseModel):
    backend: EngineBackend
    model: str
    vocab: str | None = None  # filters/vocab blob; required by the reference backend
    multilingual: bool
    threads: int | None = Field(default=None, ge=1)  # None = all cores


class RecordingConfig(BaseModel):
    chunk_duration: float = Field(gt=0)
    max_duration: float = Field(gt=0)
    block_size: int = Field(gt=0)
    wav_path: str | None = None

    def chunk_bytes(self, bytes_per_second: int) -> int:
        return _whole_samples(self.chunk_duration * bytes_per_second)

    def max_bytes(self, bytes_per_second: int) -> int:
        return _whole_samples(self.max_duration * bytes_per_second)


def _whole_samples(n_bytes: float) -> int:
    """Round a byte budget down to a multiple of the PCM sample width."""
    n = int(n_bytes)
    return n - n % BYTES_PER_SAMPLE


class OutputConfig(BaseModel):
    directory: str


class AppConfig(BaseModel):
    engine: EngineConfig
    recording: RecordingConfig
    output: OutputConfig
