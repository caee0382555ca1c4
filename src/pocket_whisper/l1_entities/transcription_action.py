"""L1 entities: transcription action, engine lifecycle state, engine backend."""

from __future__ import annotations

import enum


class TranscriptionAction(enum.Enum):
    TRANSCRIBE = 'transcribe'
    TRANSLATE = 'translate'  # recognised but not implemented


class EngineState(enum.Enum):
    UNINITIALIZED = 'uninitialized'
    INITIALIZED = 'initialized'


class EngineBackend(enum.Enum):
    REFERENCE = 'reference'
    WHISPERCPP = 'whispercpp'
