"""Single-shot file transcription request."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

from pocket_whisper.l1_entities.transcription_action import TranscriptionAction


class FileRequest(BaseModel):
    """A pending "transcribe this file" job. Only the latest one is kept."""

    path: Path
    action: TranscriptionAction = TranscriptionAction.TRANSCRIBE

    model_config = {'frozen': True}
