"""Gateway: 16-bit PCM WAV reading and atomic writing."""

from __future__ import annotations

import os
import tempfile
import wave
from pathlib import Path

import numpy as np

from pocket_whisper.l1_entities.audio_constants import BYTES_PER_SAMPLE, CHANNELS, SAMPLE_RATE

PCM_SCALE = 32768.0


def pcm16_to_float(pcm: bytes | np.ndarray) -> np.ndarray:
    """Convert little-endian int16 PCM to float32 in [-1, 1)."""
    samples = np.frombuffer(pcm, dtype='<i2') if isinstance(pcm, (bytes, bytearray, memoryview)) else pcm
    return np.asarray(samples, dtype=np.int16).astype(np.float32) / PCM_SCALE


def write_wav(
    path: Path,
    pcm: bytes,
    sample_rate: int = SAMPLE_RATE,
    channels: int = CHANNELS,
    sample_width: int = BYTES_PER_SAMPLE,
) -> Path:
    """Write *pcm* as a WAV container. Readers never observe a half-written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f'.{path.name}.', suffix='.tmp', dir=path.parent)
    try:
        with os.fdopen(fd, 'wb') as fh, wave.open(fh, 'wb') as wf:
            wf.setnchannels(channels)
            wf.setsampwidth(sample_width)
            wf.setframerate(sample_rate)
            wf.writeframes(pcm)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


def read_wav(path: Path) -> tuple[np.ndarray, int]:
    """Read a 16-bit PCM WAV as mono float32. Returns (samples, sample_rate).

    Raises:
        ValueError: the file is not 16-bit PCM.
        wave.Error: the file is not a WAV container.
    """
    with wave.open(str(path), 'rb') as wf:
        if wf.getsampwidth() != BYTES_PER_SAMPLE:
            raise ValueError(f'Unsupported sample width {wf.getsampwidth() * 8} bits: {path}')
        channels = wf.getnchannels()
        rate = wf.getframerate()
        frames = wf.readframes(wf.getnframes())

    samples = pcm16_to_float(frames)
    if channels > 1:
        samples = samples.reshape(-1, channels).mean(axis=1).astype(np.float32)
    return samples, rate
