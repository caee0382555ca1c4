"""Gateway: audio file loader — 16 kHz WAV directly, anything else via ffmpeg."""

from __future__ import annotations

import logging
import shutil
import subprocess  # noqa: S404 -- intentional: shells out to ffmpeg with a fixed arg list, not shell=True
import wave
from pathlib import Path

import numpy as np

from pocket_whisper.l1_entities.audio_constants import SAMPLE_RATE
from pocket_whisper.l1_entities.errors import AudioFileNotFoundError
from pocket_whisper.l3_interface_adapters.gateways.wav_file import read_wav

log = logging.getLogger('pw.audio')

_FFMPEG_TIMEOUT = 300  # seconds


def load_audio_file(path: Path) -> np.ndarray:
    """Load *path* as float32 mono PCM at 16 kHz.

    16-bit WAV files already at 16 kHz are decoded in-process; every other
    format ffmpeg can decode (FLAC, MP3, M4A, resampled WAV, ...) goes
    through an ffmpeg subprocess.

    Raises:
        AudioFileNotFoundError: audio file does not exist.
        RuntimeError: ffmpeg is missing, conversion failed or timed out.
    """
    if not path.exists():
        raise AudioFileNotFoundError(f'Audio file not found: {path}')

    if path.suffix.lower() == '.wav':
        try:
            samples, rate = read_wav(path)
        except (wave.Error, ValueError, EOFError) as exc:
            log.debug('Falling back to ffmpeg for %s: %s', path, exc)
        else:
            if rate == SAMPLE_RATE:
                return samples
            log.debug('Resampling %s from %d Hz via ffmpeg', path, rate)

    return _load_with_ffmpeg(path)


def _load_with_ffmpeg(path: Path) -> np.ndarray:
    if shutil.which('ffmpeg') is None:
        raise RuntimeError(
            'ffmpeg is required but not found on PATH.\n  macOS:  brew install ffmpeg\n  Debian: apt install ffmpeg'
        )

    cmd = [
        'ffmpeg',
        '-i',
        str(path),
        '-ar',
        str(SAMPLE_RATE),
        '-ac',
        '1',
        '-f',
        'f32le',
        '-v',
        'quiet',
        'pipe:1',
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, timeout=_FFMPEG_TIMEOUT)  # noqa: S603
    except subprocess.TimeoutExpired as exc:
        raise RuntimeError(f'ffmpeg timed out after {_FFMPEG_TIMEOUT}s processing: {path}') from exc
    except OSError as exc:
        raise RuntimeError(f'Failed to launch ffmpeg: {exc}') from exc

    if result.returncode != 0:
        stderr = result.stderr.decode('utf-8', errors='replace').strip()
        raise RuntimeError(f'ffmpeg exited with code {result.returncode} for: {path}\n{stderr}')

    if not result.stdout:
        raise RuntimeError(f'ffmpeg produced no audio output for: {path}')

    return np.frombuffer(result.stdout, dtype=np.float32)
