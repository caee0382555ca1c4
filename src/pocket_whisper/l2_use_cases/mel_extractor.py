"""Log-mel spectrogram extraction — Hann window, FFT, filterbank, normalization."""

from __future__ import annotations

import concurrent.futures
import logging
import os

import numpy as np

from pocket_whisper.l1_entities.audio_constants import HOP_LENGTH, N_FFT, N_MEL, N_SAMPLES
from pocket_whisper.l1_entities.features import FilterBank, MelSpectrogram
from pocket_whisper.l2_use_cases.utils.fft import power_spectrum

log = logging.getLogger('pw.mel')

_LOG_FLOOR = 1e-10
_DYNAMIC_RANGE = 8.0  # log10 decades kept below the peak


def hann_window(size: int) -> np.ndarray:
    i = np.arange(size)
    return 0.5 * (1.0 - np.cos(2.0 * np.pi * i / size))


def fit_to_window(samples: np.ndarray, n_samples: int = N_SAMPLES) -> np.ndarray:
    """Zero-pad or truncate *samples* to exactly *n_samples* float32 values."""
    fitted = np.zeros(n_samples, dtype=np.float32)
    data = np.asarray(samples, dtype=np.float32).ravel()
    copy_len = min(len(data), n_samples)
    fitted[:copy_len] = data[:copy_len]
    return fitted


def default_parallelism() -> int:
    return os.cpu_count() or 1


class MelExtractor:
    """Computes the normalized log-mel spectrogram the inference engine expects.

    Frames are striped across ``parallelism`` workers (worker *k* takes frames
    k, k+p, k+2p, ...). Every worker is joined before the normalization pass,
    which needs the global maximum.
    """

    def __init__(self, filters: FilterBank, n_fft: int = N_FFT, hop_length: int = HOP_LENGTH) -> None:
        if filters.n_fft > n_fft:
            raise ValueError(f'Filterbank has {filters.n_fft} bins, FFT of size {n_fft} provides at most {n_fft}')
        if filters.n_mel != N_MEL:
            log.warning('Filterbank has %d mel bands, engine expects %d', filters.n_mel, N_MEL)
        self._filters = filters
        self._n_fft = n_fft
        self._hop = hop_length
        self._window = hann_window(n_fft)

    @property
    def filters(self) -> FilterBank:
        return self._filters

    def compute(
        self,
        samples: np.ndarray,
        n_samples: int | None = None,
        parallelism: int | None = None,
    ) -> MelSpectrogram:
        data = np.asarray(samples, dtype=np.float32).ravel()
        if n_samples is None:
            n_samples = len(data)
        if n_samples > len(data):
            raise ValueError(f'n_samples={n_samples} exceeds the {len(data)} samples provided')
        if parallelism is None:
            parallelism = default_parallelism()
        if parallelism < 1:
            raise ValueError('parallelism must be at least 1')

        n_mel = self._filters.n_mel
        n_len = n_samples // self._hop
        out = np.empty((n_mel, n_len), dtype=np.float32)
        if n_len == 0:
            return MelSpectrogram(n_mel=n_mel, n_len=0, data=out)

        # frames read past n_samples see zeros
        padded = np.zeros(max((n_len - 1) * self._hop + self._n_fft, n_samples), dtype=np.float64)
        padded[:n_samples] = data[:n_samples]

        workers = min(parallelism, n_len)
        log.debug('mel: %d frames over %d workers', n_len, workers)
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self._compute_frames, padded, k, workers, n_len, out) for k in range(workers)]
            for future in futures:
                future.result()

        self._normalize(out)
        return MelSpectrogram(n_mel=n_mel, n_len=n_len, data=out)

    def _compute_frames(self, padded: np.ndarray, first: int, step: int, n_len: int, out: np.ndarray) -> None:
        frame_idx = np.arange(first, n_len, step)
        offsets = frame_idx * self._hop
        frames = padded[offsets[:, None] + np.arange(self._n_fft)] * self._window

        power = power_spectrum(frames)
        half = self._n_fft // 2
        # one-sided spectrum: fold bins n-1 .. half+1 onto 1 .. half-1, Nyquist counted once
        power[:, 1:half] += power[:, self._n_fft - 1 : half : -1]

        n_bins = self._filters.n_fft
        mel = power[:, :n_bins] @ self._filters.data.T.astype(np.float64)
        np.maximum(mel, _LOG_FLOOR, out=mel)
        out[:, frame_idx] = np.log10(mel).T

    @staticmethod
    def _normalize(mel: np.ndarray) -> None:
        floor = float(mel.max()) - _DYNAMIC_RANGE
        np.maximum(mel, floor, out=mel)
        mel += 4.0
        mel /= 4.0
