"""Feature matrices: the mel filterbank and the mel spectrogram."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class FilterBank:
    """Dense ``n_mel x n_fft`` float32 projection matrix."""

    n_mel: int
    n_fft: int
    data: np.ndarray

    def __post_init__(self) -> None:
        if self.data.size != self.n_mel * self.n_fft:
            raise ValueError(
                f'Filter data has {self.data.size} floats, expected {self.n_mel} x {self.n_fft}'
            )
        matrix = np.asarray(self.data, dtype=np.float32).reshape(self.n_mel, self.n_fft)
        matrix.flags.writeable = False
        object.__setattr__(self, 'data', matrix)


@dataclass(frozen=True)
class MelSpectrogram:
    """Normalized log-mel matrix, ``n_mel`` rows by ``n_len`` frames."""

    n_mel: int
    n_len: int
    data: np.ndarray

    def flatten(self) -> np.ndarray:
        """Row-major copy (band-major, frames contiguous), the layout fed to the engine."""
        return np.ascontiguousarray(self.data, dtype=np.float32).reshape(-1)
