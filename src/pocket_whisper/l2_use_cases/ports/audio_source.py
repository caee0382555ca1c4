"""Port: audio capture source."""

from __future__ import annotations

from typing import Protocol

import numpy as np


class AudioSource(Protocol):
    """Platform capture stream yielding blocks of 16-bit mono PCM."""

    def open(self, sample_rate: int, channels: int) -> None:
        """Acquire the capture device. Raises if the device is unavailable."""
        ...

    def read(self, timeout: float) -> np.ndarray | None:
        """Block until an int16 sample block is ready. Returns None on timeout."""
        ...

    def close(self) -> None:
        """Release the capture device."""
        ...
