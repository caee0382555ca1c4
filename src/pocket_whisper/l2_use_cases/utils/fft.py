"""Recursive FFT over the last axis of a batch of frames.

Even lengths split into even/odd halves; odd lengths (including the 25-point
leaves of a 400-point frame) fall back to a direct O(n^2) DFT.
"""

from __future__ import annotations

import numpy as np


def dft(frames: np.ndarray) -> np.ndarray:
    """Direct discrete Fourier transform along the last axis."""
    x = np.asarray(frames)
    n = x.shape[-1]
    k = np.arange(n)
    # reduce k*m modulo n first so the angle stays exact for large products
    angles = 2.0 * np.pi * (np.outer(k, k) % n) / n
    basis = np.cos(angles) - 1j * np.sin(angles)
    return x @ basis


def fft(frames: np.ndarray) -> np.ndarray:
    """Complex spectrum of *frames* (shape ``(..., n)``), same shape, complex128."""
    x = np.asarray(frames)
    n = x.shape[-1]
    if n == 0:
        raise ValueError('FFT of an empty frame')
    if n == 1:
        return x.astype(np.complex128)
    if n % 2 == 1:
        return dft(x)

    even = fft(x[..., 0::2])
    odd = fft(x[..., 1::2])
    twiddle = np.exp(-2j * np.pi * np.arange(n // 2) / n)
    t = twiddle * odd
    return np.concatenate([even + t, even - t], axis=-1)


def power_spectrum(frames: np.ndarray) -> np.ndarray:
    """``|X|^2`` for every bin of the full (two-sided) spectrum."""
    spectrum = fft(frames)
    return spectrum.real**2 + spectrum.imag**2
