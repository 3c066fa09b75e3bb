"""
Periodicity detection via the discrete Fourier transform.

The series is padded to the next power of two (never below the padding
floor) by repeating its last value, transformed, and the largest non-DC
magnitude bin is taken as the dominant frequency.

  seasonality_strength = sum(|X[k]| for k within ±1 of dominant) / sum(|X[k]|, k = 1..N/2-1)
  dominant_period      = N / dominant_bin

With edge padding a constant series has no non-DC energy, so it reports
(0, 0).
"""

import logging
from typing import Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# Non-DC energy below this fraction of the DC magnitude counts as none.
_FLAT_SPECTRUM_RATIO = 1e-9


def padded_length(n: int, floor: int = 32) -> int:
    size = 1
    while size < n:
        size *= 2
    return max(size, floor)


def seasonality(values: Sequence[float], padding: int = 32) -> Tuple[float, float]:
    """Returns (strength in [0, 1], period in samples). (0, 0) when no cycle exists."""
    n = len(values)
    if n < 2:
        return 0.0, 0.0

    arr = np.asarray(values, dtype=float)
    size = padded_length(n, padding)
    padded = np.pad(arr, (0, size - n), mode="edge")

    spectrum = np.abs(np.fft.fft(padded))
    half = size // 2
    band = spectrum[1:half]
    total = float(band.sum())
    if total <= _FLAT_SPECTRUM_RATIO * max(1.0, float(spectrum[0])):
        return 0.0, 0.0

    dominant = int(np.argmax(band)) + 1
    low = max(1, dominant - 1)
    high = min(half - 1, dominant + 1)
    near = float(spectrum[low:high + 1].sum())

    strength = min(1.0, max(0.0, near / total))
    return strength, float(size) / dominant
