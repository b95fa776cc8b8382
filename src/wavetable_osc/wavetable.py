"""
Wavetable - one precomputed cycle of a sine waveform

Key points:
1. Built once, before playback starts
2. Read-only afterwards (numpy array flagged non-writeable)
3. Optional guard sample at index `length` equal to index 0,
   so linear interpolation can read table[i + 1] at the upper boundary
"""

import numpy as np
from typing import Iterator


class Wavetable:
    """
    Immutable single-cycle table.

    `length` is the cycle length (one period); the stored array holds
    `length + 1` samples when the table carries a guard sample.
    """

    def __init__(self, samples: np.ndarray, length: int, has_guard: bool):
        # Owned, frozen copy of the samples
        self._samples = np.array(samples, copy=True)
        self._samples.flags.writeable = False
        self.length = length
        self.has_guard = has_guard

    @property
    def samples(self) -> np.ndarray:
        """Read-only view of the stored samples (guard included)."""
        return self._samples

    def __getitem__(self, index: int) -> float:
        if not 0 <= index < len(self._samples):
            raise IndexError(
                f"wavetable index {index} out of range "
                f"(0..{len(self._samples) - 1})"
            )
        return float(self._samples[index])

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[float]:
        return (float(x) for x in self._samples)

    def __repr__(self) -> str:
        guard = ", guard" if self.has_guard else ""
        return f"Wavetable(length={self.length}{guard})"


def build_wavetable(length: int, guard: bool = True) -> Wavetable:
    """
    Fill a table with one cycle of a sine waveform.

    Args:
        length: Samples per cycle (must be > 0; 256..8192 is the useful range)
        guard: Append table[0] at index `length` for interpolating readers

    Returns:
        Immutable Wavetable

    Raises:
        ValueError: If length is not a positive integer
    """
    if isinstance(length, bool) or not isinstance(length, (int, np.integer)):
        raise ValueError(f"Wavetable length must be an integer, got {length!r}")
    if length <= 0:
        raise ValueError(f"Wavetable length must be > 0, got {length}")

    length = int(length)
    two_pi_over_length = 2.0 * np.pi / length  # calculated once

    samples = np.empty(length + 1 if guard else length, dtype=np.float32)
    np.sin(np.arange(length, dtype=np.float64) * two_pi_over_length,
           out=samples[:length], casting='same_kind')

    if guard:
        samples[length] = samples[0]

    return Wavetable(samples, length, guard)
