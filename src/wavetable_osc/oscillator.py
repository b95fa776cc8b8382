"""
Oscillator - phase accumulator reading cyclically through a Wavetable
- Generator: writes a mono signal into every channel of the output buffer
- No array allocations in produce_samples(); scratch space sized up front
- Phase continuity across buffers; true modulo wrap at any increment size
"""

import math
import numpy as np
from enum import Enum

from .wavetable import Wavetable

DEFAULT_MAX_FRAMES = 4096


class Interpolation(Enum):
    """Sample reconstruction policy"""
    TRUNCATE = "truncate"   # table[floor(phase)]
    LINEAR = "linear"       # blend table[i] and table[i + 1]


class Oscillator:
    """
    Single-voice wavetable oscillator.

    Frequency and amplitude are fixed for the lifetime of the oscillator.
    Phase is a real-valued index into the table, kept in [0, length)
    between calls; it is only ever written by produce_samples()
    (and reset by prepare()).
    """

    def __init__(
        self,
        wavetable: Wavetable,
        frequency: float,
        amplitude: float,
        sample_rate: int,
        interpolation: Interpolation = Interpolation.LINEAR,
        initial_phase: float = 0.0,
        max_frames: int = DEFAULT_MAX_FRAMES,
    ):
        """
        Args:
            wavetable: Table to read (must carry a guard sample for LINEAR)
            frequency: Target pitch in Hz (finite, >= 0)
            amplitude: Linear gain (0..1)
            sample_rate: Output sample rate in Hz (> 0)
            interpolation: TRUNCATE or LINEAR
            initial_phase: Starting position as a fraction of one cycle [0, 1)
            max_frames: Largest frame_count accepted by produce_samples()

        Raises:
            ValueError: On any precondition violation
        """
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be > 0, got {sample_rate}")
        if not math.isfinite(frequency) or frequency < 0.0:
            raise ValueError(f"frequency must be finite and >= 0, got {frequency}")
        if not 0.0 <= amplitude <= 1.0:
            raise ValueError(f"amplitude must be within 0..1, got {amplitude}")
        if not 0.0 <= initial_phase < 1.0:
            raise ValueError(f"initial_phase must be within [0, 1), got {initial_phase}")
        if max_frames <= 0:
            raise ValueError(f"max_frames must be > 0, got {max_frames}")

        interpolation = Interpolation(interpolation)
        if interpolation is Interpolation.LINEAR and not wavetable.has_guard:
            raise ValueError("Linear interpolation needs a wavetable with a guard sample")

        self.wavetable = wavetable
        self.frequency = float(frequency)
        self.amplitude = float(amplitude)
        self.sr = sample_rate
        self.interpolation = interpolation
        self.initial_phase = float(initial_phase)

        self._length = wavetable.length
        # Table walk rate: one traversal takes sample_rate / frequency samples
        self._phase_increment = self.frequency * self._length / float(sample_rate)

        # Python floats index faster than numpy scalars in the per-frame loop
        self._values = wavetable.samples.tolist()

        # Pre-allocated mono scratch buffer (float64 for precision)
        self._mono = np.zeros(max_frames, dtype=np.float64)

        self._phase = 0.0
        self.prepare()

    @property
    def phase(self) -> float:
        return self._phase

    @property
    def phase_increment(self) -> float:
        return self._phase_increment

    @property
    def max_frames(self) -> int:
        return len(self._mono)

    def prepare(self, max_frames: int = None) -> None:
        """
        Reset phase before playback; optionally grow the scratch buffer.
        Never call this from the audio thread.
        """
        if max_frames is not None and max_frames > len(self._mono):
            self._mono = np.zeros(max_frames, dtype=np.float64)
        self._phase = (self.initial_phase * self._length) % self._length

    def sample_at(self, phase: float) -> float:
        """Reconstruct the output value at an arbitrary phase."""
        values = self._values
        phase = phase % self._length
        i = int(phase)
        if self.interpolation is Interpolation.TRUNCATE:
            return self.amplitude * values[i]
        f = phase - i
        return self.amplitude * ((1.0 - f) * values[i] + f * values[i + 1])

    def produce_samples(self, buffer: np.ndarray, frame_count: int,
                        channel_count: int) -> None:
        """
        Fill `frame_count` frames of an interleaved (frames, channels) buffer.

        Called from the audio thread: no locking, no I/O, no array
        creation. The same mono value lands in every channel of a frame.

        Args:
            buffer: Caller-owned output array, shape (>= frame_count, channel_count)
            frame_count: Frames to synthesize this call
            channel_count: Output channels to duplicate the signal into

        Raises:
            ValueError: If the request does not fit the buffer or scratch space
        """
        if buffer.ndim != 2 or buffer.shape[1] != channel_count:
            raise ValueError(
                f"buffer shape {buffer.shape} does not match {channel_count} channels"
            )
        if not 0 <= frame_count <= buffer.shape[0] or frame_count > len(self._mono):
            raise ValueError(f"invalid frame_count {frame_count}")

        values = self._values
        mono = self._mono
        length = self._length
        inc = self._phase_increment
        amp = self.amplitude
        phase = self._phase

        if self.interpolation is Interpolation.LINEAR:
            for n in range(frame_count):
                i = int(phase)
                f = phase - i
                mono[n] = amp * ((1.0 - f) * values[i] + f * values[i + 1])
                phase += inc
                if phase >= length:
                    phase %= length
        else:
            for n in range(frame_count):
                mono[n] = amp * values[int(phase)]
                phase += inc
                if phase >= length:
                    phase %= length

        self._phase = phase

        # Duplicate mono into every channel (broadcast, no temporaries)
        np.copyto(buffer[:frame_count], mono[:frame_count, np.newaxis],
                  casting='same_kind')

    def __repr__(self) -> str:
        return (f"Oscillator(freq={self.frequency:.2f}, amp={self.amplitude:.2f}, "
                f"{self.interpolation.value}, phase={self._phase:.3f})")
