#!/usr/bin/env python3
"""
Configuration for the wavetable oscillator
Reads WAVETABLE_* environment variables and validates value ranges
"""

import math
import os
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Union

# Valid ranges (inclusive)
SAMPLE_RATE_RANGE = (8000, 192000)
BUFFER_SIZE_RANGE = (16, 8192)
CHANNELS_RANGE = (1, 8)
PRACTICAL_TABLE_RANGE = (256, 8192)  # audible-range fidelity without waste

INTERPOLATION_MODES = ("linear", "truncate")


def _env_bool(name: str, default: str = '0') -> bool:
    return os.environ.get(name, default) == '1'


def _env_optional_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.environ.get(name)
    if value is None:
        return default
    if value.strip().lower() in ('', 'none', 'forever'):
        return None
    return float(value)


def _parse_device(value: Optional[str]) -> Union[int, str, None]:
    """Device index if numeric, otherwise a name substring."""
    if value is None or value == '':
        return None
    try:
        return int(value)
    except ValueError:
        return value


@dataclass
class AudioConfig:
    """
    Everything the table, oscillator and output stream are built from.

    Ranges:
    - sample_rate: 8000..192000 Hz
    - buffer_size: 16..8192 frames per callback
    - channels: 1..8 (identical copies of the mono signal)
    - table_length: > 0 (256..8192 recommended)
    - amplitude: 0..1
    - frequency: finite, >= 0 Hz
    - initial_phase: [0, 1) fraction of a cycle
    - duration: finite, > 0 seconds, or None to play until interrupted
    """
    sample_rate: int = 44100
    buffer_size: int = 256
    channels: int = 2
    table_length: int = 1024
    amplitude: float = 0.5
    frequency: float = 440.0
    interpolation: str = "linear"
    initial_phase: float = 0.0
    duration: Optional[float] = 4.0
    device: Union[int, str, None] = None
    verbose: bool = False

    @classmethod
    def from_env(cls, **overrides) -> "AudioConfig":
        """Build a config from WAVETABLE_* variables, then apply overrides."""
        config = cls(
            sample_rate=int(os.environ.get('WAVETABLE_SAMPLE_RATE', '44100')),
            buffer_size=int(os.environ.get('WAVETABLE_BUFFER_SIZE', '256')),
            channels=int(os.environ.get('WAVETABLE_CHANNELS', '2')),
            table_length=int(os.environ.get('WAVETABLE_TABLE_LENGTH', '1024')),
            amplitude=float(os.environ.get('WAVETABLE_AMPLITUDE', '0.5')),
            frequency=float(os.environ.get('WAVETABLE_FREQUENCY', '440.0')),
            interpolation=os.environ.get('WAVETABLE_INTERPOLATION', 'linear').lower(),
            initial_phase=float(os.environ.get('WAVETABLE_PHASE', '0.0')),
            duration=_env_optional_float('WAVETABLE_DURATION', 4.0),
            device=_parse_device(os.environ.get('WAVETABLE_OUTPUT_DEVICE')),
            verbose=_env_bool('WAVETABLE_VERBOSE'),
        )
        for key, value in overrides.items():
            if not hasattr(config, key):
                raise ValueError(f"Unknown config field: {key}")
            setattr(config, key, value)
        return config

    def validate(self) -> "AudioConfig":
        """
        Check every field against its valid range.

        Returns:
            self, for chaining

        Raises:
            ValueError: Naming the first offending field
        """
        def check_range(name, value, bounds):
            low, high = bounds
            if not low <= value <= high:
                raise ValueError(f"{name} must be within {low}..{high}, got {value}")

        check_range('sample_rate', self.sample_rate, SAMPLE_RATE_RANGE)
        check_range('buffer_size', self.buffer_size, BUFFER_SIZE_RANGE)
        check_range('channels', self.channels, CHANNELS_RANGE)

        if self.table_length <= 0:
            raise ValueError(f"table_length must be > 0, got {self.table_length}")

        check_range('amplitude', self.amplitude, (0.0, 1.0))

        if not math.isfinite(self.frequency) or self.frequency < 0.0:
            raise ValueError(f"frequency must be finite and >= 0, got {self.frequency}")

        if self.interpolation not in INTERPOLATION_MODES:
            raise ValueError(
                f"interpolation must be one of {', '.join(INTERPOLATION_MODES)}, "
                f"got {self.interpolation!r}"
            )

        if not 0.0 <= self.initial_phase < 1.0:
            raise ValueError(f"initial_phase must be within [0, 1), got {self.initial_phase}")

        if self.duration is not None and not (math.isfinite(self.duration)
                                              and self.duration > 0.0):
            raise ValueError(f"duration must be finite and > 0 seconds, got {self.duration}")

        return self

    def table_length_warning(self) -> Optional[str]:
        """Message when table_length is valid but outside the practical range."""
        low, high = PRACTICAL_TABLE_RANGE
        if low <= self.table_length <= high:
            return None
        return (f"table_length {self.table_length} outside recommended "
                f"range {low}..{high}")

    @property
    def phase_increment(self) -> float:
        """Table positions advanced per sample at the configured frequency."""
        return self.frequency * self.table_length / self.sample_rate

    @property
    def buffer_ms(self) -> float:
        """Callback period in milliseconds."""
        return 1000.0 * self.buffer_size / self.sample_rate

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def print_config(self) -> None:
        """Print current configuration"""
        config = self.to_dict()

        print("\n" + "=" * 60)
        print("WAVETABLE OSCILLATOR - CONFIGURATION")
        print("=" * 60)

        sections = {
            'Audio': ['sample_rate', 'buffer_size', 'channels', 'device'],
            'Table': ['table_length', 'interpolation'],
            'Oscillator': ['frequency', 'amplitude', 'initial_phase'],
            'Session': ['duration', 'verbose'],
        }

        for section, keys in sections.items():
            print(f"\n{section}:")
            for key in keys:
                print(f"  {key}: {config[key]}")

        print("\nDerived:")
        print(f"  phase_increment: {self.phase_increment:.6f}")
        print(f"  callback period: {self.buffer_ms:.2f} ms")

        print("\n" + "=" * 60 + "\n")


if __name__ == "__main__":
    AudioConfig.from_env().validate().print_config()
