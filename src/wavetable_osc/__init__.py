"""
Wavetable Oscillator - real-time single-voice sine synthesis
A precomputed one-cycle table read by a phase accumulator, driven by a
sounddevice output stream callback.
"""

__version__ = "0.1.0"

from .config import AudioConfig
from .engine import EngineState, SoundDeviceBackend, WavetableEngine
from .errors import (
    AudioError,
    DeviceUnavailableError,
    StreamCloseError,
    StreamOpenError,
    StreamStartError,
    StreamStopError,
)
from .oscillator import Interpolation, Oscillator
from .wavetable import Wavetable, build_wavetable

__all__ = [
    'AudioConfig',
    'AudioError',
    'DeviceUnavailableError',
    'EngineState',
    'Interpolation',
    'Oscillator',
    'SoundDeviceBackend',
    'StreamCloseError',
    'StreamOpenError',
    'StreamStartError',
    'StreamStopError',
    'Wavetable',
    'WavetableEngine',
    'build_wavetable',
]
