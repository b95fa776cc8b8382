#!/usr/bin/env python3
"""
Audio Engine - drives an Oscillator from a sounddevice output stream
The audio subsystem owns timing: it calls back into the oscillator once
per buffer on its own real-time thread.
"""

import array
import os
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import psutil

from .config import AudioConfig
from .errors import (
    AudioError,
    DeviceUnavailableError,
    StreamCloseError,
    StreamOpenError,
    StreamStartError,
    StreamStopError,
)
from .oscillator import DEFAULT_MAX_FRAMES, Interpolation, Oscillator
from .wavetable import build_wavetable

# (buffer, frame_count, channel_count) -> None
SampleCallback = Callable[..., None]


def load_sounddevice():
    """Import sounddevice; a missing PortAudio library means no device."""
    try:
        import sounddevice
    except OSError as e:
        raise DeviceUnavailableError(f"PortAudio library not available: {e}") from e
    return sounddevice


def list_devices():
    """Device listing as printed by sounddevice (all host APIs)."""
    return load_sounddevice().query_devices()


def _error_code(exc: Exception) -> Optional[int]:
    """PortAudio error code carried by a sounddevice.PortAudioError, if any."""
    args = getattr(exc, 'args', ())
    if len(args) > 1 and isinstance(args[1], int):
        return args[1]
    return None


def _error_message(exc: Exception) -> str:
    args = getattr(exc, 'args', ())
    if args and isinstance(args[0], str):
        return args[0]
    return str(exc)


class EngineState(Enum):
    STOPPED = "STOPPED"
    STARTING = "STARTING"
    RUNNING = "RUNNING"
    STOPPING = "STOPPING"
    ERROR = "ERROR"


@dataclass
class EngineMetrics:
    """Metrics collected from audio engine"""
    state: EngineState
    uptime_seconds: float
    total_buffers: int
    underrun_count: int
    callback_min_us: float
    callback_mean_us: float
    callback_max_us: float
    cpu_percent: float
    frequency: float
    phase: float

    def __str__(self):
        if self.state == EngineState.RUNNING:
            return (
                f"State: {self.state.value}\n"
                f"Uptime: {self.uptime_seconds:.1f}s\n"
                f"Frequency: {self.frequency:.2f} Hz (phase {self.phase:.3f})\n"
                f"Buffers: {self.total_buffers} "
                f"({'no underruns' if self.underrun_count == 0 else f'{self.underrun_count} underruns'})\n"
                f"Callback: min={self.callback_min_us:.1f}us "
                f"mean={self.callback_mean_us:.1f}us "
                f"max={self.callback_max_us:.1f}us\n"
                f"CPU: {self.cpu_percent:.1f}%"
            )
        else:
            return f"State: {self.state.value}"


class AudioBackend(ABC):
    """
    Abstract interface for audio backends
    Stream lifecycle: open -> start -> stop -> close
    """

    @abstractmethod
    def open(self) -> None:
        """Resolve the device and open the stream"""

    @abstractmethod
    def start(self) -> None:
        """Start invoking the sample callback"""

    @abstractmethod
    def stop(self) -> None:
        """Stop invoking the sample callback"""

    @abstractmethod
    def close(self) -> None:
        """Release the stream"""

    @abstractmethod
    def get_metrics(self) -> dict:
        """Get backend-specific metrics"""


class SoundDeviceBackend(AudioBackend):
    """
    Sounddevice backend: interleaved float32 output, fixed block size.
    Failures surface as typed AudioError subclasses.
    """

    def __init__(self, callback_func: SampleCallback, config: AudioConfig):
        self.callback_func = callback_func
        self.config = config
        self.stream = None
        self.device_name: Optional[str] = None
        self._sd = None

        # Metrics (using array for lock-free access from callback)
        # [0] = underrun_count
        # [1] = total_buffers
        # [2] = last_callback_us
        # [3] = min_callback_us (initialized to large value)
        # [4] = max_callback_us
        # [5] = sum_callback_us (for mean calculation)
        self.metrics = array.array('d', [0.0, 0.0, 0.0, 1000000.0, 0.0, 0.0])

        # For WSL2 users, set WAVETABLE_PULSE_SERVER='tcp:<host>:4713'
        pulse_server = os.environ.get('WAVETABLE_PULSE_SERVER')
        if pulse_server and 'PULSE_SERVER' not in os.environ:
            os.environ['PULSE_SERVER'] = pulse_server

    def _audio_callback(self, outdata, frames, time_info, status):
        """
        Sounddevice callback - runs in audio thread
        NO allocations, NO syscalls, NO locks!
        """
        callback_start = time.perf_counter()

        if status.output_underflow:
            self.metrics[0] += 1  # underrun_count

        self.callback_func(outdata, frames, outdata.shape[1])

        callback_time_us = (time.perf_counter() - callback_start) * 1000000
        self.metrics[1] += 1  # total_buffers
        self.metrics[2] = callback_time_us  # last_callback_us
        self.metrics[3] = min(self.metrics[3], callback_time_us)  # min_callback_us
        self.metrics[4] = max(self.metrics[4], callback_time_us)  # max_callback_us
        self.metrics[5] += callback_time_us  # sum_callback_us

    def _resolve_device(self) -> dict:
        sd = self._sd
        try:
            info = sd.query_devices(self.config.device, kind='output')
        except (sd.PortAudioError, ValueError) as e:
            raise DeviceUnavailableError(
                f"No usable output device ({_error_message(e)})", _error_code(e)
            ) from e

        if info['max_output_channels'] < self.config.channels:
            raise DeviceUnavailableError(
                f"Device '{info['name']}' supports {info['max_output_channels']} "
                f"output channels, {self.config.channels} requested"
            )
        return info

    def open(self) -> None:
        """Resolve the output device and open the stream"""
        self._sd = sd = load_sounddevice()
        info = self._resolve_device()
        self.device_name = info['name']

        if self.config.verbose:
            print(f"[Engine] Output device: {self.device_name} "
                  f"(low latency {info.get('default_low_output_latency', 0.0) * 1000:.1f}ms)")

        for i in range(len(self.metrics)):
            self.metrics[i] = 0.0
        self.metrics[3] = 1000000.0  # min_callback_us

        try:
            self.stream = sd.OutputStream(
                samplerate=self.config.sample_rate,
                blocksize=self.config.buffer_size,
                device=self.config.device,
                channels=self.config.channels,
                dtype='float32',
                latency='low',
                callback=self._audio_callback
            )
        except (sd.PortAudioError, ValueError) as e:
            raise StreamOpenError(_error_message(e), _error_code(e)) from e

    def start(self) -> None:
        """Start the audio stream"""
        if self.stream is None:
            raise StreamStartError("Stream is not open")
        try:
            self.stream.start()
        except self._sd.PortAudioError as e:
            raise StreamStartError(_error_message(e), _error_code(e)) from e

    def stop(self) -> None:
        """Stop the audio stream"""
        if self.stream is None:
            return
        try:
            self.stream.stop()
        except self._sd.PortAudioError as e:
            raise StreamStopError(_error_message(e), _error_code(e)) from e

    def close(self) -> None:
        """Close the audio stream"""
        if self.stream is None:
            return
        stream, self.stream = self.stream, None
        try:
            stream.close()
        except self._sd.PortAudioError as e:
            raise StreamCloseError(_error_message(e), _error_code(e)) from e

    def get_metrics(self) -> dict:
        """Get backend metrics"""
        total_buffers = int(self.metrics[1])
        mean_callback = 0.0
        min_callback = 0.0
        if total_buffers > 0:
            mean_callback = self.metrics[5] / total_buffers
            min_callback = self.metrics[3]

        return {
            'underrun_count': int(self.metrics[0]),
            'total_buffers': total_buffers,
            'callback_min_us': min_callback,
            'callback_mean_us': mean_callback,
            'callback_max_us': self.metrics[4]
        }


class WavetableEngine:
    """
    Wavetable oscillator session.

    Builds the table and oscillator from an AudioConfig, then hands the
    oscillator's produce_samples() to the backend as its callback.
    """

    def __init__(self, config: Optional[AudioConfig] = None,
                 backend: Optional[AudioBackend] = None):
        self.config = (config or AudioConfig()).validate()
        warning = self.config.table_length_warning()
        if warning:
            print(f"[Engine] Warning: {warning}")
        self.state = EngineState.STOPPED
        self.start_time: Optional[float] = None

        interpolation = Interpolation(self.config.interpolation)
        self.wavetable = build_wavetable(
            self.config.table_length,
            guard=interpolation is Interpolation.LINEAR,
        )
        self.oscillator = Oscillator(
            self.wavetable,
            frequency=self.config.frequency,
            amplitude=self.config.amplitude,
            sample_rate=self.config.sample_rate,
            interpolation=interpolation,
            initial_phase=self.config.initial_phase,
            max_frames=max(self.config.buffer_size, DEFAULT_MAX_FRAMES),
        )

        if backend is None:
            backend = SoundDeviceBackend(self.oscillator.produce_samples, self.config)
        self.backend = backend

        # CPU monitoring
        self.process = psutil.Process()
        self.cpu_thread = None
        self.cpu_percent = 0.0
        self._stop_cpu_monitor = threading.Event()

    def _cpu_monitor_thread(self):
        """Monitor CPU usage at 1Hz"""
        while not self._stop_cpu_monitor.wait(1.0):
            try:
                self.cpu_percent = self.process.cpu_percent(interval=None)
            except psutil.Error:
                self.cpu_percent = 0.0

    def start(self) -> None:
        """
        Open and start the output stream.

        Raises:
            RuntimeError: If the engine is not stopped
            AudioError: If the audio subsystem fails; the engine ends in ERROR
        """
        if self.state != EngineState.STOPPED:
            raise RuntimeError(f"Cannot start: engine is {self.state.value}")

        self.state = EngineState.STARTING
        self.oscillator.prepare()

        try:
            self.backend.open()
            self.backend.start()
        except AudioError:
            self.state = EngineState.ERROR
            try:
                self.backend.close()
            except AudioError as close_error:
                print(f"[Engine] Cleanup after failed start: {close_error}")
            raise

        self._stop_cpu_monitor.clear()
        self.cpu_thread = threading.Thread(target=self._cpu_monitor_thread, daemon=True)
        self.cpu_thread.start()

        self.start_time = time.time()
        self.state = EngineState.RUNNING

        if self.config.verbose:
            print(f"[Engine] Started: {self.config.sample_rate}Hz, "
                  f"{self.config.buffer_size} frames/buffer, "
                  f"{self.config.channels} channels, {self.config.interpolation}")

    def stop(self) -> None:
        """
        Stop and close the output stream.

        Raises:
            RuntimeError: If the engine is not running
            AudioError: If the audio subsystem fails; the engine ends in ERROR
        """
        if self.state != EngineState.RUNNING:
            raise RuntimeError(f"Cannot stop: engine is {self.state.value}")

        self.state = EngineState.STOPPING

        self._stop_cpu_monitor.set()
        if self.cpu_thread:
            self.cpu_thread.join(timeout=2)
            self.cpu_thread = None

        try:
            self.backend.stop()
        except AudioError:
            self.state = EngineState.ERROR
            try:
                self.backend.close()
            except AudioError as close_error:
                print(f"[Engine] Cleanup after failed stop: {close_error}")
            raise

        try:
            self.backend.close()
        except AudioError:
            self.state = EngineState.ERROR
            raise

        self.state = EngineState.STOPPED
        if self.config.verbose:
            print("[Engine] Stopped")

    def run(self, duration: Optional[float] = None) -> EngineMetrics:
        """
        Play until `duration` seconds elapse (or Ctrl+C when None).

        Returns:
            Metrics captured just before the stream was stopped
        """
        self.start()
        try:
            if duration is None:
                while True:
                    time.sleep(0.5)
            else:
                time.sleep(duration)
        except KeyboardInterrupt:
            print("\nInterrupted")
        finally:
            metrics = self.get_status()
            if self.state == EngineState.RUNNING:
                self.stop()
        return metrics

    def get_status(self) -> EngineMetrics:
        """Get current engine metrics"""
        uptime = 0.0
        if self.start_time and self.state == EngineState.RUNNING:
            uptime = time.time() - self.start_time

        backend_metrics = self.backend.get_metrics()

        return EngineMetrics(
            state=self.state,
            uptime_seconds=uptime,
            total_buffers=backend_metrics['total_buffers'],
            underrun_count=backend_metrics['underrun_count'],
            callback_min_us=backend_metrics['callback_min_us'],
            callback_mean_us=backend_metrics['callback_mean_us'],
            callback_max_us=backend_metrics['callback_max_us'],
            cpu_percent=self.cpu_percent,
            frequency=self.oscillator.frequency,
            phase=self.oscillator.phase,
        )
