"""
Audio subsystem failures, one class per stage of the stream lifecycle.
Each carries the subsystem's diagnostic message and error code.
"""

from typing import Optional


class AudioError(Exception):
    """Base class for failures reported by the audio subsystem"""

    stage = "audio"

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message, code)
        self.message = message
        self.code = code

    @property
    def exit_status(self) -> int:
        """Process exit status for this error (never 0)."""
        if self.code is None:
            return 1
        return (self.code & 0xFF) or 1

    def __str__(self):
        if self.code is None:
            return f"{self.__class__.__name__}: {self.message}"
        return f"{self.__class__.__name__}: {self.message} (error {self.code})"


class DeviceUnavailableError(AudioError):
    stage = "device"


class StreamOpenError(AudioError):
    stage = "open"


class StreamStartError(AudioError):
    stage = "start"


class StreamStopError(AudioError):
    stage = "stop"


class StreamCloseError(AudioError):
    stage = "close"
