"""Error taxonomy for capture, transcription and storage."""


class PicLoggerError(Exception):
    """Base class for errors raised by the field logger."""


class DeviceError(PicLoggerError):
    """Camera or microphone is unavailable or permission was denied."""


class CaptureError(PicLoggerError):
    """A still frame could not be grabbed from the video stream."""


class ChannelBusy(PicLoggerError):
    """A transcription request is already pending on the host channel."""


class ChannelUnavailable(PicLoggerError):
    """No host integration is present."""


class HostSendError(PicLoggerError):
    """The outbound host message could not be sent."""


class RecognitionError(PicLoggerError):
    """The on-device recognizer is unavailable or heard no speech."""


class StorageError(PicLoggerError):
    """A log or project document could not be loaded, saved or deleted."""


class InvalidTransition(PicLoggerError):
    """A capture session was asked to move to a state it cannot reach."""
