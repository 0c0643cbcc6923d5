"""
Exception types raised by netcheck.
Probe failures are not exceptions: they are carried as CheckError data inside a sample.
"""


class NetcheckError(Exception):
    """Base class for all errors netcheck raises on purpose."""


class ConfigError(NetcheckError):
    """Invalid or unusable configuration. Raised before monitoring starts."""


class LogWriteError(NetcheckError):
    """The JSON log writer could not serialise, open, write or sync."""


class WriterPoisonedError(LogWriteError):
    """A previous call was interrupted while holding the writer lock."""
