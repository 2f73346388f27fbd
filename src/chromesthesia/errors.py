"""Exception types raised by the analysis core."""


class ChromesthesiaError(Exception):
    """Base class for all errors raised by this package."""


class BadInputError(ChromesthesiaError, ValueError):
    """A snapshot or sample buffer is structurally invalid."""


class DecodeError(ChromesthesiaError, RuntimeError):
    """The audio decoder could not produce a usable PCM buffer."""
