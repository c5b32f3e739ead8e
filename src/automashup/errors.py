"""
Error taxonomy for mashup requests.

Analysis and rendering are all-or-nothing per request: a failure on any
selected track aborts the whole mashup, since the timeline and target BPM
are computed jointly across every track.
"""


class MashupError(Exception):
    """Base class for all mashup pipeline failures."""
    pass


class InputError(MashupError):
    """Raised for invalid input (too few tracks, analysis not run, bad buffers)."""
    pass


class NetworkError(MashupError):
    """Raised when a source audio stream cannot be fetched."""
    pass


class DecodeError(MashupError):
    """Raised when a source byte stream cannot be decoded to PCM."""
    pass


class AnalysisError(MashupError):
    """Raised when track analysis fails unexpectedly."""
    pass


class RenderError(MashupError):
    """Raised on internal failure during offline synthesis."""
    pass


class EncodeError(MashupError):
    """Raised when a rendered buffer cannot be serialized."""
    pass


class MashupCancelled(MashupError):
    """Raised when a request is cancelled between phases."""
    pass
