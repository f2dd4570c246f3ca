"""Capture subsystem exceptions."""


class CaptureError(Exception):
    """Base class for capture subsystem errors."""


class StreamInstallError(CaptureError):
    """Raised when a console stream cannot be intercepted."""
