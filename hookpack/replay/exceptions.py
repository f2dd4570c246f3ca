"""Replay subsystem exceptions."""


class ReplayError(Exception):
    """Base class for replay errors."""


class ReplayPersistenceError(ReplayError):
    """A synthetic record could not be written."""
