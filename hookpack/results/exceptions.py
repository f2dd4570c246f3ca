"""Result persistence exceptions."""


class ResultError(Exception):
    """Base class for result persistence errors."""


class ResultValidationError(ResultError):
    """Result file failed schema or version validation."""


class AttachmentEncodingError(ResultError):
    """Attachment content could not be decoded from its transport encoding."""
