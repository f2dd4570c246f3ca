"""Persisted result format for hookpack."""

from hookpack.results.exceptions import (
    AttachmentEncodingError,
    ResultError,
    ResultValidationError,
)
from hookpack.results.io import (
    RESULT_FILE_SUFFIX,
    ResultWriter,
    attachment_source_name,
    decode_attachment_content,
    encode_attachment_content,
    extension_for_content_type,
    iter_results,
    read_result,
    read_result_payload,
    result_files,
)
from hookpack.results.schema import (
    SUPPORTED_MAJOR_VERSION,
    load_result_schema,
    parse_format_version,
    validate_result,
)

__all__ = [
    "ResultError",
    "ResultValidationError",
    "AttachmentEncodingError",
    "RESULT_FILE_SUFFIX",
    "ResultWriter",
    "attachment_source_name",
    "decode_attachment_content",
    "encode_attachment_content",
    "extension_for_content_type",
    "iter_results",
    "read_result",
    "read_result_payload",
    "result_files",
    "SUPPORTED_MAJOR_VERSION",
    "load_result_schema",
    "parse_format_version",
    "validate_result",
]
