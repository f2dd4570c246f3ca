"""Synchronous read/write utilities for result and attachment files.

Writes only use blocking file I/O so the writer stays usable from an
interpreter exit handler.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterator
import json
import mimetypes
from pathlib import Path
from typing import Any

from hookpack.core.models import ResultRecord
from hookpack.results.exceptions import AttachmentEncodingError, ResultValidationError
from hookpack.results.schema import validate_result

RESULT_FILE_SUFFIX = "-result.json"

_CONTENT_TYPE_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "text/plain": ".txt",
    "text/html": ".html",
    "application/json": ".json",
}


def extension_for_content_type(content_type: str | None) -> str:
    normalized = (content_type or "").split(";", 1)[0].strip().lower()
    if normalized in _CONTENT_TYPE_EXTENSIONS:
        return _CONTENT_TYPE_EXTENSIONS[normalized]
    guessed = mimetypes.guess_extension(normalized) if normalized else None
    return guessed or ".bin"


def attachment_source_name(record_id: str, index: int, content_type: str | None) -> str:
    return f"{record_id}-attachment-{index}{extension_for_content_type(content_type)}"


def decode_attachment_content(content: Any, encoding: str | None = "base64") -> bytes:
    """Decode attachment content from its transport encoding."""
    if isinstance(content, (bytes, bytearray, memoryview)):
        return bytes(content)
    if not isinstance(content, str):
        raise AttachmentEncodingError(
            f"Attachment content must be str or bytes, got {type(content).__name__}"
        )
    normalized = (encoding or "base64").strip().lower().replace("_", "-")
    if normalized == "base64":
        try:
            return base64.b64decode(content, validate=True)
        except (binascii.Error, ValueError) as error:
            raise AttachmentEncodingError(f"Invalid base64 attachment content: {error}") from error
    if normalized in {"utf-8", "utf8"}:
        return content.encode("utf-8")
    raise AttachmentEncodingError(f"Unsupported attachment encoding: {encoding}")


def encode_attachment_content(content: str | bytes) -> str:
    raw = content.encode("utf-8") if isinstance(content, str) else bytes(content)
    return base64.b64encode(raw).decode("ascii")


class ResultWriter:
    """Low-level persistence primitive for results and attachment files."""

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)

    def result_path(self, record_id: str) -> Path:
        return self.output_dir / f"{record_id}{RESULT_FILE_SUFFIX}"

    def write_attachment(self, source: str, content: bytes) -> Path:
        target = self.output_dir / source
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return target

    def remove_attachment(self, source: str) -> None:
        (self.output_dir / source).unlink(missing_ok=True)

    def write_result(self, record: ResultRecord) -> Path:
        payload = record.to_dict()
        validate_result(payload)
        target = self.result_path(record.id)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            json.dumps(payload, indent=2, ensure_ascii=True, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return target


def read_result_payload(path: str | Path) -> dict[str, Any]:
    """Read and validate a result file payload."""
    target = Path(path)
    try:
        raw_text = target.read_text(encoding="utf-8")
    except UnicodeDecodeError as error:
        raise ResultValidationError(f"Result is not valid UTF-8 text: {target}") from error

    try:
        payload = json.loads(raw_text)
    except json.JSONDecodeError as error:
        raise ResultValidationError(f"Result is not valid JSON: {target} ({error})") from error

    if not isinstance(payload, dict):
        raise ResultValidationError(f"Result must be a JSON object: {target}")
    validate_result(payload)
    return payload


def read_result(path: str | Path) -> ResultRecord:
    return ResultRecord.from_dict(read_result_payload(path))


def result_files(directory: str | Path) -> list[Path]:
    return sorted(Path(directory).glob(f"*{RESULT_FILE_SUFFIX}"))


def iter_results(directory: str | Path) -> Iterator[ResultRecord]:
    """Yield every valid result in ``directory`` ordered by start time.

    Files that fail validation are skipped; use ``read_result`` to see why.
    """
    records: list[ResultRecord] = []
    for path in result_files(directory):
        try:
            records.append(read_result(path))
        except ResultValidationError:
            continue
    records.sort(key=lambda record: (record.start, record.name))
    yield from records
