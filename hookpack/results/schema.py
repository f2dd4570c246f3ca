"""JSON schema and validation for persisted result files."""

from __future__ import annotations

from functools import lru_cache
import re
from typing import Any

from jsonschema import Draft202012Validator

from hookpack.core.models import RESULT_FORMAT_VERSION
from hookpack.core.types import RESULT_STATUSES
from hookpack.results.exceptions import ResultValidationError

SUPPORTED_MAJOR_VERSION = 1

_VERSION_PATTERN = re.compile(r"^(?P<major>\d+)\.(?P<minor>\d+)$")

_ATTACHMENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["name", "source", "type"],
    "additionalProperties": False,
    "properties": {
        "name": {"type": "string"},
        "source": {"type": "string", "minLength": 1},
        "type": {"type": "string"},
    },
}

_STATUS_DETAILS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "message": {"type": "string"},
        "trace": {"type": "string"},
    },
}

_RESULT_SCHEMA_V1: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "hookkit result",
    "type": "object",
    "required": [
        "format_version",
        "id",
        "history_id",
        "name",
        "status",
        "stage",
        "start",
        "stop",
        "status_details",
        "labels",
        "steps",
        "attachments",
        "fixtures",
    ],
    "additionalProperties": True,
    "$defs": {
        "attachment": _ATTACHMENT_SCHEMA,
        "status_details": _STATUS_DETAILS_SCHEMA,
        "step": {
            "type": "object",
            "required": ["name", "status", "start", "stop", "steps", "attachments"],
            "additionalProperties": False,
            "properties": {
                "name": {"type": "string"},
                "status": {"type": "string", "enum": list(RESULT_STATUSES)},
                "start": {"type": "integer"},
                "stop": {"type": "integer"},
                "steps": {"type": "array", "items": {"$ref": "#/$defs/step"}},
                "attachments": {"type": "array", "items": {"$ref": "#/$defs/attachment"}},
                "status_details": {"$ref": "#/$defs/status_details"},
            },
        },
    },
    "properties": {
        "format_version": {"type": "string", "pattern": r"^\d+\.\d+$"},
        "id": {"type": "string", "minLength": 1},
        "history_id": {"type": "string"},
        "name": {"type": "string"},
        "status": {"type": "string", "enum": list(RESULT_STATUSES)},
        "stage": {"type": "string"},
        "start": {"type": "integer"},
        "stop": {"type": "integer"},
        "status_details": {"$ref": "#/$defs/status_details"},
        "labels": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "value"],
                "additionalProperties": False,
                "properties": {
                    "name": {"type": "string"},
                    "value": {"type": "string"},
                },
            },
        },
        "steps": {"type": "array", "items": {"$ref": "#/$defs/step"}},
        "attachments": {"type": "array", "items": {"$ref": "#/$defs/attachment"}},
        "fixtures": {"type": "array", "items": {"$ref": "#/$defs/step"}},
    },
}


def parse_format_version(version: str) -> tuple[int, int]:
    """Parse major/minor result format version."""
    match = _VERSION_PATTERN.fullmatch(version.strip())
    if match is None:
        raise ResultValidationError(f"Invalid result format version: {version}")
    return int(match.group("major")), int(match.group("minor"))


@lru_cache(maxsize=4)
def load_result_schema(version: str = RESULT_FORMAT_VERSION) -> dict[str, Any]:
    major, _minor = parse_format_version(version)
    if major == SUPPORTED_MAJOR_VERSION:
        return _RESULT_SCHEMA_V1
    raise ResultValidationError(f"No schema for result format version: {version}")


def validate_result(payload: dict[str, Any]) -> None:
    """Validate result shape, timing and supported version contract."""
    version = str(payload.get("format_version", "")).strip()
    major, _minor = parse_format_version(version)
    if major != SUPPORTED_MAJOR_VERSION:
        raise ResultValidationError(
            "Unsupported result format major version: "
            f"{version}. Supported major: {SUPPORTED_MAJOR_VERSION}.x"
        )

    validator = Draft202012Validator(load_result_schema(version))
    errors = sorted(validator.iter_errors(payload), key=lambda err: list(err.path))
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.path) or "$"
        raise ResultValidationError(f"Invalid result at {location}: {first.message}")

    if payload["start"] > payload["stop"]:
        raise ResultValidationError(
            f"Invalid result timing: start {payload['start']} is after stop {payload['stop']}"
        )
