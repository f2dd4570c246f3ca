import json
from pathlib import Path

import pytest

from hookpack.core.models import ResultRecord, ResultStep, StatusDetails
from hookpack.results import (
    AttachmentEncodingError,
    ResultValidationError,
    ResultWriter,
    decode_attachment_content,
    extension_for_content_type,
    iter_results,
    read_result,
    validate_result,
)


def _record(record_id: str, *, start: int, name: str = "result") -> ResultRecord:
    return ResultRecord(
        id=record_id,
        name=name,
        status="passed",
        start=start,
        stop=start + 10,
        labels={"suite": "Checkout"},
        steps=[ResultStep(name="step", start=start, stop=start + 5)],
    )


def test_writer_persists_sorted_json_that_reads_back(tmp_path: Path) -> None:
    writer = ResultWriter(tmp_path / "out")
    record = _record("abc", start=100)
    record.status_details = StatusDetails(message="ok")

    path = writer.write_result(record)

    raw = path.read_text(encoding="utf-8")
    assert path.name == "abc-result.json"
    assert raw.endswith("\n")
    payload = json.loads(raw)
    assert payload["format_version"] == "1.0"
    assert payload["history_id"] == "abc"
    assert payload["labels"] == [{"name": "suite", "value": "Checkout"}]
    assert read_result(path).to_dict() == payload


def test_iter_results_orders_by_start_and_skips_invalid_files(tmp_path: Path) -> None:
    writer = ResultWriter(tmp_path)
    writer.write_result(_record("late", start=300, name="late"))
    writer.write_result(_record("early", start=100, name="early"))
    (tmp_path / "broken-result.json").write_text("{not json", encoding="utf-8")

    names = [record.name for record in iter_results(tmp_path)]

    assert names == ["early", "late"]


def test_validate_result_rejects_unknown_status() -> None:
    payload = _record("x", start=1).to_dict()
    payload["status"] = "exploded"

    with pytest.raises(ResultValidationError, match="status"):
        validate_result(payload)


def test_validate_result_rejects_inverted_timing() -> None:
    payload = _record("x", start=1).to_dict()
    payload["stop"] = 0

    with pytest.raises(ResultValidationError, match="timing"):
        validate_result(payload)


def test_validate_result_rejects_unsupported_major_version() -> None:
    payload = _record("x", start=1).to_dict()
    payload["format_version"] = "2.0"

    with pytest.raises(ResultValidationError, match="major version"):
        validate_result(payload)


def test_read_result_reports_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "bad-result.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ResultValidationError, match="JSON object"):
        read_result(path)


def test_extension_for_content_type_covers_known_and_unknown_types() -> None:
    assert extension_for_content_type("image/png") == ".png"
    assert extension_for_content_type("text/plain; charset=utf-8") == ".txt"
    assert extension_for_content_type("application/json") == ".json"
    assert extension_for_content_type("application/x-hookpack-unknown") == ".bin"
    assert extension_for_content_type(None) == ".bin"


def test_decode_attachment_content_supports_base64_and_utf8() -> None:
    assert decode_attachment_content("aGVsbG8=", "base64") == b"hello"
    assert decode_attachment_content("hello", "utf-8") == b"hello"
    assert decode_attachment_content(b"raw", "base64") == b"raw"

    with pytest.raises(AttachmentEncodingError):
        decode_attachment_content("hello", "rot13")
    with pytest.raises(AttachmentEncodingError):
        decode_attachment_content(None, "base64")
