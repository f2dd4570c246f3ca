import json
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version as package_version
from pathlib import Path
from typing import Any

import typer

from hookpack.core.models import ResultRecord, ResultStep, iter_steps
from hookpack.results import (
    ResultValidationError,
    iter_results,
    read_result,
    read_result_payload,
    result_files,
)

app = typer.Typer(help="hookpack CLI for inspecting persisted test results")


@dataclass(slots=True)
class _OutputOptions:
    quiet: bool = False
    no_color: bool = False
    stable_json: bool = True


_OUTPUT_OPTIONS = _OutputOptions()


def _resolve_cli_version() -> str:
    try:
        return package_version("hookkit")
    except PackageNotFoundError:
        from hookkit import __version__ as local_version

        return local_version


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(_resolve_cli_version(), color=False)
    raise typer.Exit()


@app.callback()
def app_options(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show hookpack version and exit.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        help="Suppress non-error text output.",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable ANSI color output.",
    ),
    stable_json: bool = typer.Option(
        True,
        "--stable-json/--pretty-json",
        help="Emit stable compact JSON (or pretty JSON).",
    ),
) -> None:
    """Global output controls for all CLI commands."""
    _OUTPUT_OPTIONS.quiet = quiet
    _OUTPUT_OPTIONS.no_color = no_color
    _OUTPUT_OPTIONS.stable_json = stable_json


def _echo(message: str, *, err: bool = False) -> None:
    if _OUTPUT_OPTIONS.quiet and not err:
        return
    typer.echo(message, err=err, color=not _OUTPUT_OPTIONS.no_color)


def _echo_json(payload: dict[str, Any]) -> None:
    if _OUTPUT_OPTIONS.stable_json:
        rendered = json.dumps(
            payload,
            ensure_ascii=True,
            sort_keys=True,
            separators=(",", ":"),
        )
    else:
        rendered = json.dumps(
            payload,
            ensure_ascii=True,
            sort_keys=True,
            indent=2,
        )
    typer.echo(rendered, color=not _OUTPUT_OPTIONS.no_color)


def _fail(message: str, *, json_output: bool, extra: dict[str, Any] | None = None) -> None:
    if json_output:
        _echo_json({"status": "error", "exit_code": 1, "message": message, **(extra or {})})
    else:
        _echo(message, err=True)


def _result_summary(record: ResultRecord) -> dict[str, Any]:
    steps = iter_steps(record.steps)
    attachments = len(record.attachments) + sum(len(step.attachments) for step in steps)
    return {
        "id": record.id,
        "name": record.name,
        "status": record.status,
        "start": record.start,
        "stop": record.stop,
        "steps": len(steps),
        "attachments": attachments,
        "fixtures": len(record.fixtures),
    }


def _render_step_lines(steps: list[ResultStep], depth: int) -> list[str]:
    lines: list[str] = []
    indent = "  " * depth
    for item in steps:
        lines.append(f"{indent}- [{item.status}] {item.name} ({item.stop - item.start}ms)")
        for attachment in item.attachments:
            lines.append(f"{indent}    @ {attachment.name} -> {attachment.source}")
        lines.extend(_render_step_lines(item.steps, depth + 1))
    return lines


def _missing_attachment_sources(record: ResultRecord, directory: Path) -> list[str]:
    attachments = list(record.attachments)
    for item in iter_steps(record.steps) + iter_steps(record.fixtures):
        attachments.extend(item.attachments)
    return sorted(
        attachment.source
        for attachment in attachments
        if not (directory / attachment.source).exists()
    )


@app.command(name="list")
def list_results(
    results_dir: Path = typer.Argument(..., help="Directory holding *-result.json files."),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable result summaries.",
    ),
) -> None:
    """List valid results ordered by start time."""
    if not results_dir.is_dir():
        _fail(f"list failed: not a directory: {results_dir}", json_output=json_output)
        raise typer.Exit(code=1)

    summaries = [_result_summary(record) for record in iter_results(results_dir)]
    if json_output:
        _echo_json(
            {
                "status": "ok",
                "exit_code": 0,
                "results_dir": str(results_dir),
                "count": len(summaries),
                "results": summaries,
            }
        )
        return

    if not summaries:
        _echo(f"no results in {results_dir}")
        return
    for summary in summaries:
        _echo(
            f"{summary['status']:<8} {summary['name']} "
            f"(steps={summary['steps']} attachments={summary['attachments']})"
        )


@app.command()
def show(
    result: Path = typer.Argument(..., help="Path to a *-result.json file."),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit the full result payload.",
    ),
) -> None:
    """Render one result with its fixtures and step tree."""
    try:
        record = read_result(result)
    except (ResultValidationError, FileNotFoundError) as error:
        _fail(f"show failed: {error}", json_output=json_output, extra={"result_path": str(result)})
        raise typer.Exit(code=1) from error

    if json_output:
        _echo_json({"status": "ok", "exit_code": 0, "result": record.to_dict()})
        return

    _echo(f"{record.name} [{record.status}]")
    for name, value in sorted(record.labels.items()):
        _echo(f"  label {name}={value}")
    if record.status_details.message:
        _echo(f"  message: {record.status_details.message}")
    if record.fixtures:
        _echo("fixtures:")
        for line in _render_step_lines(record.fixtures, 1):
            _echo(line)
    if record.steps:
        _echo("steps:")
        for line in _render_step_lines(record.steps, 1):
            _echo(line)
    for attachment in record.attachments:
        _echo(f"attachment: {attachment.name} -> {attachment.source} ({attachment.type})")


@app.command()
def validate(
    results_dir: Path = typer.Argument(..., help="Directory holding *-result.json files."),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable validation output.",
    ),
) -> None:
    """Schema-check every result file and its attachment references."""
    if not results_dir.is_dir():
        _fail(f"validate failed: not a directory: {results_dir}", json_output=json_output)
        raise typer.Exit(code=1)

    files: list[dict[str, Any]] = []
    for path in result_files(results_dir):
        entry: dict[str, Any] = {"path": path.name, "valid": True, "errors": []}
        try:
            record = ResultRecord.from_dict(read_result_payload(path))
        except ResultValidationError as error:
            entry["valid"] = False
            entry["errors"].append(str(error))
        else:
            for source in _missing_attachment_sources(record, results_dir):
                entry["valid"] = False
                entry["errors"].append(f"missing attachment file: {source}")
        files.append(entry)

    invalid = [entry for entry in files if not entry["valid"]]
    valid = not invalid
    if json_output:
        _echo_json(
            {
                "status": "ok" if valid else "error",
                "valid": valid,
                "exit_code": 0 if valid else 1,
                "results_dir": str(results_dir),
                "checked": len(files),
                "invalid": len(invalid),
                "files": files,
            }
        )
    else:
        for entry in invalid:
            for message in entry["errors"]:
                _echo(f"invalid {entry['path']}: {message}", err=True)
        if valid:
            _echo(f"validate passed: {len(files)} result file(s) in {results_dir}")
        else:
            _echo(f"validate failed: {len(invalid)} of {len(files)} result file(s) invalid", err=True)

    if not valid:
        raise typer.Exit(code=1)


def main() -> None:
    app()
