import json
import os
from pathlib import Path
import subprocess
import sys

from hookpack.results import iter_results

ROOT = Path(__file__).resolve().parents[1]


def _run_example(name: str, *args: str) -> subprocess.CompletedProcess[str]:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(
        part for part in (str(ROOT), env.get("PYTHONPATH", "")) if part
    )
    return subprocess.run(
        [sys.executable, str(ROOT / "examples" / "apps" / name), *args],
        capture_output=True,
        text=True,
        check=False,
        env=env,
    )


def test_global_setup_failure_is_recorded_at_process_exit(tmp_path: Path) -> None:
    out_dir = tmp_path / "results"

    result = _run_example("global_setup_failure_app.py", str(out_dir))

    assert result.returncode == 1
    assert "RuntimeError: database unavailable" in result.stderr
    records = list(iter_results(out_dir))
    assert len(records) == 1
    record = records[0]
    assert record.name == "Global fixture failure"
    assert record.status == "broken"
    assert record.history_id == "global-setup"
    assert record.status_details.message == "RuntimeError: database unavailable"
    assert record.labels["owner"] == "platform"
    assert [step.name for step in record.steps] == ["Seed fixtures", "Open database connection"]
    assert record.steps[1].status == "broken"
    console = record.attachments[0]
    assert "connecting to database" in (out_dir / console.source).read_text(encoding="utf-8")


def test_suite_run_app_attaches_setup_evidence_to_first_result(tmp_path: Path) -> None:
    out_dir = tmp_path / "results"

    result = _run_example("suite_run_app.py", str(out_dir))

    assert result.returncode == 0, result.stderr
    summary = json.loads(result.stdout.strip().splitlines()[-1])
    assert summary == [{"fixtures": 3, "name": "pays with card", "status": "passed"}]
    assert "hook-failed-after-results" in result.stderr
