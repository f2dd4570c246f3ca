"""Global setup that dies before any test starts; the exit fallback records it."""

from __future__ import annotations

from pathlib import Path
import sys

from hookkit import ReporterConfig, attach, install_reporter, label, step


def connect_database() -> None:
    raise RuntimeError("database unavailable")


def main(output_dir: Path) -> None:
    install_reporter(ReporterConfig(output_dir=output_dir))

    label("owner", "platform")
    with step("Seed fixtures"):
        attach("seed.json", '{"users": 3}', content_type="application/json")
    print("connecting to database on port 5432")

    with step("Open database connection"):
        connect_database()


if __name__ == "__main__":
    main(Path(sys.argv[1]) if len(sys.argv) > 1 else Path("hookpack-results"))
