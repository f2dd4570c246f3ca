"""Drives a reporter through a small simulated run and prints what was written."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
import sys

from hookkit import HookInfo, ReporterConfig, attach, install_reporter, read_results, step


async def run(output_dir: Path) -> list[dict[str, object]]:
    reporter = install_reporter(
        ReporterConfig(output_dir=output_dir, register_exit_handler=False),
    )
    try:
        reporter.on_runner_start()
        with step("Start mock server"):
            print("mock server listening")

        root = {"title": ""}
        checkout = {"title": "Checkout"}
        await reporter.on_suite_start(root)
        await reporter.on_suite_start(checkout)

        login = HookInfo(title='"before all" hook for Checkout')
        reporter.on_hook_start(login)
        with step("Log in"):
            attach("session.txt", "token=abc")
        await reporter.on_hook_end(login)

        test = {"title": "pays with card"}
        reporter.on_test_start(test)
        with step("Submit payment"):
            pass
        test["state"] = "passed"
        reporter.on_test_end(test)

        reporter.on_suite_end(checkout)

        billing = {"title": "Billing"}
        await reporter.on_suite_start(billing)
        invoices = HookInfo(title='"before all" hook for Billing')
        reporter.on_hook_start(invoices)
        with step("Load invoices"):
            pass
        invoices.error = RuntimeError("invoice service down")
        await reporter.on_hook_end(invoices)
        reporter.on_suite_end(billing)

        reporter.on_suite_end(root)
        await reporter.on_runner_end()
    finally:
        reporter.close()

    return [
        {"name": record.name, "status": record.status, "fixtures": len(record.fixtures)}
        for record in read_results(output_dir)
    ]


def main() -> None:
    output_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("hookpack-results")
    summary = asyncio.run(run(output_dir))
    sys.stdout.write(json.dumps(summary, sort_keys=True) + "\n")


if __name__ == "__main__":
    main()
