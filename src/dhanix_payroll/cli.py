"""Payroll Command Line Interface.

Provides operational tools for:
- Schema creation
- Attendance import from CSV
- PF ECR and ESI report export
- Processing and locking runs

Usage:
    python -m dhanix_payroll.cli init-db
    python -m dhanix_payroll.cli import-attendance --run-id X attendance.csv
    python -m dhanix_payroll.cli export-pf-ecr --run-id X --output pf.csv
    python -m dhanix_payroll.cli export-esi --run-id X
    python -m dhanix_payroll.cli process --run-id X
    python -m dhanix_payroll.cli lock --run-id X
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable
from uuid import UUID

from dhanix_payroll.config import configure_logging
from dhanix_payroll.database import create_schema, dispose_db, get_session
from dhanix_payroll.errors import PayrollError
from dhanix_payroll.services.attendance_import import (
    AttendanceImportService,
    parse_attendance_csv,
)
from dhanix_payroll.services.payroll_run_service import PayrollRunService
from dhanix_payroll.services.report_service import StatutoryReportService


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


async def _run_and_dispose(coro: Awaitable[Any]) -> Any:
    try:
        return await coro
    finally:
        await dispose_db()


class PayrollCli:
    """Payroll Command Line Interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m dhanix_payroll.cli",
            description="Payroll operational tools",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # init-db command
        subparsers.add_parser(
            "init-db",
            help="Create all tables in the configured database",
        )

        # import-attendance command
        attendance = subparsers.add_parser(
            "import-attendance",
            help="Apply an attendance CSV to a DRAFT run",
        )
        attendance.add_argument(
            "--run-id",
            type=parse_uuid,
            required=True,
            help="Payroll run ID",
        )
        attendance.add_argument(
            "file",
            type=Path,
            help="CSV file with a header row",
        )

        # export-pf-ecr / export-esi commands
        for name, help_text in (
            ("export-pf-ecr", "Export the PF ECR file of a finalized run"),
            ("export-esi", "Export the ESI contribution file of a finalized run"),
        ):
            export = subparsers.add_parser(name, help=help_text)
            export.add_argument(
                "--run-id",
                type=parse_uuid,
                required=True,
                help="Payroll run ID",
            )
            export.add_argument(
                "--output",
                type=Path,
                help="Output file path (default: stdout)",
            )

        # process / lock commands
        for name, help_text in (
            ("process", "Calculate every item and mark the run COMPLETED"),
            ("lock", "Lock a COMPLETED run"),
        ):
            command = subparsers.add_parser(name, help=help_text)
            command.add_argument(
                "--run-id",
                type=parse_uuid,
                required=True,
                help="Payroll run ID",
            )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging()

        # Dispatch to command handler
        handlers: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "import-attendance": self._cmd_import_attendance,
            "export-pf-ecr": self._cmd_export_pf_ecr,
            "export-esi": self._cmd_export_esi,
            "process": self._cmd_process,
            "lock": self._cmd_lock,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return asyncio.run(_run_and_dispose(handler(parsed)))
        except PayrollError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create the schema."""
        await create_schema()
        print("Schema created.")
        return 0

    async def _cmd_import_attendance(self, args: argparse.Namespace) -> int:
        """Apply attendance rows from a CSV file."""
        try:
            text = args.file.read_text(encoding="utf-8-sig")
        except OSError as e:
            print(f"ERROR: cannot read {args.file}: {e}", file=sys.stderr)
            return 1

        rows = parse_attendance_csv(text)
        async with get_session() as session:
            result = await AttendanceImportService(session).import_attendance(args.run_id, rows)

        print(f"Attendance import for run {args.run_id}")
        print(f"  Matched: {result.matched}")
        print(f"  Skipped: {result.skipped}")
        print(f"  Errors:  {result.errors}")
        for error in result.error_rows:
            print(f"    - {error.error}: {error.row}")
        return 0

    async def _cmd_export_pf_ecr(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            content = await StatutoryReportService(session).pf_ecr_csv(args.run_id)
        return self._write_output(content, args.output)

    async def _cmd_export_esi(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            content = await StatutoryReportService(session).esi_csv(args.run_id)
        return self._write_output(content, args.output)

    async def _cmd_process(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            run = await PayrollRunService(session).process_run(args.run_id)
            status = run.status
        print(f"Payroll run {args.run_id} is {status}")
        return 0

    async def _cmd_lock(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            run = await PayrollRunService(session).lock_run(args.run_id)
            status = run.status
        print(f"Payroll run {args.run_id} is {status}")
        return 0

    @staticmethod
    def _write_output(content: str, output: Path | None) -> int:
        if output is None:
            sys.stdout.write(content)
            return 0
        output.write_text(content, encoding="utf-8", newline="")
        print(f"Wrote {output}", file=sys.stderr)
        return 0


def main() -> int:
    """CLI entry point."""
    cli = PayrollCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
