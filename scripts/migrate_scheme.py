from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from numscheme.core.config import settings
from numscheme.core.exceptions import PartialIssuanceError, SchemeMigrationError
from numscheme.services.scheme_migration import SchemeMigrationService
from numscheme.services.scheme_regeneration import RegenerationReport, SchemeRegenerationDriver
from numscheme.services.scheme_service_client import SchemeServiceClient


class TerminalConsole:
    def __init__(self, assume_yes: bool = False) -> None:
        self.assume_yes = assume_yes

    def choose(self, prompt: str, options: list[str]) -> str | None:
        print(prompt)
        for index, option in enumerate(options, start=1):
            print(f"  {index}. {option}")
        raw = input("Number (blank to cancel): ").strip()
        if not raw:
            return None
        try:
            return options[int(raw) - 1]
        except (ValueError, IndexError):
            print(f"Invalid selection: {raw}")
            return None

    def confirm(self, prompt: str) -> bool:
        if self.assume_yes:
            print(f"{prompt} [auto-confirmed]")
            return True
        return input(f"{prompt} [y/N] ").strip().lower() in {"y", "yes"}

    def acknowledge(self, prompt: str) -> None:
        if self.assume_yes:
            print(prompt)
            return
        input(f"{prompt} Press Enter to continue.")


def _print_report(report: RegenerationReport) -> None:
    print(f"\nScheme {report.scheme_id}: {report.total_issued} identifier(s) issued.")
    for outcome in report.completed:
        print(
            f"- {outcome.pattern.text!r}: {outcome.status} {outcome.issued}/{outcome.requested}"
            f" last={outcome.last_identifier or '-'}"
        )
    if report.failed is not None:
        failed = report.failed
        print(
            f"- {failed.pattern.text!r}: FAILED {failed.issued}/{failed.requested} ({failed.reason})"
        )
    print(f"\nSkipped patterns: {len(report.skipped)}")
    for outcome in report.skipped:
        print(f"- {outcome.pattern.text!r}: {outcome.reason}")


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Recreate a numbering scheme and replay its historical counter usage "
            "so new identifiers continue where the old scheme stopped."
        )
    )
    parser.add_argument("--scheme", help="Name of the scheme to migrate (prompted when omitted).")
    parser.add_argument(
        "--source-scheme-id",
        type=int,
        help=(
            "Read usage recorded under this scheme id instead of the selected scheme's id "
            "(resume after a run that recreated the scheme but did not replay it)."
        ),
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm both checkpoints without prompting.",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=settings.LOG_LEVEL if settings.LOG_LEVEL in LOG_LEVELS else "INFO",
        help="Logging level (default from LOG_LEVEL).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    print("Run this outside working hours: nobody else may use the scheme meanwhile.\n")
    with SchemeServiceClient() as registry:
        service = SchemeMigrationService(
            registry,
            SchemeRegenerationDriver(registry),
            TerminalConsole(assume_yes=args.yes),
        )
        try:
            report = service.migrate(args.scheme, source_scheme_id=args.source_scheme_id)
        except PartialIssuanceError as exc:
            print(f"\nFATAL: {exc}")
            if exc.report is not None:
                _print_report(exc.report)
            return 1
        except SchemeMigrationError as exc:
            print(f"\nFATAL [{exc.code}]: {exc}")
            return 1

    if report is None:
        print("\nNothing issued.")
        return 0
    _print_report(report)
    print("\nResult: " + ("PASS" if not report.skipped else "PASS WITH SKIPS"))
    return 1 if report.skipped else 0


if __name__ == "__main__":
    raise SystemExit(main())
