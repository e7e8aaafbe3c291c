"""CLI entry point for scanning installment plans for due and overdue installments.

Prints one JSON alert per line on stdout; log lines go to stderr and the log file.

Usage:
    python -m src.cli.scan_dues
    python -m src.cli.scan_dues --as-of 2024-03-01

Exit Codes:
    0 - Success: alerts printed (possibly none)
    1 - Failure: error encountered; see logs/ledger.log
"""

import argparse
import logging
import sys
from datetime import date

from dotenv import load_dotenv

from src.services import SessionLocal
from src.services.due_date_scanner import scanner_from_config
from src.services.logging import setup_server_logging
from src.services.membership_store import MembershipRecordStore

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Emit installment due/overdue alerts")
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="Evaluation date in YYYY-MM-DD (default: today)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """
    Scan every stored plan and print alerts.

    Returns:
        Exit code: 0 for success, 1 for failure
    """
    load_dotenv()
    args = parse_args(argv)
    # stdout carries the JSON alerts only
    setup_server_logging(stream=sys.stderr)
    as_of = args.as_of or date.today()

    try:
        db = SessionLocal()
        try:
            alerts = scanner_from_config().scan_store(MembershipRecordStore(db), as_of)
        finally:
            db.close()
    except KeyboardInterrupt:
        logger.warning("Scan interrupted by user")
        return 1
    except Exception as e:
        logger.error("Scan failed: %s", e, exc_info=True)
        return 1

    for alert in alerts:
        sys.stdout.write(alert.model_dump_json() + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
