"""
Monthly leave credit accrual.

Run once per month after month-end (cron / scheduler):

    python scripts/accrue_leave_credits.py            # last completed month
    python scripts/accrue_leave_credits.py 2025 11    # explicit month
"""
import argparse
import sys

from workforce.core.logging import setup_logging
from workforce.database import init_db, session_scope
from workforce.services.leave_credit_service import LeaveCreditService


def main():
    parser = argparse.ArgumentParser(description="Accrue one month of leave credits for all active employees")
    parser.add_argument("year", type=int, nargs="?")
    parser.add_argument("month", type=int, nargs="?")
    args = parser.parse_args()

    setup_logging()
    init_db()
    with session_scope() as db:
        summary = LeaveCreditService(db).accrue_monthly_for_all(args.year, args.month)

    print(f"Accrual {summary.year}-{summary.month:02d}: {summary.accrued} accrued, {summary.skipped} skipped")
    for error in summary.errors:
        print(f"  ! employee {error['employee_id']}: {error['error']}")
    return 1 if summary.errors else 0


if __name__ == "__main__":
    sys.exit(main())
