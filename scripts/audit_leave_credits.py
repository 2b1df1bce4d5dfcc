"""
Report leave credit ledger rows whose figures do not add up.

    python scripts/audit_leave_credits.py 2025
"""
import argparse
import sys

from workforce.database import init_db, session_scope
from workforce.models.employee import Employee
from workforce.services.leave_credit_service import LeaveCreditService


def main():
    parser = argparse.ArgumentParser(description="Audit leave credit ledgers for one year")
    parser.add_argument("year", type=int)
    args = parser.parse_args()

    init_db()
    found = 0
    with session_scope() as db:
        service = LeaveCreditService(db)
        for employee in db.query(Employee).order_by(Employee.id).all():
            for issue in service.audit_ledger(employee, args.year):
                found += 1
                print(
                    f"#{employee.id} {employee.full_name} {args.year}-{issue['month']:02d}: "
                    f"{', '.join(issue['problems'])} "
                    f"(earned={issue['earned']} used={issue['used']} balance={issue['balance']})"
                )

    print(f"{found} problem row(s) found." if found else "Ledger is consistent.")
    return 1 if found else 0


if __name__ == "__main__":
    sys.exit(main())
