"""
Backfill missing leave credit months for one employee or everyone.

    python scripts/backfill_leave_credits.py             # all active employees
    python scripts/backfill_leave_credits.py --employee 12
"""
import argparse

from workforce.core.logging import setup_logging
from workforce.database import init_db, session_scope
from workforce.models.employee import Employee
from workforce.services.leave_credit_service import LeaveCreditService


def main():
    parser = argparse.ArgumentParser(description="Backfill leave credits from hire month to now")
    parser.add_argument("--employee", type=int, help="Only backfill this employee id")
    args = parser.parse_args()

    setup_logging()
    init_db()
    with session_scope() as db:
        service = LeaveCreditService(db)
        query = db.query(Employee).filter(Employee.is_active.is_(True), Employee.hired_date.isnot(None))
        if args.employee:
            query = query.filter(Employee.id == args.employee)

        total = 0
        for employee in query.order_by(Employee.id).all():
            created = service.backfill_credits(employee)
            total += created
            if created:
                print(f"{employee.full_name} (#{employee.id}): {created} month(s) created")
        print(f"Done. {total} ledger entries created.")


if __name__ == "__main__":
    main()
