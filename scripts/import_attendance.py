"""
Import a biometric export from disk.

    python scripts/import_attendance.py export.txt --from 2025-11-01 --to 2025-11-15 --site 2
"""
import argparse
import sys
from datetime import date
from pathlib import Path

from workforce.core.logging import setup_logging
from workforce.database import init_db, session_scope
from workforce.services.attendance_import import AttendanceImportService


def main():
    parser = argparse.ArgumentParser(description="Import a biometric attendance export")
    parser.add_argument("path", type=Path)
    parser.add_argument("--from", dest="date_from", type=date.fromisoformat)
    parser.add_argument("--to", dest="date_to", type=date.fromisoformat)
    parser.add_argument("--site", type=int)
    args = parser.parse_args()

    setup_logging()
    init_db()
    with session_scope() as db:
        upload = AttendanceImportService(db).import_file(
            args.path.read_bytes(),
            date_from=args.date_from,
            date_to=args.date_to,
            site_id=args.site,
            filename=args.path.name,
        )
        print(f"Upload #{upload.id}: {upload.status}")
        if upload.error_message:
            print(f"  Error: {upload.error_message}")
            return 1
        print(f"  Records: {upload.processed_records}/{upload.total_records} processed, {upload.skipped_records} skipped")
        print(f"  Employees matched: {upload.matched_employees}")
        if upload.unmatched_names_list:
            print(f"  Unmatched names: {', '.join(upload.unmatched_names_list)}")
        return 0


if __name__ == "__main__":
    sys.exit(main())
