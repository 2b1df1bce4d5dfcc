"""
Attendance Import Service

Turns one biometric export into AttendanceUpload, BiometricRecord and
Attendance rows.

Architecture:
- Router / CLI -> AttendanceImportService (this module)
- attendance_parser reads the file, name_matcher resolves device names
- resolve_shift_date() assigns each scan to a shift day, so the morning
  time-out of a night shift lands on the day the shift started
- aggregate() picks time-in/time-out per (employee, shift date) and is pure
- A failed import is recorded on the upload row and returned, never raised
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Sequence, Set, Tuple

from sqlalchemy.orm import Session

from workforce.core.clock import Clock
from workforce.core.config import settings
from workforce.core.exceptions import ImportParseError, NotFoundError, UnmatchedEmployeeWarning
from workforce.models.attendance import Attendance, AttendanceStatus
from workforce.models.attendance_upload import AttendanceUpload, UploadStatus
from workforce.models.biometric_record import BiometricRecord
from workforce.models.employee import Employee
from workforce.models.employee_schedule import EmployeeSchedule
from workforce.services.attendance_parser import (
    ScanRow,
    decode_export,
    filter_by_date_range,
    parse,
    summarize,
    validate_header,
)
from workforce.services.base import BaseService
from workforce.services.name_matcher import NameCandidate, NameIndex


@dataclass
class AttendanceDraft:
    """Computed attendance day, before it is written."""
    shift_date: date
    actual_time_in: datetime
    actual_time_out: Optional[datetime]
    status: AttendanceStatus
    scheduled_time_in: Optional[time] = None
    scheduled_time_out: Optional[time] = None
    notes: Optional[str] = None


@dataclass
class ImportResult:
    attendance_created: int = 0
    attendance_updated: int = 0
    verified_skipped: int = 0
    # Matched scans whose shift day falls outside the requested range
    out_of_range: int = 0
    shift_dates: Set[date] = field(default_factory=set)
    warnings: List[UnmatchedEmployeeWarning] = field(default_factory=list)


EARLY_TIME_IN_WINDOW = timedelta(minutes=60)


def is_next_day_shift(schedule: EmployeeSchedule) -> bool:
    return schedule.scheduled_time_out <= schedule.scheduled_time_in


def scheduled_out_at(schedule: EmployeeSchedule, shift_date: date) -> datetime:
    out_at = datetime.combine(shift_date, schedule.scheduled_time_out)
    if is_next_day_shift(schedule):
        out_at += timedelta(days=1)
    return out_at


def resolve_shift_date(scanned_at: datetime, schedule: Optional[EmployeeSchedule]) -> date:
    """
    Shift day a scan belongs to.

    Same-day shifts, and scans without a schedule, keep their calendar date.
    For a shift that ends the next day (22:00-07:00), a scan from the shift
    start minus ``EARLY_TIME_IN_WINDOW`` onwards opens today's shift and an
    earlier scan closes yesterday's. Shifts starting at 22:00 or later also
    treat any scan from 18:00 as an early time-in.
    """
    day = scanned_at.date()
    if schedule is None or not is_next_day_shift(schedule):
        return day

    shift_start = datetime.combine(day, schedule.scheduled_time_in)
    if scanned_at >= shift_start - EARLY_TIME_IN_WINDOW:
        return day
    if schedule.scheduled_time_in.hour >= 22 and scanned_at.hour >= 18:
        return day
    return day - timedelta(days=1)


def aggregate(
    scans: Sequence[datetime],
    schedule: Optional[EmployeeSchedule],
    shift_date: date,
) -> AttendanceDraft:
    """
    Collapse one day's scans into an attendance day.

    Time-in is the earliest scan. Time-out is chosen among later scans:
    with a schedule, the scan closest to the scheduled time-out (earlier scan
    wins a tie); without one, the latest scan.
    """
    if not scans:
        raise ValueError("aggregate() needs at least one scan")

    ordered = sorted(scans)
    time_in = ordered[0]
    later = [s for s in ordered if s > time_in]

    if schedule is None:
        return AttendanceDraft(
            shift_date=shift_date,
            actual_time_in=time_in,
            actual_time_out=later[-1] if later else None,
            status=AttendanceStatus.NEEDS_MANUAL_REVIEW,
            notes="No schedule on record",
        )

    out_at = scheduled_out_at(schedule, shift_date)
    time_out = min(later, key=lambda s: (abs(s - out_at), s)) if later else None

    draft = AttendanceDraft(
        shift_date=shift_date,
        actual_time_in=time_in,
        actual_time_out=time_out,
        status=AttendanceStatus.ON_TIME,
        scheduled_time_in=schedule.scheduled_time_in,
        scheduled_time_out=schedule.scheduled_time_out,
    )

    if not schedule.works_on(shift_date):
        draft.status = AttendanceStatus.NEEDS_MANUAL_REVIEW
        draft.notes = "Scans on a non-scheduled work day"
        return draft

    grace = schedule.grace_period_minutes
    if grace is None:
        grace = settings.attendance.default_grace_period_minutes
    in_deadline = datetime.combine(shift_date, schedule.scheduled_time_in) + timedelta(minutes=grace)

    if time_out is None:
        draft.status = AttendanceStatus.FAILED_BIO_OUT
    elif time_in > in_deadline:
        draft.status = AttendanceStatus.TARDY
    elif time_out < out_at:
        draft.status = AttendanceStatus.UNDERTIME
    return draft


class AttendanceImportService(BaseService):

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)

    aggregate = staticmethod(aggregate)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_upload(self, upload_id: int) -> AttendanceUpload:
        upload = self.db.get(AttendanceUpload, upload_id)
        if not upload:
            raise NotFoundError(f"Attendance upload {upload_id} not found")
        return upload

    def list_attendance(
        self,
        employee_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[Attendance]:
        query = self.db.query(Attendance)
        if employee_id is not None:
            query = query.filter(Attendance.employee_id == employee_id)
        if date_from is not None:
            query = query.filter(Attendance.shift_date >= date_from)
        if date_to is not None:
            query = query.filter(Attendance.shift_date <= date_to)
        return query.order_by(Attendance.shift_date, Attendance.employee_id).all()

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def import_file(
        self,
        file_bytes: bytes,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        site_id: Optional[int] = None,
        filename: Optional[str] = None,
    ) -> AttendanceUpload:
        """
        Import one export end to end and return its upload row.

        Parse errors and unexpected failures roll back the partial work and
        leave the upload ``failed`` with ``error_message`` set.
        """
        upload = AttendanceUpload(
            original_filename=filename,
            site_id=site_id,
            date_from=date_from,
            date_to=date_to,
            status=UploadStatus.PROCESSING.value,
        )
        self.db.add(upload)
        self.commit()
        self.db.refresh(upload)

        try:
            contents = decode_export(file_bytes)
            validate_header(contents)
            rows = parse(contents)
            # One extra day so night shifts ending after date_to keep their time-out
            lookahead_to = date_to + timedelta(days=1) if date_to else None
            within, outside = filter_by_date_range(rows, date_from, lookahead_to)

            result = self._process(upload, within)
            unmatched_rows = sum(w.scan_count for w in result.warnings)
            skipped_rows = unmatched_rows + result.out_of_range
            stats = summarize(rows)

            upload.total_records = stats["total_records"]
            upload.processed_records = len(within) - skipped_rows
            upload.skipped_records = len(outside) + skipped_rows
            upload.unmatched_names = len(result.warnings)
            upload.unmatched_names_list = sorted(w.raw_name for w in result.warnings)
            upload.dates_found = sorted(d.isoformat() for d in result.shift_dates)
            upload.first_scan_at = stats["date_range"]["start"]
            upload.last_scan_at = stats["date_range"]["end"]
            upload.status = UploadStatus.COMPLETED.value
            self.db.commit()
        except ImportParseError as e:
            self.db.rollback()
            self._mark_failed(upload, e.message)
            self.log_warning(f"Attendance upload {upload.id} rejected: {e.message}", upload_id=upload.id)
            return upload
        except Exception as e:
            self.db.rollback()
            self._mark_failed(upload, f"Import failed: {e}")
            self.log_error(f"Attendance upload {upload.id} failed: {e}", exc_info=True, upload_id=upload.id)
            return upload

        self.db.refresh(upload)
        self.log_info(
            f"Attendance upload {upload.id} completed: {upload.processed_records}/{upload.total_records} records, "
            f"{result.attendance_created} created, {result.attendance_updated} updated, "
            f"{result.verified_skipped} verified skipped, {upload.unmatched_names} unmatched names",
            upload_id=upload.id,
        )
        return upload

    def _mark_failed(self, upload: AttendanceUpload, message: str) -> None:
        upload.status = UploadStatus.FAILED.value
        upload.error_message = message
        self.commit()
        self.db.refresh(upload)

    def _process(self, upload: AttendanceUpload, rows: List[ScanRow]) -> ImportResult:
        result = ImportResult()
        if not rows:
            upload.matched_employees = 0
            return result

        employees = self.db.query(Employee).filter(Employee.is_active.is_(True)).order_by(Employee.id).all()
        index = NameIndex.from_candidates(NameCandidate.from_employee(e) for e in employees)
        schedules = self._schedules_by_employee()
        schedule_hours = {
            employee_id: items[0].scheduled_time_in.hour for employee_id, items in schedules.items()
        }

        by_name: Dict[str, List[ScanRow]] = defaultdict(list)
        for row in rows:
            by_name[row.normalized_name].append(row)

        buckets: Dict[Tuple[int, date], List[datetime]] = defaultdict(list)
        for name_rows in by_name.values():
            earliest = min(r.scanned_at for r in name_rows)
            match = index.match(name_rows[0].name, earliest.hour, schedule_hours)
            if not match.matched:
                result.warnings.append(UnmatchedEmployeeWarning(name_rows[0].name, len(name_rows)))
                continue

            employee_schedules = schedules.get(match.employee_id, [])
            for row in name_rows:
                shift_date = self._shift_date(employee_schedules, row.scanned_at)
                if (upload.date_from and shift_date < upload.date_from) or (
                    upload.date_to and shift_date > upload.date_to
                ):
                    result.out_of_range += 1
                    continue

                self.db.add(BiometricRecord(
                    employee_id=match.employee_id,
                    upload_id=upload.id,
                    site_id=upload.site_id,
                    device_no=row.dev_no,
                    employee_name=row.name,
                    scan_datetime=row.scanned_at,
                ))
                buckets[(match.employee_id, shift_date)].append(row.scanned_at)

        for (employee_id, shift_date), scans in sorted(buckets.items()):
            schedule = self._schedule_for(schedules.get(employee_id, []), shift_date)
            self._upsert(employee_id, aggregate(scans, schedule, shift_date), upload.site_id, result)
            result.shift_dates.add(shift_date)

        for warning in result.warnings:
            self.log_warning(str(warning), upload_id=upload.id, scan_count=warning.scan_count)

        upload.matched_employees = len({employee_id for employee_id, _ in buckets})
        self.db.flush()
        return result

    def _schedules_by_employee(self) -> Dict[int, List[EmployeeSchedule]]:
        schedules = self.db.query(EmployeeSchedule).filter(
            EmployeeSchedule.is_active.is_(True)
        ).order_by(EmployeeSchedule.effective_date.desc()).all()
        grouped: Dict[int, List[EmployeeSchedule]] = defaultdict(list)
        for schedule in schedules:
            grouped[schedule.employee_id].append(schedule)
        return grouped

    @staticmethod
    def _schedule_for(schedules: List[EmployeeSchedule], shift_date: date) -> Optional[EmployeeSchedule]:
        # Newest effective schedule that covers the day
        for schedule in schedules:
            if schedule.covers(shift_date):
                return schedule
        return None

    @classmethod
    def _shift_date(cls, schedules: List[EmployeeSchedule], scanned_at: datetime) -> date:
        # A morning time-out may fall under yesterday's schedule
        day = scanned_at.date()
        schedule = cls._schedule_for(schedules, day) or cls._schedule_for(schedules, day - timedelta(days=1))
        return resolve_shift_date(scanned_at, schedule)

    def _upsert(self, employee_id: int, draft: AttendanceDraft, site_id: Optional[int], result: ImportResult) -> None:
        attendance = self.db.query(Attendance).filter(
            Attendance.employee_id == employee_id,
            Attendance.shift_date == draft.shift_date,
        ).first()

        if attendance and attendance.admin_verified:
            result.verified_skipped += 1
            return

        if attendance is None:
            attendance = Attendance(employee_id=employee_id, shift_date=draft.shift_date)
            self.db.add(attendance)
            result.attendance_created += 1
        else:
            result.attendance_updated += 1

        attendance.scheduled_time_in = draft.scheduled_time_in
        attendance.scheduled_time_out = draft.scheduled_time_out
        attendance.actual_time_in = draft.actual_time_in
        attendance.actual_time_out = draft.actual_time_out
        attendance.status = draft.status.value
        attendance.notes = draft.notes
        attendance.bio_in_site_id = site_id
        attendance.bio_out_site_id = site_id if draft.actual_time_out else None
        self.db.flush()
