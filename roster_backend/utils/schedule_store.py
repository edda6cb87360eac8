import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from roster_backend.exceptions import ScheduleValidationError
from roster_backend.extensions import db
from roster_backend.models import AttendanceEntry, AttendanceStatus, ScheduleRecord, TimeSlot
from roster_backend.utils.parsing import month_bounds

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = ('instructor_id', 'attendance_taken')


@dataclass
class BatchResult:
    written: int = 0
    failed: List[int] = field(default_factory=list)

    @property
    def complete(self):
        return not self.failed


class ScheduleStore:
    """Persistence for per-slot schedule records and their attendance entries.

    Uniqueness of (class_date, time_slot) is enforced by the
    uq_schedule_records_date_slot constraint; ensure() relies on it rather
    than on its own lookup.
    """

    def __init__(self, session=None):
        self.session = session or db.session

    def find(self, class_date: date, time_slot: TimeSlot) -> Optional[ScheduleRecord]:
        return self.session.query(ScheduleRecord).filter_by(class_date=class_date, time_slot=time_slot).first()

    def get(self, record_id) -> Optional[ScheduleRecord]:
        return self.session.get(ScheduleRecord, record_id)

    def list_between(self, start: date, end: date) -> List[ScheduleRecord]:
        return (
            self.session.query(ScheduleRecord)
            .filter(ScheduleRecord.class_date >= start, ScheduleRecord.class_date <= end)
            .order_by(ScheduleRecord.class_date, ScheduleRecord.id)
            .all()
        )

    def list_month(self, year: int, month: int) -> List[ScheduleRecord]:
        first_day, last_day = month_bounds(year, month)
        return self.list_between(first_day, last_day)

    def ensure(self, class_date: date, time_slot: TimeSlot, name=None, instructor_id=None) -> Tuple[ScheduleRecord, bool]:
        """Return the record for the slot, creating it with the defaults if absent.

        Returns (record, created). A concurrent creator that wins the unique
        constraint is read back instead of raising.
        """
        record = self.find(class_date, time_slot)
        if record:
            return (record, False)
        record = ScheduleRecord(
            class_date=class_date,
            time_slot=time_slot,
            name=name or time_slot.label,
            instructor_id=instructor_id,
            attendance_taken=False,
        )
        try:
            self.session.add(record)
            self.session.commit()
            logger.debug('Created schedule record %s for %s %s', record.id, class_date, time_slot.value)
            return (record, True)
        except IntegrityError:
            self.session.rollback()
            existing = self.find(class_date, time_slot)
            if existing is None:
                raise
            logger.info('Schedule record for %s %s already created by another request', class_date, time_slot.value)
            return (existing, False)

    def update(self, record: ScheduleRecord, **fields) -> bool:
        """Apply a partial update; returns True when something was written."""
        unknown = set(fields) - set(MUTABLE_FIELDS)
        if unknown:
            raise ScheduleValidationError(f'Fields cannot be updated: {", ".join(sorted(unknown))}')
        changed = False
        for key, value in fields.items():
            if key == 'attendance_taken':
                value = bool(value)
            if getattr(record, key) != value:
                setattr(record, key, value)
                changed = True
        if not changed:
            return False
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        logger.debug('Updated schedule record %s: %s', record.id, fields)
        return True

    def attendance_for(self, record: Optional[ScheduleRecord]) -> Dict[int, AttendanceEntry]:
        if record is None or record.id is None:
            return {}
        entries = self.session.query(AttendanceEntry).filter_by(schedule_record_id=record.id).all()
        return {entry.student_id: entry for entry in entries}

    def write_attendance(self, record: ScheduleRecord, statuses: Dict[int, AttendanceStatus]) -> BatchResult:
        """Make the stored entries of a record equal to `statuses`.

        Only rows whose status changes are written; entries for students not
        in `statuses` are removed. Each row commits on its own so a failing
        student does not undo the others.
        """
        result = BatchResult()
        stored = self.attendance_for(record)
        for student_id, status in statuses.items():
            entry = stored.get(student_id)
            if entry is not None and entry.status == status:
                continue
            try:
                if entry is None:
                    self.session.add(AttendanceEntry(schedule_record_id=record.id, student_id=student_id, status=status))
                else:
                    entry.status = status
                self.session.commit()
                result.written += 1
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.warning('Failed to store attendance for student %s on record %s: %s', student_id, record.id, exc)
                result.failed.append(student_id)
        for student_id, entry in stored.items():
            if student_id in statuses:
                continue
            try:
                self.session.delete(entry)
                self.session.commit()
                result.written += 1
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.warning('Failed to drop stale attendance for student %s on record %s: %s', student_id, record.id, exc)
                result.failed.append(student_id)
        return result
