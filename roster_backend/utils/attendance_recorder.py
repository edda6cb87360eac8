import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from roster_backend.exceptions import UpstreamUnavailableError
from roster_backend.models import AttendanceStatus, ScheduleRecord, TimeSlot
from roster_backend.utils.roster_resolver import RosterSnapshot
from roster_backend.utils.schedule_store import ScheduleStore

logger = logging.getLogger(__name__)

# Students left unmarked when attendance is saved are recorded as present.
DEFAULT_STATUS_ON_SAVE = AttendanceStatus.PRESENT


@dataclass
class SheetRow:
    student_id: int
    student_name: str
    is_trial: bool
    status: Optional[AttendanceStatus] = None

    def to_dict(self):
        return {
            'student_id': self.student_id,
            'student_name': self.student_name,
            'is_trial': self.is_trial,
            'status': self.status.value if self.status else None,
        }


@dataclass
class AttendanceSheet:
    class_date: date
    time_slot: TimeSlot
    record: Optional[ScheduleRecord]
    rows: List[SheetRow] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def statuses(self) -> Dict[int, Optional[AttendanceStatus]]:
        return {row.student_id: row.status for row in self.rows}

    def to_dict(self):
        return {
            'date': self.class_date.isoformat(),
            'time_slot': self.time_slot.value,
            'schedule_id': self.record.id if self.record else None,
            'attendance_taken': bool(self.record.attendance_taken) if self.record else False,
            'students': [row.to_dict() for row in self.rows],
        }


@dataclass
class SaveOutcome:
    record: ScheduleRecord
    statuses: Dict[int, AttendanceStatus]
    written: int
    failed: List[int]
    ignored: List[int]

    @property
    def complete(self):
        return not self.failed


class AttendanceRecorder:
    """Merges computed rosters with stored attendance and saves it back."""

    def __init__(self, snapshot: RosterSnapshot, store: Optional[ScheduleStore] = None):
        self.snapshot = snapshot
        self.store = store or ScheduleStore()

    def open(self, class_date: date, time_slot: TimeSlot) -> AttendanceSheet:
        """Working sheet for a slot.

        Stored statuses win for students still on the roster, new roster
        students start unset and stored students who left the roster are not
        shown.
        """
        roster = self.snapshot.roster(class_date, time_slot)
        record = self.store.find(class_date, time_slot)
        stored = self.store.attendance_for(record)
        rows = []
        for student in roster:
            entry = stored.get(student.id)
            rows.append(SheetRow(
                student_id=student.id,
                student_name=student.name,
                is_trial=student.is_trial,
                status=entry.status if entry is not None else None,
            ))
        return AttendanceSheet(class_date, time_slot, record, rows, warnings=list(self.snapshot.warnings))

    @staticmethod
    def mark_all(sheet: AttendanceSheet, status: AttendanceStatus = AttendanceStatus.PRESENT) -> AttendanceSheet:
        for row in sheet.rows:
            row.status = status
        return sheet

    def save(self, class_date: date, time_slot: TimeSlot, statuses: Dict[int, Optional[AttendanceStatus]],
             name: Optional[str] = None) -> SaveOutcome:
        """Persist one entry per current roster student and flag the slot as taken."""
        if self.snapshot.degraded:
            raise UpstreamUnavailableError('Cannot save attendance while the roster directory is unavailable')
        roster = self.snapshot.roster(class_date, time_slot)
        roster_ids = [student.id for student in roster]
        on_roster = set(roster_ids)
        ignored = sorted(student_id for student_id in statuses if student_id not in on_roster)
        if ignored:
            logger.info('Ignoring attendance for students not on the %s %s roster: %s',
                        class_date, time_slot.value, ignored)
        resolved = {
            student_id: statuses.get(student_id) or DEFAULT_STATUS_ON_SAVE
            for student_id in roster_ids
        }
        record, created = self.store.ensure(class_date, time_slot, name=name)
        batch = self.store.write_attendance(record, resolved)
        if created:
            batch.written += 1
        if batch.failed:
            # The slot stays open until every roster row is stored
            logger.warning('Attendance save for %s %s stored %d rows, %d failed',
                           class_date, time_slot.value, batch.written, len(batch.failed))
        elif self.store.update(record, attendance_taken=True):
            batch.written += 1
        return SaveOutcome(record, resolved, batch.written, batch.failed, ignored)
