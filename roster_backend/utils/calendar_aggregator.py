import logging
from collections import Counter
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from roster_backend.exceptions import UpstreamUnavailableError
from roster_backend.models import ScheduleRecord, TIME_SLOTS
from roster_backend.utils.parsing import month_dates, weekday_number
from roster_backend.utils.roster_directory import RosterDirectory
from roster_backend.utils.roster_resolver import RosterSnapshot
from roster_backend.utils.schedule_store import ScheduleStore

logger = logging.getLogger(__name__)


class CalendarAggregator:
    """Read-side month and day views over rosters and schedule records.

    Neither an unreachable directory nor a failing schedule store fails a
    view: the affected part comes back empty, `degraded` is set and a warning
    says what is missing.
    """

    def __init__(self, snapshot: RosterSnapshot, directory: RosterDirectory, store: Optional[ScheduleStore] = None):
        self.snapshot = snapshot
        self.directory = directory
        self.store = store or ScheduleStore()
        self.warnings = list(snapshot.warnings)
        self.degraded = snapshot.degraded
        self._names = None

    def instructor_names(self) -> Dict[int, str]:
        if self._names is None:
            try:
                self._names = {instructor.id: instructor.name for instructor in self.directory.list_instructors()}
            except UpstreamUnavailableError as exc:
                logger.warning('Calendar rendered without instructor names: %s', exc.message)
                self.warnings.append(f'{exc.message}; instructor names are missing')
                self._names = {}
        return self._names

    def _store_unavailable(self, exc, scope):
        self.store.session.rollback()
        logger.warning('Schedule records for %s could not be read: %s', scope, exc)
        self.warnings.append(f'Schedule records for {scope} are unavailable; assignments are shown empty')
        self.degraded = True

    def _month_records(self, year, month) -> List[ScheduleRecord]:
        try:
            return self.store.list_month(year, month)
        except SQLAlchemyError as exc:
            self._store_unavailable(exc, f'{year:04d}-{month:02d}')
            return []

    def _day_records(self, class_date) -> Dict:
        try:
            return {slot: self.store.find(class_date, slot) for slot in TIME_SLOTS}
        except SQLAlchemyError as exc:
            self._store_unavailable(exc, class_date.isoformat())
            return {}

    def _summary(self, records):
        assigned = [record for record in records if record.instructor_id is not None]
        names = self.instructor_names()
        counts = Counter(record.instructor_id for record in assigned)
        return {
            'assigned_dates': len({record.class_date for record in assigned}),
            'attendance_taken_slots': sum(1 for record in records if record.attendance_taken),
            'instructor_counts': [
                {'instructor_id': instructor_id, 'instructor_name': names.get(instructor_id), 'count': count}
                for instructor_id, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
            ],
        }

    def month(self, year: int, month: int) -> Dict:
        """Month grid with one summary cell per day and slot."""
        records = {(record.class_date, record.time_slot): record for record in self._month_records(year, month)}
        names = self.instructor_names()
        days = []
        for day in month_dates(year, month):
            slots = {}
            for slot in TIME_SLOTS:
                record = records.get((day, slot))
                instructor_id = record.instructor_id if record else None
                slots[slot.value] = {
                    'count': len(self.snapshot.roster(day, slot, visible_month=(year, month))),
                    'schedule_id': record.id if record else None,
                    'instructor_id': instructor_id,
                    'instructor_name': names.get(instructor_id) if instructor_id is not None else None,
                    'attendance_taken': bool(record.attendance_taken) if record else False,
                }
            days.append({'date': day.isoformat(), 'weekday': weekday_number(day), 'slots': slots})
        return {
            'year_month': f'{year:04d}-{month:02d}',
            'days': days,
            'summary': self._summary(list(records.values())),
            'degraded': self.degraded,
            'warnings': self.warnings,
        }

    def stats(self, year: int, month: int) -> Dict:
        records = self._month_records(year, month)
        summary = self._summary(records)
        summary.update({
            'year_month': f'{year:04d}-{month:02d}',
            'scheduled_slots': len(records),
            'degraded': self.degraded,
            'warnings': self.warnings,
        })
        return summary

    def day(self, class_date: date, instructor_id: Optional[int] = None) -> Dict:
        """Roster and record for every slot of one day, optionally for one instructor."""
        names = self.instructor_names()
        records = self._day_records(class_date)
        slots = []
        for slot in TIME_SLOTS:
            record = records.get(slot)
            if instructor_id is not None and (record is None or record.instructor_id != instructor_id):
                continue
            roster = self.snapshot.roster(class_date, slot)
            slots.append({
                'time_slot': slot.value,
                'label': slot.label,
                'schedule': record.to_dict(names.get(record.instructor_id)) if record else None,
                'students': [student.to_dict() for student in roster],
                'count': len(roster),
            })
        return {
            'date': class_date.isoformat(),
            'weekday': weekday_number(class_date),
            'slots': slots,
            'degraded': self.degraded,
            'warnings': self.warnings,
        }

    def instructor_month(self, year: int, month: int) -> Dict:
        """Assigned slots of the month grouped per instructor."""
        names = self.instructor_names()
        grouped = {}
        for record in self._month_records(year, month):
            if record.instructor_id is None:
                continue
            grouped.setdefault(record.instructor_id, []).append({
                'schedule_id': record.id,
                'date': record.class_date.isoformat(),
                'time_slot': record.time_slot.value,
                'attendance_taken': bool(record.attendance_taken),
            })
        return {
            'year_month': f'{year:04d}-{month:02d}',
            'instructors': [
                {'instructor_id': instructor_id, 'instructor_name': names.get(instructor_id), 'slots': slots}
                for instructor_id, slots in sorted(grouped.items())
            ],
            'degraded': self.degraded,
            'warnings': self.warnings,
        }
