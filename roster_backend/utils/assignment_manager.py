import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from roster_backend.models import ScheduleRecord, TimeSlot, TIME_SLOTS
from roster_backend.utils.parsing import month_dates
from roster_backend.utils.schedule_store import ScheduleStore

logger = logging.getLogger(__name__)


@dataclass
class AssignmentOutcome:
    record: Optional[ScheduleRecord]
    changed: bool


@dataclass
class PropagationResult:
    source_date: date
    changed: int = 0
    attempted: int = 0
    failures: List[Tuple[date, TimeSlot]] = field(default_factory=list)

    @property
    def succeeded(self):
        return self.attempted - len(self.failures)

    @property
    def complete(self):
        return not self.failures

    def to_dict(self):
        return {
            'source_date': self.source_date.isoformat(),
            'changed': self.changed,
            'attempted': self.attempted,
            'succeeded': self.succeeded,
            'failed': [
                {'date': day.isoformat(), 'time_slot': slot.value}
                for day, slot in self.failures
            ],
        }


class AssignmentManager:
    """Instructor assignment on single slots and across a month's weekdays."""

    def __init__(self, store: Optional[ScheduleStore] = None):
        self.store = store or ScheduleStore()

    def assign(self, class_date: date, time_slot: TimeSlot, instructor_id: Optional[int]) -> AssignmentOutcome:
        """Set or clear the slot's instructor, writing only when it changes."""
        record = self.store.find(class_date, time_slot)
        if record is None:
            if instructor_id is None:
                return AssignmentOutcome(None, False)
            record, created = self.store.ensure(class_date, time_slot, instructor_id=instructor_id)
            if created:
                return AssignmentOutcome(record, True)
        changed = self.store.update(record, instructor_id=instructor_id)
        return AssignmentOutcome(record, changed)

    def capture_assignments(self, source_date: date) -> Dict[TimeSlot, Optional[int]]:
        """Per-slot instructor mapping as currently stored for a date."""
        mapping = {slot: None for slot in TIME_SLOTS}
        for slot in TIME_SLOTS:
            record = self.store.find(source_date, slot)
            if record is not None:
                mapping[slot] = record.instructor_id
        return mapping

    def bulk_propagate(self, source_date: date, assignments_by_slot: Optional[Dict[TimeSlot, Optional[int]]],
                       year: int, month: int) -> PropagationResult:
        """Copy the source date's per-slot instructors to the same weekday across a month.

        The source date itself is never touched. Each (date, slot) is applied
        independently; failures are logged and counted without stopping the
        rest of the batch.
        """
        if assignments_by_slot is None:
            assignments_by_slot = self.capture_assignments(source_date)
        result = PropagationResult(source_date=source_date)
        targets = [
            day for day in month_dates(year, month)
            if day.weekday() == source_date.weekday() and day != source_date
        ]
        for day in targets:
            for slot in TIME_SLOTS:
                if slot not in assignments_by_slot:
                    continue
                result.attempted += 1
                try:
                    outcome = self.assign(day, slot, assignments_by_slot[slot])
                except SQLAlchemyError as exc:
                    self.store.session.rollback()
                    logger.warning('Propagation to %s %s failed: %s', day, slot.value, exc)
                    result.failures.append((day, slot))
                    continue
                if outcome.changed:
                    result.changed += 1
        if result.failures:
            logger.warning(
                'Propagation from %s finished with %d of %d slots failed',
                source_date, len(result.failures), result.attempted,
            )
        else:
            logger.info('Propagation from %s changed %d of %d slots', source_date, result.changed, result.attempted)
        return result
