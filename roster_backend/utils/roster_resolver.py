import logging
from datetime import date
from typing import Iterable, List, Optional, Tuple

from roster_backend.exceptions import UpstreamUnavailableError
from roster_backend.models.time_slot import TimeSlot
from roster_backend.utils.parsing import weekday_number
from roster_backend.utils.roster_directory import RosterDirectory, Student

logger = logging.getLogger(__name__)

# Trial students enrolled with recurring-style fields and no dated schedule
# are projected over the visible month like regular students.
TRIAL_WEEKDAY_FALLBACK = True


def _by_id(students):
    return sorted(students, key=lambda student: student.id)


class WeekdayResolver:
    """Regular (non-trial) students enrolled on a date's weekday."""

    @staticmethod
    def matches(student: Student, target_date: date, time_slot: TimeSlot) -> bool:
        return student.time_slot == time_slot and weekday_number(target_date) in student.class_days

    @staticmethod
    def resolve(target_date: date, time_slot: TimeSlot, students: Iterable[Student]) -> List[Student]:
        return _by_id(
            student for student in students
            if not student.is_trial and WeekdayResolver.matches(student, target_date, time_slot)
        )


class TrialResolver:
    """Trial students booked for a given date and slot."""

    @staticmethod
    def matches(student: Student, target_date: date, time_slot: TimeSlot,
                visible_month: Optional[Tuple[int, int]] = None, fallback: bool = TRIAL_WEEKDAY_FALLBACK) -> bool:
        if student.trial_dates:
            return any(
                trial.date == target_date and trial.time_slot == time_slot
                for trial in student.trial_dates
            )
        if not fallback:
            return False
        year, month = visible_month or (target_date.year, target_date.month)
        if (target_date.year, target_date.month) != (year, month):
            return False
        return WeekdayResolver.matches(student, target_date, time_slot)

    @staticmethod
    def resolve(target_date: date, time_slot: TimeSlot, students: Iterable[Student],
                visible_month: Optional[Tuple[int, int]] = None, fallback: bool = TRIAL_WEEKDAY_FALLBACK) -> List[Student]:
        return _by_id(
            student for student in students
            if student.is_trial and TrialResolver.matches(student, target_date, time_slot, visible_month, fallback)
        )


class RosterResolver:
    """Expected attendees of a slot: weekday students followed by trial students.

    The two resolvers partition students on is_trial, so the union needs no
    deduplication.
    """

    @staticmethod
    def resolve(target_date: date, time_slot: TimeSlot, students: Iterable[Student],
                visible_month: Optional[Tuple[int, int]] = None, fallback: bool = TRIAL_WEEKDAY_FALLBACK) -> List[Student]:
        students = list(students)
        regular = WeekdayResolver.resolve(target_date, time_slot, students)
        trial = TrialResolver.resolve(target_date, time_slot, students, visible_month, fallback)
        return regular + trial


class RosterSnapshot:
    """Students loaded once from the directory for the lifetime of a request.

    An unreachable directory leaves the snapshot empty and marks it degraded
    so callers can show a warning instead of failing the whole view.
    """

    def __init__(self, students: List[Student], excluded_statuses=(), trial_fallback=TRIAL_WEEKDAY_FALLBACK,
                 degraded=False, warnings=None):
        excluded = {status.lower() for status in excluded_statuses}
        self.students = [student for student in students if student.status not in excluded]
        self.trial_fallback = trial_fallback
        self.degraded = degraded
        self.warnings = list(warnings or [])

    @classmethod
    def load(cls, directory: RosterDirectory, excluded_statuses=(), trial_fallback=TRIAL_WEEKDAY_FALLBACK):
        try:
            students = directory.list_students()
        except UpstreamUnavailableError as exc:
            logger.warning('Resolving rosters without student data: %s', exc.message)
            return cls([], excluded_statuses, trial_fallback, degraded=True,
                       warnings=[f'{exc.message}; rosters are shown empty'])
        return cls(students, excluded_statuses, trial_fallback)

    @classmethod
    def from_app(cls, app_config, directory: RosterDirectory):
        return cls.load(
            directory,
            excluded_statuses=app_config.get('ROSTER_EXCLUDED_STATUSES', ()),
            trial_fallback=app_config.get('ROSTER_TRIAL_WEEKDAY_FALLBACK', TRIAL_WEEKDAY_FALLBACK),
        )

    def roster(self, target_date: date, time_slot: TimeSlot, visible_month: Optional[Tuple[int, int]] = None) -> List[Student]:
        return RosterResolver.resolve(target_date, time_slot, self.students, visible_month, self.trial_fallback)
