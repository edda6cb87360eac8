from datetime import date, timedelta

from roster_backend.exceptions import UpstreamUnavailableError
from roster_backend.models import TimeSlot, TIME_SLOTS
from roster_backend.utils.roster_directory import RosterDirectory, StaticRosterDirectory
from roster_backend.utils.roster_resolver import RosterResolver, RosterSnapshot, TrialResolver, WeekdayResolver
from tests.conftest import MONDAY, make_students


def _students():
    return StaticRosterDirectory(make_students()).list_students()


def _ids(students):
    return [student.id for student in students]


def test_monday_morning_lists_regulars_enrolled_on_monday():
    roster = RosterResolver.resolve(MONDAY, TimeSlot.MORNING, _students())
    assert _ids(roster) == [1, 2, 5]


def test_monday_afternoon_lists_the_trial_student():
    assert _ids(RosterResolver.resolve(MONDAY, TimeSlot.AFTERNOON, _students())) == [3]


def test_weekday_resolver_ignores_trial_students():
    students = _students()
    # Cho Hana has class_days Monday but is on a trial schedule
    assert 3 not in _ids(WeekdayResolver.resolve(MONDAY, TimeSlot.AFTERNOON, students))


def test_trial_date_for_other_slot_does_not_match():
    assert TrialResolver.resolve(MONDAY, TimeSlot.MORNING, _students()) == []
    assert TrialResolver.resolve(MONDAY, TimeSlot.EVENING, _students()) == []


def test_explicit_trial_dates_disable_weekday_inference():
    next_monday = MONDAY + timedelta(days=7)
    assert _ids(TrialResolver.resolve(next_monday, TimeSlot.AFTERNOON, _students())) == []


def test_trial_without_dates_projects_weekdays_over_visible_month():
    tuesdays = [day for day in (date(2025, 3, d) for d in range(1, 32)) if day.weekday() == 1]
    for tuesday in tuesdays:
        assert _ids(TrialResolver.resolve(tuesday, TimeSlot.EVENING, _students())) == [4]
    assert TrialResolver.resolve(date(2025, 3, 12), TimeSlot.EVENING, _students()) == []


def test_trial_fallback_is_scoped_to_the_visible_month():
    april_tuesday = date(2025, 4, 1)
    students = _students()
    assert TrialResolver.resolve(april_tuesday, TimeSlot.EVENING, students, visible_month=(2025, 3)) == []
    assert _ids(TrialResolver.resolve(april_tuesday, TimeSlot.EVENING, students, visible_month=(2025, 4))) == [4]


def test_trial_fallback_can_be_switched_off():
    assert TrialResolver.resolve(date(2025, 3, 11), TimeSlot.EVENING, _students(), fallback=False) == []


def test_roster_is_disjoint_union_of_both_resolvers():
    students = _students()
    for offset in range(31):
        day = date(2025, 3, 1) + timedelta(days=offset)
        for slot in TIME_SLOTS:
            regular = WeekdayResolver.resolve(day, slot, students)
            trial = TrialResolver.resolve(day, slot, students)
            roster = RosterResolver.resolve(day, slot, students)
            assert roster == regular + trial
            assert not set(_ids(regular)) & set(_ids(trial))
            assert _ids(RosterResolver.resolve(day, slot, list(reversed(students)))) == _ids(roster)


def test_snapshot_drops_excluded_statuses():
    snapshot = RosterSnapshot.load(StaticRosterDirectory(make_students()), excluded_statuses=['paused'])
    assert _ids(snapshot.roster(MONDAY, TimeSlot.MORNING)) == [1, 2]
    assert snapshot.degraded is False


class _DownDirectory(RosterDirectory):
    def list_students(self):
        raise UpstreamUnavailableError('Roster directory is unavailable')


def test_snapshot_degrades_to_empty_when_directory_is_down():
    snapshot = RosterSnapshot.load(_DownDirectory())
    assert snapshot.degraded is True
    assert snapshot.roster(MONDAY, TimeSlot.MORNING) == []
    assert snapshot.warnings
