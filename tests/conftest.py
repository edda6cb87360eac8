from datetime import date

import pytest
from sqlalchemy import event

from roster_backend.app import create_app
from roster_backend.config import TestConfig
from roster_backend.extensions import db
from roster_backend.utils.roster_directory import StaticRosterDirectory
from roster_backend.utils.roster_resolver import RosterSnapshot

MONDAY = date(2025, 3, 10)


def make_students():
    return [
        {'id': 1, 'name': 'Ahn Minji', 'status': 'active', 'class_days': [1, 3], 'time_slot': 'morning', 'is_trial': False},
        {'id': 2, 'name': 'Baek Jisoo', 'status': 'active', 'class_days': '[1, 3]', 'time_slot': 'morning', 'is_trial': False},
        {
            'id': 3, 'name': 'Cho Hana', 'status': 'trial', 'is_trial': True, 'time_slot': 'afternoon',
            'class_days': [1],
            'trial_dates': [{'date': '2025-03-10', 'time_slot': 'afternoon', 'attended': None}],
        },
        {'id': 4, 'name': 'Do Yejin', 'status': 'trial', 'is_trial': True, 'class_days': [2], 'time_slot': 'evening', 'trial_dates': []},
        {'id': 5, 'name': 'Eom Seojun', 'status': 'paused', 'class_days': [1], 'time_slot': 'morning', 'is_trial': False},
    ]


def make_instructors():
    return [
        {'id': 7, 'name': 'Kim Taeyang', 'salary_type': 'hourly'},
        {'id': 8, 'name': 'Lee Sora', 'salary_type': 'monthly'},
    ]


@pytest.fixture
def directory():
    return StaticRosterDirectory(make_students(), make_instructors())


@pytest.fixture
def app(directory):
    app = create_app(TestConfig, roster_directory=directory)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def snapshot(app, directory):
    return RosterSnapshot.from_app(app.config, directory)


@pytest.fixture
def write_log(app):
    """INSERT/UPDATE/DELETE statements issued against the database."""
    statements = []

    def record(conn, cursor, statement, parameters, context, executemany):
        verb = statement.lstrip().split(None, 1)[0].upper()
        if verb in ('INSERT', 'UPDATE', 'DELETE'):
            statements.append(statement)

    event.listen(db.engine, 'before_cursor_execute', record)
    yield statements
    event.remove(db.engine, 'before_cursor_execute', record)


@pytest.fixture
def fail_attendance_for(app, monkeypatch):
    """Make commits that would store attendance for the given students fail."""
    from sqlalchemy.exc import OperationalError
    from roster_backend.models import AttendanceEntry

    failing = set()
    session = db.session()
    real_commit = session.commit

    def flaky_commit():
        for obj in list(session.new) + list(session.dirty):
            if isinstance(obj, AttendanceEntry) and obj.student_id in failing:
                raise OperationalError('INSERT INTO attendance_entries', {}, Exception('database is locked'))
        return real_commit()

    monkeypatch.setattr(session, 'commit', flaky_commit)
    return failing.update
