from sqlalchemy.exc import OperationalError

from roster_backend.app import create_app
from roster_backend.config import TestConfig
from roster_backend.exceptions import UpstreamUnavailableError
from roster_backend.extensions import db
from roster_backend.utils.roster_directory import StaticRosterDirectory
from roster_backend.utils.schedule_store import ScheduleStore


def _assign(client, date, time_slot, instructor_id):
    return client.post('/schedules/assign', json={'date': date, 'time_slot': time_slot, 'instructor_id': instructor_id})


def test_health(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.get_json()['database'] is True


def test_create_schedule_is_idempotent(client):
    payload = {'class_date': '2025-03-10', 'time_slot': 'morning', 'instructor_id': 7}
    first = client.post('/schedules', json=payload)
    second = client.post('/schedules', json=payload)
    assert first.status_code == 201
    assert second.status_code == 200
    assert first.get_json()['schedule']['id'] == second.get_json()['schedule']['id']
    assert first.get_json()['schedule']['instructor_name'] == 'Kim Taeyang'


def test_create_schedule_validates_input(client):
    response = client.post('/schedules', json={'class_date': '2025-02-30', 'time_slot': 'morning'})
    assert response.status_code == 400
    assert response.get_json()['success'] is False
    response = client.post('/schedules', json={'class_date': '2025-03-10', 'time_slot': 'night'})
    assert response.status_code == 400


def test_get_update_and_list(client):
    created = client.post('/schedules', json={'class_date': '2025-03-10', 'time_slot': 'evening'}).get_json()
    schedule_id = created['schedule']['id']
    updated = client.put(f'/schedules/{schedule_id}', json={'instructor_id': 8})
    assert updated.get_json()['changed'] is True
    assert client.put(f'/schedules/{schedule_id}', json={'instructor_id': 8}).get_json()['changed'] is False
    assert client.get(f'/schedules/{schedule_id}').get_json()['schedule']['instructor_name'] == 'Lee Sora'
    items = client.get('/schedules?year_month=2025-03').get_json()['items']
    assert [item['id'] for item in items] == [schedule_id]
    assert client.get('/schedules?year_month=2025-04').get_json()['items'] == []
    assert client.get('/schedules/999').status_code == 404
    assert client.put(f'/schedules/{schedule_id}', json={}).status_code == 400


def test_assign_endpoint(client):
    first = _assign(client, '2025-03-10', 'morning', 7).get_json()
    second = _assign(client, '2025-03-10', 'morning', 7).get_json()
    assert first['changed'] is True
    assert second['changed'] is False
    cleared = _assign(client, '2025-03-11', 'morning', None).get_json()
    assert cleared['schedule'] is None


def test_propagate_endpoint(client):
    response = client.post('/schedules/propagate', json={
        'source_date': '2025-03-10',
        'year_month': '2025-03',
        'assignments': {'morning': 7},
    })
    body = response.get_json()
    assert response.status_code == 200
    assert body['changed'] == 4
    dates = sorted(item['class_date'] for item in client.get('/schedules?year_month=2025-03').get_json()['items'])
    assert dates == ['2025-03-03', '2025-03-17', '2025-03-24', '2025-03-31']


def test_propagate_rejects_unknown_slots(client):
    response = client.post('/schedules/propagate', json={'source_date': '2025-03-10', 'assignments': {'noon': 7}})
    assert response.status_code == 400


def test_slot_attendance_round_trip(client):
    opened = client.get('/schedules/slot/attendance?date=2025-03-10&time_slot=morning').get_json()
    assert opened['schedule_id'] is None
    assert [row['student_id'] for row in opened['students']] == [1, 2]
    saved = client.post('/schedules/slot/attendance', json={
        'date': '2025-03-10',
        'time_slot': 'morning',
        'records': [{'student_id': 1, 'status': 'absent'}, {'student_id': 2, 'status': None}],
    })
    body = saved.get_json()
    assert saved.status_code == 200
    assert body['statuses'] == {'1': 'absent', '2': 'present'}
    assert body['schedule']['attendance_taken'] is True
    schedule_id = body['schedule']['id']
    sheet = client.get(f'/schedules/{schedule_id}/attendance').get_json()
    assert {row['student_id']: row['status'] for row in sheet['students']} == {1: 'absent', 2: 'present'}
    again = client.post(f'/schedules/{schedule_id}/attendance', json={'records': [{'student_id': 1, 'status': 'absent'}]})
    assert again.get_json()['written'] == 0


def test_mark_all_preview_does_not_persist(client):
    preview = client.get('/schedules/slot/attendance?date=2025-03-10&time_slot=morning&mark_all=1').get_json()
    assert {row['status'] for row in preview['students']} == {'present'}
    assert client.get('/schedules?year_month=2025-03').get_json()['items'] == []


def test_attendance_rejects_bad_status(client):
    response = client.post('/schedules/slot/attendance', json={
        'date': '2025-03-10', 'time_slot': 'morning', 'records': [{'student_id': 1, 'status': 'sleeping'}],
    })
    assert response.status_code == 400


def test_calendar_stats_and_instructor_month(client):
    _assign(client, '2025-03-10', 'morning', 7)
    _assign(client, '2025-03-10', 'afternoon', 8)
    calendar = client.get('/schedules/calendar?year_month=2025-03').get_json()
    monday = next(day for day in calendar['days'] if day['date'] == '2025-03-10')
    assert monday['slots']['morning']['count'] == 2
    assert monday['slots']['afternoon']['instructor_name'] == 'Lee Sora'
    stats = client.get('/schedules/stats?year_month=2025-03').get_json()
    assert stats['assigned_dates'] == 1
    assert stats['scheduled_slots'] == 2
    month = client.get('/schedules/instructor-schedules/month?year_month=2025-03').get_json()
    assert [item['instructor_id'] for item in month['instructors']] == [7, 8]
    day = client.get('/schedules/slot?date=2025-03-10&instructor_id=7').get_json()
    assert [slot['time_slot'] for slot in day['slots']] == ['morning']
    assert client.get('/schedules/calendar?year_month=March').status_code == 400


class _DownDirectory(StaticRosterDirectory):
    def list_students(self):
        raise UpstreamUnavailableError('Roster directory is unavailable')

    def list_instructors(self):
        raise UpstreamUnavailableError('Roster directory is unavailable')


def test_directory_outage_degrades_reads_and_blocks_saves():
    app = create_app(TestConfig, roster_directory=_DownDirectory())
    with app.app_context():
        db.create_all()
        client = app.test_client()
        calendar = client.get('/schedules/calendar?year_month=2025-03')
        assert calendar.status_code == 200
        assert calendar.get_json()['degraded'] is True
        assert calendar.get_json()['warnings']
        saved = client.post('/schedules/slot/attendance', json={'date': '2025-03-10', 'time_slot': 'morning', 'records': []})
        assert saved.status_code == 503
        assert client.get('/schedules?year_month=2025-03').get_json()['items'] == []
        db.session.remove()
        db.drop_all()


def test_partial_attendance_save_returns_multi_status(client, fail_attendance_for):
    fail_attendance_for({2})
    response = client.post('/schedules/slot/attendance', json={
        'date': '2025-03-10', 'time_slot': 'morning', 'records': [{'student_id': 1, 'status': 'late'}],
    })
    assert response.status_code == 207
    body = response.get_json()
    assert body['success'] is False
    assert body['failed'] == [2]
    assert body['schedule']['attendance_taken'] is False
    assert '1 attendance rows could not be saved' in body['warnings']
    sheet = client.get('/schedules/slot/attendance?date=2025-03-10&time_slot=morning').get_json()
    assert {row['student_id']: row['status'] for row in sheet['students']} == {1: 'late', 2: None}


def test_calendar_survives_schedule_store_outage(client, monkeypatch):
    def locked(*args, **kwargs):
        raise OperationalError('SELECT schedule_records', {}, Exception('database is locked'))

    monkeypatch.setattr(ScheduleStore, 'list_month', locked)
    response = client.get('/schedules/calendar?year_month=2025-03')
    assert response.status_code == 200
    body = response.get_json()
    assert body['degraded'] is True
    assert body['warnings']
    assert len(body['days']) == 31
    assert client.get('/schedules/stats?year_month=2025-03').status_code == 200
