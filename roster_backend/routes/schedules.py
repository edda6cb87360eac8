from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from roster_backend.extensions import db
from roster_backend.exceptions import RosterEngineError, ScheduleNotFoundError, ScheduleValidationError, UpstreamUnavailableError
from roster_backend.models import AttendanceStatus, TimeSlot
from roster_backend.utils.assignment_manager import AssignmentManager
from roster_backend.utils.attendance_recorder import AttendanceRecorder
from roster_backend.utils.calendar_aggregator import CalendarAggregator
from roster_backend.utils.parsing import month_bounds, parse_optional_date, parse_optional_int, parse_year_month, payload_value
from roster_backend.utils.roster_directory import get_roster_directory
from roster_backend.utils.roster_resolver import RosterSnapshot
from roster_backend.utils.schedule_store import ScheduleStore
from roster_backend.utils.timezone import academy_today
schedules_bp = Blueprint('schedules', __name__, url_prefix='/schedules')


@schedules_bp.errorhandler(RosterEngineError)
def handle_engine_error(error):
    return (jsonify(error.to_dict()), error.status_code)


@schedules_bp.errorhandler(SQLAlchemyError)
def handle_database_error(error):
    db.session.rollback()
    current_app.logger.exception('Database error while handling %s', request.path)
    return (jsonify({'success': False, 'message': 'A database error occurred'}), 500)


def _snapshot():
    return RosterSnapshot.from_app(current_app.config, get_roster_directory())


def _require_date(value, field='date'):
    parsed = parse_optional_date(value)
    if parsed is None:
        raise ScheduleValidationError(f'Invalid or missing {field}; expected YYYY-MM-DD')
    return parsed


def _require_slot(value):
    slot = TimeSlot.coerce(value)
    if slot is None:
        raise ScheduleValidationError('Invalid or missing time_slot; expected morning, afternoon or evening')
    return slot


def _optional_instructor(payload):
    if 'instructor_id' not in payload or payload['instructor_id'] in (None, ''):
        return None
    instructor_id = parse_optional_int(payload['instructor_id'])
    if instructor_id is None:
        raise ScheduleValidationError('instructor_id must be an integer or null')
    return instructor_id


def _year_month(value, default=None):
    if value in (None, ''):
        return parse_year_month(None, default=default or academy_today())
    parsed = parse_year_month(value)
    if parsed is None:
        raise ScheduleValidationError('Invalid year_month; expected YYYY-MM')
    return parsed


def _parse_status_records(records):
    if not isinstance(records, list):
        raise ScheduleValidationError('records must be a list of {student_id, status}')
    statuses = {}
    for item in records:
        student_id = parse_optional_int(payload_value(item, 'student_id', 'studentId') if isinstance(item, dict) else None)
        if student_id is None:
            raise ScheduleValidationError('Every attendance record needs a student_id')
        raw_status = payload_value(item, 'status')
        status = AttendanceStatus.coerce(raw_status)
        if raw_status not in (None, '', 'unset') and status is None:
            raise ScheduleValidationError(f'Invalid status {raw_status!r} for student {student_id}')
        statuses[student_id] = status
    return statuses


def _instructor_name(instructor_id):
    if instructor_id is None:
        return None
    try:
        instructors = get_roster_directory().list_instructors()
    except UpstreamUnavailableError:
        return None
    return next((instructor.name for instructor in instructors if instructor.id == instructor_id), None)


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _save_response(outcome, warnings):
    warnings = list(warnings)
    if outcome.failed:
        warnings.append(f'{len(outcome.failed)} attendance rows could not be saved')
    body = {
        'success': outcome.complete,
        'message': 'Attendance saved' if outcome.complete else 'Attendance partially saved',
        'schedule': outcome.record.to_dict(),
        'written': outcome.written,
        'failed': outcome.failed,
        'ignored': outcome.ignored,
        'statuses': {str(student_id): status.value for student_id, status in outcome.statuses.items()},
        'warnings': warnings,
    }
    return (jsonify(body), 200 if outcome.complete else 207)


@schedules_bp.route('', methods=['GET'])
def list_schedules():
    store = ScheduleStore()
    start = parse_optional_date(request.args.get('start'))
    end = parse_optional_date(request.args.get('end'))
    if start and end:
        if end < start:
            raise ScheduleValidationError('end must not be before start')
        records = store.list_between(start, end)
    else:
        year, month = _year_month(request.args.get('year_month'))
        records = store.list_month(year, month)
    return jsonify({'success': True, 'items': [record.to_dict() for record in records]})


@schedules_bp.route('', methods=['POST'])
def create_schedule():
    data = _json_body()
    class_date = _require_date(payload_value(data, 'class_date', 'date'), 'class_date')
    time_slot = _require_slot(data.get('time_slot'))
    instructor_id = _optional_instructor(data)
    store = ScheduleStore()
    record, created = store.ensure(class_date, time_slot, name=payload_value(data, 'name'), instructor_id=instructor_id)
    return (jsonify({'success': True, 'created': created, 'schedule': record.to_dict(_instructor_name(record.instructor_id))}), 201 if created else 200)


@schedules_bp.route('/<int:schedule_id>', methods=['GET'])
def get_schedule(schedule_id):
    record = ScheduleStore().get(schedule_id)
    if not record:
        raise ScheduleNotFoundError(f'Schedule {schedule_id} not found')
    return jsonify({'success': True, 'schedule': record.to_dict(_instructor_name(record.instructor_id))})


@schedules_bp.route('/<int:schedule_id>', methods=['PUT'])
def update_schedule(schedule_id):
    data = _json_body()
    store = ScheduleStore()
    record = store.get(schedule_id)
    if not record:
        raise ScheduleNotFoundError(f'Schedule {schedule_id} not found')
    fields = {}
    if 'instructor_id' in data:
        fields['instructor_id'] = _optional_instructor(data)
    if 'attendance_taken' in data:
        fields['attendance_taken'] = bool(data['attendance_taken'])
    if not fields:
        raise ScheduleValidationError('Nothing to update; send instructor_id and/or attendance_taken')
    changed = store.update(record, **fields)
    return jsonify({'success': True, 'changed': changed, 'schedule': record.to_dict(_instructor_name(record.instructor_id))})


@schedules_bp.route('/<int:schedule_id>/attendance', methods=['GET'])
def get_schedule_attendance(schedule_id):
    record = ScheduleStore().get(schedule_id)
    if not record:
        raise ScheduleNotFoundError(f'Schedule {schedule_id} not found')
    snapshot = _snapshot()
    sheet = AttendanceRecorder(snapshot).open(record.class_date, record.time_slot)
    return jsonify({'success': True, **sheet.to_dict(), 'warnings': sheet.warnings})


@schedules_bp.route('/<int:schedule_id>/attendance', methods=['POST'])
def save_schedule_attendance(schedule_id):
    record = ScheduleStore().get(schedule_id)
    if not record:
        raise ScheduleNotFoundError(f'Schedule {schedule_id} not found')
    data = _json_body()
    statuses = _parse_status_records(data.get('records', []))
    snapshot = _snapshot()
    outcome = AttendanceRecorder(snapshot).save(record.class_date, record.time_slot, statuses)
    return _save_response(outcome, snapshot.warnings)


@schedules_bp.route('/slot', methods=['GET'])
def get_day_slots():
    class_date = _require_date(request.args.get('date'))
    instructor_id = parse_optional_int(request.args.get('instructor_id'))
    aggregator = CalendarAggregator(_snapshot(), get_roster_directory())
    return jsonify({'success': True, **aggregator.day(class_date, instructor_id)})


@schedules_bp.route('/slot/attendance', methods=['GET'])
def open_slot_attendance():
    class_date = _require_date(request.args.get('date'))
    time_slot = _require_slot(request.args.get('time_slot'))
    sheet = AttendanceRecorder(_snapshot()).open(class_date, time_slot)
    if request.args.get('mark_all') in ('1', 'true', 'yes'):
        AttendanceRecorder.mark_all(sheet)
    return jsonify({'success': True, **sheet.to_dict(), 'warnings': sheet.warnings})


@schedules_bp.route('/slot/attendance', methods=['POST'])
def save_slot_attendance():
    data = _json_body()
    class_date = _require_date(payload_value(data, 'date', 'class_date'))
    time_slot = _require_slot(data.get('time_slot'))
    statuses = _parse_status_records(data.get('records', []))
    snapshot = _snapshot()
    outcome = AttendanceRecorder(snapshot).save(class_date, time_slot, statuses, name=payload_value(data, 'name'))
    return _save_response(outcome, snapshot.warnings)


@schedules_bp.route('/assign', methods=['POST'])
def assign_instructor():
    data = _json_body()
    class_date = _require_date(payload_value(data, 'date', 'class_date'))
    time_slot = _require_slot(data.get('time_slot'))
    instructor_id = _optional_instructor(data)
    outcome = AssignmentManager().assign(class_date, time_slot, instructor_id)
    schedule = outcome.record.to_dict(_instructor_name(outcome.record.instructor_id)) if outcome.record else None
    return jsonify({'success': True, 'changed': outcome.changed, 'schedule': schedule})


@schedules_bp.route('/propagate', methods=['POST'])
def propagate_assignments():
    data = _json_body()
    source_date = _require_date(payload_value(data, 'source_date', 'date'), 'source_date')
    year, month = _year_month(data.get('year_month'), default=source_date)
    assignments = None
    raw_assignments = data.get('assignments')
    if raw_assignments is not None:
        if not isinstance(raw_assignments, dict):
            raise ScheduleValidationError('assignments must map time_slot to instructor_id')
        assignments = {}
        for raw_slot, raw_instructor in raw_assignments.items():
            assignments[_require_slot(raw_slot)] = _optional_instructor({'instructor_id': raw_instructor})
    result = AssignmentManager().bulk_propagate(source_date, assignments, year, month)
    body = {'success': True, **result.to_dict(), 'warnings': []}
    if not result.complete:
        body['warnings'].append(f'Only {result.succeeded} of {result.attempted} slots were updated')
    return (jsonify(body), 200 if result.complete else 207)


@schedules_bp.route('/calendar', methods=['GET'])
def month_calendar():
    year, month = _year_month(request.args.get('year_month'))
    aggregator = CalendarAggregator(_snapshot(), get_roster_directory())
    return jsonify({'success': True, **aggregator.month(year, month)})


@schedules_bp.route('/stats', methods=['GET'])
def month_stats():
    year, month = _year_month(request.args.get('year_month'))
    aggregator = CalendarAggregator(RosterSnapshot([]), get_roster_directory())
    return jsonify({'success': True, **aggregator.stats(year, month)})


@schedules_bp.route('/instructor-schedules/month', methods=['GET'])
def instructor_month_schedules():
    year, month = _year_month(request.args.get('year_month'))
    aggregator = CalendarAggregator(RosterSnapshot([]), get_roster_directory())
    first_day, last_day = month_bounds(year, month)
    return jsonify({'success': True, 'start': first_day.isoformat(), 'end': last_day.isoformat(), **aggregator.instructor_month(year, month)})
