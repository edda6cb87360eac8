"""Read-only access to the student and instructor directory.

The directory is owned by the main academy API. Payloads are parsed once at
this boundary into typed entities; malformed class_days or trial_dates become
empty collections instead of errors.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Set

import requests
from flask import current_app

from roster_backend.exceptions import UpstreamUnavailableError
from roster_backend.models.time_slot import TimeSlot
from roster_backend.utils.parsing import parse_class_days, parse_flag, parse_optional_int, parse_trial_dates, payload_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrialDate:
    date: date
    time_slot: TimeSlot
    attended: Optional[bool] = None


@dataclass
class Student:
    id: int
    name: str = ''
    status: str = 'active'
    class_days: Set[int] = field(default_factory=set)
    time_slot: Optional[TimeSlot] = None
    is_trial: bool = False
    trial_dates: List[TrialDate] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Dict) -> Optional['Student']:
        student_id = parse_optional_int(payload_value(payload, 'id', 'student_id'))
        if student_id is None:
            return None
        status = str(payload.get('status') or 'active').strip().lower()
        is_trial = parse_flag(payload.get('is_trial')) or status == 'trial'
        time_slot = TimeSlot.coerce(payload.get('time_slot'))
        trial_dates = []
        if is_trial:
            trial_dates = [
                TrialDate(day, slot, attended)
                for day, slot, attended in parse_trial_dates(payload.get('trial_dates'), default_slot=time_slot)
            ]
        return cls(
            id=student_id,
            name=str(payload_value(payload, 'name', 'student_name', default='')),
            status=status,
            class_days=parse_class_days(payload.get('class_days')),
            time_slot=time_slot,
            is_trial=is_trial,
            trial_dates=trial_dates,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'status': self.status,
            'is_trial': self.is_trial,
            'time_slot': self.time_slot.value if self.time_slot else None,
        }


@dataclass
class Instructor:
    id: int
    name: str = ''
    salary_type: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict) -> Optional['Instructor']:
        instructor_id = parse_optional_int(payload_value(payload, 'id', 'instructor_id'))
        if instructor_id is None:
            return None
        return cls(
            id=instructor_id,
            name=str(payload_value(payload, 'name', 'instructor_name', default='')),
            salary_type=payload.get('salary_type'),
        )

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'salary_type': self.salary_type}


def _unwrap_items(data):
    if isinstance(data, dict):
        data = data.get('items', data.get('data'))
    if not isinstance(data, list):
        raise UpstreamUnavailableError('Roster directory returned an unexpected payload')
    return [item for item in data if isinstance(item, dict)]


class RosterDirectory:
    """Interface of the external directory."""

    def list_students(self) -> List[Student]:
        raise NotImplementedError

    def list_instructors(self) -> List[Instructor]:
        raise NotImplementedError


class StaticRosterDirectory(RosterDirectory):
    """In-process directory backed by payload dicts."""

    def __init__(self, students=None, instructors=None):
        self.students = list(students or [])
        self.instructors = list(instructors or [])

    def list_students(self):
        parsed = (Student.from_payload(item) for item in self.students)
        return [student for student in parsed if student is not None]

    def list_instructors(self):
        parsed = (Instructor.from_payload(item) for item in self.instructors)
        return [instructor for instructor in parsed if instructor is not None]


class HttpRosterDirectory(RosterDirectory):
    """Directory client for the academy API's student and instructor listings."""

    def __init__(self, base_url, api_key=None, timeout=10, session=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {'Accept': 'application/json'}
        if api_key:
            self.headers['X-API-Key'] = api_key

    def _get(self, path, params=None):
        url = f'{self.base_url}{path}'
        try:
            response = self.session.get(url, headers=self.headers, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as exc:
            logger.warning('Roster directory request to %s failed: %s', url, exc)
            raise UpstreamUnavailableError('Roster directory is unavailable') from exc
        except ValueError as exc:
            logger.warning('Roster directory returned invalid JSON from %s', url)
            raise UpstreamUnavailableError('Roster directory returned invalid JSON') from exc
        return _unwrap_items(data)

    def list_students(self):
        parsed = (Student.from_payload(item) for item in self._get('/students'))
        return [student for student in parsed if student is not None]

    def list_instructors(self):
        parsed = (Instructor.from_payload(item) for item in self._get('/instructors'))
        return [instructor for instructor in parsed if instructor is not None]


def build_roster_directory(config) -> RosterDirectory:
    return HttpRosterDirectory(
        config['ROSTER_DIRECTORY_URL'],
        api_key=config.get('ROSTER_DIRECTORY_API_KEY'),
        timeout=config.get('ROSTER_DIRECTORY_TIMEOUT', 10),
    )


def get_roster_directory() -> RosterDirectory:
    return current_app.extensions['roster_directory']
