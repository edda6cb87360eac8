from roster_backend.extensions import db
from .time_slot import TimeSlot, TIME_SLOTS, TIME_SLOT_LABELS
from .attendance_status import AttendanceStatus
from .schedule_record import ScheduleRecord
from .attendance_entry import AttendanceEntry

__all__ = [
    'db',
    'TimeSlot',
    'TIME_SLOTS',
    'TIME_SLOT_LABELS',
    'AttendanceStatus',
    'ScheduleRecord',
    'AttendanceEntry',
]
