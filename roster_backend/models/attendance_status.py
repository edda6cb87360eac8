import enum


class AttendanceStatus(enum.Enum):
    PRESENT = 'present'
    ABSENT = 'absent'
    LATE = 'late'
    EXCUSED = 'excused'

    @classmethod
    def coerce(cls, value):
        """Map payload text onto a status; unset and unknown values give None."""
        if isinstance(value, cls):
            return value
        text = str(value or '').strip().lower()
        for status in cls:
            if status.value == text:
                return status
        return None
