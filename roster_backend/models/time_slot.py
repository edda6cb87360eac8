import enum


class TimeSlot(enum.Enum):
    MORNING = 'morning'
    AFTERNOON = 'afternoon'
    EVENING = 'evening'

    @property
    def label(self):
        return TIME_SLOT_LABELS[self]

    @classmethod
    def coerce(cls, value):
        """Return the matching TimeSlot or None for anything unrecognised."""
        if isinstance(value, cls):
            return value
        text = str(value or '').strip().lower()
        for slot in cls:
            if slot.value == text:
                return slot
        return None


TIME_SLOT_LABELS = {
    TimeSlot.MORNING: 'Morning class',
    TimeSlot.AFTERNOON: 'Afternoon class',
    TimeSlot.EVENING: 'Evening class',
}

# Display order used by the calendar grid
TIME_SLOTS = (TimeSlot.MORNING, TimeSlot.AFTERNOON, TimeSlot.EVENING)
