import calendar
import json
from datetime import date, datetime
from typing import List, Optional, Set, Tuple

from roster_backend.models.time_slot import TimeSlot

DAY_CODES = {
    'sun': 0, 'mon': 1, 'tue': 2, 'wed': 3, 'thu': 4, 'fri': 5, 'sat': 6,
}


def weekday_number(value: date) -> int:
    """Weekday with 0=Sunday..6=Saturday."""
    return (value.weekday() + 1) % 7


def payload_value(payload, *keys, default=None):
    if not payload:
        return default
    for key in keys:
        if key in payload and payload[key] not in (None, ''):
            return payload[key]
    return default


def parse_optional_date(value) -> Optional[date]:
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in ('%Y-%m-%d', '%Y/%m/%d', '%Y%m%d'):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    # Timestamps such as '2025-03-10T00:00:00' or '2025-03-10 09:00'
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def parse_optional_int(value) -> Optional[int]:
    if value in (None, ''):
        return None
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_flag(value, default=False) -> bool:
    """Booleans as the directory sends them: real bools, 0/1 or "true"/"false" text."""
    if value is None or value == '':
        return default
    if isinstance(value, (bool, int, float)):
        return bool(value)
    return str(value).strip().lower() in {'1', 'true', 'yes', 'on', 'y'}


def parse_year_month(value, default: Optional[date] = None) -> Optional[Tuple[int, int]]:
    """Parse 'YYYY-MM' into (year, month); falls back to the default date's month."""
    if value not in (None, ''):
        try:
            parsed = datetime.strptime(str(value).strip(), '%Y-%m')
            return (parsed.year, parsed.month)
        except ValueError:
            pass
    if default is not None:
        return (default.year, default.month)
    return None


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    _, last_day_num = calendar.monthrange(year, month)
    return (date(year, month, 1), date(year, month, last_day_num))


def month_dates(year: int, month: int) -> List[date]:
    _, last_day_num = calendar.monthrange(year, month)
    return [date(year, month, day) for day in range(1, last_day_num + 1)]


def _load_maybe_json(raw):
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode('utf-8', errors='ignore')
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            # Comma separated fallback, e.g. "1,3" or "mon,wed"
            return [part.strip() for part in text.split(',') if part.strip()]
    return raw


def _coerce_weekday(item) -> Optional[int]:
    if isinstance(item, bool):
        return None
    if isinstance(item, int):
        return item if 0 <= item <= 6 else None
    text = str(item).strip().lower()
    if text in DAY_CODES:
        return DAY_CODES[text]
    if text[:3] in DAY_CODES and len(text) > 3:
        return DAY_CODES[text[:3]]
    try:
        number = int(text)
    except ValueError:
        return None
    return number if 0 <= number <= 6 else None


def parse_class_days(raw) -> Set[int]:
    """Parse class_days into a set of weekday numbers.

    Accepts a native list, a JSON encoded list, a comma separated string or a
    {'mon': True, ...} mapping. Anything malformed yields an empty set.
    """
    data = _load_maybe_json(raw)
    # 0 is Sunday, so only empty containers count as no days
    if data is None or data in ('', [], {}):
        return set()
    if isinstance(data, dict):
        data = [key for key, enabled in data.items() if enabled]
    if not isinstance(data, (list, tuple, set)):
        data = [data]
    days = set()
    for item in data:
        number = _coerce_weekday(item)
        if number is not None:
            days.add(number)
    return days


def parse_trial_dates(raw, default_slot: Optional[TimeSlot] = None) -> List[Tuple[date, TimeSlot, Optional[bool]]]:
    """Parse trial_dates into ordered (date, slot, attended) tuples.

    Entries without a usable date or slot are skipped. A bare date string
    takes the student's own time slot.
    """
    data = _load_maybe_json(raw)
    if not data or not isinstance(data, (list, tuple)):
        return []
    entries = []
    for item in data:
        if isinstance(item, dict):
            day = parse_optional_date(payload_value(item, 'date', 'class_date'))
            slot = TimeSlot.coerce(payload_value(item, 'time_slot', 'slot')) or default_slot
            attended = item.get('attended')
            attended = None if attended is None else parse_flag(attended)
        else:
            day = parse_optional_date(item)
            slot = default_slot
            attended = None
        if day is None or slot is None:
            continue
        entries.append((day, slot, attended))
    return entries
