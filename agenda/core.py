# agenda/core.py

# Weekly schedules are stored mappings of day key ("mon".."sun") to
# {"enabled", "start": "HH:mm", "end": "HH:mm"}. Missing days count as closed.
# Times are business-local and naive.

import re
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Mapping, NamedTuple, Optional, Tuple
from zoneinfo import ZoneInfo

from .exceptions import ScheduleError
from .status import AppointmentStatus, BLOCKING_STATUSES

DAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

DAY_LABELS = {
    "mon": "Monday",
    "tue": "Tuesday",
    "wed": "Wednesday",
    "thu": "Thursday",
    "fri": "Friday",
    "sat": "Saturday",
    "sun": "Sunday",
}

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class OpenStatus(NamedTuple):
    is_open: bool
    next_status_time: Optional[str]
    label: str


def time_to_minutes(value: str) -> int:
    """Parse "HH:mm" into minutes from midnight."""
    match = _TIME_RE.match(value or "")
    if match is None:
        raise ScheduleError(f"Invalid time '{value}', expected HH:mm")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ScheduleError(f"Invalid time '{value}', expected HH:mm")
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Format minutes from midnight as "HH:mm"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def day_key(day: date) -> str:
    return DAY_KEYS[day.weekday()]


def local_now(tz_name: str) -> datetime:
    """Current wall-clock time of a business, naive like stored dates."""
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None, second=0, microsecond=0)


def to_local(value: datetime, tz_name: str) -> datetime:
    """Naive business-local datetime; naive input is taken as already local."""
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(tz_name)).replace(tzinfo=None)


def _enabled_bounds(schedule: Optional[Mapping], key: str) -> Optional[Tuple[int, int]]:
    # (start, end) in minutes for an enabled day, None when closed
    if schedule is None:
        return None
    day = schedule.get(key)
    if not day or not day.get("enabled"):
        return None
    start = time_to_minutes(day["start"])
    end = time_to_minutes(day["end"])
    if start >= end:
        return None
    return start, end


def is_open(schedule: Optional[Mapping], now: datetime) -> OpenStatus:
    """
    Evaluate the open/closed badge for ``now``.

    Open iff the weekday of ``now`` is enabled and start <= now < end at
    minute precision. When closed, the next opening within a week is
    reported.
    """
    if schedule is None:
        return OpenStatus(False, None, "Hours not available")

    current = now.hour * 60 + now.minute
    today = day_key(now.date())
    bounds = _enabled_bounds(schedule, today)

    if bounds is not None:
        start, end = bounds
        if start <= current < end:
            closes = minutes_to_time(end)
            return OpenStatus(True, closes, f"Closes at {closes}")
        if current < start:
            opens = minutes_to_time(start)
            return OpenStatus(False, opens, f"Opens today at {opens}")

    for offset in range(1, 8):
        key = day_key(now.date() + timedelta(days=offset))
        bounds = _enabled_bounds(schedule, key)
        if bounds is None:
            continue
        opens = minutes_to_time(bounds[0])
        when = "tomorrow" if offset == 1 else DAY_LABELS[key]
        return OpenStatus(False, opens, f"Opens {when} at {opens}")

    return OpenStatus(False, None, "Closed")


def day_window(schedule: Optional[Mapping], day: date) -> Optional[Tuple[datetime, datetime]]:
    """Return the open interval of ``day`` as datetimes, or None if closed."""
    bounds = _enabled_bounds(schedule, day_key(day))
    if bounds is None:
        return None
    midnight = datetime.combine(day, time.min)
    return midnight + timedelta(minutes=bounds[0]), midnight + timedelta(minutes=bounds[1])


def fits_schedule(schedule: Optional[Mapping], start: datetime, end: datetime) -> bool:
    """True when [start, end) lies inside the open interval of its day."""
    window = day_window(schedule, start.date())
    if window is None:
        return False
    return window[0] <= start and end <= window[1]


def generate_slots(schedule: Optional[Mapping], day: date, step_minutes: int = 30) -> List[str]:
    """Candidate start times every ``step_minutes`` from opening while before closing."""
    if step_minutes <= 0:
        raise ScheduleError("Slot step must be positive")
    bounds = _enabled_bounds(schedule, day_key(day))
    if bounds is None:
        return []
    start, end = bounds
    return [minutes_to_time(m) for m in range(start, end, step_minutes)]


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def appointment_end(appt) -> datetime:
    return appt.date + timedelta(minutes=appt.service_duration)


def find_conflicts(
    appointments: Iterable,
    start: datetime,
    end: datetime,
    employee_id: Optional[int] = None,
    exclude_id: Optional[int] = None,
) -> list:
    """
    Blocking appointments that intersect [start, end).

    With ``employee_id`` only that employee's appointments count; without it
    the business is treated as a single resource and every appointment does.
    """
    conflicts = []
    for a in appointments:
        if exclude_id is not None and a.id == exclude_id:
            continue
        if a.status not in BLOCKING_STATUSES:
            continue
        if employee_id is not None and a.employee_id != employee_id:
            continue
        if overlaps(start, end, a.date, appointment_end(a)):
            conflicts.append(a)
    return conflicts


def available_slots(
    schedule: Optional[Mapping],
    day: date,
    duration_minutes: int,
    appointments: Iterable,
    step_minutes: int = 30,
    employee_id: Optional[int] = None,
    employee_schedule: Optional[Mapping] = None,
    now: Optional[datetime] = None,
) -> List[str]:
    """
    Bookable start times for a service of ``duration_minutes`` on ``day``.

    A slot is kept when the whole service fits in the business hours (and in
    the employee's own hours when given), it does not start before ``now``,
    and it does not intersect a blocking appointment.
    """
    appointments = list(appointments)
    midnight = datetime.combine(day, time.min)
    duration = timedelta(minutes=duration_minutes)

    available = []
    for label in generate_slots(schedule, day, step_minutes):
        slot_start = midnight + timedelta(minutes=time_to_minutes(label))
        slot_end = slot_start + duration

        if not fits_schedule(schedule, slot_start, slot_end):
            continue
        if employee_schedule and not fits_schedule(employee_schedule, slot_start, slot_end):
            continue
        if now is not None and slot_start < now:
            continue
        if find_conflicts(appointments, slot_start, slot_end, employee_id=employee_id):
            continue

        available.append(label)
    return available


def filter_appointments(
    appointments: Iterable,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    employee_id: Optional[int] = None,
    status: Optional[str] = None,
    customer_id: Optional[int] = None,
) -> list:
    """In-memory filtering after a broad fetch; the date range is inclusive."""
    result = []
    for a in appointments:
        if start is not None and a.date < start:
            continue
        if end is not None and a.date > end:
            continue
        if employee_id is not None and a.employee_id != employee_id:
            continue
        if status is not None and a.status != status:
            continue
        if customer_id is not None and a.customer_id != customer_id:
            continue
        result.append(a)
    return result


INBOX_TABS = ("pending", "upcoming", "history")

def inbox_bucket(appt, now: datetime) -> str:
    if appt.status == AppointmentStatus.pending.value:
        return "pending"
    if appt.status == AppointmentStatus.confirmed.value and appt.date >= now:
        return "upcoming"
    return "history"


def inbox(appointments: Iterable, tab: str, now: datetime) -> list:
    """
    Provider inbox tab. Pending and upcoming are sorted soonest first,
    history most recent first.
    """
    if tab not in INBOX_TABS:
        raise ValueError(f"Unknown inbox tab '{tab}'")
    selected = [a for a in appointments if inbox_bucket(a, now) == tab]
    return sorted(selected, key=lambda a: a.date, reverse=(tab == "history"))
