# agenda/booking.py

from datetime import datetime, timedelta
from typing import List, Optional

from sqlmodel import Session, select

from .core import find_conflicts, fits_schedule
from .exceptions import BookingConflict, SlotUnavailable
from .models import Appointment, Business, Employee, Service
from .status import BLOCKING_STATUSES


def business_appointments(session: Session, business_id: int) -> List[Appointment]:
    # broad fetch, callers filter in memory
    return list(session.exec(
        select(Appointment).where(Appointment.business_id == business_id)
    ).all())


def check_slot(
    business: Business,
    service: Service,
    starts_at: datetime,
    appointments: List[Appointment],
    now: datetime,
    employee: Optional[Employee] = None,
    exclude_id: Optional[int] = None,
) -> datetime:
    """
    Validate that ``service`` can start at ``starts_at``.

    Returns the end of the appointment.

    Raises:
        SlotUnavailable: in the past, outside opening hours, or the employee
            cannot take it.
        BookingConflict: the employee already has a blocking appointment
            overlapping the interval.
    """
    # 0) Prevent booking in the past (business local time)
    if starts_at < now:
        raise SlotUnavailable("Cannot book an appointment in the past")

    # 1) Build appointment interval
    ends_at = starts_at + timedelta(minutes=service.duration_minutes)

    # 2) Validate opening hours for that weekday
    if not business.opening_hours:
        raise SlotUnavailable("Business has not published opening hours")
    if not fits_schedule(business.opening_hours, starts_at, ends_at):
        raise SlotUnavailable("Appointment must be within opening hours")

    if employee is None:
        return ends_at

    # 3) Employee must be able to take the service at that time
    if not employee.active:
        raise SlotUnavailable("Employee is not active")
    if service.id not in (employee.service_ids or []):
        raise SlotUnavailable("Employee does not offer this service")
    if employee.availability_weekly and not fits_schedule(employee.availability_weekly, starts_at, ends_at):
        raise SlotUnavailable("Appointment must be within the employee's working hours")

    # 4) Reject overlaps with the employee's other appointments
    conflicts = find_conflicts(
        appointments, starts_at, ends_at, employee_id=employee.id, exclude_id=exclude_id,
    )
    if conflicts:
        raise BookingConflict("Appointment overlaps an existing appointment", conflicts)

    return ends_at


def ensure_unblocked(appointments: List[Appointment]):
    """Raise BookingConflict while any of ``appointments`` is pending or confirmed."""
    blocking = [a for a in appointments if a.status in BLOCKING_STATUSES]
    if blocking:
        raise BookingConflict(
            f"{len(blocking)} pending or confirmed appointment(s) still reference it", blocking,
        )


def detach_appointments(session: Session, appointments: List[Appointment], attr: str) -> int:
    # history keeps the copied names; only the reference goes
    for appt in appointments:
        setattr(appt, attr, None)
        appt.updated_at = datetime.now()
        session.add(appt)
    session.flush()
    return len(appointments)
