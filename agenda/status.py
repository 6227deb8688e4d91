# agenda/status.py

#   pending ──> confirmed ──> completed
#      │            │──────> no-show
#      │            └──────> cancelled
#      └──────> cancelled
#
# A confirmed appointment whose date has passed stays confirmed until moved.

from enum import Enum
from typing import Dict, FrozenSet, NamedTuple, Optional

from .exceptions import InvalidTransition


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"
    no_show = "no-show"


# Statuses that occupy a time slot
BLOCKING_STATUSES: FrozenSet[str] = frozenset({
    AppointmentStatus.pending.value,
    AppointmentStatus.confirmed.value,
})

TRANSITIONS: Dict[str, FrozenSet[str]] = {
    AppointmentStatus.pending.value: frozenset({
        AppointmentStatus.confirmed.value,
        AppointmentStatus.cancelled.value,
    }),
    AppointmentStatus.confirmed.value: frozenset({
        AppointmentStatus.completed.value,
        AppointmentStatus.no_show.value,
        AppointmentStatus.cancelled.value,
    }),
    AppointmentStatus.cancelled.value: frozenset(),
    AppointmentStatus.completed.value: frozenset(),
    AppointmentStatus.no_show.value: frozenset(),
}


class StatusNotice(NamedTuple):
    """Notification emitted by a transition."""
    audience: str  # "business" or "client"
    type: str
    title: str


NEW_APPOINTMENT = StatusNotice("business", "new_appointment", "New appointment request")
CLIENT_CANCELLED = StatusNotice("business", "appointment_cancelled", "Appointment cancelled by client")

_NOTICES: Dict[tuple, StatusNotice] = {
    ("pending", "confirmed"): StatusNotice("client", "appointment_confirmed", "Appointment confirmed"),
    ("pending", "cancelled"): StatusNotice("client", "appointment_rejected", "Appointment rejected"),
    ("confirmed", "cancelled"): StatusNotice("client", "appointment_cancelled", "Appointment cancelled"),
}


def _value(status) -> str:
    return status.value if isinstance(status, AppointmentStatus) else str(status)


def is_terminal(status) -> bool:
    return not TRANSITIONS.get(_value(status))


def can_transition(current, new) -> bool:
    return _value(new) in TRANSITIONS.get(_value(current), frozenset())


def validate_transition(current, new) -> str:
    """
    Check that an appointment may move from ``current`` to ``new``.

    Returns the new status value.

    Raises:
        InvalidTransition: if the move is not allowed, including a no-op
            move to the same status.
    """
    current, new = _value(current), _value(new)
    if new not in TRANSITIONS:
        raise InvalidTransition(current, new)
    if not can_transition(current, new):
        raise InvalidTransition(current, new)
    return new


def notification_for(current, new, by_client: bool = False) -> Optional[StatusNotice]:
    """Return the notice the transition triggers, if any."""
    if by_client:
        return CLIENT_CANCELLED if _value(new) == AppointmentStatus.cancelled.value else None
    return _NOTICES.get((_value(current), _value(new)))
