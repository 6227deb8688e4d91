"""
Tests for the appointment status state machine.
"""

import pytest

from agenda.exceptions import InvalidTransition
from agenda.status import (
    AppointmentStatus,
    can_transition,
    is_terminal,
    notification_for,
    validate_transition,
)


class TestTransitions:
    """Allowed and rejected status changes."""

    @pytest.mark.parametrize("current,new", [
        ("pending", "confirmed"),
        ("pending", "cancelled"),
        ("confirmed", "completed"),
        ("confirmed", "no-show"),
        ("confirmed", "cancelled"),
    ])
    def test_allowed(self, current, new):
        assert validate_transition(current, new) == new

    @pytest.mark.parametrize("current,new", [
        ("pending", "completed"),
        ("pending", "no-show"),
        ("pending", "pending"),
        ("confirmed", "pending"),
        ("confirmed", "confirmed"),
        ("cancelled", "confirmed"),
        ("completed", "cancelled"),
        ("no-show", "completed"),
    ])
    def test_rejected(self, current, new):
        with pytest.raises(InvalidTransition) as exc:
            validate_transition(current, new)
        assert exc.value.current == current
        assert exc.value.new == new

    def test_unknown_status_rejected(self):
        with pytest.raises(InvalidTransition):
            validate_transition("pending", "archived")

    def test_accepts_enum_members(self):
        assert validate_transition(AppointmentStatus.confirmed, AppointmentStatus.no_show) == "no-show"
        assert can_transition(AppointmentStatus.pending, "confirmed")

    def test_terminal_statuses(self):
        assert is_terminal("cancelled")
        assert is_terminal("completed")
        assert is_terminal(AppointmentStatus.no_show)
        assert not is_terminal("pending")
        assert not is_terminal("confirmed")


class TestNotifications:
    """Notices triggered by transitions."""

    def test_confirm_notifies_client(self):
        notice = notification_for("pending", "confirmed")
        assert notice.audience == "client"
        assert notice.type == "appointment_confirmed"

    def test_reject_and_cancel_are_distinct(self):
        assert notification_for("pending", "cancelled").type == "appointment_rejected"
        assert notification_for("confirmed", "cancelled").type == "appointment_cancelled"

    def test_completion_is_silent(self):
        assert notification_for("confirmed", "completed") is None
        assert notification_for("confirmed", "no-show") is None

    def test_client_cancellation_notifies_business(self):
        notice = notification_for("pending", "cancelled", by_client=True)
        assert notice.audience == "business"
        assert notice.type == "appointment_cancelled"
