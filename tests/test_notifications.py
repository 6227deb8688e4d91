"""
Tests for the stored notification feed.
"""

import pytest

from agenda import notifications
from agenda.models import Notification


class TestNotificationStore:
    """Writing and reading the feed."""

    def test_feed_is_newest_first_and_limited(self, session):
        for i in range(3):
            notifications.create_notification(session, notifications.CLIENT, 7, "t", f"title {i}", "body")
        feed = notifications.list_feed(session, notifications.CLIENT, 7, limit=2)
        assert [n.title for n in feed] == ["title 2", "title 1"]

    def test_read_state(self, session):
        first = notifications.create_notification(session, notifications.BUSINESS, 1, "t", "a", "body")
        notifications.create_notification(session, notifications.BUSINESS, 1, "t", "b", "body")
        notifications.create_notification(session, notifications.BUSINESS, 2, "t", "other", "body")

        notifications.mark_read(session, first)
        assert first.read_at is not None
        assert notifications.unread_count(session, notifications.BUSINESS, 1) == 1

        notifications.mark_all_read(session, notifications.BUSINESS, 1)
        assert notifications.unread_count(session, notifications.BUSINESS, 1) == 0
        assert notifications.unread_count(session, notifications.BUSINESS, 2) == 1

    def test_write_failure_is_swallowed(self, session, failing_writes):
        failing_writes(Notification)
        result = notifications.create_notification(session, notifications.CLIENT, 7, "t", "lost", "body")
        assert result is None
        # the session is still usable afterwards
        assert notifications.unread_count(session, notifications.CLIENT, 7) == 0


@pytest.mark.parametrize("audience", [notifications.BUSINESS, notifications.CLIENT])
def test_empty_feed(session, audience):
    assert notifications.list_feed(session, audience, 1, limit=10) == []
    assert notifications.unread_count(session, audience, 1) == 0
