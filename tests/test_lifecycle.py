"""Tests for status tables and activity events."""

import pytest

from catalog_rules.services.events import ActivityEvent, EventPublisher, EventType
from catalog_rules.services.lifecycle import (
    COLLABORATION_TRANSITIONS,
    VERSION_TRANSITIONS,
    CollaborationStatus,
    VersionStatus,
    can_transition,
    parse_status,
)


@pytest.mark.parametrize("value,expected", [
    ("draft", VersionStatus.DRAFT),
    (VersionStatus.REVIEW, VersionStatus.REVIEW),
    ("DRAFT", None),
    (None, None),
    (["draft"], None),
])
def test_parse_status(value, expected):
    assert parse_status(VersionStatus, value) == expected


def test_version_transitions():
    assert can_transition(VERSION_TRANSITIONS, "draft", "review")
    assert can_transition(VERSION_TRANSITIONS, VersionStatus.APPROVED, "published")
    assert not can_transition(VERSION_TRANSITIONS, "draft", "published")
    assert not can_transition(VERSION_TRANSITIONS, "unknown", "draft")


def test_terminal_collaboration_states():
    for terminal in (CollaborationStatus.COMPLETED, CollaborationStatus.CANCELLED):
        assert COLLABORATION_TRANSITIONS[terminal] == frozenset()


class TestEventPublisher:

    def test_publish_records_events(self):
        publisher = EventPublisher()
        publisher.publish(EventType.VERSION_CREATED, "v-1", "version", "user-1", version_number="0.1.0")
        publisher.publish(EventType.COLLABORATION_CREATED, "c-1", "collaboration")

        [event] = publisher.events_for("v-1")
        assert event.user_id == "user-1"
        assert event.data == {"version_number": "0.1.0"}
        assert event.metadata == {"source": "catalog_rules"}
        assert event.timestamp.endswith("Z")
        assert len(publisher.of_type(EventType.COLLABORATION_CREATED)) == 1

    def test_event_ids_are_unique(self):
        first = ActivityEvent(EventType.VERSION_DELETED, None, "v-1", "version", {})
        second = ActivityEvent(EventType.VERSION_DELETED, None, "v-1", "version", {})
        assert first.event_id != second.event_id

    def test_clear(self):
        publisher = EventPublisher()
        publisher.publish(EventType.BRANCH_CREATED, "v-1", "version")
        publisher.clear()
        assert publisher.events == []
