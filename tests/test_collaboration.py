"""Tests for the collaboration service."""

import pytest

from catalog_rules.schemas.collaboration import CollaborationType, NotificationFrequency
from catalog_rules.services.collaboration import (
    CollaborationConflictError,
    CollaborationNotFoundError,
    CollaborationPermissionError,
    CollaborationValidationError,
    default_workflow,
    filter_permissions,
)
from catalog_rules.services.events import EventType
from catalog_rules.services.lifecycle import CollaborationStatus


@pytest.fixture
def invite(collaboration_service, publication_id, author_id, collaborator_id):
    """Create an invitation with sensible defaults."""
    def _invite(**overrides):
        data = {
            "publication_id": publication_id,
            "initiator_id": author_id,
            "collaborator_id": collaborator_id,
            "collaboration_type": "editor",
            "permissions": ["edit_content", "comment", "manage_chapters"],
        }
        data.update(overrides)
        return collaboration_service.create_collaboration(data)
    return _invite


@pytest.fixture
def active(collaboration_service, invite, collaborator_id):
    """An accepted editor collaboration."""
    collaboration = invite()
    return collaboration_service.accept_invitation(collaboration.id, collaborator_id)


def test_filter_permissions_keeps_request_order():
    permissions = filter_permissions(
        CollaborationType.REVIEWER, ["comment", "edit_content", "review_content", "comment"]
    )
    assert permissions == ["comment", "review_content"]


def test_default_workflows():
    editor = default_workflow(CollaborationType.EDITOR)
    assert editor.approval_required is True
    assert editor.notification_frequency == NotificationFrequency.DAILY

    assert default_workflow(CollaborationType.TRANSLATOR) == default_workflow(CollaborationType.REVIEWER)


class TestCreate:

    def test_invitation(self, invite, now, event_publisher, author_id):
        collaboration = invite()

        assert collaboration.status == CollaborationStatus.PENDING
        assert collaboration.permissions == ["edit_content", "comment"]
        assert collaboration.workflow_settings.approval_required is True
        assert collaboration.communication_preferences.email_notifications is True
        assert collaboration.invitation_sent_at == now
        assert collaboration.accepted_at is None
        assert collaboration.start_date == now

        event = event_publisher.of_type(EventType.COLLABORATION_CREATED)[0]
        assert event.user_id == author_id
        assert event.data["collaboration_type"] == "editor"

    def test_workflow_overrides(self, invite):
        collaboration = invite(workflow_settings={"auto_merge": True}, communication_preferences={"progress_reports": True})

        assert collaboration.workflow_settings.auto_merge is True
        assert collaboration.workflow_settings.approval_required is True
        assert collaboration.communication_preferences.progress_reports is True

    def test_active_on_creation(self, invite, now):
        collaboration = invite(status="active")

        assert collaboration.accepted_at == now
        assert collaboration.invitation_sent_at is None

    @pytest.mark.parametrize("overrides", [
        {"status": "completed"},
        {"collaboration_type": "ghostwriter"},
        {"royalty_percentage": 120},
        {"publication_id": ""},
        {"workflow_settings": {"notification_frequency": "hourly"}},
    ])
    def test_invalid_data(self, invite, overrides):
        with pytest.raises(CollaborationValidationError) as exc_info:
            invite(**overrides)
        assert exc_info.value.validation_errors

    def test_self_collaboration(self, invite, author_id):
        with pytest.raises(CollaborationValidationError) as exc_info:
            invite(collaborator_id=author_id)
        assert exc_info.value.validation_errors[0].code == "self_collaboration"

    def test_duplicate_open_collaboration(self, invite):
        invite()
        with pytest.raises(CollaborationConflictError):
            invite(collaboration_type="reviewer")

    def test_new_invitation_after_cancel(self, collaboration_service, invite, author_id):
        first = invite()
        collaboration_service.cancel(first.id, author_id)

        assert invite().id != first.id


class TestAccept:

    def test_accept(self, collaboration_service, invite, collaborator_id, clock):
        collaboration = invite(contract_details={"deadline": "2025-06-01"})
        accepted_time = clock.advance(hours=3)

        accepted = collaboration_service.accept_invitation(
            collaboration.id,
            collaborator_id,
            contract_modifications={"deadline": "2025-07-01"},
            communication_preferences={"deadline_reminders": False},
        )

        assert accepted.status == CollaborationStatus.ACTIVE
        assert accepted.accepted_at == accepted_time
        assert accepted.terms_agreed is True
        assert accepted.contract_details == {
            "deadline": "2025-07-01",
            "modifications_by_collaborator": {"deadline": "2025-07-01"},
        }
        assert accepted.communication_preferences.deadline_reminders is False
        assert accepted.communication_preferences.email_notifications is True

    def test_only_collaborator_can_accept(self, collaboration_service, invite, author_id):
        collaboration = invite()
        with pytest.raises(CollaborationPermissionError):
            collaboration_service.accept_invitation(collaboration.id, author_id)

    def test_accept_twice(self, collaboration_service, active, collaborator_id):
        with pytest.raises(CollaborationConflictError):
            collaboration_service.accept_invitation(active.id, collaborator_id)

    def test_unknown_collaboration(self, collaboration_service, collaborator_id):
        with pytest.raises(CollaborationNotFoundError):
            collaboration_service.accept_invitation("missing", collaborator_id)


class TestLifecycle:

    def test_cancel(self, collaboration_service, active, collaborator_id, event_publisher):
        cancelled = collaboration_service.cancel(active.id, collaborator_id, reason="schedule")

        assert cancelled.status == CollaborationStatus.CANCELLED
        assert cancelled.cancelled_by == collaborator_id
        assert cancelled.cancellation_reason == "schedule"
        assert event_publisher.of_type(EventType.COLLABORATION_CANCELLED)[0].data == {"reason": "schedule"}

    def test_cancel_requires_participant(self, collaboration_service, active):
        with pytest.raises(CollaborationPermissionError):
            collaboration_service.cancel(active.id, "someone-else")

    def test_cancel_twice(self, collaboration_service, active, author_id):
        collaboration_service.cancel(active.id, author_id)
        with pytest.raises(CollaborationConflictError):
            collaboration_service.cancel(active.id, author_id)

    def test_suspend_and_resume(self, collaboration_service, active):
        suspended = collaboration_service.suspend(active.id)
        assert suspended.status == CollaborationStatus.SUSPENDED
        assert suspended.suspended_at is not None

        resumed = collaboration_service.resume(active.id)
        assert resumed.status == CollaborationStatus.ACTIVE
        assert resumed.suspended_at is None

    def test_resume_requires_suspension(self, collaboration_service, active):
        with pytest.raises(CollaborationConflictError):
            collaboration_service.resume(active.id)

    def test_pending_cannot_complete(self, collaboration_service, invite):
        with pytest.raises(CollaborationConflictError):
            collaboration_service.complete(invite().id)

    def test_completed_is_final(self, collaboration_service, active):
        collaboration_service.complete(active.id)

        with pytest.raises(CollaborationConflictError):
            collaboration_service.suspend(active.id)


class TestPermissions:

    def test_has_permission(self, collaboration_service, invite, collaborator_id, author_id):
        collaboration = invite()
        assert not collaboration_service.has_permission(collaboration.id, collaborator_id, "comment")

        collaboration_service.accept_invitation(collaboration.id, collaborator_id)

        assert collaboration_service.has_permission(collaboration.id, collaborator_id, "comment")
        assert not collaboration_service.has_permission(collaboration.id, collaborator_id, "approve_changes")
        assert collaboration_service.has_permission(collaboration.id, author_id, "approve_changes")
        assert not collaboration_service.has_permission(collaboration.id, "someone-else", "comment")
        assert not collaboration_service.has_permission("missing", author_id, "comment")

    def test_update_permissions(self, collaboration_service, active, author_id, collaborator_id):
        updated = collaboration_service.update_permissions(
            active.id, ["approve_changes", "manage_translations"], author_id
        )
        assert updated.permissions == ["approve_changes"]

        with pytest.raises(CollaborationPermissionError):
            collaboration_service.update_permissions(active.id, ["comment"], collaborator_id)


class TestUpdate:

    def test_update_descriptive_fields(self, collaboration_service, active, collaborator_id):
        updated = collaboration_service.update_collaboration(
            active.id,
            {"role_description": "Line editor", "workflow_settings": {"auto_merge": True}, "status": "completed"},
            collaborator_id,
        )

        assert updated.role_description == "Line editor"
        assert updated.workflow_settings.auto_merge is True
        assert updated.workflow_settings.approval_required is True
        assert updated.status == CollaborationStatus.ACTIVE

    @pytest.mark.parametrize("updates", [
        {"royalty_percentage": 250},
        {"contribution_percentage": -5},
    ])
    def test_percentages_stay_bounded(self, collaboration_service, active, collaborator_id, updates):
        with pytest.raises(CollaborationValidationError):
            collaboration_service.update_collaboration(active.id, updates, collaborator_id)

        assert collaboration_service.get_collaboration(active.id).royalty_percentage == 0

    def test_update_requires_participant(self, collaboration_service, active):
        with pytest.raises(CollaborationPermissionError):
            collaboration_service.update_collaboration(active.id, {"role_description": "x"}, "someone-else")


class TestQueries:

    def test_lists(self, collaboration_service, invite, active, publication_id, author_id, collaborator_id):
        other = invite(publication_id="another-publication")
        collaboration_service.accept_invitation(other.id, collaborator_id)
        collaboration_service.complete(other.id)

        assert len(collaboration_service.list_by_user(collaborator_id)) == 2
        assert len(collaboration_service.list_by_user(author_id, status="completed")) == 1
        assert collaboration_service.list_by_publication(publication_id) == [active]
        assert collaboration_service.list_by_publication("another-publication", include_completed=False) == []

    def test_unknown_status_filter_matches_nothing(self, collaboration_service, active, publication_id, author_id):
        assert collaboration_service.list_by_user(author_id, status="bogus") == []
        assert collaboration_service.list_by_publication(publication_id, status="bogus") == []
        assert collaboration_service.list_by_publication(publication_id, status="active") == [active]

    def test_analytics(self, collaboration_service, invite, collaborator_id, clock):
        first = invite()
        second = invite(publication_id="another-publication", collaboration_type="reviewer")
        invite(publication_id="third-publication")

        for collaboration in (first, second):
            collaboration_service.accept_invitation(collaboration.id, collaborator_id)
        clock.advance(days=10)
        collaboration_service.complete(first.id)
        clock.advance(days=10)
        collaboration_service.complete(second.id)

        analytics = collaboration_service.get_analytics()

        assert analytics["total"] == 3
        assert analytics["by_status"] == {"completed": 2, "pending": 1}
        assert analytics["by_type"] == {"editor": 2, "reviewer": 1}
        assert analytics["completion_rate"] == pytest.approx(200 / 3)
        assert analytics["average_duration_days"] == pytest.approx(15)

    def test_empty_analytics(self, collaboration_service):
        assert collaboration_service.get_analytics("nobody") == {
            "total": 0,
            "by_status": {},
            "by_type": {},
            "completion_rate": 0,
            "average_duration_days": 0,
        }
