"""Collaboration management for publications: invitations, permissions and lifecycle."""

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

from pydantic import ValidationError

from catalog_rules.core.validation import ValidationIssue
from catalog_rules.schemas.base import issues_from_validation_error
from catalog_rules.schemas.collaboration import (
    Collaboration,
    CollaborationCreate,
    CollaborationType,
    CommunicationPreferences,
    NotificationFrequency,
    WorkflowSettings,
)
from catalog_rules.services.events import EventPublisher, EventType
from catalog_rules.services.lifecycle import (
    COLLABORATION_TRANSITIONS,
    CollaborationStatus,
    can_transition,
    parse_status,
)
from catalog_rules.utils.validators import utc_now

logger = logging.getLogger(__name__)

OPEN_STATUSES = (CollaborationStatus.PENDING, CollaborationStatus.ACTIVE)

UPDATABLE_FIELDS = (
    "role_description", "contribution_percentage", "royalty_percentage", "end_date",
    "contract_details", "communication_preferences", "workflow_settings",
)

PERMISSION_RULES: Dict[CollaborationType, FrozenSet[str]] = {
    CollaborationType.CO_AUTHOR: frozenset({
        "edit_content", "review_content", "suggest_changes", "access_drafts",
        "manage_chapters", "comment", "track_changes",
    }),
    CollaborationType.EDITOR: frozenset({
        "edit_content", "review_content", "suggest_changes", "track_changes",
        "comment", "approve_changes", "access_drafts",
    }),
    CollaborationType.REVIEWER: frozenset({
        "review_content", "comment", "suggest_changes", "access_drafts",
    }),
    CollaborationType.CONSULTANT: frozenset({
        "review_content", "comment", "suggest_changes",
    }),
    CollaborationType.TRANSLATOR: frozenset({
        "edit_content", "access_drafts", "manage_translations", "comment",
    }),
}

WORKFLOW_DEFAULTS: Dict[CollaborationType, WorkflowSettings] = {
    CollaborationType.CO_AUTHOR: WorkflowSettings(
        approval_required=False,
        simultaneous_editing=True,
        version_control=True,
        auto_merge=False,
        notification_frequency=NotificationFrequency.IMMEDIATE,
    ),
    CollaborationType.EDITOR: WorkflowSettings(
        approval_required=True,
        simultaneous_editing=False,
        version_control=True,
        auto_merge=False,
        notification_frequency=NotificationFrequency.DAILY,
    ),
    CollaborationType.REVIEWER: WorkflowSettings(
        approval_required=False,
        simultaneous_editing=False,
        version_control=True,
        auto_merge=False,
        notification_frequency=NotificationFrequency.WEEKLY,
    ),
    CollaborationType.CONSULTANT: WorkflowSettings(
        approval_required=False,
        simultaneous_editing=False,
        version_control=False,
        auto_merge=False,
        notification_frequency=NotificationFrequency.WEEKLY,
    ),
}

if set(PERMISSION_RULES) != set(CollaborationType):
    raise RuntimeError("PERMISSION_RULES must cover every collaboration type")


class CollaborationServiceError(Exception):
    """Base exception for collaboration service errors."""
    pass


class CollaborationNotFoundError(CollaborationServiceError):
    """Raised when a collaboration cannot be found."""
    pass


class CollaborationConflictError(CollaborationServiceError):
    """Raised when an open collaboration already exists or the state forbids the change."""
    pass


class CollaborationPermissionError(CollaborationServiceError):
    """Raised when a user may not act on a collaboration."""
    pass


class CollaborationValidationError(CollaborationServiceError):
    """Raised when collaboration data validation fails."""

    def __init__(self, message: str, validation_errors: List[ValidationIssue] = None):
        super().__init__(message)
        self.validation_errors = validation_errors or []


def filter_permissions(collaboration_type: CollaborationType, permissions: Iterable[str]) -> List[str]:
    """Keep the permissions the type allows, in request order, without duplicates."""
    allowed = PERMISSION_RULES[collaboration_type]
    return [permission for permission in dict.fromkeys(permissions) if permission in allowed]


def default_workflow(collaboration_type: CollaborationType) -> WorkflowSettings:
    return WORKFLOW_DEFAULTS.get(collaboration_type, WORKFLOW_DEFAULTS[CollaborationType.REVIEWER])


class CollaborationService:
    """
    In-memory collaboration store.

    Handles invitations between a publication's initiator and a collaborator,
    type-scoped permissions, workflow defaults and the collaboration lifecycle.
    """

    def __init__(
        self,
        event_publisher: Optional[EventPublisher] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.events = event_publisher
        self._clock = clock or utc_now
        self._collaborations: Dict[str, Collaboration] = {}

    # Queries

    def get_collaboration(self, collaboration_id: str) -> Collaboration:
        collaboration = self._collaborations.get(collaboration_id)
        if collaboration is None:
            raise CollaborationNotFoundError(f"Collaboration {collaboration_id} not found")
        return collaboration

    def find_open(self, publication_id: str, collaborator_id: str) -> Optional[Collaboration]:
        for collaboration in self._collaborations.values():
            if (
                collaboration.publication_id == publication_id
                and collaboration.collaborator_id == collaborator_id
                and collaboration.status in OPEN_STATUSES
            ):
                return collaboration
        return None

    def list_by_publication(
        self,
        publication_id: str,
        status: Optional[Any] = None,
        include_completed: bool = True
    ) -> List[Collaboration]:
        """Unknown status filters match nothing."""
        if status is not None:
            status = parse_status(CollaborationStatus, status)
            if status is None:
                return []
        return [
            c for c in self._collaborations.values()
            if c.publication_id == publication_id
            and (status is None or c.status == status)
            and (include_completed or c.status != CollaborationStatus.COMPLETED)
        ]

    def list_by_user(self, user_id: str, status: Optional[Any] = None) -> List[Collaboration]:
        if status is not None:
            status = parse_status(CollaborationStatus, status)
            if status is None:
                return []
        return [
            c for c in self._collaborations.values()
            if c.is_participant(user_id) and (status is None or c.status == status)
        ]

    def has_permission(self, collaboration_id: str, user_id: str, permission: str) -> bool:
        """True when ``user_id`` collaborates actively on the publication with ``permission``."""
        collaboration = self._collaborations.get(collaboration_id)
        if collaboration is None or collaboration.status != CollaborationStatus.ACTIVE:
            return False
        if user_id == collaboration.initiator_id:
            return True
        return user_id == collaboration.collaborator_id and permission in collaboration.permissions

    # Lifecycle

    def create_collaboration(self, data: Dict[str, Any]) -> Collaboration:
        """
        Create a collaboration invitation.

        Permissions outside the type's allowed set are dropped silently. Workflow
        settings start from the type's defaults, and communication preferences
        from the standard defaults.

        Raises:
            CollaborationValidationError: If the data is invalid
            CollaborationConflictError: If an open collaboration already exists
        """
        try:
            payload = CollaborationCreate(**data)
        except ValidationError as e:
            raise CollaborationValidationError(
                "Collaboration validation failed",
                issues_from_validation_error(e)
            ) from e

        if payload.initiator_id == payload.collaborator_id:
            message = "Initiator and collaborator cannot be the same person"
            raise CollaborationValidationError(
                message,
                [ValidationIssue(code="self_collaboration", message=message, field="collaborator_id")]
            )

        if self.find_open(payload.publication_id, payload.collaborator_id):
            raise CollaborationConflictError(
                "An open collaboration already exists for this publication and collaborator"
            )

        try:
            workflow = WorkflowSettings(
                **{**default_workflow(payload.collaboration_type).model_dump(), **payload.workflow_settings}
            )
            preferences = CommunicationPreferences(**payload.communication_preferences)
        except ValidationError as e:
            raise CollaborationValidationError(
                "Collaboration settings validation failed",
                issues_from_validation_error(e)
            ) from e

        now = self._clock()
        collaboration = Collaboration(
            **payload.model_dump(exclude={"permissions", "workflow_settings", "communication_preferences", "start_date"}),
            id=str(uuid.uuid4()),
            permissions=filter_permissions(payload.collaboration_type, payload.permissions),
            workflow_settings=workflow,
            communication_preferences=preferences,
            start_date=payload.start_date or now,
            invitation_sent_at=now if payload.status == CollaborationStatus.PENDING else None,
            accepted_at=now if payload.status == CollaborationStatus.ACTIVE else None,
            created_at=now,
            updated_at=now,
        )
        self._collaborations[collaboration.id] = collaboration

        logger.info(
            f"Created {collaboration.collaboration_type.value} collaboration {collaboration.id} "
            f"on publication {collaboration.publication_id}"
        )
        self._publish(
            EventType.COLLABORATION_CREATED, collaboration, payload.initiator_id,
            collaborator_id=payload.collaborator_id,
            collaboration_type=collaboration.collaboration_type.value
        )
        return collaboration

    def accept_invitation(
        self,
        collaboration_id: str,
        user_id: str,
        terms_agreed: bool = True,
        contract_modifications: Optional[Dict[str, Any]] = None,
        communication_preferences: Optional[Dict[str, Any]] = None
    ) -> Collaboration:
        """
        Accept a pending invitation.

        Raises:
            CollaborationPermissionError: If ``user_id`` is not the invited collaborator
            CollaborationConflictError: If the invitation is not pending
        """
        collaboration = self.get_collaboration(collaboration_id)

        if collaboration.collaborator_id != user_id:
            raise CollaborationPermissionError("Only the invited collaborator can accept this collaboration")

        if collaboration.status != CollaborationStatus.PENDING:
            raise CollaborationConflictError("Collaboration invitation is not pending")

        now = self._clock()
        updates: Dict[str, Any] = {
            "status": CollaborationStatus.ACTIVE,
            "terms_agreed": terms_agreed,
            "accepted_at": now,
            "updated_at": now,
        }
        if contract_modifications:
            updates["contract_details"] = {
                **collaboration.contract_details,
                **contract_modifications,
                "modifications_by_collaborator": contract_modifications,
            }
        if communication_preferences:
            updates["communication_preferences"] = {
                **collaboration.communication_preferences.model_dump(),
                **communication_preferences,
            }

        accepted = self._save(collaboration, updates)
        self._publish(
            EventType.COLLABORATION_ACCEPTED, accepted, user_id,
            terms_agreed=terms_agreed,
            modifications_count=len(contract_modifications or {})
        )
        return accepted

    def cancel(self, collaboration_id: str, user_id: str, reason: str = "") -> Collaboration:
        """
        Cancel a collaboration on behalf of either participant.

        Raises:
            CollaborationPermissionError: If ``user_id`` is not a participant
            CollaborationConflictError: If it is already completed or cancelled
        """
        collaboration = self.get_collaboration(collaboration_id)

        if not collaboration.is_participant(user_id):
            raise CollaborationPermissionError("Only participants can cancel this collaboration")

        self._check_transition(collaboration, CollaborationStatus.CANCELLED)

        now = self._clock()
        cancelled = self._save(collaboration, {
            "status": CollaborationStatus.CANCELLED,
            "cancelled_at": now,
            "cancelled_by": user_id,
            "cancellation_reason": reason,
            "updated_at": now,
        })
        logger.info(f"Collaboration {collaboration_id} cancelled by {user_id}")
        self._publish(EventType.COLLABORATION_CANCELLED, cancelled, user_id, reason=reason)
        return cancelled

    def complete(self, collaboration_id: str, user_id: Optional[str] = None) -> Collaboration:
        collaboration = self.get_collaboration(collaboration_id)
        self._check_transition(collaboration, CollaborationStatus.COMPLETED)

        now = self._clock()
        completed = self._save(collaboration, {
            "status": CollaborationStatus.COMPLETED,
            "completed_at": now,
            "updated_at": now,
        })
        self._publish(EventType.COLLABORATION_COMPLETED, completed, user_id)
        return completed

    def suspend(self, collaboration_id: str, user_id: Optional[str] = None) -> Collaboration:
        collaboration = self.get_collaboration(collaboration_id)
        self._check_transition(collaboration, CollaborationStatus.SUSPENDED)

        now = self._clock()
        suspended = self._save(collaboration, {
            "status": CollaborationStatus.SUSPENDED,
            "suspended_at": now,
            "updated_at": now,
        })
        self._publish(EventType.COLLABORATION_SUSPENDED, suspended, user_id)
        return suspended

    def resume(self, collaboration_id: str, user_id: Optional[str] = None) -> Collaboration:
        collaboration = self.get_collaboration(collaboration_id)
        if collaboration.status != CollaborationStatus.SUSPENDED:
            raise CollaborationConflictError("Only suspended collaborations can be resumed")

        resumed = self._save(collaboration, {
            "status": CollaborationStatus.ACTIVE,
            "suspended_at": None,
            "updated_at": self._clock(),
        })
        self._publish(EventType.COLLABORATION_RESUMED, resumed, user_id)
        return resumed

    def update_permissions(self, collaboration_id: str, permissions: Iterable[str], user_id: str) -> Collaboration:
        """Replace the permissions, filtered to the collaboration type."""
        collaboration = self.get_collaboration(collaboration_id)

        if user_id != collaboration.initiator_id:
            raise CollaborationPermissionError("Only the initiator can change permissions")

        updated = self._save(collaboration, {
            "permissions": filter_permissions(collaboration.collaboration_type, permissions),
            "updated_at": self._clock(),
        })
        self._publish(
            EventType.COLLABORATION_PERMISSIONS_UPDATED, updated, user_id,
            permissions=updated.permissions
        )
        return updated

    def update_collaboration(self, collaboration_id: str, data: Dict[str, Any], user_id: str) -> Collaboration:
        """Update descriptive fields; lifecycle and permissions have their own operations."""
        collaboration = self.get_collaboration(collaboration_id)

        if not collaboration.is_participant(user_id):
            raise CollaborationPermissionError("Only participants can update this collaboration")

        updates = {key: value for key, value in data.items() if key in UPDATABLE_FIELDS}
        if "workflow_settings" in updates:
            updates["workflow_settings"] = {
                **collaboration.workflow_settings.model_dump(),
                **updates["workflow_settings"],
            }
        if "communication_preferences" in updates:
            updates["communication_preferences"] = {
                **collaboration.communication_preferences.model_dump(),
                **updates["communication_preferences"],
            }
        updates["updated_at"] = self._clock()
        return self._save(collaboration, updates)

    def get_analytics(self, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Status and type breakdowns, completion rate and average duration in days."""
        collaborations = (
            self.list_by_user(user_id) if user_id is not None else list(self._collaborations.values())
        )

        by_status: Dict[str, int] = {}
        by_type: Dict[str, int] = {}
        for collaboration in collaborations:
            by_status[collaboration.status.value] = by_status.get(collaboration.status.value, 0) + 1
            by_type[collaboration.collaboration_type.value] = by_type.get(collaboration.collaboration_type.value, 0) + 1

        completed = [c for c in collaborations if c.completed_at is not None]
        durations = [(c.completed_at - c.start_date).total_seconds() / 86400 for c in completed]

        return {
            "total": len(collaborations),
            "by_status": by_status,
            "by_type": by_type,
            "completion_rate": len(completed) / len(collaborations) * 100 if collaborations else 0,
            "average_duration_days": sum(durations) / len(durations) if durations else 0,
        }

    # Internals

    def _check_transition(self, collaboration: Collaboration, target: CollaborationStatus) -> None:
        if not can_transition(COLLABORATION_TRANSITIONS, collaboration.status, target):
            raise CollaborationConflictError(
                f"Cannot change collaboration from {collaboration.status.value} to {target.value}"
            )

    def _save(self, collaboration: Collaboration, updates: Dict[str, Any]) -> Collaboration:
        merged = collaboration.model_dump()
        merged.update(updates)
        try:
            saved = Collaboration(**merged)
        except ValidationError as e:
            raise CollaborationValidationError(
                "Collaboration update validation failed",
                issues_from_validation_error(e)
            ) from e
        self._collaborations[saved.id] = saved
        return saved

    def _publish(
        self,
        event_type: EventType,
        collaboration: Collaboration,
        user_id: Optional[str],
        **data: Any
    ) -> None:
        if self.events is not None:
            self.events.publish(event_type, collaboration.id, "collaboration", user_id, **data)
