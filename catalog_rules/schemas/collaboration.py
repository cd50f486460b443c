"""Collaboration schemas."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from catalog_rules.services.lifecycle import CollaborationStatus

from .base import BaseSchema


class CollaborationType(str, Enum):
    CO_AUTHOR = "co-author"
    EDITOR = "editor"
    REVIEWER = "reviewer"
    CONSULTANT = "consultant"
    TRANSLATOR = "translator"


class NotificationFrequency(str, Enum):
    IMMEDIATE = "immediate"
    DAILY = "daily"
    WEEKLY = "weekly"


class WorkflowSettings(BaseSchema):
    """How a collaborator's changes flow into the publication."""

    approval_required: bool = False
    simultaneous_editing: bool = False
    version_control: bool = True
    auto_merge: bool = False
    notification_frequency: NotificationFrequency = NotificationFrequency.WEEKLY


class CommunicationPreferences(BaseSchema):
    email_notifications: bool = True
    task_updates: bool = True
    deadline_reminders: bool = True
    progress_reports: bool = False


class CollaborationCreate(BaseSchema):
    """Input for inviting a collaborator onto a publication."""

    publication_id: str = Field(min_length=1)
    initiator_id: str = Field(min_length=1)
    collaborator_id: str = Field(min_length=1)
    collaboration_type: CollaborationType = CollaborationType.CO_AUTHOR
    role_description: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    contribution_percentage: float = Field(0, ge=0, le=100)
    royalty_percentage: float = Field(0, ge=0, le=100)
    status: CollaborationStatus = CollaborationStatus.PENDING
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    terms_agreed: bool = False
    contract_details: Dict[str, Any] = Field(default_factory=dict)
    communication_preferences: Dict[str, Any] = Field(
        default_factory=dict, description="Overrides for the default preferences"
    )
    workflow_settings: Dict[str, Any] = Field(
        default_factory=dict, description="Overrides for the type's workflow defaults"
    )

    @field_validator("status")
    @classmethod
    def validate_initial_status(cls, v: CollaborationStatus) -> CollaborationStatus:
        if v not in (CollaborationStatus.PENDING, CollaborationStatus.ACTIVE):
            raise ValueError("A collaboration must start as pending or active")
        return v


class Collaboration(BaseSchema):
    """Stored collaboration."""

    id: str
    publication_id: str
    initiator_id: str
    collaborator_id: str
    collaboration_type: CollaborationType
    role_description: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    contribution_percentage: float = Field(0, ge=0, le=100)
    royalty_percentage: float = Field(0, ge=0, le=100)
    status: CollaborationStatus
    start_date: datetime
    end_date: Optional[datetime] = None
    terms_agreed: bool = False
    contract_details: Dict[str, Any] = Field(default_factory=dict)
    communication_preferences: CommunicationPreferences
    workflow_settings: WorkflowSettings

    invitation_sent_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    suspended_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.initiator_id, self.collaborator_id)
