"""Pydantic schemas for version and collaboration records."""

from .base import *
from .version import *
from .collaboration import *

__all__ = [
    # Base schemas
    "BaseSchema",
    "issues_from_validation_error",

    # Version schemas
    "ChangeType",
    "ContentStats",
    "VersionCreate",
    "Version",

    # Collaboration schemas
    "CollaborationType",
    "NotificationFrequency",
    "WorkflowSettings",
    "CommunicationPreferences",
    "CollaborationCreate",
    "Collaboration",
]
