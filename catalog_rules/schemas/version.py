"""Publication version schemas."""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from catalog_rules.services.lifecycle import VersionStatus

from .base import BaseSchema

VERSION_NUMBER_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")


class ChangeType(str, Enum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    HOTFIX = "hotfix"


class ContentStats(BaseSchema):
    """Statistics derived from version content."""

    word_count: int = Field(0, ge=0)
    character_count: int = Field(0, ge=0)
    character_count_no_spaces: int = Field(0, ge=0)
    sentence_count: int = Field(0, ge=0)
    paragraph_count: int = Field(0, ge=0)
    estimated_pages: int = Field(0, ge=0, description="Pages at 250 words per page")
    estimated_reading_time: int = Field(0, ge=0, description="Minutes at 200 words per minute")


class VersionCreate(BaseSchema):
    """Input for creating a publication version."""

    publication_id: str = Field(min_length=1, description="Owning publication")
    author_id: str = Field(min_length=1, description="Version author")
    parent_version_id: Optional[str] = Field(None, description="Parent version, possibly on another branch")
    version_number: Optional[str] = Field(None, description="Explicit MAJOR.MINOR.PATCH number")
    title: str = Field("", max_length=500)
    description: str = ""
    content: Any = Field(default_factory=dict, description="Text or structured content")
    change_type: ChangeType = ChangeType.MINOR
    status: VersionStatus = VersionStatus.DRAFT
    branch_name: Optional[str] = Field(None, description="Branch tag; defaults to the configured branch")
    is_major_release: bool = False
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    changelog: str = ""
    commit_message: str = ""

    @field_validator("version_number")
    @classmethod
    def validate_version_number(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if not VERSION_NUMBER_PATTERN.match(v):
            raise ValueError("Version number must be in format MAJOR.MINOR.PATCH")
        return v

    @field_validator("branch_name")
    @classmethod
    def validate_branch_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v:
            raise ValueError("Branch name cannot be empty")
        return v


class Version(VersionCreate):
    """Stored publication version."""

    id: str
    version_number: str
    branch_name: str
    content_hash: str
    content_stats: ContentStats
    created_at: datetime
    updated_at: datetime
    published_at: Optional[datetime] = None

    @property
    def version_tuple(self) -> tuple:
        return tuple(int(part) for part in self.version_number.split("."))
