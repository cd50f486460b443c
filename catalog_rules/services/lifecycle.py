"""Status lifecycles for releases, publication versions and collaborations."""

from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Type, TypeVar

StatusT = TypeVar("StatusT", bound=Enum)


class ReleaseStatus(str, Enum):
    """Release lifecycle states."""
    DRAFT = "draft"
    IN_REVIEW = "in_review"
    REJECTED = "rejected"
    APPROVED = "approved"
    SCHEDULED = "scheduled"
    POSTPONED = "postponed"
    MASTERED = "mastered"
    DISTRIBUTED = "distributed"
    RELEASED = "released"
    WITHDRAWN = "withdrawn"
    CANCELLED = "cancelled"


class VersionStatus(str, Enum):
    """Publication version lifecycle states."""
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class CollaborationStatus(str, Enum):
    """Collaboration lifecycle states."""
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    SUSPENDED = "suspended"


RELEASE_TRANSITIONS: Dict[ReleaseStatus, FrozenSet[ReleaseStatus]] = {
    ReleaseStatus.DRAFT: frozenset({ReleaseStatus.IN_REVIEW, ReleaseStatus.CANCELLED}),
    ReleaseStatus.IN_REVIEW: frozenset({ReleaseStatus.APPROVED, ReleaseStatus.REJECTED, ReleaseStatus.DRAFT}),
    ReleaseStatus.REJECTED: frozenset({ReleaseStatus.DRAFT}),
    ReleaseStatus.APPROVED: frozenset({ReleaseStatus.SCHEDULED, ReleaseStatus.CANCELLED}),
    ReleaseStatus.SCHEDULED: frozenset({
        ReleaseStatus.MASTERED, ReleaseStatus.CANCELLED, ReleaseStatus.POSTPONED
    }),
    ReleaseStatus.POSTPONED: frozenset({ReleaseStatus.SCHEDULED, ReleaseStatus.CANCELLED}),
    ReleaseStatus.MASTERED: frozenset({ReleaseStatus.DISTRIBUTED, ReleaseStatus.SCHEDULED}),
    ReleaseStatus.DISTRIBUTED: frozenset({ReleaseStatus.RELEASED, ReleaseStatus.WITHDRAWN}),
    ReleaseStatus.RELEASED: frozenset({ReleaseStatus.WITHDRAWN}),
    ReleaseStatus.WITHDRAWN: frozenset({ReleaseStatus.RELEASED}),
    ReleaseStatus.CANCELLED: frozenset(),
}

VERSION_TRANSITIONS: Dict[VersionStatus, FrozenSet[VersionStatus]] = {
    VersionStatus.DRAFT: frozenset({VersionStatus.REVIEW, VersionStatus.ARCHIVED}),
    VersionStatus.REVIEW: frozenset({VersionStatus.APPROVED, VersionStatus.DRAFT}),
    VersionStatus.APPROVED: frozenset({VersionStatus.PUBLISHED, VersionStatus.DRAFT}),
    VersionStatus.PUBLISHED: frozenset({VersionStatus.ARCHIVED}),
    VersionStatus.ARCHIVED: frozenset({VersionStatus.DRAFT}),
}

COLLABORATION_TRANSITIONS: Dict[CollaborationStatus, FrozenSet[CollaborationStatus]] = {
    CollaborationStatus.PENDING: frozenset({CollaborationStatus.ACTIVE, CollaborationStatus.CANCELLED}),
    CollaborationStatus.ACTIVE: frozenset({
        CollaborationStatus.COMPLETED, CollaborationStatus.SUSPENDED, CollaborationStatus.CANCELLED
    }),
    CollaborationStatus.SUSPENDED: frozenset({CollaborationStatus.ACTIVE, CollaborationStatus.CANCELLED}),
    CollaborationStatus.COMPLETED: frozenset(),
    CollaborationStatus.CANCELLED: frozenset(),
}


def parse_status(enum_cls: Type[StatusT], value: Any) -> Optional[StatusT]:
    """Return the enum member for ``value``, or None when it is not a known status."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def can_transition(
    transitions: Dict[StatusT, FrozenSet[StatusT]],
    current: Any,
    target: Any
) -> bool:
    """Check an edge against a transition table; unknown states never transition."""
    status_cls = type(next(iter(transitions)))
    current_status = parse_status(status_cls, current)
    target_status = parse_status(status_cls, target)

    if current_status is None or target_status is None:
        return False

    return target_status in transitions[current_status]


def _check_complete(transitions: Dict[StatusT, FrozenSet[StatusT]]) -> None:
    status_cls = type(next(iter(transitions)))
    missing = set(status_cls) - set(transitions)
    if missing:
        raise RuntimeError(f"Transition table for {status_cls.__name__} missing: {sorted(m.value for m in missing)}")


for _table in (RELEASE_TRANSITIONS, VERSION_TRANSITIONS, COLLABORATION_TRANSITIONS):
    _check_complete(_table)
