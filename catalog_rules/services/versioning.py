"""Publication version history: semantic numbering, branches, merges and rollbacks.

Versions form a forest per publication, linked through ``parent_version_id``.
The branch name is a tag on each version; a version created on a new branch
keeps its parent on the source branch, which is what makes it a branch point.
History is append-only apart from explicit deletes: merges and rollbacks always
create new versions.
"""

import copy
import hashlib
import json
import logging
import math
import re
import uuid
from collections import deque
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from catalog_rules.core.settings import Settings, get_settings
from catalog_rules.core.validation import ValidationIssue
from catalog_rules.schemas.base import issues_from_validation_error
from catalog_rules.schemas.version import ChangeType, ContentStats, Version, VersionCreate
from catalog_rules.services.events import EventPublisher, EventType
from catalog_rules.services.lifecycle import VERSION_TRANSITIONS, VersionStatus, can_transition, parse_status
from catalog_rules.utils.validators import utc_now

logger = logging.getLogger(__name__)

INITIAL_VERSION = "0.0.0"
WORDS_PER_PAGE = 250
WORDS_PER_MINUTE = 200

UPDATABLE_FIELDS = (
    "title", "description", "content", "status", "tags", "metadata", "changelog", "commit_message",
)

# Conflict key used when content is not a mapping
WHOLE_CONTENT_KEY = "content"

_MISSING = object()


class VersionServiceError(Exception):
    """Base exception for version service errors."""
    pass


class VersionNotFoundError(VersionServiceError):
    """Raised when a version or branch cannot be found."""
    pass


class VersionConflictError(VersionServiceError):
    """Raised when an operation collides with existing versions or branches."""
    pass


class VersionValidationError(VersionServiceError):
    """Raised when version data or a status change is invalid."""

    def __init__(self, message: str, validation_errors: List[ValidationIssue] = None):
        super().__init__(message)
        self.validation_errors = validation_errors or []


class MergeStrategy(str, Enum):
    RECURSIVE = "recursive"
    OURS = "ours"
    THEIRS = "theirs"


class ConflictResolution(str, Enum):
    MANUAL = "manual"
    OURS = "ours"
    THEIRS = "theirs"


# Content helpers

def canonical_json(content: Any) -> str:
    return json.dumps(content, sort_keys=True, separators=(",", ":"), default=str, ensure_ascii=False)


def compute_content_hash(content: Any) -> str:
    """SHA-256 of the canonical JSON form, so key order never changes the hash."""
    return hashlib.sha256(canonical_json(content).encode("utf-8")).hexdigest()


def extract_text(content: Any) -> str:
    """Flatten text or structured content; each nested block becomes a paragraph."""
    if isinstance(content, str):
        return content
    if isinstance(content, dict):
        parts = [extract_text(value) for value in content.values()]
    elif isinstance(content, (list, tuple)):
        parts = [extract_text(item) for item in content]
    else:
        return ""
    return "\n\n".join(part for part in parts if part)


def compute_content_stats(content: Any) -> ContentStats:
    text = extract_text(content)
    words = text.split()
    sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]
    paragraphs = [p for p in re.split(r"\n\s*\n", text) if p.strip()]

    return ContentStats(
        word_count=len(words),
        character_count=len(text),
        character_count_no_spaces=len(re.sub(r"\s", "", text)),
        sentence_count=len(sentences),
        paragraph_count=len(paragraphs),
        estimated_pages=math.ceil(len(words) / WORDS_PER_PAGE),
        estimated_reading_time=math.ceil(len(words) / WORDS_PER_MINUTE),
    )


def parse_version_number(version_number: str) -> tuple:
    return tuple(int(part) for part in version_number.split("."))


def increment_version(current: str, change_type: Any) -> str:
    """Next semantic version for ``change_type``; unknown types bump the patch."""
    major, minor, patch = parse_version_number(current)
    change = parse_status(ChangeType, change_type)

    if change == ChangeType.MAJOR:
        return f"{major + 1}.0.0"
    if change == ChangeType.MINOR:
        return f"{major}.{minor + 1}.0"
    return f"{major}.{minor}.{patch + 1}"


def _as_mapping(content: Any) -> Dict[str, Any]:
    if isinstance(content, dict):
        return content
    return {WHOLE_CONTENT_KEY: content}


def _value(mapping: Dict[str, Any], key: str) -> Any:
    return mapping.get(key, _MISSING)


def _public(value: Any) -> Any:
    return None if value is _MISSING else value


def _changed_keys(base: Dict[str, Any], side: Dict[str, Any]) -> List[str]:
    keys = dict.fromkeys(list(base) + list(side))
    return [key for key in keys if _value(base, key) != _value(side, key)]


# Merge conflict detection

ConflictDetector = Callable[[Version, Version, Optional[Version]], List[Dict[str, Any]]]


def detect_key_conflicts(source: Version, target: Version, base: Optional[Version]) -> List[Dict[str, Any]]:
    """Top-level content keys changed differently on both sides since ``base``."""
    base_content = _as_mapping(base.content if base is not None else {})
    source_content = _as_mapping(source.content)
    target_content = _as_mapping(target.content)

    target_changes = set(_changed_keys(base_content, target_content))
    conflicts = []
    for key in _changed_keys(base_content, source_content):
        if key not in target_changes:
            continue
        if _value(source_content, key) == _value(target_content, key):
            continue
        conflicts.append({
            "key": key,
            "base": _public(_value(base_content, key)),
            "source": _public(_value(source_content, key)),
            "target": _public(_value(target_content, key)),
        })
    return conflicts


def three_way_merge(
    source: Version,
    target: Version,
    base: Optional[Version],
    conflicts: List[Dict[str, Any]],
    resolution: ConflictResolution
) -> Any:
    """Apply the source side's changes onto the target content.

    Conflicting keys take the source value only under ``theirs`` resolution.
    """
    base_content = _as_mapping(base.content if base is not None else {})
    source_content = _as_mapping(source.content)
    merged = dict(_as_mapping(target.content))
    conflict_keys = {conflict["key"] for conflict in conflicts}

    for key in _changed_keys(base_content, source_content):
        if key in conflict_keys and resolution != ConflictResolution.THEIRS:
            continue
        value = _value(source_content, key)
        if value is _MISSING:
            merged.pop(key, None)
        else:
            merged[key] = value

    if not isinstance(target.content, dict) and not isinstance(source.content, dict):
        return merged.get(WHOLE_CONTENT_KEY)
    return merged


class VersionService:
    """
    In-memory version store for publications.

    Provides semantic version numbering per branch, branch creation, three-way
    branch merges with a pluggable conflict detector, append-only rollbacks,
    diffs and version trees.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        event_publisher: Optional[EventPublisher] = None,
        conflict_detector: Optional[ConflictDetector] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the VersionService.

        Args:
            settings: Settings providing the default branch name
            event_publisher: Optional publisher for version activity
            conflict_detector: Merge conflict detector; defaults to key-based detection
            clock: Source of timestamps; defaults to UTC now
        """
        self.settings = settings or get_settings()
        self.events = event_publisher
        self.conflict_detector = conflict_detector or detect_key_conflicts
        self._clock = clock or utc_now
        self._versions: Dict[str, Version] = {}

    # Queries

    def get_version(self, version_id: str) -> Version:
        version = self._versions.get(version_id)
        if version is None:
            raise VersionNotFoundError(f"Version {version_id} not found")
        return version

    def list_versions(
        self,
        publication_id: str,
        branch_name: Optional[str] = None,
        status: Optional[Any] = None
    ) -> List[Version]:
        """Versions of a publication in creation order; unknown status filters match nothing."""
        if status is not None:
            status = parse_status(VersionStatus, status)
            if status is None:
                return []
        return [
            version for version in self._versions.values()
            if version.publication_id == publication_id
            and (branch_name is None or version.branch_name == branch_name)
            and (status is None or version.status == status)
        ]

    def get_latest_version(
        self,
        publication_id: str,
        branch_name: str,
        status: Optional[Any] = None
    ) -> Optional[Version]:
        versions = self.list_versions(publication_id, branch_name, status)
        return versions[-1] if versions else None

    def list_branches(self, publication_id: str) -> List[str]:
        """Branch names in order of first use."""
        return list(dict.fromkeys(v.branch_name for v in self.list_versions(publication_id)))

    def latest_versions_by_branch(self, publication_id: str) -> Dict[str, Version]:
        latest: Dict[str, Version] = {}
        for version in self.list_versions(publication_id):
            latest[version.branch_name] = version
        return latest

    def get_children(self, version_id: str) -> List[Version]:
        return [v for v in self._versions.values() if v.parent_version_id == version_id]

    # Core operations

    def create_version(self, data: Dict[str, Any]) -> Version:
        """
        Create a new version.

        Args:
            data: Version fields; ``publication_id`` and ``author_id`` are required

        Returns:
            Version: The stored version

        Raises:
            VersionValidationError: If the data is invalid
            VersionNotFoundError: If the parent version does not exist
            VersionConflictError: If the version number already exists on the branch
        """
        try:
            payload = VersionCreate(**data)
        except ValidationError as e:
            raise VersionValidationError(
                "Version validation failed",
                issues_from_validation_error(e)
            ) from e

        branch_name = payload.branch_name or self.settings.default_branch
        parent = self._resolve_parent(payload, branch_name)

        version_number = payload.version_number or self._next_version_number(
            payload.publication_id, branch_name, payload.change_type, parent
        )
        if self._find_by_number(payload.publication_id, branch_name, version_number):
            raise VersionConflictError(f"Version {version_number} already exists on branch {branch_name}")

        content = copy.deepcopy(payload.content)
        stats = compute_content_stats(content)
        now = self._clock()

        fields = payload.model_dump(exclude={"content", "metadata", "version_number", "branch_name", "parent_version_id"})
        version = Version(
            **fields,
            id=str(uuid.uuid4()),
            content=content,
            version_number=version_number,
            branch_name=branch_name,
            parent_version_id=parent.id if parent else None,
            content_hash=compute_content_hash(content),
            content_stats=stats,
            metadata={**copy.deepcopy(payload.metadata), **self._stats_metadata(stats)},
            created_at=now,
            updated_at=now,
            published_at=now if payload.status == VersionStatus.PUBLISHED else None,
        )
        self._versions[version.id] = version

        logger.info(
            f"Created version {version_number} on branch {branch_name} for publication {payload.publication_id}"
        )
        self._publish(
            EventType.VERSION_CREATED, version, payload.author_id,
            version_number=version_number,
            change_type=version.change_type.value,
            branch_name=branch_name
        )
        return version

    def update_version(self, version_id: str, data: Dict[str, Any], updated_by: Optional[str] = None) -> Version:
        """
        Update the allowed fields of a version.

        Content changes recompute the hash and statistics. Status changes must
        follow the version lifecycle; entering ``published`` stamps
        ``published_at``.

        Raises:
            VersionNotFoundError: If the version does not exist
            VersionValidationError: If the update or status change is invalid
        """
        version = self.get_version(version_id)
        updates = {key: value for key, value in data.items() if key in UPDATABLE_FIELDS}
        now = self._clock()

        if "status" in updates:
            updates["status"] = self._check_status_change(version, updates["status"])

        merged = version.model_dump()
        merged.update(updates)

        if "content" in updates:
            content = copy.deepcopy(updates["content"])
            stats = compute_content_stats(content)
            merged["content"] = content
            merged["content_hash"] = compute_content_hash(content)
            merged["content_stats"] = stats
            merged["metadata"] = {
                **version.metadata,
                **(updates.get("metadata") or {}),
                **self._stats_metadata(stats),
            }

        status_changed = "status" in updates and updates["status"] != version.status
        if status_changed and updates["status"] == VersionStatus.PUBLISHED:
            merged["published_at"] = now
        merged["updated_at"] = now

        try:
            updated = Version(**merged)
        except ValidationError as e:
            raise VersionValidationError(
                "Version update validation failed",
                issues_from_validation_error(e)
            ) from e

        self._versions[version_id] = updated
        logger.info(f"Updated version {version_id}: {sorted(updates)}")
        self._publish(
            EventType.VERSION_UPDATED, updated, updated_by,
            fields_updated=sorted(updates),
            status_change={"from": version.status.value, "to": updated.status.value} if status_changed else None
        )
        return updated

    def delete_version(self, version_id: str, force: bool = False, deleted_by: Optional[str] = None) -> bool:
        """
        Delete a version.

        Children of a force-deleted version are re-parented onto its parent.

        Raises:
            VersionNotFoundError: If the version does not exist
            VersionConflictError: If it has children (without ``force``) or is published
        """
        version = self.get_version(version_id)
        children = self.get_children(version_id)

        if children and not force:
            raise VersionConflictError("Cannot delete version with child versions. Use force=True to delete.")

        if version.status == VersionStatus.PUBLISHED:
            raise VersionConflictError("Cannot delete published version. Change status first.")

        for child in children:
            self._versions[child.id] = child.model_copy(update={"parent_version_id": version.parent_version_id})
        del self._versions[version_id]

        logger.info(f"Deleted version {version.version_number} ({version_id})")
        self._publish(
            EventType.VERSION_DELETED, version, deleted_by,
            version_number=version.version_number,
            force_delete=force
        )
        return True

    # Branching

    def create_branch(
        self,
        source_version_id: str,
        branch_name: str,
        author_id: str,
        description: str = ""
    ) -> Version:
        """Start ``branch_name`` with a copy of the source version."""
        source = self.get_version(source_version_id)

        if branch_name in self.list_branches(source.publication_id):
            raise VersionConflictError(f"Branch {branch_name} already exists")

        branch_version = self.create_version({
            "publication_id": source.publication_id,
            "parent_version_id": source.id,
            "author_id": author_id,
            "title": f"{source.title} ({branch_name})",
            "description": description or f"Branch created from version {source.version_number}",
            "content": source.content,
            "change_type": ChangeType.MINOR,
            "status": VersionStatus.DRAFT,
            "branch_name": branch_name,
            "commit_message": f"Created branch {branch_name} from {source.version_number}",
        })

        self._publish(
            EventType.BRANCH_CREATED, branch_version, author_id,
            source_version_id=source.id,
            branch_name=branch_name
        )
        return branch_version

    def find_common_ancestor(self, first: Version, second: Version) -> Optional[Version]:
        first_ancestry = {version.id for version in self._ancestry(first)}
        for version in self._ancestry(second):
            if version.id in first_ancestry:
                return version
        return None

    def merge_branch(
        self,
        source_branch: str,
        target_branch: str,
        publication_id: str,
        author_id: str,
        resolve_conflicts: Any = ConflictResolution.MANUAL,
        merge_strategy: Any = MergeStrategy.RECURSIVE,
        commit_message: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Merge the latest version of one branch into another.

        Args:
            source_branch: Branch whose changes are merged
            target_branch: Branch receiving the merge version
            publication_id: Owning publication
            author_id: Author of the merge version
            resolve_conflicts: ``manual`` stops on conflicts; ``ours`` keeps the
                target value and ``theirs`` takes the source value
            merge_strategy: ``recursive`` (three-way), ``ours`` or ``theirs``
            commit_message: Optional commit message for the merge version

        Returns:
            Dict: ``status`` is ``conflicts`` (with the conflicts and a merge id)
            or ``success`` (with the new merge version)

        Raises:
            VersionNotFoundError: If either branch has no versions
            VersionValidationError: If the strategy or resolution is unknown
        """
        strategy = self._parse_option(MergeStrategy, merge_strategy, "merge_strategy")
        resolution = self._parse_option(ConflictResolution, resolve_conflicts, "resolve_conflicts")

        latest_source = self.get_latest_version(publication_id, source_branch)
        if latest_source is None:
            raise VersionNotFoundError(f"Source branch {source_branch} not found")

        latest_target = self.get_latest_version(publication_id, target_branch)
        if latest_target is None:
            raise VersionNotFoundError(f"Target branch {target_branch} not found")

        base = self.find_common_ancestor(latest_source, latest_target)
        conflicts = self.conflict_detector(latest_source, latest_target, base)

        if conflicts and resolution == ConflictResolution.MANUAL:
            logger.info(f"Merge of {source_branch} into {target_branch} stopped on {len(conflicts)} conflicts")
            return {
                "status": "conflicts",
                "conflicts": conflicts,
                "merge_id": str(uuid.uuid4()),
                "message": "Merge conflicts detected. Manual resolution required.",
            }

        if strategy == MergeStrategy.OURS:
            merged_content = latest_target.content
        elif strategy == MergeStrategy.THEIRS:
            merged_content = latest_source.content
        else:
            merged_content = three_way_merge(latest_source, latest_target, base, conflicts, resolution)

        merge_version = self.create_version({
            "publication_id": publication_id,
            "parent_version_id": latest_target.id,
            "author_id": author_id,
            "title": latest_target.title,
            "description": f"Merged {source_branch} into {target_branch}",
            "content": merged_content,
            "change_type": ChangeType.MINOR,
            "status": VersionStatus.DRAFT,
            "branch_name": target_branch,
            "commit_message": commit_message or f"Merge {source_branch} into {target_branch}",
            "metadata": {
                "merged_from": source_branch,
                "merge_strategy": strategy.value,
                "conflicts_resolved": len(conflicts),
                "source_version_id": latest_source.id,
            },
        })

        self._publish(
            EventType.BRANCH_MERGED, merge_version, author_id,
            source_branch=source_branch,
            target_branch=target_branch,
            conflicts_count=len(conflicts)
        )
        return {
            "status": "success",
            "merge_version": merge_version,
            "conflicts_resolved": len(conflicts),
            "message": "Merge completed successfully",
        }

    def rollback(self, target_version_id: str, author_id: str, reason: str = "") -> Version:
        """Create a hotfix version on the target's branch restoring its content."""
        target = self.get_version(target_version_id)
        current = (
            self.get_latest_version(target.publication_id, target.branch_name, VersionStatus.PUBLISHED)
            or self.get_latest_version(target.publication_id, target.branch_name)
        )

        rollback_version = self.create_version({
            "publication_id": target.publication_id,
            "parent_version_id": current.id,
            "author_id": author_id,
            "title": target.title,
            "description": f"Rollback to version {target.version_number}",
            "content": target.content,
            "change_type": ChangeType.HOTFIX,
            "status": VersionStatus.DRAFT,
            "branch_name": target.branch_name,
            "commit_message": f"Rollback to {target.version_number}: {reason}",
            "metadata": {
                **target.metadata,
                "rollback_from": current.id,
                "rollback_to": target.id,
                "rollback_reason": reason,
            },
        })

        logger.info(f"Rolled back branch {target.branch_name} to {target.version_number}")
        self._publish(
            EventType.VERSION_ROLLED_BACK, rollback_version, author_id,
            target_version_id=target.id,
            current_version_id=current.id,
            reason=reason
        )
        return rollback_version

    # Diffs and trees

    def generate_diff(self, from_version_id: str, to_version_id: str, include_metadata: bool = True) -> Dict[str, Any]:
        old = self.get_version(from_version_id)
        new = self.get_version(to_version_id)

        content_diff = self._mapping_diff(_as_mapping(old.content), _as_mapping(new.content))
        diff = {
            "from_version": self._summary(old),
            "to_version": self._summary(new),
            "identical": old.content_hash == new.content_hash,
            "content_diff": content_diff,
            "statistics": {
                "keys_added": len(content_diff["added"]),
                "keys_removed": len(content_diff["removed"]),
                "keys_modified": len(content_diff["modified"]),
                "word_count_delta": new.content_stats.word_count - old.content_stats.word_count,
                "character_count_delta": new.content_stats.character_count - old.content_stats.character_count,
            },
            "generated_at": self._clock(),
        }
        if include_metadata:
            diff["metadata_diff"] = self._mapping_diff(old.metadata, new.metadata)
        return diff

    def build_version_tree(self, publication_id: str, root_version_id: Optional[str] = None) -> Dict[str, Any]:
        """Nest a publication's versions under their parents."""
        versions = self.list_versions(publication_id)
        nodes = {version.id: {**version.model_dump(), "children": []} for version in versions}

        roots = []
        for version in versions:
            parent_node = nodes.get(version.parent_version_id)
            if parent_node is None:
                roots.append(nodes[version.id])
            else:
                parent_node["children"].append(nodes[version.id])

        if root_version_id is not None:
            if root_version_id not in nodes:
                raise VersionNotFoundError(f"Version {root_version_id} not found")
            tree: Any = nodes[root_version_id]
        else:
            tree = roots

        return {
            "publication_id": publication_id,
            "root_version_id": root_version_id,
            "tree": tree,
            "total_versions": len(versions),
            "branches": self.list_branches(publication_id),
            "latest_versions": {
                branch: version.id
                for branch, version in self.latest_versions_by_branch(publication_id).items()
            },
        }

    # Internals

    def _resolve_parent(self, payload: VersionCreate, branch_name: str) -> Optional[Version]:
        if payload.parent_version_id is None:
            return self.get_latest_version(payload.publication_id, branch_name)

        parent = self.get_version(payload.parent_version_id)
        if parent.publication_id != payload.publication_id:
            raise VersionValidationError(
                "Parent version belongs to a different publication",
                [ValidationIssue(
                    code="invalid_parent_version",
                    message="Parent version belongs to a different publication",
                    field="parent_version_id"
                )]
            )
        return parent

    def _next_version_number(
        self,
        publication_id: str,
        branch_name: str,
        change_type: ChangeType,
        parent: Optional[Version]
    ) -> str:
        branch_versions = self.list_versions(publication_id, branch_name)
        if branch_versions:
            current = max(branch_versions, key=lambda v: v.version_tuple).version_number
        elif parent is not None:
            current = parent.version_number
        else:
            current = INITIAL_VERSION
        return increment_version(current, change_type)

    def _find_by_number(self, publication_id: str, branch_name: str, version_number: str) -> Optional[Version]:
        for version in self.list_versions(publication_id, branch_name):
            if version.version_number == version_number:
                return version
        return None

    def _check_status_change(self, version: Version, status: Any) -> VersionStatus:
        target = parse_status(VersionStatus, status)
        if target is None:
            raise VersionValidationError(
                f"Unknown version status: {status}",
                [ValidationIssue(code="invalid_status", message=f"Unknown version status: {status}", field="status")]
            )

        if target != version.status and not can_transition(VERSION_TRANSITIONS, version.status, target):
            message = f"Cannot change version status from {version.status.value} to {target.value}"
            raise VersionValidationError(
                message,
                [ValidationIssue(code="invalid_transition", message=message, field="status")]
            )
        return target

    def _ancestry(self, version: Version) -> List[Version]:
        """The version and its ancestors, nearest first; merge sources count as parents."""
        ordered = []
        seen = set()
        queue = deque([version])
        while queue:
            current = queue.popleft()
            if current.id in seen:
                continue
            seen.add(current.id)
            ordered.append(current)

            for parent_id in (current.parent_version_id, current.metadata.get("source_version_id")):
                parent = self._versions.get(parent_id) if parent_id else None
                if parent is not None:
                    queue.append(parent)
        return ordered

    @staticmethod
    def _parse_option(enum_cls, value: Any, field: str):
        option = parse_status(enum_cls, value)
        if option is None:
            message = f"Invalid {field}: {value}"
            raise VersionValidationError(message, [ValidationIssue(code=f"invalid_{field}", message=message, field=field)])
        return option

    @staticmethod
    def _stats_metadata(stats: ContentStats) -> Dict[str, int]:
        return {
            "word_count": stats.word_count,
            "character_count": stats.character_count,
            "page_count": stats.estimated_pages,
            "reading_time": stats.estimated_reading_time,
        }

    @staticmethod
    def _mapping_diff(old: Dict[str, Any], new: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        return {
            "added": {key: value for key, value in new.items() if key not in old},
            "removed": {key: value for key, value in old.items() if key not in new},
            "modified": {
                key: {"old": old[key], "new": new[key]}
                for key in old
                if key in new and old[key] != new[key]
            },
        }

    @staticmethod
    def _summary(version: Version) -> Dict[str, Any]:
        return {
            "id": version.id,
            "version_number": version.version_number,
            "title": version.title,
            "branch_name": version.branch_name,
            "created_at": version.created_at,
        }

    def _publish(self, event_type: EventType, version: Version, user_id: Optional[str], **data: Any) -> None:
        if self.events is not None:
            self.events.publish(event_type, version.id, "version", user_id, **data)
