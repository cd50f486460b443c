"""Activity events for version and collaboration changes."""

import json
import logging
import uuid
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from catalog_rules.utils.validators import utc_now

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Activity event types."""
    VERSION_CREATED = "publishing.version.created"
    VERSION_UPDATED = "publishing.version.updated"
    VERSION_DELETED = "publishing.version.deleted"
    BRANCH_CREATED = "publishing.branch.created"
    BRANCH_MERGED = "publishing.branch.merged"
    VERSION_ROLLED_BACK = "publishing.version.rolled_back"
    COLLABORATION_CREATED = "publishing.collaboration.created"
    COLLABORATION_ACCEPTED = "publishing.collaboration.accepted"
    COLLABORATION_CANCELLED = "publishing.collaboration.cancelled"
    COLLABORATION_COMPLETED = "publishing.collaboration.completed"
    COLLABORATION_SUSPENDED = "publishing.collaboration.suspended"
    COLLABORATION_RESUMED = "publishing.collaboration.resumed"
    COLLABORATION_PERMISSIONS_UPDATED = "publishing.collaboration.permissions_updated"


@dataclass
class ActivityEvent:
    """Base activity event structure."""
    event_type: EventType
    user_id: Optional[str]
    resource_id: str
    resource_type: str
    data: Dict[str, Any]
    metadata: Optional[Dict[str, Any]] = None

    # Auto-generated fields
    event_id: str = None
    timestamp: str = None

    def __post_init__(self):
        if self.event_id is None:
            self.event_id = str(uuid.uuid4())
        if self.timestamp is None:
            self.timestamp = utc_now().isoformat() + "Z"


class EventPublisher:
    """Records activity events in memory, in publish order."""

    def __init__(self):
        self.events: List[ActivityEvent] = []

    def publish_event(self, event: ActivityEvent) -> bool:
        self.events.append(event)
        logger.info(f"EVENT: {event.event_type.value} - {event.resource_type} {event.resource_id}")
        logger.debug(f"Event data: {json.dumps(asdict(event), default=str)}")
        return True

    def publish(
        self,
        event_type: EventType,
        resource_id: str,
        resource_type: str,
        user_id: Optional[str] = None,
        **data: Any
    ) -> bool:
        """Build and publish an event in one call."""
        event = ActivityEvent(
            event_type=event_type,
            user_id=user_id,
            resource_id=resource_id,
            resource_type=resource_type,
            data=data,
            metadata={"source": "catalog_rules"}
        )
        return self.publish_event(event)

    def events_for(self, resource_id: str) -> List[ActivityEvent]:
        return [event for event in self.events if event.resource_id == resource_id]

    def of_type(self, event_type: EventType) -> List[ActivityEvent]:
        return [event for event in self.events if event.event_type == event_type]

    def clear(self):
        """Clear all recorded events."""
        self.events.clear()
