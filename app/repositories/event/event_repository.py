"""
Event and assignment repositories (read side).
"""

from typing import Optional

from sqlalchemy.orm import Session

from app.models.base.enums import AssignmentStatus
from app.models.event.event import Assignment, Event
from app.repositories.base.base_repository import BaseRepository


class EventRepository(BaseRepository[Event]):
    """Repository for scheduled events."""

    def __init__(self, session: Session):
        super().__init__(Event, session)


class AssignmentRepository(BaseRepository[Assignment]):
    """Repository for agent assignments."""

    def __init__(self, session: Session):
        super().__init__(Assignment, session)

    def find_confirmed(self, agent_id: str, event_id: str) -> Optional[Assignment]:
        """Confirmed assignment of the agent to the event, if any."""
        return self.find_one_by_criteria(
            {
                "agent_id": agent_id,
                "event_id": event_id,
                "status": AssignmentStatus.CONFIRMED,
            }
        )
