from app.models.event.event import Assignment, Event

__all__ = ["Event", "Assignment"]
